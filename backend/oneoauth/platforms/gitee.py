"""
Gitee
支持令牌交换和刷新令牌

文档: https://gitee.com/api/v5/oauth_doc
"""

from datetime import timedelta
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional

from ..exceptions import AccessTokenExpiredError, ProtocolError, RefreshTokenExpiredError
from ..oauth.assembly import PlatformAssemblyFactory
from ..oauth.authorize import AuthorizeURLInitializer
from ..oauth.exchanger import TokenRefreshableOAuth2Exchanger
from ..oauth.models import (
    AvatarSupplier,
    CallbackQuery,
    EmailSupplier,
    NicknameSupplier,
    OAuth2User,
    RefreshableOAuth2Token,
    UsernameSupplier,
)
from ..oauth.properties import ApplicationProperties, AuthorizationProperties
from ..request.models import URL, Headers, RequestMethod, RequestTemplate, URLQuery

PLATFORM = "gitee"

AUTHORIZE_URL = "https://gitee.com/oauth/authorize"
TOKEN_URL = "https://gitee.com/oauth/token"
USER_URL = "https://gitee.com/api/v5/user"


class GiteePermission(str, Enum):
    """Gitee 权限"""
    USER_INFO = "user_info"
    PROJECTS = "projects"
    PULL_REQUESTS = "pull_requests"
    ISSUES = "issues"
    NOTES = "notes"
    KEYS = "keys"
    HOOK = "hook"
    GROUPS = "groups"
    GISTS = "gists"
    ENTERPRISES = "enterprises"
    EMAILS = "emails"


class GiteeApplicationProperties(ApplicationProperties):
    """Gitee 应用属性"""

    platform: ClassVar[str] = PLATFORM
    required_fields: ClassVar[tuple[str, ...]] = ("client_id", "client_secret", "callbacks")
    callback_fields: ClassVar[tuple[str, ...]] = ("callbacks",)

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    # 回调地址，可以有多个
    callbacks: Optional[list[str]] = None


class GiteeAuthorizationProperties(AuthorizationProperties):
    """Gitee 授权属性"""

    platform: ClassVar[str] = PLATFORM

    # 为空时使用应用设置中勾选的权限
    permissions: Optional[list[GiteePermission]] = None

    def ensure_valid(self) -> None:
        if self.permissions is not None and len(set(self.permissions)) != len(self.permissions):
            self._fail(f"permissions 中存在重复项: {[p.value for p in self.permissions]}")

    def scope_text(self) -> Optional[str]:
        if self.permissions is None:
            return None
        return " ".join(permission.value for permission in self.permissions)


class GiteeToken(RefreshableOAuth2Token):
    """Gitee 令牌"""

    __slots__ = ()

    platform: ClassVar[str] = PLATFORM

    REFRESH_TOKEN_VALIDITY: ClassVar[timedelta] = timedelta(days=7)

    @property
    def access_token_validity_duration(self) -> timedelta:
        return timedelta(seconds=int(self._required("expires_in")))

    @property
    def refresh_token_validity_duration(self) -> timedelta:
        return self.REFRESH_TOKEN_VALIDITY


class GiteeUser(OAuth2User, UsernameSupplier, NicknameSupplier, AvatarSupplier, EmailSupplier):
    """Gitee 用户"""

    __slots__ = ()

    platform: ClassVar[str] = PLATFORM

    @property
    def identifier(self) -> str:
        return self._required("id")


class GiteeAuthorizeURLInitializer(AuthorizeURLInitializer):
    """Gitee 授权地址初始化器"""

    def _build_template(self) -> URL:
        application: GiteeApplicationProperties = self.metadata.application
        authorization: GiteeAuthorizationProperties = self.metadata.authorization
        query = URLQuery()
        query.unique("response_type", "code")
        query.unique("client_id", application.client_id)
        query.repeatable_all("redirect_uri", application.callbacks)
        query.unique("scope", authorization.scope_text())
        return URL(AUTHORIZE_URL, query)


class GiteeExchanger(TokenRefreshableOAuth2Exchanger[GiteeToken, GiteeUser]):
    """Gitee 交换器"""

    def __init__(self, metadata) -> None:
        super().__init__(metadata)
        application: GiteeApplicationProperties = metadata.application
        headers = Headers().accept_json().user_agent()

        query = URLQuery()
        query.unique("grant_type", "authorization_code")
        query.unique("client_id", application.client_id)
        query.unique("client_secret", application.client_secret)
        query.repeatable_all("redirect_uri", application.callbacks)
        self._token_template = RequestTemplate(RequestMethod.POST, URL(TOKEN_URL, query), headers)

        self._user_template = RequestTemplate(RequestMethod.GET, USER_URL, headers)

        query = URLQuery()
        query.unique("grant_type", "refresh_token")
        self._refresh_template = RequestTemplate(RequestMethod.POST, URL(TOKEN_URL, query), headers)

    def _exchange_for_token(self, query: CallbackQuery) -> GiteeToken:
        code = self._require_code(query)
        request = self._token_template.to_draft()
        request.url.query.unique("code", code)
        root = self._execute(request).read_json()
        if root.get("error") is not None:
            raise ProtocolError(f"换取令牌失败: {dict(root)}", payload=dict(root))
        return GiteeToken(root)

    def _exchange_token_for_user(self, token: GiteeToken) -> GiteeUser:
        request = self._user_template.to_draft()
        request.url.query.unique("access_token", token.access_token)
        response = self._execute(request)
        root = response.read_json()
        if response.status < 300:
            return GiteeUser(root)
        raise self._classify_user_error(root)

    def _refresh_token(self, token: GiteeToken) -> GiteeToken:
        request = self._refresh_template.to_draft()
        request.url.query.unique("refresh_token", token.refresh_token)
        root = self._execute(request).read_json()
        error = root.get("error")
        if error is None:
            return GiteeToken(root)
        if error == "invalid_grant":
            raise RefreshTokenExpiredError(f"刷新令牌已失效: {dict(root)}", payload=dict(root))
        raise ProtocolError(f"刷新令牌失败: {dict(root)}", payload=dict(root))

    @staticmethod
    def _classify_user_error(root: Mapping[str, Any]) -> Exception:
        if root.get("message") == "401 Unauthorized: Access token is expired":
            return AccessTokenExpiredError(f"访问令牌已过期: {dict(root)}", payload=dict(root))
        return ProtocolError(f"获取用户失败: {dict(root)}", payload=dict(root))


class GiteeAssemblyFactory(PlatformAssemblyFactory):
    """Gitee 装配工厂"""

    platform = PLATFORM
    application_properties_type = GiteeApplicationProperties
    authorization_properties_type = GiteeAuthorizationProperties

    def default_authorization_properties(self) -> GiteeAuthorizationProperties:
        return GiteeAuthorizationProperties(permissions=[GiteePermission.USER_INFO])

    def create_authorize_url_initializer(self, metadata) -> GiteeAuthorizeURLInitializer:
        return GiteeAuthorizeURLInitializer(metadata)

    def create_exchanger(self, metadata) -> GiteeExchanger:
        return GiteeExchanger(metadata)
