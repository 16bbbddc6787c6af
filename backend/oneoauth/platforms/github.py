"""
GitHub
支持令牌交换，不支持刷新令牌

文档: https://docs.github.com/en/apps/oauth-apps/building-oauth-apps/authorizing-oauth-apps
"""

from datetime import timedelta
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional

from ..exceptions import AccessTokenExpiredError, ProtocolError
from ..oauth.assembly import PlatformAssemblyFactory
from ..oauth.authorize import AuthorizeURLInitializer
from ..oauth.exchanger import TokenAvailableOAuth2Exchanger
from ..oauth.models import (
    AvatarSupplier,
    CallbackQuery,
    EmailSupplier,
    NicknameSupplier,
    OAuth2Token,
    OAuth2User,
    UsernameSupplier,
)
from ..oauth.properties import ApplicationProperties, AuthorizationProperties
from ..request.models import URL, Headers, RequestMethod, RequestTemplate, URLQuery

PLATFORM = "github"

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
ACCESS_TOKEN_URL = "https://github.com/login/oauth/access_token"
USER_URL = "https://api.github.com/user"


class GitHubScope(str, Enum):
    """GitHub OAuth App 权限范围"""
    REPO = "repo"
    REPO_STATUS = "repo:status"
    REPO_DEPLOYMENT = "repo_deployment"
    PUBLIC_REPO = "public_repo"
    REPO_INVITE = "repo:invite"
    SECURITY_EVENTS = "security_events"
    ADMIN_REPO_HOOK = "admin:repo_hook"
    WRITE_REPO_HOOK = "write:repo_hook"
    READ_REPO_HOOK = "read:repo_hook"
    ADMIN_ORG = "admin:org"
    WRITE_ORG = "write:org"
    READ_ORG = "read:org"
    ADMIN_PUBLIC_KEY = "admin:public_key"
    WRITE_PUBLIC_KEY = "write:public_key"
    READ_PUBLIC_KEY = "read:public_key"
    ADMIN_ORG_HOOK = "admin:org_hook"
    GIST = "gist"
    NOTIFICATIONS = "notifications"
    USER = "user"
    READ_USER = "read:user"
    USER_EMAIL = "user:email"
    USER_FOLLOW = "user:follow"
    PROJECT = "project"
    READ_PROJECT = "read:project"
    DELETE_REPO = "delete_repo"
    WRITE_PACKAGES = "write:packages"
    READ_PACKAGES = "read:packages"
    DELETE_PACKAGES = "delete:packages"
    ADMIN_GPG_KEY = "admin:gpg_key"
    WRITE_GPG_KEY = "write:gpg_key"
    READ_GPG_KEY = "read:gpg_key"
    CODESPACE = "codespace"
    WORKFLOW = "workflow"


class GitHubApplicationProperties(ApplicationProperties):
    """GitHub 应用属性"""

    platform: ClassVar[str] = PLATFORM
    required_fields: ClassVar[tuple[str, ...]] = ("client_id", "client_secret", "authorize_callback")
    callback_fields: ClassVar[tuple[str, ...]] = ("authorize_callback",)

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    # 授权回调地址，必须与 GitHub 应用设置中的一致
    authorize_callback: Optional[str] = None


class GitHubAuthorizationProperties(AuthorizationProperties):
    """GitHub 授权属性"""

    platform: ClassVar[str] = PLATFORM

    # 为空时 GitHub 沿用用户已授权过的范围
    scopes: Optional[list[GitHubScope]] = None
    # 是否允许未登录用户在授权流程中注册
    allow_signup: Optional[bool] = None

    def ensure_valid(self) -> None:
        if self.scopes is not None and len(set(self.scopes)) != len(self.scopes):
            self._fail(f"scopes 中存在重复项: {[scope.value for scope in self.scopes]}")

    def scope_text(self) -> Optional[str]:
        if self.scopes is None:
            return None
        return " ".join(scope.value for scope in self.scopes)


class GitHubToken(OAuth2Token):
    """GitHub 令牌"""

    __slots__ = ()

    platform: ClassVar[str] = PLATFORM

    # GitHub 未公开有效期，暂按一天处理
    ACCESS_TOKEN_VALIDITY: ClassVar[timedelta] = timedelta(days=1)

    @property
    def access_token_validity_duration(self) -> timedelta:
        return self.ACCESS_TOKEN_VALIDITY


class GitHubUser(OAuth2User, UsernameSupplier, NicknameSupplier, AvatarSupplier, EmailSupplier):
    """GitHub 用户"""

    __slots__ = ()

    platform: ClassVar[str] = PLATFORM

    @property
    def identifier(self) -> str:
        return self._required("id")


class GitHubAuthorizeURLInitializer(AuthorizeURLInitializer):
    """GitHub 授权地址初始化器"""

    def _build_template(self) -> URL:
        application: GitHubApplicationProperties = self.metadata.application
        authorization: GitHubAuthorizationProperties = self.metadata.authorization
        query = URLQuery()
        query.unique("client_id", application.client_id)
        query.unique("redirect_uri", application.authorize_callback)
        query.unique("scope", authorization.scope_text())
        if authorization.allow_signup is not None:
            query.unique("allow_signup", str(authorization.allow_signup).lower())
        return URL(AUTHORIZE_URL, query)


class GitHubExchanger(TokenAvailableOAuth2Exchanger[GitHubToken, GitHubUser]):
    """GitHub 交换器"""

    def __init__(self, metadata) -> None:
        super().__init__(metadata)
        application: GitHubApplicationProperties = metadata.application
        query = URLQuery()
        query.unique("client_id", application.client_id)
        query.unique("client_secret", application.client_secret)
        self._token_template = RequestTemplate(
            RequestMethod.POST, URL(ACCESS_TOKEN_URL, query), Headers().accept_json()
        )
        self._user_template = RequestTemplate(
            RequestMethod.GET, USER_URL, Headers().accept("application/vnd.github+json").user_agent()
        )

    def _exchange_for_token(self, query: CallbackQuery) -> GitHubToken:
        code = self._require_code(query)
        request = self._token_template.to_draft()
        request.url.query.unique("code", code)
        root = self._execute(request).read_json()
        if root.get("error") is not None:
            raise ProtocolError(f"换取令牌失败: {dict(root)}", payload=dict(root))
        return GitHubToken(root)

    def _exchange_token_for_user(self, token: GitHubToken) -> GitHubUser:
        request = self._user_template.to_draft()
        request.headers.authorization("token", token.access_token)
        response = self._execute(request)
        root = response.read_json()
        if response.status < 300:
            return GitHubUser(root)
        raise self._classify_user_error(root)

    @staticmethod
    def _classify_user_error(root: Mapping[str, Any]) -> Exception:
        if root.get("message") == "Bad credentials":
            return AccessTokenExpiredError(f"访问令牌已失效: {dict(root)}", payload=dict(root))
        return ProtocolError(f"获取用户失败: {dict(root)}", payload=dict(root))


class GitHubAssemblyFactory(PlatformAssemblyFactory):
    """GitHub 装配工厂"""

    platform = PLATFORM
    application_properties_type = GitHubApplicationProperties
    authorization_properties_type = GitHubAuthorizationProperties

    def default_authorization_properties(self) -> GitHubAuthorizationProperties:
        return GitHubAuthorizationProperties(scopes=[GitHubScope.READ_USER, GitHubScope.USER_EMAIL])

    def create_authorize_url_initializer(self, metadata) -> GitHubAuthorizeURLInitializer:
        return GitHubAuthorizeURLInitializer(metadata)

    def create_exchanger(self, metadata) -> GitHubExchanger:
        return GitHubExchanger(metadata)
