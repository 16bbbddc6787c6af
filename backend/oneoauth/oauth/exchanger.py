"""
交换器
用授权回调换取令牌和用户

三层能力逐层叠加:
    OAuth2Exchanger                  回调参数 -> 用户 / 用户标识
    TokenAvailableOAuth2Exchanger    回调参数 -> 令牌，令牌 -> 用户 / 用户标识
    TokenRefreshableOAuth2Exchanger  刷新令牌，访问令牌过期时自动刷新并重试一次

平台只需实现以下划线开头的钩子方法，公开方法的日志和组合逻辑都在这里实现一次。
"""

import logging
from abc import ABC, abstractmethod
from functools import wraps
from typing import Any, Callable, Generic, TypeVar, final

from ..exceptions import ErrorKind, OAuth2Error, ProtocolError, UserDeniedAuthorizationError
from ..request.executor import Response
from ..request.models import Request
from ..utils.security import mask_secrets
from .metadata import ExchangerMetadata
from .models import CallbackQuery, OAuth2Token, OAuth2User, RawPayload, RefreshableOAuth2Token

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=OAuth2Token)
R = TypeVar("R", bound=RefreshableOAuth2Token)
U = TypeVar("U", bound=OAuth2User)

BeforeRefreshCallback = Callable[[Any], None]
AfterRefreshCallback = Callable[[Any, Any], None]


def _describe(value: Any) -> Any:
    """日志中展示的内容，令牌和密钥已隐藏"""
    return mask_secrets(value.raw) if isinstance(value, RawPayload) else value


def logged(action: str):
    """
    记录调用前、调用后和失败日志的方法装饰器

    失败时原样抛出异常，日志不影响控制流。
    """
    def decorator(method):
        @wraps(method)
        def wrapper(self, argument):
            prefix = f"[{self.platform}:{self.identifier}]"
            logger.debug(f"{prefix} 准备{action}。input: {_describe(argument)}")
            try:
                result = method(self, argument)
            except Exception:
                logger.error(f"{prefix} {action}失败。input: {_describe(argument)}", exc_info=True)
                raise
            logger.debug(f"{prefix} {action}成功。input: {_describe(argument)}, output: {_describe(result)}")
            return result
        return wrapper
    return decorator


def refresh_on_access_token_expired(operation: Callable[[Any], Any], refresh: Callable[[Any], Any]) -> Callable[[Any], Any]:
    """
    访问令牌过期时刷新一次并重试

    1. 用原令牌调用 operation
    2. 若错误种类为 ACCESS_TOKEN_EXPIRED，调用 refresh 得到新令牌，再调用一次 operation
    3. 其它错误、刷新失败以及重试时再次过期都直接抛出
    """
    @wraps(operation)
    def wrapper(token):
        try:
            return operation(token)
        except OAuth2Error as e:
            if e.kind is not ErrorKind.ACCESS_TOKEN_EXPIRED:
                raise
            logger.warning(f"访问令牌已过期，尝试自动刷新令牌。token: {_describe(token)}, error: {e.message}")
        return operation(refresh(token))
    return wrapper


class OAuth2Exchanger(ABC, Generic[U]):
    """用户交换能力，所有平台都必须支持"""

    def __init__(self, metadata: ExchangerMetadata) -> None:
        self.metadata = metadata

    @property
    def platform(self) -> str:
        return self.metadata.platform

    @property
    def identifier(self) -> str:
        return self.metadata.identifier

    @final
    @logged("用回调参数换取用户标识")
    def exchange_for_user_identifier(self, query: CallbackQuery) -> str:
        return self._exchange_for_user_identifier(query)

    @final
    @logged("用回调参数换取用户")
    def exchange_for_user(self, query: CallbackQuery) -> U:
        return self._exchange_for_user(query)

    def _exchange_for_user_identifier(self, query: CallbackQuery) -> str:
        return self._exchange_for_user(query).identifier

    @abstractmethod
    def _exchange_for_user(self, query: CallbackQuery) -> U:
        ...

    def _execute(self, request: Request) -> Response:
        return self.metadata.executor.execute(request)

    @staticmethod
    def _require_code(query: CallbackQuery) -> str:
        """获取授权码，用户拒绝授权或缺少授权码时抛出异常"""
        code = query.code
        if code:
            return code
        if query.error == "access_denied":
            raise UserDeniedAuthorizationError(f"用户拒绝授权: {dict(query.raw)}", payload=dict(query.raw))
        raise ProtocolError(f"授权码不存在: {dict(query.raw)}", payload=dict(query.raw))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(platform={self.platform!r}, identifier={self.identifier!r})"


class TokenAvailableOAuth2Exchanger(OAuth2Exchanger[U], Generic[T, U]):
    """令牌交换能力"""

    def __init__(self, metadata: ExchangerMetadata) -> None:
        super().__init__(metadata)
        # 实际对外使用的令牌查询操作，可刷新的交换器会在此基础上包装
        self._token_for_user: Callable[[T], U] = self._exchange_token_for_user
        self._token_for_user_identifier: Callable[[T], str] = self._exchange_token_for_user_identifier

    @final
    @logged("用回调参数换取令牌")
    def exchange_for_token(self, query: CallbackQuery) -> T:
        return self._exchange_for_token(query)

    @final
    @logged("用令牌换取用户标识")
    def exchange_token_for_user_identifier(self, token: T) -> str:
        return self._token_for_user_identifier(token)

    @final
    @logged("用令牌换取用户")
    def exchange_token_for_user(self, token: T) -> U:
        return self._token_for_user(token)

    @final
    def _exchange_for_user(self, query: CallbackQuery) -> U:
        return self.exchange_token_for_user(self.exchange_for_token(query))

    def _exchange_token_for_user_identifier(self, token: T) -> str:
        return self._exchange_token_for_user(token).identifier

    @abstractmethod
    def _exchange_for_token(self, query: CallbackQuery) -> T:
        ...

    @abstractmethod
    def _exchange_token_for_user(self, token: T) -> U:
        ...


class TokenRefreshableOAuth2Exchanger(TokenAvailableOAuth2Exchanger[R, U]):
    """令牌刷新能力"""

    def __init__(self, metadata: ExchangerMetadata) -> None:
        super().__init__(metadata)
        self._before_refresh_callbacks: list[BeforeRefreshCallback] = []
        self._after_refresh_callbacks: list[AfterRefreshCallback] = []
        self._token_for_user = refresh_on_access_token_expired(self._token_for_user, self.refresh_token)
        self._token_for_user_identifier = refresh_on_access_token_expired(
            self._token_for_user_identifier, self.refresh_token
        )

    @property
    def before_refresh_callbacks(self) -> list[BeforeRefreshCallback]:
        """刷新前回调，按注册顺序执行，任一回调抛出异常则放弃刷新"""
        return self._before_refresh_callbacks

    @property
    def after_refresh_callbacks(self) -> list[AfterRefreshCallback]:
        """刷新后回调，参数为 (旧令牌, 新令牌)"""
        return self._after_refresh_callbacks

    def add_before_refresh_callback(self, callback: BeforeRefreshCallback) -> None:
        self._before_refresh_callbacks.append(callback)

    def add_after_refresh_callback(self, callback: AfterRefreshCallback) -> None:
        self._after_refresh_callbacks.append(callback)

    @final
    @logged("刷新令牌")
    def refresh_token(self, token: R) -> R:
        for callback in tuple(self._before_refresh_callbacks):
            callback(token)
        refreshed = self._refresh_token(token)
        logger.debug(f"[{self.platform}:{self.identifier}] 令牌已刷新。old: {_describe(token)}, new: {_describe(refreshed)}")
        # 刷新已完成，回调失败不会撤销刷新
        for callback in tuple(self._after_refresh_callbacks):
            callback(token, refreshed)
        return refreshed

    @abstractmethod
    def _refresh_token(self, token: R) -> R:
        ...
