"""
异常定义
所有异常都携带 ErrorKind，调用方按种类分派而不是按异常类型判断
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """错误种类"""
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    ACCESS_TOKEN_EXPIRED = "access_token_expired"
    REFRESH_TOKEN_EXPIRED = "refresh_token_expired"
    USER_DENIED_AUTHORIZATION = "user_denied_authorization"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"


class OAuth2Error(Exception):
    """OAuth2 相关错误的基类"""

    kind: ErrorKind = ErrorKind.PROTOCOL
    default_message: str = "OAuth2 请求失败"

    def __init__(self, message: Optional[str] = None, payload: Any = None) -> None:
        self.message = message if message is not None else self.default_message
        # 远端返回的原始数据（如果有）
        self.payload = payload
        super().__init__(self.message)


class TransportError(OAuth2Error):
    """网络、DNS、TLS 或超时等传输层错误"""
    kind = ErrorKind.TRANSPORT
    default_message = "请求传输失败"


class ProtocolError(OAuth2Error):
    """未被归类的 OAuth2 协议错误"""
    kind = ErrorKind.PROTOCOL


class AccessTokenExpiredError(OAuth2Error):
    """访问令牌已过期，可通过刷新令牌恢复"""
    kind = ErrorKind.ACCESS_TOKEN_EXPIRED
    default_message = "访问令牌已过期"


class RefreshTokenExpiredError(OAuth2Error):
    """刷新令牌已过期，必须重新走授权流程"""
    kind = ErrorKind.REFRESH_TOKEN_EXPIRED
    default_message = "刷新令牌已过期"


class UserDeniedAuthorizationError(OAuth2Error):
    """用户拒绝了授权"""
    kind = ErrorKind.USER_DENIED_AUTHORIZATION
    default_message = "用户拒绝授权"


class NotFoundError(OAuth2Error, LookupError):
    """注册表中没有对应的实例"""
    kind = ErrorKind.NOT_FOUND
    default_message = "未找到对应的实例"


class PropertiesValidationError(OAuth2Error, ValueError):
    """配置属性校验失败"""
    kind = ErrorKind.VALIDATION
    default_message = "配置属性校验失败"
