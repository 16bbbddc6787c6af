"""
OneOAuth - OAuth2 授权码交换引擎
"""

from .exceptions import (
    ErrorKind,
    OAuth2Error,
    TransportError,
    ProtocolError,
    AccessTokenExpiredError,
    RefreshTokenExpiredError,
    UserDeniedAuthorizationError,
    NotFoundError,
    PropertiesValidationError,
)

__version__ = "1.0.0"

__all__ = [
    "ErrorKind",
    "OAuth2Error",
    "TransportError",
    "ProtocolError",
    "AccessTokenExpiredError",
    "RefreshTokenExpiredError",
    "UserDeniedAuthorizationError",
    "NotFoundError",
    "PropertiesValidationError",
]
