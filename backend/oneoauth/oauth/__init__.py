"""
OAuth2 模块
领域模型、交换器、授权地址初始化器以及注册表
"""

from .models import (
    CallbackQuery,
    OAuth2Token,
    RefreshableOAuth2Token,
    OAuth2User,
    UsernameSupplier,
    NicknameSupplier,
    AvatarSupplier,
    EmailSupplier,
    user_profile,
)
from .properties import ApplicationProperties, AuthorizationProperties
from .metadata import AuthorizeURLInitializerMetadata, ExchangerMetadata, ClientMetadata
from .exchanger import (
    OAuth2Exchanger,
    TokenAvailableOAuth2Exchanger,
    TokenRefreshableOAuth2Exchanger,
    refresh_on_access_token_expired,
)
from .authorize import AuthorizeURLInitializer
from .client import OAuth2Client
from .registry import OAuth2Registry
from .assembly import (
    PlatformAssemblyFactory,
    PlatformAssemblyFactoryManager,
    register_builtin_platforms,
    assemble_registry,
)

__all__ = [
    "CallbackQuery",
    "OAuth2Token",
    "RefreshableOAuth2Token",
    "OAuth2User",
    "UsernameSupplier",
    "NicknameSupplier",
    "AvatarSupplier",
    "EmailSupplier",
    "user_profile",
    "ApplicationProperties",
    "AuthorizationProperties",
    "AuthorizeURLInitializerMetadata",
    "ExchangerMetadata",
    "ClientMetadata",
    "OAuth2Exchanger",
    "TokenAvailableOAuth2Exchanger",
    "TokenRefreshableOAuth2Exchanger",
    "refresh_on_access_token_expired",
    "AuthorizeURLInitializer",
    "OAuth2Client",
    "OAuth2Registry",
    "PlatformAssemblyFactory",
    "PlatformAssemblyFactoryManager",
    "register_builtin_platforms",
    "assemble_registry",
]
