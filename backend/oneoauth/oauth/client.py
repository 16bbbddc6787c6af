"""
OAuth2 客户端
把授权地址初始化器和交换器组合为一个对象
"""

from typing import Optional

from .authorize import AuthorizeURLInitializer
from .exchanger import OAuth2Exchanger
from .models import CallbackQuery, OAuth2User


class OAuth2Client:
    """授权地址初始化器与交换器的组合，两者必须属于同一平台和标识"""

    def __init__(self, initializer: AuthorizeURLInitializer, exchanger: OAuth2Exchanger) -> None:
        if (initializer.platform, initializer.identifier) != (exchanger.platform, exchanger.identifier):
            raise ValueError(
                f"授权地址初始化器与交换器不匹配: "
                f"{initializer.platform}:{initializer.identifier} != {exchanger.platform}:{exchanger.identifier}"
            )
        self.initializer = initializer
        self.exchanger = exchanger

    @property
    def platform(self) -> str:
        return self.exchanger.platform

    @property
    def identifier(self) -> str:
        return self.exchanger.identifier

    def initialize_authorize_url(self, state: Optional[str] = None) -> str:
        return self.initializer.initialize_authorize_url(state)

    def exchange_for_user(self, query: CallbackQuery) -> OAuth2User:
        return self.exchanger.exchange_for_user(query)

    def exchange_for_user_identifier(self, query: CallbackQuery) -> str:
        return self.exchanger.exchange_for_user_identifier(query)

    def __repr__(self) -> str:
        return f"OAuth2Client(platform={self.platform!r}, identifier={self.identifier!r})"
