"""
授权地址初始化器
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..request.models import URL, URLTemplate
from .metadata import AuthorizeURLInitializerMetadata

logger = logging.getLogger(__name__)


class AuthorizeURLInitializer(ABC):
    """
    根据应用属性和授权属性生成授权地址

    授权地址模板在构造时生成一次，之后每次调用只在副本上追加 state。
    """

    def __init__(self, metadata: AuthorizeURLInitializerMetadata) -> None:
        self.metadata = metadata
        self._template = URLTemplate(self._build_template())

    @property
    def platform(self) -> str:
        return self.metadata.platform

    @property
    def identifier(self) -> str:
        return self.metadata.identifier

    @property
    def template(self) -> URLTemplate:
        return self._template

    def initialize_authorize_url(self, state: Optional[str] = None) -> str:
        """生成带 state 的授权地址，state 为 None 时不附带"""
        logger.debug(f"[{self.platform}:{self.identifier}] 准备生成授权地址。state: {state}")
        url = self._template.to_draft()
        url.query.unique("state", state)
        text = url.as_text()
        logger.debug(f"[{self.platform}:{self.identifier}] 授权地址已生成: {text}")
        return text

    @abstractmethod
    def _build_template(self) -> URL:
        """构造不含 state 的授权地址"""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._template.as_text()!r})"
