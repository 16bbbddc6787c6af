"""
元数据
把应用属性、授权属性、请求执行器和标识绑定在一起
"""

from dataclasses import dataclass
from typing import Optional

from ..exceptions import PropertiesValidationError
from ..request.executor import RequestExecutor
from ..request.factory import get_executor_factory_manager
from .properties import ApplicationProperties, AuthorizationProperties


def _check_same_platform(application: ApplicationProperties, authorization: AuthorizationProperties) -> None:
    if application.platform != authorization.platform:
        raise PropertiesValidationError(
            f"应用属性与授权属性的平台不一致: "
            f"application: {application.platform}, authorization: {authorization.platform}"
        )


def _default_executor() -> RequestExecutor:
    return get_executor_factory_manager().create_executor()


@dataclass(frozen=True, eq=False)
class AuthorizeURLInitializerMetadata:
    """授权地址初始化器元数据"""
    application: ApplicationProperties
    authorization: AuthorizationProperties
    identifier: Optional[str] = None

    def __post_init__(self) -> None:
        _check_same_platform(self.application, self.authorization)
        self.application.ensure_valid()
        self.authorization.ensure_valid()
        if self.identifier is None:
            object.__setattr__(self, "identifier", self.platform)

    @property
    def platform(self) -> str:
        return self.application.platform


@dataclass(frozen=True, eq=False)
class ExchangerMetadata:
    """交换器元数据，未指定执行器时使用默认工厂创建"""
    application: ApplicationProperties
    executor: Optional[RequestExecutor] = None
    identifier: Optional[str] = None

    def __post_init__(self) -> None:
        self.application.ensure_valid()
        if self.identifier is None:
            object.__setattr__(self, "identifier", self.platform)
        if self.executor is None:
            object.__setattr__(self, "executor", _default_executor())

    @property
    def platform(self) -> str:
        return self.application.platform


@dataclass(frozen=True, eq=False)
class ClientMetadata:
    """
    客户端元数据

    同时满足授权地址初始化器和交换器对元数据的要求，
    用同一份元数据构造两者时属性只校验一次。
    """
    application: ApplicationProperties
    authorization: AuthorizationProperties
    executor: Optional[RequestExecutor] = None
    identifier: Optional[str] = None

    def __post_init__(self) -> None:
        _check_same_platform(self.application, self.authorization)
        self.application.ensure_valid()
        self.authorization.ensure_valid()
        if self.identifier is None:
            object.__setattr__(self, "identifier", self.platform)
        if self.executor is None:
            object.__setattr__(self, "executor", _default_executor())

    @property
    def platform(self) -> str:
        return self.application.platform
