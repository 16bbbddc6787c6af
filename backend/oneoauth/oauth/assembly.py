"""
平台装配工厂
根据配置为各平台创建授权地址初始化器、交换器和客户端
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Union

from ..config import Config, PlatformConfig
from ..exceptions import NotFoundError, PropertiesValidationError
from ..request.executor import RequestExecutor
from ..request.factory import RequestExecutorFactoryManager, get_executor_factory_manager
from .authorize import AuthorizeURLInitializer
from .client import OAuth2Client
from .exchanger import OAuth2Exchanger
from .metadata import AuthorizeURLInitializerMetadata, ClientMetadata, ExchangerMetadata
from .properties import ApplicationProperties, AuthorizationProperties
from .registry import OAuth2Registry

logger = logging.getLogger(__name__)


class PlatformAssemblyFactory(ABC):
    """单个平台的装配工厂"""

    platform: str
    application_properties_type: type[ApplicationProperties]
    authorization_properties_type: type[AuthorizationProperties]

    def default_authorization_properties(self) -> AuthorizationProperties:
        """未配置授权属性时使用的默认值"""
        return self.authorization_properties_type()

    def application_properties(self, data: Mapping[str, Any]) -> ApplicationProperties:
        return self._parse(self.application_properties_type, data)

    def authorization_properties(self, data: Optional[Mapping[str, Any]]) -> AuthorizationProperties:
        if data is None:
            return self.default_authorization_properties()
        return self._parse(self.authorization_properties_type, data)

    @abstractmethod
    def create_authorize_url_initializer(self, metadata: Union[AuthorizeURLInitializerMetadata, ClientMetadata]) -> AuthorizeURLInitializer:
        ...

    @abstractmethod
    def create_exchanger(self, metadata: Union[ExchangerMetadata, ClientMetadata]) -> OAuth2Exchanger:
        ...

    def create_client(self, metadata: ClientMetadata) -> OAuth2Client:
        """用同一份元数据创建初始化器和交换器，属性不会被重复校验"""
        return OAuth2Client(self.create_authorize_url_initializer(metadata), self.create_exchanger(metadata))

    def _parse(self, model: type, data: Mapping[str, Any]):
        try:
            return model.model_validate(dict(data))
        except ValueError as e:
            raise PropertiesValidationError(f"[{self.platform}] 属性格式错误: {e}") from e

    def __repr__(self) -> str:
        return f"{type(self).__name__}(platform={self.platform!r})"


class PlatformAssemblyFactoryManager:
    """按平台管理装配工厂，由调用方显式创建"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._factories: dict[str, PlatformAssemblyFactory] = {}

    def register(self, factory: PlatformAssemblyFactory) -> Optional[PlatformAssemblyFactory]:
        with self._lock:
            previous = self._factories.get(factory.platform)
            self._factories[factory.platform] = factory
        if previous is None:
            logger.info(f"平台装配工厂已注册: {factory.platform}")
        else:
            logger.warning(
                f"平台装配工厂已被替换: {factory.platform}, "
                f"current: {id(factory)}, previous: {id(previous)}"
            )
        return previous

    def factory(self, platform: str) -> PlatformAssemblyFactory:
        with self._lock:
            factory = self._factories.get(platform)
        if factory is None:
            raise NotFoundError(f"平台 {platform} 没有装配工厂")
        return factory

    def platforms(self) -> set[str]:
        with self._lock:
            return set(self._factories)


def register_builtin_platforms(manager: PlatformAssemblyFactoryManager) -> PlatformAssemblyFactoryManager:
    """注册内置平台"""
    from ..platforms import BUILTIN_FACTORIES

    for factory_type in BUILTIN_FACTORIES:
        manager.register(factory_type())
    return manager


def assemble_registry(
    config: Config,
    factories: Optional[PlatformAssemblyFactoryManager] = None,
    executor_factories: Optional[RequestExecutorFactoryManager] = None,
) -> OAuth2Registry:
    """
    根据配置创建注册表

    所有平台共用一个请求执行器，注册表关闭时一并关闭。
    """
    if factories is None:
        factories = register_builtin_platforms(PlatformAssemblyFactoryManager())
    if executor_factories is None:
        executor_factories = get_executor_factory_manager()

    registry = OAuth2Registry()
    if not config.platforms:
        logger.warning("配置中没有任何平台")
        return registry

    executor: RequestExecutor = executor_factories.create_executor(config.executor)
    try:
        for entry in config.platforms:
            registry.register_client(_assemble_client(entry, factories, executor))
    except Exception:
        registry.close()
        executor.close()
        raise
    return registry


def _assemble_client(
    entry: PlatformConfig,
    factories: PlatformAssemblyFactoryManager,
    executor: RequestExecutor,
) -> OAuth2Client:
    factory = factories.factory(entry.platform)
    metadata = ClientMetadata(
        application=factory.application_properties(entry.application),
        authorization=factory.authorization_properties(entry.authorization),
        executor=executor,
        identifier=entry.identifier,
    )
    return factory.create_client(metadata)
