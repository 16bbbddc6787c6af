"""
请求执行器工厂
"""

import importlib.util
import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

from ..config import ExecutorProperties
from ..exceptions import NotFoundError
from .executor import RequestExecutor

logger = logging.getLogger(__name__)


class RequestExecutorFactory(ABC):
    """请求执行器工厂"""

    def enabled(self) -> bool:
        """当前运行环境是否可以使用该工厂"""
        return True

    @property
    def identifier(self) -> str:
        return f"{type(self).__module__}.{type(self).__qualname__}"

    @abstractmethod
    def create(self, properties: Optional[ExecutorProperties] = None) -> RequestExecutor:
        ...


class HttpxRequestExecutorFactory(RequestExecutorFactory):
    """httpx 执行器工厂"""

    def enabled(self) -> bool:
        return importlib.util.find_spec("httpx") is not None

    def create(self, properties: Optional[ExecutorProperties] = None) -> RequestExecutor:
        from .httpx_executor import HttpxRequestExecutor
        return HttpxRequestExecutor(properties)


class RequestExecutorFactoryManager:
    """按类型管理执行器工厂"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._factories: dict[type, RequestExecutorFactory] = {}

    def register(self, factory: RequestExecutorFactory) -> Optional[RequestExecutorFactory]:
        """注册工厂，返回被替换的旧工厂"""
        factory_type = type(factory)
        with self._lock:
            previous = self._factories.get(factory_type)
            self._factories[factory_type] = factory
        if previous is None:
            logger.info(f"执行器工厂已注册: {factory.identifier}")
        else:
            logger.warning(
                f"执行器工厂已被替换: {factory.identifier}, "
                f"current: {id(factory)}, previous: {id(previous)}"
            )
        return previous

    def factory(self, factory_type: Optional[type] = None) -> RequestExecutorFactory:
        """获取指定类型的工厂，未指定类型时返回任意一个可用的工厂"""
        with self._lock:
            factories = dict(self._factories)

        if factory_type is None or factory_type is RequestExecutorFactory:
            for candidate in factories.values():
                if candidate.enabled():
                    return candidate
            raise NotFoundError("没有可用的执行器工厂")

        factory = factories.get(factory_type)
        if factory is None:
            raise NotFoundError(f"没有该类型的执行器工厂: {factory_type.__qualname__}")
        if not factory.enabled():
            raise NotFoundError(f"该类型的执行器工厂不可用: {factory_type.__qualname__}")
        return factory

    def create_executor(self, properties: Optional[ExecutorProperties] = None) -> RequestExecutor:
        return self.factory().create(properties)


# 全局实例
_executor_factory_manager: Optional[RequestExecutorFactoryManager] = None
_executor_factory_manager_lock = threading.Lock()


def get_executor_factory_manager() -> RequestExecutorFactoryManager:
    """获取默认的执行器工厂管理器（已注册内置的 httpx 工厂）"""
    global _executor_factory_manager
    with _executor_factory_manager_lock:
        if _executor_factory_manager is None:
            manager = RequestExecutorFactoryManager()
            manager.register(HttpxRequestExecutorFactory())
            _executor_factory_manager = manager
        return _executor_factory_manager
