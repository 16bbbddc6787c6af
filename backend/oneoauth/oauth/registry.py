"""
注册表
按 (平台, 标识) 保存授权地址初始化器和交换器

注册表由调用方显式创建和关闭，不存在全局单例。
"""

import logging
import threading
from typing import Generic, Optional, TypeVar, Union

from ..exceptions import NotFoundError
from .authorize import AuthorizeURLInitializer
from .client import OAuth2Client
from .exchanger import OAuth2Exchanger

logger = logging.getLogger(__name__)

E = TypeVar("E", AuthorizeURLInitializer, OAuth2Exchanger)


class _PlatformTable(Generic[E]):
    """线程安全的 平台 -> 标识 -> 实例 二级表"""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._lock = threading.Lock()
        self._entries: dict[str, dict[str, E]] = {}

    def put(self, instance: E) -> Optional[E]:
        platform, identifier = instance.platform, instance.identifier
        with self._lock:
            previous = self._entries.setdefault(platform, {}).get(identifier)
            self._entries[platform][identifier] = instance
        if previous is None:
            logger.info(f"已注册{self.kind}: [{platform}:{identifier}] {instance!r}")
        else:
            logger.warning(
                f"{self.kind} [{platform}:{identifier}] 已存在，将被替换。"
                f"previous: {previous!r}@{id(previous)}, current: {instance!r}@{id(instance)}"
            )
        return previous

    def get(self, platform: str, identifier: Optional[str] = None) -> E:
        identifier = identifier or platform
        with self._lock:
            group = self._entries.get(platform)
            if group is None:
                raise NotFoundError(f"平台 {platform} 未注册{self.kind}")
            instance = group.get(identifier)
        if instance is None:
            raise NotFoundError(f"平台 {platform} 下标识 {identifier} 未注册{self.kind}")
        return instance

    def remove(self, platform: str, identifier: Optional[str] = None) -> Optional[E]:
        identifier = identifier or platform
        with self._lock:
            group = self._entries.get(platform)
            if group is None:
                return None
            instance = group.pop(identifier, None)
            if not group:
                del self._entries[platform]
        if instance is not None:
            logger.info(f"已注销{self.kind}: [{platform}:{identifier}]")
        return instance

    def platforms(self) -> set[str]:
        with self._lock:
            return set(self._entries)

    def drain(self) -> list[E]:
        with self._lock:
            instances = [instance for group in self._entries.values() for instance in group.values()]
            self._entries.clear()
        return instances


class OAuth2Registry:
    """授权地址初始化器和交换器的注册表"""

    def __init__(self) -> None:
        self._initializers: _PlatformTable[AuthorizeURLInitializer] = _PlatformTable("授权地址初始化器")
        self._exchangers: _PlatformTable[OAuth2Exchanger] = _PlatformTable("交换器")

    def register(self, instance: Union[AuthorizeURLInitializer, OAuth2Exchanger, OAuth2Client]):
        """按类型注册，返回被替换的实例"""
        if isinstance(instance, OAuth2Client):
            return self.register_client(instance)
        if isinstance(instance, AuthorizeURLInitializer):
            return self.register_authorize_url_initializer(instance)
        if isinstance(instance, OAuth2Exchanger):
            return self.register_exchanger(instance)
        raise TypeError(f"不支持注册的类型: {type(instance).__name__}")

    def register_authorize_url_initializer(self, initializer: AuthorizeURLInitializer) -> Optional[AuthorizeURLInitializer]:
        return self._initializers.put(initializer)

    def register_exchanger(self, exchanger: OAuth2Exchanger) -> Optional[OAuth2Exchanger]:
        return self._exchangers.put(exchanger)

    def register_client(self, client: OAuth2Client) -> tuple[Optional[AuthorizeURLInitializer], Optional[OAuth2Exchanger]]:
        return self._initializers.put(client.initializer), self._exchangers.put(client.exchanger)

    def authorize_url_initializer(self, platform: str, identifier: Optional[str] = None) -> AuthorizeURLInitializer:
        return self._initializers.get(platform, identifier)

    def exchanger(self, platform: str, identifier: Optional[str] = None) -> OAuth2Exchanger:
        return self._exchangers.get(platform, identifier)

    def authorize_url(self, platform: str, identifier: Optional[str] = None, state: Optional[str] = None) -> str:
        return self.authorize_url_initializer(platform, identifier).initialize_authorize_url(state)

    def unregister(self, platform: str, identifier: Optional[str] = None) -> None:
        self._initializers.remove(platform, identifier)
        self._exchangers.remove(platform, identifier)

    def platforms(self) -> set[str]:
        """已注册的平台"""
        return self._initializers.platforms() | self._exchangers.platforms()

    def close(self) -> None:
        """清空注册表并关闭交换器持有的执行器"""
        self._initializers.drain()
        closed = set()
        for exchanger in self._exchangers.drain():
            executor = exchanger.metadata.executor
            if id(executor) in closed:
                continue
            closed.add(id(executor))
            executor.close()
        logger.info(f"注册表已关闭，共关闭 {len(closed)} 个请求执行器")
