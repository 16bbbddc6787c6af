"""
请求执行器
只负责传输，不理解 OAuth2 语义
"""

import json
import logging
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Any, Mapping, Optional

from ..exceptions import ProtocolError, TransportError
from .models import Request, RequestMethod

logger = logging.getLogger(__name__)


class Response(ABC):
    """响应"""

    @property
    @abstractmethod
    def status(self) -> int:
        ...

    @abstractmethod
    def headers(self, name: str) -> list[str]:
        """获取某个响应头的所有值"""

    def first_header(self, name: str) -> Optional[str]:
        values = self.headers(name)
        return values[0] if values else None

    def last_header(self, name: str) -> Optional[str]:
        values = self.headers(name)
        return values[-1] if values else None

    @abstractmethod
    def body(self) -> Optional[bytes]:
        """响应体，没有响应体时返回 None"""

    def text(self) -> str:
        body = self.body()
        return body.decode("utf-8", errors="replace") if body else ""

    def read_json(self) -> Mapping[str, Any]:
        """把响应体解析为 JSON 对象，空响应体返回空映射"""
        body = self.body()
        if not body:
            return MappingProxyType({})
        try:
            root = json.loads(body)
        except ValueError as e:
            raise ProtocolError(f"响应体不是合法的 JSON: {self.text()}", payload=self.text()) from e
        if not isinstance(root, dict):
            raise ProtocolError(f"响应体不是 JSON 对象: {self.text()}", payload=root)
        return root


class RequestExecutor(ABC):
    """
    请求执行器基类

    实现类必须支持并发调用 execute。
    """

    def execute(self, request: Request) -> Response:
        """执行请求"""
        url = request.url.as_text()
        headers = list(request.headers.items())
        body: Optional[bytes] = None
        content_type: Optional[str] = None
        if request.entity is not None:
            body = request.entity.to_bytes()
            content_type = request.entity.content_type

        logger.debug(f"准备执行请求: {request!r}")
        try:
            response = self._send(request.method, url, headers, body, content_type)
        except TransportError:
            logger.error(f"请求执行失败（传输错误）: {request!r}", exc_info=True)
            raise
        except OSError as e:
            logger.error(f"请求执行失败（IO 错误）: {request!r}", exc_info=True)
            raise TransportError(str(e)) from e
        logger.debug(f"请求已执行: {request!r}, status: {response.status}")
        return response

    @abstractmethod
    def _send(
        self,
        method: RequestMethod,
        url: str,
        headers: list[tuple[str, str]],
        body: Optional[bytes],
        content_type: Optional[str],
    ) -> Response:
        """发送请求，传输错误需转换为 TransportError"""

    def close(self) -> None:
        """释放连接池等资源"""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
