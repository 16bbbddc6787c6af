from typing import Any, Iterator, Optional

import httpx
import pytest

from oneoauth.config import ExecutorProperties
from oneoauth.request.httpx_executor import HttpxRequestExecutor


class StubServer:
    """按 (方法, 路径) 返回预设响应，并记录收到的请求"""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[tuple[int, Any]]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, *responses: tuple[int, Any]) -> None:
        """依次返回 responses，最后一个响应会一直重复，响应体为异常时直接抛出"""
        self.routes[(method, path)] = list(responses)

    def hits(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": "Not Found"})
        status, payload = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(payload, Exception):
            raise payload
        return httpx.Response(status, json=payload)


@pytest.fixture
def stub_server() -> StubServer:
    return StubServer()


def make_executor(handler, properties: Optional[ExecutorProperties] = None) -> HttpxRequestExecutor:
    return HttpxRequestExecutor(properties or ExecutorProperties(), transport=httpx.MockTransport(handler))


@pytest.fixture
def executor(stub_server: StubServer) -> Iterator[HttpxRequestExecutor]:
    with make_executor(stub_server) as instance:
        yield instance
