"""
基于 httpx 的请求执行器
"""

import logging
from typing import Optional

import httpx

from ..config import ExecutorProperties
from ..exceptions import ProtocolError, TransportError
from ..utils.security import mask_url
from .executor import RequestExecutor, Response
from .models import RequestMethod

logger = logging.getLogger(__name__)


# 连接拒绝、DNS 解析失败、TLS 握手失败、代理错误和超时都不重试
NON_RETRYABLE_ERRORS = (
    httpx.ConnectError,
    httpx.TimeoutException,
    httpx.ProxyError,
    httpx.UnsupportedProtocol,
)


class HttpxResponse(Response):
    """httpx 响应"""

    def __init__(self, raw: httpx.Response) -> None:
        self.raw = raw

    @property
    def status(self) -> int:
        return self.raw.status_code

    def headers(self, name: str) -> list[str]:
        return self.raw.headers.get_list(name)

    def body(self) -> Optional[bytes]:
        return self.raw.content or None


class HttpxRequestExecutor(RequestExecutor):
    """基于 httpx.Client 的执行器，httpx.Client 本身是线程安全的"""

    def __init__(
        self,
        properties: Optional[ExecutorProperties] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.properties = properties if properties is not None else ExecutorProperties()
        props = self.properties
        self._retry_times = props.retry_times

        # httpx 只在连接过期后回收空闲连接，取两者中较短的一个
        keepalive_expiry = min(props.keep_alive_timeout, props.max_idle_time).total_seconds()

        self._client = httpx.Client(
            timeout=httpx.Timeout(
                props.read_timeout.total_seconds(),
                connect=props.connect_timeout.total_seconds(),
            ),
            limits=httpx.Limits(
                max_connections=props.max_concurrent_requests,
                max_keepalive_connections=props.max_concurrent_requests,
                keepalive_expiry=keepalive_expiry,
            ),
            proxy=props.proxy,
            transport=transport,
            follow_redirects=False,
        )
        logger.info(f"请求执行器已初始化: {props.model_dump_json()}")

    def _send(
        self,
        method: RequestMethod,
        url: str,
        headers: list[tuple[str, str]],
        body: Optional[bytes],
        content_type: Optional[str],
    ) -> Response:
        if content_type is not None and not any(name.lower() == "content-type" for name, _ in headers):
            headers = headers + [("Content-Type", content_type)]

        attempt = 0
        while True:
            attempt += 1
            try:
                raw = self._client.request(method.value, url, headers=headers, content=body)
                return HttpxResponse(raw)
            except NON_RETRYABLE_ERRORS as e:
                raise TransportError(f"{type(e).__name__}: {e}") from e
            except httpx.TransportError as e:
                if attempt > self._retry_times or not self._retryable(method, e):
                    raise TransportError(f"{type(e).__name__}: {e}") from e
                logger.warning(f"请求传输失败，准备第 {attempt} 次重试: {method.value} {mask_url(url)}, error: {e!r}")
            except httpx.DecodingError as e:
                raise ProtocolError(f"响应解码失败: {e}") from e
            except (httpx.RequestError, httpx.InvalidURL) as e:
                raise TransportError(f"{type(e).__name__}: {e}") from e

    @staticmethod
    def _retryable(method: RequestMethod, error: httpx.TransportError) -> bool:
        """服务端未响应就断开连接时总是可以重试，读写错误只对幂等请求重试"""
        if isinstance(error, httpx.RemoteProtocolError):
            return True
        if isinstance(error, (httpx.ReadError, httpx.WriteError)):
            return method.idempotent
        return False

    def close(self) -> None:
        self._client.close()
