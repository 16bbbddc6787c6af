import logging
from datetime import timedelta

import httpx
import pytest

from oneoauth.config import ExecutorProperties
from oneoauth.exceptions import ErrorKind, ProtocolError, TransportError
from oneoauth.request.models import URL, FormEntity, Headers, Request, RequestMethod, URLQuery

from conftest import make_executor


def _request(method: RequestMethod = RequestMethod.GET, entity=None) -> Request:
    return Request(method, URL("https://api.example.com/user", URLQuery().unique("a", "1")), Headers(), entity)


class TestResponse:
    def test_status_headers_and_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                201,
                headers=[("X-Trace", "first"), ("X-Trace", "last")],
                json={"id": 42},
            )

        with make_executor(handler) as executor:
            response = executor.execute(_request())

        assert response.status == 201
        assert response.headers("x-trace") == ["first", "last"]
        assert response.first_header("X-Trace") == "first"
        assert response.last_header("X-Trace") == "last"
        assert response.first_header("X-Missing") is None
        assert response.read_json() == {"id": 42}

    def test_empty_body(self) -> None:
        with make_executor(lambda request: httpx.Response(204)) as executor:
            response = executor.execute(_request())

        assert response.body() is None
        assert response.text() == ""
        assert dict(response.read_json()) == {}

    def test_invalid_json_raises_protocol_error(self) -> None:
        with make_executor(lambda request: httpx.Response(200, content=b"<html>")) as executor:
            response = executor.execute(_request())

        with pytest.raises(ProtocolError):
            response.read_json()

    def test_non_object_json_raises_protocol_error(self) -> None:
        with make_executor(lambda request: httpx.Response(200, json=[1, 2])) as executor:
            response = executor.execute(_request())

        with pytest.raises(ProtocolError):
            response.read_json()


class TestRequestEncoding:
    def test_url_headers_and_body(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={})

        request = _request(RequestMethod.POST, FormEntity().unique("code", "X"))
        request.headers.accept_json().repeatable("X-Multi", "1").repeatable("X-Multi", "2")

        with make_executor(handler) as executor:
            executor.execute(request)

        sent = captured[0]
        assert sent.method == "POST"
        assert str(sent.url) == "https://api.example.com/user?a=1"
        assert sent.headers["Accept"] == "application/json"
        assert sent.headers.get_list("X-Multi") == ["1", "2"]
        assert sent.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert sent.content == b"code=X"

    def test_redirects_are_not_followed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302, headers={"Location": "https://elsewhere.example.com"})

        with make_executor(handler) as executor:
            response = executor.execute(_request())

        assert response.status == 302
        assert response.first_header("Location") == "https://elsewhere.example.com"


class TestRetryPolicy:
    def _flaky(self, error: Exception, failures: int):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) <= failures:
                raise error
            return httpx.Response(200, json={"ok": True})

        return handler, calls

    def test_idempotent_read_error_is_retried(self) -> None:
        handler, calls = self._flaky(httpx.ReadError("reset"), failures=1)

        with make_executor(handler) as executor:
            response = executor.execute(_request(RequestMethod.GET))

        assert response.status == 200
        assert len(calls) == 2

    def test_retry_attempts_are_bounded(self) -> None:
        handler, calls = self._flaky(httpx.RemoteProtocolError("closed"), failures=10)
        properties = ExecutorProperties(retry_times=2)

        with make_executor(handler, properties) as executor:
            with pytest.raises(TransportError) as excinfo:
                executor.execute(_request())

        assert len(calls) == 3
        assert excinfo.value.kind is ErrorKind.TRANSPORT
        assert isinstance(excinfo.value.__cause__, httpx.RemoteProtocolError)

    def test_non_idempotent_read_error_is_not_retried(self) -> None:
        handler, calls = self._flaky(httpx.ReadError("reset"), failures=1)

        with make_executor(handler) as executor:
            with pytest.raises(TransportError):
                executor.execute(_request(RequestMethod.POST))

        assert len(calls) == 1

    def test_remote_protocol_error_is_retried_for_post(self) -> None:
        handler, calls = self._flaky(httpx.RemoteProtocolError("closed"), failures=1)

        with make_executor(handler) as executor:
            response = executor.execute(_request(RequestMethod.POST))

        assert response.status == 200
        assert len(calls) == 2

    @pytest.mark.parametrize(
        "error",
        [
            httpx.ConnectError("refused"),
            httpx.ConnectTimeout("timeout"),
            httpx.ReadTimeout("timeout"),
        ],
    )
    def test_connection_failures_are_not_retried(self, error: Exception) -> None:
        handler, calls = self._flaky(error, failures=1)

        with make_executor(handler) as executor:
            with pytest.raises(TransportError) as excinfo:
                executor.execute(_request())

        assert len(calls) == 1
        assert excinfo.value.__cause__ is error

    def test_os_error_is_mapped_to_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise OSError("network unreachable")

        with make_executor(handler) as executor:
            with pytest.raises(TransportError):
                executor.execute(_request())

    def test_failure_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        handler, _ = self._flaky(httpx.ConnectError("refused"), failures=1)

        with caplog.at_level(logging.DEBUG, logger="oneoauth.request"):
            with make_executor(handler) as executor:
                with pytest.raises(TransportError):
                    executor.execute(_request())

        assert any(record.levelno == logging.ERROR for record in caplog.records)

    def test_secrets_are_masked_in_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        request = Request(
            RequestMethod.POST,
            URL("https://github.com/login/oauth/access_token", URLQuery().unique("client_id", "C").unique("client_secret", "S3CRET")),
            Headers().authorization("token", "ACCESS-T"),
            FormEntity().unique("refresh_token", "REFRESH-T"),
        )

        with caplog.at_level(logging.DEBUG, logger="oneoauth.request"):
            with make_executor(lambda r: httpx.Response(200, json={})) as executor:
                executor.execute(request)

        assert "准备执行请求" in caplog.text
        assert "client_id=C" in caplog.text
        for secret in ("S3CRET", "ACCESS-T", "REFRESH-T"):
            assert secret not in caplog.text


class TestErrorMapping:
    def test_bad_content_encoding_is_protocol_error(self) -> None:
        # 声明 gzip 但响应体不是 gzip 数据
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip")

        with make_executor(handler) as executor:
            with pytest.raises(ProtocolError) as excinfo:
                executor.execute(_request())

        assert excinfo.value.kind is ErrorKind.PROTOCOL
        assert isinstance(excinfo.value.__cause__, httpx.DecodingError)

    def test_other_request_errors_are_transport_errors(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.TooManyRedirects("too many redirects", request=request)

        with make_executor(handler) as executor:
            with pytest.raises(TransportError) as excinfo:
                executor.execute(_request())

        assert isinstance(excinfo.value.__cause__, httpx.TooManyRedirects)


class TestProperties:
    def test_defaults(self) -> None:
        properties = ExecutorProperties()
        assert properties.connect_timeout == timedelta(seconds=2)
        assert properties.read_timeout == timedelta(seconds=5)
        assert properties.max_concurrent_requests == 64
        assert properties.max_idle_time == timedelta(minutes=5)
        assert properties.keep_alive_timeout == timedelta(minutes=3)
        assert properties.retry_times == 1
        assert properties.proxy is None

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ONEOAUTH_EXECUTOR_RETRY_TIMES", "3")
        monkeypatch.setenv("ONEOAUTH_EXECUTOR_READ_TIMEOUT", "PT10S")
        properties = ExecutorProperties()
        assert properties.retry_times == 3
        assert properties.read_timeout == timedelta(seconds=10)
