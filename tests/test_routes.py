from unittest.mock import Mock
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from fastapi.testclient import TestClient

from oneoauth.config import Config, PlatformConfig
from oneoauth.oauth.assembly import assemble_registry
from oneoauth.oauth.registry import OAuth2Registry
from oneoauth.request.factory import RequestExecutorFactoryManager
from oneoauth import main

from conftest import StubServer, make_executor

CONFIG = Config(
    platforms=[
        PlatformConfig(
            platform="github",
            application={
                "client_id": "C",
                "client_secret": "S",
                "authorize_callback": "http://testserver/oauth2/github/callback",
            },
        )
    ]
)


@pytest.fixture
def client(stub_server: StubServer):
    executor = make_executor(stub_server)
    executor_factories = Mock(spec=RequestExecutorFactoryManager)
    executor_factories.create_executor.return_value = executor
    app = main.create_app(CONFIG)
    # 不进入 lifespan，直接注入使用桩服务器的注册表
    app.state.registry = assemble_registry(CONFIG, executor_factories=executor_factories)
    yield TestClient(app)
    app.state.registry.close()


def authorize(client: TestClient) -> str:
    response = client.get("/oauth2/github/authorize", follow_redirects=False)
    assert response.status_code == 307
    return parse_qs(urlsplit(response.headers["location"]).query)["state"][0]


class TestAuthorize:
    def test_redirects_to_platform(self, client: TestClient) -> None:
        response = client.get("/oauth2/github/authorize", follow_redirects=False)

        assert response.status_code == 307
        location = urlsplit(response.headers["location"])
        assert location.netloc == "github.com"
        params = parse_qs(location.query)
        assert params["client_id"] == ["C"]
        assert params["state"][0]
        assert "oneoauth_state_github_github" in response.cookies

    def test_unknown_platform(self, client: TestClient) -> None:
        response = client.get("/oauth2/weibo/authorize", follow_redirects=False)
        assert response.status_code == 404
        assert response.json()["detail"]["kind"] == "not_found"

    def test_unknown_identifier(self, client: TestClient) -> None:
        response = client.get("/oauth2/github/authorize", params={"identifier": "staging"}, follow_redirects=False)
        assert response.status_code == 404


class TestCallback:
    def test_returns_user_profile(self, client: TestClient, stub_server: StubServer) -> None:
        stub_server.on("POST", "/login/oauth/access_token", (200, {"access_token": "T"}))
        stub_server.on("GET", "/user", (200, {"id": 42, "login": "octocat", "name": "Mona"}))
        state = authorize(client)

        response = client.get("/oauth2/github/callback", params={"code": "abc", "state": state})

        assert response.status_code == 200
        body = response.json()
        assert body["platform"] == "github"
        assert body["identifier"] == "github"
        assert body["user"]["identifier"] == "42"
        assert body["user"]["username"] == "octocat"
        assert body["raw"]["login"] == "octocat"

    def test_state_cannot_be_reused(self, client: TestClient, stub_server: StubServer) -> None:
        stub_server.on("POST", "/login/oauth/access_token", (200, {"access_token": "T"}))
        stub_server.on("GET", "/user", (200, {"id": 42, "login": "octocat"}))
        state = authorize(client)

        first = client.get("/oauth2/github/callback", params={"code": "abc", "state": state})
        assert first.status_code == 200
        assert "oneoauth_state_github_github" not in client.cookies

        second = client.get("/oauth2/github/callback", params={"code": "abc", "state": state})
        assert second.status_code == 400
        assert second.json()["detail"]["kind"] == "state_mismatch"
        assert len(stub_server.hits("POST", "/login/oauth/access_token")) == 1

    def test_state_mismatch(self, client: TestClient, stub_server: StubServer) -> None:
        authorize(client)
        response = client.get("/oauth2/github/callback", params={"code": "abc", "state": "forged"})
        assert response.status_code == 400
        assert stub_server.requests == []

    def test_user_denied(self, client: TestClient) -> None:
        response = client.get("/oauth2/github/callback", params={"error": "access_denied"})
        assert response.status_code == 403
        assert response.json()["detail"]["kind"] == "user_denied_authorization"

    def test_protocol_error(self, client: TestClient, stub_server: StubServer) -> None:
        stub_server.on("POST", "/login/oauth/access_token", (200, {"error": "bad_verification_code"}))
        state = authorize(client)
        response = client.get("/oauth2/github/callback", params={"code": "abc", "state": state})
        assert response.status_code == 400
        assert response.json()["detail"]["kind"] == "protocol"

    def test_transport_error(self, client: TestClient, stub_server: StubServer) -> None:
        stub_server.on("POST", "/login/oauth/access_token", (0, httpx.ConnectError("refused")))
        state = authorize(client)

        response = client.get("/oauth2/github/callback", params={"code": "abc", "state": state})
        assert response.status_code == 502


class TestLifespan:
    def test_registry_is_built_and_closed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        registry = Mock(spec=OAuth2Registry)
        registry.platforms.return_value = {"github"}
        monkeypatch.setattr(main, "assemble_registry", Mock(return_value=registry))

        app = main.create_app(CONFIG)
        with TestClient(app) as client:
            assert client.app.state.registry is registry
            assert client.get("/health").json()["status"] == "ok"

        registry.close.assert_called_once_with()
        main.assemble_registry.assert_called_once_with(CONFIG)

    def test_registry_missing(self) -> None:
        app = main.create_app(CONFIG)
        response = TestClient(app).get("/oauth2/github/authorize", follow_redirects=False)
        assert response.status_code == 503
