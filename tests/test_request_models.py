import json
from concurrent.futures import ThreadPoolExecutor

import pytest

from oneoauth.request.models import (
    DEFAULT_USER_AGENT,
    URL,
    FormEntity,
    Headers,
    JSONEntity,
    Request,
    RequestMethod,
    RequestTemplate,
    URLQuery,
    URLTemplate,
)
from oneoauth.utils.security import mask_secrets, mask_url


class TestURLQuery:
    def test_unique_replaces_previous_value(self) -> None:
        query = URLQuery().unique("a", "1").unique("a", "2")
        assert query.as_text() == "?a=2"

    def test_unique_none_removes_parameter(self) -> None:
        query = URLQuery().unique("a", "1").unique("b", "2").unique("a", None)
        assert query.as_text() == "?b=2"
        assert "a" not in query

    def test_repeatable_appends_values(self) -> None:
        query = URLQuery().repeatable("a", "1").repeatable("a", "2")
        assert query.as_text() == "?a=1&a=2"
        assert query.get_all("a") == ["1", "2"]
        assert query.get("a") == "1"

    def test_repeatable_none_is_ignored(self) -> None:
        query = URLQuery().repeatable("a", None)
        assert len(query) == 0

    def test_repeatable_all(self) -> None:
        query = URLQuery().repeatable_all("redirect_uri", ["https://a.example", "https://b.example"])
        assert query.get_all("redirect_uri") == ["https://a.example", "https://b.example"]

    def test_empty_query_serializes_to_empty_string(self) -> None:
        assert URLQuery().as_text() == ""
        assert str(URLQuery()) == ""

    def test_values_are_percent_encoded(self) -> None:
        query = URLQuery().unique("scope", "read:user user:email").unique("q", "a&b=c")
        assert query.as_text() == "?scope=read%3Auser+user%3Aemail&q=a%26b%3Dc"

    def test_insertion_order_is_kept(self) -> None:
        query = URLQuery().unique("b", 1).unique("a", 2).repeatable("c", 3)
        assert [name for name, _ in query.items()] == ["b", "a", "c"]

    def test_copy_is_independent(self) -> None:
        query = URLQuery().repeatable("a", "1")
        duplicate = query.copy()
        duplicate.repeatable("a", "2").unique("b", "3")
        assert query.as_text() == "?a=1"
        assert isinstance(duplicate, URLQuery)


class TestHeaders:
    def test_helpers(self) -> None:
        headers = Headers().accept_json().authorization("token", "T").content_type("text/plain").user_agent()
        assert headers.get("Accept") == "application/json"
        assert headers.get("Authorization") == "token T"
        assert headers.get("Content-Type") == "text/plain"
        assert headers.get("User-Agent") == DEFAULT_USER_AGENT

    def test_authorization_none_is_skipped(self) -> None:
        assert "Authorization" not in Headers().authorization("Bearer", None)

    def test_names_are_case_insensitive(self) -> None:
        headers = Headers().accept_json().unique("accept", "text/plain")

        assert list(headers.items()) == [("Accept", "text/plain")]
        assert headers.get("ACCEPT") == "text/plain"
        assert "accept" in headers

        headers.repeatable("x-trace", "1").repeatable("X-Trace", "2")
        assert headers.get_all("X-TRACE") == ["1", "2"]

        headers.unique("ACCEPT", None)
        assert "Accept" not in headers

    def test_query_names_stay_case_sensitive(self) -> None:
        query = URLQuery().unique("Code", "1").unique("code", "2")
        assert list(query.items()) == [("Code", "1"), ("code", "2")]


class TestMasking:
    def test_request_repr_hides_secrets(self) -> None:
        request = Request(
            RequestMethod.POST,
            URL("https://gitee.com/oauth/token", URLQuery().unique("grant_type", "refresh_token").unique("refresh_token", "R")),
            Headers().authorization("Bearer", "A"),
            JSONEntity({"client_secret": "S", "client_id": "C"}),
        )

        text = repr(request)

        assert "grant_type=refresh_token" in text
        assert "'client_id': 'C'" in text
        assert "refresh_token=******" in text
        assert "Bearer A" not in text
        assert "'S'" not in text
        # 原请求不受影响
        assert request.url.query.get("refresh_token") == "R"
        assert request.headers.get("Authorization") == "Bearer A"

    def test_mask_url(self) -> None:
        assert mask_url("https://a/b?client_id=C&client_secret=S#x") == "https://a/b?client_id=C&client_secret=******#x"
        assert mask_url("https://a/b") == "https://a/b"

    def test_mask_secrets(self) -> None:
        assert mask_secrets({"access_token": "T", "Refresh_Token": "R", "scope": "user"}) == {
            "access_token": "******",
            "Refresh_Token": "******",
            "scope": "user",
        }


class TestEntities:
    def test_form_entity(self) -> None:
        entity = FormEntity().unique("grant_type", "authorization_code").unique("code", "a b")
        assert entity.content_type == "application/x-www-form-urlencoded"
        assert entity.to_bytes() == b"grant_type=authorization_code&code=a+b"

    def test_json_entity_copy_is_deep(self) -> None:
        entity = JSONEntity({"nested": {"a": 1}})
        duplicate = entity.copy()
        duplicate.data["nested"]["a"] = 2
        assert json.loads(entity.to_bytes()) == {"nested": {"a": 1}}
        assert entity.content_type == "application/json"


class TestURL:
    def test_anchor_is_quoted(self) -> None:
        url = URL("https://example.com/path", URLQuery().unique("a", "1"), anchor="x y")
        assert url.as_text() == "https://example.com/path?a=1#x%20y"

    def test_empty_base_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            URL("")


class TestTemplates:
    def test_url_template_is_immutable(self) -> None:
        template = URLTemplate(URL("https://example.com", URLQuery().unique("a", "1")))
        with pytest.raises(AttributeError):
            template._url = URL("https://evil.example")

    def test_url_template_draft_does_not_touch_template(self) -> None:
        template = URLTemplate(URL("https://example.com", URLQuery().unique("a", "1")))
        draft = template.to_draft()
        draft.query.unique("state", "S")
        assert draft.as_text() == "https://example.com?a=1&state=S"
        assert template.as_text() == "https://example.com?a=1"

    def test_template_copies_source_containers(self) -> None:
        query = URLQuery().unique("client_id", "C")
        headers = Headers().accept_json()
        template = RequestTemplate(RequestMethod.POST, URL("https://example.com/token", query), headers)
        # 构造后修改原容器不影响模板
        query.unique("client_id", "X")
        headers.unique("Accept", "text/html")
        draft = template.to_draft()
        assert draft.url.query.get("client_id") == "C"
        assert draft.headers.get("Accept") == "application/json"

    def test_request_template_draft_mutation_is_isolated(self) -> None:
        template = RequestTemplate(
            RequestMethod.POST,
            URL("https://example.com/token", URLQuery().unique("client_id", "C")),
            Headers().accept_json(),
            FormEntity().unique("grant_type", "authorization_code"),
        )
        draft = template.to_draft()
        draft.url.query.unique("code", "X")
        draft.headers.authorization("Bearer", "T")
        draft.entity.unique("code", "X")

        assert template.url_text() == "https://example.com/token?client_id=C"
        fresh = template.to_draft()
        assert "Authorization" not in fresh.headers
        assert fresh.entity.get("code") is None
        assert template.method is RequestMethod.POST
        assert template.url_base == "https://example.com/token"

    def test_concurrent_drafts_do_not_interfere(self) -> None:
        template = RequestTemplate(RequestMethod.GET, "https://example.com/user")

        def build(index: int) -> str:
            draft = template.to_draft()
            draft.url.query.unique("access_token", f"T{index}")
            return draft.url.as_text()

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(build, range(200)))

        assert results == [f"https://example.com/user?access_token=T{i}" for i in range(200)]
        assert template.url_text() == "https://example.com/user"


class TestRequestMethod:
    def test_idempotent(self) -> None:
        assert RequestMethod.GET.idempotent
        assert RequestMethod.PUT.idempotent
        assert not RequestMethod.POST.idempotent
        assert not RequestMethod.PATCH.idempotent
