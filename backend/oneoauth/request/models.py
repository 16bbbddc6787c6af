"""
请求模型
URL、查询参数、请求头与请求体

模板（URLTemplate、RequestTemplate）构造后不可变，只能通过 to_draft() 得到可修改的副本。
每次调用都必须在副本上注入 code、access_token、state 等参数，
否则并发请求之间会互相污染。
"""

import json
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Iterable, Iterator, Optional, Union
from urllib.parse import urlencode, quote

from ..utils.security import MASK, is_sensitive, mask_secrets, mask_url


class RequestMethod(str, Enum):
    """请求方法"""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    HEAD = "HEAD"

    @property
    def idempotent(self) -> bool:
        return self not in (RequestMethod.POST, RequestMethod.PATCH)


class ParameterMap:
    """
    按插入顺序保存的参数容器

    unique: 同名参数只保留最后一次的值，值为 None 时删除该参数
    repeatable: 同名参数追加，序列化时输出多个同名参数，值为 None 时忽略
    """

    def __init__(self) -> None:
        self._params: dict[str, Union[str, list[str]]] = {}

    def _key(self, name: str) -> str:
        """参数名对应的存储键"""
        return name

    def unique(self, name: str, value: Optional[Any]):
        name = self._key(name)
        if value is None:
            self._params.pop(name, None)
        else:
            self._params[name] = str(value)
        return self

    def repeatable(self, name: str, value: Optional[Any]):
        if value is None:
            return self
        name = self._key(name)
        existing = self._params.get(name)
        if existing is None:
            self._params[name] = str(value)
        elif isinstance(existing, list):
            existing.append(str(value))
        else:
            self._params[name] = [existing, str(value)]
        return self

    def repeatable_all(self, name: str, values: Optional[Iterable[Any]]):
        for value in values or ():
            self.repeatable(name, value)
        return self

    def get(self, name: str) -> Optional[str]:
        """获取参数的第一个值"""
        values = self.get_all(name)
        return values[0] if values else None

    def get_all(self, name: str) -> list[str]:
        """获取参数的所有值"""
        existing = self._params.get(self._key(name))
        if existing is None:
            return []
        if isinstance(existing, list):
            return list(existing)
        return [existing]

    def items(self) -> Iterator[tuple[str, str]]:
        """展开后的 (名称, 值) 序列"""
        for name, existing in self._params.items():
            if isinstance(existing, list):
                for value in existing:
                    yield name, value
            else:
                yield name, existing

    def copy(self):
        duplicate = type(self).__new__(type(self))
        duplicate.__dict__.update(self.__dict__)
        duplicate._params = {
            name: list(value) if isinstance(value, list) else value
            for name, value in self._params.items()
        }
        return duplicate

    def encode(self) -> str:
        """百分号编码后用 & 连接"""
        return urlencode(list(self.items()))

    def masked(self):
        """隐藏令牌和密钥后的副本，只用于日志"""
        duplicate = self.copy()
        for name in duplicate._params:
            if is_sensitive(name):
                duplicate._params[name] = MASK
        return duplicate

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self._key(name) in self._params

    def __len__(self) -> int:
        return len(self._params)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParameterMap):
            return NotImplemented
        return type(self) is type(other) and list(self.items()) == list(other.items())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._params!r})"


class URLQuery(ParameterMap):
    """URL 查询参数"""

    def as_text(self) -> str:
        """序列化为 ?a=1&b=2，为空时返回空字符串"""
        if not self._params:
            return ""
        return "?" + self.encode()

    def __str__(self) -> str:
        return self.as_text()


class Headers(ParameterMap):
    """请求头（值不做编码，名称不区分大小写，保留第一次写入时的写法）"""

    def _key(self, name: str) -> str:
        lowered = name.lower()
        for existing in self._params:
            if existing.lower() == lowered:
                return existing
        return name

    def accept(self, value: str) -> "Headers":
        return self.unique("Accept", value)

    def accept_json(self) -> "Headers":
        return self.accept("application/json")

    def authorization(self, auth_type: str, value: Optional[str]) -> "Headers":
        if value is None:
            return self
        return self.unique("Authorization", f"{auth_type} {value}")

    def content_type(self, value: str) -> "Headers":
        return self.unique("Content-Type", value)

    def user_agent(self, value: str = "") -> "Headers":
        return self.unique("User-Agent", value or DEFAULT_USER_AGENT)


DEFAULT_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) OneOAuth/1.0"


class RequestEntity(ABC):
    """请求体"""

    @property
    @abstractmethod
    def content_type(self) -> str:
        ...

    @abstractmethod
    def to_bytes(self) -> bytes:
        ...

    @abstractmethod
    def copy(self) -> "RequestEntity":
        ...

    def masked(self) -> "RequestEntity":
        return self.copy()


class FormEntity(ParameterMap, RequestEntity):
    """application/x-www-form-urlencoded 请求体"""

    @property
    def content_type(self) -> str:
        return "application/x-www-form-urlencoded"

    def to_bytes(self) -> bytes:
        return self.encode().encode("utf-8")


class JSONEntity(RequestEntity):
    """application/json 请求体"""

    def __init__(self, data: Optional[dict[str, Any]] = None) -> None:
        self.data: dict[str, Any] = dict(data or {})

    @property
    def content_type(self) -> str:
        return "application/json"

    def to_bytes(self) -> bytes:
        return json.dumps(self.data, ensure_ascii=False).encode("utf-8")

    def copy(self) -> "JSONEntity":
        return JSONEntity(json.loads(json.dumps(self.data)))

    def masked(self) -> "JSONEntity":
        return JSONEntity(mask_secrets(self.data))

    def __repr__(self) -> str:
        return f"JSONEntity({self.data!r})"


class URL:
    """可修改的 URL"""

    def __init__(self, base: str, query: Optional[URLQuery] = None, anchor: Optional[str] = None) -> None:
        if not base:
            raise ValueError("URL 不能为空")
        self.base = base
        self.query = query if query is not None else URLQuery()
        self._anchor: Optional[str] = None
        self.anchor = anchor

    @property
    def anchor(self) -> Optional[str]:
        return self._anchor

    @anchor.setter
    def anchor(self, value: Optional[str]) -> None:
        self._anchor = quote(value, safe="") if value is not None else None

    def as_text(self) -> str:
        text = self.base + self.query.as_text()
        if self._anchor is not None:
            text += "#" + self._anchor
        return text

    def copy(self) -> "URL":
        duplicate = URL(self.base, self.query.copy())
        duplicate._anchor = self._anchor
        return duplicate

    def __str__(self) -> str:
        return self.as_text()

    def __repr__(self) -> str:
        return f"URL({self.as_text()!r})"


class URLTemplate:
    """不可变的 URL 模板"""

    __slots__ = ("_url",)

    def __init__(self, url: URL) -> None:
        object.__setattr__(self, "_url", url.copy())

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("URLTemplate 不可修改，请使用 to_draft()")

    def to_draft(self) -> URL:
        """获取可修改的副本"""
        return self._url.copy()

    def as_text(self) -> str:
        return self._url.as_text()

    def __repr__(self) -> str:
        return f"URLTemplate({self.as_text()!r})"


class Request:
    """可修改的请求"""

    def __init__(
        self,
        method: RequestMethod,
        url: URL,
        headers: Optional[Headers] = None,
        entity: Optional[RequestEntity] = None,
    ) -> None:
        self.method = RequestMethod(method)
        self.url = url
        self.headers = headers if headers is not None else Headers()
        self.entity = entity

    def copy(self) -> "Request":
        return Request(
            self.method,
            self.url.copy(),
            self.headers.copy(),
            self.entity.copy() if self.entity is not None else None,
        )

    def __repr__(self) -> str:
        # 令牌和密钥已隐藏
        entity = self.entity.masked() if self.entity is not None else None
        return (
            f"{{method={self.method.value}, url={mask_url(self.url.as_text())}, "
            f"headers={self.headers.masked()!r}, entity={entity!r}}}"
        )


class RequestTemplate:
    """
    不可变的请求模板

    在构造交换器时创建一次，之后只读。
    所有容器在构造时和 to_draft() 时都会被复制。
    """

    __slots__ = ("_request",)

    def __init__(
        self,
        method: RequestMethod,
        url: Union[str, URL],
        headers: Optional[Headers] = None,
        entity: Optional[RequestEntity] = None,
    ) -> None:
        if isinstance(url, str):
            url = URL(url)
        request = Request(method, url, headers, entity).copy()
        object.__setattr__(self, "_request", request)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("RequestTemplate 不可修改，请使用 to_draft()")

    @property
    def method(self) -> RequestMethod:
        return self._request.method

    @property
    def url_base(self) -> str:
        return self._request.url.base

    def url_text(self) -> str:
        return self._request.url.as_text()

    def to_draft(self) -> Request:
        """获取可修改的副本"""
        return self._request.copy()

    def __repr__(self) -> str:
        return f"RequestTemplate({self._request!r})"
