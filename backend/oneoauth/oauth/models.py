"""
OAuth2 领域模型
回调参数、令牌和用户
"""

import copy
from abc import ABC, abstractmethod
from datetime import timedelta
from types import MappingProxyType
from typing import Any, ClassVar, Mapping, Optional
from urllib.parse import parse_qsl

from ..exceptions import ProtocolError
from ..utils.security import mask_secrets


class RawPayload:
    """包装远端返回的原始数据，构造后不可修改"""

    __slots__ = ("_raw",)

    def __init__(self, raw: Mapping[str, Any]) -> None:
        if raw is None:
            raise ValueError("raw 不能为空")
        object.__setattr__(self, "_raw", MappingProxyType(copy.deepcopy(dict(raw))))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} 不可修改")

    @property
    def raw(self) -> Mapping[str, Any]:
        return self._raw

    def _optional(self, name: str) -> Optional[str]:
        value = self._raw.get(name)
        return None if value is None else str(value)

    def _required(self, name: str) -> str:
        value = self._raw.get(name)
        if value is None:
            raise ProtocolError(f"缺少必要字段 {name}: {mask_secrets(self._raw)}", payload=dict(self._raw))
        return str(value)

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self._raw == other._raw

    def __hash__(self) -> int:
        return hash((type(self), tuple(sorted(self._raw))))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({mask_secrets(self._raw)!r})"


class CallbackQuery(RawPayload):
    """授权回调的查询参数"""

    __slots__ = ()

    @classmethod
    def from_query_string(cls, query_string: str) -> "CallbackQuery":
        return cls(dict(parse_qsl(query_string.lstrip("?"), keep_blank_values=True)))

    @property
    def code(self) -> Optional[str]:
        return self._optional("code")

    @property
    def state(self) -> Optional[str]:
        return self._optional("state")

    @property
    def error(self) -> Optional[str]:
        return self._optional("error")


class OAuth2Token(RawPayload, ABC):
    """令牌"""

    __slots__ = ()

    platform: ClassVar[str]

    @property
    def access_token(self) -> str:
        return self._required("access_token")

    @property
    @abstractmethod
    def access_token_validity_duration(self) -> timedelta:
        ...


class RefreshableOAuth2Token(OAuth2Token):
    """可刷新的令牌"""

    __slots__ = ()

    @property
    def refresh_token(self) -> str:
        return self._required("refresh_token")

    @property
    @abstractmethod
    def refresh_token_validity_duration(self) -> timedelta:
        ...


class OAuth2User(RawPayload, ABC):
    """远端用户"""

    __slots__ = ()

    platform: ClassVar[str]

    @property
    @abstractmethod
    def identifier(self) -> str:
        """平台内唯一且稳定的用户标识"""


# 用户属性

class UsernameSupplier:
    __slots__ = ()

    @property
    def username(self) -> Optional[str]:
        return self._optional(self.username_field)

    username_field: ClassVar[str] = "login"


class NicknameSupplier:
    __slots__ = ()

    @property
    def nickname(self) -> Optional[str]:
        return self._optional(self.nickname_field)

    nickname_field: ClassVar[str] = "name"


class AvatarSupplier:
    __slots__ = ()

    @property
    def avatar(self) -> Optional[str]:
        return self._optional(self.avatar_field)

    avatar_field: ClassVar[str] = "avatar_url"


class EmailSupplier:
    __slots__ = ()

    @property
    def email(self) -> Optional[str]:
        return self._optional(self.email_field)

    email_field: ClassVar[str] = "email"


def user_profile(user: OAuth2User) -> dict[str, Any]:
    """提取用户的公共属性"""
    profile: dict[str, Any] = {"platform": user.platform, "identifier": user.identifier}
    for supplier, field in (
        (UsernameSupplier, "username"),
        (NicknameSupplier, "nickname"),
        (AvatarSupplier, "avatar"),
        (EmailSupplier, "email"),
    ):
        if isinstance(user, supplier):
            profile[field] = getattr(user, field)
    return profile
