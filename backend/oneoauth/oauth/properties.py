"""
应用属性与授权属性
"""

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict

from ..exceptions import PropertiesValidationError
from ..utils.security import validate_redirect_uri


class _PlatformProperties(BaseModel):
    """平台属性基类，构造后不可修改"""

    model_config = ConfigDict(frozen=True, extra="forbid")

    platform: ClassVar[str]

    def ensure_valid(self) -> None:
        """校验属性，由持有它的元数据对象在构造时调用一次"""

    def _fail(self, message: str) -> None:
        raise PropertiesValidationError(f"[{self.platform}] {message}")


class ApplicationProperties(_PlatformProperties):
    """应用属性（client_id、client_secret、回调地址等）"""

    # 子类中必须提供值的字段
    required_fields: ClassVar[tuple[str, ...]] = ("client_id", "client_secret")
    # 子类中保存回调地址的字段
    callback_fields: ClassVar[tuple[str, ...]] = ()

    def ensure_valid(self) -> None:
        for name in self.required_fields:
            value = getattr(self, name, None)
            if value is None or value == "" or value == []:
                self._fail(f"缺少必要的应用属性: {name}")
        for name in self.callback_fields:
            value: Any = getattr(self, name, None)
            callbacks = value if isinstance(value, (list, tuple)) else [value]
            for callback in callbacks:
                if not callback or not validate_redirect_uri(callback):
                    self._fail(f"回调地址不合法: {name}={callback!r}")


class AuthorizationProperties(_PlatformProperties):
    """授权属性（scope 等拼接到授权地址上的参数）"""
