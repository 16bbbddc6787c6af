"""
安全工具模块
包含 state 生成与校验、回调地址校验、日志脱敏
"""

import re
import secrets
from typing import Any, Mapping
from urllib.parse import unquote_plus


# 回调地址中不允许出现的片段
DANGEROUS_PATTERNS = (
    "javascript:",
    "data:",
    "vbscript:",
    "<script",
    "onclick",
    "onerror",
)


def validate_redirect_uri(uri: str) -> bool:
    """验证回调地址的安全性"""
    if not uri:
        return False

    # 必须是 http 或 https
    if not uri.startswith(("http://", "https://")):
        # 允许自定义协议（移动应用）
        if not re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", uri):
            return False

    uri_lower = uri.lower()
    return not any(pattern in uri_lower for pattern in DANGEROUS_PATTERNS)


def generate_state(length: int = 32) -> str:
    """生成授权请求的 state"""
    return secrets.token_urlsafe(length)


def constant_time_compare(a: str, b: str) -> bool:
    """常量时间比较（防止时序攻击）"""
    return secrets.compare_digest(a, b)


# 日志中需要隐藏的参数名（不区分大小写）
SENSITIVE_NAMES = frozenset({"access_token", "refresh_token", "client_secret", "authorization"})

MASK = "******"


def is_sensitive(name: str) -> bool:
    return name.lower() in SENSITIVE_NAMES


def mask_secrets(data: Mapping[str, Any]) -> dict[str, Any]:
    """隐藏令牌和密钥后的副本，只用于日志"""
    return {key: MASK if is_sensitive(key) else value for key, value in data.items()}


def mask_url(url: str) -> str:
    """隐藏 URL 查询参数中的令牌和密钥，只用于日志"""
    base, sep, rest = url.partition("?")
    if not sep:
        return url
    query, hash_sep, anchor = rest.partition("#")
    parts = []
    for part in query.split("&"):
        name, eq, _ = part.partition("=")
        if eq and is_sensitive(unquote_plus(name)):
            part = f"{name}={MASK}"
        parts.append(part)
    return f"{base}?{'&'.join(parts)}{hash_sep}{anchor}"
