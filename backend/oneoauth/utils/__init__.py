"""
工具模块
"""

from .security import (
    validate_redirect_uri,
    generate_state,
    constant_time_compare,
    mask_secrets,
    mask_url,
)

__all__ = [
    "validate_redirect_uri",
    "generate_state",
    "constant_time_compare",
    "mask_secrets",
    "mask_url",
]
