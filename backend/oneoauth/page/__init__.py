"""
页面路由模块
"""

from .routes import router

__all__ = [
    "router",
]
