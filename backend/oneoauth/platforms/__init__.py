"""
内置平台
"""

from .github import GitHubAssemblyFactory
from .gitee import GiteeAssemblyFactory

# 内置平台的装配工厂，按此顺序注册
BUILTIN_FACTORIES = [
    GitHubAssemblyFactory,
    GiteeAssemblyFactory,
]

__all__ = ["BUILTIN_FACTORIES", "GitHubAssemblyFactory", "GiteeAssemblyFactory"]
