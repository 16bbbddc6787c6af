"""
请求模块
包含请求模型、执行器抽象以及 httpx 实现
"""

from .models import (
    RequestMethod,
    ParameterMap,
    URLQuery,
    Headers,
    RequestEntity,
    FormEntity,
    JSONEntity,
    URL,
    URLTemplate,
    Request,
    RequestTemplate,
)
from .executor import Response, RequestExecutor
from .factory import (
    RequestExecutorFactory,
    HttpxRequestExecutorFactory,
    RequestExecutorFactoryManager,
    get_executor_factory_manager,
)

__all__ = [
    "RequestMethod",
    "ParameterMap",
    "URLQuery",
    "Headers",
    "RequestEntity",
    "FormEntity",
    "JSONEntity",
    "URL",
    "URLTemplate",
    "Request",
    "RequestTemplate",
    "Response",
    "RequestExecutor",
    "RequestExecutorFactory",
    "HttpxRequestExecutorFactory",
    "RequestExecutorFactoryManager",
    "get_executor_factory_manager",
]
