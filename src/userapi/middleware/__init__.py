"""
Request middleware.

    MiddlewarePipeline   chains middleware around the dispatcher
    Middleware           base class
    LoggingMiddleware    access log on "userapi.access", X-Request-ID
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog, ACCESS_LOGGER

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
    "ACCESS_LOGGER",
]
