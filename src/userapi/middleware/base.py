"""
=============================================================================
MIDDLEWARE PIPELINE
=============================================================================

Chain of responsibility around the dispatcher:

    request ──► LoggingMiddleware ──► ... ──► Dispatcher
    response ◄─────────────────────── ... ◄──────┘

Each middleware receives the request and `next`, the rest of the chain.
It may act before calling next, after it, or answer without calling it
at all.

    pipeline = MiddlewarePipeline().use(LoggingMiddleware())
    handler = pipeline.wrap(dispatcher)
    response = handler(request)

The first middleware added is the outermost.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse

logger = logging.getLogger(__name__)

NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class Timing(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Handled-By", "userapi")
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        ...

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """Ordered list of middleware that can wrap a final handler."""

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain. Wrapping happens in reverse so that

            [A, B, C] + handler  →  A(B(C(handler)))
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    @staticmethod
    def _create_wrapped_handler(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
