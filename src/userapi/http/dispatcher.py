"""
=============================================================================
REQUEST DISPATCHER
=============================================================================

Bridges the HTTP layer and the resource handlers.

    HTTPRequest
        │
        ▼
    ┌──────────────────────────────────────────────────────────────────┐
    │ Dispatcher                                                       │
    │   1. normalise path/method, decode payload (lenient)            │
    │   2. lookup (path, method) in RouteTable ──── miss → 404 {}     │
    │   3. handler(RequestContext)                                    │
    │        APIError   → its status + {"Error": message}             │
    │        Exception  → 500 {"Error": "Internal Server Error"}      │
    │   4. normalise (status, body)                                   │
    │        status not an int      → 200                             │
    │        body not a dict/list   → {}                              │
    └──────────────────────────────────────────────────────────────────┘
        │
        ▼
    HTTPResponse (Content-Type: application/json)

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict
import logging

from ..errors import APIError
from .request import HTTPRequest
from .response import HTTPResponse, json_response, error_response
from .router import RouteTable, normalize_method, normalize_path
from .status_codes import HTTPStatus

logger = logging.getLogger(__name__)


@dataclass
class RequestContext:
    """
    Everything a handler gets to see about a request.

    Attributes:
        path: Normalised path, e.g. "users".
        query: First value of each query parameter.
        method: Lowercase method, e.g. "post".
        headers: Request headers with lowercase names.
        payload: JSON object body, {} when absent or unparseable.
    """

    path: str
    query: Dict[str, str] = field(default_factory=dict)
    method: str = "get"
    headers: Dict[str, str] = field(default_factory=dict)
    payload: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_request(cls, request: HTTPRequest) -> "RequestContext":
        return cls(
            path=normalize_path(request.path),
            query=request.query,
            method=normalize_method(request.method),
            headers=dict(request.headers),
            payload=request.payload,
        )


def normalize_result(result: Any) -> tuple[int, Any]:
    """
    Coerce a handler's return value into (status, body).

    Handlers return (status, body) or (status,) or a bare status. Booleans
    are not accepted as status codes even though bool subclasses int.
    """
    if isinstance(result, tuple):
        status = result[0] if len(result) > 0 else None
        body = result[1] if len(result) > 1 else None
    else:
        status, body = result, None

    if not isinstance(status, int) or isinstance(status, bool):
        status = HTTPStatus.OK
    if not isinstance(body, (dict, list)):
        body = {}
    return int(status), body


class Dispatcher:
    """
    Routes an HTTPRequest to its handler and builds the JSON response.

    Usage:
        dispatcher = Dispatcher(RouteTable.build(users.router, tokens.router))
        response = dispatcher(request)
    """

    def __init__(self, route_table: RouteTable):
        self.route_table = route_table

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        return self.dispatch(request)

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        context = RequestContext.from_request(request)

        handler = self.route_table.lookup(context.path, context.method)
        if handler is None:
            logger.debug(f"No route for {context.method.upper()} /{context.path}")
            return json_response(HTTPStatus.NOT_FOUND, {})

        try:
            result = handler(context)
        except APIError as e:
            return json_response(e.status_code, e.to_body())
        except Exception:
            logger.exception(
                f"Unhandled error in {context.method.upper()} /{context.path}"
            )
            return error_response(
                HTTPStatus.INTERNAL_SERVER_ERROR,
                HTTPStatus.INTERNAL_SERVER_ERROR.phrase,
            )

        status, body = normalize_result(result)
        return json_response(status, body)
