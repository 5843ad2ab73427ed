"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

    request.py        raw bytes → HTTPRequest (RequestParser)
    response.py       HTTPResponse / ResponseBuilder → raw bytes
    status_codes.py   HTTPStatus enum with reason phrases
    router.py         Router declarations → RouteTable
    dispatcher.py     HTTPRequest → handler → JSON HTTPResponse

The dispatcher is imported from `userapi.http.dispatcher` directly; it
depends on `userapi.errors`, which in turn depends on this package.

=============================================================================
"""

from .request import HTTPRequest, HTTPParseError, RequestParser
from .response import HTTPResponse, ResponseBuilder, json_response, error_response
from .status_codes import HTTPStatus, reason_phrase
from .router import Router, RouteTable, Route, RouteConflictError, normalize_path

__all__ = [
    # Request
    "HTTPRequest",
    "HTTPParseError",
    "RequestParser",
    # Response
    "HTTPResponse",
    "ResponseBuilder",
    "json_response",
    "error_response",
    # Status codes
    "HTTPStatus",
    "reason_phrase",
    # Routing
    "Router",
    "RouteTable",
    "Route",
    "RouteConflictError",
    "normalize_path",
]
