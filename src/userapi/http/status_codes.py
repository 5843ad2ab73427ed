"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this API actually emits, with their reason phrases.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  2xx   │ 200 OK            - every successful handler call        │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  4xx   │ 400 Bad Request   - missing fields, failed precondition  │
    │        │ 404 Not Found     - unknown route, direct lookup miss    │
    │        │ 408 Request Timeout    - client stopped sending          │
    │        │ 413 Payload Too Large  - body over max_request_size      │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  5xx   │ 500 Internal Error    - store failure, handler crash     │
    │        │ 503 Service Unavailable - worker queue full              │
    │        │ 505 HTTP Version Not Supported                           │
    └────────┴───────────────────────────────────────────────────────────┘

Handlers may still return any integer; reason_phrase() covers codes that
are not members of the enum.

=============================================================================
"""

from enum import IntEnum
import http


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200
    CREATED = 201
    NO_CONTENT = 204

    BAD_REQUEST = 400
    NOT_FOUND = 404
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """
        Reason phrase used in the status line:

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      └── phrase
                      └───────── code
        """
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}


def reason_phrase(code: int) -> str:
    """
    Reason phrase for any integer status code.

    Falls back to the standard library's table for codes we never emit
    ourselves, and to "Unknown" for codes nobody has registered.
    """
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        pass
    try:
        return http.HTTPStatus(code).phrase
    except ValueError:
        return "Unknown"
