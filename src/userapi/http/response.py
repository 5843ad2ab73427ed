"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds and serialises HTTP/1.1 responses.

Every response this API produces is JSON:

    HTTP/1.1 200 OK\r\n
    Content-Type: application/json\r\n
    Content-Length: 2\r\n
    Date: Mon, 19 Oct 2026 12:00:00 GMT\r\n
    Server: userapi/1.0\r\n
    \r\n
    {}

Content-Length, Date and Server are filled in by to_bytes() when the
caller did not set them.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, Union
import json

from .status_codes import HTTPStatus, reason_phrase

JSON_CONTENT_TYPE = "application/json"
DEFAULT_SERVER_NAME = "userapi/1.0"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be written to a socket.

    `status` is a plain int so handlers may answer with codes outside the
    HTTPStatus enum.
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {int(self.status)} {reason_phrase(self.status)}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def json(self) -> Any:
        """Decode the body; convenient in tests and logging."""
        return json.loads(self.body.decode("utf-8")) if self.body else None

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """Serialise status line, headers and body for socket.sendall()."""
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.BAD_REQUEST)
            .json({"Error": "Missing required fields."})
            .build())
    """

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        """Serialise `data` as the body and mark it application/json."""
        self._body = json.dumps(data).encode("utf-8")
        self._headers["Content-Type"] = JSON_CONTENT_TYPE
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an IMF-fixdate (RFC 7231 section 7.1.1.1):

        Sun, 06 Nov 1994 08:49:37 GMT

    Day and month names are fixed English, so strftime's locale-dependent
    %a/%b are avoided.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    dt = dt.astimezone(timezone.utc)
    return (
        f"{days[dt.weekday()]}, {dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def json_response(status: int, body: Any) -> HTTPResponse:
    """One-shot JSON response."""
    return ResponseBuilder().status(status).json(body).build()


def error_response(status: int, message: str) -> HTTPResponse:
    """JSON error response in the API's {"Error": ...} shape."""
    return json_response(status, {"Error": message})
