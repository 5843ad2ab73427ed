"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into HTTPRequest objects.

=============================================================================
REQUEST ANATOMY
=============================================================================

    POST /users?phone=555 HTTP/1.1\r\n          ← request line
    Host: localhost:3000\r\n                    ← headers
    Content-Type: application/json\r\n
    Content-Length: 17\r\n
    \r\n                                        ← header/body separator
    {"phone": "555"}                            ← body (Content-Length bytes)

The request line splits into:

    method  = "POST"
    path    = "/users"
    query   = {"phone": ["555"]}
    version = "HTTP/1.1"

=============================================================================
BODY HANDLING
=============================================================================

Clients of this API send JSON objects. Decoding is deliberately lenient:
`HTTPRequest.payload` yields {} for an empty body, malformed JSON, invalid
UTF-8, or any JSON value that is not an object. Handlers then report the
missing fields themselves. `HTTPRequest.json` is the strict variant and
raises HTTPParseError.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from urllib.parse import parse_qs, urlparse, unquote
import re
import json


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the status code the server should answer with:
    400 for malformed syntax, 413 for oversized requests, 505 for
    unsupported HTTP versions.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Header names are stored lowercase. `query_params` keeps every value of
    a repeated parameter; `query` exposes only the first one.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    client_address: tuple[str, int] = ("", 0)

    _payload: Optional[Dict[str, Any]] = field(default=None, repr=False)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters, e.g. "application/json"."""
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def content_length(self) -> int:
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def query(self) -> Dict[str, str]:
        """Query parameters reduced to their first value."""
        return {name: values[0] for name, values in self.query_params.items() if values}

    @property
    def json(self) -> Any:
        """
        Strictly decode the body as JSON.

        Returns None for an empty body.

        Raises:
            HTTPParseError: If the body is not valid JSON.
        """
        if not self.body:
            return None
        try:
            return json.loads(self.body.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise HTTPParseError(f"Invalid JSON body: {e}")

    @property
    def payload(self) -> Dict[str, Any]:
        """
        Best-effort JSON object decoded from the body.

        Never raises. Anything that is not a JSON object becomes {}.
        """
        if self._payload is None:
            try:
                value = self.json
            except HTTPParseError:
                value = None
            self._payload = value if isinstance(value, dict) else {}
        return self._payload

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 keeps the connection open unless "Connection: close";
        HTTP/1.0 closes it unless "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()

        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Turns raw request bytes into HTTPRequest objects.

        1. Size check                     → 413 if over max_request_size
        2. Find \\r\\n\\r\\n separator      → 400 if missing
        3. Parse request line             → 400 / 505
        4. Parse headers                  → lowercase names
        5. Cut body to Content-Length     → 400 if short or invalid
    """

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data.

        Args:
            data: Complete request bytes (headers and body).
            client_address: Client's (ip, port), kept for logging.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        if not lines or not lines[0]:
            raise HTTPParseError("Empty request")

        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError(
                f"Invalid Content-Length: {headers.get('content-length')!r}"
            )
        if content_length < 0:
            raise HTTPParseError(f"Invalid Content-Length: {content_length}")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        # Anything past Content-Length belongs to the next pipelined request
        body = body[:content_length]

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body,
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, Dict[str, list[str]], str]:
        """Split "METHOD SP URI SP VERSION" into its parts."""
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505
            )

        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse "Name: Value" lines.

        Names are lowercased, repeated headers are joined with ", ", and
        obsolete folded continuation lines are appended to the previous
        header. Malformed lines are skipped.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers
