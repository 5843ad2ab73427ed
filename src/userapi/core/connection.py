"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted client socket (plain TCP or TLS) with buffered reads,
timeouts and state tracking.

=============================================================================
READING A REQUEST
=============================================================================

TCP delivers bytes in arbitrary chunks, so a request is accumulated in a
buffer before it is handed to the parser:

    recv() → buffer   until "\r\n\r\n" is seen          (headers complete)
    parse Content-Length from the raw header block
    recv() → buffer   until len(body) == Content-Length  (body complete)
    cut one request off the buffer, keep the rest        (pipelining)

The whole request therefore exists in memory before parsing starts.

=============================================================================
TIMEOUTS
=============================================================================

    first request      config.timeout              slow client → error
    later requests     config.keep_alive_timeout   idle client → close

=============================================================================
"""

import socket
import ssl
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

logger = logging.getLogger(__name__)


class RequestTooLargeError(ValueError):
    """The request exceeds max_request_size."""


class ConnectionState(Enum):
    """Connection lifecycle states, used in logs."""

    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket; an ssl.SSLSocket on the TLS listener.
        address: Client's (ip, port) tuple.
        id: Short connection identifier for logs.
        state: Current lifecycle state.
        requests_handled: Requests read so far on this connection.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: float = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def is_secure(self) -> bool:
        return isinstance(self.socket, ssl.SSLSocket)

    # =========================================================================
    # TLS
    # =========================================================================

    def handshake(self) -> bool:
        """
        Complete the TLS handshake on a secure connection.

        Runs on the worker thread so a slow client never blocks the accept
        loop. A no-op for plain TCP.

        Returns:
            False if the handshake failed and the connection is unusable.
        """
        if not self.is_secure:
            return True
        try:
            self.socket.do_handshake()
            return True
        except (ssl.SSLError, socket.timeout, OSError) as e:
            logger.warning(f"[{self.id}] TLS handshake with {self.client_ip} failed: {e}")
            return False

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request (headers and body).

        Returns:
            The request bytes, or None if the client closed the connection
            or an idle keep-alive connection timed out.

        Raises:
            TimeoutError: The first request was not received in time.
            RequestTooLargeError: The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                if len(self._buffer) > self.max_request_size:
                    raise RequestTooLargeError(
                        f"Request too large: {len(self._buffer)} bytes"
                    )

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            if body_start + content_length > self.max_request_size:
                raise RequestTooLargeError(
                    f"Request too large: Content-Length {content_length}"
                )

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break  # Client closed mid-body; the parser reports it
                self._buffer += chunk

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.last_activity = time.time()
            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")
        finally:
            if self.state != ConnectionState.CLOSED:
                self.socket.settimeout(self.timeout)

    def _recv(self) -> bytes:
        """recv() that maps an abrupt disconnect to b""."""
        try:
            data = self.socket.recv(self.buffer_size)
            self.last_activity = time.time()
            return data
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _parse_content_length(self, headers: bytes) -> int:
        """Content-Length from the raw header block; 0 if absent or invalid."""
        header_str = headers.decode("utf-8", errors="replace").lower()
        for line in header_str.split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(0, int(line.split(":", 1)[1].strip()))
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send a full response with sendall().

        Returns:
            False if the client has gone away.
        """
        self.state = ConnectionState.WRITING
        self.last_activity = time.time()

        try:
            self.socket.sendall(data)
            self.last_activity = time.time()
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection: shutdown(SHUT_WR), drain, close().

        Idempotent. Errors from a peer that already disconnected are
        expected here and ignored.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
