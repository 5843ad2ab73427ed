"""
pytest configuration and fixtures.
"""

import http.client
import json
import socket
import threading
from dataclasses import replace
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from userapi import HTTPServer, ServerConfig, create_app
from userapi.http import HTTPRequest, RouteTable
from userapi.http.dispatcher import Dispatcher
from userapi.resources import UsersResource, TokensResource
from userapi.storage import FileStore
from userapi.utils import PasswordHasher


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /users?phone=5551234567&verbose= HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"phone": "5551234567", "password": "hunter2"}'
    return (
        b"POST /tokens HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


class FakeClock:
    """Settable millisecond clock for token expiry tests."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path) -> FileStore:
    return FileStore(tmp_path / "data")


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher("thisIsAStagingSecret")


@pytest.fixture
def users(store: FileStore, hasher: PasswordHasher) -> UsersResource:
    return UsersResource(store, hasher)


@pytest.fixture
def tokens(store: FileStore, hasher: PasswordHasher, clock: FakeClock) -> TokensResource:
    return TokensResource(store, hasher, clock=clock)


@pytest.fixture
def dispatcher(users: UsersResource, tokens: TokensResource) -> Dispatcher:
    return Dispatcher(RouteTable.build(users.router, tokens.router))


def make_request(
    method: str,
    path: str,
    query: Optional[dict] = None,
    payload=None,
    raw_body: Optional[bytes] = None,
) -> HTTPRequest:
    """Build an HTTPRequest without going through the parser."""
    if raw_body is None:
        raw_body = json.dumps(payload).encode() if payload is not None else b""
    return HTTPRequest(
        method=method,
        path=path,
        headers={"content-type": "application/json"},
        query_params={name: [value] for name, value in (query or {}).items()},
        body=raw_body,
        client_address=("127.0.0.1", 50000),
    )


@pytest.fixture
def build_request():
    return make_request


@pytest.fixture
def signup_payload() -> dict:
    return {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "phone": "5551234567",
        "password": "hunter2",
        "tosAgreement": True,
    }


@pytest.fixture
def config(tmp_path) -> ServerConfig:
    """Test server configuration on ephemeral ports."""
    return ServerConfig.for_environment(
        "staging",
        http_port=0,
        https_port=0,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        data_dir=str(tmp_path / "data"),
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.http_port

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.stop()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def request(self, method: str, path: str, payload=None, headers=None):
        """One request on a fresh connection; returns (status, headers, json body)."""
        conn = http.client.HTTPConnection("127.0.0.1", self.port, timeout=5)
        try:
            body = json.dumps(payload) if payload is not None else None
            conn.request(method, path, body=body, headers=headers or {})
            response = conn.getresponse()
            data = response.read()
            return response.status, dict(response.getheaders()), json.loads(data) if data else None
        finally:
            conn.close()


@pytest.fixture
def server_factory(config: ServerConfig) -> Generator:
    """start_server(**overrides) → running TestServer; all are stopped at teardown."""
    started = []

    def start_server(**overrides) -> TestServer:
        test_srv = TestServer(create_app(replace(config, **overrides)))
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield start_server

    for test_srv in started:
        test_srv.stop()


@pytest.fixture
def test_server(server_factory) -> TestServer:
    """A running API server backed by a temporary data directory."""
    return server_factory()
