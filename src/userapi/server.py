"""
=============================================================================
API SERVER
=============================================================================

Wires the components together and runs the listeners.

    ┌──────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │  SocketServer(http_port) ──┐                                         │
    │                            ├──► ThreadPool ──► _process_connection   │
    │  SocketServer(https_port) ─┘       (workers)        │                │
    │     (only with cert/key)                            ▼                │
    │                                              Connection.read_request │
    │                                                     │                │
    │                                                     ▼                │
    │                                              RequestParser.parse     │
    │                                                     │                │
    │                                                     ▼                │
    │                                   MiddlewarePipeline (access log)    │
    │                                                     │                │
    │                                                     ▼                │
    │                                     Dispatcher → RouteTable → handler│
    │                                                     │                │
    │                                                     ▼                │
    │                                              HTTPResponse.to_bytes   │
    │                                                                      │
    └──────────────────────────────────────────────────────────────────────┘

The HTTP listener runs on the calling thread; the HTTPS listener runs on
a background thread. Both feed the same pool and the same dispatcher.

=============================================================================
"""

import logging
import ssl
import threading
from typing import Optional, Callable

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool, RequestTooLargeError
from .core.connection import ConnectionState
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, ResponseBuilder, HTTPStatus, error_response,
    RouteTable,
)
from .http.dispatcher import Dispatcher
from .middleware import MiddlewarePipeline, Middleware, LoggingMiddleware
from .resources import UsersResource, TokensResource
from .storage import FileStore
from .utils.hashing import PasswordHasher

logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Multi-threaded HTTP/1.1 JSON API server.

    Usage:
        server = HTTPServer(config, RouteTable.build(users.router, tokens.router))
        server.use(LoggingMiddleware())
        server.run()            # blocks until SIGINT/SIGTERM or stop()
    """

    def __init__(self, config: ServerConfig, route_table: RouteTable):
        self.config = config
        self.config.validate()

        self._route_table = route_table
        self._dispatcher = Dispatcher(route_table)

        self._http_server = SocketServer(config, port=config.http_port, name="http")
        self._https_server: Optional[SocketServer] = None
        self._https_thread: Optional[threading.Thread] = None

        self._thread_pool = ThreadPool(
            min_workers=config.min_workers,
            max_workers=config.max_workers,
            queue_size=config.queue_size,
        )
        self._parser = RequestParser(max_request_size=config.max_request_size)
        self._middleware = MiddlewarePipeline()

        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._running = False
        self._ready = threading.Event()

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        self._middleware.add(middleware)
        return self

    @property
    def route_table(self) -> RouteTable:
        return self._route_table

    @property
    def http_port(self) -> Optional[int]:
        """Bound HTTP port (useful with port 0)."""
        return self._http_server.bound_port

    @property
    def https_port(self) -> Optional[int]:
        return self._https_server.bound_port if self._https_server else None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start serving. Blocks until stop() or a termination signal.

        Raises:
            OSError: A listener could not bind its port.
            ssl.SSLError: The certificate or key could not be loaded.
        """
        self._setup_logging()

        self._handler = self._middleware.wrap(self._dispatcher)
        self._thread_pool.start()
        self._running = True

        try:
            self._http_server.bind()
            if self.config.tls_enabled:
                self._start_https()
            else:
                logger.warning("No TLS certificate configured, HTTPS listener disabled")

            self._log_startup()
            self._ready.set()

            self._http_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def _start_https(self):
        self._https_server = SocketServer(
            self.config,
            port=self.config.https_port,
            ssl_context=self._create_ssl_context(),
            name="https",
        )
        self._https_server.bind()
        self._https_thread = threading.Thread(
            target=self._https_server.start,
            args=(self._handle_connection,),
            name="https-listener",
            daemon=True,
        )
        self._https_thread.start()

    def _create_ssl_context(self) -> ssl.SSLContext:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        context.load_cert_chain(certfile=self.config.cert_file, keyfile=self.config.key_file)
        return context

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until every configured listener is accepting."""
        if not self._ready.wait(timeout):
            return False
        if not self._http_server.wait_until_ready(timeout):
            return False
        if self._https_server is not None:
            return self._https_server.wait_until_ready(timeout)
        return True

    def stop(self):
        """Ask the listeners to stop; run() then cleans up and returns."""
        self._http_server.shutdown()
        if self._https_server is not None:
            self._https_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("userapi").setLevel(level)

    def _log_startup(self):
        logger.info(f"{self.config.server_name} starting in {self.config.env_name} mode")
        logger.info(f"HTTP listener on {self.config.host}:{self.http_port}")
        if self._https_server is not None:
            logger.info(f"HTTPS listener on {self.config.host}:{self.https_port}")
        logger.info(f"Data directory: {self.config.data_dir}")
        logger.info(
            f"Workers: {self.config.min_workers}-{self.config.max_workers} threads, "
            f"queue {self.config.queue_size}"
        )
        logger.info(f"Routes ({len(self._route_table)}):")
        for line in self._route_table.describe():
            logger.info(f"  {line}")

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False

        if self._https_server is not None:
            self._https_server.shutdown()
        if self._https_thread is not None:
            self._https_thread.join(timeout=5.0)

        tasks = self._thread_pool.stats["tasks"]
        logger.info(
            f"Connections handled: {tasks['completed']} completed, {tasks['failed']} failed"
        )
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        self._ready.clear()
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Hand a new connection to the pool.

        Runs on a listener thread, so a rejected connection gets no TLS
        handshake: plain HTTP clients receive a 503, TLS clients are closed.
        """
        submitted = self._thread_pool.submit(self._process_connection, args=(conn,))

        if not submitted:
            pool = self._thread_pool
            logger.warning(
                f"[{conn.id}] Thread pool full ({pool.busy_workers} busy, "
                f"{pool.pending} queued), rejecting connection"
            )
            if not conn.is_secure:
                self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Keep-alive loop for one connection (runs on a worker thread).

            read → parse → middleware + dispatcher → send → repeat or close
        """
        with conn:
            if not conn.handshake():
                return

            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        self._send_error(conn, e.status_code, e.message)
                        break

                    conn.state = ConnectionState.PROCESSING
                    try:
                        response = self._handler(request)
                    except Exception as e:
                        logger.exception(f"[{conn.id}] Handler error: {e}")
                        response = error_response(
                            HTTPStatus.INTERNAL_SERVER_ERROR,
                            HTTPStatus.INTERNAL_SERVER_ERROR.phrase,
                        )

                    keep_alive = request.is_keep_alive and self.config.keep_alive
                    if keep_alive:
                        response.headers.setdefault("Connection", "keep-alive")
                        response.headers.setdefault(
                            "Keep-Alive",
                            f"timeout={int(self.config.keep_alive_timeout)}"
                        )
                    else:
                        response.headers["Connection"] = "close"

                    if request.method == "HEAD":
                        length = str(len(response.body))
                        response.set_header("Content-Length", length).set_body(b"")

                    if not conn.send_response(response.to_bytes(self.config.server_name)):
                        break
                    if not keep_alive:
                        break

                    conn.set_keep_alive()

                except RequestTooLargeError as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except Exception as e:
                    logger.exception(f"[{conn.id}] Connection error: {e}")
                    break

    def _send_error(self, conn: Connection, status: int, message: str):
        """Error response for failures before a handler runs."""
        response = (ResponseBuilder()
            .status(status)
            .json({"Error": message})
            .close_connection()
            .build())
        conn.send_response(response.to_bytes(self.config.server_name))


def build_route_table(store: FileStore, hasher: PasswordHasher) -> RouteTable:
    """
    Instantiate every resource and compile their routes.

    Raises:
        RouteConflictError: Two resources declare the same (path, method).
    """
    users = UsersResource(store, hasher)
    tokens = TokensResource(store, hasher)
    return RouteTable.build(users.router, tokens.router)


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Build a ready-to-run server from configuration.

        app = create_app(ServerConfig.for_environment("staging"))
        app.run()
    """
    config = config or ServerConfig.from_env()
    config.validate()

    store = FileStore(config.data_dir)
    hasher = PasswordHasher(config.hashing_secret)

    server = HTTPServer(config, build_route_table(store, hasher))
    server.use(LoggingMiddleware(log_format=config.log_format))
    return server
