"""
=============================================================================
SOCKET SERVER
=============================================================================

One listening TCP socket and its accept loop. HTTPServer runs one
SocketServer per listener: the plain HTTP port always, the TLS port when
certificates are configured.

    SocketServer(config, port=3000)                      → plain HTTP
    SocketServer(config, port=3001, ssl_context=ctx)     → HTTPS

    start(handler)
        ├── create socket (SO_REUSEADDR, TCP_NODELAY, 1s accept timeout)
        ├── bind((host, port)), listen(backlog)
        ├── install SIGTERM/SIGINT handlers (main thread only)
        └── accept loop
                accept() → wrap in TLS if configured → Connection → handler

    shutdown()   sets the running flag to False; the loop notices within
                 one accept timeout.

Port 0 binds an ephemeral port; `bound_port` reports the real one.

=============================================================================
"""

import socket
import signal
import ssl
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection

logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP listener.

    Usage:
        server = SocketServer(config, port=config.http_port)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(
        self,
        config: ServerConfig,
        port: Optional[int] = None,
        ssl_context: Optional[ssl.SSLContext] = None,
        name: str = "http",
    ):
        self.config = config
        self.port = config.http_port if port is None else port
        self.ssl_context = ssl_context
        self.name = name

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._bound_port: Optional[int] = None

        self._ready_event = threading.Event()
        self._shutdown_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_secure(self) -> bool:
        return self.ssl_context is not None

    @property
    def bound_port(self) -> Optional[int]:
        """The port actually bound, or None before start()."""
        return self._bound_port

    @property
    def address(self) -> Tuple[str, int]:
        return (self.config.host, self._bound_port or self.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up every second so shutdown() is noticed
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        """
        Route SIGTERM and SIGINT to shutdown().

        signal.signal() only works in the main thread; listeners started
        from other threads (the TLS listener, test servers) skip this.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def bind(self):
        """
        Create, bind and listen without entering the accept loop.

        Raises:
            OSError: The address is in use or not permitted.
        """
        self._socket = self._create_socket()
        try:
            self._socket.bind((self.config.host, self.port))
        except OSError as e:
            logger.error(f"Failed to bind {self.name} to {self.config.host}:{self.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_port = self._socket.getsockname()[1]

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown(). Blocks.

        Args:
            connection_handler: Called with each new Connection on the
                accept thread; it must hand off quickly (to a pool).
        """
        if self._socket is None:
            self.bind()

        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()

        scheme = "https" if self.is_secure else "http"
        logger.info(f"Listening on {scheme}://{self.config.host}:{self._bound_port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error on {self.name}: {e}")
                break

            logger.debug(f"Accepted {self.name} connection from {client_address[0]}:{client_address[1]}")

            if self.ssl_context is not None:
                try:
                    # Handshake happens later, on the worker thread
                    client_socket = self.ssl_context.wrap_socket(
                        client_socket,
                        server_side=True,
                        do_handshake_on_connect=False,
                    )
                except (ssl.SSLError, OSError) as e:
                    logger.warning(f"TLS wrap failed for {client_address[0]}: {e}")
                    client_socket.close()
                    continue

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop the accept loop. Safe to call more than once."""
        if self._running:
            logger.info(f"Shutting down {self.name} listener...")
        self._running = False
        self._shutdown_event.set()

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._shutdown_event.set()
        logger.info(f"{self.name} listener stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop is running."""
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._shutdown_event.wait(timeout)
