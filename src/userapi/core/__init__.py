"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the API:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ SOCKET SERVER                                                       │
    │  one per listener (HTTP, HTTPS); accept loop, TLS wrapping,         │
    │  SIGTERM/SIGINT → shutdown                                          │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ new Connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │ THREAD POOL                                                         │
    │  bounded queue, min..max workers; full queue → 503                  │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ worker runs the connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │ CONNECTION                                                          │
    │  buffered reads (headers + Content-Length body), keep-alive,        │
    │  TLS handshake, graceful close                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLargeError
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLargeError",
    "ThreadPool",
]
