"""
=============================================================================
USERAPI - USER ACCOUNTS AND SESSION TOKENS OVER HTTP
=============================================================================

A small JSON API served by a threaded HTTP/1.1 server built directly on
sockets:

    POST   /users     create an account        (firstName, lastName, phone,
                                                password, tosAgreement)
    GET    /users     read an account          ?phone=
    PUT    /users     update an account        phone + any field
    DELETE /users     delete an account        ?phone=

    POST   /tokens    log in, issue a token    phone, password
    GET    /tokens    read a token             ?id=
    PUT    /tokens    extend a token by 1 hour id, extend=true
    DELETE /tokens    log out                  ?id=

Records are JSON files under data_dir/<collection>/<key>.json.

Usage:
    python -m userapi --env staging

    from userapi import ServerConfig, create_app
    create_app(ServerConfig.for_environment("staging")).run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig, Environment
from .server import HTTPServer, create_app, build_route_table
from .storage import FileStore
from .utils import PasswordHasher

__all__ = [
    "ServerConfig",
    "Environment",
    "HTTPServer",
    "create_app",
    "build_route_table",
    "FileStore",
    "PasswordHasher",
    "__version__",
]
