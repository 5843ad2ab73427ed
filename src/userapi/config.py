"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

A single ServerConfig is built at startup and passed explicitly to every
component that needs it. Nothing reads configuration from globals.

=============================================================================
ENVIRONMENTS
=============================================================================

    ┌────────────┬───────────┬────────────┬───────────────────────────┐
    │ APP_ENV    │ http_port │ https_port │ hashing_secret            │
    ├────────────┼───────────┼────────────┼───────────────────────────┤
    │ staging    │ 3000      │ 3001       │ thisIsAStagingSecret      │
    │ production │ 5000      │ 5001       │ thisIsAProductionSecret   │
    └────────────┴───────────┴────────────┴───────────────────────────┘

APP_ENV is trimmed and lowercased. Anything other than "production"
(including unset) selects staging.

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    APP_ENV             staging | production
    USERAPI_HOST        bind address (default 127.0.0.1)
    USERAPI_DATA_DIR    record root (default .data)
    USERAPI_CERT_FILE   TLS certificate (PEM); enables HTTPS with KEY_FILE
    USERAPI_KEY_FILE    TLS private key (PEM)
    USERAPI_LOG_LEVEL   DEBUG | INFO | WARNING | ERROR
    USERAPI_WORKERS     max worker threads

=============================================================================
"""

import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class Environment(str, Enum):
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Environment":
        """Lenient lookup: unknown or missing names fall back to staging."""
        name = (value or "").strip().lower()
        if name == cls.PRODUCTION.value:
            return cls.PRODUCTION
        return cls.STAGING


_ENVIRONMENTS = {
    Environment.STAGING: {
        "http_port": 3000,
        "https_port": 3001,
        "hashing_secret": "thisIsAStagingSecret",
    },
    Environment.PRODUCTION: {
        "http_port": 5000,
        "https_port": 5001,
        "hashing_secret": "thisIsAProductionSecret",
    },
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the API server.

    Groups:
        network     host, http_port, https_port, backlog, buffer_size, timeout
        http        keep_alive, keep_alive_timeout, max_request_size
        tls         cert_file, key_file
        threads     min_workers, max_workers, queue_size
        app         env_name, hashing_secret, data_dir
        logging     log_level, log_format
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────
    host: str = "127.0.0.1"
    http_port: int = 3000
    https_port: int = 3001
    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0

    # ─────────────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────────────
    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024  # 1 MB, request bodies are small JSON

    # ─────────────────────────────────────────────────────────────────────
    # TLS
    # ─────────────────────────────────────────────────────────────────────
    cert_file: Optional[str] = None
    key_file: Optional[str] = None

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL
    # ─────────────────────────────────────────────────────────────────────
    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 100

    # ─────────────────────────────────────────────────────────────────────
    # APPLICATION
    # ─────────────────────────────────────────────────────────────────────
    env_name: str = Environment.STAGING.value
    hashing_secret: str = "thisIsAStagingSecret"
    data_dir: str = ".data"

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "text"

    server_name: str = "userapi/1.0"

    @property
    def tls_enabled(self) -> bool:
        return bool(self.cert_file and self.key_file)

    @classmethod
    def for_environment(cls, name: Optional[str] = None, **overrides) -> "ServerConfig":
        """
        Config preset for an environment name.

            ServerConfig.for_environment("production").http_port   # 5000
            ServerConfig.for_environment("nonsense").env_name      # "staging"
        """
        env = Environment.parse(name)
        return cls(env_name=env.value, **{**_ENVIRONMENTS[env], **overrides})

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Build configuration from environment variables.

            APP_ENV=production USERAPI_LOG_LEVEL=DEBUG python -m userapi
        """
        config = cls.for_environment(os.getenv("APP_ENV"))
        overrides = {}

        if os.getenv("USERAPI_HOST"):
            overrides["host"] = os.environ["USERAPI_HOST"]
        if os.getenv("USERAPI_DATA_DIR"):
            overrides["data_dir"] = os.environ["USERAPI_DATA_DIR"]
        if os.getenv("USERAPI_CERT_FILE"):
            overrides["cert_file"] = os.environ["USERAPI_CERT_FILE"]
        if os.getenv("USERAPI_KEY_FILE"):
            overrides["key_file"] = os.environ["USERAPI_KEY_FILE"]
        if os.getenv("USERAPI_LOG_LEVEL"):
            overrides["log_level"] = os.environ["USERAPI_LOG_LEVEL"].upper()
        if os.getenv("USERAPI_WORKERS"):
            workers = int(os.environ["USERAPI_WORKERS"])
            overrides["max_workers"] = workers
            overrides["min_workers"] = min(config.min_workers, workers)

        return replace(config, **overrides)

    def validate(self) -> None:
        """
        Fail fast on bad values.

        Raises:
            ValueError: Describing the first invalid setting.
        """
        for name in ("http_port", "https_port"):
            port = getattr(self, name)
            # 0 asks the OS for an ephemeral port
            if not 0 <= port < 65536:
                raise ValueError(f"Invalid {name}: {port}. Must be 0-65535.")
        if self.http_port and self.http_port == self.https_port and self.tls_enabled:
            raise ValueError("http_port and https_port must differ")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")
        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")
        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.max_request_size < 1024:
            raise ValueError("max_request_size must be >= 1024")

        if not self.hashing_secret:
            raise ValueError("hashing_secret must not be empty")
        if not self.data_dir:
            raise ValueError("data_dir must not be empty")

        if bool(self.cert_file) != bool(self.key_file):
            raise ValueError("cert_file and key_file must be set together")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")
        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")
