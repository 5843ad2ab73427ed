"""
=============================================================================
COMMAND LINE INTERFACE
=============================================================================

    python -m userapi [options]
    userapi [options]

Configuration is read from the environment first (APP_ENV, USERAPI_*),
then command-line options override individual values.

=============================================================================
"""

import argparse
import logging
import sys
from dataclasses import replace

from . import __version__
from .config import ServerConfig, LOG_LEVELS
from .http import RouteConflictError
from .server import create_app

logger = logging.getLogger("userapi")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="userapi",
        description="JSON API for user accounts and session tokens",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m userapi                              # staging on 3000/3001
  APP_ENV=production python -m userapi           # production on 5000/5001
  python -m userapi --cert cert.pem --key key.pem
  python -m userapi --data-dir /var/lib/userapi --workers 8
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # ENVIRONMENT
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--env", "-e",
        default=None,
        help="Environment name: staging or production (default: $APP_ENV or staging)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument("--host", "-H", default=None, help="Host to bind to")
    parser.add_argument("--port", "-p", type=int, default=None, help="HTTP port")
    parser.add_argument("--https-port", type=int, default=None, help="HTTPS port")
    parser.add_argument("--cert", default=None, help="TLS certificate file (PEM)")
    parser.add_argument("--key", default=None, help="TLS private key file (PEM)")

    # ─────────────────────────────────────────────────────────────────────
    # STORAGE / PERFORMANCE
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument("--data-dir", "-d", default=None, help="Record directory")
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Maximum worker threads"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        type=str.upper,
        default=None,
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        default=None,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"userapi {__version__}"
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment-derived config with command-line overrides applied."""
    if args.env is not None:
        config = replace(ServerConfig.from_env(), **_env_preset(args.env))
    else:
        config = ServerConfig.from_env()

    overrides = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["http_port"] = args.port
    if args.https_port is not None:
        overrides["https_port"] = args.https_port
    if args.cert is not None:
        overrides["cert_file"] = args.cert
    if args.key is not None:
        overrides["key_file"] = args.key
    if args.data_dir is not None:
        overrides["data_dir"] = args.data_dir
    if args.workers is not None:
        overrides["max_workers"] = args.workers
        overrides["min_workers"] = min(config.min_workers, args.workers)
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if args.log_format is not None:
        overrides["log_format"] = args.log_format

    return replace(config, **overrides)


def _env_preset(name: str) -> dict:
    preset = ServerConfig.for_environment(name)
    return {
        "env_name": preset.env_name,
        "http_port": preset.http_port,
        "https_port": preset.https_port,
        "hashing_secret": preset.hashing_secret,
    }


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        config.validate()
    except ValueError as e:
        print(f"userapi: invalid configuration: {e}", file=sys.stderr)
        return 1

    try:
        server = create_app(config)
    except RouteConflictError as e:
        logger.error(f"Cannot start: {e}")
        return 1

    try:
        server.run()
    except OSError as e:
        logger.error(f"Server failed to start: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
