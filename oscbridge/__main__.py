"""
OSC Bridge command line

Usage:
    python -m oscbridge [--ws-port 8000] [--osc-port 9000] [--osc-host 127.0.0.1]
                        [--mode separate|single|blended|zones] [--zones 4]

Flags override OSC_BRIDGE_* environment variables (and .env).
Ctrl+C / SIGTERM stops accepting connections, closes the OSC socket and
exits 0. Invalid configuration exits 2; a port that cannot be bound
exits non-zero before any client is accepted.
"""

import argparse
import logging
import sys

import uvicorn

from oscbridge import __version__
from oscbridge.config import ConfigError, RouterSettings, configure_logging
from oscbridge.policy import RoutingMode
from oscbridge.transport import create_app

logger = logging.getLogger("oscbridge")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oscbridge",
        description="Route pointer events from many WebSocket clients onto one OSC sink.",
    )
    parser.add_argument("--host", dest="listen_host", help="WebSocket listen interface")
    parser.add_argument("--ws-port", type=int, help="WebSocket listen port (default 8000)")
    parser.add_argument("--osc-host", help="OSC sink host (default 127.0.0.1)")
    parser.add_argument("--osc-port", type=int, help="OSC sink port (default 9000)")
    parser.add_argument(
        "--osc-local-port",
        type=int,
        help="Local UDP port for outgoing OSC, 0 for ephemeral (default 57121)",
    )
    parser.add_argument(
        "--mode",
        dest="initial_mode",
        choices=[m.value for m in RoutingMode],
        help="Initial routing mode (default separate)",
    )
    parser.add_argument(
        "--zones",
        dest="zone_count",
        type=int,
        help="Zone count for zones mode, a perfect square (default 4)",
    )
    parser.add_argument("--log-level", help="Logging level (default INFO)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_settings(argv: list[str] | None = None) -> RouterSettings:
    """
    Resolve settings from the environment and command line.

    Exits with status 2 on invalid configuration.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = RouterSettings.from_env().with_overrides(**vars(args))
        return settings.validate()
    except ConfigError as e:
        parser.error(str(e))


def main(argv: list[str] | None = None) -> None:
    settings = load_settings(argv)
    configure_logging(settings.log_level)

    app = create_app(settings)

    logger.info(
        f"OSC bridge v{__version__}: ws://{settings.listen_host}:{settings.ws_port} "
        f"-> osc://{settings.osc_host}:{settings.osc_port}"
    )

    uvicorn.run(
        app,
        host=settings.listen_host,
        port=settings.ws_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    sys.exit(main())
