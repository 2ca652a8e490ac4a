"""
=============================================================================
RELAY SERVER CLI ENTRY POINT
=============================================================================

    # Run with defaults (every local address, port 9034)
    python -m relayserver

    # Custom port, loopback only
    python -m relayserver --host 127.0.0.1 --port 9100

    # Machine-readable logs
    python -m relayserver --log-format json

    # Never drop the tail of a fragment on a short write
    python -m relayserver --send-all

Exit codes:
    0  stopped by SIGINT/SIGTERM
    1  address resolution failed
    2  no candidate address could be bound
    3  listen() failed
    4  the readiness wait failed
   64  bad arguments or configuration

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, RelayConfig
from .errors import ExitCode, FatalError
from .server import RelayServer


logger = logging.getLogger("relayserver")


class RelayArgumentParser(argparse.ArgumentParser):
    """ArgumentParser whose usage errors exit with EX_USAGE, not 2."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(int(ExitCode.USAGE), f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = RelayArgumentParser(
        prog="relayserver",
        description="Single-process TCP relay: bytes from one peer go to every other peer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m relayserver                          # Every local address, port 9034
  python -m relayserver --host 127.0.0.1         # Loopback only
  python -m relayserver --port 9100              # Custom port
  python -m relayserver --log-format json        # JSON logs
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Address to bind (default: every local address, IPv4 and IPv6)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 9034)"
    )

    parser.add_argument(
        "--backlog", "-b",
        type=int,
        default=None,
        help="Pending connection queue size (default: 10)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # RELAY ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--buffer-size",
        type=int,
        default=None,
        help="Largest fragment read per event, in bytes (default: 256)"
    )

    parser.add_argument(
        "--send-all",
        action="store_true",
        help="Retry short writes until the whole fragment is delivered"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
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
        choices=LOG_FORMATS,
        default=None,
        help="Log output format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"relayserver {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> RelayConfig:
    """Environment first, then any flag given on the command line."""
    config = RelayConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.backlog is not None:
        config.backlog = args.backlog
    if args.buffer_size is not None:
        config.buffer_size = args.buffer_size
    if args.send_all:
        config.send_all = True
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format

    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments, run the relay, and return the process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        server = RelayServer(config)
    except ValueError as e:
        parser.error(str(e))

    try:
        server.run()
    except FatalError as e:
        logger.critical(e.message)
        return int(e.exit_code)

    return int(ExitCode.OK)


if __name__ == "__main__":
    sys.exit(main())
