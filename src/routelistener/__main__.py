"""
=============================================================================
ROUTELISTENER CLI ENTRY POINT
=============================================================================

Runs a listener that serves a directory and stops on GET /Exit.

=============================================================================
USAGE
=============================================================================

    # Defaults (127.0.0.1:80, exit route only)
    python -m routelistener

    # Serve ./public on port 8080
    python -m routelistener --port 8080 --root ./public

    # Stop it again
    curl http://127.0.0.1:8080/Exit

Environment variables (LISTENER_HOST, LISTENER_PORT, LISTENER_TIMEOUT,
LISTENER_ROOT, LISTENER_LOG_LEVEL) provide the defaults; arguments given
on the command line win.

=============================================================================
ROUTE ORDER
=============================================================================

    1. Exit     -> exit_handler     registered first, so the catch-all
    2. ^/       -> FileHandler      below cannot shadow it

=============================================================================
"""

import argparse
import sys

from . import __version__
from .server import HTTPListener
from .config import ListenerConfig, LOG_LEVELS
from .core import ListenerStartError
from .handlers import FileHandler, exit_handler
from .http import EXIT_PATTERN


def build_parser(defaults: ListenerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="routelistener",
        description="Single-threaded HTTP listener with regex routing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m routelistener --port 8080                  # exit route only
  python -m routelistener --port 8080 --root ./public  # serve a directory
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FEATURE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        default=defaults.static_dir,
        help="Directory to serve for every path except Exit"
    )

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level.upper()})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"routelistener {__version__}"
    )

    return parser


def main(argv=None) -> int:
    """
    CLI entry point.

    Returns:
        Process exit code: 0 after a clean shutdown, 1 if the listener
        could not be configured or started.
    """
    try:
        defaults = ListenerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid environment setting: {e}", file=sys.stderr)
        return 1

    args = build_parser(defaults).parse_args(argv)

    defaults.host = args.host
    defaults.port = args.port
    defaults.static_dir = args.root
    defaults.log_level = args.log_level

    try:
        listener = HTTPListener(defaults)
        listener.add_route(EXIT_PATTERN, exit_handler)
        if args.root:
            listener.add_route(r"^/", FileHandler(args.root))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        listener.run()
    except ListenerStartError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
