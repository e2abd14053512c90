"""
=============================================================================
COMMAND-LINE INTERFACE
=============================================================================

    python -m pagepool [options]
    pagepool [options]              (console script)

Examples:
    python -m pagepool                        # Serve ./ on 127.0.0.1:7878
    python -m pagepool --root ./site          # Serve another directory
    python -m pagepool --workers 8 -p 8080    # 8 workers on port 8080
    python -m pagepool --root ./public --flat # Serve files directly in root

Flags override PAGEPOOL_* environment variables, which override defaults.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig
from .server import StaticServer, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagepool",
        description="Concurrent static page server with a fixed worker pool",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 7878)")
    parser.add_argument(
        "--timeout",
        type=float,
        help="Per-connection read/write deadline in seconds (default: 30)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # WORKERS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--workers", "-w", type=int, help="Worker threads (default: 4)")

    # ─────────────────────────────────────────────────────────────────────
    # SITE
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--root", "-r", dest="root_dir", help="Site root directory (default: .)")
    parser.add_argument(
        "--flat",
        action="store_true",
        default=None,
        help="Serve files directly inside the root instead of its subfolders",
    )
    parser.add_argument(
        "--not-found",
        dest="not_found_page",
        help="Page served with 404 responses, relative to the root (default: pages/404.html)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Access log format (default: text)",
    )

    parser.add_argument("--version", "-v", action="version", version=f"pagepool {__version__}")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Returns the process exit status: 0 after a clean shutdown, 1 when the
    configuration is invalid or the port cannot be bound.
    """
    args = build_parser().parse_args(argv)

    try:
        config = ServerConfig.from_env(**vars(args))
        config.validate()
    except (TypeError, ValueError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(config.log_level)

    try:
        server = StaticServer(config)
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
