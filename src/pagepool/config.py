"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the page server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m pagepool --port 3000                            │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── PAGEPOOL_PORT=3000 python -m pagepool                     │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
FAIL FAST
=============================================================================

validate() runs before anything binds a socket or starts a thread. A zero
worker count or a bad port ends the process at startup with a clear
message, never hours later.

=============================================================================
"""

import os
from dataclasses import dataclass, field, fields
from typing import Optional, Tuple

from .access_log import LOG_FORMATS
from .core.thread_pool import InvalidPoolSize
from .http.routes import DEFAULT_RESERVED_NAMES


@dataclass
class ServerConfig:
    """
    Configuration for the page server.

    Development:
        ServerConfig(root_dir="./site", log_level="DEBUG")

    Production:
        ServerConfig(host="0.0.0.0", port=80, workers=16, root_dir="/srv/site")
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """IP address to bind. "0.0.0.0" listens on every interface."""

    port: int = 7878
    """TCP port. 0 lets the OS pick a free one (useful in tests)."""

    backlog: int = 128
    """Connections the OS queues before accept() picks them up."""

    timeout: Optional[float] = 30.0
    """
    Per-connection read/write deadline in seconds.
    Bounds how long one slow client can occupy a worker.
    None = no deadline (a silent client holds its worker forever).
    """

    max_line_size: int = 8192
    """Longest request line accepted, in bytes. Longer lines get a 400."""

    # ─────────────────────────────────────────────────────────────────────
    # WORKERS
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 4
    """Number of worker threads. Fixed for the life of the process."""

    # ─────────────────────────────────────────────────────────────────────
    # SITE
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "."
    """Site root scanned for routes at startup."""

    flat: bool = False
    """Route the files in root_dir itself instead of its first-level folders."""

    reserved_names: Tuple[str, ...] = field(default=DEFAULT_RESERVED_NAMES)
    """First-level folder names never scanned."""

    index_file: Optional[str] = "index.html"
    """File also served at "/". None disables the alias."""

    not_found_page: str = os.path.join("pages", "404.html")
    """Page served with every 404. Relative paths are under root_dir."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: "text" or "json"."""

    @property
    def not_found_path(self) -> str:
        """not_found_page resolved against root_dir."""
        return os.path.join(self.root_dir, self.not_found_page)

    @classmethod
    def from_env(cls, environ: Optional[dict] = None, **overrides) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        PAGEPOOL_HOST        Bind address (default: 127.0.0.1)
        PAGEPOOL_PORT        Port (default: 7878)
        PAGEPOOL_WORKERS     Worker threads (default: 4)
        PAGEPOOL_TIMEOUT     Connection deadline in seconds (default: 30)
        PAGEPOOL_ROOT        Site root (default: .)
        PAGEPOOL_FLAT        "1"/"true" to scan the root flat
        PAGEPOOL_NOT_FOUND   Not-found page (default: pages/404.html)
        PAGEPOOL_LOG_LEVEL   Logging level (default: INFO)
        PAGEPOOL_LOG_FORMAT  text or json (default: text)

        =====================================================================

        Args:
            environ: Mapping to read instead of os.environ.
            **overrides: Values that win over the environment (CLI flags).
                         None values are ignored.

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        values = {
            "host": env.get("PAGEPOOL_HOST", defaults.host),
            "port": int(env.get("PAGEPOOL_PORT", defaults.port)),
            "workers": int(env.get("PAGEPOOL_WORKERS", defaults.workers)),
            "timeout": float(env.get("PAGEPOOL_TIMEOUT", defaults.timeout)),
            "root_dir": env.get("PAGEPOOL_ROOT", defaults.root_dir),
            "flat": env.get("PAGEPOOL_FLAT", "").lower() in ("1", "true", "yes"),
            "not_found_page": env.get("PAGEPOOL_NOT_FOUND", defaults.not_found_page),
            "log_level": env.get("PAGEPOOL_LOG_LEVEL", defaults.log_level),
            "log_format": env.get("PAGEPOOL_LOG_FORMAT", defaults.log_format),
        }

        known = {f.name for f in fields(cls)}
        for name, value in overrides.items():
            if name not in known:
                raise TypeError(f"Unknown config option: {name}")
            if value is not None:
                values[name] = value

        return cls(**values)

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            InvalidPoolSize: If workers is not a positive integer.
            ValueError: For any other bad value.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if isinstance(self.workers, bool) or not isinstance(self.workers, int) or self.workers < 1:
            raise InvalidPoolSize(self.workers)

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_line_size < 16:
            raise ValueError("max_line_size must be >= 16")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {self.log_format!r}")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log_level: {self.log_level}")
