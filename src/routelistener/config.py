"""
=============================================================================
LISTENER CONFIGURATION
=============================================================================

All startup parameters in one dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION SOURCES                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m routelistener --port 8080                       │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── LISTENER_PORT=8080 python -m routelistener                │
    │                                                                      │
    │   3. Defaults (this dataclass)                                      │
    │      └── loopback, port 80                                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Values are validated once, when the listener is constructed. A bad port
or timeout fails immediately instead of at the first request.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ListenerConfig:
    """
    Configuration for ``HTTPListener``.

    =========================================================================
    GROUPS
    =========================================================================

    NETWORK     host, port, backlog, buffer_size, timeout
    HTTP        max_request_size, server_name
    ROUTING     route_ignore_case, content_types
    FILES       static_dir (used by the CLI only)
    LOGGING     log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. Loopback by default; "0.0.0.0" for all interfaces."""

    port: int = 80
    """Port to listen on. Below 1024 needs elevated privileges on Unix."""

    backlog: int = 16
    """
    Listen queue length. Connections arriving while a handler runs wait
    here; this is the only queueing the listener has.
    """

    buffer_size: int = 8192
    """Bytes per recv() call."""

    timeout: Optional[float] = 30.0
    """
    Seconds a client may take to send its request. None waits forever,
    which lets one silent client block the whole listener.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────────────

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Requests larger than this are answered with 413."""

    server_name: str = "routelistener/1.0"
    """Value of the Server response header."""

    # ─────────────────────────────────────────────────────────────────────
    # ROUTING
    # ─────────────────────────────────────────────────────────────────────

    route_ignore_case: bool = False
    """Compile route patterns with re.IGNORECASE."""

    content_types: Dict[str, str] = field(default_factory=dict)
    """Extension → MIME type overrides, checked before the built-in table."""

    static_dir: Optional[str] = None
    """Directory the CLI serves with a FileHandler, if set."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ListenerConfig":
        """
        Build a configuration from environment variables.

        LISTENER_HOST       bind address (default: 127.0.0.1)
        LISTENER_PORT       port (default: 80)
        LISTENER_TIMEOUT    request read timeout in seconds (default: 30)
        LISTENER_ROOT       directory for static files (default: none)
        LISTENER_LOG_LEVEL  logging level (default: INFO)
        """
        return cls(
            host=os.getenv("LISTENER_HOST", "127.0.0.1"),
            port=int(os.getenv("LISTENER_PORT", "80")),
            timeout=float(os.getenv("LISTENER_TIMEOUT", "30")),
            static_dir=os.getenv("LISTENER_ROOT"),
            log_level=os.getenv("LISTENER_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Check values eagerly.

        Raises:
            ValueError: Describing the first invalid setting.
        """
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_request_size < 1024:
            raise ValueError("max_request_size must be >= 1024")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log_level: {self.log_level}. Must be one of {', '.join(LOG_LEVELS)}."
            )
