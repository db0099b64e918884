"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized, immutable configuration for the file server.

=============================================================================
WHY A FROZEN DATACLASS?
=============================================================================

Every worker thread reads the configuration (the served root, the port
shown in listing footers, the debug flag). Nothing ever writes to it once
the server starts, so we make that a guarantee instead of a convention:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHO READS THE CONFIG?                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   CLI / from_env()                                                  │
    │        │                                                             │
    │        ▼                                                             │
    │   ServerConfig(frozen=True) ──────┬──────────────┬─────────────┐    │
    │                                   │              │             │    │
    │                                   ▼              ▼             ▼    │
    │                            SocketServer     Worker 1 ...  Worker N  │
    │                            (bind, TLS)      (root, port, debug)     │
    │                                                                      │
    │   No locks needed: a value nobody can mutate is always consistent. │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

If you need a variation (tests binding another port, say), build a new one
with dataclasses.replace().

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    1. Command-line arguments      python -m tinyhttpd -port 8080 -path ./www
    2. Environment variables       TINYHTTPD_PORT=8080 (see from_env)
    3. Defaults in this dataclass

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    SERVED CONTENT
    - root_directory

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    TLS
    - tls_cert_path, tls_key_path

    CONCURRENCY & SHUTDOWN
    - max_connections, accept_poll_interval, shutdown_grace_period

    DIAGNOSTICS
    - debug, server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # SERVED CONTENT
    # ─────────────────────────────────────────────────────────────────────

    root_directory: str = "."
    """
    Directory exposed as URL path "/".
    Request paths are appended to it verbatim (no normalization).
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    port: int = 8080
    """Port to listen on (1-65535)."""

    host: str = "0.0.0.0"
    """
    Address to bind to.
    - "0.0.0.0" - All IPv4 interfaces (the classic tinyhttpd behavior)
    - "127.0.0.1" - Localhost only
    """

    backlog: int = 3
    """
    Listen queue length.
    Small on purpose: connections are handed to a thread immediately,
    so the queue only has to absorb the gap between two accept() calls.
    """

    buffer_size: int = 4096
    """
    Size of the single read used to receive a request.
    Headers beyond this size are not read (see RequestParser).
    """

    timeout: Optional[float] = None
    """
    Per-connection socket timeout in seconds.
    None = fully blocking: a client that connects and never sends
    anything keeps its worker thread forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # TLS
    # ─────────────────────────────────────────────────────────────────────

    tls_cert_path: Optional[str] = None
    """PEM certificate chain. Setting it enables TLS."""

    tls_key_path: Optional[str] = None
    """Private key, when it is not bundled into the certificate PEM."""

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY & SHUTDOWN
    # ─────────────────────────────────────────────────────────────────────

    max_connections: Optional[int] = None
    """
    Upper bound on simultaneously running workers.
    None = one thread per connection, no limit.
    """

    accept_poll_interval: float = 1.0
    """How often (seconds) the accept loop wakes up to check for shutdown."""

    shutdown_grace_period: float = 5.0
    """How long (seconds) shutdown waits for in-flight workers."""

    # ─────────────────────────────────────────────────────────────────────
    # DIAGNOSTICS
    # ─────────────────────────────────────────────────────────────────────

    debug: bool = False
    """Log raw requests and responses, and lower log level to DEBUG."""

    server_name: str = "tinyhttpd"
    """Name shown in the directory listing footer."""

    @property
    def tls_enabled(self) -> bool:
        """TLS is on whenever a certificate path is configured."""
        return self.tls_cert_path is not None

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        TINYHTTPD_ROOT             Served directory (default: .)
        TINYHTTPD_HOST             Bind address (default: 0.0.0.0)
        TINYHTTPD_PORT             Port (default: 8080)
        TINYHTTPD_SSL_CERT         Certificate path, enables TLS
        TINYHTTPD_SSL_KEY          Private key path
        TINYHTTPD_DEBUG            "1", "true" or "yes" enables debug mode
        TINYHTTPD_MAX_CONNECTIONS  Worker bound (default: unbounded)

        =====================================================================
        """
        max_connections = os.getenv("TINYHTTPD_MAX_CONNECTIONS")
        return cls(
            root_directory=os.getenv("TINYHTTPD_ROOT", "."),
            host=os.getenv("TINYHTTPD_HOST", "0.0.0.0"),
            port=int(os.getenv("TINYHTTPD_PORT", "8080")),
            tls_cert_path=os.getenv("TINYHTTPD_SSL_CERT") or None,
            tls_key_path=os.getenv("TINYHTTPD_SSL_KEY") or None,
            debug=os.getenv("TINYHTTPD_DEBUG", "").lower() in ("1", "true", "yes"),
            max_connections=int(max_connections) if max_connections else None,
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a typo in -path fails immediately
        instead of turning every request into a fallback listing.
        """
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")

        if not os.path.isdir(self.root_directory):
            raise ValueError(f"Root directory does not exist: {self.root_directory}")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_connections is not None and self.max_connections < 1:
            raise ValueError("max_connections must be >= 1")

        if self.accept_poll_interval <= 0:
            raise ValueError("accept_poll_interval must be > 0")

        if self.shutdown_grace_period < 0:
            raise ValueError("shutdown_grace_period must be >= 0")

        if self.tls_key_path is not None and self.tls_cert_path is None:
            raise ValueError("tls_key_path requires tls_cert_path")
