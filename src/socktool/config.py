"""
=============================================================================
CLIENT CONFIGURATION
=============================================================================

Centralized configuration for socktool: every timeout, retry budget and
buffer size the engine uses lives in one dataclass.

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
    │      └── socktool -l 9999 -vv                                       │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── SOCKTOOL_READ_TIMEOUT=5 socktool host:port                 │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THE TIMEOUTS, AND WHO ENFORCES THEM
=============================================================================

    select_timeout   (5s)   One readiness wait. Enforced by the selector.
    socket_timeout  (10s)   One blocking send()/recv(). Enforced by the
                            socket itself via settimeout().
    read_timeout    (60s)   A whole Reader call. Enforced by the Reader's
                            own loop, not by any system call.
    conn_retry_delay(15s)   Sleep between connection attempts.
    accept_timeout  (60s)   Listen mode: how long to wait for a peer.

=============================================================================
"""

import os
import re
from dataclasses import dataclass
from typing import Optional


# host:port where host is an IPv4 literal or a hostname
_DESTINATION_RE = re.compile(
    r"^(?P<host>\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}|[-\w.]+):(?P<port>\d+)$"
)

DEFAULT_DELIMITER = b"__END_MSG__"


@dataclass(frozen=True)
class Destination:
    """
    A host and port to dial (or, in listen mode, to bind).

    Immutable once parsed. One Destination is consumed by the connection
    manager once per attempt.

        >>> Destination.parse("10.0.0.1:9000")
        Destination(host='10.0.0.1', port=9000)
    """

    host: str
    port: int

    @classmethod
    def parse(cls, text: str) -> "Destination":
        """
        Parse a ``host:port`` string.

        Raises:
            ValueError: If the text is not ``host:port`` or the port is out
                        of range.
        """
        match = _DESTINATION_RE.match(text.strip())
        if not match:
            raise ValueError(f"Invalid destination: {text!r} (expected host:port)")

        port = int(match.group("port"))
        if not 0 < port < 65536:
            raise ValueError(f"Invalid port in destination {text!r}: {port}")

        return cls(host=match.group("host"), port=port)

    @property
    def address(self) -> tuple[str, int]:
        """The (host, port) tuple accepted by the socket module."""
        return (self.host, self.port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class ClientConfig:
    """
    Configuration for one socktool run.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    RETRY BUDGETS
    - conn_retry, conn_retry_delay, send_retry

    TIMEOUTS
    - socket_timeout, read_timeout, select_timeout, accept_timeout

    I/O
    - chunk_size, delimiter

    LISTEN MODE
    - listen_port, bind_host, listen_backlog

    LOGGING
    - verbosity

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # RETRY BUDGETS
    # ─────────────────────────────────────────────────────────────────────

    conn_retry: int = 3
    """Total connection attempts per destination."""

    conn_retry_delay: float = 15.0
    """Seconds to sleep between connection attempts."""

    send_retry: int = 2
    """Writability waits per message before the writer gives up."""

    # ─────────────────────────────────────────────────────────────────────
    # TIMEOUTS
    # ─────────────────────────────────────────────────────────────────────

    socket_timeout: float = 10.0
    """Idle timeout applied to the socket with settimeout()."""

    read_timeout: float = 60.0
    """Overall time budget for one Reader call."""

    select_timeout: float = 5.0
    """Maximum wait for a single readiness check."""

    accept_timeout: float = 60.0
    """Listen mode: maximum wait for a peer to connect."""

    # ─────────────────────────────────────────────────────────────────────
    # I/O
    # ─────────────────────────────────────────────────────────────────────

    chunk_size: int = 1500
    """Bytes requested from recv() per readable round."""

    delimiter: bytes = DEFAULT_DELIMITER
    """Literal token separating messages in the input."""

    # ─────────────────────────────────────────────────────────────────────
    # LISTEN MODE
    # ─────────────────────────────────────────────────────────────────────

    listen_port: Optional[int] = None
    """If set, bind and accept on this port instead of dialling out."""

    bind_host: str = "localhost"
    """Bind address used in listen mode when no destination is given."""

    listen_backlog: int = 1024

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    verbosity: Optional[int] = 2
    """Starting verbosity; None silences everything."""

    @property
    def listen_mode(self) -> bool:
        return self.listen_port is not None

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        SOCKTOOL_CONN_RETRY         Connection attempts (default: 3)
        SOCKTOOL_CONN_RETRY_DELAY   Delay between attempts (default: 15)
        SOCKTOOL_SEND_RETRY         Writability waits (default: 2)
        SOCKTOOL_SOCKET_TIMEOUT     Socket idle timeout (default: 10)
        SOCKTOOL_READ_TIMEOUT       Overall read timeout (default: 60)
        SOCKTOOL_SELECT_TIMEOUT     Readiness wait (default: 5)
        SOCKTOOL_CHUNK_SIZE         recv() size (default: 1500)
        SOCKTOOL_VERBOSITY          Integer, or "off" (default: 2)

        =====================================================================
        """
        verbosity_env = os.getenv("SOCKTOOL_VERBOSITY", "2").strip().lower()
        verbosity = None if verbosity_env in ("off", "none", "") else int(verbosity_env)

        return cls(
            conn_retry=int(os.getenv("SOCKTOOL_CONN_RETRY", "3")),
            conn_retry_delay=float(os.getenv("SOCKTOOL_CONN_RETRY_DELAY", "15")),
            send_retry=int(os.getenv("SOCKTOOL_SEND_RETRY", "2")),
            socket_timeout=float(os.getenv("SOCKTOOL_SOCKET_TIMEOUT", "10")),
            read_timeout=float(os.getenv("SOCKTOOL_READ_TIMEOUT", "60")),
            select_timeout=float(os.getenv("SOCKTOOL_SELECT_TIMEOUT", "5")),
            chunk_size=int(os.getenv("SOCKTOOL_CHUNK_SIZE", "1500")),
            verbosity=verbosity,
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so that a bad environment variable fails
        before any socket is opened.
        """
        if self.conn_retry < 1:
            raise ValueError("conn_retry must be >= 1")

        if self.send_retry < 1:
            raise ValueError("send_retry must be >= 1")

        if self.conn_retry_delay < 0:
            raise ValueError("conn_retry_delay must be >= 0")

        for name in ("socket_timeout", "read_timeout", "select_timeout", "accept_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if not self.delimiter:
            raise ValueError("delimiter must not be empty")

        if self.listen_port is not None and not 0 < self.listen_port < 65536:
            raise ValueError(f"Invalid listen port: {self.listen_port}. Must be 1-65535.")
