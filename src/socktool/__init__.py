"""
=============================================================================
SOCKTOOL - Batch Client/Listener for Text Network Protocols
=============================================================================

socktool opens a TCP connection (or waits for one), sends a batch of
delimited messages from a file, and writes every response to an output
file. It is meant for line-oriented protocols that have no framing of their
own: SMTP-like command sets, telnet-style consoles, home-grown control
ports.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        SOCKTOOL DATA FLOW                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   input file ──► split on __END_MSG__ ──► normalize each message    │
    │                                                │                     │
    │                                                ▼                     │
    │                     ┌────────── for each message ──────────┐        │
    │                     │  Writer ──► socket ──► Reader ──► sink │        │
    │                     └───────────────────────────────────────┘        │
    │                                                                      │
    │   Destinations are tried in order. Each gets up to conn_retry       │
    │   attempts; the first one that answers ends the session.            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    socktool/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m socktool)
    ├── config.py            # ClientConfig dataclass, Destination
    ├── errors.py            # FatalError, UsageError, BindError
    ├── log.py               # Verbosity levels, stderr formatting
    ├── session.py           # SessionDriver: destinations and retries
    └── core/                # Socket I/O engine
        ├── readiness.py     # can_write / can_read with bounded wait
        ├── connection.py    # Connected-socket wrapper
        ├── connector.py     # Dial out or bind + accept
        ├── writer.py        # Send phase
        ├── reader.py        # Receive phase
        ├── exchange.py      # Split input, one write/read per message
        └── results.py       # TransferResult codes

=============================================================================
QUICK START
=============================================================================

    import io
    from socktool import ClientConfig, Destination, SessionDriver

    config = ClientConfig(select_timeout=1.0, read_timeout=10.0)
    out = io.BytesIO()

    rc = SessionDriver(config).run(
        [Destination.parse("localhost:7000")],
        b"STATUS__END_MSG__QUIT",
        out,
    )
    if rc > 0:
        print(out.getvalue().decode())

=============================================================================
"""

__version__ = "1.6.0"

from .config import ClientConfig, Destination
from .errors import BindError, FatalError, SockToolError, UsageError
from .core.results import TransferResult
from .session import SessionDriver

__all__ = [
    "ClientConfig",
    "Destination",
    "SessionDriver",
    "TransferResult",
    "SockToolError",
    "FatalError",
    "BindError",
    "UsageError",
    "__version__",
]
