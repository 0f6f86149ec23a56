"""
=============================================================================
CORE I/O ENGINE
=============================================================================

The socket-level building blocks of socktool, leaf first:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        CORE COMPONENTS                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    ┌──────────────────┐                                              │
    │    │ ConnectionManager│  dial out, or bind + accept                  │
    │    └────────┬─────────┘                                              │
    │             │ Connection                                             │
    │    ┌────────▼─────────┐                                              │
    │    │ MessageExchange  │  split input, one pass per message          │
    │    └───┬──────────┬───┘                                              │
    │        │          │                                                  │
    │    ┌───▼───┐  ┌───▼───┐                                              │
    │    │Writer │  │Reader │  send phase / receive phase                  │
    │    └───┬───┘  └───┬───┘                                              │
    │        └────┬─────┘                                                  │
    │    ┌────────▼─────────┐                                              │
    │    │    Readiness     │  can_write() / can_read() with bounded wait  │
    │    └──────────────────┘                                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Everything here is single-threaded and blocking with bounded waits. The
only suspension points are the readiness waits and the send()/recv() call
that follows a positive readiness result.

=============================================================================
"""

from .connection import Connection, ConnectionState
from .connector import ConnectionManager
from .exchange import MessageExchange, normalize, split_messages
from .readiness import Readiness
from .reader import Reader
from .results import TransferResult, describe, is_failure
from .writer import Writer

__all__ = [
    "Connection",         # Wrapper for a connected socket
    "ConnectionState",    # Lifecycle states of a Connection
    "ConnectionManager",  # Dial or listen, returns Connections
    "MessageExchange",    # Per-message write/read loop
    "normalize",          # Message normalization
    "split_messages",     # Input splitting on the delimiter
    "Readiness",          # Single-socket select wrapper
    "Reader",             # Receive phase
    "Writer",             # Send phase
    "TransferResult",     # Negative result codes
    "describe",
    "is_failure",
]
