"""
=============================================================================
CONNECTION
=============================================================================

This module wraps an established TCP socket with the small amount of state
the writer and reader need: who the peer is, whether it is still there, and
how to shut the socket down cleanly.

=============================================================================
WHAT DOES "CONNECTED" MEAN?
=============================================================================

Both I/O phases begin every round by asking the connection whether it is
still connected. A socket can stop being usable in three ways:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      WAYS A CONNECTION ENDS                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. WE CLOSED IT                                                     │
    │     └── close() was called, the descriptor is gone                   │
    │                                                                      │
    │  2. THE KERNEL FORGOT THE PEER                                       │
    │     └── getpeername() raises ENOTCONN (reset, never connected)       │
    │                                                                      │
    │  3. THE PEER SENT FIN                                                │
    │     └── recv() returned b"" on a readable socket                     │
    │     └── getpeername() still works, so we remember it ourselves       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The third case matters: without it a reader facing a closed peer would see
"readable, zero bytes" forever.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    OPEN ──► WRITING ──► READING ──┐
     ▲                              │ (next message)
     └──────────────────────────────┘
     │
     └──────────► CLOSING ──► CLOSED

=============================================================================
"""

import logging
import socket
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..config import Destination


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, used for logging and close() idempotency."""
    OPEN = "open"            # Connected, idle between phases
    WRITING = "writing"      # Writer owns the socket
    READING = "reading"      # Reader owns the socket
    CLOSING = "closing"      # Shutdown sequence in progress
    CLOSED = "closed"        # Socket released


@dataclass
class Connection:
    """
    An established byte stream to one peer.

    Owned by the connection manager; lent to the writer and reader for the
    duration of one exchange; closed by the session driver after every
    attempt.

    Attributes:
        socket: The connected socket.
        destination: What we dialled (or bound, in listen mode).
        timeout: Idle timeout applied with settimeout().
        id: Short identifier for log lines.
    """

    socket: socket.socket
    destination: Optional[Destination] = None
    timeout: Optional[float] = 10.0

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.OPEN
    bytes_sent: int = 0
    bytes_received: int = 0
    peer_closed: bool = field(default=False, repr=False)

    def __post_init__(self):
        # Blocking mode with a timeout: readiness is checked before every
        # send/recv, the timeout only bounds the call that follows.
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)
            logger.debug(f"[{self.id}] sock timeout set [{self.timeout:g}]")

    # =========================================================================
    # PEER INFORMATION
    # =========================================================================

    @property
    def peer(self) -> tuple[str, int]:
        """(host, port) of the remote end, or ('?', 0) once it is gone."""
        try:
            name = self.socket.getpeername()
        except OSError:
            if self.destination is not None:
                return self.destination.address
            return ("?", 0)

        # AF_UNIX peers (socketpair) have a path, not a (host, port) tuple
        if isinstance(name, tuple):
            return (name[0], name[1])
        return (str(name) or "local", 0)

    @property
    def peer_host(self) -> str:
        return self.peer[0]

    @property
    def peer_port(self) -> int:
        return self.peer[1]

    @property
    def protocol(self) -> str:
        return "tcp" if self.socket.type == socket.SOCK_STREAM else "udp"

    def describe(self) -> str:
        host, port = self.peer
        return f"{host}:{port}"

    @property
    def connected(self) -> bool:
        """True while the peer is reachable and has not closed its side."""
        if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return False
        if self.peer_closed or self.socket.fileno() < 0:
            return False
        try:
            self.socket.getpeername()
        except OSError:
            return False
        return True

    # =========================================================================
    # RAW I/O
    # =========================================================================
    # Exceptions are NOT caught here. The writer and reader translate them
    # into result codes, because only they know which code applies.

    def send(self, data: bytes) -> int:
        """
        Write all of ``data``. Returns len(data).

        With a timeout set the descriptor is non-blocking underneath, so a
        bare send() stops at whatever fits in the kernel buffer. sendall()
        keeps going until every byte is out or the socket fails.
        """
        self.socket.sendall(data)
        self.bytes_sent += len(data)
        return len(data)

    def recv(self, size: int) -> bytes:
        """One recv() call. An empty result marks the peer as closed."""
        data = self.socket.recv(size)
        if data:
            self.bytes_received += len(data)
        else:
            self.peer_closed = True
        return data

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection. Safe to call more than once.

        1. shutdown(SHUT_WR): send FIN so the peer sees end-of-stream
        2. drain briefly so unread data doesn't trigger an RST
        3. close(): release the descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        logger.debug(f"[{self.id}] closing sock [{self.protocol}] [{self.describe()}]")
        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(0.1)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
