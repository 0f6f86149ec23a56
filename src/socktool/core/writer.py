"""
=============================================================================
WRITER (SEND PHASE)
=============================================================================

Puts one normalized message on the wire.

=============================================================================
ONE WRITE PER MESSAGE
=============================================================================

Once the socket reports writable the writer hands the whole message to
Connection.send() exactly once. That call uses sendall(), so a message larger
than the kernel send buffer still goes out in full while the peer keeps
reading. The writer then compares counts:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        send() OUTCOMES                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   raises OSError          → WRITE_ERROR    (stop, no retry)          │
    │   sent <  len(message)    → PARTIAL_WRITE  (connection is broken)    │
    │   sent == len(message)    → success, return len(message)             │
    │                                                                      │
    │   A peer that stops reading mid-message makes sendall() hit the      │
    │   socket timeout, which is an OSError: WRITE_ERROR.                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
RETRY BUDGET
=============================================================================

    attempt 1..send_retry:
        not connected?           → CONN_LOST (immediately, fatal to attempt)
        writable within wait?    → send once, see table above
        not writable?            → next attempt

    all attempts unwritable      → 0 (nothing sent; caller decides)

=============================================================================
"""

import logging

from .connection import Connection, ConnectionState
from .readiness import Readiness
from .results import TransferResult


logger = logging.getLogger(__name__)


class Writer:
    """
    Sends whole messages over a connection.

    Args:
        select_timeout: Maximum wait for writability per attempt.
        send_retry: Number of writability waits before giving up.
    """

    def __init__(self, select_timeout: float = 5.0, send_retry: int = 2):
        self.select_timeout = select_timeout
        self.send_retry = send_retry

    def send(self, conn: Connection, message: bytes) -> int:
        """
        Write ``message`` to ``conn`` exactly once.

        Returns:
            len(message) on success, 0 if the socket never became writable,
            or a negative TransferResult.
        """
        readiness = Readiness(conn.socket)

        for attempt in range(1, self.send_retry + 1):
            if not conn.connected:
                logger.warning("socket not connected")
                return TransferResult.CONN_LOST

            logger.debug(f"calling select, timeout [{self.select_timeout:g}]")
            writable = readiness.can_write(self.select_timeout)

            if not writable:
                logger.debug(f"socket not writable (attempt {attempt}/{self.send_retry})")
                continue

            conn.state = ConnectionState.WRITING
            try:
                sent = conn.send(message)
            except OSError as e:
                logger.warning(f"sock write error: {e}")
                return TransferResult.WRITE_ERROR
            finally:
                if conn.state == ConnectionState.WRITING:
                    conn.state = ConnectionState.OPEN

            if sent != len(message):
                logger.warning(
                    f"connection broken with [{conn.peer_host}], "
                    f"sent {sent} of {len(message)} bytes"
                )
                return TransferResult.PARTIAL_WRITE

            logger.debug("sent data:\n%s", message.decode("utf-8", errors="replace"))
            logger.info(f"sent {sent} bytes to [{conn.describe()}]")
            return sent

        logger.warning(
            f"socket to [{conn.describe()}] not writable after {self.send_retry} attempts"
        )
        return 0
