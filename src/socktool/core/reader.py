"""
=============================================================================
READER (RECEIVE PHASE)
=============================================================================

Drains one response from the socket into the output sink.

=============================================================================
WHEN IS A RESPONSE FINISHED?
=============================================================================

The protocols socktool talks to have no end-of-response marker and no
length prefix. The peer answers and then simply stops talking, often
without closing the connection. So the reader has to guess:

    "A readable round produced nothing new, and we already have
     something (or we have waited long enough)."

This cannot tell a peer that is done from a peer that is merely slow. That
is a limit of the protocols, not something the reader can fix.

=============================================================================
TERMINATION POLICY
=============================================================================

Each round: check the connection, wait up to select_timeout for
readability, and if readable call recv(chunk_size) once.

    ┌──────────────────────────────────────────────────────────────────────┐
    │                          STOP CONDITIONS                             │
    ├──────────────────────────────────────────────────────────────────────┤
    │                                                                       │
    │  not connected at start of round          → CONN_LOST                 │
    │  recv() raised                            → READ_ERROR                │
    │                                                                       │
    │  round read 0 bytes AND                                               │
    │      (total > 0  OR  read_timeout elapsed)→ success                   │
    │                                                                       │
    │  round had no readable socket AND                                     │
    │      round read 0 bytes                   → success                   │
    │                                                                       │
    │  "success" with total == 0                → READ_TIMEOUT              │
    │                                                                       │
    └──────────────────────────────────────────────────────────────────────┘

A zero-byte result is never returned: nothing received is a timeout.

Example with chunk_size=4, peer sends "PONG\\n\\n" then goes quiet:

    round 1: readable, recv → b"PONG"   total=4
    round 2: readable, recv → b"\\n\\n"   total=6
    round 3: select waits, nothing      read=0, total>0 → return 6

=============================================================================
"""

import logging
import time
from typing import BinaryIO, Callable

from .connection import Connection, ConnectionState
from .readiness import Readiness
from .results import TransferResult


logger = logging.getLogger(__name__)


class Reader:
    """
    Collects a response from a connection.

    Args:
        select_timeout: Maximum wait for readability per round.
        read_timeout: Overall budget for one receive() call. Enforced by
                      the loop, checked after rounds that read nothing.
        chunk_size: Bytes requested per recv().
        clock: Monotonic time source (injectable for tests).
    """

    def __init__(
        self,
        select_timeout: float = 5.0,
        read_timeout: float = 60.0,
        chunk_size: int = 1500,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.select_timeout = select_timeout
        self.read_timeout = read_timeout
        self.chunk_size = chunk_size
        self._clock = clock

    def receive(self, conn: Connection, sink: BinaryIO) -> int:
        """
        Read from ``conn`` until the response looks finished.

        Every byte read is written to ``sink`` as soon as it arrives.

        Returns:
            Total bytes appended to the sink (always > 0), or a negative
            TransferResult.
        """
        readiness = Readiness(conn.socket)
        total = 0
        rc = 0
        started = self._clock()

        logger.debug(f"sock read timeout [{self.read_timeout:g}]")

        while True:
            last_read = 0

            if not conn.connected:
                logger.warning("socket disconnected")
                return TransferResult.CONN_LOST

            logger.debug(f"calling select w/ timeout [{self.select_timeout:g}]")
            readable = readiness.can_read(self.select_timeout)

            for _sock in readable:
                conn.state = ConnectionState.READING
                try:
                    chunk = conn.recv(self.chunk_size)
                except OSError as e:
                    logger.warning(f"sock read error: {e}")
                    rc = TransferResult.READ_ERROR
                    break
                finally:
                    if conn.state == ConnectionState.READING:
                        conn.state = ConnectionState.OPEN

                last_read = len(chunk)
                if last_read:
                    total += last_read
                    logger.debug("read data:\n%s", chunk.decode("utf-8", errors="replace"))
                    sink.write(chunk)
                    sink.flush()
                else:
                    logger.debug("readable round returned 0 bytes")

            if rc < 0:
                break

            if last_read == 0:
                if total > 0 or self._clock() - started >= self.read_timeout:
                    break
                if not readable:
                    break

        if rc < 0:
            return rc

        if total == 0:
            logger.warning(f"read on sock timed out [{self.read_timeout:g}]")
            return TransferResult.READ_TIMEOUT

        logger.info(f"read {total} bytes from [{conn.describe()}]")
        return total
