"""
=============================================================================
MESSAGE EXCHANGE LOOP
=============================================================================

Turns the input blob into messages and runs one write/read pass per message
over a connection.

=============================================================================
SPLITTING AND NORMALIZING
=============================================================================

The input is split on a literal token (``__END_MSG__`` by default). k tokens
always give k+1 chunks, empty ones included:

    b"CMD1__END_MSG__CMD2"    →  [b"CMD1", b"CMD2"]
    b"CMD1__END_MSG__"        →  [b"CMD1", b""]

Each chunk is then normalized so that line-oriented servers see a complete
request terminated by a blank line:

    1. strip ONE leading newline     (the one after the token)
    2. strip trailing whitespace
    3. append exactly b"\\n\\n"

    b"\\nHELO example\\n"  →  b"HELO example\\n\\n"
    b""                  →  b"\\n\\n"

Normalizing an already-normalized message changes nothing.

=============================================================================
PER-MESSAGE FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   for message in messages[position:]:                                │
    │       │                                                              │
    │       ├──► Writer.send()                                             │
    │       │       < 0  → abort exchange with that code                   │
    │       │       == 0 → socket never writable, try again (bounded)      │
    │       │       > 0  → ▼                                               │
    │       ├──► Reader.receive()                                          │
    │       │       < 0  → abort exchange after this message               │
    │       │       > 0  → position += 1, next message                     │
    └─────────────────────────────────────────────────────────────────────┘

The exchange remembers ``position``. When the session driver re-dials
after a failure it hands the new connection to the same exchange, which
carries on from the first message whose response was not collected.

=============================================================================
"""

import logging
from typing import BinaryIO, List

from ..config import DEFAULT_DELIMITER
from .connection import Connection
from .reader import Reader
from .results import TransferResult
from .writer import Writer


logger = logging.getLogger(__name__)


def split_messages(blob: bytes, delimiter: bytes = DEFAULT_DELIMITER) -> List[bytes]:
    """Split ``blob`` on ``delimiter``. Empty chunks are kept."""
    return blob.split(delimiter)


def normalize(chunk: bytes) -> bytes:
    """Strip one leading newline and trailing whitespace, end with a blank line."""
    if chunk.startswith(b"\n"):
        chunk = chunk[1:]
    return chunk.rstrip() + b"\n\n"


class MessageExchange:
    """
    Sends every message in an input blob and collects each response.

    Args:
        blob: The whole input, read eagerly beforehand.
        writer: Send phase.
        reader: Receive phase.
        sink: Binary stream receiving every response byte.
        delimiter: Message separator.
        send_retry: Maximum write rounds for a message whose socket never
                    became writable.
    """

    def __init__(
        self,
        blob: bytes,
        writer: Writer,
        reader: Reader,
        sink: BinaryIO,
        delimiter: bytes = DEFAULT_DELIMITER,
        send_retry: int = 2,
    ):
        self.blob = blob
        self.writer = writer
        self.reader = reader
        self.sink = sink
        self.send_retry = send_retry

        self.messages: List[bytes] = (
            [normalize(chunk) for chunk in split_messages(blob, delimiter)] if blob else []
        )
        self.position = 0
        self.bytes_read = 0

    @property
    def done(self) -> bool:
        return bool(self.messages) and self.position >= len(self.messages)

    def run(self, conn: Connection) -> int:
        """
        Exchange the remaining messages over ``conn``.

        Returns:
            Total response bytes collected by this exchange (> 0) once every
            message is answered, or a negative TransferResult.
        """
        if not self.blob:
            logger.warning("nothing to send: input is empty")
            return TransferResult.NO_INPUT

        logger.debug(
            f"[{conn.id}] exchanging messages {self.position + 1}..{len(self.messages)} "
            f"with [{conn.describe()}]"
        )

        while self.position < len(self.messages):
            message = self.messages[self.position]
            wrote = read = 0
            rounds = 0

            while wrote == 0 and read == 0 and rounds < self.send_retry:
                rounds += 1
                wrote = self.writer.send(conn, message)
                if wrote < 0:
                    return wrote
                if wrote > 0:
                    read = self.reader.receive(conn, self.sink)

            if wrote == 0:
                logger.warning(f"gave up on message {self.position + 1}: never writable")
                return TransferResult.WRITE_ERROR

            if read < 0:
                return read

            self.bytes_read += read
            self.position += 1

        return self.bytes_read
