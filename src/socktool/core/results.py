"""
=============================================================================
TRANSFER RESULT CODES
=============================================================================

Every I/O phase in socktool (write one message, read one response, run one
exchange) reports its outcome as a single signed integer:

    ┌────────────────────────────────────────────────────────────────────┐
    │                      TRANSFER RESULT VALUES                        │
    ├────────┬───────────────────────────────────────────────────────────┤
    │  >= 0  │ SUCCESS: number of bytes transferred                      │
    ├────────┼───────────────────────────────────────────────────────────┤
    │   -1   │ NO_INPUT       input source was empty                     │
    │   -2   │ PARTIAL_WRITE  fewer bytes written than requested         │
    │   -3   │ CONN_LOST      socket not connected when a phase began    │
    │   -4   │ READ_ERROR     recv() raised                              │
    │   -5   │ READ_TIMEOUT   nothing received before giving up          │
    │   -6   │ WRITE_ERROR    send() raised                              │
    └────────┴───────────────────────────────────────────────────────────┘

Keeping counts and failures in one integer lets every layer make the same
three-way decision with plain comparisons:

    rc > 0   → something was transferred, carry on
    rc == 0  → nothing happened yet, caller may try again
    rc < 0   → failure, abort this phase

The failure classes are an IntEnum, so they compare equal to the raw numbers
returned by the phases:

    >>> TransferResult.CONN_LOST == -3
    True

=============================================================================
"""

from enum import IntEnum


class TransferResult(IntEnum):
    """Negative outcome codes shared by the writer, reader and exchange."""

    NO_INPUT = -1
    PARTIAL_WRITE = -2
    CONN_LOST = -3
    READ_ERROR = -4
    READ_TIMEOUT = -5
    WRITE_ERROR = -6

    @property
    def phrase(self) -> str:
        """Short human-readable description, used in log lines."""
        return _RESULT_PHRASES.get(self, "unknown failure")


_RESULT_PHRASES = {
    TransferResult.NO_INPUT: "no input",
    TransferResult.PARTIAL_WRITE: "partial write",
    TransferResult.CONN_LOST: "connection lost",
    TransferResult.READ_ERROR: "read error",
    TransferResult.READ_TIMEOUT: "read timed out",
    TransferResult.WRITE_ERROR: "write error",
}


def is_failure(rc: int) -> bool:
    """True if ``rc`` is one of the negative failure codes."""
    return rc < 0


def describe(rc: int) -> str:
    """
    Render a transfer result for logging.

        >>> describe(42)
        '42 bytes'
        >>> describe(-5)
        'read timed out (-5)'
    """
    if rc >= 0:
        return f"{rc} bytes"
    try:
        return f"{TransferResult(rc).phrase} ({rc})"
    except ValueError:
        return f"unknown failure ({rc})"
