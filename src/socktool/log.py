"""
=============================================================================
LOGGING AND VERBOSITY
=============================================================================

socktool writes every diagnostic line to stderr (stdout may be the output
sink), prefixed with a wall-clock timestamp:

    07:41:02 trying [10.0.0.1:9000] ...
    07:41:02 [warning] socket not connected
    07:41:17 [fatal error] cannot open input stream [cmds.txt]

=============================================================================
VERBOSITY LEVELS
=============================================================================

The user controls output with repeated -v flags. Each level lets one more
kind of message through:

    ┌────────────┬───────────────────────┬──────────────────────────────┐
    │ Verbosity  │ Logger threshold      │ What you see                 │
    ├────────────┼───────────────────────┼──────────────────────────────┤
    │ None       │ (logger disabled)     │ nothing at all               │
    │ 0          │ CRITICAL              │ fatal errors                 │
    │ 1          │ WARNING               │ + warnings                   │
    │ 2 (default)│ NOTICE                │ + notices                    │
    │ 3 (-v)     │ INFO                  │ + connection/transfer info   │
    │ 4+ (-vv)   │ DEBUG                 │ + selects, payloads, retries │
    └────────────┴───────────────────────┴──────────────────────────────┘

NOTICE is not one of the standard library levels, so we register it at 25,
between INFO (20) and WARNING (30).

=============================================================================
ONE THRESHOLD, OWNED BY ONE FRAME
=============================================================================

The threshold is held by a Verbosity object created in the CLI frame and
handed to configure_logging(). Every other module logs through its own
logging.getLogger(__name__), which is a child of the "socktool" logger, so
they all obey the single threshold set here without importing any shared
variable.

A silenced run (verbosity None) still closes its streams and exits with
status 1 on a fatal error; only the message is suppressed.

=============================================================================
"""

import logging
import sys
from dataclasses import dataclass
from typing import Optional, TextIO


NOTICE = 25
logging.addLevelName(NOTICE, "NOTICE")

PACKAGE_LOGGER = "socktool"

# verbosity → logging threshold; anything above the table is DEBUG
_THRESHOLDS = {
    0: logging.CRITICAL,
    1: logging.WARNING,
    2: NOTICE,
    3: logging.INFO,
}

_TAGS = {
    logging.WARNING: "[warning] ",
    logging.CRITICAL: "[fatal error] ",
}


@dataclass
class Verbosity:
    """
    The process-wide verbosity threshold.

        >>> v = Verbosity()
        >>> v.bump(); v.level
        3
        >>> v.threshold == logging.INFO
        True
    """

    level: Optional[int] = 2

    def bump(self, times: int = 1) -> None:
        """Raise verbosity by ``times`` steps. No effect when silenced."""
        if self.level is not None:
            self.level += times

    def set(self, level: Optional[int]) -> None:
        """Set verbosity directly. ``None`` turns all output off."""
        self.level = level

    @property
    def enabled(self) -> bool:
        return self.level is not None

    @property
    def threshold(self) -> int:
        """The logging level matching the current verbosity."""
        if self.level is None:
            return logging.CRITICAL + 1
        if self.level < 0:
            return logging.CRITICAL
        return _THRESHOLDS.get(self.level, logging.DEBUG)


class TimestampFormatter(logging.Formatter):
    """
    ``HH:MM:SS [tag] message``

    Warnings get a ``[warning]`` tag, critical records get
    ``[fatal error]``; lower levels are printed bare.
    """

    def __init__(self):
        super().__init__(fmt="%(asctime)s %(tag)s%(message)s", datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        record.tag = _TAGS.get(record.levelno, "")
        return super().format(record)


def configure_logging(verbosity: Verbosity, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Install the stderr handler on the package logger and apply the threshold.

    Safe to call more than once: the previous socktool handler is replaced,
    not duplicated.

    Args:
        verbosity: Threshold owner.
        stream: Where to write. Defaults to sys.stderr at call time.

    Returns:
        The package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)

    for handler in list(logger.handlers):
        if getattr(handler, "_socktool", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(TimestampFormatter())
    handler._socktool = True
    logger.addHandler(handler)

    # Our handler is the only output; don't duplicate into the root logger.
    logger.propagate = False
    apply_verbosity(verbosity)
    return logger


def apply_verbosity(verbosity: Verbosity) -> None:
    """Push the current verbosity into the package logger."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.disabled = not verbosity.enabled
    logger.setLevel(verbosity.threshold)


def notice(logger: logging.Logger, msg: str, *args) -> None:
    """Log at NOTICE level (the stdlib has no logger.notice())."""
    logger.log(NOTICE, msg, *args)
