"""
=============================================================================
ERROR TYPES
=============================================================================

Two kinds of failure exist in socktool and they travel differently:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        FAILURE PROPAGATION                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   I/O PHASE FAILURES (recoverable)                                   │
    │   └── Returned as negative TransferResult codes                      │
    │   └── Writer/Reader → Exchange → SessionDriver                       │
    │   └── SessionDriver decides: retry, next destination, or stop        │
    │                                                                      │
    │   SETUP FAILURES (fatal)                                             │
    │   └── Raised as FatalError                                           │
    │   └── Nothing in the engine catches them                             │
    │   └── The CLI frame logs "[fatal error] ...", releases the input    │
    │       and output handles, and exits with status 1                    │
    │                                                                      │
    │   USAGE ERRORS                                                       │
    │   └── Raised as UsageError while parsing arguments                   │
    │   └── The CLI frame prints usage and exits with status 0             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

No helper ever calls sys.exit(). Only __main__ decides the exit status.

=============================================================================
"""


class SockToolError(Exception):
    """Base class for all socktool exceptions."""


class FatalError(SockToolError):
    """
    Unrecoverable setup failure.

    Examples: input file cannot be opened, output file cannot be created,
    an option is missing its argument, the listen socket cannot be bound.
    """

    exit_code = 1


class BindError(FatalError):
    """The listening socket could not be bound. Not retryable."""

    def __init__(self, host: str, port: int, reason: str = ""):
        self.host = host
        self.port = port
        message = f"cannot bind to {host}:{port}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class UsageError(SockToolError):
    """Bad or missing command-line arguments. Shows usage, exits cleanly."""

    exit_code = 0
