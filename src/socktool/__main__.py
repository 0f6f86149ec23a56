"""
=============================================================================
SOCKTOOL CLI ENTRY POINT
=============================================================================

    python -m socktool -[fwvl] host:port [host:port] ...

=============================================================================
USAGE
=============================================================================

    # Send commands from a file, responses to stdout
    python -m socktool -f cmds.txt mail.example.com:25

    # Try three servers in order, stop at the first that answers
    socktool -f cmds.txt -w out.txt 10.0.0.1:9000 10.0.0.2:9000 backup:9000

    # Wait for a peer to connect to us instead of dialling out
    socktool -l 9999 -f cmds.txt

    # More output: -v for transfer info, -vv for selects and payloads
    socktool -vv -f cmds.txt localhost:7000

Messages in the input are separated by the literal token __END_MSG__:

    HELO example.org
    __END_MSG__
    QUIT

=============================================================================
EXIT STATUS
=============================================================================

    0   completed (whether or not a destination answered), or usage shown
    1   fatal error: unreadable input, unwritable output, failed bind,
        option missing its argument

=============================================================================
CLEANUP
=============================================================================

The input and output files are opened inside one ExitStack in main(). Every
way out of main() (normal return, usage, FatalError, Ctrl+C) leaves through
that block, so each file is closed exactly once. Standard input and output
are never closed; the output is flushed.

=============================================================================
"""

import argparse
import contextlib
import logging
import sys
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional, Sequence

from . import __version__
from .config import ClientConfig, Destination
from .errors import FatalError, UsageError
from .log import Verbosity, apply_verbosity, configure_logging
from .session import SessionDriver


logger = logging.getLogger("socktool.cli")

PROG = "socktool"

USAGE = (
    f"usage: {PROG} -[fwvl] host:port [host:port] ...\n"
    "       -l listen <port> \n"
    "       -f input file \n"
    "       -w output file \n"
    "       -v bump up verbosity level \n"
    "\n"
)


@dataclass
class Options:
    """Parsed command line."""
    input_path: Optional[str] = None
    output_path: Optional[str] = None
    listen_port: Optional[int] = None
    verbose: int = 0
    destinations: List[str] = field(default_factory=list)
    show_version: bool = False


class ToolArgumentParser(argparse.ArgumentParser):
    """
    ArgumentParser that raises instead of exiting.

    argparse normally prints its own message and exits with status 2. We
    need two different outcomes: a value-taking option at the end of the
    line is fatal (status 1), anything else malformed shows our usage text
    (status 0).
    """

    def error(self, message):
        if "expected one argument" in message:
            raise FatalError("option requires an argument")
        raise UsageError(message)


def build_parser() -> ToolArgumentParser:
    parser = ToolArgumentParser(prog=PROG, add_help=False, usage=USAGE)

    parser.add_argument("-f", dest="input_path", metavar="PATH",
                        help="input file (default: stdin)")
    parser.add_argument("-w", dest="output_path", metavar="PATH",
                        help="output file (default: stdout)")
    parser.add_argument("-l", dest="listen_port", type=int, metavar="PORT",
                        help="listen on PORT instead of connecting out")
    parser.add_argument("-v", dest="verbose", action="count", default=0,
                        help="bump up verbosity level (repeatable)")
    parser.add_argument("-h", "--help", dest="help", action="store_true")
    parser.add_argument("--version", dest="version", action="store_true")
    parser.add_argument("destinations", nargs="*", metavar="host:port")

    return parser


def parse_arguments(argv: Optional[Sequence[str]] = None) -> Options:
    """
    Parse the command line.

    Raises:
        UsageError: -h, unknown options, bad values, or no destination
                    outside listen mode.
        FatalError: An option is missing its argument.
    """
    args = build_parser().parse_args(argv)

    if args.help:
        raise UsageError("help requested")

    if args.version:
        return Options(show_version=True)

    options = Options(
        input_path=args.input_path,
        output_path=args.output_path,
        listen_port=args.listen_port,
        verbose=args.verbose,
        destinations=list(args.destinations),
    )

    if options.listen_port is None and not options.destinations:
        raise UsageError("at least one host:port is required")

    if options.listen_port is not None and len(options.destinations) > 1:
        raise UsageError("listen mode takes at most one destination")

    return options


def resolve_destinations(options: Options) -> List[Optional[Destination]]:
    """
    Turn positional arguments into Destinations.

    Listen mode with no positional argument yields a single ``None``: the
    connection manager then binds its default host.
    """
    try:
        destinations: List[Optional[Destination]] = [
            Destination.parse(text) for text in options.destinations
        ]
    except ValueError as e:
        raise UsageError(str(e)) from e

    if not destinations:
        destinations = [None]
    return destinations


def _open_input(stack: contextlib.ExitStack, path: Optional[str], default: BinaryIO) -> BinaryIO:
    if path is None:
        return default
    try:
        return stack.enter_context(open(path, "rb"))
    except OSError as e:
        raise FatalError(f"cannot open input stream [{path}]") from e


def _open_output(stack: contextlib.ExitStack, path: Optional[str], default: BinaryIO) -> BinaryIO:
    if path is None:
        stack.callback(default.flush)
        return default
    try:
        return stack.enter_context(open(path, "wb"))
    except OSError as e:
        raise FatalError(f"cannot open output stream [{path}]") from e


def main(
    argv: Optional[Sequence[str]] = None,
    stdin: Optional[BinaryIO] = None,
    stdout: Optional[BinaryIO] = None,
    stderr=None,
) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Arguments without the program name. Defaults to sys.argv[1:].
        stdin: Binary input used when -f is not given.
        stdout: Binary output used when -w is not given (also gets usage).
        stderr: Text stream for log lines.

    Returns:
        Process exit status.
    """
    stdin = stdin if stdin is not None else sys.stdin.buffer
    stdout = stdout if stdout is not None else sys.stdout.buffer

    verbosity = Verbosity()
    configure_logging(verbosity, stderr)

    with contextlib.ExitStack() as stack:
        try:
            # ─────────────────────────────────────────────────────────────
            # CONFIGURATION: defaults ← environment ← command line
            # ─────────────────────────────────────────────────────────────
            try:
                config = ClientConfig.from_env()
            except ValueError as e:
                raise FatalError(f"invalid environment setting: {e}") from e

            verbosity.set(config.verbosity)
            apply_verbosity(verbosity)

            options = parse_arguments(argv)
            if options.show_version:
                stdout.write(f"{PROG} {__version__}\n".encode())
                stdout.flush()
                return 0

            verbosity.bump(options.verbose)
            apply_verbosity(verbosity)

            config.listen_port = options.listen_port
            try:
                config.validate()
            except ValueError as e:
                raise UsageError(str(e)) from e

            destinations = resolve_destinations(options)
            logger.debug(f"config: {config}")

            # ─────────────────────────────────────────────────────────────
            # STREAMS: released by the ExitStack on every path out
            # ─────────────────────────────────────────────────────────────
            source = _open_input(stack, options.input_path, stdin)
            sink = _open_output(stack, options.output_path, stdout)

            blob = source.read()

            # ─────────────────────────────────────────────────────────────
            # RUN
            # ─────────────────────────────────────────────────────────────
            SessionDriver(config).run(destinations, blob, sink)

        except UsageError as e:
            logger.debug(f"usage error: {e}")
            stdout.write(USAGE.encode())
            stdout.flush()
            return UsageError.exit_code

        except FatalError as e:
            logger.critical(str(e))
            return FatalError.exit_code

        except KeyboardInterrupt:
            logger.critical("interrupted")
            return FatalError.exit_code

    return 0


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
