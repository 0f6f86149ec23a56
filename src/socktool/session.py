"""
=============================================================================
SESSION DRIVER
=============================================================================

Walks the destination list, dialling each one and running the message
exchange, until one of them answers.

=============================================================================
ONE DESTINATION
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │             ┌──────────┐   rc > 0                                    │
    │   start ──► │ ATTEMPT  │ ────────────────────────► SUCCESS           │
    │             └────┬─────┘                                             │
    │                  │ rc < 0                                            │
    │                  ▼                                                   │
    │        attempts < conn_retry ?                                       │
    │           │ yes              │ no                                    │
    │           ▼                  ▼                                       │
    │   RETRY: sleep(delay)    EXHAUSTED                                   │
    │           │                                                          │
    │           └──────► ATTEMPT                                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every attempt closes its connection before the next decision, whatever the
outcome. A dial that fails outright counts as CONN_LOST.

Retries share one MessageExchange, so an attempt that dies halfway resumes
with the first message whose response is still missing. Messages already
answered are not sent twice. A new destination starts from the first
message again.

=============================================================================
ACROSS DESTINATIONS
=============================================================================

    final rc > 0   → stop, later destinations are never contacted
    final rc <= 0  → move on to the next destination

=============================================================================
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Callable, List, Optional, Sequence

from .config import ClientConfig, Destination
from .core.connection import Connection
from .core.connector import ConnectionManager
from .core.exchange import MessageExchange
from .core.reader import Reader
from .core.results import TransferResult, describe, is_failure
from .core.writer import Writer
from .log import notice


logger = logging.getLogger(__name__)


class DestinationState(Enum):
    """States of the per-destination retry machine."""
    ATTEMPT = "attempt"
    RETRY = "retry"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"


@dataclass
class DestinationReport:
    """What happened to one destination."""
    destination: Optional[Destination]
    attempts: int = 0
    result: int = 0
    state: DestinationState = DestinationState.ATTEMPT


class SessionDriver:
    """
    Runs a whole socktool session.

    Args:
        config: Retry budgets and timeouts.
        connector: Connection factory. Defaults to a ConnectionManager.
        sleep: Called with conn_retry_delay between attempts.
    """

    def __init__(
        self,
        config: ClientConfig,
        connector: Optional[ConnectionManager] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.connector = connector or ConnectionManager(config)
        self.writer = Writer(
            select_timeout=config.select_timeout,
            send_retry=config.send_retry,
        )
        self.reader = Reader(
            select_timeout=config.select_timeout,
            read_timeout=config.read_timeout,
            chunk_size=config.chunk_size,
        )
        self._sleep = sleep
        self.reports: List[DestinationReport] = []

    def run(
        self,
        destinations: Sequence[Optional[Destination]],
        blob: bytes,
        sink: BinaryIO,
    ) -> int:
        """
        Process destinations in order, stopping at the first success.

        Returns:
            The result of the last destination tried: bytes received (> 0)
            on success, otherwise 0 or a negative TransferResult.

        Raises:
            BindError: Listen mode could not bind (fatal).
        """
        self.reports = []
        rc = 0

        for destination in destinations:
            report = self._run_destination(destination, blob, sink)
            self.reports.append(report)
            rc = report.result

            if rc > 0:
                break

        if rc <= 0:
            notice(logger, f"no destination completed the exchange ({describe(rc)})")
        return rc

    def _run_destination(
        self,
        destination: Optional[Destination],
        blob: bytes,
        sink: BinaryIO,
    ) -> DestinationReport:
        report = DestinationReport(destination=destination)
        exchange = MessageExchange(
            blob,
            writer=self.writer,
            reader=self.reader,
            sink=sink,
            delimiter=self.config.delimiter,
            send_retry=self.config.send_retry,
        )

        while True:
            report.state = DestinationState.ATTEMPT
            report.attempts += 1
            report.result = self._attempt(destination, exchange)

            if not is_failure(report.result):
                report.state = (
                    DestinationState.SUCCESS if report.result > 0 else DestinationState.EXHAUSTED
                )
                break

            if report.attempts >= self.config.conn_retry:
                report.state = DestinationState.EXHAUSTED
                logger.warning(
                    f"giving up on [{destination or 'listener'}] after "
                    f"{report.attempts} attempts: {describe(report.result)}"
                )
                break

            report.state = DestinationState.RETRY
            logger.debug(
                f"connection retry [{report.attempts}] happening in "
                f"[{self.config.conn_retry_delay:g}]"
            )
            self._sleep(self.config.conn_retry_delay)

        return report

    def _attempt(self, destination: Optional[Destination], exchange: MessageExchange) -> int:
        conn: Optional[Connection] = self.connector.open(destination)
        if conn is None:
            return TransferResult.CONN_LOST

        try:
            return exchange.run(conn)
        finally:
            conn.close()
