"""
=============================================================================
CONNECTION MANAGER
=============================================================================

Produces a Connection for a Destination, in one of two modes chosen by the
configuration:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       CONNECTION MODES                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   OUTBOUND (default)                                                 │
    │   └── create_connection((host, port))                                │
    │   └── failure → None, the session driver retries                     │
    │                                                                      │
    │   LISTEN (-l PORT)                                                   │
    │   └── socket() → setsockopt(SO_REUSEADDR) → bind() → listen()        │
    │   └── bind/listen failure → BindError (fatal, never retried)         │
    │   └── accept() one peer within accept_timeout                        │
    │   └── no peer in time → None, the session driver retries             │
    │   └── listening socket closed as soon as the peer is accepted        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Either way the returned Connection already carries the idle timeout
(settimeout) the writer and reader rely on.

=============================================================================
SO_REUSEADDR
=============================================================================

Listen mode binds the same port again on every retry. Without SO_REUSEADDR
the second bind would fail with "Address already in use" while the previous
socket sits in TIME_WAIT, and a bind failure is fatal.

=============================================================================
"""

import logging
import socket
from typing import Optional

from ..config import ClientConfig, Destination
from ..errors import BindError
from .connection import Connection


logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Opens connections according to a ClientConfig.

    Usage:
        manager = ConnectionManager(config)
        conn = manager.open(Destination.parse("mail.example.com:25"))
        if conn is None:
            ...  # retry later
    """

    def __init__(self, config: ClientConfig):
        self.config = config

    def open(self, destination: Optional[Destination]) -> Optional[Connection]:
        """
        Connect to (or accept from) ``destination``.

        Args:
            destination: Peer to dial. In listen mode it only supplies the
                         bind host and may be None.

        Returns:
            A Connection, or None if this attempt failed in a retryable way.

        Raises:
            BindError: Listen mode could not bind or listen.
        """
        if self.config.listen_mode:
            return self._listen(destination)
        if destination is None:
            raise ValueError("Outbound mode needs a destination")
        return self._dial(destination)

    # =========================================================================
    # OUTBOUND
    # =========================================================================

    def _dial(self, destination: Destination) -> Optional[Connection]:
        logger.info(f"trying [{destination}] ... ")

        try:
            sock = socket.create_connection(
                destination.address, timeout=self.config.socket_timeout
            )
        except OSError as e:
            logger.warning(f"cannot connect to [{destination}]: {e}")
            return None

        conn = Connection(
            socket=sock,
            destination=destination,
            timeout=self.config.socket_timeout,
        )
        logger.info(f"connected sock [{conn.protocol}] [{conn.describe()}]")
        return conn

    # =========================================================================
    # LISTEN
    # =========================================================================

    def _create_listener(self, host: str, port: int) -> socket.socket:
        """Bind and listen, or raise BindError."""
        server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        try:
            server.bind((host, port))
            server.listen(self.config.listen_backlog)
        except OSError as e:
            server.close()
            raise BindError(host, port, str(e)) from e

        bound_host, bound_port = server.getsockname()[:2]
        logger.info(f"listening on port [{bound_host}:{bound_port}]")
        return server

    def _listen(self, destination: Optional[Destination]) -> Optional[Connection]:
        host = destination.host if destination is not None else self.config.bind_host
        port = self.config.listen_port

        server = self._create_listener(host, port)
        try:
            server.settimeout(self.config.accept_timeout)
            try:
                client, address = server.accept()
            except socket.timeout:
                logger.warning(
                    f"no peer connected to [{host}:{port}] "
                    f"within [{self.config.accept_timeout:g}]"
                )
                return None
            except OSError as e:
                logger.warning(f"accept on [{host}:{port}] failed: {e}")
                return None
        finally:
            server.close()

        conn = Connection(
            socket=client,
            destination=Destination(host=address[0], port=address[1]),
            timeout=self.config.socket_timeout,
        )
        logger.info(f"accepted sock [{conn.protocol}] [{conn.describe()}]")
        return conn
