"""
pytest configuration and fixtures.
"""

import logging
import socket
import threading
from typing import Callable, Generator, List, Optional, Tuple

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from socktool import ClientConfig, Destination
from socktool.core.connection import Connection


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo configure_logging() so tests don't leak handlers or levels."""
    yield
    logger = logging.getLogger("socktool")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    logger.disabled = False


@pytest.fixture
def fast_config() -> ClientConfig:
    """Configuration with timeouts short enough for tests."""
    return ClientConfig(
        conn_retry=3,
        conn_retry_delay=0.0,
        send_retry=2,
        socket_timeout=2.0,
        read_timeout=2.0,
        select_timeout=0.3,
        accept_timeout=3.0,
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def closed_destination(free_port: int) -> Destination:
    """A destination nobody listens on."""
    return Destination("127.0.0.1", free_port)


@pytest.fixture
def tcp_pair() -> Generator[Tuple[socket.socket, socket.socket], None, None]:
    """A connected (client, server) pair of TCP sockets on loopback."""
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(('127.0.0.1', 0))
    listener.listen(1)

    client = socket.create_connection(listener.getsockname(), timeout=2.0)
    server, _ = listener.accept()
    listener.close()

    yield client, server

    for s in (client, server):
        try:
            s.close()
        except OSError:
            pass


@pytest.fixture
def connection(tcp_pair) -> Generator[Connection, None, None]:
    """A Connection wrapping the client side of tcp_pair."""
    client, _server = tcp_pair
    conn = Connection(socket=client, timeout=2.0)
    yield conn
    conn.close()


class ScriptedPeer:
    """
    Line-protocol test server that runs in a background thread.

    Reads blank-line-terminated messages, records them, and answers each
    with ``responder(message_without_terminator)``. A responder returning
    None leaves the message unanswered.
    """

    def __init__(self, responder: Optional[Callable[[bytes], Optional[bytes]]] = None):
        self.responder = responder or (lambda msg: msg + b"\n\n")
        self.received: List[bytes] = []
        self.connections = 0

        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(('127.0.0.1', 0))
        self._sock.listen(8)
        self._sock.settimeout(0.1)
        self.port = self._sock.getsockname()[1]

        self._running = False
        self._thread: threading.Thread = None

    @property
    def destination(self) -> Destination:
        return Destination("127.0.0.1", self.port)

    def start(self):
        """Start serving in a background thread."""
        self._running = True
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def stop(self):
        """Stop the server."""
        self._running = False
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        self._sock.close()

    def _serve(self):
        while self._running:
            try:
                client, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break

            self.connections += 1
            with client:
                self._handle(client)

    def _handle(self, client: socket.socket):
        client.settimeout(0.1)
        buffer = b""
        while self._running:
            try:
                chunk = client.recv(4096)
            except socket.timeout:
                continue
            except OSError:
                return
            if not chunk:
                return

            buffer += chunk
            while b"\n\n" in buffer:
                message, buffer = buffer.split(b"\n\n", 1)
                self.received.append(message + b"\n\n")
                reply = self.responder(message)
                if reply:
                    client.sendall(reply)


@pytest.fixture
def peer() -> Generator[ScriptedPeer, None, None]:
    """A running echo peer."""
    server = ScriptedPeer()
    server.start()
    yield server
    server.stop()


@pytest.fixture
def make_peer() -> Generator[Callable[..., ScriptedPeer], None, None]:
    """Factory for peers with a custom responder."""
    started: List[ScriptedPeer] = []

    def factory(responder=None) -> ScriptedPeer:
        server = ScriptedPeer(responder)
        server.start()
        started.append(server)
        return server

    yield factory

    for server in started:
        server.stop()
