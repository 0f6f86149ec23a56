"""
Readiness multiplexer over a single socket.

Answers "can I write now?" and "can I read now?" within a bounded wait,
the way select()/poll() do, but for exactly one descriptor:

    ready = Readiness(sock)
    for s in ready.can_write(5.0):   # [] if not writable within 5s
        s.send(data)

An empty result is a normal outcome meaning "not yet", never an error.
"""

import selectors
import socket
from typing import List


class Readiness:
    """Poll-style readiness checks for one socket."""

    def __init__(self, sock: socket.socket):
        self.sock = sock

    def _wait(self, events: int, timeout: float) -> List[socket.socket]:
        # A closed socket has no descriptor to register; that is "not ready".
        if self.sock.fileno() < 0:
            return []

        with selectors.DefaultSelector() as selector:
            selector.register(self.sock, events)
            ready = selector.select(timeout=max(timeout, 0))

        return [key.fileobj for key, mask in ready if mask & events]

    def can_write(self, timeout: float) -> List[socket.socket]:
        """Sockets writable within ``timeout`` seconds (this one, or none)."""
        return self._wait(selectors.EVENT_WRITE, timeout)

    def can_read(self, timeout: float) -> List[socket.socket]:
        """Sockets readable within ``timeout`` seconds (this one, or none)."""
        return self._wait(selectors.EVENT_READ, timeout)
