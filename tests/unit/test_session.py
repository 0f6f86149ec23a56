"""
Unit tests for the session driver's retry and destination policy.
"""

import io
from typing import Dict, List, Optional

import pytest

from socktool import ClientConfig, Destination
from socktool.errors import BindError
from socktool.core.results import TransferResult
from socktool.session import DestinationState, SessionDriver


class FakeConnection:
    """Minimal Connection double that counts close() calls."""

    def __init__(self, destination: Destination):
        self.destination = destination
        self.id = "fake0001"
        self.closed = 0

    def describe(self) -> str:
        return str(self.destination)

    def close(self):
        self.closed += 1


class FakeConnector:
    """
    Connection manager double.

    ``reachable`` lists the hosts that accept connections; every other
    destination fails to connect.
    """

    def __init__(self, reachable=()):
        self.reachable = set(reachable)
        self.opened: List[Optional[Destination]] = []
        self.connections: List[FakeConnection] = []

    def open(self, destination):
        self.opened.append(destination)
        if destination is None or destination.host not in self.reachable:
            return None
        conn = FakeConnection(destination)
        self.connections.append(conn)
        return conn


class FakeWriter:
    def __init__(self):
        self.sent: List[bytes] = []

    def send(self, conn, message):
        self.sent.append(message)
        return len(message)


class FakeReader:
    """Answers every message with a fixed reply, or fails with ``failures`` first."""

    def __init__(self, reply: bytes = b"PONG\n\n", failures=()):
        self.reply = reply
        self.failures = list(failures)

    def receive(self, conn, sink):
        if self.failures:
            return self.failures.pop(0)
        sink.write(self.reply)
        return len(self.reply)


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(conn_retry=3, conn_retry_delay=15.0)


def make_driver(config, connector, reader=None):
    sleeps: List[float] = []
    driver = SessionDriver(config, connector=connector, sleep=sleeps.append)
    driver.writer = FakeWriter()
    driver.reader = reader or FakeReader()
    return driver, sleeps


class TestSessionDriver:
    """Tests for SessionDriver.run()."""

    def test_first_unreachable_second_succeeds(self, config):
        destinations = [
            Destination.parse("10.0.0.1:9000"),
            Destination.parse("10.0.0.2:9000"),
            Destination.parse("10.0.0.3:9000"),
        ]
        connector = FakeConnector(reachable={"10.0.0.2", "10.0.0.3"})
        driver, sleeps = make_driver(config, connector)
        sink = io.BytesIO()

        rc = driver.run(destinations, b"PING", sink)

        assert rc == len(b"PONG\n\n")
        assert connector.opened == [destinations[0]] * 3 + [destinations[1]]
        assert sleeps == [15.0, 15.0]
        assert driver.writer.sent == [b"PING\n\n"]
        assert sink.getvalue() == b"PONG\n\n"

        first, second = driver.reports
        assert (first.attempts, first.state) == (3, DestinationState.EXHAUSTED)
        assert first.result == TransferResult.CONN_LOST
        assert (second.attempts, second.state) == (1, DestinationState.SUCCESS)

    def test_all_unreachable(self, config):
        destinations = [Destination.parse("10.0.0.1:1"), Destination.parse("10.0.0.2:1")]
        driver, sleeps = make_driver(config, FakeConnector())

        assert driver.run(destinations, b"PING", io.BytesIO()) == TransferResult.CONN_LOST
        assert len(sleeps) == 4
        assert [r.attempts for r in driver.reports] == [3, 3]

    def test_connection_closed_after_every_attempt(self, config):
        dest = Destination.parse("10.0.0.1:9000")
        connector = FakeConnector(reachable={"10.0.0.1"})
        reader = FakeReader(failures=[TransferResult.READ_TIMEOUT] * 3)
        driver, _ = make_driver(config, connector, reader)

        assert driver.run([dest], b"PING", io.BytesIO()) == TransferResult.READ_TIMEOUT
        assert len(connector.connections) == 3
        assert all(conn.closed == 1 for conn in connector.connections)

    def test_closed_on_success(self, config):
        connector = FakeConnector(reachable={"10.0.0.1"})
        driver, _ = make_driver(config, connector)

        driver.run([Destination.parse("10.0.0.1:9000")], b"PING", io.BytesIO())

        assert connector.connections[0].closed == 1

    def test_retry_recovers(self, config):
        connector = FakeConnector(reachable={"10.0.0.1"})
        reader = FakeReader(failures=[TransferResult.CONN_LOST])
        driver, sleeps = make_driver(config, connector, reader)

        rc = driver.run([Destination.parse("10.0.0.1:9000")], b"PING", io.BytesIO())

        assert rc == 6
        assert sleeps == [15.0]
        assert driver.reports[0].attempts == 2

    def test_retry_resumes_at_unanswered_message(self, config):
        connector = FakeConnector(reachable={"10.0.0.1"})
        reader = FakeReader()
        driver, _ = make_driver(config, connector, reader)

        # Second message loses the connection once.
        original = reader.receive
        calls: Dict[str, int] = {"n": 0}

        def receive(conn, sink):
            calls["n"] += 1
            if calls["n"] == 2:
                return TransferResult.CONN_LOST
            return original(conn, sink)

        reader.receive = receive

        rc = driver.run(
            [Destination.parse("10.0.0.1:9000")], b"ONE__END_MSG__TWO", io.BytesIO()
        )

        assert rc == 12
        assert driver.writer.sent == [b"ONE\n\n", b"TWO\n\n", b"TWO\n\n"]

    def test_new_destination_restarts_from_first_message(self, config):
        # Host A answers the first message, then always times out.
        connector = FakeConnector(reachable={"10.0.0.1", "10.0.0.2"})
        reader = FakeReader()
        driver, _ = make_driver(config, connector, reader)
        original = reader.receive

        def receive(conn, sink):
            if conn.destination.host == "10.0.0.1" and driver.writer.sent[-1] == b"TWO\n\n":
                return TransferResult.READ_TIMEOUT
            return original(conn, sink)

        reader.receive = receive

        rc = driver.run(
            [Destination.parse("10.0.0.1:9000"), Destination.parse("10.0.0.2:9000")],
            b"ONE__END_MSG__TWO",
            io.BytesIO(),
        )

        assert rc == 12
        assert driver.writer.sent[-2:] == [b"ONE\n\n", b"TWO\n\n"]

    def test_no_input_follows_retry_policy(self, config):
        destinations = [Destination.parse("10.0.0.1:9000"), Destination.parse("10.0.0.2:9000")]
        connector = FakeConnector(reachable={"10.0.0.1", "10.0.0.2"})
        driver, sleeps = make_driver(config, connector)

        assert driver.run(destinations, b"", io.BytesIO()) == TransferResult.NO_INPUT
        assert driver.writer.sent == []
        assert connector.opened == [destinations[0]] * 3 + [destinations[1]] * 3
        assert sleeps == [15.0] * 4
        assert all(conn.closed == 1 for conn in connector.connections)
        assert [r.state for r in driver.reports] == [DestinationState.EXHAUSTED] * 2

    def test_bind_error_propagates(self, config):
        class FailingConnector:
            def open(self, destination):
                raise BindError("localhost", 9999, "Address already in use")

        driver, _ = make_driver(config, FailingConnector())

        with pytest.raises(BindError):
            driver.run([None], b"PING", io.BytesIO())
