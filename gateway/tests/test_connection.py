import asyncio
import logging
import random

import pytest
import pytest_asyncio

from gateway.network.connection import GatewayConnection
from gateway.network.errors import GatewayConnectError
from gateway.network.events import EventKind
from gateway.network.session_state import ConnectionState
from gateway.network.transport.dummy import DummyTransport


@pytest.fixture
def events():
    return []


@pytest_asyncio.fixture
async def connection(settings, transports, scheduler, events):
    conn = GatewayConnection(settings, transports, scheduler=scheduler, rng=random.Random(3))
    for kind in EventKind:
        conn.add_listener(kind, events.append)
    yield conn
    await conn.close()


def _kinds(events):
    return [event.kind for event in events]


@pytest.mark.asyncio
async def test_end_to_end_handshake_heartbeat_and_reconnect(connection, transports, scheduler, events, settle_loop, caplog):
    caplog.set_level(logging.DEBUG)
    await connection.connect()
    transport = transports.current
    assert transport.url == "wss://gateway.test/"
    assert connection.state is ConnectionState.CONNECTED

    transport.feed({"op": 10, "d": {"heartbeat_interval": 41250}})
    await settle_loop()
    [identify] = transport.sent_frames()
    assert identify["op"] == 2
    assert identify["d"]["token"] == "secret-token"

    transport.feed({"op": 0, "t": "READY", "s": 1, "d": {"session_id": "abc"}})
    await settle_loop()
    assert _kinds(events) == [EventKind.CONNECTED, EventKind.READY, EventKind.MESSAGE]
    assert events[-1].name == "READY"
    assert connection.sequence == 1

    scheduler.advance(41.25)
    await settle_loop()
    assert transport.sent_frames()[-1] == {"op": 1, "d": 1}

    scheduler.advance(0.05)
    transport.feed({"op": 11})
    await settle_loop()
    assert connection.latency_ms is not None and connection.latency_ms >= 0
    assert "heartbeat ack" in caplog.text

    transport.remote_close(4000, "unknown error")
    await settle_loop()
    assert len(transports.created) == 2
    assert _kinds(events)[-2:] == [EventKind.DISCONNECTED, EventKind.CONNECTED]
    assert connection.state is ConnectionState.CONNECTED
    assert connection.sequence is None
    assert scheduler.periodics() == []


@pytest.mark.asyncio
async def test_connect_is_noop_when_connected(connection, transports, events):
    await connection.connect()
    await connection.connect()
    assert len(transports.created) == 1
    assert _kinds(events) == [EventKind.CONNECTED]


@pytest.mark.asyncio
async def test_authentication_failure_is_fatal(connection, transports, scheduler, events, settle_loop):
    await connection.connect()
    transports.current.remote_close(4004, "Authentication failed.")
    await settle_loop()

    assert connection.state is ConnectionState.IDLE
    assert _kinds(events) == [EventKind.CONNECTED, EventKind.DISCONNECTED, EventKind.FATAL]
    assert events[-1].close_code == 4004
    assert events[-1].reason == "Authentication failed."

    scheduler.advance(120)
    await settle_loop()
    assert len(transports.created) == 1
    assert scheduler.one_shots() == []


@pytest.mark.asyncio
async def test_rate_limited_close_reconnects_once(connection, transports, scheduler, settle_loop):
    await connection.connect()
    transports.current.remote_close(4008, "rate limited")
    await settle_loop()
    scheduler.advance(120)
    await settle_loop()

    assert len(transports.created) == 2
    assert connection.state is ConnectionState.CONNECTED


@pytest.mark.asyncio
async def test_fast_second_disconnect_is_delayed(connection, transports, scheduler, settle_loop):
    await connection.connect()
    transports.current.remote_close(4000)
    await settle_loop()
    assert len(transports.created) == 2

    scheduler.advance(10)
    transports.current.remote_close(4000)
    await settle_loop()
    assert len(transports.created) == 2
    [timer] = scheduler.one_shots()
    assert 3.0 <= timer.due - scheduler.now() <= 10.0

    scheduler.advance(10)
    await settle_loop()
    assert len(transports.created) == 3
    assert connection.state is ConnectionState.CONNECTED


@pytest.mark.asyncio
async def test_slow_second_disconnect_is_immediate(connection, transports, scheduler, settle_loop):
    await connection.connect()
    transports.current.remote_close(4000)
    await settle_loop()

    scheduler.advance(120)
    transports.current.remote_close(4000)
    await settle_loop()

    assert len(transports.created) == 3
    assert scheduler.one_shots() == []


@pytest.mark.asyncio
async def test_reconnect_opcode_cycles_transport(connection, transports, settle_loop):
    await connection.connect()
    first = transports.current
    first.feed({"op": 7, "d": None})
    await settle_loop()

    assert first.closed
    assert len(transports.created) == 2
    assert connection.state is ConnectionState.CONNECTED


@pytest.mark.asyncio
async def test_disconnect_on_idle_only_updates_timestamp(connection, scheduler, events):
    scheduler.advance(5)
    await connection.disconnect()

    assert events == []
    assert connection.session.last_disconnect_at == 5
    assert connection.session.closed_by_local is False
    assert connection.state is ConnectionState.IDLE


@pytest.mark.asyncio
async def test_local_disconnect_tears_down_without_reconnect(connection, transports, scheduler, events, settle_loop):
    await connection.connect()
    transport = transports.current
    transport.feed({"op": 10, "d": {"heartbeat_interval": 41250}})
    await settle_loop()
    assert scheduler.periodics()

    await connection.disconnect()
    await connection.disconnect()
    await settle_loop()

    assert _kinds(events) == [EventKind.CONNECTED, EventKind.DISCONNECTED]
    assert transport.closed
    assert transport.close_calls == 1
    assert scheduler.periodics() == []
    assert connection.session.closed_by_local is True
    assert len(transports.created) == 1

    await connection.connect()
    assert connection.session.closed_by_local is False
    assert len(transports.created) == 2


@pytest.mark.asyncio
async def test_connect_failure_raises_and_retries(connection, transports, events, settle_loop):
    transports.connect_errors = [OSError("connection refused")]

    with pytest.raises(GatewayConnectError):
        await connection.connect()
    await settle_loop()

    assert len(transports.created) == 2
    assert connection.state is ConnectionState.CONNECTED
    assert _kinds(events) == [EventKind.CONNECTED]


@pytest.mark.asyncio
async def test_repeated_connect_failures_back_off(connection, transports, scheduler, settle_loop):
    transports.connect_errors = [OSError("refused"), OSError("refused")]

    with pytest.raises(GatewayConnectError):
        await connection.connect()
    await settle_loop()

    assert len(transports.created) == 2
    assert len(scheduler.one_shots()) == 1
    assert connection.state is ConnectionState.IDLE

    scheduler.advance(10)
    await settle_loop()
    assert len(transports.created) == 3
    assert connection.state is ConnectionState.CONNECTED


@pytest.mark.asyncio
async def test_transport_error_is_logged_only(connection, transports, events, settle_loop, caplog):
    await connection.connect()
    transport = transports.current
    transport.fail(RuntimeError("boom"))
    transport.feed({"op": 0, "t": "GUILD_CREATE", "s": 2, "d": {}})
    await settle_loop()

    assert "websocket error: boom" in caplog.text
    assert connection.state is ConnectionState.CONNECTED
    assert connection.sequence == 2
    assert _kinds(events) == [EventKind.CONNECTED, EventKind.MESSAGE]


@pytest.mark.asyncio
async def test_async_listener_receives_messages(connection, transports, settle_loop):
    received = []

    async def _on_message(event):
        received.append((event.name, event.payload))

    connection.add_listener(EventKind.MESSAGE, _on_message)
    await connection.connect()
    transports.current.feed({"op": 0, "t": "MESSAGE_CREATE", "s": 1, "d": {"content": "hi"}})
    await settle_loop()

    assert received == [("MESSAGE_CREATE", {"content": "hi"})]


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_session(connection, transports, settle_loop, caplog):
    def _broken(event):
        raise RuntimeError("listener bug")

    connection.add_listener(EventKind.MESSAGE, _broken)
    await connection.connect()
    transports.current.feed({"op": 0, "t": "X", "s": 1, "d": None})
    await settle_loop()

    assert "Event listener failed" in caplog.text
    assert connection.sequence == 1


@pytest.mark.asyncio
async def test_close_cancels_pending_reconnect(connection, transports, scheduler, settle_loop):
    await connection.connect()
    transports.current.remote_close(4000)
    await settle_loop()
    scheduler.advance(1)
    transports.current.remote_close(4000)
    await settle_loop()
    assert scheduler.one_shots()

    await connection.close()
    scheduler.advance(30)
    await settle_loop()

    assert scheduler.one_shots() == []
    assert len(transports.created) == 2
    assert connection.state is ConnectionState.IDLE


@pytest.mark.asyncio
async def test_disconnect_while_connecting_discards_transport(settings, scheduler, events, settle_loop):
    gate = asyncio.Event()

    class _SlowTransport(DummyTransport):
        async def connect(self, url: str) -> None:
            await gate.wait()
            await super().connect(url)

    created = []

    def _factory(s):
        transport = _SlowTransport(s)
        created.append(transport)
        return transport

    conn = GatewayConnection(settings, _factory, scheduler=scheduler)
    conn.add_listener(EventKind.CONNECTED, events.append)
    pending = asyncio.ensure_future(conn.connect())
    await settle_loop()
    assert conn.state is ConnectionState.CONNECTING

    await conn.disconnect()
    gate.set()
    await pending

    assert conn.state is ConnectionState.IDLE
    assert events == []
    assert created[0].closed


@pytest.mark.asyncio
async def test_close_after_failed_connect_stops_retry(connection, transports, scheduler, settle_loop):
    transports.connect_errors = [OSError("connection refused")]

    with pytest.raises(GatewayConnectError):
        await connection.connect()
    await connection.close()
    scheduler.advance(30)
    await settle_loop()

    assert len(transports.created) == 1
    assert connection.state is ConnectionState.IDLE
    assert scheduler.one_shots() == []


@pytest.mark.asyncio
async def test_close_from_disconnect_listener_stops_reconnect(connection, transports, scheduler, settle_loop):
    async def _shutdown(event):
        await connection.close()

    connection.add_listener(EventKind.DISCONNECTED, _shutdown)
    await connection.connect()
    transports.current.remote_close(4000)
    await settle_loop()
    scheduler.advance(30)
    await settle_loop()

    assert len(transports.created) == 1
    assert connection.state is ConnectionState.IDLE
    assert connection.session.closed_by_local is True


@pytest.mark.asyncio
async def test_connect_after_close_reconnects(connection, transports, settle_loop):
    await connection.connect()
    await connection.close()
    await connection.connect()
    await settle_loop()

    assert len(transports.created) == 2
    assert connection.state is ConnectionState.CONNECTED


@pytest.mark.asyncio
async def test_failed_connect_returns_to_idle_and_can_retry(connection, transports, scheduler, events, settle_loop):
    transports.connect_errors = [OSError("connection refused")]

    with pytest.raises(GatewayConnectError):
        await connection.connect()
    assert connection.state is ConnectionState.IDLE

    await connection.connect()
    assert connection.state is ConnectionState.CONNECTED
    assert transports.current.url == "wss://gateway.test/"

    await settle_loop()
    scheduler.advance(30)
    await settle_loop()

    assert len(transports.created) == 2
    assert connection.state is ConnectionState.CONNECTED
    assert _kinds(events) == [EventKind.CONNECTED]


@pytest.mark.asyncio
async def test_frame_handling_error_keeps_receiving(settings, scheduler, settle_loop, caplog):
    class _BrokenCloseTransport(DummyTransport):
        async def close(self) -> None:
            raise RuntimeError("close failed")

    created = []

    def _factory(s):
        transport = _BrokenCloseTransport(s)
        created.append(transport)
        return transport

    conn = GatewayConnection(settings, _factory, scheduler=scheduler)
    await conn.connect()
    created[0].feed({"op": 7, "d": None})
    created[0].feed({"op": 0, "t": "GUILD_CREATE", "s": 2, "d": {}})
    await settle_loop()

    assert "frame handling failed" in caplog.text
    assert conn.state is ConnectionState.CONNECTED
    assert conn.sequence == 2

    await conn.close()
    assert conn.state is ConnectionState.IDLE
