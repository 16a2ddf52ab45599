import asyncio
import json

import pytest

from lucky_draw.realtime import messages
from lucky_draw.realtime.client import Backoff, ConnectionState, RealtimeClient
from tests.fakes import FakeConnector, wait_until


class RecordingBackoff(Backoff):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.delays: list[float] = []

    def next(self) -> float:
        delay = super().next()
        self.delays.append(delay)
        return delay


def fast_backoff() -> RecordingBackoff:
    return RecordingBackoff(base=0.001, step=0.001, cap=0.004)


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def events():
    return []


@pytest.fixture
def client(connector, events):
    c = RealtimeClient(url="ws://test/ws", connector=connector, backoff=fast_backoff(), ping_on_open=False)
    c.on(events.append)
    return c


def types(msgs) -> list[str]:
    return [m["type"] for m in msgs]


def test_backoff_grows_and_caps():
    backoff = Backoff(base=0.5, step=0.25, cap=2.5)

    delays = [backoff.next() for _ in range(10)]

    assert delays[:3] == [0.5, 0.75, 1.0]
    assert max(delays) <= 2.5
    assert delays[-1] == 2.5
    backoff.reset()
    assert backoff.next() == 0.5


@pytest.mark.asyncio
async def test_queued_commands_flush_in_order_once(client, connector):
    connector.gate = asyncio.Event()

    await client.send("SET_PRIZE", {"prize": {"prize_id": "P1"}})
    await client.send("START_SPIN")
    await client.send("STOP_SPIN", {"mapping": {}, "operator": "Admin"})

    assert client.state == ConnectionState.CONNECTING
    assert client.queued == 3

    connector.gate.set()
    await wait_until(lambda: connector.sockets and len(connector.sockets[0].sent) == 3)
    await asyncio.sleep(0.01)

    assert connector.attempts == 1
    assert connector.sockets[0].types == ["SET_PRIZE", "START_SPIN", "STOP_SPIN"]
    assert client.queued == 0


@pytest.mark.asyncio
async def test_connect_is_noop_while_connecting_or_open(client, connector):
    connector.gate = asyncio.Event()
    client.connect()
    client.connect()
    connector.gate.set()
    await wait_until(lambda: client.is_open)
    client.connect()
    await asyncio.sleep(0.01)

    assert connector.attempts == 1


@pytest.mark.asyncio
async def test_open_emits_connected_and_sends_directly(client, connector, events):
    client.connect()
    await wait_until(lambda: client.is_open)

    await client.send("RESET")

    assert types(events) == [messages.CONNECTED]
    assert connector.sockets[0].types == ["RESET"]


@pytest.mark.asyncio
async def test_ping_sent_before_flush(connector):
    connector.gate = asyncio.Event()
    client = RealtimeClient(url="ws://test/ws", connector=connector, backoff=fast_backoff())

    await client.send("RESET")
    connector.gate.set()
    await wait_until(lambda: connector.sockets and len(connector.sockets[0].sent) == 2)

    assert connector.sockets[0].types == [messages.PING, "RESET"]


@pytest.mark.asyncio
async def test_inbound_events_dispatched(client, connector, events):
    client.connect()
    await wait_until(lambda: client.is_open)
    ws = connector.sockets[0]

    ws.push(json.dumps({"type": "STATE", "payload": {"mode": "repeat"}}))
    ws.push("not json")
    ws.push(json.dumps({"payload": {}}))
    ws.push(json.dumps({"type": "PONG"}))
    await wait_until(lambda: len(events) >= 3)

    assert types(events) == [messages.CONNECTED, "STATE", "PONG"]
    assert events[1]["payload"] == {"mode": "repeat"}


@pytest.mark.asyncio
async def test_close_reconnects(client, connector, events):
    client.connect()
    await wait_until(lambda: client.is_open)

    await connector.sockets[0].close()
    await wait_until(lambda: len(connector.sockets) == 2 and client.is_open)

    assert types(events) == [messages.CONNECTED, messages.DISCONNECTED, messages.CONNECTED]
    assert connector.attempts == 2


@pytest.mark.asyncio
async def test_failed_attempts_respect_cap(client, connector, events):
    connector.failures = 10
    client.connect()

    await wait_until(lambda: client.is_open, timeout=5)

    backoff = client._backoff
    assert connector.attempts == 11
    assert len(backoff.delays) == 10
    assert max(backoff.delays) <= backoff.cap
    assert backoff.delays[-1] == backoff.cap
    assert types(events).count(messages.DISCONNECTED) == 10
    assert backoff.attempt == 0


@pytest.mark.asyncio
async def test_send_failure_requeues_remaining(client, connector):
    connector.gate = asyncio.Event()
    connector.fail_sends = [1]

    for name in ("A", "B", "C"):
        await client.send(name)
    connector.gate.set()

    await wait_until(lambda: len(connector.sockets) == 2 and len(connector.sockets[1].sent) == 2)

    assert connector.sockets[0].types == ["A"]
    assert connector.sockets[1].types == ["B", "C"]
    assert client.queued == 0


@pytest.mark.asyncio
async def test_queue_drops_oldest_when_full(connector):
    connector.gate = asyncio.Event()
    client = RealtimeClient(
        url="ws://test/ws", connector=connector, queue_limit=2,
        backoff=fast_backoff(), ping_on_open=False,
    )

    for name in ("A", "B", "C"):
        await client.send(name)
    assert client.queued == 2

    connector.gate.set()
    await wait_until(lambda: connector.sockets and len(connector.sockets[0].sent) == 2)
    assert connector.sockets[0].types == ["B", "C"]


@pytest.mark.asyncio
async def test_disconnect_stops_reconnecting(client, connector, events):
    client.connect()
    await wait_until(lambda: client.is_open)

    await client.disconnect()
    await asyncio.sleep(0.05)

    assert connector.attempts == 1
    assert client.state == ConnectionState.DISCONNECTED
    assert types(events) == [messages.CONNECTED, messages.DISCONNECTED]


@pytest.mark.asyncio
async def test_unsubscribe(client, connector, events):
    seen = []
    off = client.on(seen.append)
    off()

    client.connect()
    await wait_until(lambda: client.is_open)

    assert seen == []
    assert types(events) == [messages.CONNECTED]


@pytest.mark.asyncio
async def test_failed_send_on_full_queue_drops_oldest(connector):
    connector.fail_sends = [0]
    client = RealtimeClient(
        url="ws://test/ws", connector=connector, queue_limit=2,
        backoff=fast_backoff(), ping_on_open=False,
    )
    client.connect()
    await wait_until(lambda: client.is_open)
    connector.sockets[0].hold = asyncio.Event()

    first = asyncio.create_task(client.send("A"))
    await wait_until(lambda: connector.sockets[0].attempts == 1)
    await client.send("B")
    await client.send("C")
    assert client.queued == 2

    connector.sockets[0].hold.set()
    await first
    await wait_until(lambda: len(connector.sockets) == 2 and len(connector.sockets[1].sent) == 2)

    assert connector.sockets[0].sent == []
    assert connector.sockets[1].types == ["B", "C"]
