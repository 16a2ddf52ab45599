"""In-memory stand-ins for sockets, roster loaders and the write-back webhook."""

import asyncio
import json
from types import SimpleNamespace

import aiohttp

from lucky_draw.schemas.sheets import SheetTable, WriteResult
from lucky_draw.sheets.errors import RosterFetchError


async def wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


class FakeLoader:
    """Roster loader serving fixed tables; counts upstream calls per kind."""

    def __init__(self, tables: dict[str, SheetTable] | None = None):
        self.tables = dict(tables or {})
        self.calls: dict[str, int] = {}
        self.fail = False
        self.gate: asyncio.Event | None = None

    async def __call__(self, kind: str) -> SheetTable:
        self.calls[kind] = self.calls.get(kind, 0) + 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RosterFetchError(kind, "GViz HTTP 503 for sheet=test")
        return self.tables.get(kind, SheetTable(columns=[], rows=[]))


class FakeWriteBack:
    def __init__(self, result: WriteResult | None = None, error: Exception | None = None):
        self.result = result or WriteResult(ok=True, body={"ok": True})
        self.error = error
        self.calls: list[tuple[str, dict]] = []

    async def append_winner(self, payload: dict) -> WriteResult:
        self.calls.append(("append_winner", payload))
        if self.error is not None:
            raise self.error
        return self.result

    async def add_prize(self, payload: dict) -> WriteResult:
        self.calls.append(("add_prize", payload))
        if self.error is not None:
            raise self.error
        return self.result


class FakeConnection:
    """Server-side socket as seen by the hub."""

    def __init__(self, broken: bool = False):
        self.sent: list[dict] = []
        self.broken = broken

    async def send_text(self, data: str) -> None:
        if self.broken:
            raise ConnectionResetError("peer gone")
        self.sent.append(json.loads(data))

    @property
    def types(self) -> list[str]:
        return [m["type"] for m in self.sent]


class FakeSocket:
    """Client-side websocket as returned by a connector."""

    def __init__(self, fail_at: int | None = None):
        self.sent: list[dict] = []
        self.fail_at = fail_at
        self.closed = False
        self.hold: asyncio.Event | None = None
        self.attempts = 0
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def send_str(self, data: str) -> None:
        self.attempts += 1
        if self.hold is not None:
            await self.hold.wait()
        if self.closed or (self.fail_at is not None and len(self.sent) == self.fail_at):
            raise ConnectionResetError("socket closed")
        self.sent.append(json.loads(data))

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            await self._incoming.put(None)

    def push(self, text: str) -> None:
        self._incoming.put_nowait(SimpleNamespace(type=aiohttp.WSMsgType.TEXT, data=text))

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._incoming.get()
        if item is None:
            raise StopAsyncIteration
        return item

    @property
    def types(self) -> list[str]:
        return [m["type"] for m in self.sent]


class FakeConnector:
    def __init__(self):
        self.sockets: list[FakeSocket] = []
        self.attempts = 0
        self.failures = 0
        self.fail_sends: list[int | None] = []
        self.gate: asyncio.Event | None = None

    async def __call__(self, url: str) -> FakeSocket:
        self.attempts += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            self.failures -= 1
            raise ConnectionRefusedError("server down")
        fail_at = self.fail_sends.pop(0) if self.fail_sends else None
        ws = FakeSocket(fail_at=fail_at)
        self.sockets.append(ws)
        return ws
