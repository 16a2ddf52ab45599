"""Client realtime adapter shared by the admin and presenter consoles.

Keeps at most one socket open, reconnects with a capped linear backoff and
queues outbound commands while the socket is down. The connection moves
through DISCONNECTED -> CONNECTING -> OPEN -> (CLOSING) -> DISCONNECTED;
the only suspension points are the socket-open await and the reconnect
timer scheduled with ``loop.call_later``.
"""

import asyncio
import json
from collections import deque
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Protocol

import aiohttp
from loguru import logger

from lucky_draw.config import settings
from lucky_draw.realtime import messages

Handler = Callable[[dict[str, Any]], None]


class Socket(Protocol):
    async def send_str(self, data: str) -> None: ...
    async def close(self) -> Any: ...
    def __aiter__(self): ...


Connector = Callable[[str], Awaitable[Socket]]


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"


class Backoff:
    """Delay grows by ``step`` per failed attempt, capped at ``cap``."""

    def __init__(
        self,
        base: float | None = None,
        step: float | None = None,
        cap: float | None = None,
        max_steps: int = 8,
    ):
        self.base = settings.CLIENT_BACKOFF_BASE_SECONDS if base is None else base
        self.step = settings.CLIENT_BACKOFF_STEP_SECONDS if step is None else step
        self.cap = settings.CLIENT_BACKOFF_MAX_SECONDS if cap is None else cap
        self.max_steps = max_steps
        self.attempt = 0

    def next(self) -> float:
        delay = min(self.cap, self.base + self.attempt * self.step)
        self.attempt = min(self.attempt + 1, self.max_steps)
        return delay

    def reset(self) -> None:
        self.attempt = 0


class AiohttpConnector:
    """Opens websockets on one shared aiohttp session."""

    def __init__(self, heartbeat: float = 30.0):
        self.heartbeat = heartbeat
        self._session: aiohttp.ClientSession | None = None

    async def __call__(self, url: str) -> aiohttp.ClientWebSocketResponse:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return await self._session.ws_connect(url, heartbeat=self.heartbeat)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None


class RealtimeClient:
    def __init__(
        self,
        url: str | None = None,
        connector: Connector | None = None,
        queue_limit: int | None = None,
        backoff: Backoff | None = None,
        ping_on_open: bool = True,
    ):
        self.url = url or settings.WS_URL
        self._connector = connector or AiohttpConnector()
        self._queue: deque[str] = deque(maxlen=queue_limit or settings.CLIENT_QUEUE_LIMIT)
        self._backoff = backoff or Backoff()
        self.ping_on_open = ping_on_open

        self.state = ConnectionState.DISCONNECTED
        self.last_delay: float | None = None
        self._handlers: list[Handler] = []
        self._ws: Socket | None = None
        self._should_reconnect = True
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self._flushing = False

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN

    @property
    def queued(self) -> int:
        return len(self._queue)

    def on(self, handler: Handler) -> Callable[[], None]:
        """Subscribe to inbound and local events. Returns the unsubscribe callable."""
        self._handlers.append(handler)

        def off() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return off

    # --- connection lifecycle ---

    def connect(self) -> None:
        if self.state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            return
        self._should_reconnect = True
        self._cancel_reconnect()
        self.state = ConnectionState.CONNECTING
        self._spawn(self._open())

    async def _open(self) -> None:
        try:
            ws = await self._connector(self.url)
        except Exception as e:
            logger.debug("[WS] connect to {} failed: {}", self.url, e)
            self._handle_close()
            return

        if self.state != ConnectionState.CONNECTING:
            await ws.close()
            return

        self._ws = ws
        self.state = ConnectionState.OPEN
        self._backoff.reset()
        logger.debug("[WS] OPEN {}", self.url)
        self._emit({"type": messages.CONNECTED})
        self._spawn(self._read(ws))

        if self.ping_on_open:
            try:
                await ws.send_str(json.dumps({"type": messages.PING, "payload": {}}))
            except Exception as e:
                logger.debug("[WS] ping failed: {}", e)

        await self._flush()

    async def _read(self, ws: Socket) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._dispatch(msg.data)
                elif msg.type in (aiohttp.WSMsgType.ERROR, aiohttp.WSMsgType.CLOSED):
                    break
        except Exception as e:
            logger.debug("[WS] read error: {}", e)
        finally:
            if self._ws is ws:
                self._handle_close()

    def _handle_close(self) -> None:
        self._ws = None
        self.state = ConnectionState.DISCONNECTED
        logger.debug("[WS] CLOSE")
        self._emit({"type": messages.DISCONNECTED})

        if not self._should_reconnect:
            return

        delay = self._backoff.next()
        self.last_delay = delay
        self._cancel_reconnect()
        self._reconnect_handle = asyncio.get_running_loop().call_later(delay, self.connect)

    async def disconnect(self) -> None:
        """Close the socket and stop reconnecting. Queued commands are kept."""
        self._should_reconnect = False
        self._cancel_reconnect()

        ws, self._ws = self._ws, None
        if ws is not None:
            self.state = ConnectionState.CLOSING
            try:
                await ws.close()
            except Exception as e:
                logger.debug("[WS] close error: {}", e)
            self._emit({"type": messages.DISCONNECTED})
        self.state = ConnectionState.DISCONNECTED

    async def aclose(self) -> None:
        await self.disconnect()
        for task in list(self._tasks):
            task.cancel()
        if isinstance(self._connector, AiohttpConnector):
            await self._connector.close()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    # --- outbound ---

    async def send(self, type: str, payload: Any = None) -> None:
        """Send a command, queueing it while the socket is not open."""
        text = json.dumps({"type": type, "payload": payload}, ensure_ascii=False)

        if not self.is_open:
            self.connect()
            logger.debug("[WS] QUEUE {}", type)
            self._enqueue(text)
            return

        self._enqueue(text)
        await self._flush()

    def _enqueue(self, text: str) -> None:
        if len(self._queue) == self._queue.maxlen:
            logger.warning("[WS] queue full, dropping oldest command")
        self._queue.append(text)

    async def _flush(self) -> None:
        """Send queued frames in order. A failed send puts the frame back and stops."""
        if self._flushing:
            return
        self._flushing = True
        try:
            while self._queue and self.is_open and self._ws is not None:
                ws = self._ws
                text = self._queue.popleft()
                try:
                    await ws.send_str(text)
                except Exception as e:
                    if len(self._queue) == self._queue.maxlen:
                        # The failed frame is the oldest one queued.
                        logger.warning("[WS] send failed and queue full, dropping oldest command")
                    else:
                        logger.debug("[WS] send failed, requeued: {}", e)
                        self._queue.appendleft(text)
                    try:
                        await ws.close()
                    except Exception as close_error:
                        logger.debug("[WS] close error: {}", close_error)
                    break
        finally:
            self._flushing = False

    # --- inbound ---

    def _dispatch(self, data: str) -> None:
        try:
            msg = json.loads(data)
        except (TypeError, ValueError):
            return
        if isinstance(msg, dict) and isinstance(msg.get("type"), str):
            self._emit(msg)

    def _emit(self, msg: dict[str, Any]) -> None:
        for handler in list(self._handlers):
            try:
                handler(msg)
            except Exception as e:
                logger.error("[WS] handler failed on {}: {}", msg.get("type"), e)

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
