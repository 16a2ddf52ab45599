"""Realtime hub: client registry, command dispatch and snapshot broadcast."""

import asyncio
import json
import time
from typing import Any, Protocol

from loguru import logger
from pydantic import ValidationError

from lucky_draw.config import settings
from lucky_draw.realtime import messages
from lucky_draw.schemas.draw import ColumnMapping
from lucky_draw.schemas.realtime import Envelope
from lucky_draw.services.draw_machine import DrawStateMachine, Event
from lucky_draw.sheets.cache import roster_cache
from lucky_draw.sheets.writeback import write_back_client


class Connection(Protocol):
    async def send_text(self, data: str) -> None: ...


def _now_ms() -> int:
    return int(time.time() * 1000)


def _encode(msg: dict[str, Any]) -> str:
    return json.dumps(msg, ensure_ascii=False)


def parse_envelope(text: str) -> Envelope | None:
    """Decode one inbound frame. Anything malformed yields None."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        return None
    return Envelope(type=data["type"], payload=data.get("payload"))


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


class RealtimeHub:
    """Owns the state machine. Commands from all connections are applied one at a time."""

    def __init__(self, machine: DrawStateMachine, send_timeout: float | None = None):
        self.machine = machine
        self.send_timeout = send_timeout or settings.WS_SEND_TIMEOUT_SECONDS
        self._clients: set[Connection] = set()
        self._dispatch_lock = asyncio.Lock()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def connect(self, ws: Connection) -> None:
        """Register a client and hydrate it: CONNECTED, then the current STATE."""
        self._clients.add(ws)
        logger.info("Client connected, total: {}", len(self._clients))
        await self._send(ws, {"type": messages.CONNECTED, "payload": {"t": _now_ms()}})
        await self._send(ws, Event(messages.STATE, self.machine.snapshot()).to_message())

    def disconnect(self, ws: Connection) -> None:
        self._clients.discard(ws)
        logger.info("Client disconnected, remaining: {}", len(self._clients))

    async def handle_text(self, ws: Connection, text: str) -> None:
        envelope = parse_envelope(text)
        if envelope is None:
            logger.debug("Dropped malformed frame: {!r}", text[:200])
            return

        if envelope.type == messages.PING:
            await self._send(ws, {"type": messages.PONG, "payload": {"t": _now_ms()}})
            return

        if envelope.type not in messages.COMMANDS:
            logger.debug("Dropped unknown command {}", envelope.type)
            return

        async with self._dispatch_lock:
            try:
                event = await self._apply(envelope.type, _as_dict(envelope.payload))
            except ValidationError as e:
                logger.debug("Dropped invalid {} payload: {}", envelope.type, e)
                return
            await self.broadcast(event)

    async def _apply(self, command: str, payload: dict[str, Any]) -> Event:
        logger.debug("Dispatch {}", command)
        machine = self.machine

        if command == messages.SET_MODE:
            return machine.set_mode(payload.get("mode"))
        if command == messages.SET_PRIZE:
            return machine.set_prize(payload.get("prize"))
        if command == messages.SET_UI:
            return machine.set_ui(_as_dict(payload.get("ui")))
        if command == messages.START_SPIN:
            return machine.start_spin()
        if command == messages.STOP_SPIN:
            mapping = ColumnMapping.model_validate(_as_dict(payload.get("mapping")))
            operator = payload.get("operator")
            return await machine.stop_spin(mapping, operator if isinstance(operator, str) else "")
        if command == messages.RESET:
            return machine.reset()
        raise ValueError(f"Unknown command: {command}")

    async def broadcast(self, event: Event) -> None:
        """Best-effort send to every client. Failing or slow clients are dropped."""
        text = _encode(event.to_message())
        clients = list(self._clients)
        delivered = await asyncio.gather(*(self._deliver(ws, text) for ws in clients))

        for ws, ok in zip(clients, delivered):
            if not ok:
                self._clients.discard(ws)

    async def _deliver(self, ws: Connection, text: str) -> bool:
        try:
            await asyncio.wait_for(ws.send_text(text), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            logger.warning("Send timeout, dropping slow client")
            return False
        except Exception as e:
            logger.debug("Broadcast error: {}", e)
            return False
        return True

    async def _send(self, ws: Connection, msg: dict[str, Any]) -> None:
        await asyncio.wait_for(ws.send_text(_encode(msg)), timeout=self.send_timeout)


# Singleton
hub = RealtimeHub(DrawStateMachine(roster_cache, write_back_client))
