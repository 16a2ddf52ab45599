"""Local view state fed by realtime events."""

from collections.abc import Callable
from typing import Any

from loguru import logger
from pydantic import ValidationError

from lucky_draw.realtime import messages
from lucky_draw.realtime.client import RealtimeClient
from lucky_draw.schemas.draw import DrawMode, DrawState, Winner
from lucky_draw.services.prizes import prize_name, resolve_prize_image

SNAPSHOT_EVENTS = {messages.STATE, messages.STARTED, messages.STOPPING}

DEFAULT_PREVIEW_HINT = "กด START ที่หน้า Admin เพื่อเริ่มสุ่ม"
WAITING_HINT = "เลือกรางวัลในหน้า Admin"


class DrawView:
    """Connection flag plus the latest snapshot seen from the server."""

    def __init__(self):
        self.connected = False
        self.state: DrawState | None = None
        self.last_error: str | None = None
        self.exhausted = False

    def attach(self, client: RealtimeClient) -> Callable[[], None]:
        return client.on(self.handle)

    def handle(self, msg: dict[str, Any]) -> None:
        kind = msg.get("type")
        if kind == messages.CONNECTED:
            self.connected = True
        elif kind == messages.DISCONNECTED:
            self.connected = False
        elif kind in SNAPSHOT_EVENTS:
            payload = msg.get("payload")
            try:
                self.state = DrawState.model_validate(payload)
            except ValidationError as e:
                logger.debug("Ignoring bad {} snapshot: {}", kind, e)
                return
            if kind == messages.STOPPING:
                self.last_error = payload.get("error")
                # No winner without an upstream error means nobody was eligible.
                self.exhausted = self.state.last_winner is None and not self.last_error
            elif kind == messages.STARTED:
                self.last_error = None
                self.exhausted = False

    @property
    def spinning(self) -> bool:
        return bool(self.state and self.state.spinning)

    @property
    def mode(self) -> DrawMode:
        return self.state.mode if self.state else DrawMode.EXCLUDE

    @property
    def prize(self) -> dict[str, Any] | None:
        return self.state.prize if self.state else None

    @property
    def winner(self) -> Winner | None:
        return self.state.last_winner if self.state else None


class PresenterView(DrawView):
    """What the big screen shows. Rendering itself lives elsewhere."""

    @property
    def status_badge(self) -> str:
        return "Realtime: Connected" if self.connected else "Realtime: Disconnected"

    @property
    def prize_title(self) -> str:
        return prize_name(self.prize)

    @property
    def prize_image(self) -> str:
        return resolve_prize_image(self.prize)

    @property
    def waiting_for_operator(self) -> bool:
        return not self.prize

    @property
    def hint(self) -> str:
        if self.waiting_for_operator:
            return WAITING_HINT
        if self.state and self.state.ui.preview_hint.strip():
            return self.state.ui.preview_hint.strip()
        return DEFAULT_PREVIEW_HINT

    @property
    def show_prize_preview(self) -> bool:
        return bool(self.state and self.state.ui.show_prize_preview and not self.state.spinning)

    @property
    def revealed_winner(self) -> Winner | None:
        """The winner card is shown only once the spin has stopped."""
        if self.spinning:
            return None
        return self.winner
