"""Operator console: prize selection, draw controls and column mapping."""

from typing import Any

from loguru import logger

from lucky_draw.console.api_client import ServerApiClient
from lucky_draw.console.preferences import MAPPING_KEY, OPERATOR_KEY, Preferences
from lucky_draw.console.views import DrawView
from lucky_draw.realtime import messages
from lucky_draw.realtime.client import RealtimeClient
from lucky_draw.schemas.draw import ColumnMapping, DrawMode
from lucky_draw.services.columns import guess_mapping
from lucky_draw.services.prizes import is_active_row, prize_id, search_prizes, sort_prizes

DEFAULT_OPERATOR = "Admin"
SELECT_HINT = "เตรียมพร้อม… กด START เพื่อเริ่มสุ่ม"
TOGGLE_HINT = "กด START เพื่อเริ่มสุ่ม"


class AdminConsole:
    def __init__(
        self,
        client: RealtimeClient,
        preferences: Preferences,
        api: ServerApiClient | None = None,
    ):
        self.client = client
        self.prefs = preferences
        self.api = api or ServerApiClient()
        self.view = DrawView()
        self.view.attach(client)

        stored = preferences.get(MAPPING_KEY)
        self.mapping = ColumnMapping.model_validate(stored if isinstance(stored, dict) else {})
        self.operator: str = preferences.get(OPERATOR_KEY) or ""

        self.columns: list[str] = []
        self.prizes: list[dict[str, Any]] = []
        self.selected_prize_id = ""
        self.show_inactive = False

    def connect(self) -> None:
        self.client.connect()

    @property
    def controls_enabled(self) -> bool:
        """Draw controls are locked while offline or mid-spin."""
        return self.view.connected and not self.view.spinning

    # --- roster ---

    async def load_participant_columns(self) -> ColumnMapping:
        """Re-guess mapping keys missing from the participant tab and persist the result."""
        payload = await self.api.get_sheet("participants")
        if not payload.get("ok"):
            logger.warning("Participants unavailable: {}", payload.get("error"))
            return self.mapping

        self.columns = list(payload.get("columns") or [])
        self.mapping = guess_mapping(self.columns, self.mapping)
        self.prefs.set(MAPPING_KEY, self.mapping.model_dump(by_alias=True))

        if not self.operator.strip():
            self.set_operator(DEFAULT_OPERATOR)
        return self.mapping

    def set_mapping(self, **keys: str) -> None:
        self.mapping = self.mapping.model_copy(update=keys)
        self.prefs.set(MAPPING_KEY, self.mapping.model_dump(by_alias=True))

    def set_operator(self, name: str) -> None:
        self.operator = name
        self.prefs.set(OPERATOR_KEY, name)

    async def load_prizes(self) -> list[dict[str, Any]]:
        payload = await self.api.get_sheet("prizes")
        if not payload.get("ok"):
            return self.prizes

        rows = list(payload.get("rows") or [])
        if not self.show_inactive:
            rows = [p for p in rows if is_active_row(p)]
        self.prizes = sort_prizes(rows)

        if not any(prize_id(p) == self.selected_prize_id for p in self.prizes):
            self.selected_prize_id = prize_id(self.prizes[0]) if self.prizes else ""
        return self.prizes

    def search(self, query: str) -> list[dict[str, Any]]:
        return search_prizes(self.prizes, query)

    @property
    def selected_prize(self) -> dict[str, Any] | None:
        return next((p for p in self.prizes if prize_id(p) == self.selected_prize_id), None)

    @property
    def selected_prize_index(self) -> int | None:
        """1-based position in the catalog, as shown on the presenter."""
        for i, p in enumerate(self.prizes, start=1):
            if prize_id(p) == self.selected_prize_id:
                return i
        return None

    # --- commands ---

    async def select_prize(self, pid: str) -> None:
        """Put a prize on stage and open its preview."""
        self.selected_prize_id = pid
        prize = self.selected_prize
        if prize is None:
            return
        await self.client.send(messages.SET_PRIZE, {"prize": prize})
        await self.client.send(messages.SET_UI, {"ui": {
            "showPrizePreview": True,
            "selectedPrizeIndex": self.selected_prize_index,
            "previewHint": SELECT_HINT,
        }})

    async def select_prize_by_index(self, index: int) -> None:
        if 1 <= index <= len(self.prizes):
            await self.select_prize(prize_id(self.prizes[index - 1]))

    async def toggle_preview(self) -> None:
        open_now = bool(self.view.state and self.view.state.ui.show_prize_preview)
        await self.client.send(messages.SET_UI, {"ui": {
            "showPrizePreview": not open_now,
            "selectedPrizeIndex": self.selected_prize_index,
            "previewHint": TOGGLE_HINT,
        }})

    async def close_preview(self) -> None:
        await self.client.send(messages.SET_UI, {"ui": {"showPrizePreview": False}})

    async def start(self) -> None:
        await self.close_preview()
        await self.client.send(messages.START_SPIN)

    async def stop(self) -> None:
        await self.client.send(messages.STOP_SPIN, {
            "mapping": self.mapping.model_dump(by_alias=True),
            "operator": self.operator,
        })

    async def reset(self) -> None:
        await self.client.send(messages.RESET)

    async def set_mode(self, mode: DrawMode | str) -> None:
        await self.client.send(messages.SET_MODE, {"mode": DrawMode.parse(mode).value})

    async def add_prize(self, **fields: Any) -> dict[str, Any]:
        """Append a prize row. The webhook's answer is returned so the operator sees failures."""
        row = {k: v for k, v in fields.items() if v is not None}
        result = await self.api.add_prize(row)
        if result.get("ok"):
            await self.load_prizes()
        else:
            logger.warning("Add prize failed: {}", result)
        return result
