"""Presenter console: follows the draw and keeps the names shown on the globe."""

import re

from lucky_draw.console.api_client import ServerApiClient
from lucky_draw.console.views import PresenterView
from lucky_draw.realtime.client import RealtimeClient
from lucky_draw.services.columns import cell_text

MAX_NAMES = 500
_NAME_RE = re.compile(r"name|ชื่อ", re.IGNORECASE)


class PresenterConsole:
    def __init__(self, client: RealtimeClient, api: ServerApiClient | None = None):
        self.client = client
        self.api = api or ServerApiClient()
        self.view = PresenterView()
        self.view.attach(client)
        self.names: list[str] = []

    async def load_names(self) -> list[str]:
        payload = await self.api.get_sheet("participants")
        if not payload.get("ok"):
            return self.names

        columns = payload.get("columns") or []
        name_key = next((c for c in columns if _NAME_RE.search(c)), columns[0] if columns else "name")
        names = [cell_text(r.get(name_key)).strip() for r in payload.get("rows") or []]
        self.names = [n for n in names if n][:MAX_NAMES]
        return self.names

    def start(self) -> None:
        self.client.connect()
