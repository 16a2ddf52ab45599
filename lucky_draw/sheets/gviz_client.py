"""Read-only client for Google Sheets via the public GViz endpoint.

The endpoint answers with a JavaScript callback wrapping JSON, e.g.
``google.visualization.Query.setResponse({...});`` so the body is unwrapped
with a regex before decoding.
"""

import asyncio
import json
import re
from typing import Any
from urllib.parse import quote

import aiohttp
from loguru import logger

from lucky_draw.config import settings
from lucky_draw.schemas.sheets import SheetTable
from lucky_draw.sheets.errors import RosterFetchError

GVIZ_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq"
USER_AGENT = "led-lucky-draw-server"

_ENVELOPE_RE = re.compile(r"setResponse\((.*)\);?\s*$", re.DOTALL)

KINDS = ("participants", "prizes", "winners")


def unwrap_envelope(text: str) -> dict:
    """Extract the JSON object from a GViz ``setResponse(...)`` body."""
    m = _ENVELOPE_RE.search(text)
    if not m:
        raise ValueError("Invalid GViz response")
    data = json.loads(m.group(1))
    if not isinstance(data, dict):
        raise ValueError("Invalid GViz response: payload is not an object")
    return data


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def gviz_to_table(gviz: dict[str, Any]) -> SheetTable:
    """Convert a GViz table into column names and row dicts.

    Column names come from each column's label (falling back to its id).
    Cells without a value become "".
    """
    table = _as_dict(gviz.get("table"))
    columns = [
        str(_as_dict(c).get("label") or _as_dict(c).get("id") or "").strip()
        for c in _as_list(table.get("cols"))
    ]

    rows = []
    for r in _as_list(table.get("rows")):
        row: dict[str, Any] = {}
        for i, cell in enumerate(_as_list(_as_dict(r).get("c"))):
            key = columns[i] if i < len(columns) and columns[i] else f"col_{i}"
            value = cell.get("v") if isinstance(cell, dict) else None
            row[key] = "" if value is None else value
        rows.append(row)

    return SheetTable(columns=columns, rows=rows)


class GVizClient:
    """Fetches one sheet tab per roster kind."""

    def __init__(
        self,
        sheet_id: str | None = None,
        sheet_names: dict[str, str] | None = None,
        timeout: float | None = None,
    ):
        self.sheet_id = settings.SHEET_ID if sheet_id is None else sheet_id
        self.sheet_names = sheet_names or settings.sheet_names
        self.timeout = timeout or settings.UPSTREAM_TIMEOUT_SECONDS

    @property
    def url(self) -> str:
        return GVIZ_URL.format(sheet_id=quote(self.sheet_id, safe=""))

    async def fetch_table(self, kind: str) -> SheetTable:
        """Fetch and parse the tab for ``kind``. Raises RosterFetchError."""
        if kind not in self.sheet_names:
            raise RosterFetchError(kind, "unknown roster kind")
        if not self.sheet_id:
            raise RosterFetchError(kind, "SHEET_ID not configured")

        sheet = self.sheet_names[kind]
        params = {"tqx": "out:json", "sheet": sheet}
        headers = {"User-Agent": USER_AGENT}

        try:
            async with aiohttp.ClientSession() as client:
                async with client.get(
                    self.url,
                    params=params,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    if resp.status != 200:
                        raise RosterFetchError(
                            kind, f"GViz HTTP {resp.status} for sheet={sheet}"
                        )
                    text = await resp.text()
        except UnicodeDecodeError as e:
            raise RosterFetchError(kind, f"GViz body is not valid text: {e}") from e
        except aiohttp.ClientError as e:
            raise RosterFetchError(kind, f"GViz request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise RosterFetchError(kind, "GViz request timed out") from e

        try:
            gviz = unwrap_envelope(text)
        except ValueError as e:
            raise RosterFetchError(kind, str(e)) from e

        if gviz.get("status") == "error":
            errors = _as_list(gviz.get("errors"))
            detail = _as_dict(errors[0]).get("detailed_message") if errors else None
            raise RosterFetchError(kind, f"GViz error: {detail or 'unknown error'}")

        try:
            table = gviz_to_table(gviz)
        except ValueError as e:
            raise RosterFetchError(kind, f"Unreadable GViz table: {e}") from e
        logger.debug("[{}] fetched {} rows from sheet {}", kind, len(table.rows), sheet)
        return table


# Singleton
gviz_client = GVizClient()
