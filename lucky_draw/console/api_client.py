"""HTTP client for the server's sheet and write-back endpoints."""

import asyncio
from typing import Any

import aiohttp
from loguru import logger

from lucky_draw.config import settings


class ServerApiClient:
    def __init__(self, base_url: str | None = None, timeout: float = 15.0):
        self.base_url = (base_url or settings.SERVER_HTTP).rstrip("/")
        self.timeout = timeout

    async def get_sheet(self, kind: str) -> dict[str, Any]:
        """``{ok, columns, rows}`` or ``{ok: False, error}`` when unreachable."""
        return await self._request("GET", f"/api/sheets/{kind}")

    async def add_prize(self, row: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/api/write/add-prize", {"row": row})

    async def _request(self, method: str, path: str, body: dict | None = None) -> dict[str, Any]:
        try:
            async with aiohttp.ClientSession() as client:
                async with client.request(
                    method,
                    f"{self.base_url}{path}",
                    json=body,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    try:
                        data = await resp.json(content_type=None)
                    except ValueError:
                        data = None
                    if not isinstance(data, dict):
                        data = {"ok": False, "error": f"HTTP {resp.status}"}
                    return data
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("{} {} failed: {}", method, path, e)
            return {"ok": False, "error": str(e) or type(e).__name__}
