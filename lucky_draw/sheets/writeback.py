"""Optional write-back to the spreadsheet through an Apps Script web app."""

import asyncio
from typing import Any

import aiohttp
from loguru import logger

from lucky_draw.config import settings
from lucky_draw.schemas.sheets import WriteResult

ADD_PRIZE = "add_prize"
APPEND_WINNER = "append_winner"


class WriteBackClient:
    """POSTs JSON to ``{url}?action=...``. Failures come back as ``ok=False``."""

    def __init__(self, url: str | None = None, timeout: float | None = None):
        self.url = (settings.WRITE_WEBAPP_URL if url is None else url).strip()
        self.timeout = timeout or settings.UPSTREAM_TIMEOUT_SECONDS

    @property
    def configured(self) -> bool:
        return bool(self.url)

    async def write(self, action: str, payload: dict[str, Any]) -> WriteResult:
        if not self.configured:
            return WriteResult(ok=False, reason="WRITE_WEBAPP_URL not set")

        try:
            async with aiohttp.ClientSession() as client:
                async with client.post(
                    self.url,
                    params={"action": action},
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    try:
                        body = await resp.json(content_type=None)
                    except ValueError:
                        body = {}
                    if resp.status >= 400:
                        logger.warning("Write-back {} returned {}", action, resp.status)
                        return WriteResult(ok=False, status=resp.status, body=body)
                    return WriteResult(ok=True, body=body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("Write-back {} failed: {}", action, e)
            return WriteResult(ok=False, error=str(e) or type(e).__name__)

    async def add_prize(self, payload: dict[str, Any]) -> WriteResult:
        return await self.write(ADD_PRIZE, payload)

    async def append_winner(self, payload: dict[str, Any]) -> WriteResult:
        return await self.write(APPEND_WINNER, payload)


# Singleton
write_back_client = WriteBackClient()
