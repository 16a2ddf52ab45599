"""Write-back endpoints forwarding to the spreadsheet web app."""

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from lucky_draw.api.deps import get_roster_cache, get_write_back
from lucky_draw.schemas.sheets import WriteResult
from lucky_draw.sheets.cache import RosterCache
from lucky_draw.sheets.writeback import WriteBackClient

router = APIRouter()


def _respond(result: WriteResult) -> JSONResponse:
    return JSONResponse(status_code=200 if result.ok else 400, content=result.to_response())


@router.post("/add-prize")
async def add_prize(
    body: dict[str, Any] | None = Body(default=None),
    client: WriteBackClient = Depends(get_write_back),
    cache: RosterCache = Depends(get_roster_cache),
):
    """เพิ่มรางวัลลงชีต Prizes."""
    result = await client.add_prize(body or {})
    if result.ok:
        cache.invalidate("prizes")
    return _respond(result)


@router.post("/append-winner")
async def append_winner(
    body: dict[str, Any] | None = Body(default=None),
    client: WriteBackClient = Depends(get_write_back),
    cache: RosterCache = Depends(get_roster_cache),
):
    """บันทึกผู้ได้รับรางวัลลงชีต winners_log."""
    result = await client.append_winner(body or {})
    if result.ok:
        cache.invalidate("winners")
    return _respond(result)
