"""Roster read endpoints backed by the roster cache."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from lucky_draw.api.deps import get_roster_cache
from lucky_draw.schemas.sheets import SheetPayload
from lucky_draw.sheets.cache import RosterCache
from lucky_draw.sheets.errors import RosterFetchError
from lucky_draw.sheets.gviz_client import KINDS

router = APIRouter()


@router.get("/{kind}", response_model=SheetPayload, response_model_exclude_none=True)
async def read_sheet(kind: str, cache: RosterCache = Depends(get_roster_cache)):
    """participants / prizes / winners as ``{ok, columns, rows}``."""
    if kind not in KINDS:
        raise HTTPException(status_code=404, detail=f"Unknown sheet. Valid: {list(KINDS)}")

    try:
        table = await cache.get(kind)
    except RosterFetchError as e:
        return JSONResponse(status_code=500, content={"ok": False, "error": str(e)})

    return SheetPayload(
        ok=True,
        columns=table.columns,
        rows=table.rows,
        stale=not cache.is_fresh(kind),
    )
