"""Health and state snapshot endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from lucky_draw.api.deps import get_hub
from lucky_draw.realtime.hub import RealtimeHub
from lucky_draw.sheets.scheduler import get_scheduler_status

router = APIRouter()


@router.get("/health")
async def health(hub: RealtimeHub = Depends(get_hub)):
    return {
        "ok": True,
        "now": datetime.now(timezone.utc).isoformat(),
        "clients": hub.client_count,
        "jobs": get_scheduler_status(),
    }


@router.get("/state")
async def state(hub: RealtimeHub = Depends(get_hub)):
    """Current draw snapshot, for clients hydrating without a socket."""
    return hub.machine.snapshot()
