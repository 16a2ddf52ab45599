"""WebSocket route for the realtime hub."""

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from loguru import logger

from lucky_draw.api.deps import get_hub
from lucky_draw.config import settings
from lucky_draw.realtime.hub import RealtimeHub

router = APIRouter()


@router.websocket(settings.WS_PATH)
async def realtime_endpoint(ws: WebSocket, hub: RealtimeHub = Depends(get_hub)):
    await ws.accept()
    try:
        await hub.connect(ws)
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                break
            text = message.get("text")
            if text is None and message.get("bytes") is not None:
                text = message["bytes"].decode("utf-8", errors="replace")
            if text is not None:
                await hub.handle_text(ws, text)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning("WebSocket closed on error: {}", e)
    finally:
        hub.disconnect(ws)
