"""FastAPI application entry point."""

import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from lucky_draw.config import settings

# Configure loguru
logger.remove()
logger.add(sys.stderr, level="DEBUG" if settings.DEBUG else "INFO")
logger.add("logs/app.log", rotation="10 MB", retention="7 days", level="INFO")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info("Starting {} ...", settings.APP_NAME)
    logger.info("ALLOWED_ORIGINS={}", ",".join(settings.allowed_origins) or "(none)")
    if settings.SHEET_ID:
        logger.info("SHEET_ID={}", settings.SHEET_ID)
    else:
        logger.warning("SHEET_ID is not set: roster reads will fail")
    logger.info("WRITE_WEBAPP_URL={} (optional)", "set" if settings.WRITE_WEBAPP_URL else "(not set)")

    if settings.ROSTER_PREFETCH_ENABLED:
        try:
            from lucky_draw.sheets.scheduler import start_scheduler
            start_scheduler()
        except Exception as e:
            logger.warning("Failed to start scheduler: {}", e)

    yield

    if settings.ROSTER_PREFETCH_ENABLED:
        from lucky_draw.sheets.scheduler import stop_scheduler
        stop_scheduler()

    from lucky_draw.realtime.hub import hub
    await hub.machine.drain()
    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Realtime lucky draw server: shared draw state, winner selection and roster access",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
from lucky_draw.api.router import api_router  # noqa: E402
from lucky_draw.realtime.endpoint import router as realtime_router  # noqa: E402

app.include_router(api_router, prefix="/api")
app.include_router(realtime_router)
