"""Aggregate API router."""

from fastapi import APIRouter

from lucky_draw.api.endpoints import health, sheets, write

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(sheets.router, prefix="/sheets", tags=["sheets"])
api_router.include_router(write.router, prefix="/write", tags=["write-back"])
