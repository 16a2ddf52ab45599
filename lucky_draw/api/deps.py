"""Dependency injection for FastAPI."""

from lucky_draw.realtime.hub import RealtimeHub, hub
from lucky_draw.sheets.cache import RosterCache, roster_cache
from lucky_draw.sheets.writeback import WriteBackClient, write_back_client


def get_roster_cache() -> RosterCache:
    return roster_cache


def get_write_back() -> WriteBackClient:
    return write_back_client


def get_hub() -> RealtimeHub:
    return hub
