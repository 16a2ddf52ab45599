"""Pydantic schemas package."""

from lucky_draw.schemas.draw import ColumnMapping, DrawMode, DrawState, UiHints, Winner
from lucky_draw.schemas.realtime import Envelope
from lucky_draw.schemas.sheets import SheetPayload, SheetTable, WriteResult

__all__ = [
    "ColumnMapping",
    "DrawMode",
    "DrawState",
    "UiHints",
    "Winner",
    "Envelope",
    "SheetPayload",
    "SheetTable",
    "WriteResult",
]
