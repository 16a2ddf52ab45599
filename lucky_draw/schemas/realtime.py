"""Realtime message envelope."""

from typing import Any

from pydantic import BaseModel


class Envelope(BaseModel):
    type: str
    payload: Any = None
