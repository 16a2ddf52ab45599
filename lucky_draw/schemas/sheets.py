"""Pydantic schemas for spreadsheet reads and write-back results."""

from typing import Any

from pydantic import BaseModel, Field


class SheetTable(BaseModel):
    columns: list[str]
    rows: list[dict[str, Any]]


class SheetPayload(BaseModel):
    ok: bool
    columns: list[str] = []
    rows: list[dict[str, Any]] = []
    stale: bool = False
    error: str | None = None


class WriteResult(BaseModel):
    """Outcome of a write-back webhook call. Never raised, always returned."""

    model_config = {"populate_by_name": True}

    ok: bool
    status: int | None = None
    reason: str | None = None
    error: str | None = None
    body: Any = Field(default=None, alias="json")

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
