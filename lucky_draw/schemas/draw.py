"""Pydantic schemas for the shared draw state."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, field_validator, model_validator
from pydantic.alias_generators import to_camel


class DrawMode(str, Enum):
    EXCLUDE = "exclude"
    REPEAT = "repeat"

    @classmethod
    def parse(cls, value: Any) -> "DrawMode":
        """Anything other than "repeat" is treated as exclude."""
        return cls.REPEAT if value == cls.REPEAT.value else cls.EXCLUDE


class ColumnMapping(BaseModel):
    """Which participant columns hold the id, name, team, department and eligibility flag."""

    model_config = {"populate_by_name": True, "alias_generator": to_camel}

    id_key: str = "id"
    name_key: str = "name"
    team_key: str = ""
    dept_key: str = ""
    eligible_key: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _as_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()


class Winner(BaseModel):
    participant_id: str
    name: str
    team: str = ""
    department: str = ""
    raw: dict[str, Any] = {}

    @model_validator(mode="after")
    def _fallback_identifier(self) -> "Winner":
        if not self.participant_id.strip():
            self.participant_id = self.name
        return self


class UiHints(BaseModel):
    """Advisory presenter hints. Unknown keys are carried through."""

    model_config = {"populate_by_name": True, "alias_generator": to_camel, "extra": "allow"}

    show_prize_preview: bool = False
    selected_prize_index: int | None = None
    preview_hint: str = ""

    def merged(self, partial: dict[str, Any]) -> "UiHints":
        """Shallow-merge camelCase keys from a SET_UI payload."""
        data = self.model_dump(by_alias=True)
        data.update(partial)
        return UiHints.model_validate(data)


class DrawState(BaseModel):
    model_config = {"populate_by_name": True, "alias_generator": to_camel}

    mode: DrawMode = DrawMode.EXCLUDE
    prize: dict[str, Any] | None = None
    spinning: bool = False
    countdown: int = 3
    last_winner: Winner | None = None
    ui: UiHints = UiHints()

    def snapshot(self) -> dict[str, Any]:
        """Full wire snapshot, as broadcast to every client."""
        return self.model_dump(mode="json", by_alias=True)
