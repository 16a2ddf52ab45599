"""Helpers for spreadsheet rows whose columns are not known in advance."""

import re
from typing import Any

from lucky_draw.schemas.draw import ColumnMapping

# Alias patterns used to locate columns in a participant tab, in guess order.
COLUMN_PATTERNS = {
    "name_key": re.compile(r"name|ชื่อ", re.IGNORECASE),
    "id_key": re.compile(r"^id$|participant", re.IGNORECASE),
    "team_key": re.compile(r"team|ทีม", re.IGNORECASE),
    "dept_key": re.compile(r"dept|department|ฝ่าย|แผนก", re.IGNORECASE),
    "eligible_key": re.compile(r"eligible|สิทธิ|allow", re.IGNORECASE),
}


def cell_text(value: Any) -> str:
    """Render a cell the way it reads in the sheet: 1.0 -> "1", True -> "true"."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_key(value: Any) -> str:
    return cell_text(value).strip().lower()


def first_present(row: dict[str, Any], keys: list[str]) -> Any:
    """First value among ``keys`` that is not blank, else ""."""
    for k in keys:
        if not k:
            continue
        v = row.get(k)
        if v is not None and cell_text(v).strip() != "":
            return v
    return ""


def guess_mapping(columns: list[str], current: ColumnMapping | None = None) -> ColumnMapping:
    """Keep keys that still exist in ``columns``; guess the rest by alias."""
    current = current or ColumnMapping()
    guessed = {}
    for field, pattern in COLUMN_PATTERNS.items():
        prev = getattr(current, field)
        if prev and prev in columns:
            guessed[field] = prev
            continue
        match = next((c for c in columns if pattern.search(c)), None)
        guessed[field] = match or prev
    return ColumnMapping(**guessed)
