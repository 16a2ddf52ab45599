"""Prize catalog helpers. Prize rows are free-form; id and name have aliases."""

import re
from typing import Any

from lucky_draw.services.columns import cell_text

INACTIVE_VALUES = {"false", "0", "no", "n", "x", "ปิด"}
MISSING_PRIORITY = 999999

_ABSOLUTE_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


def _text(value: Any) -> str:
    return cell_text(value).strip()


def prize_id(prize: dict[str, Any] | None) -> str:
    if not prize:
        return ""
    return _text(prize.get("prize_id")) or _text(prize.get("id"))


def prize_name(prize: dict[str, Any] | None) -> str:
    if not prize:
        return ""
    return _text(prize.get("prize_name")) or _text(prize.get("name"))


def prize_image(prize: dict[str, Any] | None) -> str:
    if not prize:
        return ""
    return _text(prize.get("prize_image_url")) or _text(prize.get("image"))


def resolve_prize_image(prize: dict[str, Any] | None) -> str:
    """Absolute and root-relative URLs pass through; bare file names get a leading "/"."""
    raw = prize_image(prize)
    if not raw:
        return ""
    if _ABSOLUTE_URL_RE.match(raw) or raw.startswith("/"):
        return raw
    return f"/{raw}"


def is_active_row(prize: dict[str, Any]) -> bool:
    active = _text(prize.get("active"))
    if not active:
        return True
    return active.lower() not in INACTIVE_VALUES


def _priority(prize: dict[str, Any]) -> float:
    raw = _text(prize.get("priority"))
    if not raw:
        return MISSING_PRIORITY
    try:
        return float(raw)
    except ValueError:
        return MISSING_PRIORITY


def sort_prizes(prizes: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Order by numeric priority (missing last), then by prize id."""
    return sorted(prizes, key=lambda p: (_priority(p), prize_id(p)))


def search_prizes(prizes: list[dict[str, Any]], query: str) -> list[dict[str, Any]]:
    q = query.strip().lower()
    if not q:
        return list(prizes)
    return [
        p for p in prizes
        if q in prize_name(p).lower()
        or q in prize_id(p).lower()
        or q in _text(p.get("priority")).lower()
    ]
