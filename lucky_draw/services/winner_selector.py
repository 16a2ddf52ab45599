"""Winner selection: eligibility filtering and a fair random pick.

The default pick uses ``secrets.randbelow`` so results cannot be predicted
from earlier draws. When a salt is configured, the index is instead derived
from a SHA-256 digest of the eligible rows, the salt and the current time.
That mode exists for reproducing a draw while debugging; taking the digest
modulo the list length favours low indexes slightly whenever the length is
not a power of two.
"""

import hashlib
import json
import secrets
import time
from collections.abc import Callable
from typing import Any

from lucky_draw.schemas.draw import ColumnMapping, DrawMode, Winner
from lucky_draw.services.columns import cell_text, first_present, normalize_key

TRUTHY_VALUES = {"true", "1", "yes", "y", "ok", "ผ่าน", "มีสิทธิ์", "eligible"}
FALSY_VALUES = {"false", "0", "no", "n", "x", "ไม่ผ่าน", "ไม่มีสิทธิ์", "ineligible"}

# Winners logs are not consistent about what they call the participant column.
WINNER_ID_ALIASES = ("participant_id", "participantId")

Row = dict[str, Any]


def _keys(mapping: ColumnMapping) -> tuple[str, str]:
    return mapping.id_key or "id", mapping.name_key or "name"


def winners_key_set(winners_log: list[Row], mapping: ColumnMapping) -> set[str]:
    """Normalised keys of everyone already in the winners log."""
    id_key, name_key = _keys(mapping)
    keys = [*WINNER_ID_ALIASES, id_key, name_key]
    won = {normalize_key(first_present(r, keys)) for r in winners_log}
    won.discard("")
    return won


def row_key(row: Row, mapping: ColumnMapping) -> str:
    id_key, name_key = _keys(mapping)
    return normalize_key(row.get(id_key)) or normalize_key(row.get(name_key))


def eligibility_override(row: Row, mapping: ColumnMapping) -> bool | None:
    """True/False when the eligibility column holds a recognised value, else None."""
    if not mapping.eligible_key:
        return None
    value = normalize_key(row.get(mapping.eligible_key))
    if not value:
        return None
    if value in FALSY_VALUES:
        return False
    if value in TRUTHY_VALUES:
        return True
    return None


def eligible_rows(
    roster: list[Row],
    winners_log: list[Row],
    mode: DrawMode,
    mapping: ColumnMapping,
) -> list[Row]:
    won = winners_key_set(winners_log, mapping) if mode == DrawMode.EXCLUDE else set()

    eligible = []
    for row in roster:
        key = row_key(row, mapping)
        if not key:
            continue

        override = eligibility_override(row, mapping)
        if override is False:
            continue
        if override is None and key in won:
            continue
        eligible.append(row)
    return eligible


def salted_index(eligible: list[Row], salt: str, now_ms: int) -> int:
    """Digest-mod-N index. Reproducible for a fixed timestamp, slightly biased."""
    blob = json.dumps(
        {"eligible": eligible, "salt": salt, "t": now_ms},
        ensure_ascii=False,
        separators=(",", ":"),
        default=str,
    )
    digest = hashlib.sha256(blob.encode("utf-8")).hexdigest()
    return int(digest[:8], 16) % len(eligible)


def build_winner(row: Row, mapping: ColumnMapping) -> Winner:
    id_key, name_key = _keys(mapping)
    return Winner(
        participant_id=cell_text(row.get(id_key)).strip(),
        name=cell_text(row.get(name_key)).strip(),
        team=cell_text(row.get(mapping.team_key)).strip() if mapping.team_key else "",
        department=cell_text(row.get(mapping.dept_key)).strip() if mapping.dept_key else "",
        raw=row,
    )


def select_winner(
    roster: list[Row],
    winners_log: list[Row],
    mode: DrawMode,
    mapping: ColumnMapping,
    *,
    salt: str = "",
    randbelow: Callable[[int], int] = secrets.randbelow,
    now_ms: Callable[[], int] = lambda: int(time.time() * 1000),
) -> Winner | None:
    """Pick one eligible participant, or None when nobody is eligible."""
    eligible = eligible_rows(roster, winners_log, mode, mapping)
    if not eligible:
        return None

    if salt:
        idx = salted_index(eligible, salt, now_ms())
    else:
        idx = randbelow(len(eligible))

    return build_winner(eligible[idx], mapping)
