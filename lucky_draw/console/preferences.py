"""Persisted console preferences: opaque key-value pairs in a JSON file."""

import json
from pathlib import Path
from typing import Any

from loguru import logger

from lucky_draw.config import settings

MAPPING_KEY = "ld_mapping"
OPERATOR_KEY = "ld_operator"


class Preferences:
    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path is not None else settings.PREFERENCES_PATH
        self._data = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable preferences {}: {}", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, ensure_ascii=False, indent=2), encoding="utf-8")
