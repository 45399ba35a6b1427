# src/cache/json_store.py - v1
"""JSON file-based settings store (default SETTINGS_STORE_BACKEND=json).

Stores each settings key as its own JSON file under SETTINGS_STORE_ROOT.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pageindexer.cache.base_settings_store import BaseSettingsStore

logger = logging.getLogger(__name__)


class JsonSettingsStore(BaseSettingsStore):
    """File-based settings store using one JSON file per key."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def get(self, key: str) -> Any | None:
        path = self._entry_path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to read settings key %s: %s", key, e)
            return None

    async def set(self, key: str, value: Any) -> None:
        path = self._entry_path(key)
        # Write-then-rename: readers never see a half-written document
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(value, indent=2), encoding="utf-8")
        tmp.replace(path)

    async def delete(self, key: str) -> None:
        path = self._entry_path(key)
        if path.exists():
            path.unlink()

    async def keys(self) -> list[str]:
        if not self._root.is_dir():
            return []
        return sorted(p.stem for p in self._root.glob("*.json"))

    def _entry_path(self, key: str) -> Path:
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_key}.json"
