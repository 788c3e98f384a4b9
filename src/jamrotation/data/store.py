"""Best-effort key-value persistence.

Storage failures never reach the caller: they are logged and reported through
the return value so the in-memory session keeps running with degraded
durability.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Protocol

__all__ = ["JsonFileStore", "KeyValueStore", "MemoryStore"]

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(Protocol):
    def load(self, key: str) -> Any | None: ...

    def save(self, key: str, value: Any) -> bool: ...


class MemoryStore:
    """In-process store; values are round-tripped through JSON like on disk."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def load(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def save(self, key: str, value: Any) -> bool:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError):
            logger.exception("Failed to serialise value", extra={"key": key})
            return False
        return True


class JsonFileStore:
    """One ``<key>.json`` file per key under ``root``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"invalid store key '{key}'")
        return self.root / f"{key}.json"

    def load(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, ValueError):
            logger.exception("Failed to load stored value", extra={"key": key, "path": str(path)})
            return None

    def save(self, key: str, value: Any) -> bool:
        path = self._path(key)
        tmp_name: str | None = None
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.root, prefix=f".{key}-", suffix=".tmp", delete=False
            ) as fh:
                tmp_name = fh.name
                json.dump(value, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to save value", extra={"key": key, "path": str(path)})
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            return False
        return True
