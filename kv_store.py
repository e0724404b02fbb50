from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Tuple
from urllib.parse import quote

logger = logging.getLogger(__name__)

Key = Tuple[str, ...]


class KeyValueStore:
    """
    Minimal persistence contract used by the plan store, gate, journal and accounts.

    Keys are tuples: (namespace, owner, *qualifier), e.g.
    ("plan", user_id, "workout") or ("adjustment_lock", user_id, "2024-01-05").
    Values must be JSON-compatible. Last write wins.
    """

    def get(self, key: Key, default: Any = None) -> Any:
        raise NotImplementedError

    def set(self, key: Key, value: Any) -> None:
        raise NotImplementedError

    def delete(self, key: Key) -> None:
        raise NotImplementedError

    def __contains__(self, key: Key) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel


def split_key(key: Key) -> Tuple[str, str, str]:
    """Split a tuple key into (namespace, owner, qualifier) columns."""
    if len(key) < 2:
        raise ValueError(f"Store keys need a namespace and an owner, got {key!r}")
    namespace, owner, *rest = key
    return str(namespace), str(owner), "/".join(str(part) for part in rest)


class MemoryStore(KeyValueStore):
    def __init__(self) -> None:
        self._data: Dict[Key, Any] = {}

    def get(self, key: Key, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: Key, value: Any) -> None:
        self._data[tuple(key)] = copy.deepcopy(value)

    def delete(self, key: Key) -> None:
        self._data.pop(tuple(key), None)


class JsonFileStore(KeyValueStore):
    """
    One JSON file per key below `base_dir`:
        <base_dir>/<namespace>/<owner>/<qualifier>.json
    Keys without a qualifier land in <base_dir>/<namespace>/<owner>.json.
    """

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)

    def _path(self, key: Key) -> Path:
        namespace, owner, qualifier = split_key(key)
        parts = [quote(namespace, safe=""), quote(owner, safe="@.")]
        if qualifier:
            parts.extend(quote(part, safe="@.") for part in qualifier.split("/"))
        if any(part in ("", ".", "..") for part in parts):
            raise ValueError(f"Key {key!r} does not map to a file path")
        path = self.base_dir.joinpath(*parts)
        return path.with_name(path.name + ".json")

    def get(self, key: Key, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError):
            logger.warning("Unreadable state file %s, treating as missing", path)
            return default

    def set(self, key: Key, value: Any) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(value, f, indent=2, ensure_ascii=False)

    def delete(self, key: Key) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
