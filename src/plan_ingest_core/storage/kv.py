from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Protocol

from plan_ingest_core.util import safe_filename


class KeyValueStore(Protocol):
    """
    Opaque JSON key-value store.

    Writes are last-writer-wins; callers doing read-modify-write must tolerate races.
    """

    async def get(self, key: str) -> Any | None: ...
    async def set(self, key: str, value: Any) -> None: ...
    async def delete(self, key: str) -> None: ...
    async def keys(self) -> list[str]: ...


class InMemoryKeyValueStore:
    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = {}
        for key, value in (initial or {}).items():
            self._data[key] = self._roundtrip(value)

    @staticmethod
    def _roundtrip(value: Any) -> Any:
        # Mirror a serializing store: callers never share references with stored values.
        return json.loads(json.dumps(value))

    async def get(self, key: str) -> Any | None:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = self._roundtrip(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> list[str]:
        return sorted(self._data)


class JsonFileKeyValueStore:
    """One `<key>.json` file per key under `root`."""

    def __init__(self, root: str | Path):
        self._root = Path(root)

    def _path(self, key: str) -> Path:
        return self._root / f"{safe_filename(key)}.json"

    async def get(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    async def set(self, key: str, value: Any) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(value), encoding="utf-8")
        tmp.replace(path)

    async def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    async def keys(self) -> list[str]:
        if not self._root.exists():
            return []
        return sorted(p.stem for p in self._root.glob("*.json"))
