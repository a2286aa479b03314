"""
Durable key/value storage for client-side state snapshots.

Two backends share the same tiny contract:

    save(key, blob)   -> None
    load(key)         -> blob | None

  - JsonFileStorage: one JSON file per key inside a directory. Writes go to a
    temp file first and are moved into place with os.replace, so a reader
    never observes a half-written snapshot.
  - MemoryStorage: dict-backed, for tests and ephemeral sessions.

Concurrent writers to the same key are last-write-wins.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import quote


class LocalStorage(Protocol):
    def save(self, key: str, blob: dict[str, Any]) -> None: ...

    def load(self, key: str) -> dict[str, Any] | None: ...


class MemoryStorage:
    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def save(self, key: str, blob: dict[str, Any]) -> None:
        # Stored serialized so callers can't mutate the saved snapshot.
        self._data[key] = json.dumps(blob)

    def load(self, key: str) -> dict[str, Any] | None:
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)


class JsonFileStorage:
    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        # Percent-encoding keeps distinct keys on distinct files.
        return self.directory / f"{quote(key, safe='')}.json"

    def save(self, key: str, blob: dict[str, Any]) -> None:
        path = self._path_for(key)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(blob, fh)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def load(self, key: str) -> dict[str, Any] | None:
        """
        Return the stored blob, or None when the key was never saved.

        Raises ValueError if the file exists but is not valid JSON;
        callers decide whether that means "start fresh".
        """
        path = self._path_for(key)
        if not path.exists():
            return None
        with path.open(encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"Snapshot for {key!r} is not a JSON object")
        return data
