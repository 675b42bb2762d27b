"""
Flat key-value persistence for the progress snapshot.

Values are strings; composite values are JSON-encoded by the caller.
"""

import json
import os
import tempfile


class MemoryStorage:
    """Dict-backed store. The default for tests and embedded use."""

    def __init__(self, initial: dict | None = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value) -> None:
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class JsonFileStorage(MemoryStorage):
    """
    Persists the whole key-value map as one JSON object on disk.

    Every set/remove rewrites the file through a temp file + os.replace so a
    crash never leaves a half-written snapshot. An unreadable file starts an
    empty store.
    """

    def __init__(self, path: str):
        self.path = path
        super().__init__(self._read())

    def _read(self) -> dict:
        if not os.path.isfile(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as exc:
            print(f"[WARN] Could not read state file {self.path}; starting empty: {exc}")
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): str(v) for k, v in raw.items() if v is not None}

    def _flush(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".state-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._items, f, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def set_item(self, key: str, value) -> None:
        super().set_item(key, value)
        self._flush()

    def remove_item(self, key: str) -> None:
        if key in self._items:
            super().remove_item(key)
            self._flush()
