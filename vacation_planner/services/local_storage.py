"""Flat string key/value storage persisted to a single JSON file."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class LocalStorage:
    """Coarse-grained durable storage: every value is a string under a string key.

    The whole file is rewritten on each change, so it is only suited to the
    small per-user payloads the planner keeps here.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"Corrupt local storage file: {self.path}")
        return data

    def _dump(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def remove_item(self, key: str) -> bool:
        data = self._load()
        if key not in data:
            return False
        del data[key]
        self._dump(data)
        return True

    def keys(self) -> list[str]:
        return list(self._load())

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()

    def writable(self) -> bool:
        """Probe used at start-up: can the file be read and replaced?"""
        self._dump(self._load())
        return True
