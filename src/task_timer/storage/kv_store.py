# src/task_timer/storage/kv_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """Raised when the durable store cannot be read or written."""


class JsonFileKeyValueStore:
    """
    Key-value string store backed by one JSON object file.

    Every set_item() rewrites the whole file atomically (tmp file + os.replace).
    Values are opaque strings; callers do their own encoding.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Failed to read key-value file {self._path}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Key-value file {self._path} is not a JSON object")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get_item(self, key: str) -> str | None:
        return self._read_all().get(key)

    def _set_aside_corrupt(self) -> None:
        backup = self._path.with_suffix(self._path.suffix + ".corrupt")
        try:
            os.replace(self._path, backup)
            logger.warning("Moved unreadable key-value file to %s", backup)
        except OSError as e:
            logger.warning("Could not move unreadable key-value file %s aside: %s", self._path, e)

    def set_item(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except PersistenceError:
            # An unreadable file is set aside and replaced, never merged into.
            logger.warning("Key-value file %s is unreadable; starting from an empty map", self._path, exc_info=True)
            self._set_aside_corrupt()
            data = {}
        data[key] = value
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
        except OSError as e:
            raise PersistenceError(f"Failed to write key-value file {self._path}") from e
        with contextlib.suppress(OSError):
            os.chmod(self._path, 0o600)
        logger.debug("Stored key=%s (%d chars) in %s", key, len(value), self._path)
