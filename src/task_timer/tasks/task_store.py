# src/task_timer/tasks/task_store.py

from __future__ import annotations

import json
import logging

from ..core.ports import KeyValueStore
from ..storage.kv_store import PersistenceError
from .task_models import Task

logger = logging.getLogger(__name__)

DEFAULT_TASKS_KEY = "@tasks_key"


class TaskListStore:
    """
    Whole-list task persistence on top of a single key-value slot.

    - load(): None when nothing was stored yet, else the decoded list
    - save(): always replaces the entire list (last write wins)

    Both raise PersistenceError on storage failure or undecodable data.
    """

    def __init__(self, kv: KeyValueStore, key: str = DEFAULT_TASKS_KEY) -> None:
        self._kv = kv
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> list[Task] | None:
        try:
            raw = self._kv.get_item(self._key)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to read key {self._key}") from e

        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except ValueError as e:
            raise PersistenceError(f"Stored value for {self._key} is not valid JSON") from e

        if not isinstance(data, list):
            raise PersistenceError(f"Stored value for {self._key} is not a list")

        tasks: list[Task] = []
        for item in data:
            if not isinstance(item, dict):
                logger.warning("Skipping non-object task record: %r", item)
                continue
            try:
                tasks.append(Task.from_record(item))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed task record: %r", item)
        logger.info("Loaded %d tasks from key=%s", len(tasks), self._key)
        return tasks

    def save(self, tasks: list[Task]) -> None:
        payload = json.dumps([t.to_record() for t in tasks], ensure_ascii=False)
        try:
            self._kv.set_item(self._key, payload)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to write key {self._key}") from e
        logger.debug("Saved %d tasks to key=%s", len(tasks), self._key)
