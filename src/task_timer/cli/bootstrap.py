# src/task_timer/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations (LLM client, key-value store, ticker)
  into the TaskTimerController.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import LLMClient, Notifier
from ..core.ticker import RepeatingTicker
from ..llm.client import OpenAIChatClient, friendly_llm_error_message
from ..llm.offline import OfflineLLMClient
from ..storage.kv_store import JsonFileKeyValueStore
from ..tasks.controller import TaskTimerController
from ..tasks.task_store import TaskListStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_path.parent.mkdir(parents=True, exist_ok=True)


def create_llm_client(settings) -> LLMClient:
    try:
        return OpenAIChatClient(settings)
    except RuntimeError as e:
        # Offline: every estimate takes the fixed 20% fallback.
        logger.warning("Using offline estimator: %s", friendly_llm_error_message(e))
        return OfflineLLMClient()


def create_controller(notifier: Notifier, *, settings=None) -> TaskTimerController:
    """
    Build a controller from the provided settings and load the stored tasks.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    controller = TaskTimerController(
        store=TaskListStore(JsonFileKeyValueStore(settings.store_path), key=settings.tasks_key),
        llm=create_llm_client(settings),
        notifier=notifier,
        ticker=RepeatingTicker(settings.tick_seconds),
    )
    controller.load()
    return controller
