# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from task_timer.tasks.controller import TaskTimerController
from task_timer.tasks.task_store import TaskListStore

from .fakes import FakeLLMClient, FakeNotifier, FakeTicker, InMemoryKeyValueStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and the LLM client.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="task-timer",
        log_level="WARNING",
        openai_api_key=None,
        openai_base_url=None,
        llm_model="gpt-3.5-turbo",
        llm_temperature=0.7,
        llm_max_tokens=200,
        llm_connect_timeout_seconds=5.0,
        llm_read_timeout_seconds=30.0,
        data_dir=tmp_path / "data",
        store_path=tmp_path / "data" / "storage.json",
        tasks_key="@tasks_key",
        tick_seconds=1.0,
    )


@pytest.fixture()
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture()
def llm() -> FakeLLMClient:
    return FakeLLMClient('{"realTime": 90, "explanation": "includes review buffer"}')


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier(accept=True)


@pytest.fixture()
def ticker() -> FakeTicker:
    return FakeTicker()


@pytest.fixture()
def controller(kv, llm, notifier, ticker) -> TaskTimerController:
    """Controller wired with deterministic fakes and an empty store."""
    c = TaskTimerController(
        store=TaskListStore(kv),
        llm=llm,
        notifier=notifier,
        ticker=ticker,
    )
    c.load()
    return c
