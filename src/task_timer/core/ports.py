# src/task_timer/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The controller depends on Protocols instead of concrete implementations.
This keeps the LLM provider, the storage backend and the user-facing surface
swappable and makes testing easier.
"""

from collections.abc import Callable
from typing import Protocol

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class LLMClient(Protocol):
    """One-shot chat completion client (OpenAI-compatible)."""

    async def complete(self, messages: list[ChatMessage]) -> str: ...


class KeyValueStore(Protocol):
    """Durable string slots. Values are always replaced whole."""

    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...


class Notifier(Protocol):
    """
    User-facing surface: alerts and accept/cancel confirmations.

    alert() must not block; confirm() suspends until the user answers.
    """

    def alert(self, title: str, message: str) -> None: ...
    async def confirm(self, title: str, message: str) -> bool: ...


class Ticker(Protocol):
    """A single repeating callback. start() replaces any previous one."""

    @property
    def running(self) -> bool: ...

    def start(self, callback: Callable[[], None]) -> None: ...
    def stop(self) -> None: ...
