# src/task_timer/tasks/task_models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class TimerState(StrEnum):
    """Per-task countdown state. At most one task is RUNNING or PAUSED."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"

    @classmethod
    def from_raw(cls, raw: Any) -> TimerState:
        if not raw:
            return cls.IDLE
        try:
            return cls(str(raw))
        except ValueError:
            return cls.IDLE


def new_task_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class Task:
    id: str
    name: str
    estimated_minutes: int
    real_minutes: int

    timer_state: TimerState = TimerState.IDLE
    remaining_seconds: int | None = None

    @property
    def is_active(self) -> bool:
        return self.timer_state in (TimerState.RUNNING, TimerState.PAUSED)

    @property
    def extra_minutes(self) -> int:
        return self.real_minutes - self.estimated_minutes

    def clear_timer(self) -> None:
        self.timer_state = TimerState.IDLE
        self.remaining_seconds = None

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "estimated_minutes": self.estimated_minutes,
            "real_minutes": self.real_minutes,
            "timer_state": self.timer_state.value,
            "remaining_seconds": self.remaining_seconds,
        }

    @classmethod
    def from_record(cls, raw: dict[str, Any]) -> Task:
        """
        Build a Task from a stored record.

        Raises ValueError when a required field is missing or out of range.
        """
        task_id = str(raw.get("id") or "").strip()
        name = str(raw.get("name") or "").strip()
        if not task_id or not name:
            raise ValueError("task record needs id and name")

        estimated = int(raw["estimated_minutes"])
        real = int(raw["real_minutes"])
        if estimated <= 0 or real <= 0:
            raise ValueError("task minutes must be positive")

        state = TimerState.from_raw(raw.get("timer_state"))
        remaining_raw = raw.get("remaining_seconds")
        remaining = int(remaining_raw) if remaining_raw is not None else None
        if state == TimerState.IDLE:
            remaining = None

        return cls(
            id=task_id,
            name=name,
            estimated_minutes=estimated,
            real_minutes=real,
            timer_state=state,
            remaining_seconds=remaining,
        )


@dataclass(slots=True, frozen=True)
class Estimate:
    real_minutes: int
    explanation: str
