# src/task_timer/tasks/controller.py

"""
Task list + countdown controller.

Owns the in-memory task list, mirrors it to the TaskListStore after every
list mutation, and runs at most one countdown (the active task).

Key invariants:
- at most one task is RUNNING or PAUSED; start_timer() on another task is rejected,
- only one tick loop exists (the ticker replaces its previous loop on start),
- ticks and timer transitions are not persisted, list edits are,
- a failed save never rolls back the in-memory change.
"""

from __future__ import annotations

import logging

from ..core.estimation import estimate_real_time
from ..core.ports import LLMClient, Notifier, Ticker
from ..storage.kv_store import PersistenceError
from .formatting import format_estimate_message
from .task_models import Task, TimerState, new_task_id
from .task_store import TaskListStore

logger = logging.getLogger(__name__)

TITLE_ERROR = "エラー"
TITLE_ESTIMATE = "時間の見積もり"
TITLE_WARNING = "警告"
TITLE_DONE = "完了"

MSG_LOAD_FAILED = "タスクの読み込みに失敗しました"
MSG_SAVE_FAILED = "タスクの保存に失敗しました"
MSG_REQUIRED_FIELDS = "タスク名と予定時間を入力してください"
MSG_INVALID_MINUTES = "予定時間は正の整数で入力してください"
MSG_ALREADY_RUNNING = "既に実行中のタスクがあります"


class TaskTimerController:
    def __init__(
        self,
        *,
        store: TaskListStore,
        llm: LLMClient,
        notifier: Notifier,
        ticker: Ticker,
    ) -> None:
        self._store = store
        self._llm = llm
        self._notifier = notifier
        self._ticker = ticker

        self.tasks: list[Task] = []
        self.editing_task: Task | None = None
        self.active_task: Task | None = None

        # Input fields of the add/edit form.
        self.task_name_input = ""
        self.estimated_time_input = ""

    # ---- lookup ----

    def find_task(self, task_id: str) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    # ---- persistence ----

    def load(self) -> None:
        try:
            loaded = self._store.load()
        except PersistenceError:
            logger.exception("Failed to load tasks.")
            self._notifier.alert(TITLE_ERROR, MSG_LOAD_FAILED)
            loaded = None

        tasks = loaded or []
        # A countdown never survives a restart.
        for t in tasks:
            if t.timer_state != TimerState.IDLE:
                logger.debug("Clearing stale timer state on task id=%s", t.id)
                t.clear_timer()

        self.tasks = tasks
        self.editing_task = None
        self.active_task = None

    def _save(self) -> bool:
        try:
            self._store.save(self.tasks)
            return True
        except PersistenceError:
            logger.exception("Failed to save %d tasks.", len(self.tasks))
            self._notifier.alert(TITLE_ERROR, MSG_SAVE_FAILED)
            return False

    # ---- add / edit / delete ----

    async def add_or_update_task(
        self,
        name: str | None = None,
        estimated_text: str | None = None,
    ) -> Task | None:
        """
        Estimate, confirm and commit a new or edited task.

        Arguments default to the form inputs. Returns the committed task,
        or None if validation failed or the user cancelled.
        """
        name = (self.task_name_input if name is None else name).strip()
        estimated_text = (self.estimated_time_input if estimated_text is None else estimated_text).strip()

        if not name or not estimated_text:
            self._notifier.alert(TITLE_ERROR, MSG_REQUIRED_FIELDS)
            return None

        try:
            estimated_minutes = int(estimated_text)
        except ValueError:
            estimated_minutes = 0
        if estimated_minutes <= 0:
            self._notifier.alert(TITLE_ERROR, MSG_INVALID_MINUTES)
            return None

        # The edit target is whatever was being edited on submit.
        editing = self.editing_task
        estimate = await estimate_real_time(self._llm, name, estimated_minutes)

        accepted = await self._notifier.confirm(
            TITLE_ESTIMATE, format_estimate_message(estimated_minutes, estimate)
        )
        if not accepted:
            logger.debug("Estimate for %r discarded by user", name)
            return None

        committed: Task | None
        if editing is not None:
            # The list may have changed while we waited for the model.
            committed = self.find_task(editing.id)
            if committed is None:
                logger.warning("Edited task id=%s disappeared before commit; nothing updated", editing.id)
            else:
                committed.name = name
                committed.estimated_minutes = estimated_minutes
                committed.real_minutes = estimate.real_minutes
                logger.info("Updated task id=%s real_minutes=%d", committed.id, committed.real_minutes)
        else:
            committed = Task(
                id=new_task_id(),
                name=name,
                estimated_minutes=estimated_minutes,
                real_minutes=estimate.real_minutes,
            )
            self.tasks.append(committed)
            logger.info("Added task id=%s real_minutes=%d", committed.id, committed.real_minutes)

        self._save()
        self.task_name_input = ""
        self.estimated_time_input = ""
        self.editing_task = None
        return committed

    def begin_edit(self, task: Task) -> None:
        self.editing_task = task
        self.task_name_input = task.name
        self.estimated_time_input = str(task.estimated_minutes)

    def cancel_edit(self) -> None:
        self.editing_task = None
        self.task_name_input = ""
        self.estimated_time_input = ""

    def delete_task(self, task_id: str) -> None:
        if self.active_task is not None and self.active_task.id == task_id:
            self.reset_timer()
        if self.editing_task is not None and self.editing_task.id == task_id:
            self.cancel_edit()

        self.tasks = [t for t in self.tasks if t.id != task_id]
        logger.info("Deleted task id=%s (remaining=%d)", task_id, len(self.tasks))
        self._save()

    # ---- timer ----

    def start_timer(self, task: Task) -> bool:
        """Start or resume the countdown for task. Returns False if rejected."""
        active = self.active_task
        if active is not None and active.id != task.id:
            self._notifier.alert(TITLE_WARNING, MSG_ALREADY_RUNNING)
            return False

        target = self.find_task(task.id)
        if target is None:
            logger.warning("Refusing to start timer for task id=%s: not in the list", task.id)
            return False
        if target.remaining_seconds is None or target.remaining_seconds <= 0:
            target.remaining_seconds = target.real_minutes * 60
        target.timer_state = TimerState.RUNNING
        self.active_task = target

        self._ticker.start(self.tick)
        logger.info("Timer started task id=%s remaining=%ss", target.id, target.remaining_seconds)
        return True

    def tick(self) -> None:
        task = self.active_task
        if task is None or task.timer_state != TimerState.RUNNING:
            return

        remaining = (task.remaining_seconds or 0) - 1
        if remaining <= 0:
            self._ticker.stop()
            task.clear_timer()
            self.active_task = None
            logger.info("Timer finished task id=%s", task.id)
            self._notifier.alert(TITLE_DONE, f"{task.name}が完了しました！")
            return

        task.remaining_seconds = remaining

    def pause_timer(self) -> None:
        self._ticker.stop()
        task = self.active_task
        if task is None or task.timer_state == TimerState.PAUSED:
            return
        task.timer_state = TimerState.PAUSED
        logger.info("Timer paused task id=%s remaining=%ss", task.id, task.remaining_seconds)

    def reset_timer(self) -> None:
        self._ticker.stop()
        task = self.active_task
        if task is None:
            return
        task.clear_timer()
        self.active_task = None
        logger.info("Timer reset task id=%s", task.id)

    def close(self) -> None:
        self._ticker.stop()
