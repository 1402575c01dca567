# tests/test_controller.py

from __future__ import annotations

import json

import pytest

from task_timer.core.estimation import API_ERROR_EXPLANATION
from task_timer.storage.kv_store import JsonFileKeyValueStore
from task_timer.tasks.controller import (
    MSG_ALREADY_RUNNING,
    MSG_INVALID_MINUTES,
    MSG_LOAD_FAILED,
    MSG_REQUIRED_FIELDS,
    MSG_SAVE_FAILED,
    TITLE_DONE,
    TITLE_ERROR,
    TITLE_ESTIMATE,
    TITLE_WARNING,
    TaskTimerController,
)
from task_timer.tasks.task_models import Task, TimerState
from task_timer.tasks.task_store import TaskListStore

from .fakes import FakeLLMClient, FakeNotifier, FakeTicker, InMemoryKeyValueStore


def _stored(kv: InMemoryKeyValueStore) -> list[dict]:
    return json.loads(kv.data["@tasks_key"])


def _seed(controller: TaskTimerController, *rows: tuple[str, int, int]) -> list[Task]:
    for i, (name, est, real) in enumerate(rows):
        controller.tasks.append(Task(id=f"t{i}", name=name, estimated_minutes=est, real_minutes=real))
    return controller.tasks


# ---- add / edit / delete ----


@pytest.mark.asyncio
async def test_add_task_end_to_end(controller, kv, notifier) -> None:
    task = await controller.add_or_update_task("Write report", "60")

    assert notifier.confirms
    title, message = notifier.confirms[0]
    assert title == TITLE_ESTIMATE
    assert "予定時間: 60分" in message
    assert "実際の時間: 90分" in message
    assert "includes review buffer" in message

    assert task is not None
    assert controller.tasks == [task]
    assert (task.name, task.estimated_minutes, task.real_minutes) == ("Write report", 60, 90)
    assert task.timer_state == TimerState.IDLE

    stored = _stored(kv)
    assert stored[0]["id"] == task.id
    assert stored[0]["estimated_minutes"] == 60
    assert stored[0]["real_minutes"] == 90


@pytest.mark.asyncio
async def test_add_trims_name_and_clears_inputs(controller) -> None:
    controller.task_name_input = "  Email  "
    controller.estimated_time_input = " 10 "

    task = await controller.add_or_update_task()

    assert task is not None and task.name == "Email"
    assert controller.task_name_input == ""
    assert controller.estimated_time_input == ""


@pytest.mark.asyncio
async def test_new_tasks_get_distinct_ids(controller) -> None:
    a = await controller.add_or_update_task("A", "5")
    b = await controller.add_or_update_task("B", "5")
    assert a is not None and b is not None
    assert a.id != b.id
    assert [t.name for t in controller.tasks] == ["A", "B"]


@pytest.mark.asyncio
async def test_cancel_confirmation_changes_nothing(kv, llm, ticker) -> None:
    notifier = FakeNotifier(accept=False)
    c = TaskTimerController(store=TaskListStore(kv), llm=llm, notifier=notifier, ticker=ticker)
    c.load()
    c.task_name_input = "Write report"
    c.estimated_time_input = "60"

    assert await c.add_or_update_task() is None
    assert c.tasks == []
    assert kv.writes == 0
    assert c.task_name_input == "Write report"


@pytest.mark.asyncio
@pytest.mark.parametrize(("name", "minutes"), [("", "10"), ("   ", "10"), ("Task", ""), ("Task", "  ")])
async def test_empty_fields_are_rejected(controller, llm, notifier, kv, name, minutes) -> None:
    assert await controller.add_or_update_task(name, minutes) is None
    assert notifier.alerts == [(TITLE_ERROR, MSG_REQUIRED_FIELDS)]
    assert llm.calls == []
    assert kv.writes == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("minutes", ["abc", "0", "-3", "1.5"])
async def test_invalid_minutes_are_rejected(controller, llm, notifier, minutes) -> None:
    assert await controller.add_or_update_task("Task", minutes) is None
    assert notifier.alerts == [(TITLE_ERROR, MSG_INVALID_MINUTES)]
    assert llm.calls == []


@pytest.mark.asyncio
async def test_estimation_failure_still_adds_with_fallback(kv, notifier, ticker) -> None:
    llm = FakeLLMClient(error=RuntimeError("boom"))
    c = TaskTimerController(store=TaskListStore(kv), llm=llm, notifier=notifier, ticker=ticker)

    task = await c.add_or_update_task("Write report", "60")

    assert task is not None and task.real_minutes == 72
    assert API_ERROR_EXPLANATION in notifier.confirms[0][1]
    assert notifier.alerts == []


@pytest.mark.asyncio
async def test_edit_updates_in_place_preserving_id_and_timer(controller, kv, ticker) -> None:
    (task,) = _seed(controller, ("Draft", 30, 40))
    controller.start_timer(task)
    ticker.fire(5)

    controller.begin_edit(task)
    assert controller.task_name_input == "Draft"
    assert controller.estimated_time_input == "30"

    updated = await controller.add_or_update_task("Write report", "60")

    assert updated is task
    assert controller.tasks == [task]
    assert task.id == "t0"
    assert (task.name, task.estimated_minutes, task.real_minutes) == ("Write report", 60, 90)
    assert task.timer_state == TimerState.RUNNING
    assert task.remaining_seconds == 40 * 60 - 5
    assert controller.editing_task is None
    assert _stored(kv)[0]["name"] == "Write report"


@pytest.mark.asyncio
async def test_edit_of_task_deleted_during_estimate_changes_nothing(kv, notifier, ticker) -> None:
    holder: dict[str, TaskTimerController] = {}

    def delete_during_request() -> None:
        holder["c"].delete_task("t0")

    llm = FakeLLMClient('{"realTime": 9, "explanation": "x"}', before_reply=delete_during_request)
    c = TaskTimerController(store=TaskListStore(kv), llm=llm, notifier=notifier, ticker=ticker)
    holder["c"] = c
    (task,) = _seed(c, ("Draft", 5, 6))
    c.begin_edit(task)

    result = await c.add_or_update_task()

    assert result is None
    assert c.tasks == []
    assert c.editing_task is None
    assert c.task_name_input == ""


def test_begin_and_cancel_edit_touch_no_storage(controller, kv, llm) -> None:
    (task,) = _seed(controller, ("Draft", 30, 40))
    controller.begin_edit(task)
    assert controller.editing_task is task
    controller.cancel_edit()
    assert controller.editing_task is None
    assert controller.task_name_input == ""
    assert controller.estimated_time_input == ""
    assert kv.writes == 0
    assert llm.calls == []


def test_delete_filters_and_persists(controller, kv) -> None:
    _seed(controller, ("A", 1, 2), ("B", 1, 2), ("C", 1, 2))

    controller.delete_task("t1")

    assert [t.name for t in controller.tasks] == ["A", "C"]
    assert [r["id"] for r in _stored(kv)] == ["t0", "t2"]


def test_delete_active_task_stops_its_timer(controller, ticker) -> None:
    (task,) = _seed(controller, ("A", 1, 2))
    controller.start_timer(task)

    controller.delete_task(task.id)

    assert controller.tasks == []
    assert controller.active_task is None
    assert not ticker.running


# ---- timer ----


def test_start_initializes_from_real_minutes(controller, ticker) -> None:
    (task,) = _seed(controller, ("A", 4, 5))

    assert controller.start_timer(task) is True

    assert controller.active_task is task
    assert task.timer_state == TimerState.RUNNING
    assert task.remaining_seconds == 300
    assert ticker.running


def test_resume_continues_from_paused_remaining(controller, ticker) -> None:
    (task,) = _seed(controller, ("A", 4, 5))
    controller.start_timer(task)
    ticker.fire(10)
    assert task.remaining_seconds == 290

    controller.pause_timer()
    assert task.timer_state == TimerState.PAUSED
    assert not ticker.running

    controller.start_timer(task)
    assert task.timer_state == TimerState.RUNNING
    assert task.remaining_seconds == 290
    assert controller.active_task is task


def test_second_task_cannot_start_while_one_is_active(controller, notifier, ticker) -> None:
    a, b = _seed(controller, ("A", 1, 2), ("B", 1, 2))
    controller.start_timer(a)
    ticker.fire(3)

    assert controller.start_timer(b) is False

    assert notifier.alerts == [(TITLE_WARNING, MSG_ALREADY_RUNNING)]
    assert controller.active_task is a
    assert (a.timer_state, a.remaining_seconds) == (TimerState.RUNNING, 117)
    assert (b.timer_state, b.remaining_seconds) == (TimerState.IDLE, None)
    assert ticker.starts == 1


def test_second_task_rejected_while_first_is_paused(controller, notifier) -> None:
    a, b = _seed(controller, ("A", 1, 2), ("B", 1, 2))
    controller.start_timer(a)
    controller.pause_timer()

    assert controller.start_timer(b) is False
    assert a.timer_state == TimerState.PAUSED


def test_restarting_same_task_replaces_tick(controller, ticker) -> None:
    (task,) = _seed(controller, ("A", 1, 2))
    controller.start_timer(task)
    controller.start_timer(task)

    assert ticker.starts == 2
    ticker.fire(1)
    assert task.remaining_seconds == 119


def test_start_rejects_task_no_longer_in_list(controller, notifier, ticker) -> None:
    (task,) = _seed(controller, ("A", 1, 2))
    controller.delete_task(task.id)

    assert controller.start_timer(task) is False

    assert controller.active_task is None
    assert not ticker.running
    assert ticker.starts == 0
    assert task.timer_state == TimerState.IDLE
    assert notifier.alerts == []


def test_pause_twice_is_idempotent(controller, ticker) -> None:
    (task,) = _seed(controller, ("A", 1, 2))
    controller.start_timer(task)
    ticker.fire(4)

    controller.pause_timer()
    snapshot = (task.timer_state, task.remaining_seconds, controller.active_task)
    controller.pause_timer()

    assert (task.timer_state, task.remaining_seconds, controller.active_task) == snapshot


def test_reset_without_active_task_is_noop(controller, kv, notifier) -> None:
    (task,) = _seed(controller, ("A", 1, 2))

    controller.reset_timer()
    controller.reset_timer()

    assert controller.active_task is None
    assert (task.timer_state, task.remaining_seconds) == (TimerState.IDLE, None)
    assert notifier.alerts == []
    assert kv.writes == 0


def test_reset_clears_active_task(controller, ticker) -> None:
    (task,) = _seed(controller, ("A", 1, 2))
    controller.start_timer(task)
    ticker.fire(2)

    controller.reset_timer()

    assert controller.active_task is None
    assert (task.timer_state, task.remaining_seconds) == (TimerState.IDLE, None)
    assert not ticker.running

    # Fresh start after reset.
    controller.start_timer(task)
    assert task.remaining_seconds == 120


def test_countdown_completion(controller, notifier, ticker) -> None:
    (task,) = _seed(controller, ("Write report", 1, 2))
    task.remaining_seconds = 1
    task.timer_state = TimerState.PAUSED
    controller.active_task = task
    controller.start_timer(task)

    ticker.fire(1)

    assert notifier.alerts == [(TITLE_DONE, "Write reportが完了しました！")]
    assert not ticker.running
    assert controller.active_task is None
    assert (task.timer_state, task.remaining_seconds) == (TimerState.IDLE, None)


def test_ticks_are_not_persisted(controller, kv, ticker) -> None:
    (task,) = _seed(controller, ("A", 1, 2))
    controller.start_timer(task)
    ticker.fire(5)
    controller.pause_timer()
    assert kv.writes == 0


def test_tick_is_ignored_while_paused(controller) -> None:
    (task,) = _seed(controller, ("A", 1, 2))
    controller.start_timer(task)
    controller.pause_timer()

    controller.tick()

    assert task.remaining_seconds == 120


# ---- persistence ----


@pytest.mark.asyncio
async def test_save_failure_alerts_and_keeps_memory_state(controller, kv, notifier) -> None:
    kv.fail_writes = True

    task = await controller.add_or_update_task("Write report", "60")

    assert task is not None
    assert controller.tasks == [task]
    assert (TITLE_ERROR, MSG_SAVE_FAILED) in notifier.alerts


def test_load_absent_key_gives_empty_list(controller, notifier) -> None:
    assert controller.tasks == []
    assert notifier.alerts == []


def test_load_corrupt_value_alerts_and_starts_empty(llm, ticker) -> None:
    kv = InMemoryKeyValueStore({"@tasks_key": "{not json"})
    notifier = FakeNotifier()
    c = TaskTimerController(store=TaskListStore(kv), llm=llm, notifier=notifier, ticker=ticker)

    c.load()

    assert c.tasks == []
    assert notifier.alerts == [(TITLE_ERROR, MSG_LOAD_FAILED)]


def test_load_read_failure_alerts_and_starts_empty(llm, ticker) -> None:
    kv = InMemoryKeyValueStore()
    kv.fail_reads = True
    notifier = FakeNotifier()
    c = TaskTimerController(store=TaskListStore(kv), llm=llm, notifier=notifier, ticker=ticker)

    c.load()

    assert c.tasks == []
    assert notifier.alerts == [(TITLE_ERROR, MSG_LOAD_FAILED)]


def test_load_clears_stale_timer_state(llm, notifier, ticker) -> None:
    record = {
        "id": "x1",
        "name": "A",
        "estimated_minutes": 1,
        "real_minutes": 2,
        "timer_state": "running",
        "remaining_seconds": 30,
    }
    kv = InMemoryKeyValueStore({"@tasks_key": json.dumps([record])})
    c = TaskTimerController(store=TaskListStore(kv), llm=llm, notifier=notifier, ticker=ticker)

    c.load()

    assert c.active_task is None
    assert (c.tasks[0].timer_state, c.tasks[0].remaining_seconds) == (TimerState.IDLE, None)


@pytest.mark.asyncio
async def test_corrupt_storage_file_is_replaced_on_next_save(tmp_path, llm, ticker) -> None:
    path = tmp_path / "storage.json"
    path.write_text("{not json", "utf-8")
    notifier = FakeNotifier()
    c = TaskTimerController(
        store=TaskListStore(JsonFileKeyValueStore(path)), llm=llm, notifier=notifier, ticker=ticker
    )

    c.load()
    task = await c.add_or_update_task("Write report", "60")

    assert notifier.alerts == [(TITLE_ERROR, MSG_LOAD_FAILED)]
    stored = json.loads(json.loads(path.read_text("utf-8"))["@tasks_key"])
    assert [r["id"] for r in stored] == [task.id]
    assert stored[0]["real_minutes"] == 90
