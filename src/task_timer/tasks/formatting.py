# src/task_timer/tasks/formatting.py

from __future__ import annotations

from .task_models import Estimate, Task, TimerState


def format_time(seconds: int | None) -> str:
    """Seconds -> "M:SS" (minutes are not folded into hours)."""
    total = max(0, int(seconds or 0))
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"


def format_estimate_message(estimated_minutes: int, estimate: Estimate) -> str:
    return (
        f"予定時間: {estimated_minutes}分\n"
        f"実際の時間: {estimate.real_minutes}分\n\n"
        f"{estimate.explanation}"
    )


def format_task_line(index: int, task: Task) -> str:
    extra = task.extra_minutes
    sign = "+" if extra >= 0 else ""
    line = (
        f"{index}. {task.name}  "
        f"予定時間: {task.estimated_minutes}分  "
        f"実際の時間: {task.real_minutes}分（{sign}{extra}分）"
    )
    if task.timer_state == TimerState.RUNNING:
        line += f"  [実行中 {format_time(task.remaining_seconds)}]"
    elif task.timer_state == TimerState.PAUSED:
        line += f"  [一時停止中 {format_time(task.remaining_seconds)}]"
    return line


def format_task_list(tasks: list[Task]) -> str:
    if not tasks:
        return "タスク一覧: (なし)"
    lines = ["タスク一覧:"]
    lines.extend(format_task_line(i, t) for i, t in enumerate(tasks, start=1))
    return "\n".join(lines)


def format_active_timer(task: Task | None) -> str:
    if task is None:
        return "実行中のタスクはありません"
    paused = " (一時停止中)" if task.timer_state == TimerState.PAUSED else ""
    return f"{task.name}{paused} 残り時間: {format_time(task.remaining_seconds)}"
