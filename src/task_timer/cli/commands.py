# src/task_timer/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import cast

from ..tasks.controller import TaskTimerController
from ..tasks.formatting import format_active_timer, format_task_list
from ..tasks.task_models import Task

CommandEmitter = Callable[[str], None]
CommandResult = str | Awaitable[str]
CommandHandler2 = Callable[[TaskTimerController, list[str]], CommandResult]
CommandHandler3 = Callable[[TaskTimerController, list[str], CommandEmitter | None], CommandResult]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        controller: TaskTimerController,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            result = cast(CommandHandler3, handler)(controller, args, emit)
        else:
            result = cast(CommandHandler2, handler)(controller, args)

        if inspect.isawaitable(result):
            return await result
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _task_by_index(controller: TaskTimerController, args: list[str]) -> Task | str:
    if not args:
        return "Task number required (see /list)."
    try:
        idx = int(args[0])
    except ValueError:
        return f"Not a task number: {args[0]}"
    if idx < 1 or idx > len(controller.tasks):
        return f"No task #{idx} (see /list)."
    return controller.tasks[idx - 1]


def cmd_help(controller: TaskTimerController, args: list[str]) -> str:
    return registry.build_help()


def cmd_list(controller: TaskTimerController, args: list[str]) -> str:
    return format_task_list(controller.tasks)


async def cmd_add(
    controller: TaskTimerController,
    args: list[str],
    emit: CommandEmitter | None = None,
) -> str:
    """
    /add <minutes> <name...>  -> estimate and add (or update, in edit mode)
    /add                      -> submit the current form inputs (after /edit)
    """
    if args:
        controller.estimated_time_input = args[0]
        controller.task_name_input = " ".join(args[1:])

    if emit is not None and controller.task_name_input.strip() and controller.estimated_time_input.strip():
        emit("見積もり中...")

    task = await controller.add_or_update_task()
    if task is None:
        return "No changes."
    return f"Saved: {task.name} (予定時間: {task.estimated_minutes}分 / 実際の時間: {task.real_minutes}分)"


def cmd_edit(controller: TaskTimerController, args: list[str]) -> str:
    """
    /edit <n>  -> put task n into the form; submit with /add (or /add <minutes> <name...>)
    """
    found = _task_by_index(controller, args)
    if isinstance(found, str):
        return found
    controller.begin_edit(found)
    return (
        f"Editing: {controller.task_name_input} ({controller.estimated_time_input}分). "
        "Use /add [minutes name...] to update, /cancel to abort."
    )


def cmd_cancel(controller: TaskTimerController, args: list[str]) -> str:
    if controller.editing_task is None:
        return "Not editing."
    controller.cancel_edit()
    return "Edit cancelled."


def cmd_delete(controller: TaskTimerController, args: list[str]) -> str:
    found = _task_by_index(controller, args)
    if isinstance(found, str):
        return found
    controller.delete_task(found.id)
    return f"Deleted: {found.name}"


def cmd_start(controller: TaskTimerController, args: list[str]) -> str:
    found = _task_by_index(controller, args)
    if isinstance(found, str):
        return found
    if not controller.start_timer(found):
        return "Not started."
    return format_active_timer(controller.active_task)


def cmd_pause(controller: TaskTimerController, args: list[str]) -> str:
    controller.pause_timer()
    return format_active_timer(controller.active_task)


def cmd_reset(controller: TaskTimerController, args: list[str]) -> str:
    if controller.active_task is None:
        return "No active timer."
    controller.reset_timer()
    return "Timer reset."


def cmd_timer(controller: TaskTimerController, args: list[str]) -> str:
    return format_active_timer(controller.active_task)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="Show tasks.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Estimate and save a task: /add <minutes> <name>.")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <n>, then /add.")
registry.register("cancel", cmd_cancel, help_text="Cancel editing.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <n>.", aliases=["rm"])
registry.register("start", cmd_start, help_text="Start or resume a timer: /start <n>.", aliases=["resume"])
registry.register("pause", cmd_pause, help_text="Pause the running timer.")
registry.register("reset", cmd_reset, help_text="Stop and clear the active timer.")
registry.register("timer", cmd_timer, help_text="Show the active timer.", aliases=["status"])
