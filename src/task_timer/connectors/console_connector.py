# src/task_timer/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from ..cli.commands import CommandRegistry
from ..cli.commands import registry as command_registry
from ..tasks.controller import TaskTimerController

logger = logging.getLogger(__name__)

InputFunc = Callable[[str], str]

YES_ANSWERS = {"y", "yes", "はい", "追加"}


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleNotifier:
    """Notifier that prints alerts and asks confirmations on stdin."""

    def __init__(self, input_func: InputFunc = input, output: Callable[[str], None] = print) -> None:
        self._input = input_func
        self._output = output

    def alert(self, title: str, message: str) -> None:
        self._output(f"[{_ts_local()}] {title}: {message}")

    async def confirm(self, title: str, message: str) -> bool:
        self._output(f"[{_ts_local()}] {title}\n{message}")
        try:
            answer = await asyncio.to_thread(self._input, "追加しますか？ [y/N]: ")
        except (EOFError, KeyboardInterrupt):
            return False
        return answer.strip().lower() in YES_ANSWERS


async def run_console_loop(
    controller: TaskTimerController,
    *,
    registry: CommandRegistry = command_registry,
    input_func: InputFunc = input,
) -> None:
    logger.info("Console connector started.")
    print(f"[{_ts_local()}] Type /help for commands, /exit to quit.\n")

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = (await asyncio.to_thread(input_func, "> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            user_input = "/" + user_input

        try:
            reply = await registry.handle(controller, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            print(f"[{_ts_local()}] {reply}")

    logger.info("Console connector finished.")
