# src/task_timer/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds the controller, then runs the console REPL
on an asyncio loop (the countdown ticks on the same loop).
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_controller
from ..config import get_settings
from ..connectors.console_connector import ConsoleNotifier, run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run(settings) -> None:
    controller = create_controller(ConsoleNotifier(), settings=settings)
    try:
        await run_console_loop(controller)
    finally:
        controller.close()


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "WARNING")).upper()
    console_level = getattr(logging, level_name, logging.WARNING)

    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)
    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
