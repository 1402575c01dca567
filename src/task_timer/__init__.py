# src/task_timer/__init__.py

"""Task timer with LLM-adjusted duration estimates."""

__version__ = "0.1.0"
