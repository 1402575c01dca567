# src/task_timer/llm/offline.py

from __future__ import annotations

from ..core.ports import ChatMessage


class OfflineLLMClient:
    """
    Stand-in client used when no API key is configured.

    It never produces text, so every estimate takes the deterministic
    API-error fallback and the app stays usable without network access.
    """

    async def complete(self, messages: list[ChatMessage]) -> str:
        raise RuntimeError(
            "LLM is not configured: set TASKTIMER_OPENAI_API_KEY to enable model estimates."
        )
