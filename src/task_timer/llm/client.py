# src/task_timer/llm/client.py

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

from ..core.ports import ChatMessage

logger = logging.getLogger(__name__)


def _is_auth_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return True
    return exc.__class__.__name__ in {"AuthenticationError", "PermissionDeniedError", "UnauthorizedError"}


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"RateLimitError", "TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException)):
        return True
    return exc.__class__.__name__ in {
        "APIConnectionError",
        "APITimeoutError",
        "ConnectTimeout",
        "ReadTimeout",
        "WriteTimeout",
    }


def _is_not_found_error(exc: Exception) -> bool:
    # 404 usually means the model id is wrong for this endpoint.
    return isinstance(exc, openai.NotFoundError) or exc.__class__.__name__ == "NotFoundError"


def _make_timeout(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


def friendly_llm_error_message(err: Exception) -> str:
    msg = str(err).strip() or "LLM error."
    if "LLM API key is not set" in msg or "LLM is not configured" in msg:
        return "LLM is not configured (missing API key). Set TASKTIMER_OPENAI_API_KEY in .env (see .env.example)."
    return msg


class OpenAIChatClient:
    """
    Async OpenAI-compatible chat completion client.

    One request per call, no automatic retries: the estimation layer has its own
    deterministic fallback, so a quick failure beats a slow retry.
    """

    def __init__(self, settings: Any) -> None:
        api_key = getattr(settings, "openai_api_key", None)
        if not api_key or not str(api_key).strip():
            raise RuntimeError("LLM API key is not set. Set TASKTIMER_OPENAI_API_KEY in your .env.")

        base_url = getattr(settings, "openai_base_url", None) or None

        self.model: str = str(getattr(settings, "llm_model", "gpt-3.5-turbo"))
        self.temperature: float = float(getattr(settings, "llm_temperature", 0.7))
        self.max_tokens: int = int(getattr(settings, "llm_max_tokens", 200))

        timeout = _make_timeout(
            connect_s=float(getattr(settings, "llm_connect_timeout_seconds", 5.0)),
            read_s=float(getattr(settings, "llm_read_timeout_seconds", 30.0)),
        )
        self._client = AsyncOpenAI(
            api_key=str(api_key),
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    async def complete(self, messages: list[ChatMessage]) -> str:
        """
        Return the first choice's text.

        Raises RuntimeError (chained to the SDK error) on any failure,
        including an empty reply.
        """
        logger.info(
            "LLM: requesting model=%s (temperature=%.2f, max_tokens=%d)",
            self.model,
            self.temperature,
            self.max_tokens,
        )
        t0 = time.monotonic()
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,  # type: ignore[arg-type]
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            if _is_auth_error(e):
                raise RuntimeError("LLM authentication failed. Check your API key.") from e
            if _is_not_found_error(e):
                raise RuntimeError(f"LLM model not available: {self.model}") from e
            if _is_rate_limit_error(e):
                raise RuntimeError("LLM is rate-limited. Try again later.") from e
            if _is_connection_error(e):
                raise RuntimeError("LLM network/timeout error.") from e
            raise RuntimeError(f"LLM request failed ({e.__class__.__name__}).") from e

        try:
            content = response.choices[0].message.content or ""
        except (AttributeError, IndexError):
            content = ""

        if not content.strip():
            raise RuntimeError(f"Model returned no content: {self.model}")

        logger.debug("LLM: reply from model=%s in %.2fs (%d chars)", self.model, time.monotonic() - t0, len(content))
        return content
