# src/task_timer/core/estimation.py

"""
Realistic duration estimation.

The model is asked for {"realTime": <minutes>, "explanation": "..."}.
estimate_real_time() never raises: a failed call or an unusable reply
collapses into ceil(estimated * 1.2) with a canned explanation.
The two canned sentences differ so callers can tell the causes apart.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Final

from ..tasks.task_models import Estimate
from .ports import ChatMessage, LLMClient

logger = logging.getLogger(__name__)

BUFFER_RATIO: Final[float] = 1.2

PARSE_FALLBACK_EXPLANATION: Final[str] = (
    "予期せぬ中断や作業が発生する可能性を考慮して、余裕を持った時間を設定しました。"
)
API_ERROR_EXPLANATION: Final[str] = "APIエラーが発生したため、基本の20%増しで計算しました。"

ESTIMATION_SYSTEM_PROMPT: Final[str] = (
    "あなたは現実的なタスク時間を計算するアシスタントです。"
    "タスクの性質に応じて、現実的な中断や追加作業を考慮し、総所要時間を計算してください。"
)


def build_user_prompt(task_name: str, estimated_minutes: int) -> str:
    return (
        f"タスク「{task_name}」の予定時間は{estimated_minutes}分です。\n"
        "1. このタスクに必要な追加時間を計算し、合計時間を算出してください。\n"
        "2. なぜその追加時間が必要なのか、タスクの性質に基づいた理由を説明してください。\n"
        "3. 回答は以下のJSON形式で返してください：\n"
        "{\n"
        '  "realTime": 数値（分）,\n'
        '  "explanation": "理由の説明"\n'
        "}"
    )


def build_messages(task_name: str, estimated_minutes: int) -> list[ChatMessage]:
    return [
        {"role": "system", "content": ESTIMATION_SYSTEM_PROMPT},
        {"role": "user", "content": build_user_prompt(task_name, estimated_minutes)},
    ]


def fallback_minutes(estimated_minutes: int) -> int:
    # Round before ceil so 5 * 1.2 == 6.000000000000001 doesn't become 7.
    return math.ceil(round(estimated_minutes * BUFFER_RATIO, 9))


@dataclass(slots=True, frozen=True)
class EstimateReply:
    """Decoded model reply. Either field may be absent or unusable."""

    real_time: int | None
    explanation: str | None


def _extract_json_object(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("{") and raw.endswith("}"):
        return raw
    first = raw.find("{")
    last = raw.rfind("}")
    if first != -1 and last != -1 and last > first:
        return raw[first : last + 1]
    return raw


def _coerce_minutes(v: Any) -> int | None:
    if isinstance(v, bool):
        return None
    if isinstance(v, str):
        try:
            v = float(v.strip())
        except ValueError:
            return None
    if not isinstance(v, (int, float)):
        return None
    try:
        if not math.isfinite(v) or v <= 0:
            return None
    except OverflowError:
        # int too large for a float: not a usable duration.
        return None
    return math.ceil(v)


def parse_estimate_reply(raw: str) -> EstimateReply:
    """
    Decode the model text into an EstimateReply.

    Raises ValueError if the text holds no JSON object at all.
    """
    data = json.loads(_extract_json_object(raw))
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")

    explanation = data.get("explanation")
    if not isinstance(explanation, str) or not explanation.strip():
        explanation = None

    return EstimateReply(
        real_time=_coerce_minutes(data.get("realTime")),
        explanation=explanation.strip() if explanation else None,
    )


async def estimate_real_time(llm: LLMClient, task_name: str, estimated_minutes: int) -> Estimate:
    fallback = fallback_minutes(estimated_minutes)

    try:
        raw = await llm.complete(build_messages(task_name, estimated_minutes))
    except Exception as e:
        logger.warning("Estimation call failed for task=%r: %s", task_name, e, exc_info=True)
        return Estimate(real_minutes=fallback, explanation=API_ERROR_EXPLANATION)

    try:
        reply = parse_estimate_reply(raw or "")
    except (ValueError, RecursionError):
        logger.exception("Estimation reply is not valid JSON. Raw=%r", (raw or "")[:2000])
        return Estimate(real_minutes=fallback, explanation=PARSE_FALLBACK_EXPLANATION)

    if reply.real_time is None or reply.explanation is None:
        logger.info(
            "Estimation reply incomplete (realTime=%s, explanation=%s); filling defaults",
            reply.real_time,
            "present" if reply.explanation else "missing",
        )

    return Estimate(
        real_minutes=reply.real_time if reply.real_time is not None else fallback,
        explanation=reply.explanation if reply.explanation is not None else PARSE_FALLBACK_EXPLANATION,
    )
