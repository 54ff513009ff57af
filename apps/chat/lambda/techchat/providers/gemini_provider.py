"""Gemini provider implementation for chat requests."""

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from langchain_core.runnables import Runnable

from techchat.message_mappers import build_gemini_prompt
from techchat.schemas import ChatTurn

from .base import require_reply

logger = logging.getLogger(__name__)


def extract_gemini_text(response: dict[str, Any]) -> str:
    candidates = response.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class GeminiChatProvider:
    name = "gemini"

    def __init__(
        self,
        model: str,
        get_gemini_runnable: Callable[[], Runnable[dict[str, Any], dict[str, Any]]],
    ) -> None:
        self.model = model
        self._get_gemini_runnable = get_gemini_runnable

    async def generate(
        self, system_instruction: str, history: Sequence[ChatTurn], message: str
    ) -> str:
        prompt = build_gemini_prompt(system_instruction, history, message)

        start = time.time()
        response = await self._get_gemini_runnable().ainvoke(
            {
                "model": self.model,
                "payload": {"contents": [{"role": "user", "parts": [{"text": prompt}]}]},
            },
            config={
                "run_name": "techchat_request",
                "tags": ["techchat", self.model],
                "metadata": {"history_items": len(history)},
            },
        )
        duration_ms = int((time.time() - start) * 1000)
        content = extract_gemini_text(response)

        usage = response.get("usageMetadata") or {}
        logger.info(
            "Chat response generated",
            extra={
                "gemini_duration_ms": duration_ms,
                "model": self.model,
                "usage_prompt_tokens": usage.get("promptTokenCount"),
                "usage_completion_tokens": usage.get("candidatesTokenCount"),
                "response_length": len(content),
            },
        )
        return require_reply(content)
