"""OpenAI provider implementation for chat requests."""

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from langchain_core.runnables import Runnable

from techchat.constants import DEFAULT_TEMPERATURE, MAX_OUTPUT_TOKENS
from techchat.message_mappers import build_openai_messages
from techchat.schemas import ChatTurn

from .base import require_reply

logger = logging.getLogger(__name__)


class OpenAIChatProvider:
    name = "openai"

    def __init__(
        self,
        model: str,
        get_chat_completion_runnable: Callable[[], Runnable[dict[str, Any], Any]],
    ) -> None:
        self.model = model
        self._get_chat_completion_runnable = get_chat_completion_runnable

    async def generate(
        self, system_instruction: str, history: Sequence[ChatTurn], message: str
    ) -> str:
        request_params: dict[str, Any] = {
            "model": self.model,
            "temperature": DEFAULT_TEMPERATURE,
            "max_tokens": MAX_OUTPUT_TOKENS,
            "messages": build_openai_messages(system_instruction, history, message),
        }

        start = time.time()
        response = await self._get_chat_completion_runnable().ainvoke(
            request_params,
            config={
                "run_name": "techchat_request",
                "tags": ["techchat", self.model],
                "metadata": {"history_items": len(history)},
            },
        )
        duration_ms = int((time.time() - start) * 1000)

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""

        logger.info(
            "Chat response generated",
            extra={
                "openai_duration_ms": duration_ms,
                "model": response.model,
                "usage_prompt_tokens": (response.usage.prompt_tokens if response.usage else None),
                "usage_completion_tokens": (
                    response.usage.completion_tokens if response.usage else None
                ),
                "response_length": len(content),
                "response_id": response.id,
            },
        )
        return require_reply(content)
