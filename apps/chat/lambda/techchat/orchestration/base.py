"""Orchestration interfaces for provider calls."""

from collections.abc import Sequence
from typing import Protocol

from techchat.providers.base import ChatProvider
from techchat.schemas import ChatTurn


class ChatOrchestrator(Protocol):
    async def run(
        self,
        provider: ChatProvider,
        system_instruction: str,
        history: Sequence[ChatTurn],
        message: str,
    ) -> str:
        """Execute one provider call using the selected orchestration strategy."""
