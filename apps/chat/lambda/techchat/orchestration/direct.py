"""Direct provider call orchestration."""

from collections.abc import Sequence

from techchat.orchestration.base import ChatOrchestrator
from techchat.providers.base import ChatProvider
from techchat.schemas import ChatTurn


class DirectChatOrchestrator(ChatOrchestrator):
    async def run(
        self,
        provider: ChatProvider,
        system_instruction: str,
        history: Sequence[ChatTurn],
        message: str,
    ) -> str:
        return await provider.generate(system_instruction, history, message)
