"""LangGraph-based orchestration strategy for provider calls."""

from collections.abc import Sequence
from typing import NotRequired, TypedDict, cast

from langgraph.graph import END, START, StateGraph

from techchat.providers.base import ChatProvider
from techchat.schemas import ChatTurn

from .base import ChatOrchestrator


class ChatGraphState(TypedDict):
    provider: ChatProvider
    system_instruction: str
    history: list[ChatTurn]
    message: str
    reply: NotRequired[str]


class LangGraphChatOrchestrator(ChatOrchestrator):
    def __init__(self) -> None:
        graph = StateGraph(ChatGraphState)
        graph.add_node("invoke_provider", self._invoke_provider)
        graph.add_edge(START, "invoke_provider")
        graph.add_edge("invoke_provider", END)
        self._graph = graph.compile()

    async def _invoke_provider(self, state: ChatGraphState) -> dict[str, str]:
        reply = await state["provider"].generate(
            state["system_instruction"], state["history"], state["message"]
        )
        return {"reply": reply}

    async def run(
        self,
        provider: ChatProvider,
        system_instruction: str,
        history: Sequence[ChatTurn],
        message: str,
    ) -> str:
        initial_state: ChatGraphState = {
            "provider": provider,
            "system_instruction": system_instruction,
            "history": list(history),
            "message": message,
        }
        result = cast("ChatGraphState", await self._graph.ainvoke(initial_state))
        reply = result.get("reply")
        if reply is None:
            raise RuntimeError("LangGraph execution did not return a provider reply")
        return reply
