"""Provider interfaces."""

from collections.abc import Sequence
from typing import Protocol

from techchat.errors import EmptyResponseError
from techchat.sanitizer import sanitize_text
from techchat.schemas import ChatTurn


class ChatProvider(Protocol):
    name: str
    model: str

    async def generate(
        self, system_instruction: str, history: Sequence[ChatTurn], message: str
    ) -> str:
        """Return the sanitized, non-empty reply for one user turn."""
        ...


def require_reply(raw_reply: object) -> str:
    reply = sanitize_text(raw_reply)
    if not reply:
        raise EmptyResponseError("empty_response")
    return reply
