"""Conversion helpers between API history and provider-specific formats."""

from collections.abc import Sequence
from typing import Any

from .constants import MAX_HISTORY_ITEMS
from .sanitizer import sanitize_text
from .schemas import ChatTurn


def _get_field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def normalize_history(history: Any, max_items: int = MAX_HISTORY_ITEMS) -> list[ChatTurn]:
    """Clamp caller-supplied history to the most recent ``max_items`` usable turns.

    Anything that is not a list or tuple yields an empty history. Order is kept
    oldest-first, the role is ``model`` only for that exact value, and turns
    whose sanitized text is empty are dropped.
    """
    if not isinstance(history, (list, tuple)) or max_items <= 0:
        return []

    turns: list[ChatTurn] = []
    for item in history[-max_items:]:
        text = sanitize_text(_get_field(item, "text"))
        if not text:
            continue
        role = "model" if _get_field(item, "role") == "model" else "user"
        turns.append(ChatTurn(role=role, text=text))
    return turns


def render_transcript(history: Sequence[ChatTurn]) -> str:
    return "\n".join(
        f"{'User' if turn.role == 'user' else 'Assistant'}: {turn.text}" for turn in history
    )


def build_gemini_prompt(system_instruction: str, history: Sequence[ChatTurn], message: str) -> str:
    """Flatten instruction, transcript and the new user turn into a single prompt."""
    sections = [
        system_instruction,
        f"Recent chat context:\n{render_transcript(history)}" if history else "",
        f"User: {message}",
        "Assistant:",
    ]
    return "\n\n".join(section for section in sections if section)


def build_openai_messages(
    system_instruction: str, history: Sequence[ChatTurn], message: str
) -> list[dict[str, str]]:
    """Build chat-completion messages: system, mapped history, then the user turn."""
    messages = [{"role": "system", "content": system_instruction}]
    for turn in history:
        messages.append(
            {"role": "user" if turn.role == "user" else "assistant", "content": turn.text}
        )
    messages.append({"role": "user", "content": message})
    return messages
