"""Provider resolution and process-wide provider state."""

import logging
import threading

from .constants import ProviderName

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS: tuple[ProviderName, ...] = ("gemini", "openai")


def resolve_provider(preferred: str | None, has_gemini: bool, has_openai: bool) -> ProviderName:
    """Pick the active provider.

    A preferred provider wins only when its credential is available; otherwise
    Gemini takes precedence over OpenAI, and ``none`` means nothing is configured.
    """
    available = {"gemini": has_gemini, "openai": has_openai}
    preferred_name = (preferred or "").strip().lower()
    if available.get(preferred_name):
        return preferred_name  # type: ignore[return-value]
    if has_gemini:
        return "gemini"
    if has_openai:
        return "openai"
    return "none"


class ProviderDisabledState:
    """One-way switch per provider, flipped when a credential is rejected.

    Nothing resets a disabled provider; only a new process starts clean.
    """

    def __init__(self) -> None:
        self._disabled: dict[str, bool] = {name: False for name in SUPPORTED_PROVIDERS}
        self._lock = threading.Lock()

    def is_disabled(self, provider: ProviderName) -> bool:
        return self._disabled.get(provider, False)

    def disable(self, provider: ProviderName) -> None:
        if provider not in self._disabled:
            return
        with self._lock:
            already_disabled = self._disabled[provider]
            self._disabled[provider] = True
        if not already_disabled:
            logger.error(
                "Provider disabled until restart after credential rejection",
                extra={"provider": provider},
            )

    def snapshot(self) -> dict[str, bool]:
        return dict(self._disabled)
