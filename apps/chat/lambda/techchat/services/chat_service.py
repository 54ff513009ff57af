"""Application service for chat requests."""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Literal

from techchat.constants import (
    CREDENTIAL_REJECTED_MARKERS,
    CREDENTIAL_REJECTED_STATUS_CODES,
    MAX_HISTORY_ITEMS,
    MAX_MESSAGE_LENGTH,
    PROVIDER_TIMEOUT_SECONDS,
    QUOTA_EXCEEDED_MARKERS,
    SYSTEM_INSTRUCTION,
    FallbackReason,
    ProviderName,
)
from techchat.errors import BadRequestError, EmptyResponseError, ProviderFailedError
from techchat.fallback import build_fallback_reply
from techchat.message_mappers import normalize_history
from techchat.orchestration.base import ChatOrchestrator
from techchat.provider_registry import ProviderDisabledState
from techchat.providers.base import ChatProvider
from techchat.sanitizer import sanitize_text
from techchat.schemas import ChatRequest, ChatResponse, Usage

logger = logging.getLogger(__name__)

ProviderFailureKind = Literal["credential_rejected", "quota_exceeded", "other"]


def _status_code_of(exc: BaseException) -> int | None:
    status_code = getattr(exc, "status_code", None)
    if status_code is None:
        status_code = getattr(getattr(exc, "response", None), "status_code", None)
    return status_code if isinstance(status_code, int) else None


def classify_provider_error(exc: BaseException) -> ProviderFailureKind:
    """Sort a provider exception into the failure kinds the pipeline reacts to."""
    message = str(exc).lower()
    if _status_code_of(exc) in CREDENTIAL_REJECTED_STATUS_CODES or any(
        marker in message for marker in CREDENTIAL_REJECTED_MARKERS
    ):
        return "credential_rejected"
    if any(marker in message for marker in QUOTA_EXCEEDED_MARKERS):
        return "quota_exceeded"
    return "other"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ChatService:
    """Runs one chat request through availability, validation and the provider call.

    Expected provider problems (no key, rejected key, exhausted quota) become
    ``success=True`` fallback replies. Validation problems raise
    ``BadRequestError``; empty replies and unexpected failures raise
    ``ProviderFailedError``.
    """

    def __init__(
        self,
        provider_name: ProviderName,
        provider: ChatProvider | None,
        orchestrator: ChatOrchestrator,
        disabled_state: ProviderDisabledState,
        *,
        provider_configured: bool = True,
        model: str | None = None,
        system_instruction: str = SYSTEM_INSTRUCTION,
        max_message_length: int = MAX_MESSAGE_LENGTH,
        max_history_items: int = MAX_HISTORY_ITEMS,
        timeout_seconds: float = PROVIDER_TIMEOUT_SECONDS,
        expose_error_details: bool = False,
    ) -> None:
        self._provider_name = provider_name
        self._provider = provider
        self._orchestrator = orchestrator
        self._disabled_state = disabled_state
        self._provider_configured = provider_configured
        self._model = model or (provider.model if provider is not None else None)
        self._system_instruction = system_instruction
        self._max_message_length = max_message_length
        self._max_history_items = max_history_items
        self._timeout_seconds = timeout_seconds
        self._expose_error_details = expose_error_details

    @property
    def provider_name(self) -> ProviderName:
        return self._provider_name

    @property
    def model(self) -> str | None:
        return self._model

    def is_provider_available(self) -> bool:
        return (
            self._provider_name != "none"
            and self._provider is not None
            and self._provider_configured
            and not self._disabled_state.is_disabled(self._provider_name)
        )

    async def handle_chat(self, request: ChatRequest) -> ChatResponse:
        started = time.perf_counter()

        provider = self._provider
        if provider is None or not self.is_provider_available():
            reason: FallbackReason = (
                "missing_key" if self._provider_name == "none" else "provider_unavailable"
            )
            return self._fallback_response(request.message, reason, started)

        message = sanitize_text(request.message)
        history = normalize_history(request.history, self._max_history_items)
        logger.info(
            "Chat request received",
            extra={
                "provider": self._provider_name,
                "history_items": len(history),
                "message_length": len(message),
            },
        )

        if not message:
            raise BadRequestError("Message is required.", latency_ms=self._elapsed_ms(started))
        if len(message) > self._max_message_length:
            raise BadRequestError(
                f"Message too long. Max {self._max_message_length}.",
                latency_ms=self._elapsed_ms(started),
            )

        try:
            reply = await asyncio.wait_for(
                self._orchestrator.run(provider, self._system_instruction, history, message),
                timeout=self._timeout_seconds,
            )
        except EmptyResponseError as exc:
            logger.warning(
                "Provider returned an empty reply", extra={"provider": self._provider_name}
            )
            raise ProviderFailedError(
                "The assistant returned an empty response. Please try again.",
                latency_ms=self._elapsed_ms(started),
                details=self._details(exc),
            ) from exc
        except asyncio.TimeoutError as exc:
            logger.error(
                "Provider call timed out",
                extra={"provider": self._provider_name, "timeout_seconds": self._timeout_seconds},
            )
            raise ProviderFailedError(
                "Failed to process your message.",
                latency_ms=self._elapsed_ms(started),
                details=self._details(
                    TimeoutError(f"Provider call timed out after {self._timeout_seconds}s")
                ),
            ) from exc
        except Exception as exc:
            return self._handle_provider_failure(exc, message, started)

        latency_ms = self._elapsed_ms(started)
        logger.info(
            "Chat reply delivered",
            extra={
                "provider": self._provider_name,
                "latency_ms": latency_ms,
                "reply_length": len(reply),
            },
        )
        return ChatResponse(
            success=True,
            reply=reply,
            usage=Usage(
                history_items_used=len(history),
                input_chars=len(message),
                output_chars=len(reply),
            ),
            provider=self._provider_name,
            model=self._model,
            timestamp=utc_timestamp(),
            latency_ms=latency_ms,
        )

    def _handle_provider_failure(
        self, exc: Exception, message: str, started: float
    ) -> ChatResponse:
        kind = classify_provider_error(exc)
        if kind == "credential_rejected":
            logger.error(
                "Provider rejected the configured credential",
                extra={"provider": self._provider_name, "error": str(exc)},
            )
            self._disabled_state.disable(self._provider_name)
            return self._fallback_response(message, "invalid_key", started)
        if kind == "quota_exceeded":
            logger.warning(
                "Provider quota exceeded", extra={"provider": self._provider_name}
            )
            return self._fallback_response(message, "quota_exceeded", started)

        logger.exception("Provider call failed", extra={"provider": self._provider_name})
        raise ProviderFailedError(
            "Failed to process your message.",
            latency_ms=self._elapsed_ms(started),
            details=self._details(exc),
        ) from exc

    def _fallback_response(
        self, message: Any, reason: FallbackReason, started: float
    ) -> ChatResponse:
        logger.warning(
            "Serving fallback reply", extra={"provider": self._provider_name, "reason": reason}
        )
        return ChatResponse(
            success=True,
            fallback=True,
            fallback_reason=reason,
            reply=build_fallback_reply(sanitize_text(message), reason, self._provider_name),
            provider=self._provider_name,
            model=self._model,
            timestamp=utc_timestamp(),
            latency_ms=self._elapsed_ms(started),
        )

    def _details(self, exc: BaseException) -> str | None:
        return str(exc) if self._expose_error_details else None

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)
