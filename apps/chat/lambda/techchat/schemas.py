"""Pydantic schemas for the chat API."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .constants import ChatRole, FallbackReason, ProviderName


class ChatTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: ChatRole
    text: str


class ChatRequest(BaseModel):
    """Incoming chat payload.

    Fields are deliberately loose: sanitization and history normalization
    decide what is usable, so malformed values never produce a 422.
    """

    message: Any = None
    history: Any = None


class Usage(BaseModel):
    history_items_used: int = Field(serialization_alias="historyItemsUsed")
    input_chars: int = Field(serialization_alias="inputChars")
    output_chars: int = Field(serialization_alias="outputChars")


class ChatResponse(BaseModel):
    success: bool
    reply: str | None = None
    fallback: bool | None = None
    fallback_reason: FallbackReason | None = Field(
        default=None, serialization_alias="fallbackReason"
    )
    error: str | None = None
    details: str | None = None
    retry_after_ms: int | None = Field(default=None, serialization_alias="retryAfterMs")
    usage: Usage | None = None
    provider: ProviderName | None = None
    model: str | None = None
    timestamp: str
    latency_ms: int = Field(serialization_alias="latencyMs")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ConfigResponse(BaseModel):
    success: bool = True
    server_time: str = Field(serialization_alias="serverTime")
    provider: ProviderName
    provider_configured: bool = Field(serialization_alias="providerConfigured")
    gemini_configured: bool = Field(serialization_alias="geminiConfigured")
    openai_configured: bool = Field(serialization_alias="openaiConfigured")
    model: str
    max_message_length: int = Field(serialization_alias="maxMessageLength")
    max_history_items: int = Field(serialization_alias="maxHistoryItems")
    provider_temporarily_disabled: bool = Field(
        serialization_alias="providerTemporarilyDisabled"
    )


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: str
    provider: ProviderName
    model: str
    env: str
