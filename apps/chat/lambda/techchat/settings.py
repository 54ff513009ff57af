"""Environment-driven configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    AWS_REGION,
    DEFAULT_GEMINI_ENDPOINT,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_OPENAI_MODEL,
    LANGSMITH_PROJECT,
    MAX_HISTORY_ITEMS,
    MAX_MESSAGE_LENGTH,
    PROVIDER_TIMEOUT_SECONDS,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_WINDOW_MS,
    OrchestratorName,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ai_provider: str = ""
    gemini_api_key: str = ""
    openai_api_key: str = ""
    gemini_model: str = DEFAULT_GEMINI_MODEL
    openai_model: str = DEFAULT_OPENAI_MODEL
    gemini_endpoint: str = DEFAULT_GEMINI_ENDPOINT

    max_message_length: int = MAX_MESSAGE_LENGTH
    max_history_items: int = MAX_HISTORY_ITEMS
    rate_limit_window_ms: int = RATE_LIMIT_WINDOW_MS
    rate_limit_max_requests: int = RATE_LIMIT_MAX_REQUESTS
    provider_timeout_seconds: float = PROVIDER_TIMEOUT_SECONDS

    app_env: str = "production"
    chat_orchestrator: OrchestratorName = "direct"

    # Optional SSM SecureString names, read only when the matching env key is empty.
    gemini_api_key_parameter: str | None = None
    openai_api_key_parameter: str | None = None
    aws_region: str = AWS_REGION

    langsmith_api_key: str | None = None
    langsmith_project: str = LANGSMITH_PROJECT

    @property
    def is_development(self) -> bool:
        return self.app_env.strip().lower() == "development"

    def model_for(self, provider: str) -> str:
        return self.openai_model if provider == "openai" else self.gemini_model


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
