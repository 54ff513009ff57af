"""TechChat API backend using FastAPI + Mangum for AWS Lambda."""

import logging
import math
from functools import lru_cache
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mangum import Mangum

from techchat.errors import ChatApiError
from techchat.infra.runtime import (
    ensure_langsmith_configured,
    flush_langsmith_traces,
    get_api_credentials,
    get_gemini_runnable,
    get_openai_chat_runnable,
)
from techchat.orchestration.base import ChatOrchestrator
from techchat.orchestration.direct import DirectChatOrchestrator
from techchat.orchestration.langgraph_flow import LangGraphChatOrchestrator
from techchat.provider_registry import ProviderDisabledState, resolve_provider
from techchat.providers.base import ChatProvider
from techchat.providers.gemini_provider import GeminiChatProvider
from techchat.providers.openai_provider import OpenAIChatProvider
from techchat.rate_limiter import FixedWindowRateLimiter
from techchat.schemas import ChatRequest, ChatResponse, ConfigResponse, HealthResponse
from techchat.services.chat_service import ChatService, utc_timestamp
from techchat.settings import get_settings

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

app = FastAPI(title="TechChat API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
router = APIRouter()


@lru_cache(maxsize=1)
def get_provider_state() -> ProviderDisabledState:
    return ProviderDisabledState()


@lru_cache(maxsize=1)
def get_rate_limiter() -> FixedWindowRateLimiter:
    settings = get_settings()
    return FixedWindowRateLimiter(
        window_ms=settings.rate_limit_window_ms,
        max_requests=settings.rate_limit_max_requests,
    )


def _build_orchestrator(name: str) -> ChatOrchestrator:
    if name == "langgraph":
        return LangGraphChatOrchestrator()
    return DirectChatOrchestrator()


@lru_cache(maxsize=1)
def get_chat_service() -> ChatService:
    settings = get_settings()
    credentials = get_api_credentials()
    provider_name = resolve_provider(
        settings.ai_provider, credentials.has_gemini, credentials.has_openai
    )

    providers: dict[str, ChatProvider] = {}
    if credentials.has_gemini:
        providers["gemini"] = GeminiChatProvider(settings.gemini_model, get_gemini_runnable)
    if credentials.has_openai:
        providers["openai"] = OpenAIChatProvider(settings.openai_model, get_openai_chat_runnable)

    logger.info(
        "Chat provider resolved",
        extra={
            "provider": provider_name,
            "gemini_configured": credentials.has_gemini,
            "openai_configured": credentials.has_openai,
        },
    )
    return ChatService(
        provider_name=provider_name,
        provider=providers.get(provider_name),
        orchestrator=_build_orchestrator(settings.chat_orchestrator),
        disabled_state=get_provider_state(),
        provider_configured=provider_name in providers,
        model=settings.model_for(provider_name),
        max_message_length=settings.max_message_length,
        max_history_items=settings.max_history_items,
        timeout_seconds=settings.provider_timeout_seconds,
        expose_error_details=settings.is_development,
    )


def _client_key(http_request: Request) -> str:
    forwarded_for = http_request.headers.get("x-forwarded-for", "")
    if forwarded_for.strip():
        return forwarded_for.split(",")[0].strip()
    if http_request.client is not None:
        return http_request.client.host
    return "unknown"


CHAT_RESPONSES: dict[int | str, dict[str, Any]] = {
    200: {"model": ChatResponse, "description": "Provider reply or fallback reply"},
    400: {"model": ChatResponse, "description": "Empty or oversized message"},
    429: {"model": ChatResponse, "description": "Rate limited"},
    500: {"model": ChatResponse, "description": "Provider failure or empty reply"},
}


@router.post("/chat", responses=CHAT_RESPONSES)
async def chat(request: ChatRequest, http_request: Request) -> JSONResponse:
    """Answer one chat turn, degrading to a fallback reply when the provider is unavailable."""
    decision = get_rate_limiter().admit(_client_key(http_request))
    if not decision.admitted:
        response = ChatResponse(
            success=False,
            error="Too many requests. Please wait before sending another message.",
            retry_after_ms=decision.retry_after_ms,
            timestamp=utc_timestamp(),
            latency_ms=0,
        )
        return JSONResponse(
            status_code=429,
            content=response.to_payload(),
            headers={"Retry-After": str(math.ceil(decision.retry_after_ms / 1000))},
        )

    ensure_langsmith_configured()
    chat_service = get_chat_service()
    try:
        response = await chat_service.handle_chat(request)
        return JSONResponse(status_code=200, content=response.to_payload())
    except ChatApiError as e:
        if e.status_code >= 500:
            logger.error("Chat request failed", extra={"error": e.message})
        response = ChatResponse(
            success=False,
            error=e.message,
            details=e.details,
            provider=chat_service.provider_name,
            model=chat_service.model,
            timestamp=utc_timestamp(),
            latency_ms=e.latency_ms,
        )
        return JSONResponse(status_code=e.status_code, content=response.to_payload())
    finally:
        flush_langsmith_traces()


@router.get("/config", response_model=ConfigResponse)
def config() -> ConfigResponse:
    """Read-only snapshot of the resolved provider configuration."""
    settings = get_settings()
    credentials = get_api_credentials()
    chat_service = get_chat_service()
    provider = chat_service.provider_name
    return ConfigResponse(
        server_time=utc_timestamp(),
        provider=provider,
        provider_configured=provider != "none",
        gemini_configured=credentials.has_gemini,
        openai_configured=credentials.has_openai,
        model=settings.model_for(provider),
        max_message_length=settings.max_message_length,
        max_history_items=settings.max_history_items,
        provider_temporarily_disabled=(
            provider != "none" and get_provider_state().is_disabled(provider)
        ),
    )


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    """Health check endpoint."""
    settings = get_settings()
    chat_service = get_chat_service()
    return HealthResponse(
        timestamp=utc_timestamp(),
        provider=chat_service.provider_name,
        model=settings.model_for(chat_service.provider_name),
        env=settings.app_env,
    )


app.include_router(router)
app.include_router(router, prefix="/api")


handler = Mangum(app)
