"""Runtime infrastructure helpers for credentials, tracing, and provider runnables."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import boto3
import httpx
from langchain_core.runnables import Runnable, RunnableLambda
from langsmith import traceable
from langsmith.run_trees import get_cached_client
from openai import AsyncOpenAI

from techchat.errors import ProviderHTTPError
from techchat.settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiCredentials:
    gemini_api_key: str
    openai_api_key: str
    langsmith_api_key: str | None

    @property
    def has_gemini(self) -> bool:
        return bool(self.gemini_api_key)

    @property
    def has_openai(self) -> bool:
        return bool(self.openai_api_key)


def _get_secure_parameter(ssm_client: Any, parameter_name: str) -> str:
    result = ssm_client.get_parameter(Name=parameter_name, WithDecryption=True)
    value = result["Parameter"].get("Value")
    if not value:
        raise RuntimeError(f"SSM parameter {parameter_name} has no value")
    return value


def _get_optional_secure_parameter(ssm_client: Any, parameter_name: str) -> str | None:
    try:
        return _get_secure_parameter(ssm_client, parameter_name)
    except Exception:
        logger.warning(
            "Optional SSM parameter is unavailable; treating credential as missing",
            extra={"parameter_name": parameter_name},
            exc_info=True,
        )
        return None


def load_api_credentials(settings: Settings, ssm_client: Any = None) -> ApiCredentials:
    """Read credentials from the environment, then from SSM for any that are empty."""
    gemini_api_key = settings.gemini_api_key.strip()
    openai_api_key = settings.openai_api_key.strip()

    missing = [
        (name, parameter)
        for name, value, parameter in (
            ("gemini", gemini_api_key, settings.gemini_api_key_parameter),
            ("openai", openai_api_key, settings.openai_api_key_parameter),
        )
        if not value and parameter
    ]
    if missing:
        ssm_client = ssm_client or boto3.client("ssm", region_name=settings.aws_region)
        for name, parameter in missing:
            value = (_get_optional_secure_parameter(ssm_client, parameter) or "").strip()
            if name == "gemini":
                gemini_api_key = value
            else:
                openai_api_key = value

    return ApiCredentials(
        gemini_api_key=gemini_api_key,
        openai_api_key=openai_api_key,
        langsmith_api_key=(settings.langsmith_api_key or "").strip() or None,
    )


@lru_cache(maxsize=1)
def get_api_credentials() -> ApiCredentials:
    return load_api_credentials(get_settings())


def _configure_langsmith(langsmith_api_key: str | None, project: str) -> None:
    if not langsmith_api_key:
        os.environ.pop("LANGSMITH_TRACING", None)
        os.environ.pop("LANGSMITH_API_KEY", None)
        logger.info("LangSmith tracing disabled because API key is unavailable")
        return

    os.environ["LANGSMITH_TRACING"] = "true"
    os.environ["LANGSMITH_API_KEY"] = langsmith_api_key
    os.environ.setdefault("LANGSMITH_PROJECT", project)


@lru_cache(maxsize=1)
def ensure_langsmith_configured() -> None:
    """Configure LangSmith environment variables (called once via lru_cache)."""
    credentials = get_api_credentials()
    _configure_langsmith(credentials.langsmith_api_key, get_settings().langsmith_project)


def flush_langsmith_traces() -> None:
    if os.environ.get("LANGSMITH_TRACING", "").lower() != "true":
        return
    if not os.environ.get("LANGSMITH_API_KEY"):
        return
    try:
        get_cached_client().flush()
    except Exception:
        logger.warning("Failed to flush LangSmith traces", exc_info=True)


@lru_cache(maxsize=1)
def get_openai_client() -> AsyncOpenAI:
    """Create an async OpenAI client with LangSmith tracing configuration."""
    ensure_langsmith_configured()
    credentials = get_api_credentials()
    return AsyncOpenAI(
        api_key=credentials.openai_api_key,
        timeout=get_settings().provider_timeout_seconds,
        max_retries=0,
    )


@traceable(run_type="llm", name="openai.chat.completions.create")
async def _invoke_openai_chat_completion(request_params: dict[str, Any]) -> Any:
    client = get_openai_client()
    return await client.chat.completions.create(**request_params)


@lru_cache(maxsize=1)
def get_openai_chat_runnable() -> Runnable[dict[str, Any], Any]:
    return RunnableLambda(_invoke_openai_chat_completion).with_config(
        {"run_name": "techchat_openai_chat_completion"}
    )


def _gemini_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        parts = [error.get("status"), error.get("message")]
        message = " ".join(str(part) for part in parts if part)
    elif isinstance(error, str):
        message = error
    else:
        message = response.text
    return message or response.reason_phrase


async def post_gemini_generate_content(
    client: httpx.AsyncClient,
    endpoint: str,
    api_key: str,
    model: str,
    payload: dict[str, Any],
) -> dict[str, Any]:
    """POST one ``generateContent`` call; any 4xx/5xx becomes ``ProviderHTTPError``."""
    response = await client.post(
        f"{endpoint.rstrip('/')}/v1beta/models/{model}:generateContent",
        json=payload,
        headers={"x-goog-api-key": api_key},
    )
    if response.status_code >= 400:
        raise ProviderHTTPError(response.status_code, _gemini_error_message(response))
    return response.json()


@traceable(run_type="llm", name="gemini.generateContent")
async def _invoke_gemini_generate_content(params: dict[str, Any]) -> dict[str, Any]:
    ensure_langsmith_configured()
    settings = get_settings()
    credentials = get_api_credentials()
    async with httpx.AsyncClient(timeout=settings.provider_timeout_seconds) as client:
        return await post_gemini_generate_content(
            client,
            settings.gemini_endpoint,
            credentials.gemini_api_key,
            params["model"],
            params["payload"],
        )


@lru_cache(maxsize=1)
def get_gemini_runnable() -> Runnable[dict[str, Any], dict[str, Any]]:
    return RunnableLambda(_invoke_gemini_generate_content).with_config(
        {"run_name": "techchat_gemini_generate_content"}
    )
