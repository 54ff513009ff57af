"""Shared constants and literal types for the TechChat API."""

import re
from typing import Literal

AWS_REGION = "ap-northeast-1"
LANGSMITH_PROJECT = "techchat"

MAX_MESSAGE_LENGTH = 3000
MAX_HISTORY_ITEMS = 10
RATE_LIMIT_WINDOW_MS = 60_000
RATE_LIMIT_MAX_REQUESTS = 45
PROVIDER_TIMEOUT_SECONDS = 15.0

DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com"
DEFAULT_TEMPERATURE = 0.7
MAX_OUTPUT_TOKENS = 1200

CONTROL_CHARACTER_PATTERN = re.compile(r"[\x00-\x1f\x7f]")
DEBUG_KEYWORD_PATTERN = re.compile(r"error|exception|bug|fail|stack|crash", re.IGNORECASE)
DSA_KEYWORD_PATTERN = re.compile(r"dsa|algorithm|leetcode|array|tree|graph", re.IGNORECASE)

CREDENTIAL_REJECTED_STATUS_CODES = frozenset({401, 403})
CREDENTIAL_REJECTED_MARKERS = (
    "forbidden",
    "invalid api key",
    "api key was reported as leaked",
    "api key not valid",
)
QUOTA_EXCEEDED_MARKERS = ("quota", "resource_exhausted")

SYSTEM_INSTRUCTION = (
    "You are TechChat, a helpful coding assistant. "
    "Keep answers concise and practical, and prefer working code over long prose. "
    "When troubleshooting, walk through the problem step by step: reproduce, "
    "isolate, fix, then verify. "
    "Refuse requests that would cause harm, such as malware or attacks on systems "
    "the user does not own, and briefly explain why."
)

ProviderName = Literal["gemini", "openai", "none"]
ChatRole = Literal["user", "model"]
FallbackReason = Literal["missing_key", "provider_unavailable", "invalid_key", "quota_exceeded"]
OrchestratorName = Literal["direct", "langgraph"]

PROVIDER_LABELS: dict[str, str] = {
    "gemini": "Gemini",
    "openai": "OpenAI",
    "none": "The AI provider",
}
PROVIDER_KEY_VARIABLES: dict[str, str] = {
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
    "none": "GEMINI_API_KEY or OPENAI_API_KEY",
}
