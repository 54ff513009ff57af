"""Canned replies used when no live provider call is possible."""

from .constants import (
    DEBUG_KEYWORD_PATTERN,
    DSA_KEYWORD_PATTERN,
    PROVIDER_KEY_VARIABLES,
    PROVIDER_LABELS,
    FallbackReason,
    ProviderName,
)
from .sanitizer import sanitize_text

DEBUG_CHECKLIST = (
    "1) Reproduce with minimal input\n"
    "2) Inspect first user-code stack frame\n"
    "3) Add logs at input/output boundaries\n"
    "4) Validate null/undefined and async branches\n"
    "5) Apply one fix at a time"
)

PROBLEM_SOLVING_CHECKLIST = (
    "1) Restate the input, output and constraints\n"
    "2) Work through a small example by hand\n"
    "3) Write the brute-force approach and its complexity\n"
    "4) Pick the data structure that removes the repeated work\n"
    "5) Test edge cases: empty input, single element, duplicates, limits"
)


def build_fallback_reply(message: str, reason: FallbackReason, provider: ProviderName) -> str:
    """Return guidance text for the given failure reason without any network call."""
    label = PROVIDER_LABELS.get(provider, PROVIDER_LABELS["none"])
    key_variable = PROVIDER_KEY_VARIABLES.get(provider, PROVIDER_KEY_VARIABLES["none"])

    if reason == "quota_exceeded":
        return (
            f"{label} quota is exhausted for the configured API key.\n"
            f"Enable billing or raise the usage limit for {label}, then retry.\n"
            "Fallback mode stays active until the provider accepts requests again."
        )

    normalized = sanitize_text(message).lower()
    if DEBUG_KEYWORD_PATTERN.search(normalized):
        return f"{label} is unavailable. Debug checklist:\n{DEBUG_CHECKLIST}"
    if DSA_KEYWORD_PATTERN.search(normalized):
        return f"{label} is unavailable. Problem-solving checklist:\n{PROBLEM_SOLVING_CHECKLIST}"

    return (
        f"{label} is currently unavailable because the configured key appears invalid "
        f"or exhausted. Please rotate {key_variable} and retry."
    )
