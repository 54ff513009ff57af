"""Domain-level exceptions for the chat API."""


class ChatApiError(Exception):
    """Base error surfaced to the caller as a ``success=false`` chat result."""

    status_code = 500

    def __init__(self, message: str, *, latency_ms: int = 0, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.latency_ms = latency_ms
        self.details = details


class BadRequestError(ChatApiError, ValueError):
    """Raised for client-side invalid requests at the domain layer."""

    status_code = 400


class ProviderFailedError(ChatApiError):
    """Raised when the provider call fails in a way no fallback reply covers."""

    status_code = 500


class EmptyResponseError(RuntimeError):
    """Raised by providers when the sanitized reply is empty."""


class ProviderHTTPError(RuntimeError):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"Error code: {status_code} - {message}")
        self.status_code = status_code
