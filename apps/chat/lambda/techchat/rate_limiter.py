"""Fixed-window, per-client request admission."""

import logging
import threading
import time
from dataclasses import dataclass

from .constants import RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_MS

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    count: int
    reset_at: int


@dataclass(frozen=True)
class RateLimitDecision:
    admitted: bool
    retry_after_ms: int = 0


def now_ms() -> int:
    return int(time.time() * 1000)


class FixedWindowRateLimiter:
    """Counts requests per client key inside fixed windows.

    Entries are reset in place when their window expires and are never
    evicted. A burst of up to twice the limit is possible across a window
    boundary.
    """

    def __init__(
        self,
        window_ms: int = RATE_LIMIT_WINDOW_MS,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
    ) -> None:
        self._window_ms = window_ms
        self._max_requests = max_requests
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def admit(self, client_key: str, now: int | None = None) -> RateLimitDecision:
        current = now_ms() if now is None else now
        with self._lock:
            entry = self._entries.get(client_key)
            if entry is None:
                entry = RateLimitEntry(count=0, reset_at=current + self._window_ms)
                self._entries[client_key] = entry
            if current > entry.reset_at:
                entry.count = 0
                entry.reset_at = current + self._window_ms
            entry.count += 1
            count = entry.count
            reset_at = entry.reset_at

        if count > self._max_requests:
            retry_after_ms = max(reset_at - current, 0)
            logger.warning(
                "Rate limit exceeded",
                extra={"client_key": client_key, "count": count, "retry_after_ms": retry_after_ms},
            )
            return RateLimitDecision(admitted=False, retry_after_ms=retry_after_ms)
        return RateLimitDecision(admitted=True)

    def entry_for(self, client_key: str) -> RateLimitEntry | None:
        return self._entries.get(client_key)
