from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable

RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."


@dataclass
class _Window:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: int = 0


class RequestRateTracker:
    """Fixed-window request counter per client key, kept in process memory."""

    def __init__(
        self,
        window_seconds: float = 15 * 60,
        max_requests: int = 100,
        *,
        sweep_threshold: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.sweep_threshold = sweep_threshold
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def __len__(self) -> int:
        return len(self._windows)

    def _sweep(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if window.reset_at <= now]
        for key in expired:
            del self._windows[key]

    def hit(self, client_key: str) -> RateLimitDecision:
        now = self._clock()
        if len(self._windows) > self.sweep_threshold:
            self._sweep(now)

        window = self._windows.get(client_key)
        if window is None or window.reset_at <= now:
            self._windows[client_key] = _Window(count=1, reset_at=now + self.window_seconds)
            return RateLimitDecision(allowed=True)

        window.count += 1
        if window.count > self.max_requests:
            return RateLimitDecision(allowed=False, retry_after=math.ceil(window.reset_at - now))
        return RateLimitDecision(allowed=True)
