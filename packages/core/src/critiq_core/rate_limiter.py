"""Process-wide throttle for outbound model calls.

Two independent constraints are enforced on every acquisition:

- no more than ``max_requests_per_minute`` calls in any trailing 60-second
  window;
- at least ``min_request_interval`` seconds between consecutive calls.

One RateLimiter instance is created per run and injected into every provider,
so batch workers reviewing different commits share the same budget. The whole
of ``acquire()`` is a single critical section: two threads can never both see
"under capacity" and proceed.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0

_DEFAULT_MIN_INTERVAL = 1.0
_DEFAULT_MAX_PER_MINUTE = 60


@dataclass
class RateLimiterState:
    """Mutable bookkeeping behind a RateLimiter. Only ``acquire`` and ``reset`` touch it."""

    last_call_at: float | None = None
    call_history: deque[float] = field(default_factory=deque)


class RateLimiter:
    def __init__(
        self,
        min_request_interval: float = _DEFAULT_MIN_INTERVAL,
        max_requests_per_minute: int = _DEFAULT_MAX_PER_MINUTE,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_request_interval = max(0.0, float(min_request_interval))
        self.max_requests_per_minute = max(1, int(max_requests_per_minute))
        self.state = RateLimiterState()
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: dict, **kwargs) -> RateLimiter:
        """Build a limiter from the ``rate_limiting`` section (interval in milliseconds)."""
        limits = config.get("rate_limiting") or {}
        return cls(
            min_request_interval=limits.get("min_request_interval", _DEFAULT_MIN_INTERVAL * 1000) / 1000,
            max_requests_per_minute=limits.get("max_requests_per_minute", _DEFAULT_MAX_PER_MINUTE),
            **kwargs,
        )

    def acquire(self) -> float:
        """Block until one more call is allowed, record it, and return its timestamp."""
        with self._lock:
            history = self.state.call_history
            now = self._clock()
            self._evict(now)

            if len(history) >= self.max_requests_per_minute:
                wait = WINDOW_SECONDS - (now - history[0])
                if wait > 0:
                    logger.info("Rate limit reached. Waiting %ds...", round(wait))
                    self._sleep(wait)
                now = self._clock()
                self._evict(now)

            last = self.state.last_call_at
            if last is not None and now - last < self.min_request_interval:
                self._sleep(self.min_request_interval - (now - last))

            stamp = self._clock()
            self.state.last_call_at = stamp
            history.append(stamp)
            return stamp

    def _evict(self, now: float) -> None:
        history = self.state.call_history
        while history and now - history[0] >= WINDOW_SECONDS:
            history.popleft()

    def stats(self) -> dict:
        with self._lock:
            now = self._clock()
            recent = sum(1 for t in self.state.call_history if now - t < WINDOW_SECONDS)
            last = self.state.last_call_at
            return {
                "requests_last_minute": recent,
                "max_requests_per_minute": self.max_requests_per_minute,
                "last_request_time": last,
                "next_request_allowed_at": None if last is None else last + self.min_request_interval,
            }

    def reset(self) -> None:
        with self._lock:
            self.state = RateLimiterState()
