"""Process-wide token bucket shared by every worker thread.

One instance bounds the aggregate request rate of a run. A rate of zero or
less disables it and ``wait()`` returns immediately.
"""

from __future__ import annotations

import threading
import time


class RateLimiter:
    def __init__(self, rate: float, burst: int = 1) -> None:
        """
        Args:
            rate: admissions per second; ``<= 0`` means unlimited
            burst: bucket capacity; with 1, ``m`` admissions take at least
                ``(m - 1) / rate`` seconds
        """
        self.rate = float(rate or 0)
        self.capacity = max(1, int(burst or 1))
        self._tokens = float(self.capacity)
        self._last = time.monotonic()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.rate > 0

    def wait(self) -> None:
        """Block until a token is available, then consume it."""
        if not self.enabled:
            return
        while True:
            with self._lock:
                now = time.monotonic()
                self._tokens = min(self.capacity, self._tokens + (now - self._last) * self.rate)
                self._last = now
                if self._tokens >= 1:
                    self._tokens -= 1
                    return
                delay = (1 - self._tokens) / self.rate
            time.sleep(delay)

    def __repr__(self) -> str:
        if not self.enabled:
            return "RateLimiter(unlimited)"
        return f"RateLimiter(rate={self.rate:g}/s, burst={self.capacity})"
