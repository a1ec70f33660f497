"""In-memory throttle for login attempts."""

from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from typing import Callable


class LoginThrottle:
    """Sliding-window counter of attempts per client key.

    Limits are read through callables so tests and settings changes take
    effect without rebuilding the throttle.
    """

    def __init__(self, max_attempts: Callable[[], int], window_seconds: int = 60, clock=time.monotonic):
        self._attempts = defaultdict(deque)
        self._lock = threading.Lock()
        self._max_attempts = max_attempts
        self._window = window_seconds
        self._clock = clock

    def hit(self, key: str) -> tuple[bool, int]:
        """Record an attempt; return `(allowed, retry_after_seconds)`."""
        now = self._clock()
        limit = self._max_attempts()
        with self._lock:
            q = self._attempts[key]
            cutoff = now - self._window
            while q and q[0] <= cutoff:
                q.popleft()
            if limit > 0 and len(q) >= limit:
                return False, max(1, int(self._window - (now - q[0])))
            q.append(now)
        return True, 0

    def clear(self, key: str) -> None:
        """Forget attempts for `key`, e.g. after a successful login."""
        with self._lock:
            self._attempts.pop(key, None)

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()
