import threading
import time
from typing import Callable, Dict, Tuple


class FixedWindowLimiter:
    """In-process request counter per client key, reset every ``window_seconds``."""

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> bool:
        """Count one request for ``key``; False once the window is exhausted."""
        if self.max_requests <= 0:
            return True
        now = self._clock()
        with self._lock:
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            count += 1
            self._windows[key] = (started, count)
            # drop stale windows so the table does not grow without bound
            if len(self._windows) > 10000:
                self._windows = {
                    k: v for k, v in self._windows.items() if now - v[0] < self.window_seconds
                }
            return count <= self.max_requests
