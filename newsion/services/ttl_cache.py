"""Small in-process cache and call spacing helpers."""
import threading
import time
from typing import Any, Callable, Optional


class TTLCache:
    """Dict-backed cache whose entries expire ``ttl`` seconds after insertion."""

    def __init__(self, ttl: float = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._data = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self._clock() - stored_at >= self.ttl:
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = (value, self._clock())

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self):
        return len(self._data)


class MinIntervalThrottle:
    """Block the caller until ``interval`` seconds passed since the previous call.

    No bursts and no queue: concurrent callers are serialized on the lock.
    """

    def __init__(self, interval: float = 6.0,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last_call = None
        self._lock = threading.Lock()

    def wait(self) -> float:
        """Wait for the next slot and claim it. Returns the seconds waited."""
        with self._lock:
            waited = 0.0
            if self._last_call is not None:
                elapsed = self._clock() - self._last_call
                if elapsed < self.interval:
                    waited = self.interval - elapsed
                    self._sleep(waited)
            self._last_call = self._clock()
            return waited
