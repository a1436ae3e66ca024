import random
import threading
import time
from typing import Optional

from tontrace.core.context import LookupContext


class SimpleRateLimiter:
    def __init__(self, requests_per_sec: float) -> None:
        if requests_per_sec <= 0:
            raise ValueError("requests_per_sec must be > 0")
        self._min_interval = 1.0 / requests_per_sec
        self._last_ts = 0.0
        # adapters are shared by every caller enriching a cached trace
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            now = time.monotonic()
            sleep_for = self._min_interval - (now - self._last_ts)
            if sleep_for > 0:
                time.sleep(sleep_for)
            self._last_ts = time.monotonic()


def backoff_sleep(
    attempt: int,
    base: float = 0.5,
    cap: float = 8.0,
    ctx: Optional[LookupContext] = None,
) -> None:
    t = min(cap, base * (2 ** attempt))
    t *= 0.7 + random.random() * 0.6
    if ctx is not None:
        remaining = ctx.remaining()
        if remaining is not None:
            t = min(t, remaining)
    time.sleep(t)
