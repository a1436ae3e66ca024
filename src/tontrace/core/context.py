from __future__ import annotations

import threading
import time
from typing import Optional

from tontrace.core.errors import LookupCancelledError


class LookupContext:
    """
    Cancellation signal handed to every Information Source call.

    A context is cancelled explicitly with `cancel()` or implicitly once
    `timeout_sec` has elapsed since it was created.
    """

    def __init__(self, timeout_sec: Optional[float] = None) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout_sec if timeout_sec is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise LookupCancelledError("lookup cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise LookupCancelledError("lookup deadline exceeded")


def background() -> LookupContext:
    """Context that is never cancelled unless asked to."""
    return LookupContext()
