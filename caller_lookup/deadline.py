"""Caller supplied deadlines for blocking provider calls."""
from __future__ import annotations

import threading
import time
from typing import Optional


class Deadline:
    """Monotonic expiry combined with an explicit cancellation flag."""

    def __init__(self, expires_at: Optional[float] = None) -> None:
        self._expires_at = expires_at
        self._cancelled = threading.Event()

    @classmethod
    def after(cls, seconds: Optional[float]) -> "Deadline":
        if seconds is None:
            return cls()
        return cls(time.monotonic() + max(float(seconds), 0.0))

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left, ``None`` when there is no time limit."""

        if self._expires_at is None:
            return None
        return max(self._expires_at - time.monotonic(), 0.0)

    def expired(self) -> bool:
        if self.cancelled:
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0
