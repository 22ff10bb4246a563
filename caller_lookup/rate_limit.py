"""Throttling for reverse lookup providers.

Every configured provider is wrapped in a :class:`RateLimitedProvider` so that
lookups issued by the cascade respect the provider's per-minute quota and any
courtesy pause configured after each request.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

from .models import LookupRequest, LookupResponse
from .providers.base import LookupProvider, provider_identifier

LOGGER = logging.getLogger(__name__)


@dataclass
class DelayPolicy:
    """Pause applied after every provider request."""

    delay_seconds: float = 0.0


class RateLimiter:
    """Enforces a minimum interval between provider requests."""

    def __init__(self, calls_per_minute: Optional[float]) -> None:
        self._interval = 60.0 / float(calls_per_minute) if calls_per_minute else 0.0
        self._lock = threading.Lock()
        self._next_available = 0.0

    @property
    def interval(self) -> float:
        return self._interval

    def acquire(self) -> float:
        """Block until the next request may go out; returns the seconds waited."""

        if self._interval <= 0:
            return 0.0
        with self._lock:
            now = time.monotonic()
            waited = max(0.0, self._next_available - now)
            if waited:
                time.sleep(waited)
                now = time.monotonic()
            self._next_available = now + self._interval
        return waited


class RateLimitedProvider:
    """Lookup provider wrapper applying a :class:`RateLimiter` and :class:`DelayPolicy`."""

    def __init__(
        self,
        provider: LookupProvider,
        *,
        display_name: Optional[str] = None,
        delay_policy: Optional[DelayPolicy] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self._provider = provider
        self._display_name = display_name
        self._delay_policy = delay_policy or DelayPolicy()
        self._rate_limiter = rate_limiter or RateLimiter(None)
        self._request_count = 0

    @property
    def unique_identifier(self) -> str:
        return self._display_name or provider_identifier(self._provider)

    @property
    def request_count(self) -> int:
        return self._request_count

    def is_enabled(self) -> bool:
        return self._provider.is_enabled()

    def blocking_fetch_info(self, request: LookupRequest) -> Optional[LookupResponse]:
        waited = self._rate_limiter.acquire()
        if waited:
            LOGGER.debug("Throttled %s for %.2fs before looking up %s", self.unique_identifier, waited, request.number)

        self._request_count += 1
        response = self._provider.blocking_fetch_info(request)
        if response is None:
            LOGGER.debug("%s returned no response for %s", self.unique_identifier, request.number)
        else:
            LOGGER.debug(
                "%s answered %s for %s (request %s)",
                self.unique_identifier,
                response.status_code.name,
                request.number,
                self._request_count,
            )

        if self._delay_policy.delay_seconds > 0:
            LOGGER.debug("Pausing %.2fs after %s request", self._delay_policy.delay_seconds, self.unique_identifier)
            time.sleep(self._delay_policy.delay_seconds)
        return response

    def __getattr__(self, item):
        return getattr(self._provider, item)
