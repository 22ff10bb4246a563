"""Provider protocol and helpers shared by external lookup providers."""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Optional, Protocol

from ..deadline import Deadline
from ..models import LookupRequest, LookupResponse

LOGGER = logging.getLogger(__name__)

_CANCELLATION_POLL_SECONDS = 0.1


class LookupProvider(Protocol):
    """Out-of-process service queried for numbers that are not known locally."""

    unique_identifier: str

    def is_enabled(self) -> bool:  # pragma: no cover - runtime protocol
        ...

    def blocking_fetch_info(self, request: LookupRequest) -> Optional[LookupResponse]:  # pragma: no cover
        """Return provider data for ``request``; may block on network I/O."""


class DisabledLookupProvider:
    """Provider used when nothing is configured; never queried."""

    unique_identifier = "disabled"

    def is_enabled(self) -> bool:
        return False

    def blocking_fetch_info(self, request: LookupRequest) -> Optional[LookupResponse]:
        return None


def provider_identifier(provider: LookupProvider) -> str:
    return getattr(provider, "unique_identifier", None) or provider.__class__.__name__


def fetch_with_deadline(
    provider: LookupProvider,
    request: LookupRequest,
    deadline: Optional[Deadline] = None,
) -> Optional[LookupResponse]:
    """Run ``provider.blocking_fetch_info`` and give up once ``deadline`` passes.

    Without a deadline the call runs inline. An expired or cancelled deadline
    skips the provider, and a call still running when it expires is abandoned.
    Either way the outcome is reported as "no response".
    """

    if deadline is None:
        return _fetch(provider, request)
    if deadline.expired():
        LOGGER.debug("Deadline expired before querying %s", provider_identifier(provider))
        return None

    executor = ThreadPoolExecutor(max_workers=1)
    try:
        future = executor.submit(_fetch, provider, request)
        while True:
            if deadline.expired():
                future.cancel()
                LOGGER.warning("Abandoned lookup of %s via %s after deadline", request.number, provider_identifier(provider))
                return None
            remaining = deadline.remaining()
            wait = _CANCELLATION_POLL_SECONDS if remaining is None else min(remaining, _CANCELLATION_POLL_SECONDS)
            try:
                return future.result(timeout=wait)
            except FuturesTimeoutError:
                continue
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


def _fetch(provider: LookupProvider, request: LookupRequest) -> Optional[LookupResponse]:
    try:
        return provider.blocking_fetch_info(request)
    except Exception:  # provider errors count as no response
        LOGGER.exception("Lookup provider %s failed for %s", provider_identifier(provider), request.number)
        return None


@dataclass
class BrowserProviderConfig:
    """Runtime configuration shared by all browser based providers."""

    headless: bool = True
    throttle_seconds: float = 5.0
    navigation_timeout: float = 30.0


class BrowserProvider:
    """Base class exposing throttling helpers for browser providers."""

    def __init__(self, config: Optional[BrowserProviderConfig] = None) -> None:
        self.config = config or BrowserProviderConfig()

    def _apply_throttle(self) -> None:
        if self.config.throttle_seconds > 0:
            time.sleep(self.config.throttle_seconds)
