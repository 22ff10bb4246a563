"""TruePeopleSearch.com reverse phone lookup provider.

Prerequisites
-------------
* Requires :mod:`playwright` with Chromium installed (``playwright install``).
* The public TruePeopleSearch site can present CAPTCHAs.  Automated runs must
  be monitored so a human can solve the challenge when prompted.
* Respect the web site's terms of service.  The throttling options exposed by
  :class:`TruePeopleSearchProvider` default to generous pauses between requests
  to reduce load and lower the risk of automated blocking.
* The site only covers numbers in the United States; responses are tagged
  with the ``US`` country code.
"""
from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from ..models import (
    LookupRequest,
    LookupResponse,
    ReverseLookupResult,
    ReversePhoneSearch,
    StatusCode,
)
from ..numbers import format_phone_number
from .base import BrowserProvider, BrowserProviderConfig

LOGGER = logging.getLogger(__name__)


@dataclass
class TruePeopleSearchConfig(BrowserProviderConfig):
    """Extends :class:`BrowserProviderConfig` with provider specific options."""

    wait_for_captcha: bool = False
    enabled: bool = True


class TruePeopleSearchProvider(BrowserProvider):
    """Reverse phone lookup scraping the TruePeopleSearch result page.

    Parameters
    ----------
    config:
        Optional :class:`TruePeopleSearchConfig` controlling browser behaviour.
        The base options add throttling and headless/headful controls, while
        :attr:`TruePeopleSearchConfig.wait_for_captcha` can be toggled to pause
        execution once a CAPTCHA dialog is detected.
    """

    unique_identifier = "true_people_search"
    provider = "truepeoplesearch.com"
    COUNTRY_ISO = "US"
    NOT_FOUND_TEXT = "We could not find any records for that search criteria."

    def __init__(self, config: Optional[TruePeopleSearchConfig | Dict[str, Any]] = None, **options: Any) -> None:
        if isinstance(config, dict):
            resolved_config = TruePeopleSearchConfig(**config)
        elif config is None:
            resolved_config = TruePeopleSearchConfig(**options)
        else:
            resolved_config = config
        super().__init__(config=resolved_config)

    def is_enabled(self) -> bool:
        return bool(getattr(self.config, "enabled", True))

    def blocking_fetch_info(self, request: LookupRequest) -> LookupResponse:
        """Translate :meth:`search` results into a provider response."""

        if not request.number:
            return LookupResponse(status_code=StatusCode.NONE, provider_name=self.provider)

        query = ReversePhoneSearch(number=request.number)
        try:
            result = self.search(query)
        except Exception:  # playwright failures are reported as FAIL
            LOGGER.exception("Reverse lookup of %s on %s failed", request.number, self.provider)
            return LookupResponse(status_code=StatusCode.FAIL, number=request.number, provider_name=self.provider)

        if not result.found:
            LOGGER.debug("No reverse lookup match for %s: %s", request.number, result.notes.messages)
            return LookupResponse(status_code=StatusCode.NONE, number=request.number, provider_name=self.provider)

        return LookupResponse(
            status_code=StatusCode.SUCCESS,
            name=result.name,
            number=request.number,
            city=result.city,
            country=self.COUNTRY_ISO,
            address=result.address,
            provider_name=self.provider,
        )

    def search(self, query: ReversePhoneSearch) -> ReverseLookupResult:
        """Search TruePeopleSearch for the owner of a phone number."""

        query.require_number()
        result = ReverseLookupResult(provider=self.provider, query=query, found=False)

        with sync_playwright() as playwright:
            browser = playwright.chromium.launch(headless=self.config.headless)
            try:
                page = browser.new_page()
                page.set_default_navigation_timeout(self.config.navigation_timeout * 1000)
                target_url = self._build_query_url(query)
                page.goto(target_url, wait_until="domcontentloaded")
                self._apply_throttle()

                if self._is_not_found(page):
                    result.add_note("No records returned by TruePeopleSearch.")
                    return result

                if self._is_captcha_present(page):
                    if not getattr(self.config, "wait_for_captcha", False):
                        raise RuntimeError("TruePeopleSearch presented a CAPTCHA challenge")
                    result.add_note("Execution paused for manual CAPTCHA resolution.")
                    page.wait_for_event("dialog")

                summary = self._extract_summary(page)
                result.name = summary.get("name") or None
                result.city, result.region = self._split_location(summary.get("location"))
                result.address = summary.get("address") or None
                result.found = bool(result.name)
                if not result.found:
                    result.add_note("Result page did not expose a person summary.")
                return result
            finally:
                with contextlib.suppress(PlaywrightError):
                    browser.close()

    # ------------------------------------------------------------------
    # Helpers
    def _build_query_url(self, query: ReversePhoneSearch) -> str:
        number = format_phone_number(query.require_number(), self.COUNTRY_ISO)
        return f"https://www.truepeoplesearch.com/resultphone?{urlencode({'phoneno': number})}"

    @staticmethod
    def _split_location(location: Optional[str]) -> tuple[Optional[str], Optional[str]]:
        if not location:
            return None, None
        city, _, region = location.partition(",")
        return city.strip() or None, region.strip() or None

    def _is_not_found(self, page) -> bool:
        try:
            text = page.text_content("div.content-center div.row.pl-1.record-count div")
            if text and text.strip() == self.NOT_FOUND_TEXT:
                return True
        except PlaywrightTimeoutError:
            return False
        except PlaywrightError as exc:
            raise RuntimeError("Unable to determine search result state") from exc
        return False

    def _is_captcha_present(self, page) -> bool:
        with contextlib.suppress(PlaywrightError):
            return bool(page.query_selector("iframe[src*='captcha']"))
        return False

    def _extract_summary(self, page) -> Dict[str, str]:
        try:
            summary = page.evaluate(
                """
                () => {
                    const card = document.querySelector('div.card-summary');
                    if (!card) {
                        return {};
                    }
                    const text = (selector) => {
                        const node = card.querySelector(selector);
                        return node ? node.textContent.trim() : '';
                    };
                    return {
                        name: text('.h4'),
                        location: text('.content-value'),
                        address: text('.content-address'),
                    };
                }
                """
            )
            return summary or {}
        except PlaywrightError as exc:
            raise RuntimeError("Failed to extract the person summary from response") from exc
