"""Unit tests for the TruePeopleSearch reverse lookup provider."""
from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import pytest

pytest.importorskip("playwright.sync_api")

from caller_lookup.models import LookupRequest, ReverseLookupResult, ReversePhoneSearch, StatusCode
from caller_lookup.numbers import format_phone_number
from caller_lookup.providers.true_people_search import TruePeopleSearchConfig, TruePeopleSearchProvider


@pytest.fixture
def provider() -> TruePeopleSearchProvider:
    return TruePeopleSearchProvider(throttle_seconds=0)


def test_fetch_returns_success_when_owner_found(provider: TruePeopleSearchProvider) -> None:
    queries: list[ReversePhoneSearch] = []

    def fake_search(query: ReversePhoneSearch) -> ReverseLookupResult:
        queries.append(query)
        return ReverseLookupResult(
            provider=provider.provider,
            query=query,
            found=True,
            name="Pat Caller",
            city="Springfield",
            region="IL",
            address="1 Main St",
        )

    provider.search = fake_search  # type: ignore[assignment]

    response = provider.blocking_fetch_info(LookupRequest(number="+16502530000"))

    assert response.status_code is StatusCode.SUCCESS
    assert response.name == "Pat Caller"
    assert response.city == "Springfield"
    assert response.country == "US"
    assert response.address == "1 Main St"
    assert response.provider_name == "truepeoplesearch.com"
    assert queries and queries[0].number == "+16502530000"


def test_fetch_skips_search_when_number_missing(provider: TruePeopleSearchProvider) -> None:
    def unexpected_search(_query: ReversePhoneSearch) -> ReverseLookupResult:  # pragma: no cover - guard
        raise AssertionError("search should not be invoked when the number is missing")

    provider.search = unexpected_search  # type: ignore[assignment]

    response = provider.blocking_fetch_info(LookupRequest(number=None))

    assert response.status_code is StatusCode.NONE


def test_fetch_handles_no_results(provider: TruePeopleSearchProvider) -> None:
    def fake_search(query: ReversePhoneSearch) -> ReverseLookupResult:
        result = ReverseLookupResult(provider=provider.provider, query=query, found=False)
        result.add_note("No records returned by TruePeopleSearch.")
        return result

    provider.search = fake_search  # type: ignore[assignment]

    response = provider.blocking_fetch_info(LookupRequest(number="+16502530000"))

    assert response.status_code is StatusCode.NONE
    assert response.name is None


def test_fetch_reports_failures(provider: TruePeopleSearchProvider) -> None:
    def failing_search(_query: ReversePhoneSearch) -> ReverseLookupResult:
        raise RuntimeError("TruePeopleSearch presented a CAPTCHA challenge")

    provider.search = failing_search  # type: ignore[assignment]

    response = provider.blocking_fetch_info(LookupRequest(number="+16502530000"))

    assert response.status_code is StatusCode.FAIL
    assert response.number == "+16502530000"


def test_config_accepts_mapping_and_disable_flag() -> None:
    provider = TruePeopleSearchProvider({"headless": False, "enabled": False, "wait_for_captcha": True})

    assert isinstance(provider.config, TruePeopleSearchConfig)
    assert provider.config.headless is False
    assert provider.config.wait_for_captcha is True
    assert not provider.is_enabled()


def test_query_url_uses_formatted_number(provider: TruePeopleSearchProvider) -> None:
    url = provider._build_query_url(ReversePhoneSearch(number=" +16502530000 "))

    parts = urlsplit(url)
    assert parts.netloc == "www.truepeoplesearch.com"
    assert parse_qs(parts.query) == {"phoneno": [format_phone_number("+16502530000", "US")]}


def test_split_location() -> None:
    assert TruePeopleSearchProvider._split_location("Springfield, IL") == ("Springfield", "IL")
    assert TruePeopleSearchProvider._split_location("Springfield") == ("Springfield", None)
    assert TruePeopleSearchProvider._split_location(None) == (None, None)


def test_search_requires_number(provider: TruePeopleSearchProvider) -> None:
    with pytest.raises(ValueError):
        provider.search(ReversePhoneSearch(number=" "))
