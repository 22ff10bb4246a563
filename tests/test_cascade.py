"""Tests for the ranked resolution cascade."""
from __future__ import annotations

import threading
import time

import pytest

from caller_lookup.deadline import Deadline
from caller_lookup.directory import InMemoryDirectoryStore, LocalDirectoryClient
from caller_lookup.lookup_uri import decode_reference
from caller_lookup.models import (
    FAILED,
    NOT_FOUND,
    CachedContactInfo,
    IdentityRecord,
    LookupResponse,
    Resolution,
    ResolutionStatus,
    SourceType,
    StatusCode,
)
from caller_lookup.numbers import format_phone_number
from caller_lookup.orchestrator import ResolutionCascade
from caller_lookup.orchestrator.cascade import LocalDirectoryStep, LookupContext

ALICE = {"display_name": "Alice", "number": "+16502530000", "lookup": "alice-key"}


class RecordingStore:
    def __init__(self, rows=()) -> None:
        self._inner = InMemoryDirectoryStore(rows, country_iso="US")
        self.queries: list[str] = []

    def query(self, uri, projection):
        self.queries.append(uri)
        return self._inner.query(uri, projection)


class FakeProvider:
    unique_identifier = "fake"

    def __init__(self, response=None, *, enabled=True) -> None:
        self.response = response
        self.enabled = enabled
        self.enabled_calls = 0
        self.requests = []

    def is_enabled(self) -> bool:
        self.enabled_calls += 1
        return self.enabled

    def blocking_fetch_info(self, request):
        self.requests.append(request)
        return self.response


class BlockingProvider(FakeProvider):
    def __init__(self) -> None:
        super().__init__(LookupResponse(status_code=StatusCode.SUCCESS, name="Too Late"))
        self.release = threading.Event()

    def blocking_fetch_info(self, request):
        self.requests.append(request)
        self.release.wait(5)
        return self.response


class FakeCache:
    def __init__(self, entries=None) -> None:
        self.entries = dict(entries or {})

    def has_cached_contact(self, number):
        return number in self.entries

    def get_cached_contact(self, number):
        return self.entries.get(number)


class FakeCachedService:
    def __init__(self, cached=None) -> None:
        self.cached = cached
        self.calls = []

    def lookup_cached_contact_from_number(self, number):
        self.calls.append(number)
        return self.cached

    def is_business(self, source_type):
        return source_type == 2

    def can_report_as_invalid(self, source_type, object_id):
        return object_id is not None


def build_cascade(rows=(), *, provider=None, lookup_cache=None, cached_service=None):
    store = RecordingStore(rows)
    cascade = ResolutionCascade(
        LocalDirectoryClient(store),
        lookup_cache=lookup_cache,
        cached_lookup_service=cached_service,
        provider=provider,
        country_iso="US",
    )
    return cascade, store


@pytest.mark.parametrize("identifier", ["", None])
def test_empty_identifier_fails_without_touching_collaborators(identifier):
    provider = FakeProvider()
    service = FakeCachedService()
    cascade, store = build_cascade(provider=provider, cached_service=service)

    assert cascade.resolve(identifier, "US") is FAILED
    assert store.queries == []
    assert service.calls == []
    assert provider.enabled_calls == 0


def test_local_contact_short_circuits_everything():
    provider = FakeProvider(LookupResponse(status_code=StatusCode.SUCCESS, name="Someone Else"))
    service = FakeCachedService()
    cascade, _ = build_cascade([ALICE], provider=provider, cached_service=service)

    resolution = cascade.resolve("650-253-0000", "US")

    assert resolution.is_found
    assert resolution.record.name == "Alice"
    assert resolution.record.formatted_number == format_phone_number("650-253-0000", "US")
    assert resolution.record.source_type is SourceType.NONE
    assert provider.enabled_calls == 0
    assert service.calls == []


def test_directory_failure_aborts_the_cascade():
    class OfflineStore:
        def query(self, uri, projection):
            return None

    provider = FakeProvider(LookupResponse(status_code=StatusCode.SUCCESS, name="Pat"))
    cascade = ResolutionCascade(LocalDirectoryClient(OfflineStore()), provider=provider, country_iso="US")

    assert cascade.resolve("+16502530000") is FAILED
    assert provider.requests == []


def test_lookup_cache_hit_is_returned_unmodified_when_provider_disabled():
    cached = IdentityRecord(name="Cached Carl", formatted_number="cached")
    service = FakeCachedService(CachedContactInfo(IdentityRecord(name="Service Sam")))
    cascade, _ = build_cascade(
        provider=FakeProvider(enabled=False),
        lookup_cache=FakeCache({"+12025550143": cached}),
        cached_service=service,
    )

    resolution = cascade.resolve("+12025550143", "US")

    assert resolution.is_found
    assert resolution.record == cached
    assert resolution.record is not cached
    assert resolution.record.formatted_number == "cached"
    assert service.calls == []


def test_cached_service_record_is_returned_unmodified():
    info = IdentityRecord(name="Service Sam", source_type=SourceType.NONE)
    cascade, _ = build_cascade(
        provider=FakeProvider(enabled=False),
        cached_service=FakeCachedService(CachedContactInfo(info, source_type=2, object_id="obj-1")),
    )

    resolution = cascade.resolve("+12025550143", "US")

    assert resolution.record == info
    assert resolution.record is not info
    assert resolution.record.object_id is None


def test_bad_data_from_cached_service_fails():
    provider = FakeProvider(LookupResponse(status_code=StatusCode.SUCCESS, name="Pat"))
    cascade, _ = build_cascade(
        provider=provider,
        cached_service=FakeCachedService(CachedContactInfo(IdentityRecord(name="Bad", is_bad_data=True))),
    )

    assert cascade.resolve("+12025550143", "US") is FAILED
    assert provider.enabled_calls == 0


def test_provider_success_builds_external_record():
    provider = FakeProvider(
        LookupResponse(
            status_code=StatusCode.SUCCESS,
            name="Pat Caller",
            city="Springfield",
            country="US",
            provider_name="fake",
            spam_count=2,
        )
    )
    cascade, _ = build_cascade(provider=provider)

    resolution = cascade.resolve("650-253-0000", "US")

    assert resolution.is_found
    record = resolution.record
    assert record.name == "Pat Caller"
    assert record.source_type is SourceType.EXTERNAL_PROVIDER
    assert record.formatted_number == format_phone_number("650-253-0000", "US")
    assert record.normalized_number == "+16502530000"
    assert record.label == "Springfield, United States"
    assert record.provider_name == "fake"
    assert decode_reference(record.lookup_uri)["reverse_lookup"]["spam_count"] == 2
    assert [request.number for request in provider.requests] == ["+16502530000"]


def test_provider_failure_without_record_fails():
    cascade, _ = build_cascade(provider=FakeProvider(LookupResponse(status_code=StatusCode.FAIL)))

    assert cascade.resolve("+12025550143", "US") is FAILED


def test_provider_failure_flags_existing_record_as_bad_data():
    cached = IdentityRecord(name="Cached Carl")
    cascade, _ = build_cascade(
        provider=FakeProvider(LookupResponse(status_code=StatusCode.FAIL)),
        lookup_cache=FakeCache({"+12025550143": cached}),
    )

    assert cascade.resolve("+12025550143", "US") is FAILED
    assert not cached.is_bad_data


def test_provider_failure_leaves_cached_service_record_usable():
    info = IdentityRecord(name="Service Sam")
    service = FakeCachedService(CachedContactInfo(info))
    provider = FakeProvider(LookupResponse(status_code=StatusCode.FAIL))
    cascade, _ = build_cascade(provider=provider, cached_service=service)

    assert cascade.resolve("+12025550143", "US") is FAILED

    provider.response = LookupResponse(status_code=StatusCode.NONE)
    resolution = cascade.resolve("+12025550143", "US")

    assert resolution.is_found
    assert resolution.record.name == "Service Sam"
    assert not info.is_bad_data


def test_unknown_number_is_not_found_after_sip_retry():
    cascade, store = build_cascade(provider=FakeProvider(LookupResponse(status_code=StatusCode.NONE)))

    assert cascade.resolve("+12025550143", "US") is NOT_FOUND
    assert len(store.queries) == 2
    assert store.queries[-1].endswith("?sip=1")


def test_number_saved_as_internet_call_address_is_found():
    cascade, _ = build_cascade([{"display_name": "Bob", "sip_address": "2025550143", "lookup": "bob-key"}])

    resolution = cascade.resolve("2025550143", "US")

    assert resolution.is_found
    assert resolution.record.name == "Bob"


def test_sip_address_falls_back_to_its_user_part():
    cascade, store = build_cascade([ALICE])

    resolution = cascade.resolve("sip:6502530000@example.com", "US")

    assert resolution.is_found
    assert resolution.record.name == "Alice"
    assert store.queries[0].endswith("?sip=1")
    assert len(store.queries) == 2


def test_sip_address_with_non_numeric_user_part_is_not_retried():
    cascade, store = build_cascade([ALICE])

    assert cascade.resolve("sip:alice@example.com", "US") is NOT_FOUND
    assert len(store.queries) == 1


def test_plugin_ids_are_passed_to_the_directory():
    cascade, store = build_cascade()

    cascade.resolve_phone_number("pal-123", "US", True)

    assert store.queries[0].endswith("incallapi_contactid=true")


@pytest.mark.parametrize("expire", ["timeout", "cancel"])
def test_expired_deadline_skips_the_provider(expire):
    provider = FakeProvider(LookupResponse(status_code=StatusCode.SUCCESS, name="Pat"))
    cascade, _ = build_cascade(provider=provider)
    deadline = Deadline.after(0) if expire == "timeout" else Deadline.after(30)
    if expire == "cancel":
        deadline.cancel()

    resolution = cascade.resolve("+12025550143", "US", deadline=deadline)

    assert resolution is NOT_FOUND
    assert provider.requests == []


def test_slow_provider_is_abandoned_at_the_deadline():
    provider = BlockingProvider()
    cascade, _ = build_cascade(provider=provider)

    started = time.monotonic()
    try:
        resolution = cascade.resolve("+12025550143", "US", deadline=Deadline.after(0.05))
    finally:
        provider.release.set()

    assert resolution is NOT_FOUND
    assert time.monotonic() - started < 2


def test_default_steps_are_ordered():
    cascade, _ = build_cascade(lookup_cache=FakeCache())

    assert [step.name for step in cascade.steps] == [
        "local_directory",
        "lookup_cache",
        "cached_number_service",
        "external_provider",
    ]


def test_directory_match_without_a_record_fails():
    class RecordlessDirectory:
        def query_phone_number(self, number, *, is_plugin_id=False):
            return Resolution(ResolutionStatus.FOUND)

    context = LookupContext(number="+16502530000", country_iso="US", contact_number="+16502530000")

    assert LocalDirectoryStep(RecordlessDirectory()).try_resolve(context) is FAILED
    assert context.record is None
    assert not context.is_local_contact
