import logging

import pytest

from caller_lookup.directory import (
    PHONE_LOOKUP_PROJECTION,
    DirectoryQueryError,
    InMemoryDirectoryStore,
    LocalDirectoryClient,
    build_lookup_uri,
    parse_lookup_uri,
)


@pytest.fixture()
def directory() -> LocalDirectoryClient:
    store = InMemoryDirectoryStore(
        [
            {
                "display_name": "Alice",
                "number": "(650) 253-0000",
                "lookup": "alice-key",
                "photo_id": "5",
                "photo_uri": "content://com.android.contacts/display_photo/5",
                "sip_address": "alice@example.com",
            },
            {"display_name": "Plugin Pal", "lookup": "pal-key", "plugin_contact_id": "pal-123"},
        ],
        country_iso="US",
    )
    return LocalDirectoryClient(store)


class BrokenStore:
    def __init__(self, error=None) -> None:
        self.error = error

    def query(self, uri, projection):
        if self.error is not None:
            raise self.error
        return None


class PartialRowStore:
    def query(self, uri, projection):
        return [{"_id": 3, "display_name": "Partial"}]


def test_lookup_uri_round_trip():
    uri = build_lookup_uri("+1 650 253 0000", is_plugin_id=True)

    key, params = parse_lookup_uri(uri)

    assert key == "+1 650 253 0000"
    assert params == {"incallapi_contactid": "true"}
    assert parse_lookup_uri(build_lookup_uri("alice@example.com", sip=True))[1] == {"sip": "1"}


def test_query_phone_number_maps_first_row(directory):
    resolution = directory.query_phone_number("+16502530000")

    assert resolution.is_found
    record = resolution.record
    assert record.name == "Alice"
    assert record.number == "(650) 253-0000"
    assert record.normalized_number == "+16502530000"
    assert record.photo_id == 5
    assert record.photo_uri == "content://com.android.contacts/display_photo/5"
    assert record.lookup_key == "alice-key"
    assert record.lookup_uri == "content://com.android.contacts/contacts/lookup/alice-key/1"
    assert record.formatted_number is None


def test_query_phone_number_without_match_is_not_found(directory):
    assert directory.query_phone_number("+16502530001").is_not_found


def test_empty_identifiers_fail(directory):
    assert directory.query_phone_number("").is_failed
    assert directory.query_sip_address("").is_failed
    assert directory.lookup_contact_from_uri(None).is_failed


def test_query_sip_address(directory):
    resolution = directory.query_sip_address("ALICE@example.com")

    assert resolution.is_found
    assert resolution.record.name == "Alice"


def test_plugin_contact_ids_use_the_loose_schema(directory):
    resolution = directory.query_phone_number("pal-123", is_plugin_id=True)

    assert resolution.is_found
    assert resolution.record.name == "Plugin Pal"
    assert resolution.record.lookup_uri == "content://com.android.contacts/contacts/lookup/pal-key/2"
    assert directory.query_phone_number("pal-123").is_not_found


def test_missing_columns_are_logged(caplog):
    client = LocalDirectoryClient(PartialRowStore())

    with caplog.at_level(logging.ERROR):
        resolution = client.query_phone_number("pal-123", is_plugin_id=True)

    assert resolution.is_found
    assert resolution.record.lookup_uri is None
    assert "cannot find needed column" in caplog.text


@pytest.mark.parametrize("error", [None, DirectoryQueryError("offline"), OSError("disk")])
def test_unavailable_store_fails(error):
    client = LocalDirectoryClient(BrokenStore(error))

    assert client.query_phone_number("+16502530000").is_failed


def test_permission_denied_is_a_miss():
    store = InMemoryDirectoryStore([{"display_name": "Alice", "number": "+16502530000"}])
    client = LocalDirectoryClient(store, permission_check=lambda: False)

    assert client.query_phone_number("+16502530000").is_not_found


def test_store_returns_projected_rows():
    store = InMemoryDirectoryStore([{"display_name": "Alice", "number": "+16502530000", "sip_address": "a@b"}])

    rows = store.query(build_lookup_uri("+16502530000"), PHONE_LOOKUP_PROJECTION)

    assert len(store) == 1
    assert list(rows[0]) == list(PHONE_LOOKUP_PROJECTION)
    assert rows[0]["_id"] == 1
