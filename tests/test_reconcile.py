import dataclasses
import logging

import pytest

from caller_lookup.models import IdentityRecord
from caller_lookup.reconcile import CACHED_COLUMNS, CallLogReconciler, CallLogWriteError, diff


@pytest.fixture()
def alice() -> IdentityRecord:
    return IdentityRecord(
        name="Alice",
        number_type=2,
        label="Mobile",
        number="+16502530000",
        normalized_number="+16502530000",
        formatted_number="(650) 253-0000",
        lookup_uri="content://com.android.contacts/contacts/lookup/alice-key/1",
        photo_id=0,
        photo_uri="https://example.com/alice.jpg",
    )


class RecordingCallLogStore:
    def __init__(self, error=None) -> None:
        self.error = error
        self.updates = []

    def update(self, patch, number, country_iso):
        self.updates.append((patch, number, country_iso))
        if self.error is not None:
            raise self.error
        return 1


def test_diff_without_previous_writes_every_column(alice):
    patch = diff(alice, None)

    assert set(patch) == set(CACHED_COLUMNS)
    assert patch["matched_number"] == "+16502530000"
    assert patch["photo_uri"] is None


def test_diff_of_identical_records_is_empty(alice):
    assert diff(alice, dataclasses.replace(alice)) == {}


def test_only_changed_photo_id_is_written(alice):
    updated = dataclasses.replace(alice, photo_id=42)

    assert diff(updated, alice) == {"photo_id": 42}


def test_empty_normalized_number_never_overwrites(alice):
    updated = dataclasses.replace(alice, normalized_number=None)
    previous = dataclasses.replace(alice, normalized_number="+16502530001")

    assert diff(updated, alice) == {}
    assert diff(alice, previous) == {"normalized_number": "+16502530000"}


def test_contacts_photo_uri_changes_are_written(alice):
    updated = dataclasses.replace(alice, photo_uri="content://com.android.contacts/display_photo/9")

    assert diff(updated, alice) == {"photo_uri": "content://com.android.contacts/display_photo/9"}


def test_reconciler_writes_patch(alice):
    store = RecordingCallLogStore()
    reconciler = CallLogReconciler(store)

    rows = reconciler.update("+16502530000", "US", dataclasses.replace(alice, name="Alice Smith"), alice)

    assert rows == 1
    assert store.updates == [({"name": "Alice Smith"}, "+16502530000", "US")]


def test_reconciler_skips_empty_patch(alice):
    store = RecordingCallLogStore()

    assert CallLogReconciler(store).update("+16502530000", "US", alice, alice) == 0
    assert store.updates == []


@pytest.mark.parametrize("error", [CallLogWriteError("locked"), OSError("disk full")])
def test_reconciler_swallows_write_errors(alice, caplog, error):
    store = RecordingCallLogStore(error)

    with caplog.at_level(logging.ERROR):
        rows = CallLogReconciler(store).update("+16502530000", None, alice, None)

    assert rows == 0
    assert len(store.updates) == 1
    assert "Unable to update contact info" in caplog.text


def test_reconciler_respects_permission_check(alice):
    store = RecordingCallLogStore()
    reconciler = CallLogReconciler(store, permission_check=lambda: False)

    assert reconciler.update("+16502530000", "US", alice, None) == 0
    assert store.updates == []
