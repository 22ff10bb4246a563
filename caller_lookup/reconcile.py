"""Field-level reconciliation of resolved identities against the call log."""
from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from .lookup_uri import null_for_non_contacts_uri, parse_uri_or_none
from .models import IdentityRecord, PersistedPatch

LOGGER = logging.getLogger(__name__)


class CallLogColumns:
    NUMBER = "number"
    COUNTRY_ISO = "countryiso"
    NAME = "name"
    NUMBER_TYPE = "numbertype"
    LABEL = "numberlabel"
    LOOKUP_URI = "lookup_uri"
    MATCHED_NUMBER = "matched_number"
    NORMALIZED_NUMBER = "normalized_number"
    PHOTO_ID = "photo_id"
    PHOTO_URI = "photo_uri"
    FORMATTED_NUMBER = "formatted_number"
    ACCOUNT_COMPONENT = "subscription_component_name"
    ACCOUNT_ID = "subscription_id"
    PLUGIN_PACKAGE = "plugin_package_name"


CACHED_COLUMNS = (
    CallLogColumns.NAME,
    CallLogColumns.NUMBER_TYPE,
    CallLogColumns.LABEL,
    CallLogColumns.LOOKUP_URI,
    CallLogColumns.MATCHED_NUMBER,
    CallLogColumns.NORMALIZED_NUMBER,
    CallLogColumns.PHOTO_ID,
    CallLogColumns.PHOTO_URI,
    CallLogColumns.FORMATTED_NUMBER,
)


class CallLogWriteError(RuntimeError):
    """Raised by call log stores when an update cannot be written."""


class CallLogStore(Protocol):
    """Persistence collaborator holding the call-history rows."""

    def update(
        self, patch: PersistedPatch, number: str, country_iso: Optional[str]
    ) -> int:  # pragma: no cover - runtime protocol
        """Apply ``patch`` to rows matching ``number`` and ``country_iso``.

        A ``country_iso`` of ``None`` selects rows whose country is null.
        Returns the number of rows updated.
        """


def diff(updated: IdentityRecord, previous: Optional[IdentityRecord]) -> PersistedPatch:
    """Return the columns of ``updated`` that need writing over ``previous``.

    With no previous record every column is written. Otherwise a column is
    included only when its value changed; an empty normalized number never
    replaces a known one, and photo URIs outside the directory store are
    treated as absent.
    """

    photo_uri = null_for_non_contacts_uri(updated.photo_uri)
    lookup_uri = parse_uri_or_none(updated.lookup_uri)

    if previous is None:
        return {
            CallLogColumns.NAME: updated.name,
            CallLogColumns.NUMBER_TYPE: updated.number_type,
            CallLogColumns.LABEL: updated.label,
            CallLogColumns.LOOKUP_URI: lookup_uri,
            CallLogColumns.MATCHED_NUMBER: updated.number,
            CallLogColumns.NORMALIZED_NUMBER: updated.normalized_number,
            CallLogColumns.PHOTO_ID: updated.photo_id,
            CallLogColumns.PHOTO_URI: photo_uri,
            CallLogColumns.FORMATTED_NUMBER: updated.formatted_number,
        }

    patch: PersistedPatch = {}
    if updated.name != previous.name:
        patch[CallLogColumns.NAME] = updated.name
    if updated.number_type != previous.number_type:
        patch[CallLogColumns.NUMBER_TYPE] = updated.number_type
    if updated.label != previous.label:
        patch[CallLogColumns.LABEL] = updated.label
    if lookup_uri != parse_uri_or_none(previous.lookup_uri):
        patch[CallLogColumns.LOOKUP_URI] = lookup_uri
    if updated.normalized_number and updated.normalized_number != previous.normalized_number:
        patch[CallLogColumns.NORMALIZED_NUMBER] = updated.normalized_number
    if updated.number != previous.number:
        patch[CallLogColumns.MATCHED_NUMBER] = updated.number
    if updated.photo_id != previous.photo_id:
        patch[CallLogColumns.PHOTO_ID] = updated.photo_id
    if photo_uri != null_for_non_contacts_uri(previous.photo_uri):
        patch[CallLogColumns.PHOTO_URI] = photo_uri
    if updated.formatted_number != previous.formatted_number:
        patch[CallLogColumns.FORMATTED_NUMBER] = updated.formatted_number
    return patch


class CallLogReconciler:
    """Writes the minimal patch for a call log row, best effort."""

    def __init__(
        self,
        store: CallLogStore,
        *,
        permission_check: Optional[Callable[[], bool]] = None,
    ) -> None:
        self._store = store
        self._permission_check = permission_check

    def update(
        self,
        number: str,
        country_iso: Optional[str],
        updated: IdentityRecord,
        previous: Optional[IdentityRecord],
    ) -> int:
        """Store the differences between ``updated`` and ``previous``.

        Returns the number of rows written; 0 when nothing changed, writing is
        not permitted, or the store rejected the update.
        """

        if self._permission_check is not None and not self._permission_check():
            LOGGER.debug("Call log write not permitted, skipping %s", number)
            return 0

        patch = diff(updated, previous)
        if not patch:
            return 0

        try:
            return self._store.update(patch, number, country_iso)
        except (CallLogWriteError, OSError):
            LOGGER.error("Unable to update contact info in call log for %s", number, exc_info=True)
            return 0
