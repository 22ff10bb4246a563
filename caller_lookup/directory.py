"""Client for the local contacts directory store."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence
from urllib.parse import parse_qs, quote, unquote, urlsplit

from .lookup_uri import build_contact_lookup_uri, parse_uri_or_none
from .models import FAILED, NOT_FOUND, IdentityRecord, Resolution
from .numbers import format_number_to_e164, is_global_phone_number, normalize_number

LOGGER = logging.getLogger(__name__)

PHONE_LOOKUP_URI = "content://com.android.contacts/phone_lookup_enterprise"
SIP_ADDRESS_PARAM = "sip"
PLUGIN_CONTACT_ID_PARAM = "incallapi_contactid"


class PhoneLookupColumns:
    ID = "_id"
    DISPLAY_NAME = "display_name"
    TYPE = "type"
    LABEL = "label"
    NUMBER = "number"
    NORMALIZED_NUMBER = "normalized_number"
    PHOTO_ID = "photo_id"
    LOOKUP_KEY = "lookup"
    PHOTO_URI = "photo_uri"


PHONE_LOOKUP_PROJECTION = (
    PhoneLookupColumns.ID,
    PhoneLookupColumns.DISPLAY_NAME,
    PhoneLookupColumns.TYPE,
    PhoneLookupColumns.LABEL,
    PhoneLookupColumns.NUMBER,
    PhoneLookupColumns.NORMALIZED_NUMBER,
    PhoneLookupColumns.PHOTO_ID,
    PhoneLookupColumns.LOOKUP_KEY,
    PhoneLookupColumns.PHOTO_URI,
)


class DirectoryQueryError(RuntimeError):
    """Raised by directory stores when a query could not be executed."""


class DirectoryStore(Protocol):
    """Protocol for the contacts store queried by lookup URI."""

    def query(
        self, uri: str, projection: Sequence[str]
    ) -> Optional[Sequence[Mapping[str, Any]]]:  # pragma: no cover - runtime protocol
        """Return matching rows, or ``None`` when the store is unavailable."""


def build_lookup_uri(key: str, *, sip: bool = False, is_plugin_id: bool = False) -> str:
    """Construct the phone lookup URI for a number or SIP address."""

    uri = f"{PHONE_LOOKUP_URI}/{quote(key, safe='')}"
    if sip:
        return f"{uri}?{SIP_ADDRESS_PARAM}=1"
    return f"{uri}?{PLUGIN_CONTACT_ID_PARAM}={'true' if is_plugin_id else 'false'}"


def parse_lookup_uri(uri: str) -> tuple[str, Dict[str, str]]:
    """Split a lookup URI into its decoded key and query parameters."""

    parts = urlsplit(uri)
    segments = [segment for segment in parts.path.split("/") if segment]
    key = unquote(segments[-1]) if len(segments) > 1 else ""
    params = {name: values[-1] for name, values in parse_qs(parts.query).items()}
    return key, params


def _as_int(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError):
        LOGGER.warning("Ignoring non-numeric column value %r", value)
        return 0


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


class LocalDirectoryClient:
    """Queries the directory store and maps the first matching row."""

    def __init__(
        self,
        store: DirectoryStore,
        *,
        permission_check: Optional[Callable[[], bool]] = None,
    ) -> None:
        self._store = store
        self._permission_check = permission_check

    def query_by_key(self, key: str, *, sip: bool = False, is_plugin_id: bool = False) -> Resolution:
        if not key:
            return FAILED
        return self.lookup_contact_from_uri(build_lookup_uri(key, sip=sip, is_plugin_id=is_plugin_id))

    def query_phone_number(self, number: str, *, is_plugin_id: bool = False) -> Resolution:
        return self.query_by_key(number, is_plugin_id=is_plugin_id)

    def query_sip_address(self, address: str) -> Resolution:
        """Look up a SIP address; the cascade never goes further than this."""

        return self.query_by_key(address, sip=True)

    def lookup_contact_from_uri(self, uri: Optional[str]) -> Resolution:
        """Run one store query.

        Returns ``FAILED`` if the store could not be queried, ``NOT_FOUND`` if
        it returned no rows, and otherwise the record mapped from the first
        row. ``formatted_number`` is always left unset.
        """

        if uri is None:
            return FAILED
        if self._permission_check is not None and not self._permission_check():
            LOGGER.debug("Directory access not permitted, treating %s as a miss", uri)
            return NOT_FOUND

        try:
            rows = self._store.query(uri, PHONE_LOOKUP_PROJECTION)
        except (DirectoryQueryError, OSError):
            LOGGER.warning("Directory query failed for %s", uri, exc_info=True)
            return FAILED
        if rows is None:
            LOGGER.warning("Directory store unavailable for %s", uri)
            return FAILED
        if not rows:
            return NOT_FOUND

        data, _ = parse_lookup_uri(uri)
        return Resolution.found(self._row_to_record(rows[0], data))

    def _row_to_record(self, row: Mapping[str, Any], data: str) -> IdentityRecord:
        record = IdentityRecord()
        contact_id = _as_int(row.get(PhoneLookupColumns.ID))
        record.number_type = _as_int(row.get(PhoneLookupColumns.TYPE))
        record.label = _as_text(row.get(PhoneLookupColumns.LABEL))
        record.number = _as_text(row.get(PhoneLookupColumns.NUMBER))
        record.normalized_number = _as_text(row.get(PhoneLookupColumns.NORMALIZED_NUMBER))
        record.formatted_number = None

        lookup_key: Optional[str] = None
        if is_global_phone_number(data):
            lookup_key = _as_text(row.get(PhoneLookupColumns.LOOKUP_KEY))
            record.name = _as_text(row.get(PhoneLookupColumns.DISPLAY_NAME))
            record.photo_id = _as_int(row.get(PhoneLookupColumns.PHOTO_ID))
            record.photo_uri = parse_uri_or_none(row.get(PhoneLookupColumns.PHOTO_URI))
        else:
            # Plugin-scoped identifiers come back from stores with a looser schema.
            try:
                lookup_key = _as_text(row["lookup"])
                record.name = _as_text(row["display_name"])
                record.photo_id = _as_int(row["photo_id"])
                record.photo_uri = parse_uri_or_none(row["photo_uri"])
            except KeyError:
                LOGGER.error("Contact information invalid, cannot find needed column(s)", exc_info=True)

        record.lookup_key = lookup_key
        record.lookup_uri = build_contact_lookup_uri(contact_id, lookup_key)
        return record


class InMemoryDirectoryStore:
    """Directory store backed by a list of contact rows.

    Rows use the :data:`PHONE_LOOKUP_PROJECTION` column names plus the optional
    ``sip_address`` and ``plugin_contact_id`` columns used to match SIP and
    plugin-scoped lookups.
    """

    def __init__(self, rows: Iterable[Mapping[str, Any]] = (), *, country_iso: Optional[str] = None) -> None:
        self._country_iso = country_iso
        self._rows: List[Dict[str, Any]] = []
        for index, row in enumerate(rows, start=1):
            entry = {key: value for key, value in row.items() if value is not None}
            entry.setdefault(PhoneLookupColumns.ID, index)
            number = entry.get(PhoneLookupColumns.NUMBER)
            if number and not entry.get(PhoneLookupColumns.NORMALIZED_NUMBER):
                normalized = format_number_to_e164(str(number), country_iso)
                if normalized:
                    entry[PhoneLookupColumns.NORMALIZED_NUMBER] = normalized
            self._rows.append(entry)

    def __len__(self) -> int:
        return len(self._rows)

    def query(self, uri: str, projection: Sequence[str]) -> List[Dict[str, Any]]:
        key, params = parse_lookup_uri(uri)
        if not key:
            return []

        if params.get(SIP_ADDRESS_PARAM) == "1":
            matches = [row for row in self._rows if str(row.get("sip_address", "")).lower() == key.lower()]
        elif params.get(PLUGIN_CONTACT_ID_PARAM) == "true":
            matches = [row for row in self._rows if str(row.get("plugin_contact_id", "")) == key]
        else:
            matches = [row for row in self._rows if self._matches_number(row, key)]

        return [{column: row.get(column) for column in projection} for row in matches]

    def _matches_number(self, row: Mapping[str, Any], key: str) -> bool:
        if row.get(PhoneLookupColumns.NORMALIZED_NUMBER) == key:
            return True
        number = row.get(PhoneLookupColumns.NUMBER)
        if not number:
            return False
        return normalize_number(str(number)) == normalize_number(key)
