"""Call log rows held in a :class:`pandas.DataFrame`."""
from __future__ import annotations

import logging
from typing import Any, Iterator, Optional

import pandas as pd

from .lookup_uri import null_for_non_contacts_uri, parse_uri_or_none
from .models import CallLogEntry, IdentityRecord, PersistedPatch
from .numbers import is_valid_number
from .reconcile import CallLogColumns, CallLogWriteError

LOGGER = logging.getLogger(__name__)


def is_plugin_contact_id(
    account: Optional[str],
    number: Optional[str],
    country_iso: Optional[str],
    plugin_name: Optional[str],
) -> bool:
    """Return ``True`` when a call log number is really a plugin contact id."""

    return account is None and not is_valid_number(number, country_iso) and bool(plugin_name)


def record_from_call_log_entry(entry: CallLogEntry) -> IdentityRecord:
    """Return the identity record currently cached on a call log row."""

    record = IdentityRecord(
        lookup_uri=parse_uri_or_none(entry.lookup_uri),
        name=entry.name,
        number_type=entry.number_type or 0,
        label=entry.label,
        number=entry.matched_number if entry.matched_number is not None else entry.number,
        normalized_number=entry.normalized_number,
        photo_id=entry.photo_id or 0,
        photo_uri=null_for_non_contacts_uri(entry.photo_uri),
        formatted_number=entry.formatted_number,
    )
    account = entry.account_component if entry.account_component and entry.account_id else None
    record.is_plugin_contact_id = is_plugin_contact_id(account, record.number, entry.country_iso, entry.plugin_package)
    return record


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) and pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def _clean_int(value: Any) -> Optional[int]:
    text = _clean_text(value)
    if text is None:
        return None
    try:
        return int(float(text))
    except ValueError:
        LOGGER.warning("Ignoring non-numeric call log value %r", value)
        return None


class FrameCallLogStore:
    """Call log persistence over an in-memory DataFrame."""

    def __init__(self, frame: pd.DataFrame) -> None:
        if CallLogColumns.NUMBER not in frame.columns:
            raise ValueError(f"Call log is missing the required '{CallLogColumns.NUMBER}' column")
        self._frame = frame.astype(object).where(frame.notna(), None)
        if CallLogColumns.COUNTRY_ISO not in self._frame.columns:
            self._frame[CallLogColumns.COUNTRY_ISO] = None

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame

    def entries(self) -> Iterator[CallLogEntry]:
        for _, row in self._frame.iterrows():
            number = _clean_text(row.get(CallLogColumns.NUMBER))
            if number is None:
                continue
            yield CallLogEntry(
                number=number,
                country_iso=_clean_text(row.get(CallLogColumns.COUNTRY_ISO)),
                name=_clean_text(row.get(CallLogColumns.NAME)),
                number_type=_clean_int(row.get(CallLogColumns.NUMBER_TYPE)),
                label=_clean_text(row.get(CallLogColumns.LABEL)),
                lookup_uri=_clean_text(row.get(CallLogColumns.LOOKUP_URI)),
                matched_number=_clean_text(row.get(CallLogColumns.MATCHED_NUMBER)),
                normalized_number=_clean_text(row.get(CallLogColumns.NORMALIZED_NUMBER)),
                photo_id=_clean_int(row.get(CallLogColumns.PHOTO_ID)),
                photo_uri=_clean_text(row.get(CallLogColumns.PHOTO_URI)),
                formatted_number=_clean_text(row.get(CallLogColumns.FORMATTED_NUMBER)),
                account_component=_clean_text(row.get(CallLogColumns.ACCOUNT_COMPONENT)),
                account_id=_clean_text(row.get(CallLogColumns.ACCOUNT_ID)),
                plugin_package=_clean_text(row.get(CallLogColumns.PLUGIN_PACKAGE)),
            )

    def update(self, patch: PersistedPatch, number: str, country_iso: Optional[str]) -> int:
        numbers = self._frame[CallLogColumns.NUMBER].map(_clean_text)
        countries = self._frame[CallLogColumns.COUNTRY_ISO].map(_clean_text)
        mask = numbers == number
        if country_iso is None:
            mask &= countries.isna()
        else:
            mask &= countries == country_iso

        affected = int(mask.sum())
        if not affected:
            return 0
        try:
            for column, value in patch.items():
                if column not in self._frame.columns:
                    self._frame[column] = None
                self._frame.loc[mask, column] = value
        except (TypeError, ValueError) as exc:
            raise CallLogWriteError(f"Unable to write {sorted(patch)} for {number}") from exc
        return affected
