"""Contact info service answering "who is this" for call log entries."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..cache import CachedNumberLookupService, LookupCache, NullCachedNumberLookupService
from ..call_log import record_from_call_log_entry
from ..deadline import Deadline
from ..directory import LocalDirectoryClient
from ..lookup_uri import synthesize_placeholder
from ..models import CallLogEntry, IdentityRecord, LookupOutcome, Resolution, SourceType
from ..numbers import format_number_to_e164, format_phone_number, normalize_number
from ..providers.base import LookupProvider
from ..reconcile import CallLogReconciler, diff
from .cascade import ResolutionCascade

LOGGER = logging.getLogger(__name__)


class ContactInfoService:
    """Looks up contact information and keeps the call log annotations current."""

    def __init__(
        self,
        directory: LocalDirectoryClient,
        *,
        lookup_cache: Optional[LookupCache] = None,
        cached_lookup_service: Optional[CachedNumberLookupService] = None,
        provider: Optional[LookupProvider] = None,
        reconciler: Optional[CallLogReconciler] = None,
        country_iso: Optional[str] = None,
    ) -> None:
        self._country_iso = country_iso
        self._cached_lookup_service = cached_lookup_service or NullCachedNumberLookupService()
        self._reconciler = reconciler
        self._cascade = ResolutionCascade(
            directory,
            lookup_cache=lookup_cache,
            cached_lookup_service=self._cached_lookup_service,
            provider=provider,
            country_iso=country_iso,
        )

    @property
    def cascade(self) -> ResolutionCascade:
        return self._cascade

    def resolve(
        self,
        number: Optional[str],
        country_iso: Optional[str] = None,
        is_plugin_id: bool = False,
        *,
        deadline: Optional[Deadline] = None,
    ) -> Resolution:
        return self._cascade.resolve(number, country_iso, is_plugin_id, deadline=deadline)

    def lookup_number(
        self,
        number: Optional[str],
        country_iso: Optional[str] = None,
        is_plugin_id: bool = False,
        *,
        deadline: Optional[Deadline] = None,
    ) -> Optional[IdentityRecord]:
        """Return the contact information for ``number``.

        A number matching no source yields a synthesized placeholder holding
        only the number and its formatted forms. ``None`` means the lookup
        failed and should be retried later; nothing should be persisted.
        """

        resolution = self.resolve(number, country_iso, is_plugin_id, deadline=deadline)
        if resolution.is_failed:
            LOGGER.debug("Lookup of %s failed", number)
            return None
        if resolution.is_found:
            return resolution.record
        if not number:
            return None
        return self.synthesize_placeholder_record(number, country_iso)

    def synthesize_placeholder_record(self, number: str, country_iso: Optional[str] = None) -> IdentityRecord:
        country = country_iso or self._country_iso
        formatted_number = format_phone_number(number, country)
        return IdentityRecord(
            number=number,
            formatted_number=formatted_number,
            normalized_number=format_number_to_e164(number, country) or normalize_number(number),
            lookup_uri=synthesize_placeholder(formatted_number),
            is_synthetic_placeholder=True,
        )

    def update_call_log_contact_info(
        self,
        number: str,
        country_iso: Optional[str],
        updated: IdentityRecord,
        previous: Optional[IdentityRecord],
    ) -> int:
        """Persist what changed between ``updated`` and the call log's ``previous``."""

        if self._reconciler is None:
            LOGGER.debug("No call log store configured, not persisting %s", number)
            return 0
        return self._reconciler.update(number, country_iso, updated, previous)

    def annotate_entries(
        self,
        entries: Iterable[CallLogEntry],
        *,
        timeout_seconds: Optional[float] = None,
    ) -> List[LookupOutcome]:
        """Look up every call log entry and persist what changed.

        Each ``(number, country)`` pair is looked up and written once per batch;
        repeated rows report an empty patch.
        """

        outcomes: List[LookupOutcome] = []
        resolved: Dict[Tuple[str, Optional[str]], Optional[IdentityRecord]] = {}
        reconciled: Set[Tuple[str, Optional[str]]] = set()

        for entry in entries:
            stored = record_from_call_log_entry(entry)
            previous = stored if entry.has_cached_info() else None
            key = (entry.number, entry.country_iso)
            if key not in resolved:
                deadline = Deadline.after(timeout_seconds) if timeout_seconds is not None else None
                resolved[key] = self.lookup_number(
                    entry.number, entry.country_iso, stored.is_plugin_contact_id, deadline=deadline
                )
            updated = resolved[key]

            if updated is None:
                outcomes.append(LookupOutcome(number=entry.number, country_iso=entry.country_iso, status="failed"))
                continue

            if key in reconciled:
                # The first write already patched every row matching this pair.
                patch = {}
                rows_updated = 0
            else:
                patch = diff(updated, previous)
                rows_updated = self.update_call_log_contact_info(entry.number, entry.country_iso, updated, previous)
                reconciled.add(key)
            outcomes.append(
                LookupOutcome(
                    number=entry.number,
                    country_iso=entry.country_iso,
                    status="not_found" if updated.is_synthetic_placeholder else "found",
                    name=updated.name,
                    formatted_number=updated.formatted_number,
                    source=_describe_source(updated),
                    patched_columns=sorted(patch),
                    rows_updated=rows_updated,
                )
            )
        return outcomes

    def is_business(self, source_type: int) -> bool:
        return self._cached_lookup_service.is_business(source_type)

    def can_report_as_invalid(self, source_type: int, object_id: Optional[str]) -> bool:
        """Whether caller ids from this source may be reported as invalid."""

        return self._cached_lookup_service.can_report_as_invalid(source_type, object_id)


def _describe_source(record: IdentityRecord) -> str:
    if record.is_synthetic_placeholder:
        return "placeholder"
    if record.source_type is SourceType.EXTERNAL_PROVIDER:
        return record.provider_name or "provider"
    return "local"
