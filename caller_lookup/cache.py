"""Cache tier consulted when the local directory has no match."""
from __future__ import annotations

import dataclasses
import json
import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol

from .models import CachedContactInfo, IdentityRecord

LOGGER = logging.getLogger(__name__)


class LookupCache(Protocol):
    """Fast process/disk cache keyed by the raw number."""

    def has_cached_contact(self, number: str) -> bool:  # pragma: no cover - runtime protocol
        ...

    def get_cached_contact(self, number: str) -> Optional[IdentityRecord]:  # pragma: no cover - runtime protocol
        ...


class CachedNumberLookupService(Protocol):
    """Pluggable service returning cached identities, possibly from a remote store."""

    def lookup_cached_contact_from_number(
        self, number: str
    ) -> Optional[CachedContactInfo]:  # pragma: no cover - runtime protocol
        ...

    def is_business(self, source_type: int) -> bool:  # pragma: no cover - runtime protocol
        ...

    def can_report_as_invalid(self, source_type: int, object_id: Optional[str]) -> bool:  # pragma: no cover
        ...


class NullCachedNumberLookupService:
    """Service used when no cached number lookup backend is configured."""

    def lookup_cached_contact_from_number(self, number: str) -> Optional[CachedContactInfo]:
        return None

    def is_business(self, source_type: int) -> bool:
        return False

    def can_report_as_invalid(self, source_type: int, object_id: Optional[str]) -> bool:
        return False


class JsonLookupCache:
    """In-process cache of identity records optionally persisted as JSON."""

    def __init__(self, path: Optional[str | Path] = None) -> None:
        self._path = Path(path) if path else None
        self._lock = threading.Lock()
        self._entries: Dict[str, IdentityRecord] = {}
        if self._path is not None and self._path.exists():
            self._load(self._path)

    def __len__(self) -> int:
        return len(self._entries)

    def has_cached_contact(self, number: str) -> bool:
        with self._lock:
            return number in self._entries

    def get_cached_contact(self, number: str) -> Optional[IdentityRecord]:
        with self._lock:
            record = self._entries.get(number)
        # Callers may stamp fields on the result; never hand out the stored instance.
        return dataclasses.replace(record) if record is not None else None

    def cache_contact(self, number: str, record: IdentityRecord) -> None:
        with self._lock:
            self._entries[number] = dataclasses.replace(record)
            self._save()

    def remove(self, number: str) -> None:
        with self._lock:
            if self._entries.pop(number, None) is not None:
                self._save()

    def _load(self, path: Path) -> None:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            LOGGER.warning("Ignoring unreadable lookup cache %s", path, exc_info=True)
            return
        for number, data in payload.items():
            self._entries[number] = IdentityRecord.from_dict(data)
        LOGGER.debug("Loaded %s cached contacts from %s", len(self._entries), path)

    def _save(self) -> None:
        if self._path is None:
            return
        payload = {number: record.to_dict() for number, record in self._entries.items()}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError:
            LOGGER.error("Unable to persist lookup cache to %s", self._path, exc_info=True)
