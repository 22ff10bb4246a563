"""Unified data models for the caller lookup cascade, providers, and call log."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional


PersistedPatch = Dict[str, Any]


class SourceType(IntEnum):
    """Where a resolved identity came from."""

    NONE = 0
    EXTERNAL_PROVIDER = 1


# --- Identity Models ---

@dataclass
class IdentityRecord:
    """Resolved (or synthesized) identity for a single number or SIP address."""

    name: Optional[str] = None
    number_type: int = 0
    label: Optional[str] = None
    number: Optional[str] = None
    normalized_number: Optional[str] = None
    formatted_number: Optional[str] = None
    lookup_uri: Optional[str] = None
    lookup_key: Optional[str] = None
    photo_id: int = 0
    photo_uri: Optional[str] = None
    photo_url: Optional[str] = None
    source_type: SourceType = SourceType.NONE
    provider_name: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    address: Optional[str] = None
    is_spam: bool = False
    spam_count: int = 0
    attribution_logo: Optional[str] = None
    is_bad_data: bool = False
    is_synthetic_placeholder: bool = False
    is_plugin_contact_id: bool = False
    object_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["source_type"] = int(self.source_type)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IdentityRecord":
        """Build a record from a serialised mapping, ignoring unknown keys."""

        known = {item.name for item in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        if "source_type" in values:
            values["source_type"] = SourceType(int(values["source_type"] or 0))
        return cls(**values)


class ResolutionStatus(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class Resolution:
    """Outcome of a single lookup attempt.

    ``FAILED`` means the attempt should be retried later and nothing should be
    persisted; ``NOT_FOUND`` means every source answered but none knew the
    identifier.
    """

    status: ResolutionStatus
    record: Optional[IdentityRecord] = None

    @classmethod
    def found(cls, record: IdentityRecord) -> "Resolution":
        return cls(ResolutionStatus.FOUND, record)

    @property
    def is_found(self) -> bool:
        return self.status is ResolutionStatus.FOUND

    @property
    def is_not_found(self) -> bool:
        return self.status is ResolutionStatus.NOT_FOUND

    @property
    def is_failed(self) -> bool:
        return self.status is ResolutionStatus.FAILED


NOT_FOUND = Resolution(ResolutionStatus.NOT_FOUND)
FAILED = Resolution(ResolutionStatus.FAILED)


@dataclass
class CachedContactInfo:
    """Record returned by a cached number lookup service."""

    contact_info: IdentityRecord
    source_type: int = 0
    object_id: Optional[str] = None


# --- External Provider Models ---

class StatusCode(Enum):
    SUCCESS = "success"
    FAIL = "fail"
    NONE = "none"


class RequestOrigin(Enum):
    INCOMING_CALL = "incoming_call"
    OUTGOING_CALL = "outgoing_call"
    OTHER = "other"


@dataclass(slots=True)
class LookupRequest:
    """Query payload sent to an external lookup provider."""

    number: Optional[str]
    origin: RequestOrigin = RequestOrigin.OTHER


@dataclass
class LookupResponse:
    """Normalized response returned by external lookup providers."""

    status_code: StatusCode = StatusCode.NONE
    name: Optional[str] = None
    number: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    address: Optional[str] = None
    photo_url: Optional[str] = None
    is_spam: bool = False
    spam_count: int = 0
    provider_name: Optional[str] = None
    attribution_logo: Optional[str] = None


@dataclass(slots=True)
class ReversePhoneSearch:
    """Query payload expected by browser based reverse phone lookups."""

    number: Optional[str] = None

    def require_number(self) -> str:
        """Return the stripped number or raise if it is missing."""

        if not self.number or not self.number.strip():
            raise ValueError("ReversePhoneSearch queries require a phone number.")
        return self.number.strip()


@dataclass
class ReverseLookupNotes:
    """Diagnostic information collected during a lookup session."""

    messages: List[str] = field(default_factory=list)

    def add(self, message: str) -> None:
        self.messages.append(message)


@dataclass
class ReverseLookupResult:
    """Normalized page content scraped for a reverse phone search."""

    provider: str
    query: ReversePhoneSearch
    found: bool
    name: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    address: Optional[str] = None
    notes: ReverseLookupNotes = field(default_factory=ReverseLookupNotes)

    def add_note(self, message: str) -> None:
        self.notes.add(message)


# --- Call Log Models ---

@dataclass(slots=True)
class CallLogEntry:
    """A single call-history row together with its cached identity columns."""

    number: str
    country_iso: Optional[str] = None
    name: Optional[str] = None
    number_type: Optional[int] = None
    label: Optional[str] = None
    lookup_uri: Optional[str] = None
    matched_number: Optional[str] = None
    normalized_number: Optional[str] = None
    photo_id: Optional[int] = None
    photo_uri: Optional[str] = None
    formatted_number: Optional[str] = None
    account_component: Optional[str] = None
    account_id: Optional[str] = None
    plugin_package: Optional[str] = None

    def has_cached_info(self) -> bool:
        """Return ``True`` once any identity column has been annotated."""

        return any(
            value is not None
            for value in (
                self.name,
                self.number_type,
                self.label,
                self.lookup_uri,
                self.matched_number,
                self.normalized_number,
                self.photo_id,
                self.photo_uri,
                self.formatted_number,
            )
        )


@dataclass(slots=True)
class LookupOutcome:
    """Per-row summary written by the batch CLI."""

    number: str
    country_iso: Optional[str]
    status: str
    name: Optional[str] = None
    formatted_number: Optional[str] = None
    source: Optional[str] = None
    patched_columns: List[str] = field(default_factory=list)
    rows_updated: int = 0

    def as_row(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "country_iso": self.country_iso or "",
            "status": self.status,
            "name": self.name or "",
            "formatted_number": self.formatted_number or "",
            "source": self.source or "",
            "patched_columns": ", ".join(self.patched_columns),
            "rows_updated": self.rows_updated,
        }
