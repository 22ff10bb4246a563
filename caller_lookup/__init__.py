"""Top-level package for the caller lookup toolkit."""

from . import models  # noqa: F401
from .models import (
    FAILED,
    NOT_FOUND,
    CallLogEntry,
    IdentityRecord,
    LookupOutcome,
    LookupRequest,
    LookupResponse,
    Resolution,
    ResolutionStatus,
    SourceType,
    StatusCode,
)
from .orchestrator import ContactInfoService, ResolutionCascade  # noqa: F401

__all__ = [
    "FAILED",
    "NOT_FOUND",
    "CallLogEntry",
    "ContactInfoService",
    "IdentityRecord",
    "LookupOutcome",
    "LookupRequest",
    "LookupResponse",
    "Resolution",
    "ResolutionCascade",
    "ResolutionStatus",
    "SourceType",
    "StatusCode",
    "ingestion",
    "orchestrator",
    "providers",
]
