"""Lookup provider answering from a fixed table of numbers."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ..config import ConfigurationError, load_configuration
from ..models import LookupRequest, LookupResponse, StatusCode
from ..numbers import normalize_number

LOGGER = logging.getLogger(__name__)

_RESPONSE_FIELDS = (
    "name",
    "number",
    "city",
    "country",
    "address",
    "photo_url",
    "is_spam",
    "spam_count",
    "provider_name",
    "attribution_logo",
)


class StaticLookupProvider:
    """Provider backed by a mapping of E.164 numbers to response fields.

    Entries may carry a ``status`` of ``success`` (the default), ``fail`` or
    ``none``. Unknown numbers produce a ``NONE`` response.
    """

    def __init__(
        self,
        entries: Optional[Mapping[str, Mapping[str, Any]]] = None,
        *,
        path: Optional[str | Path] = None,
        provider_name: str = "static",
        enabled: bool = True,
    ) -> None:
        self.unique_identifier = provider_name
        self._provider_name = provider_name
        self._enabled = enabled
        raw_entries: Dict[str, Mapping[str, Any]] = dict(entries or {})
        if path is not None:
            loaded = load_configuration(path) or {}
            if not isinstance(loaded, Mapping):
                raise ConfigurationError(f"Provider table '{path}' must be a mapping of numbers")
            raw_entries.update(loaded)
        self._entries = {normalize_number(str(number)): dict(entry) for number, entry in raw_entries.items()}

    def is_enabled(self) -> bool:
        return self._enabled

    def blocking_fetch_info(self, request: LookupRequest) -> LookupResponse:
        if not request.number:
            return LookupResponse(status_code=StatusCode.NONE, provider_name=self._provider_name)

        entry = self._entries.get(normalize_number(request.number))
        if entry is None:
            LOGGER.debug("No static entry for %s", request.number)
            return LookupResponse(status_code=StatusCode.NONE, provider_name=self._provider_name)

        status = StatusCode(str(entry.get("status", StatusCode.SUCCESS.value)).lower())
        values = {key: entry[key] for key in _RESPONSE_FIELDS if key in entry}
        values.setdefault("number", request.number)
        values.setdefault("provider_name", self._provider_name)
        return LookupResponse(status_code=status, **values)
