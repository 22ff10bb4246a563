"""Ranked resolution of numbers and SIP addresses into identity records.

Sources are consulted cheapest and most authoritative first:

1. the local directory (the user's own contacts) short-circuits everything;
2. the process/disk lookup cache, keyed by the raw number;
3. the cached number lookup service;
4. the external lookup provider, only for numbers not known locally.

Each tier is a :class:`ResolverStep`. A step either returns a final
:class:`~caller_lookup.models.Resolution` or ``None`` to hand over to the next
step, recording what it learned on the shared :class:`LookupContext`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Protocol, Sequence

from ..cache import CachedNumberLookupService, LookupCache, NullCachedNumberLookupService
from ..deadline import Deadline
from ..directory import LocalDirectoryClient
from ..lookup_uri import build_provider_reference
from ..models import (
    FAILED,
    NOT_FOUND,
    IdentityRecord,
    LookupRequest,
    LookupResponse,
    RequestOrigin,
    Resolution,
    SourceType,
    StatusCode,
)
from ..numbers import (
    compose_location_label,
    format_number_to_e164,
    format_phone_number,
    is_global_phone_number,
    is_uri_number,
    username_from_uri_number,
)
from ..providers.base import DisabledLookupProvider, LookupProvider, fetch_with_deadline, provider_identifier

LOGGER = logging.getLogger(__name__)


@dataclass
class LookupContext:
    """State threaded through the resolver steps for one phone number."""

    number: str
    country_iso: Optional[str]
    contact_number: str
    is_plugin_id: bool = False
    deadline: Optional[Deadline] = None
    record: Optional[IdentityRecord] = None
    is_local_contact: bool = False
    cache_hit: bool = False


class ResolverStep(Protocol):
    name: str

    def try_resolve(self, context: LookupContext) -> Optional[Resolution]:  # pragma: no cover - runtime protocol
        """Return a final resolution, or ``None`` to continue with the next step."""


class LocalDirectoryStep:
    name = "local_directory"

    def __init__(self, directory: LocalDirectoryClient) -> None:
        self._directory = directory

    def try_resolve(self, context: LookupContext) -> Optional[Resolution]:
        resolution = self._directory.query_phone_number(context.contact_number, is_plugin_id=context.is_plugin_id)
        if resolution.is_failed:
            return FAILED
        if resolution.is_not_found:
            return None

        record = resolution.record
        if record is None:
            return FAILED
        record.formatted_number = format_phone_number(context.number, context.country_iso)
        context.record = record
        context.is_local_contact = True
        return resolution


class LookupCacheStep:
    name = "lookup_cache"

    def __init__(self, cache: LookupCache) -> None:
        self._cache = cache

    def try_resolve(self, context: LookupContext) -> Optional[Resolution]:
        if self._cache.has_cached_contact(context.number):
            LOGGER.debug("Lookup cache hit for %s", context.number)
            cached = self._cache.get_cached_contact(context.number)
            context.record = replace(cached) if cached is not None else None
            context.cache_hit = True
        return None


class CachedNumberServiceStep:
    name = "cached_number_service"

    def __init__(self, service: CachedNumberLookupService) -> None:
        self._service = service

    def try_resolve(self, context: LookupContext) -> Optional[Resolution]:
        if context.cache_hit:
            return None
        cached = self._service.lookup_cached_contact_from_number(context.number)
        if cached is None:
            return None
        if cached.contact_info.is_bad_data:
            LOGGER.info("Cached number lookup flagged %s as bad data", context.number)
            return FAILED

        context.record = replace(cached.contact_info)
        return None


class ExternalProviderStep:
    name = "external_provider"

    def __init__(self, provider: LookupProvider) -> None:
        self._provider = provider

    def try_resolve(self, context: LookupContext) -> Optional[Resolution]:
        if context.is_local_contact or not self._provider.is_enabled():
            return None

        request = LookupRequest(number=context.contact_number, origin=RequestOrigin.OTHER)
        response = fetch_with_deadline(self._provider, request, context.deadline)
        if response is None:
            return None

        if response.status_code is StatusCode.FAIL:
            if context.record is None:
                LOGGER.info("Provider %s failed for %s with nothing to flag", provider_identifier(self._provider), context.number)
                return FAILED
            context.record.is_bad_data = True
        elif response.status_code is StatusCode.SUCCESS:
            LOGGER.debug("Provider %s supplied information for %s", provider_identifier(self._provider), context.number)
            context.record = self._record_from_response(response, context)
        return None

    @staticmethod
    def _record_from_response(response: LookupResponse, context: LookupContext) -> IdentityRecord:
        number = response.number or context.number
        formatted_number = format_phone_number(number, context.country_iso)
        record = IdentityRecord(
            name=response.name,
            number=formatted_number,
            normalized_number=format_number_to_e164(number, context.country_iso),
            formatted_number=formatted_number,
            label=compose_location_label(response.city, response.country),
            photo_url=response.photo_url,
            source_type=SourceType.EXTERNAL_PROVIDER,
            provider_name=response.provider_name,
            city=response.city,
            country=response.country,
            address=response.address,
            is_spam=bool(response.is_spam),
            spam_count=int(response.spam_count or 0),
            attribution_logo=response.attribution_logo,
        )
        record.lookup_uri = build_provider_reference(
            number,
            formatted_number,
            provider_name=response.provider_name,
            photo_url=response.photo_url,
            name=response.name,
            is_spam=record.is_spam,
            spam_count=record.spam_count,
        )
        return record


class ResolutionCascade:
    """Runs the ordered resolver steps for SIP addresses and phone numbers."""

    def __init__(
        self,
        directory: LocalDirectoryClient,
        *,
        lookup_cache: Optional[LookupCache] = None,
        cached_lookup_service: Optional[CachedNumberLookupService] = None,
        provider: Optional[LookupProvider] = None,
        country_iso: Optional[str] = None,
        steps: Optional[Sequence[ResolverStep]] = None,
    ) -> None:
        self._directory = directory
        self._country_iso = country_iso
        if steps is None:
            built: List[ResolverStep] = [LocalDirectoryStep(directory)]
            if lookup_cache is not None:
                built.append(LookupCacheStep(lookup_cache))
            built.append(CachedNumberServiceStep(cached_lookup_service or NullCachedNumberLookupService()))
            built.append(ExternalProviderStep(provider or DisabledLookupProvider()))
            steps = built
        self._steps = list(steps)

    @property
    def steps(self) -> List[ResolverStep]:
        return list(self._steps)

    def resolve(
        self,
        identifier: Optional[str],
        country_iso: Optional[str] = None,
        is_plugin_id: bool = False,
        *,
        deadline: Optional[Deadline] = None,
    ) -> Resolution:
        """Resolve a number or SIP address to a resolution."""

        if not identifier:
            return FAILED

        if is_uri_number(identifier):
            resolution = self.resolve_sip(identifier)
            if not resolution.is_found:
                # The user part of a SIP address may itself be a contact's number.
                username = username_from_uri_number(identifier)
                if is_global_phone_number(username):
                    LOGGER.debug("Retrying SIP address %s as phone number %s", identifier, username)
                    resolution = self.resolve_phone_number(username, country_iso, False, deadline=deadline)
            return resolution

        resolution = self.resolve_phone_number(identifier, country_iso, is_plugin_id, deadline=deadline)
        if resolution.is_not_found:
            # The number may have been saved as an "Internet call" address.
            resolution = self.resolve_sip(identifier)
        return resolution

    def resolve_sip(self, address: Optional[str]) -> Resolution:
        if not address:
            return FAILED
        return self._directory.query_sip_address(address)

    def resolve_phone_number(
        self,
        number: Optional[str],
        country_iso: Optional[str] = None,
        is_plugin_id: bool = False,
        *,
        deadline: Optional[Deadline] = None,
    ) -> Resolution:
        if not number:
            return FAILED

        country = country_iso or self._country_iso
        # The directory does not accept a country hint, so match on E.164 where possible.
        contact_number = format_number_to_e164(number, country) or number
        context = LookupContext(
            number=number,
            country_iso=country,
            contact_number=contact_number,
            is_plugin_id=is_plugin_id,
            deadline=deadline,
        )

        for step in self._steps:
            resolution = step.try_resolve(context)
            if resolution is not None:
                LOGGER.debug("Step %s resolved %s as %s", step.name, number, resolution.status.value)
                return resolution

        if context.record is None:
            return NOT_FOUND
        if context.record.is_bad_data:
            return FAILED
        return Resolution.found(context.record)
