"""Factory helpers for constructing lookup collaborators from configuration."""
from __future__ import annotations

import importlib
import logging
from typing import Any, Dict, Optional

from .cache import CachedNumberLookupService, JsonLookupCache, NullCachedNumberLookupService
from .config import ConfigurationError, iter_enabled_provider_configs, resolve_country_iso
from .directory import InMemoryDirectoryStore, LocalDirectoryClient
from .ingestion.loaders import load_contacts
from .orchestrator import ContactInfoService
from .providers.base import DisabledLookupProvider, LookupProvider
from .rate_limit import DelayPolicy, RateLimitedProvider, RateLimiter
from .reconcile import CallLogReconciler, CallLogStore

LOGGER = logging.getLogger(__name__)


def _load_class(path: str):
    module_name, _, attr = path.rpartition(".")
    if not module_name:
        raise ConfigurationError(f"Invalid class path '{path}'")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ConfigurationError(f"Module '{module_name}' does not define '{attr}'") from exc


def build_provider(config: Dict[str, Any]) -> LookupProvider:
    """Instantiate the first enabled provider defined in the configuration file."""

    enabled = list(iter_enabled_provider_configs(config))
    if not enabled:
        return DisabledLookupProvider()
    if len(enabled) > 1:
        LOGGER.warning("Only one lookup provider is used; ignoring %s", [cfg.get("name") for cfg in enabled[1:]])

    provider_cfg = enabled[0]
    class_path = provider_cfg.get("class")
    if not class_path:
        raise ConfigurationError("Provider configuration missing required 'class' field")

    options = provider_cfg.get("options", {})
    provider_cls = _load_class(class_path)
    provider_instance = provider_cls(**options)

    delay_seconds = float(provider_cfg.get("delay_seconds", 0) or 0)
    calls_per_minute = provider_cfg.get("rate_limit_per_minute")
    rate_limiter = RateLimiter(float(calls_per_minute)) if calls_per_minute else RateLimiter(None)

    return RateLimitedProvider(
        provider_instance,
        display_name=provider_cfg.get("name"),
        delay_policy=DelayPolicy(delay_seconds=delay_seconds),
        rate_limiter=rate_limiter,
    )


def build_directory(config: Dict[str, Any], country_iso: Optional[str] = None) -> LocalDirectoryClient:
    directory_cfg = config.get("directory") or {}
    path = directory_cfg.get("path")
    rows = load_contacts(path, column_mapping=directory_cfg.get("columns")) if path else []
    store = InMemoryDirectoryStore(rows, country_iso=country_iso)
    LOGGER.debug("Loaded %s directory contacts", len(store))
    return LocalDirectoryClient(store)


def build_lookup_cache(config: Dict[str, Any]) -> Optional[JsonLookupCache]:
    cache_cfg = config.get("cache")
    if not cache_cfg or not cache_cfg.get("enabled", True):
        return None
    return JsonLookupCache(cache_cfg.get("path"))


def build_cached_lookup_service(config: Dict[str, Any]) -> CachedNumberLookupService:
    service_cfg = config.get("cached_lookup_service")
    if not service_cfg:
        return NullCachedNumberLookupService()
    class_path = service_cfg.get("class")
    if not class_path:
        raise ConfigurationError("Cached lookup service configuration missing required 'class' field")
    return _load_class(class_path)(**service_cfg.get("options", {}))


def build_service(
    config: Dict[str, Any],
    *,
    country_iso: Optional[str] = None,
    call_log_store: Optional[CallLogStore] = None,
) -> ContactInfoService:
    """Wire the directory, cache tier, provider and call log into a service."""

    country = resolve_country_iso(config, country_iso)
    return ContactInfoService(
        build_directory(config, country),
        lookup_cache=build_lookup_cache(config),
        cached_lookup_service=build_cached_lookup_service(config),
        provider=build_provider(config),
        reconciler=CallLogReconciler(call_log_store) if call_log_store is not None else None,
        country_iso=country,
    )
