"""Configuration helpers for the caller lookup service."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

LOGGER = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".json":
        try:
            return json.loads(text)
        except ValueError as exc:
            raise ConfigurationError(f"Configuration file '{file_path}' is not valid JSON") from exc

    try:
        import yaml  # type: ignore
    except ImportError as exc:  # pragma: no cover - dependency optional
        raise ConfigurationError(
            "YAML configuration requires the 'pyyaml' package to be installed"
        ) from exc

    try:
        return yaml.safe_load(text)  # type: ignore[no-any-return]
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Configuration file '{file_path}' is not valid YAML") from exc


def iter_enabled_provider_configs(config: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
    providers = config.get("providers", []) or []
    for provider in providers:
        if provider.get("enabled", True):
            yield provider
        else:
            LOGGER.debug("Skipping disabled provider %s", provider.get("name"))


def resolve_country_iso(config: Dict[str, Any], override: Optional[str] = None) -> Optional[str]:
    """Return the default country hint, preferring an explicit override."""

    country = override or config.get("country_iso")
    if not country:
        return None
    country = str(country).strip().upper()
    if len(country) != 2 or not country.isalpha():
        raise ConfigurationError(f"Invalid ISO 3166-1 country code '{country}'")
    return country


def lookup_timeout_seconds(config: Dict[str, Any]) -> Optional[float]:
    """Per-lookup deadline; falls back to the first enabled provider's ``timeout_seconds``."""

    value = config.get("lookup_timeout_seconds")
    if value in (None, ""):
        value = next((provider.get("timeout_seconds") for provider in iter_enabled_provider_configs(config)), None)
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid lookup_timeout_seconds '{value}'") from exc
