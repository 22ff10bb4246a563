"""Phone number and SIP address helpers built on :mod:`phonenumbers`."""
from __future__ import annotations

import logging
import re
from typing import Optional

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat, geocoder

LOGGER = logging.getLogger(__name__)

_GLOBAL_PHONE_NUMBER = re.compile(r"[\+]?[0-9.-]+")
_SIP_SCHEMES = ("sip:", "sips:")


def _region(country_iso: Optional[str]) -> Optional[str]:
    if not country_iso:
        return None
    return country_iso.strip().upper() or None


def is_uri_number(number: Optional[str]) -> bool:
    """Return ``True`` when ``number`` is really a SIP address."""

    return bool(number) and ("@" in number or "%40" in number)


def username_from_uri_number(number: str) -> str:
    """Return the user portion of a SIP address (``sip:user@host`` -> ``user``)."""

    index = number.find("@")
    if index < 0:
        index = number.find("%40")
    username = number[:index] if index >= 0 else number
    lowered = username.lower()
    for scheme in _SIP_SCHEMES:
        if lowered.startswith(scheme):
            return username[len(scheme):]
    return username


def is_global_phone_number(value: Optional[str]) -> bool:
    if not value:
        return False
    return _GLOBAL_PHONE_NUMBER.fullmatch(value) is not None


def _parse(number: str, country_iso: Optional[str], *, keep_raw_input: bool = False):
    try:
        return phonenumbers.parse(number, _region(country_iso), keep_raw_input=keep_raw_input)
    except NumberParseException:
        LOGGER.debug("phonenumbers.parse failed for %s (country=%s)", number, country_iso)
        return None


def is_valid_number(number: Optional[str], country_iso: Optional[str]) -> bool:
    if not number or is_uri_number(number):
        return False
    parsed = _parse(number, country_iso)
    return parsed is not None and phonenumbers.is_valid_number(parsed)


def format_number_to_e164(number: Optional[str], country_iso: Optional[str]) -> Optional[str]:
    """Return the E.164 form of ``number`` or ``None`` when it is not a valid number."""

    if not number or is_uri_number(number):
        return None
    parsed = _parse(number, country_iso)
    if parsed is None or not phonenumbers.is_valid_number(parsed):
        return None
    return phonenumbers.format_number(parsed, PhoneNumberFormat.E164)


def normalize_number(number: str) -> str:
    """Strip formatting characters, keeping SIP addresses untouched."""

    if is_uri_number(number):
        return number
    return phonenumbers.normalize_diallable_chars_only(number) or number


def format_phone_number(number: Optional[str], country_iso: Optional[str]) -> str:
    """Format ``number`` for display using the conventions of ``country_iso``.

    SIP addresses and service codes are returned unchanged, as is anything that
    cannot be parsed.
    """

    if not number:
        return ""
    if is_uri_number(number) or number.startswith(("#", "*")):
        return number
    parsed = _parse(number, country_iso, keep_raw_input=True)
    if parsed is None:
        return number
    region = _region(country_iso) or phonenumbers.UNKNOWN_REGION
    return phonenumbers.format_in_original_format(parsed, region) or number


def country_display_name(country_iso: Optional[str]) -> str:
    """Convert an ISO 3166-1 code into an English country name.

    Unknown codes are returned upper-cased, empty input gives an empty string.
    """

    region = _region(country_iso)
    if region is None:
        return ""
    example = phonenumbers.example_number(region)
    if example is None:
        return region
    return geocoder.country_name_for_number(example, "en") or region


def compose_location_label(city: Optional[str], country_iso: Optional[str]) -> str:
    """Return ``"<city>, <country name>"`` leaving out whichever half is missing."""

    parts = [part for part in ((city or "").strip(), country_display_name(country_iso)) if part]
    return ", ".join(parts)
