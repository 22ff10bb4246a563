"""Builders for directory lookup URIs and self-describing contact references.

Two kinds of reference are produced here:

* lookup URIs pointing at a real entry of the directory store, built from a
  contact id and lookup key;
* *encoded* references that embed the contact data itself as a JSON fragment.
  They stand in for numbers with no directory entry so that a "create
  contact" flow can pre-fill its form without another query.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote, unquote, urlencode, urlsplit

LOGGER = logging.getLogger(__name__)

CONTACTS_AUTHORITY = "com.android.contacts"
CONTACT_LOOKUP_URI = f"content://{CONTACTS_AUTHORITY}/contacts/lookup"
ENCODED_LOOKUP_SEGMENT = "encoded"
DIRECTORY_PARAM = "directory"
# Directory id reserved for references that are not backed by the store.
ENCODED_DIRECTORY_ID = 2**63 - 1

DISPLAY_NAME = "display_name"
DISPLAY_NAME_SOURCE = "display_name_source"
CONTACT_ITEM_TYPE = "vnd.android.cursor.item/contact"
PHONE_ITEM_TYPE = "vnd.android.cursor.item/phone_v2"
PHONE_NUMBER = "data1"
PHONE_TYPE = "data2"
PHONE_TYPE_CUSTOM = 0
DISPLAY_NAME_SOURCE_PHONE = 20
DISPLAY_NAME_SOURCE_STRUCTURED_NAME = 40

PROVIDER_ATTRIBUTES = "reverse_lookup"


def build_contact_lookup_uri(contact_id: int, lookup_key: Optional[str]) -> Optional[str]:
    """Return the lookup URI of a directory contact, or ``None`` without a key."""

    if not lookup_key:
        return None
    return f"{CONTACT_LOOKUP_URI}/{quote(lookup_key, safe='')}/{int(contact_id)}"


def _encode_reference(payload: Dict[str, Any]) -> Optional[str]:
    try:
        fragment = json.dumps(payload, sort_keys=True, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError):
        LOGGER.warning("Unable to encode contact reference", exc_info=True)
        return None
    query = urlencode({DIRECTORY_PARAM: ENCODED_DIRECTORY_ID})
    return f"{CONTACT_LOOKUP_URI}/{ENCODED_LOOKUP_SEGMENT}?{query}#{quote(fragment, safe='')}"


def synthesize_placeholder(formatted_number: str) -> Optional[str]:
    """Build an encoded reference for a number matching no contact.

    The result is deterministic for a given number; ``None`` is returned when
    the payload cannot be encoded.
    """

    payload = {
        DISPLAY_NAME: formatted_number,
        DISPLAY_NAME_SOURCE: DISPLAY_NAME_SOURCE_PHONE,
        CONTACT_ITEM_TYPE: {
            PHONE_ITEM_TYPE: {PHONE_NUMBER: formatted_number, PHONE_TYPE: PHONE_TYPE_CUSTOM},
        },
    }
    return _encode_reference(payload)


def build_provider_reference(
    number: Optional[str],
    formatted_number: str,
    *,
    provider_name: Optional[str] = None,
    photo_url: Optional[str] = None,
    name: Optional[str] = None,
    is_spam: bool = False,
    spam_count: int = 0,
) -> Optional[str]:
    """Encoded reference for a number identified by an external provider."""

    payload = {
        DISPLAY_NAME: name or formatted_number,
        DISPLAY_NAME_SOURCE: DISPLAY_NAME_SOURCE_STRUCTURED_NAME if name else DISPLAY_NAME_SOURCE_PHONE,
        CONTACT_ITEM_TYPE: {
            PHONE_ITEM_TYPE: {PHONE_NUMBER: formatted_number, PHONE_TYPE: PHONE_TYPE_CUSTOM},
        },
        PROVIDER_ATTRIBUTES: {
            "number": number,
            "provider_name": provider_name,
            "photo_url": photo_url,
            "name": name,
            "is_spam": bool(is_spam),
            "spam_count": int(spam_count or 0),
        },
    }
    return _encode_reference(payload)


def is_encoded_reference(uri: Optional[str]) -> bool:
    if not uri:
        return False
    parts = urlsplit(uri)
    return parts.path.rstrip("/").endswith(f"/{ENCODED_LOOKUP_SEGMENT}") and bool(parts.fragment)


def decode_reference(uri: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the contact payload embedded in an encoded reference."""

    if not is_encoded_reference(uri):
        return None
    try:
        return json.loads(unquote(urlsplit(uri).fragment))
    except ValueError:
        LOGGER.warning("Encoded contact reference %s is not valid JSON", uri)
        return None


def parse_uri_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def is_contacts_uri(uri: Optional[str]) -> bool:
    if not uri:
        return False
    return urlsplit(uri).netloc == CONTACTS_AUTHORITY


def null_for_non_contacts_uri(uri: Optional[str]) -> Optional[str]:
    """Keep ``uri`` only when it points into the directory store."""

    uri = parse_uri_or_none(uri)
    return uri if is_contacts_uri(uri) else None
