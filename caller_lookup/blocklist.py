"""Thin pass-through for adding and removing blocked numbers."""
from __future__ import annotations

import logging
from typing import Dict, Protocol

LOGGER = logging.getLogger(__name__)

BLOCK_MODE_PHONE = 1


class BlocklistStore(Protocol):
    def set_mode(self, number: str, mode: int) -> int:  # pragma: no cover - runtime protocol
        """Mark ``number`` as blocked for ``mode``; returns rows changed."""

    def delete(self, number: str) -> int:  # pragma: no cover - runtime protocol
        """Remove ``number``; returns rows changed."""


class InMemoryBlocklistStore:
    def __init__(self) -> None:
        self._numbers: Dict[str, int] = {}

    def __contains__(self, number: object) -> bool:
        return number in self._numbers

    def set_mode(self, number: str, mode: int) -> int:
        if self._numbers.get(number) == mode:
            return 0
        self._numbers[number] = mode
        return 1

    def delete(self, number: str) -> int:
        return 1 if self._numbers.pop(number, None) is not None else 0


class BlocklistManager:
    """Adds numbers to and removes them from the platform blocklist."""

    def __init__(self, store: BlocklistStore) -> None:
        self._store = store

    def add_number(self, number: str) -> bool:
        changed = self._store.set_mode(number, BLOCK_MODE_PHONE)
        if changed:
            LOGGER.info("Added %s to the blocklist", number)
        return bool(changed)

    def remove_number(self, number: str) -> bool:
        changed = self._store.delete(number)
        if changed:
            LOGGER.info("Removed %s from the blocklist", number)
        return bool(changed)
