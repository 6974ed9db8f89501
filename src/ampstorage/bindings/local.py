"""Binding backed by a durable local slot storage."""

from __future__ import annotations

import logging

from ampstorage._constants import STORE_KEY_PREFIX
from ampstorage.exceptions import StorageLoadError, StorageSaveError
from ampstorage.slots import SlotStorage

_logger = logging.getLogger(__name__)


class LocalBinding:
    """Persist each origin's blob in the slot ``prefix + origin``."""

    def __init__(self, slots: SlotStorage, *, prefix: str = STORE_KEY_PREFIX) -> None:
        self._slots = slots
        self._prefix = prefix

    def slot_key(self, origin: str) -> str:
        return f"{self._prefix}{origin}"

    async def load_blob(self, origin: str) -> str | None:
        key = self.slot_key(origin)
        # Slot storages fail synchronously and with arbitrary exception types.
        try:
            blob = self._slots.get_item(key)
        except Exception as exc:
            raise StorageLoadError(f"Failed to read slot {key}: {exc!r}", origin=origin) from exc
        if not blob:
            return None
        _logger.debug("Loaded slot %s (%d chars)", key, len(blob))
        return blob

    async def save_blob(self, origin: str, blob: str) -> None:
        key = self.slot_key(origin)
        try:
            self._slots.set_item(key, blob)
        except Exception as exc:
            raise StorageSaveError(f"Failed to write slot {key}: {exc!r}", origin=origin) from exc
