"""Binding that delegates persistence to the hosting context."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from ampstorage._constants import LOAD_STORE_MESSAGE, SAVE_STORE_MESSAGE
from ampstorage._transport import HostChannel
from ampstorage.exceptions import StorageLoadError, StorageSaveError

_logger = logging.getLogger(__name__)


class RemoteBinding:
    """Load and save blobs through ``loadStore`` / ``saveStore`` host messages.

    Both messages require acknowledgment.  A ``loadStore`` response is an
    object with an optional ``blob`` string.
    """

    def __init__(self, channel: HostChannel) -> None:
        self._channel = channel

    async def load_blob(self, origin: str) -> str | None:
        try:
            response = await self._channel.send_message(LOAD_STORE_MESSAGE, {"origin": origin}, True)
        except Exception as exc:
            raise StorageLoadError(f"Host rejected {LOAD_STORE_MESSAGE}: {exc!r}", origin=origin) from exc

        if response is None:
            return None
        if not isinstance(response, Mapping):
            raise StorageLoadError(
                f"{LOAD_STORE_MESSAGE} response is not an object: {type(response).__name__}",
                origin=origin,
            )
        blob = response.get("blob")
        if blob is None:
            return None
        if not isinstance(blob, str):
            raise StorageLoadError(f"{LOAD_STORE_MESSAGE} blob is not a string", origin=origin)
        return blob

    async def save_blob(self, origin: str, blob: str) -> None:
        try:
            await self._channel.send_message(SAVE_STORE_MESSAGE, {"origin": origin, "blob": blob}, True)
        except Exception as exc:
            raise StorageSaveError(f"Host rejected {SAVE_STORE_MESSAGE}: {exc!r}", origin=origin) from exc
        _logger.debug("Host acknowledged %s for %s", SAVE_STORE_MESSAGE, origin)
