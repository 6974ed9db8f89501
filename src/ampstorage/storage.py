"""Per-origin storage orchestrator.

Owns the lazily loaded :class:`~ampstorage.store.BoundedStore` for one
origin, persists every mutation through a binding and tells other
contexts to reload via a broadcast channel.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import urlsplit

import aiohttp
from pydantic import JsonValue, ValidationError

from ampstorage._constants import DEFAULT_PORTS, RESET_MESSAGE_TYPE
from ampstorage._transport import HostChannel, HttpHostChannel
from ampstorage.bindings import LocalBinding, PersistenceBinding, RemoteBinding
from ampstorage.broadcast import BroadcastChannel
from ampstorage.config import StorageConfig
from ampstorage.exceptions import StorageConfigError, StorageDecodeError
from ampstorage.models import ResetMessage, StoreEntry
from ampstorage.slots import SlotStorage
from ampstorage.store import BoundedStore, decode_blob, encode_blob

_logger = logging.getLogger(__name__)


def origin_from_location(location: str) -> str:
    """Reduce a URL to its origin (``scheme://host[:port]``).

    Path, query and fragment are dropped and default ports are omitted.
    """
    parts = urlsplit(location.strip())
    scheme = parts.scheme.lower()
    host = parts.hostname
    if not scheme or not host:
        raise StorageConfigError(f"Cannot derive an origin from location {location!r}")
    try:
        port = parts.port
    except ValueError as exc:
        raise StorageConfigError(f"Invalid port in location {location!r}") from exc
    if ":" in host:
        host = f"[{host}]"
    if port is None or DEFAULT_PORTS.get(scheme) == port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


class Storage:
    """Async key/value storage for a single origin.

    Usage::

        storage = Storage("https://example.com/page", binding, broadcaster)
        storage.start()
        await storage.set("consent", True)
        value = await storage.get("consent")

    Reads never fail because of the persistence layer: a failed or
    corrupt load yields an empty store.  Writes raise
    :class:`~ampstorage.exceptions.StorageSaveError` when the binding
    rejects the save.
    """

    def __init__(
        self,
        location: str,
        binding: PersistenceBinding,
        broadcaster: BroadcastChannel,
        *,
        config: StorageConfig | None = None,
        enable_cross_context_invalidation: bool | None = None,
    ) -> None:
        self._config = config or StorageConfig()
        self._origin = origin_from_location(location)
        self._binding = binding
        self._broadcaster = broadcaster
        if enable_cross_context_invalidation is None:
            enable_cross_context_invalidation = self._config.cross_context_invalidation
        self._invalidation_enabled = enable_cross_context_invalidation
        self._store_future: asyncio.Future[BoundedStore] | None = None
        self._started = False

    @property
    def origin(self) -> str:
        return self._origin

    @property
    def binding(self) -> PersistenceBinding:
        return self._binding

    def start(self) -> None:
        """Wire up cross-context invalidation if enabled.  Idempotent."""
        if self._started:
            return
        self._started = True
        if not self._invalidation_enabled:
            _logger.debug("Cross-context invalidation disabled for %s", self._origin)
            return
        self._broadcaster.on_broadcast(self._on_broadcast)

    async def get(self, key: str) -> JsonValue | None:
        """Return the value stored under *key*, or ``None`` when absent."""
        store = await asyncio.shield(self._get_store())
        return store.get(key)

    async def set(self, key: str, value: JsonValue) -> None:
        """Store *value* under *key*, persist, then notify other contexts."""
        await self._save_store(lambda store: store.set(key, value))

    async def remove(self, key: str) -> None:
        """Delete *key*, persist, then notify other contexts."""
        await self._save_store(lambda store: store.remove(key))

    def _get_store(self) -> asyncio.Future[BoundedStore]:
        # A load cancelled from outside is started again.
        if self._store_future is None or self._store_future.cancelled():
            self._store_future = asyncio.ensure_future(self._load_store())
        return self._store_future

    async def _load_store(self) -> BoundedStore:
        try:
            blob = await self._binding.load_blob(self._origin)
        except Exception:
            _logger.debug("Failed to load store for %s, starting empty", self._origin, exc_info=True)
            return self._new_store()

        if blob is None:
            return self._new_store()

        try:
            entries = decode_blob(blob)
        except StorageDecodeError:
            _logger.debug("Discarding undecodable store for %s", self._origin, exc_info=True)
            return self._new_store()

        _logger.debug("Loaded %d entries for %s", len(entries), self._origin)
        return self._new_store(entries)

    def _new_store(self, entries: Mapping[str, StoreEntry] | None = None) -> BoundedStore:
        return BoundedStore(entries, capacity=self._config.capacity)

    async def _save_store(self, mutate: Callable[[BoundedStore], None]) -> None:
        store = await asyncio.shield(self._get_store())
        mutate(store)
        blob = encode_blob(store)
        await self._binding.save_blob(self._origin, blob)
        self._broadcast_reset()

    def _broadcast_reset(self) -> None:
        message = ResetMessage(origin=self._origin)
        try:
            self._broadcaster.broadcast(message.model_dump())
        except Exception:
            _logger.warning("Reset broadcast failed for %s", self._origin, exc_info=True)

    def _on_broadcast(self, message: Mapping[str, Any]) -> None:
        if message.get("type") != RESET_MESSAGE_TYPE:
            return
        try:
            reset = ResetMessage.model_validate(message)
        except ValidationError:
            return
        if reset.origin != self._origin:
            return
        _logger.debug("Reset received for %s, dropping cached store", self._origin)
        self._store_future = None


def create_storage(
    location: str,
    *,
    broadcaster: BroadcastChannel,
    slots: SlotStorage | None = None,
    host_channel: HostChannel | None = None,
    http_session: aiohttp.ClientSession | None = None,
    config: StorageConfig | None = None,
) -> Storage:
    """Build and start a :class:`Storage` with the appropriate binding.

    An embedded context (one with a *host_channel*, or a configured
    ``host_url`` plus *http_session*) persists through the host; a
    standalone context persists to local *slots*.
    """
    config = config or StorageConfig()
    if host_channel is None and config.host_url:
        if http_session is None:
            raise StorageConfigError("host_url is configured but no http_session was given")
        host_channel = HttpHostChannel(config.host_url, http_session, timeout=config.host_timeout)

    binding: PersistenceBinding
    if host_channel is not None:
        binding = RemoteBinding(host_channel)
    elif slots is not None:
        binding = LocalBinding(slots, prefix=config.slot_prefix)
    else:
        raise StorageConfigError("Either slots or host_channel is required")

    storage = Storage(location, binding, broadcaster, config=config)
    storage.start()
    return storage
