"""Size-bounded in-memory key/value store and its blob codec."""

from __future__ import annotations

import base64
import binascii
import json
import time
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import JsonValue, TypeAdapter, ValidationError

from ampstorage._constants import DEFAULT_CAPACITY
from ampstorage.exceptions import StorageDecodeError
from ampstorage.models import StoreEntry

_ENTRIES_ADAPTER: TypeAdapter[dict[str, StoreEntry]] = TypeAdapter(dict[str, StoreEntry])


def monotonic_ms() -> int:
    """Current monotonic clock reading in milliseconds."""
    return time.monotonic_ns() // 1_000_000


class BoundedStore:
    """In-memory map of key to :class:`StoreEntry` holding at most ``capacity`` keys.

    When a new key arrives at capacity, the entry with the smallest
    timestamp is evicted.  Entries sharing that timestamp are evicted in
    insertion order.  Overwriting an existing key never evicts.
    """

    def __init__(
        self,
        entries: Mapping[str, StoreEntry] | None = None,
        *,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._clock = clock
        self._entries: dict[str, StoreEntry] = {key: entry.model_copy() for key, entry in (entries or {}).items()}
        # A persisted blob may predate a smaller capacity.
        while len(self._entries) > self._capacity:
            self._evict_oldest()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> JsonValue | None:
        """Return the value stored under *key*, or ``None``."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        return entry.value

    def set(self, key: str, value: JsonValue) -> None:
        """Store *value* under *key*, evicting the oldest entry if needed."""
        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None:
            entry.value = value
            entry.timestamp = now
            return
        if len(self._entries) >= self._capacity:
            self._evict_oldest()
        self._entries[key] = StoreEntry(value=value, timestamp=now)

    def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Plain ``{key: {"v": value, "t": timestamp}}`` mapping."""
        return {key: entry.model_dump(by_alias=True) for key, entry in self._entries.items()}

    def _evict_oldest(self) -> None:
        # min() returns the first of equal timestamps, i.e. the earliest inserted.
        oldest = min(self._entries, key=lambda k: self._entries[k].timestamp)
        del self._entries[oldest]


def encode_blob(store: BoundedStore) -> str:
    """Serialize *store* entries as ``base64(JSON)``."""
    payload = json.dumps(store.to_dict(), separators=(",", ":"))
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def decode_blob(blob: str) -> dict[str, StoreEntry]:
    """Parse a blob produced by :func:`encode_blob`.

    Raises :class:`StorageDecodeError` when the blob is not valid base64
    or does not contain a JSON object of entries.
    """
    try:
        raw = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise StorageDecodeError(f"Blob is not valid base64: {blob[:32]!r}") from exc

    try:
        return _ENTRIES_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        raise StorageDecodeError(f"Blob does not contain store entries: {exc.error_count()} error(s)") from exc
