"""Binding capability shared by local and remote persistence."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PersistenceBinding(Protocol):
    """Loads and saves the opaque blob of one origin.

    ``load_blob`` returns ``None`` when nothing was ever saved.  Both
    operations raise (:class:`~ampstorage.exceptions.StorageLoadError`,
    :class:`~ampstorage.exceptions.StorageSaveError`) instead of leaking
    backend-specific faults.
    """

    async def load_blob(self, origin: str) -> str | None:
        ...

    async def save_blob(self, origin: str, blob: str) -> None:
        ...
