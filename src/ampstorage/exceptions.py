"""Custom exception hierarchy for ampstorage."""

from __future__ import annotations


class StorageError(Exception):
    """Base exception for all ampstorage errors."""


class StorageConfigError(StorageError):
    """Invalid or missing configuration."""


class StorageLoadError(StorageError):
    """A persistence binding failed to load the blob for an origin.

    The storage orchestrator recovers from this by starting with an empty
    store; it is only visible to callers using a binding directly.
    """

    def __init__(self, message: str, *, origin: str = "") -> None:
        self.origin = origin
        super().__init__(message)


class StorageDecodeError(StorageLoadError):
    """A blob was present but is not valid base64-encoded JSON entries."""


class StorageSaveError(StorageError):
    """A persistence binding rejected a save.

    Raised from ``Storage.set`` / ``Storage.remove``.  The in-memory store
    already holds the mutation, so a retry only needs to repeat the call.
    """

    def __init__(self, message: str, *, origin: str = "") -> None:
        self.origin = origin
        super().__init__(message)


class StorageChannelError(StorageError):
    """Broadcast or host messaging channel failure."""

    def __init__(
        self,
        message: str,
        *,
        message_name: str = "",
        status_code: int | None = None,
    ) -> None:
        self.message_name = message_name
        self.status_code = status_code
        super().__init__(message)
