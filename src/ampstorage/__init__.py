"""ampstorage - Per-origin bounded key/value storage with cross-context invalidation."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ampstorage")
except PackageNotFoundError:
    __version__ = "0+local"
from ampstorage._mqtt import MqttBroadcastChannel, MqttBroadcastSettings
from ampstorage._transport import HostChannel, HttpHostChannel
from ampstorage.bindings import LocalBinding, PersistenceBinding, RemoteBinding
from ampstorage.broadcast import BroadcastChannel, BroadcastHub, HubEndpoint
from ampstorage.config import StorageConfig
from ampstorage.exceptions import (
    StorageChannelError,
    StorageConfigError,
    StorageDecodeError,
    StorageError,
    StorageLoadError,
    StorageSaveError,
)
from ampstorage.models import ResetMessage, StoreEntry
from ampstorage.slots import FileSlotStorage, MemorySlotStorage, SlotStorage
from ampstorage.storage import Storage, create_storage, origin_from_location
from ampstorage.store import BoundedStore, decode_blob, encode_blob

__all__ = [
    "__version__",
    "BoundedStore",
    "BroadcastChannel",
    "BroadcastHub",
    "FileSlotStorage",
    "HostChannel",
    "HttpHostChannel",
    "HubEndpoint",
    "LocalBinding",
    "MemorySlotStorage",
    "MqttBroadcastChannel",
    "MqttBroadcastSettings",
    "PersistenceBinding",
    "RemoteBinding",
    "ResetMessage",
    "SlotStorage",
    "Storage",
    "StorageChannelError",
    "StorageConfig",
    "StorageConfigError",
    "StorageDecodeError",
    "StorageError",
    "StorageLoadError",
    "StorageSaveError",
    "StoreEntry",
    "create_storage",
    "decode_blob",
    "encode_blob",
    "origin_from_location",
]
