from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from ampstorage.bindings import LocalBinding, PersistenceBinding, RemoteBinding
from ampstorage.exceptions import StorageChannelError, StorageLoadError, StorageSaveError
from ampstorage.slots import MemorySlotStorage

ORIGIN = "https://acme.com"


class _FailingSlots:
    def get_item(self, key: str) -> str | None:
        raise OSError("unknown")

    def set_item(self, key: str, value: str) -> None:
        raise OSError("quota exceeded")


class _FakeChannel:
    def __init__(self, response: Any = None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[tuple[str, dict[str, Any], bool]] = []

    async def send_message(self, name: str, payload: Mapping[str, Any], require_ack: bool) -> Any:
        self.calls.append((name, dict(payload), require_ack))
        if self.error is not None:
            raise self.error
        return self.response


def test_bindings_satisfy_protocol() -> None:
    assert isinstance(LocalBinding(MemorySlotStorage()), PersistenceBinding)
    assert isinstance(RemoteBinding(_FakeChannel()), PersistenceBinding)


@pytest.mark.asyncio
async def test_local_load_reads_prefixed_slot() -> None:
    slots = MemorySlotStorage()
    slots.set_item("amp-store:https://acme.com", "BLOB1")
    binding = LocalBinding(slots)

    assert await binding.load_blob(ORIGIN) == "BLOB1"


@pytest.mark.asyncio
async def test_local_load_missing_slot_is_none() -> None:
    assert await LocalBinding(MemorySlotStorage()).load_blob(ORIGIN) is None


@pytest.mark.asyncio
async def test_local_load_converts_slot_failure() -> None:
    binding = LocalBinding(_FailingSlots())

    with pytest.raises(StorageLoadError) as excinfo:
        await binding.load_blob(ORIGIN)
    assert excinfo.value.origin == ORIGIN
    assert isinstance(excinfo.value.__cause__, OSError)


@pytest.mark.asyncio
async def test_local_save_writes_prefixed_slot() -> None:
    slots = MemorySlotStorage()
    await LocalBinding(slots).save_blob(ORIGIN, "BLOB1")

    assert slots.get_item("amp-store:https://acme.com") == "BLOB1"


@pytest.mark.asyncio
async def test_local_save_converts_slot_failure() -> None:
    with pytest.raises(StorageSaveError):
        await LocalBinding(_FailingSlots()).save_blob(ORIGIN, "BLOB1")


def test_local_slot_key_honours_custom_prefix() -> None:
    binding = LocalBinding(MemorySlotStorage(), prefix="test:")
    assert binding.slot_key(ORIGIN) == "test:https://acme.com"


@pytest.mark.asyncio
async def test_remote_load_returns_blob_from_host() -> None:
    channel = _FakeChannel(response={"blob": "BLOB1"})

    assert await RemoteBinding(channel).load_blob(ORIGIN) == "BLOB1"
    assert channel.calls == [("loadStore", {"origin": ORIGIN}, True)]


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [{}, None, {"blob": None}])
async def test_remote_load_without_blob_is_none(response: Any) -> None:
    assert await RemoteBinding(_FakeChannel(response=response)).load_blob(ORIGIN) is None


@pytest.mark.asyncio
async def test_remote_load_converts_host_rejection() -> None:
    channel = _FakeChannel(error=StorageChannelError("unknown", message_name="loadStore"))

    with pytest.raises(StorageLoadError):
        await RemoteBinding(channel).load_blob(ORIGIN)


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [["BLOB1"], {"blob": 42}])
async def test_remote_load_rejects_malformed_response(response: Any) -> None:
    with pytest.raises(StorageLoadError):
        await RemoteBinding(_FakeChannel(response=response)).load_blob(ORIGIN)


@pytest.mark.asyncio
async def test_remote_save_sends_origin_and_blob() -> None:
    channel = _FakeChannel()
    await RemoteBinding(channel).save_blob(ORIGIN, "BLOB1")

    assert channel.calls == [("saveStore", {"origin": ORIGIN, "blob": "BLOB1"}, True)]


@pytest.mark.asyncio
async def test_remote_save_converts_host_rejection() -> None:
    channel = _FakeChannel(error=StorageChannelError("unknown", message_name="saveStore"))

    with pytest.raises(StorageSaveError):
        await RemoteBinding(channel).save_blob(ORIGIN, "BLOB1")
