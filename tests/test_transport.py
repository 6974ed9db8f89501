from __future__ import annotations

import json
from typing import Any

import aiohttp
import pytest

from ampstorage._transport import HttpHostChannel
from ampstorage.bindings import RemoteBinding
from ampstorage.broadcast import BroadcastHub
from ampstorage.config import StorageConfig
from ampstorage.exceptions import StorageChannelError, StorageSaveError
from ampstorage.storage import create_storage


class _FakeResponse:
    def __init__(self, status: int, text: str) -> None:
        self.status = status
        self._text = text

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> _FakeResponse:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


class _FakeSession:
    def __init__(self, status: int = 200, text: str = "", error: Exception | None = None) -> None:
        self.status = status
        self.text = text
        self.error = error
        self.requests: list[tuple[str, dict[str, Any]]] = []

    def post(self, url: str, *, data: str, headers: dict[str, str], timeout: Any) -> _FakeResponse:
        self.requests.append((url, json.loads(data)))
        if self.error is not None:
            raise self.error
        return _FakeResponse(self.status, self.text)


def _channel(session: _FakeSession) -> HttpHostChannel:
    return HttpHostChannel("https://host.example/amp/", session)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_send_message_posts_envelope_and_returns_json() -> None:
    session = _FakeSession(text='{"blob": "BLOB1"}')

    result = await _channel(session).send_message("loadStore", {"origin": "https://acme.com"}, True)

    assert result == {"blob": "BLOB1"}
    assert session.requests == [
        (
            "https://host.example/amp/loadStore",
            {"name": "loadStore", "data": {"origin": "https://acme.com"}, "rsvp": True},
        )
    ]


@pytest.mark.asyncio
async def test_empty_ack_body_is_empty_object() -> None:
    result = await _channel(_FakeSession(text="  ")).send_message("saveStore", {}, True)
    assert result == {}


@pytest.mark.asyncio
async def test_without_ack_response_is_ignored() -> None:
    result = await _channel(_FakeSession(text="not json")).send_message("saveStore", {}, False)
    assert result is None


@pytest.mark.asyncio
async def test_non_200_raises_channel_error() -> None:
    with pytest.raises(StorageChannelError) as excinfo:
        await _channel(_FakeSession(status=503, text="busy")).send_message("loadStore", {}, True)

    assert excinfo.value.status_code == 503
    assert excinfo.value.message_name == "loadStore"


@pytest.mark.asyncio
async def test_client_error_raises_channel_error() -> None:
    session = _FakeSession(error=aiohttp.ClientConnectionError("refused"))
    with pytest.raises(StorageChannelError):
        await _channel(session).send_message("loadStore", {}, True)


@pytest.mark.asyncio
async def test_invalid_json_raises_channel_error() -> None:
    with pytest.raises(StorageChannelError):
        await _channel(_FakeSession(text="<html>")).send_message("loadStore", {}, True)


@pytest.mark.asyncio
async def test_remote_binding_over_http_surfaces_save_failure() -> None:
    binding = RemoteBinding(_channel(_FakeSession(status=500, text="nope")))

    with pytest.raises(StorageSaveError) as excinfo:
        await binding.save_blob("https://acme.com", "BLOB1")
    assert isinstance(excinfo.value.__cause__, StorageChannelError)


@pytest.mark.asyncio
async def test_configured_host_url_routes_storage_through_host() -> None:
    session = _FakeSession(text='{"blob": null}')
    storage = create_storage(
        "https://acme.com/page",
        broadcaster=BroadcastHub().connect(),
        http_session=session,  # type: ignore[arg-type]
        config=StorageConfig(host_url="https://host.example/amp", host_timeout=2.5),
    )

    assert await storage.get("key1") is None
    assert session.requests == [
        (
            "https://host.example/amp/loadStore",
            {"name": "loadStore", "data": {"origin": "https://acme.com"}, "rsvp": True},
        )
    ]
