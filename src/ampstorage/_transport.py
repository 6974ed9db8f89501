"""Host messaging channel used by :class:`~ampstorage.bindings.RemoteBinding`."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from ampstorage._redact import redact_for_log
from ampstorage.exceptions import StorageChannelError

_logger = logging.getLogger(__name__)


class HostChannel(Protocol):
    """Structural request/response interface to the hosting context.

    ``send_message`` resolves with the host's response once acknowledged
    and raises when the host rejects or cannot be reached.
    """

    async def send_message(self, name: str, payload: Mapping[str, Any], require_ack: bool) -> Any:
        ...


class HttpHostChannel:
    """Host channel speaking JSON over HTTP.

    Each message is POSTed to ``{base_url}/{name}`` as
    ``{"name": name, "data": payload, "rsvp": require_ack}``.  With
    ``require_ack`` the JSON response body is returned; an empty body is
    returned as ``{}``.
    """

    def __init__(
        self,
        base_url: str,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def send_message(self, name: str, payload: Mapping[str, Any], require_ack: bool) -> Any:
        url = f"{self._base_url}/{name}"
        body = json.dumps({"name": name, "data": dict(payload), "rsvp": require_ack}, separators=(",", ":"))
        headers = {"content-type": "application/json; charset=UTF-8"}

        _logger.debug("POST %s payload=%s rsvp=%s", url, redact_for_log(payload), require_ack)

        try:
            async with self._http.post(url, data=body, headers=headers, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise StorageChannelError(
                        f"HTTP {resp.status} from host for {name}: {text[:200]}",
                        message_name=name,
                        status_code=resp.status,
                    )
        except StorageChannelError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise StorageChannelError(
                f"Host request {name} failed: {exc!r}",
                message_name=name,
            ) from exc

        if not require_ack:
            return None
        if not text.strip():
            return {}

        try:
            result = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StorageChannelError(
                f"Invalid JSON from host for {name}: {text[:200]}",
                message_name=name,
            ) from exc

        _logger.debug("Host response for %s: %s", name, redact_for_log(result))
        return result
