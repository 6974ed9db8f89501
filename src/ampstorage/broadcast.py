"""Broadcast channels connecting cooperating execution contexts.

A broadcast reaches every *other* context attached to the same channel;
the sender never receives its own message.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from ampstorage.exceptions import StorageChannelError

_logger = logging.getLogger(__name__)

BroadcastHandler = Callable[[dict[str, Any]], None]


class BroadcastChannel(Protocol):
    """Structural publish/subscribe interface used by the storage orchestrator."""

    def broadcast(self, message: Mapping[str, Any]) -> None:
        ...

    def on_broadcast(self, handler: BroadcastHandler) -> None:
        ...


class BroadcastHub:
    """In-process fan-out between contexts sharing one event loop.

    Usage::

        hub = BroadcastHub()
        tab_a, tab_b = hub.connect(), hub.connect()
    """

    def __init__(self) -> None:
        self._endpoints: list[HubEndpoint] = []

    def connect(self) -> HubEndpoint:
        endpoint = HubEndpoint(self)
        self._endpoints.append(endpoint)
        return endpoint

    def _disconnect(self, endpoint: HubEndpoint) -> None:
        if endpoint in self._endpoints:
            self._endpoints.remove(endpoint)

    def _publish(self, sender: HubEndpoint, message: dict[str, Any]) -> None:
        for endpoint in list(self._endpoints):
            if endpoint is sender:
                continue
            endpoint._deliver(copy.deepcopy(message))


class HubEndpoint:
    """One context's attachment to a :class:`BroadcastHub`."""

    def __init__(self, hub: BroadcastHub) -> None:
        self._hub: BroadcastHub | None = hub
        self._handlers: list[BroadcastHandler] = []

    @property
    def is_connected(self) -> bool:
        return self._hub is not None

    def broadcast(self, message: Mapping[str, Any]) -> None:
        hub = self._hub
        if hub is None:
            raise StorageChannelError("Broadcast endpoint is closed")
        hub._publish(self, dict(message))

    def on_broadcast(self, handler: BroadcastHandler) -> None:
        self._handlers.append(handler)

    def close(self) -> None:
        hub = self._hub
        self._hub = None
        self._handlers.clear()
        if hub is not None:
            hub._disconnect(self)

    def _deliver(self, message: dict[str, Any]) -> None:
        for handler in list(self._handlers):
            try:
                handler(message)
            except Exception:
                _logger.debug("Broadcast handler failed", exc_info=True)
