"""MQTT-backed broadcast channel for contexts living in separate processes."""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from ampstorage.broadcast import BroadcastHandler
from ampstorage.config import StorageConfig
from ampstorage.exceptions import StorageChannelError, StorageConfigError


@dataclass(frozen=True)
class MqttBroadcastSettings:
    """Broker connection details for reset broadcasts."""

    broker_host: str
    broker_port: int
    topic: str
    keepalive: int = 60
    username: str | None = None
    password: str | None = None
    tls: bool = False

    @classmethod
    def from_config(cls, config: StorageConfig) -> MqttBroadcastSettings:
        if not config.mqtt_host:
            raise StorageConfigError("mqtt_host is required for MQTT broadcasts")
        return cls(
            broker_host=config.mqtt_host,
            broker_port=config.mqtt_port,
            topic=config.mqtt_topic,
            keepalive=config.mqtt_keepalive,
            username=config.mqtt_username,
            password=config.mqtt_password,
            tls=config.mqtt_tls,
        )


def encode_broadcast_payload(sender: str, message: Mapping[str, Any]) -> bytes:
    """Wrap *message* with the sender id so publishers can skip their own echo."""
    return json.dumps({"sender": sender, "message": dict(message)}, separators=(",", ":")).encode("utf-8")


def decode_broadcast_payload(payload: bytes) -> tuple[str, dict[str, Any]]:
    """Return ``(sender, message)`` from an MQTT payload."""
    parsed = json.loads(payload.decode("utf-8"))
    if not isinstance(parsed, dict):
        raise StorageChannelError("Broadcast payload is not a JSON object")
    sender = parsed.get("sender")
    message = parsed.get("message")
    if not isinstance(sender, str) or not isinstance(message, dict):
        raise StorageChannelError("Broadcast payload missing sender/message")
    return sender, message


class MqttBroadcastChannel:
    """Threaded paho-mqtt broadcast channel delivering messages onto an asyncio loop.

    Every instance is one context: it publishes to the shared topic and
    hands messages from other instances to its handlers on ``loop``.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        settings: MqttBroadcastSettings,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._settings = settings
        self._logger = logger or logging.getLogger(__name__)
        self._sender_id = secrets.token_hex(8)
        self._handlers: list[BroadcastHandler] = []
        self._client: mqtt.Client | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the MQTT network loop is active."""
        return self._running

    @property
    def sender_id(self) -> str:
        return self._sender_id

    def on_broadcast(self, handler: BroadcastHandler) -> None:
        self._handlers.append(handler)

    def broadcast(self, message: Mapping[str, Any]) -> None:
        client = self._client
        if client is None or not self._running:
            raise StorageChannelError("MQTT broadcast channel is not running")
        info = client.publish(
            self._settings.topic,
            encode_broadcast_payload(self._sender_id, message),
            qos=1,
        )
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise StorageChannelError(f"MQTT publish failed: rc={info.rc}")

    def start(self) -> None:
        """Connect, subscribe and start the network loop thread."""
        self.stop()
        settings = self._settings
        self._logger.debug(
            "MQTT broadcast start requested host=%s port=%s topic=%s sender=%s",
            settings.broker_host,
            settings.broker_port,
            settings.topic,
            self._sender_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=f"ampstorage_{self._sender_id}",
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if settings.username:
            client.username_pw_set(settings.username, settings.password)
        if settings.tls:
            client.tls_set()

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected, subscribing topic=%s", settings.topic)
            c.subscribe(settings.topic, qos=1)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            self._handle_payload(msg.payload)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        try:
            client.connect(settings.broker_host, settings.broker_port, keepalive=settings.keepalive)
        except OSError as exc:
            raise StorageChannelError(f"MQTT connect to {settings.broker_host} failed: {exc}") from exc
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Stop and disconnect the current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def _handle_payload(self, payload: bytes) -> None:
        """Runs on the paho network thread."""
        try:
            sender, message = decode_broadcast_payload(payload)
        except (ValueError, StorageChannelError):
            self._logger.debug("MQTT broadcast parse failure", exc_info=True)
            return
        if sender == self._sender_id:
            return
        self._loop.call_soon_threadsafe(self._dispatch, message)

    def _dispatch(self, message: dict[str, Any]) -> None:
        for handler in list(self._handlers):
            try:
                handler(message)
            except Exception:
                self._logger.debug("Broadcast handler failed", exc_info=True)
