"""Storage configuration for ampstorage."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from ampstorage._constants import DEFAULT_CAPACITY, DEFAULT_MQTT_TOPIC, STORE_KEY_PREFIX
from ampstorage.exceptions import StorageConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class StorageConfig:
    """Storage configuration.

    Parameters
    ----------
    capacity : int
        Maximum number of keys kept per origin.  The oldest entry is
        evicted when a new key would exceed it.  Never persisted; it is
        reapplied every time a store is loaded.
    slot_prefix : str
        Prefix of the durable local slot name.  The slot for an origin is
        ``slot_prefix + origin``.
    cross_context_invalidation : bool
        Register a broadcast listener that drops the cached store when
        another context writes to the same origin.
    slot_directory : str or None
        Directory used by :class:`~ampstorage.slots.FileSlotStorage`.
    host_url : str or None
        Base URL of the host messaging endpoint.  When set, stores are
        loaded and saved through the host instead of local slots.
    host_timeout : float
        Total timeout in seconds for one host channel request.
    mqtt_host : str or None
        MQTT broker host used for cross-process broadcasts.
    mqtt_port : int
        MQTT broker port.
    mqtt_topic : str
        Topic carrying reset broadcasts.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_username, mqtt_password : str or None
        Optional broker credentials.
    mqtt_tls : bool
        Enable TLS for the broker connection.
    """

    capacity: int = DEFAULT_CAPACITY
    slot_prefix: str = STORE_KEY_PREFIX
    cross_context_invalidation: bool = True
    slot_directory: str | None = None
    host_url: str | None = None
    host_timeout: float = 10.0
    mqtt_host: str | None = None
    mqtt_port: int = 1883
    mqtt_topic: str = DEFAULT_MQTT_TOPIC
    mqtt_keepalive: int = 60
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_tls: bool = False

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise StorageConfigError(f"capacity must be at least 1, got {self.capacity}")
        if not self.slot_prefix:
            raise StorageConfigError("slot_prefix must be non-empty")

    @classmethod
    def from_env(cls, **overrides: Any) -> StorageConfig:
        """Create configuration from ``AMP_STORAGE_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "AMP_STORAGE_SLOT_PREFIX": "slot_prefix",
            "AMP_STORAGE_SLOT_DIR": "slot_directory",
            "AMP_STORAGE_HOST_URL": "host_url",
            "AMP_STORAGE_MQTT_HOST": "mqtt_host",
            "AMP_STORAGE_MQTT_TOPIC": "mqtt_topic",
            "AMP_STORAGE_MQTT_USERNAME": "mqtt_username",
            "AMP_STORAGE_MQTT_PASSWORD": "mqtt_password",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        try:
            capacity_env = env.get("AMP_STORAGE_CAPACITY")
            if capacity_env is not None and "capacity" not in overrides:
                config_kwargs["capacity"] = int(capacity_env)

            timeout_env = env.get("AMP_STORAGE_HOST_TIMEOUT")
            if timeout_env is not None and "host_timeout" not in overrides:
                config_kwargs["host_timeout"] = float(timeout_env)

            port_env = env.get("AMP_STORAGE_MQTT_PORT")
            if port_env is not None and "mqtt_port" not in overrides:
                config_kwargs["mqtt_port"] = int(port_env)

            keepalive_env = env.get("AMP_STORAGE_MQTT_KEEPALIVE")
            if keepalive_env is not None and "mqtt_keepalive" not in overrides:
                config_kwargs["mqtt_keepalive"] = int(keepalive_env)
        except ValueError as exc:
            raise StorageConfigError(f"Invalid numeric AMP_STORAGE_* value: {exc}") from exc

        if "cross_context_invalidation" not in overrides:
            config_kwargs["cross_context_invalidation"] = _env_bool(
                env.get("AMP_STORAGE_INVALIDATION"),
                True,
            )

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("AMP_STORAGE_MQTT_TLS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
