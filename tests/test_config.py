from __future__ import annotations

import pytest

from ampstorage.config import StorageConfig
from ampstorage.exceptions import StorageConfigError


def test_defaults() -> None:
    config = StorageConfig()
    assert config.capacity == 8
    assert config.slot_prefix == "amp-store:"
    assert config.cross_context_invalidation is True
    assert config.mqtt_topic == "amp-storage/broadcast"


@pytest.mark.parametrize("capacity", [0, -3])
def test_rejects_invalid_capacity(capacity: int) -> None:
    with pytest.raises(StorageConfigError):
        StorageConfig(capacity=capacity)


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AMP_STORAGE_CAPACITY", "4")
    monkeypatch.setenv("AMP_STORAGE_INVALIDATION", "off")
    monkeypatch.setenv("AMP_STORAGE_SLOT_DIR", "/var/lib/amp")
    monkeypatch.setenv("AMP_STORAGE_MQTT_HOST", "broker.local")
    monkeypatch.setenv("AMP_STORAGE_MQTT_PORT", "8883")
    monkeypatch.setenv("AMP_STORAGE_MQTT_TLS", "yes")

    config = StorageConfig.from_env()

    assert config.capacity == 4
    assert config.cross_context_invalidation is False
    assert config.slot_directory == "/var/lib/amp"
    assert config.mqtt_host == "broker.local"
    assert config.mqtt_port == 8883
    assert config.mqtt_tls is True


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AMP_STORAGE_CAPACITY", "4")
    monkeypatch.setenv("AMP_STORAGE_INVALIDATION", "0")

    config = StorageConfig.from_env(capacity=2, cross_context_invalidation=True)

    assert config.capacity == 2
    assert config.cross_context_invalidation is True


def test_from_env_unknown_bool_uses_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AMP_STORAGE_INVALIDATION", "maybe")
    assert StorageConfig.from_env().cross_context_invalidation is True


def test_from_env_rejects_non_numeric(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AMP_STORAGE_CAPACITY", "lots")
    with pytest.raises(StorageConfigError):
        StorageConfig.from_env()
