"""Internal constants shared across the library."""

#: Prefix of the durable local slot holding an origin's blob.
STORE_KEY_PREFIX = "amp-store:"

#: Default maximum number of keys held by a store.
DEFAULT_CAPACITY = 8

#: ``type`` field of the broadcast sent after every successful mutation.
RESET_MESSAGE_TYPE = "amp-storage-reset"

# Host messaging channel request names.
LOAD_STORE_MESSAGE = "loadStore"
SAVE_STORE_MESSAGE = "saveStore"

DEFAULT_MQTT_TOPIC = "amp-storage/broadcast"
DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443, "ws": 80, "wss": 443}
