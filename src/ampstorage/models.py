"""Pydantic models for persisted entries and broadcast messages."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator

from ampstorage._constants import RESET_MESSAGE_TYPE


class StoreEntry(BaseModel):
    """A single stored value and the monotonic time it was written.

    Serialized with the short ``v`` / ``t`` keys to keep blobs small.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    value: JsonValue = Field(alias="v")
    timestamp: float = Field(default=0.0, alias="t")


class ResetMessage(BaseModel):
    """Broadcast telling other contexts to drop their cached store."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["amp-storage-reset"] = RESET_MESSAGE_TYPE
    origin: str

    @field_validator("origin")
    @classmethod
    def _require_origin(cls, value: str) -> str:
        if not value:
            raise ValueError("origin must be non-empty")
        return value
