"""
Signing key models.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# 0001-01-01T00:00:00Z and 9999-12-31T23:59:59.999Z, the range datetime can represent
MIN_EXPIRATION_MILLIS = -62135596800000
MAX_EXPIRATION_MILLIS = 253402300799999


class RawSigningKey(BaseModel):
    """One element of the published ``keys`` array."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    key_value: str = Field(alias="keyValue", min_length=1)
    protocol_version: str = Field(alias="protocolVersion", min_length=1)
    # Epoch milliseconds, sent as a numeric string; any integer is accepted
    key_expiration: int = Field(default=0, alias="keyExpiration")

    @field_validator("key_value")
    @classmethod
    def validate_base64(cls, v: str) -> str:
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("keyValue is not valid base64") from exc
        return v


class RawKeyDocument(BaseModel):
    """The published key document."""

    model_config = ConfigDict(extra="ignore")

    keys: List[RawSigningKey]


@dataclass(frozen=True)
class SigningKey:
    """A published signing key; ``expiration`` of None never expires."""

    value: str
    protocol_version: str
    expiration: Optional[datetime] = None

    @classmethod
    def from_raw(cls, raw: RawSigningKey) -> "SigningKey":
        # 0 and instants past the datetime range never expire; instants before
        # it are clamped to the earliest one, which has always passed
        expiration = None
        if raw.key_expiration and raw.key_expiration <= MAX_EXPIRATION_MILLIS:
            millis = max(raw.key_expiration, MIN_EXPIRATION_MILLIS)
            expiration = datetime.fromtimestamp(0, timezone.utc) + timedelta(milliseconds=millis)
        return cls(value=raw.key_value, protocol_version=raw.protocol_version, expiration=expiration)

    def is_valid(self, now: datetime) -> bool:
        return self.expiration is None or self.expiration > now


@dataclass(frozen=True)
class KeySnapshot:
    """Immutable view of the keys published at one refresh."""

    by_protocol_version: Mapping[str, Tuple[str, ...]]
    captured_at: datetime

    def __post_init__(self) -> None:
        frozen = {version: tuple(values) for version, values in self.by_protocol_version.items()}
        object.__setattr__(self, "by_protocol_version", MappingProxyType(frozen))

    def keys_for(self, protocol_version: str) -> Optional[Tuple[str, ...]]:
        return self.by_protocol_version.get(protocol_version)

    @property
    def key_count(self) -> int:
        return sum(len(values) for values in self.by_protocol_version.values())


class FreshnessSource(str, Enum):
    """Where the current freshness window came from."""

    DEFAULT = "default"
    SERVER_HINT = "server_hint"


@dataclass(frozen=True)
class FreshnessWindow:
    """How long a snapshot stays fresh after it was committed."""

    duration: timedelta
    source: FreshnessSource = field(default=FreshnessSource.DEFAULT)
