"""Wire envelope type and outbound encoding."""

from __future__ import annotations

import time
import uuid
from typing import Any
from dataclasses import dataclass, field

import orjson

from chatwire.config.protocol import (
    WS_KEY_ID,
    WS_KEY_DATA,
    WS_KEY_TYPE,
    WS_KEY_METADATA,
    WS_KEY_SEQUENCE,
    WS_KEY_CLIENT_ID,
    WS_KEY_TIMESTAMP,
    MESSAGE_ID_PREFIX,
)


def now_ms() -> int:
    return int(time.time() * 1000)


def new_message_id() -> str:
    return f"{MESSAGE_ID_PREFIX}{uuid.uuid4().hex}"


@dataclass(frozen=True, slots=True)
class Envelope:
    type: str
    data: dict[str, Any] = field(default_factory=dict)
    id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def timestamp(self) -> int | None:
        ts = self.metadata.get(WS_KEY_TIMESTAMP)
        return int(ts) if isinstance(ts, int | float) and not isinstance(ts, bool) else None

    @property
    def sequence(self) -> int | None:
        seq = self.metadata.get(WS_KEY_SEQUENCE)
        return int(seq) if isinstance(seq, int | float) and not isinstance(seq, bool) else None

    def to_wire(self) -> dict[str, Any]:
        out: dict[str, Any] = {WS_KEY_TYPE: self.type}
        if self.id is not None:
            out[WS_KEY_ID] = self.id
        out[WS_KEY_DATA] = self.data
        out[WS_KEY_METADATA] = self.metadata
        return out


def build_envelope(
    msg_type: str,
    data: dict[str, Any] | None = None,
    *,
    client_id: str | None = None,
    message_id: str | None = None,
) -> Envelope:
    """Build an outbound envelope with a fresh id and a millisecond timestamp."""
    metadata: dict[str, Any] = {WS_KEY_TIMESTAMP: now_ms()}
    if client_id:
        metadata[WS_KEY_CLIENT_ID] = client_id
    return Envelope(
        type=msg_type,
        data=dict(data or {}),
        id=message_id or new_message_id(),
        metadata=metadata,
    )


def encode_envelope(envelope: Envelope) -> str:
    return orjson.dumps(envelope.to_wire()).decode("utf-8")


__all__ = ["Envelope", "build_envelope", "encode_envelope", "new_message_id", "now_ms"]
