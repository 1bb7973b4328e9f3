"""Inbound frame parsing/validation for the chat envelope."""

from __future__ import annotations

from typing import Any

import orjson

from chatwire.errors import ProtocolError
from chatwire.config.protocol import (
    WS_KEY_ID,
    WS_KEY_DATA,
    WS_KEY_TYPE,
    INBOUND_TYPES,
    WS_KEY_METADATA,
)

from .envelope import Envelope


def parse_envelope(raw: str | bytes, *, known_types: frozenset[str] = INBOUND_TYPES) -> Envelope:
    try:
        msg = orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        raise ProtocolError(f"invalid JSON: {exc}") from exc

    if not isinstance(msg, dict):
        raise ProtocolError("message must be a JSON object")

    msg_type = msg.get(WS_KEY_TYPE)
    if not isinstance(msg_type, str) or not msg_type.strip():
        raise ProtocolError("message missing non-empty 'type'")
    msg_type = msg_type.strip()
    if msg_type not in known_types:
        raise ProtocolError("unrecognized message type", msg_type=msg_type)

    msg_id: Any = msg.get(WS_KEY_ID)
    if msg_id is not None and not isinstance(msg_id, str):
        raise ProtocolError("message 'id' must be a string", msg_type=msg_type)

    data = msg.get(WS_KEY_DATA)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ProtocolError("message 'data' must be an object", msg_type=msg_type)

    metadata = msg.get(WS_KEY_METADATA)
    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise ProtocolError("message 'metadata' must be an object", msg_type=msg_type)

    return Envelope(type=msg_type, data=data, id=(msg_id.strip() or None) if msg_id else None, metadata=metadata)


__all__ = ["parse_envelope"]
