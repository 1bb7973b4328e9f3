"""Configuration module exports (env-resolved constants only)."""

from .transport import (
    CHATWIRE_URL,
    CHATWIRE_REQUEST_TIMEOUT_S,
    CHATWIRE_CONNECT_TIMEOUT_S,
    CHATWIRE_RECONNECT_ATTEMPTS,
)

__all__ = [
    "CHATWIRE_CONNECT_TIMEOUT_S",
    "CHATWIRE_RECONNECT_ATTEMPTS",
    "CHATWIRE_REQUEST_TIMEOUT_S",
    "CHATWIRE_URL",
]
