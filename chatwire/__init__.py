"""Resilient streaming chat transport over WebSocket."""

from .client import ChatTransport
from .events import EventBus
from .runtime import load_settings, configure_logging
from .state import ConnectionStatus, PendingRequest, TransportSettings
from .errors import (
    ProtocolError,
    RateLimitError,
    NotConnectedError,
    RequestTimeoutError,
    ConnectionClosedError,
    ConnectionFailedError,
    DuplicateDeliveryError,
)

__all__ = [
    "ChatTransport",
    "ConnectionClosedError",
    "ConnectionFailedError",
    "ConnectionStatus",
    "DuplicateDeliveryError",
    "EventBus",
    "NotConnectedError",
    "PendingRequest",
    "ProtocolError",
    "RateLimitError",
    "RequestTimeoutError",
    "TransportSettings",
    "configure_logging",
    "load_settings",
]
