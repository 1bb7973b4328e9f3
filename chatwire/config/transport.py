"""Transport settings (env-resolved constants only).

The engine itself takes no defaults; these values are what the calling layer
(`chatwire.runtime.settings.load_settings`) supplies when nothing else does.
"""

from __future__ import annotations

import os


def _get_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return float(default)
    try:
        return float(raw)
    except Exception:
        return float(default)


def _get_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except Exception:
        return int(default)


CHATWIRE_URL: str = (os.getenv("CHATWIRE_URL") or "").strip() or "ws://localhost:5040/api/ws"

# Reconnect budget per outage. 0 disables automatic reconnection.
CHATWIRE_RECONNECT_ATTEMPTS: int = max(0, _get_int("CHATWIRE_RECONNECT_ATTEMPTS", 5))

# Base delay before the first reconnect; doubles per attempt up to the cap.
CHATWIRE_RECONNECT_DELAY_S: float = max(0.0, _get_float("CHATWIRE_RECONNECT_DELAY_S", 1.0))
CHATWIRE_RECONNECT_DELAY_MAX_S: float = max(
    CHATWIRE_RECONNECT_DELAY_S, _get_float("CHATWIRE_RECONNECT_DELAY_MAX_S", 30.0)
)

CHATWIRE_HEARTBEAT_INTERVAL_S: float = _get_float("CHATWIRE_HEARTBEAT_INTERVAL_S", 30.0)
if CHATWIRE_HEARTBEAT_INTERVAL_S <= 0:
    CHATWIRE_HEARTBEAT_INTERVAL_S = 30.0

# Silence tolerated past one heartbeat interval before the socket is declared
# half-open. Larger values mean fewer false reconnects but slower detection.
CHATWIRE_HEARTBEAT_GRACE_S: float = max(0.0, _get_float("CHATWIRE_HEARTBEAT_GRACE_S", 10.0))

CHATWIRE_CONNECT_TIMEOUT_S: float = _get_float("CHATWIRE_CONNECT_TIMEOUT_S", 30.0)
if CHATWIRE_CONNECT_TIMEOUT_S <= 0:
    CHATWIRE_CONNECT_TIMEOUT_S = 30.0

# Upper bound on waiting for a correlated response (history, file operations).
CHATWIRE_REQUEST_TIMEOUT_S: float = _get_float("CHATWIRE_REQUEST_TIMEOUT_S", 10.0)
if CHATWIRE_REQUEST_TIMEOUT_S <= 0:
    CHATWIRE_REQUEST_TIMEOUT_S = 10.0

# Maximum inbound frame size accepted by the websockets client.
CHATWIRE_MAX_MESSAGE_BYTES: int = max(1, _get_int("CHATWIRE_MAX_MESSAGE_BYTES", 32 * 1024 * 1024))

__all__ = [
    "CHATWIRE_CONNECT_TIMEOUT_S",
    "CHATWIRE_HEARTBEAT_GRACE_S",
    "CHATWIRE_HEARTBEAT_INTERVAL_S",
    "CHATWIRE_MAX_MESSAGE_BYTES",
    "CHATWIRE_RECONNECT_ATTEMPTS",
    "CHATWIRE_RECONNECT_DELAY_MAX_S",
    "CHATWIRE_RECONNECT_DELAY_S",
    "CHATWIRE_REQUEST_TIMEOUT_S",
    "CHATWIRE_URL",
]
