"""Load transport settings.

Configuration values are resolved from the environment in `chatwire/config/*`
and exposed here as the structured dataclasses the engine requires. Explicit
keyword overrides win over the environment (the CLI passes its flags here).
"""

from __future__ import annotations

from typing import Any
from dataclasses import replace

from chatwire.state.settings import AppSettings, LimitsSettings, TransportSettings
from chatwire.config.limits import CHATWIRE_SEND_WINDOW_SECONDS, CHATWIRE_MAX_SENDS_PER_WINDOW
from chatwire.config.transport import (
    CHATWIRE_URL,
    CHATWIRE_REQUEST_TIMEOUT_S,
    CHATWIRE_CONNECT_TIMEOUT_S,
    CHATWIRE_HEARTBEAT_GRACE_S,
    CHATWIRE_MAX_MESSAGE_BYTES,
    CHATWIRE_RECONNECT_DELAY_S,
    CHATWIRE_RECONNECT_ATTEMPTS,
    CHATWIRE_HEARTBEAT_INTERVAL_S,
    CHATWIRE_RECONNECT_DELAY_MAX_S,
)


def load_settings(**transport_overrides: Any) -> AppSettings:
    transport = TransportSettings(
        url=CHATWIRE_URL,
        reconnect_attempts=CHATWIRE_RECONNECT_ATTEMPTS,
        reconnect_delay=CHATWIRE_RECONNECT_DELAY_S,
        reconnect_delay_max=CHATWIRE_RECONNECT_DELAY_MAX_S,
        heartbeat_interval=CHATWIRE_HEARTBEAT_INTERVAL_S,
        heartbeat_grace=CHATWIRE_HEARTBEAT_GRACE_S,
        timeout=CHATWIRE_CONNECT_TIMEOUT_S,
        request_timeout=CHATWIRE_REQUEST_TIMEOUT_S,
        max_message_bytes=CHATWIRE_MAX_MESSAGE_BYTES,
    )
    overrides = {k: v for k, v in transport_overrides.items() if v is not None}
    if overrides:
        transport = replace(transport, **overrides)
    return AppSettings(
        transport=transport,
        limits=LimitsSettings(
            max_sends_per_window=CHATWIRE_MAX_SENDS_PER_WINDOW,
            send_window_seconds=CHATWIRE_SEND_WINDOW_SECONDS,
        ),
    )


__all__ = ["load_settings"]
