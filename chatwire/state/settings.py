"""Transport settings (dataclasses only)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TransportSettings:
    url: str
    reconnect_attempts: int
    reconnect_delay: float
    reconnect_delay_max: float
    heartbeat_interval: float
    heartbeat_grace: float
    timeout: float
    request_timeout: float
    max_message_bytes: int


@dataclass(frozen=True, slots=True)
class LimitsSettings:
    max_sends_per_window: int
    send_window_seconds: float


@dataclass(frozen=True, slots=True)
class AppSettings:
    transport: TransportSettings
    limits: LimitsSettings


__all__ = [
    "AppSettings",
    "LimitsSettings",
    "TransportSettings",
]
