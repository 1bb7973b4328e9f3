"""Point-in-time view of the engine for (re)subscribing consumers."""

from __future__ import annotations

from dataclasses import dataclass

from .turn import TurnSnapshot
from .connection import ConnectionSnapshot


@dataclass(frozen=True, slots=True)
class TransportSnapshot:
    connection: ConnectionSnapshot
    turn: TurnSnapshot | None
    pending_requests: int
    history_loading: bool


__all__ = ["TransportSnapshot"]
