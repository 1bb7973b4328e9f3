from .turn import TurnSnapshot, StreamingTurn
from .snapshot import TransportSnapshot
from .pending import PendingRequest
from .settings import AppSettings, LimitsSettings, TransportSettings
from .connection import ConnectionState, ConnectionStatus, ConnectionSnapshot

__all__ = [
    "AppSettings",
    "ConnectionSnapshot",
    "ConnectionState",
    "ConnectionStatus",
    "LimitsSettings",
    "PendingRequest",
    "StreamingTurn",
    "TransportSettings",
    "TransportSnapshot",
    "TurnSnapshot",
]
