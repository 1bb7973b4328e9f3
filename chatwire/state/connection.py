"""Connection state owned by the socket supervisor."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ConnectionStatus(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ConnectionSnapshot:
    status: ConnectionStatus
    client_id: str
    session_id: str | None
    conv_id: str | None
    connected_at: float | None
    last_message_at: float | None
    messages_sent: int
    messages_received: int
    reconnect_count: int


@dataclass(slots=True)
class ConnectionState:
    """Mutable per-session connection record.

    Only the supervisor writes `status`; the dispatcher fills in the
    server-assigned identity fields.
    """

    client_id: str
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    session_id: str | None = None
    conv_id: str | None = None
    connected_at: float | None = None
    last_message_at: float | None = None
    messages_sent: int = 0
    messages_received: int = 0
    reconnect_count: int = 0

    def snapshot(self) -> ConnectionSnapshot:
        return ConnectionSnapshot(
            status=self.status,
            client_id=self.client_id,
            session_id=self.session_id,
            conv_id=self.conv_id,
            connected_at=self.connected_at,
            last_message_at=self.last_message_at,
            messages_sent=self.messages_sent,
            messages_received=self.messages_received,
            reconnect_count=self.reconnect_count,
        )


__all__ = ["ConnectionSnapshot", "ConnectionState", "ConnectionStatus"]
