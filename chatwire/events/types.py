"""Typed domain events published on the event bus."""

from __future__ import annotations

from typing import Any, ClassVar
from dataclasses import dataclass, field

from chatwire.state.connection import ConnectionStatus, ConnectionSnapshot


@dataclass(frozen=True, slots=True)
class ConnectionStateChanged:
    kind: ClassVar[str] = "connection"

    status: ConnectionStatus
    previous: ConnectionStatus
    snapshot: ConnectionSnapshot
    attempt: int | None = None
    max_attempts: int | None = None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class PartialMessage:
    """Full accumulated text of the open turn; consumers replace by `stream_id`."""

    kind: ClassVar[str] = "partial_message"

    stream_id: str
    text: str
    sequence: int | None = None


@dataclass(frozen=True, slots=True)
class MessageComplete:
    kind: ClassVar[str] = "message_complete"

    stream_id: str
    text: str
    message_id: str | None = None


@dataclass(frozen=True, slots=True)
class ToolCall:
    kind: ClassVar[str] = "tool_call"

    tool_call_id: str | None
    tool_name: str | None
    args: Any = None
    status: str | None = None


@dataclass(frozen=True, slots=True)
class ToolResult:
    kind: ClassVar[str] = "tool_result"

    tool_call_id: str | None
    result: Any = None


@dataclass(frozen=True, slots=True)
class ControlResponse:
    kind: ClassVar[str] = "control_response"

    request_id: str | None
    control_type: str | None
    status: str | None
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_history(self) -> bool:
        return self.status == "history" or self.data.get("type") == "history_response"

    @property
    def history(self) -> list[Any]:
        """History entries; empty for the status-only "no history" response."""
        raw = self.data.get("history")
        if isinstance(raw, dict):
            raw = raw.get("messages")
        return list(raw) if isinstance(raw, list) else []


@dataclass(frozen=True, slots=True)
class FileUploadResponse:
    kind: ClassVar[str] = "file_upload_response"

    request_id: str | None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class FileListResponse:
    kind: ClassVar[str] = "file_list_response"

    request_id: str | None
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def files(self) -> list[Any]:
        raw = self.data.get("files")
        return list(raw) if isinstance(raw, list) else []


@dataclass(frozen=True, slots=True)
class FileContent:
    kind: ClassVar[str] = "file_content"

    request_id: str | None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class StatusUpdate:
    """Server `status` frame (processing, complete, file_updated, connected)."""

    kind: ClassVar[str] = "status"

    status: str | None
    message: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CommunicationError:
    kind: ClassVar[str] = "communication_error"

    code: str
    message: str
    recoverable: bool = True


@dataclass(frozen=True, slots=True)
class RateLimited:
    kind: ClassVar[str] = "rate_limit"

    retry_after: float | None = None


@dataclass(frozen=True, slots=True)
class RequestExpired:
    """A correlated request hit its timeout with no response."""

    kind: ClassVar[str] = "request_expired"

    request_id: str
    request_kind: str


TransportEvent = (
    ConnectionStateChanged
    | PartialMessage
    | MessageComplete
    | ToolCall
    | ToolResult
    | ControlResponse
    | FileUploadResponse
    | FileListResponse
    | FileContent
    | StatusUpdate
    | CommunicationError
    | RateLimited
    | RequestExpired
)

__all__ = [
    "CommunicationError",
    "ConnectionStateChanged",
    "ControlResponse",
    "FileContent",
    "FileListResponse",
    "FileUploadResponse",
    "MessageComplete",
    "PartialMessage",
    "RateLimited",
    "RequestExpired",
    "StatusUpdate",
    "ToolCall",
    "ToolResult",
    "TransportEvent",
]
