from .bus import EventBus, Subscription
from .types import (
    ToolCall,
    ToolResult,
    FileContent,
    RateLimited,
    StatusUpdate,
    PartialMessage,
    RequestExpired,
    TransportEvent,
    ControlResponse,
    MessageComplete,
    FileListResponse,
    CommunicationError,
    FileUploadResponse,
    ConnectionStateChanged,
)

__all__ = [
    "CommunicationError",
    "ConnectionStateChanged",
    "ControlResponse",
    "EventBus",
    "FileContent",
    "FileListResponse",
    "FileUploadResponse",
    "MessageComplete",
    "PartialMessage",
    "RateLimited",
    "RequestExpired",
    "StatusUpdate",
    "Subscription",
    "ToolCall",
    "ToolResult",
    "TransportEvent",
]
