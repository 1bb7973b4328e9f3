"""Wire protocol constants for the chat WebSocket envelope."""

from __future__ import annotations

# Envelope keys
WS_KEY_TYPE = "type"
WS_KEY_ID = "id"
WS_KEY_DATA = "data"
WS_KEY_METADATA = "metadata"
WS_KEY_TIMESTAMP = "timestamp"
WS_KEY_SEQUENCE = "sequence"
WS_KEY_CLIENT_ID = "clientId"

# Outbound (client -> server) types
WS_TYPE_USER_MESSAGE = "user_message"
WS_TYPE_CONTROL = "control"
WS_TYPE_FILE_UPLOAD = "file_upload"
WS_TYPE_FILE_LIST = "file_list"
WS_TYPE_FILE_REQUEST = "file_request"

# Inbound (server -> client) types
WS_TYPE_LLM_CHUNK = "llm_chunk"
WS_TYPE_LLM_COMPLETE = "llm_complete"
WS_TYPE_TOOL_CALL = "tool_call"
WS_TYPE_TOOL_RESULT = "tool_result"
WS_TYPE_CONTROL_RESPONSE = "control_response"
WS_TYPE_STATUS = "status"
WS_TYPE_ERROR = "error"
WS_TYPE_RATE_LIMIT = "rate_limit"
WS_TYPE_FILE_UPLOAD_RESPONSE = "file_upload_response"
WS_TYPE_FILE_LIST_RESPONSE = "file_list_response"
WS_TYPE_FILE_CONTENT = "file_content"

# Both directions
WS_TYPE_PING = "ping"
WS_TYPE_PONG = "pong"

INBOUND_TYPES: frozenset[str] = frozenset({
    WS_TYPE_LLM_CHUNK,
    WS_TYPE_LLM_COMPLETE,
    WS_TYPE_TOOL_CALL,
    WS_TYPE_TOOL_RESULT,
    WS_TYPE_CONTROL_RESPONSE,
    WS_TYPE_STATUS,
    WS_TYPE_ERROR,
    WS_TYPE_RATE_LIMIT,
    WS_TYPE_FILE_UPLOAD_RESPONSE,
    WS_TYPE_FILE_LIST_RESPONSE,
    WS_TYPE_FILE_CONTENT,
    WS_TYPE_PING,
    WS_TYPE_PONG,
})

# Control commands (payload.type of a "control" envelope)
CONTROL_ABORT = "abort"
CONTROL_CLEAR_HISTORY = "clear_history"
CONTROL_GET_HISTORY = "get_history"
CONTROL_GET_STATUS = "get_status"
CONTROL_GET_FILE_CONTEXT = "get_file_context"

CONTROL_TYPES: frozenset[str] = frozenset({
    CONTROL_ABORT,
    CONTROL_CLEAR_HISTORY,
    CONTROL_GET_HISTORY,
    CONTROL_GET_STATUS,
    CONTROL_GET_FILE_CONTEXT,
})

# control_response payload.status values that identify a control kind when the
# response carries no usable id.
CONTROL_STATUS_TO_TYPE: dict[str, str] = {
    "aborted": CONTROL_ABORT,
    "cleared": CONTROL_CLEAR_HISTORY,
    "history": CONTROL_GET_HISTORY,
    "status_info": CONTROL_GET_STATUS,
    "file_context": CONTROL_GET_FILE_CONTEXT,
}

# Server status frame that carries session identity after the socket opens.
STATUS_CONNECTED = "connected"

# Correlation kinds (Pending Request.kind)
KIND_CONTROL_PREFIX = "control:"
KIND_FILE_UPLOAD = "file_upload"
KIND_FILE_LIST = "file_list"
KIND_FILE_REQUEST = "file_request"

# Inbound response type -> correlation kind it settles (control kinds are
# resolved per control type).
RESPONSE_KINDS: dict[str, str] = {
    WS_TYPE_FILE_UPLOAD_RESPONSE: KIND_FILE_UPLOAD,
    WS_TYPE_FILE_LIST_RESPONSE: KIND_FILE_LIST,
    WS_TYPE_FILE_CONTENT: KIND_FILE_REQUEST,
}

# Close codes
WS_CLOSE_CLIENT_REQUEST_CODE = 1000
WS_CLOSE_CLIENT_REQUEST_REASON = "Client disconnect"
WS_CLOSE_HEARTBEAT_CODE = 4000
WS_CLOSE_HEARTBEAT_REASON = "heartbeat timeout"

# Error codes (CommunicationError.code values)
WS_ERROR_UNKNOWN = "UNKNOWN"

# Id prefixes
MESSAGE_ID_PREFIX = "msg_"
STREAM_ID_PREFIX = "stream_"
CLIENT_ID_PREFIX = "client_"

__all__ = [
    "CLIENT_ID_PREFIX",
    "CONTROL_ABORT",
    "CONTROL_CLEAR_HISTORY",
    "CONTROL_GET_FILE_CONTEXT",
    "CONTROL_GET_HISTORY",
    "CONTROL_GET_STATUS",
    "CONTROL_STATUS_TO_TYPE",
    "CONTROL_TYPES",
    "INBOUND_TYPES",
    "KIND_CONTROL_PREFIX",
    "KIND_FILE_LIST",
    "KIND_FILE_REQUEST",
    "KIND_FILE_UPLOAD",
    "MESSAGE_ID_PREFIX",
    "RESPONSE_KINDS",
    "STATUS_CONNECTED",
    "STREAM_ID_PREFIX",
    "WS_CLOSE_CLIENT_REQUEST_CODE",
    "WS_CLOSE_CLIENT_REQUEST_REASON",
    "WS_CLOSE_HEARTBEAT_CODE",
    "WS_CLOSE_HEARTBEAT_REASON",
    "WS_ERROR_UNKNOWN",
    "WS_KEY_CLIENT_ID",
    "WS_KEY_DATA",
    "WS_KEY_ID",
    "WS_KEY_METADATA",
    "WS_KEY_SEQUENCE",
    "WS_KEY_TIMESTAMP",
    "WS_KEY_TYPE",
    "WS_TYPE_CONTROL",
    "WS_TYPE_CONTROL_RESPONSE",
    "WS_TYPE_ERROR",
    "WS_TYPE_FILE_CONTENT",
    "WS_TYPE_FILE_LIST",
    "WS_TYPE_FILE_LIST_RESPONSE",
    "WS_TYPE_FILE_REQUEST",
    "WS_TYPE_FILE_UPLOAD",
    "WS_TYPE_FILE_UPLOAD_RESPONSE",
    "WS_TYPE_LLM_CHUNK",
    "WS_TYPE_LLM_COMPLETE",
    "WS_TYPE_PING",
    "WS_TYPE_PONG",
    "WS_TYPE_RATE_LIMIT",
    "WS_TYPE_STATUS",
    "WS_TYPE_TOOL_CALL",
    "WS_TYPE_TOOL_RESULT",
    "WS_TYPE_USER_MESSAGE",
]
