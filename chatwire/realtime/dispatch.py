"""Dispatch handlers for inbound chat envelopes."""

from __future__ import annotations

import logging
from typing import Any
from dataclasses import replace, dataclass
from collections.abc import Callable, Awaitable

from chatwire.events.bus import EventBus
from chatwire.errors import ProtocolError
from chatwire.protocol.envelope import Envelope
from chatwire.protocol.parser import parse_envelope
from chatwire.state.connection import ConnectionState
from chatwire.handlers.correlation import CorrelationTable
from chatwire.config.protocol import (
    WS_TYPE_PING,
    WS_TYPE_PONG,
    RESPONSE_KINDS,
    WS_TYPE_ERROR,
    WS_TYPE_STATUS,
    WS_ERROR_UNKNOWN,
    STATUS_CONNECTED,
    WS_TYPE_LLM_CHUNK,
    WS_TYPE_TOOL_CALL,
    WS_TYPE_RATE_LIMIT,
    WS_TYPE_TOOL_RESULT,
    KIND_CONTROL_PREFIX,
    WS_TYPE_FILE_CONTENT,
    WS_TYPE_LLM_COMPLETE,
    CONTROL_STATUS_TO_TYPE,
    WS_TYPE_CONTROL_RESPONSE,
    WS_TYPE_FILE_LIST_RESPONSE,
    WS_TYPE_FILE_UPLOAD_RESPONSE,
)
from chatwire.events.types import (
    ToolCall,
    ToolResult,
    FileContent,
    RateLimited,
    StatusUpdate,
    ControlResponse,
    FileListResponse,
    CommunicationError,
    FileUploadResponse,
)

from .reassembler import StreamReassembler

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DispatchContext:
    bus: EventBus
    reassembler: StreamReassembler
    correlation: CorrelationTable
    connection: ConnectionState
    send_pong: Callable[[str | None], Awaitable[None]]


HandlerFn = Callable[[DispatchContext, Envelope], Awaitable[None]]


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _response_id(envelope: Envelope) -> str | None:
    return envelope.id or _optional_str(envelope.data.get("requestId"))


async def _settle_and_publish(ctx: DispatchContext, event: Any, request_id: str | None, kind: str | None) -> None:
    """Resolve the matching pending request (if any) and publish once.

    A response whose id already left the table is a late duplicate and is
    dropped. A response with no known id settles the oldest pending request
    of its kind, which covers servers that answer without echoing the id.
    """
    if request_id is not None and ctx.correlation.resolve(request_id, event):
        await ctx.bus.publish(event)
        return
    if ctx.correlation.is_settled(request_id):
        logger.debug("late response dropped id=%s type=%s", request_id, type(event).__name__)
        return
    if kind is not None:
        resolved = ctx.correlation.resolve_oldest(kind, lambda rid: replace(event, request_id=rid))
        if resolved is not None:
            _rid, event = resolved
    await ctx.bus.publish(event)


async def _handle_llm_chunk(ctx: DispatchContext, envelope: Envelope) -> None:
    chunk = envelope.data.get("chunk")
    if chunk is None:
        return
    if not isinstance(chunk, str):
        raise ProtocolError("llm_chunk 'chunk' must be a string", msg_type=envelope.type)
    sequence = envelope.sequence
    if sequence is None and isinstance(envelope.data.get("sequence"), int):
        sequence = envelope.data["sequence"]
    event = ctx.reassembler.accept_fragment(chunk, sequence=sequence, source_id=envelope.id)
    if event is not None:
        await ctx.bus.publish(event)


async def _handle_llm_complete(ctx: DispatchContext, envelope: Envelope) -> None:
    full_text = envelope.data.get("fullText")
    if full_text is not None and not isinstance(full_text, str):
        raise ProtocolError("llm_complete 'fullText' must be a string", msg_type=envelope.type)
    message_id = envelope.id or _optional_str(envelope.data.get("messageId"))
    event = ctx.reassembler.accept_completion(full_text or "", message_id)
    if event is not None:
        await ctx.bus.publish(event)


async def _handle_tool_call(ctx: DispatchContext, envelope: Envelope) -> None:
    data = envelope.data
    await ctx.bus.publish(
        ToolCall(
            tool_call_id=_optional_str(data.get("toolCallId")),
            tool_name=_optional_str(data.get("toolName")),
            args=data.get("args"),
            status=_optional_str(data.get("status")),
        )
    )


async def _handle_tool_result(ctx: DispatchContext, envelope: Envelope) -> None:
    data = envelope.data
    await ctx.bus.publish(ToolResult(tool_call_id=_optional_str(data.get("toolCallId")), result=data.get("result")))


async def _handle_control_response(ctx: DispatchContext, envelope: Envelope) -> None:
    data = envelope.data
    status = _optional_str(data.get("status"))
    control_type = _optional_str(data.get("type"))
    if control_type == "history_response":
        control_type = CONTROL_STATUS_TO_TYPE["history"]
    if control_type is None and status is not None:
        control_type = CONTROL_STATUS_TO_TYPE.get(status)
    event = ControlResponse(request_id=_response_id(envelope), control_type=control_type, status=status, data=data)
    kind = f"{KIND_CONTROL_PREFIX}{control_type}" if control_type else None
    await _settle_and_publish(ctx, event, event.request_id, kind)


async def _handle_file_upload_response(ctx: DispatchContext, envelope: Envelope) -> None:
    event = FileUploadResponse(request_id=_response_id(envelope), data=envelope.data)
    await _settle_and_publish(ctx, event, event.request_id, RESPONSE_KINDS[envelope.type])


async def _handle_file_list_response(ctx: DispatchContext, envelope: Envelope) -> None:
    event = FileListResponse(request_id=_response_id(envelope), data=envelope.data)
    await _settle_and_publish(ctx, event, event.request_id, RESPONSE_KINDS[envelope.type])


async def _handle_file_content(ctx: DispatchContext, envelope: Envelope) -> None:
    event = FileContent(request_id=_response_id(envelope), data=envelope.data)
    await _settle_and_publish(ctx, event, event.request_id, RESPONSE_KINDS[envelope.type])


async def _handle_status(ctx: DispatchContext, envelope: Envelope) -> None:
    data = envelope.data
    status = _optional_str(data.get("status"))
    if status == STATUS_CONNECTED:
        # Identity only; connection status itself belongs to the supervisor.
        session_id = _optional_str(data.get("sessionId")) or _optional_str(envelope.metadata.get("sessionId"))
        conv_id = _optional_str(data.get("convId")) or _optional_str(envelope.metadata.get("convId"))
        if session_id:
            ctx.connection.session_id = session_id
        if conv_id:
            ctx.connection.conv_id = conv_id
    await ctx.bus.publish(StatusUpdate(status=status, message=_optional_str(data.get("message")), data=data))


async def _handle_error(ctx: DispatchContext, envelope: Envelope) -> None:
    data = envelope.data
    await ctx.bus.publish(
        CommunicationError(
            code=_optional_str(data.get("code")) or WS_ERROR_UNKNOWN,
            message=_optional_str(data.get("message")) or "Unknown error",
            recoverable=bool(data.get("recoverable", True)),
        )
    )


async def _handle_rate_limit(ctx: DispatchContext, envelope: Envelope) -> None:
    retry_after = envelope.data.get("retryAfter")
    if not isinstance(retry_after, int | float) or isinstance(retry_after, bool):
        retry_after = None
    await ctx.bus.publish(RateLimited(retry_after=float(retry_after) if retry_after is not None else None))


async def _handle_ping(ctx: DispatchContext, envelope: Envelope) -> None:
    await ctx.send_pong(envelope.id)


async def _handle_pong(_ctx: DispatchContext, _envelope: Envelope) -> None:
    # Liveness was already refreshed when the frame arrived.
    return


HANDLERS: dict[str, HandlerFn] = {
    WS_TYPE_LLM_CHUNK: _handle_llm_chunk,
    WS_TYPE_LLM_COMPLETE: _handle_llm_complete,
    WS_TYPE_TOOL_CALL: _handle_tool_call,
    WS_TYPE_TOOL_RESULT: _handle_tool_result,
    WS_TYPE_CONTROL_RESPONSE: _handle_control_response,
    WS_TYPE_FILE_UPLOAD_RESPONSE: _handle_file_upload_response,
    WS_TYPE_FILE_LIST_RESPONSE: _handle_file_list_response,
    WS_TYPE_FILE_CONTENT: _handle_file_content,
    WS_TYPE_STATUS: _handle_status,
    WS_TYPE_ERROR: _handle_error,
    WS_TYPE_RATE_LIMIT: _handle_rate_limit,
    WS_TYPE_PING: _handle_ping,
    WS_TYPE_PONG: _handle_pong,
}


async def dispatch_frame(ctx: DispatchContext, raw: str | bytes) -> None:
    try:
        envelope = parse_envelope(raw)
        handler = HANDLERS.get(envelope.type)
        if handler is None:
            raise ProtocolError("no handler for message type", msg_type=envelope.type)
        await handler(ctx, envelope)
    except ProtocolError as exc:
        logger.warning("dropping inbound frame: %s", exc)


__all__ = ["HANDLERS", "DispatchContext", "dispatch_frame"]
