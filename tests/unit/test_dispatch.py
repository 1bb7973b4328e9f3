from __future__ import annotations

import logging

import orjson
import pytest

from chatwire.events.bus import EventBus
from chatwire.state.connection import ConnectionState
from chatwire.handlers.correlation import CorrelationTable
from chatwire.realtime.reassembler import StreamReassembler
from chatwire.realtime.dispatch import DispatchContext, dispatch_frame
from chatwire.events.types import (
    ToolCall,
    RateLimited,
    StatusUpdate,
    PartialMessage,
    ControlResponse,
    MessageComplete,
    FileListResponse,
    CommunicationError,
)

from tests.utils import EventRecorder


class _Harness:
    def __init__(self) -> None:
        self.bus = EventBus()
        self.recorder = EventRecorder(self.bus)
        self.correlation = CorrelationTable()
        self.state = ConnectionState(client_id="client_test")
        self.pongs: list[str | None] = []

        async def send_pong(ping_id: str | None) -> None:
            self.pongs.append(ping_id)

        self.ctx = DispatchContext(
            bus=self.bus,
            reassembler=StreamReassembler(),
            correlation=self.correlation,
            connection=self.state,
            send_pong=send_pong,
        )

    async def feed(self, frame: dict) -> None:
        await dispatch_frame(self.ctx, orjson.dumps(frame))


@pytest.mark.asyncio
async def test_chunks_and_completion_become_one_stream() -> None:
    h = _Harness()
    await h.feed({"type": "llm_chunk", "id": "m1", "data": {"chunk": "Hel"}, "metadata": {"sequence": 0}})
    await h.feed({"type": "llm_chunk", "id": "m1", "data": {"chunk": "lo"}, "metadata": {"sequence": 1}})
    await h.feed({"type": "llm_complete", "id": "m1", "data": {"fullText": "Hello"}})

    partials = h.recorder.of_type(PartialMessage)
    completes = h.recorder.of_type(MessageComplete)
    assert [p.text for p in partials] == ["Hel", "Hello"]
    assert [p.sequence for p in partials] == [0, 1]
    assert len(completes) == 1
    assert completes[0].stream_id == partials[0].stream_id
    assert completes[0].message_id == "m1"


@pytest.mark.asyncio
async def test_control_response_resolves_by_id_once() -> None:
    h = _Harness()
    entry = h.correlation.register("control:get_status", 5.0)
    frame = {
        "type": "control_response",
        "id": entry.request_id,
        "data": {"type": "get_status", "status": "status_info", "isProcessing": False},
    }
    await h.feed(frame)
    await h.feed(frame)

    response = await entry
    assert isinstance(response, ControlResponse)
    assert response.control_type == "get_status"
    assert response.data["isProcessing"] is False
    assert len(h.recorder.of_type(ControlResponse)) == 1


@pytest.mark.asyncio
async def test_status_only_history_response_settles_oldest_history_request() -> None:
    h = _Harness()
    entry = h.correlation.register("control:get_history", 5.0)
    await h.feed({"type": "control_response", "data": {"status": "history"}})

    response = await entry
    assert response.request_id == entry.request_id
    assert response.is_history
    assert response.history == []
    assert not h.correlation.has_pending("control:get_history")


@pytest.mark.asyncio
async def test_history_payload_is_exposed() -> None:
    h = _Harness()
    entry = h.correlation.register("control:get_history", 5.0)
    await h.feed({
        "type": "control_response",
        "id": entry.request_id,
        "data": {
            "type": "history",
            "status": "history",
            "history": {"messages": [{"role": "user", "content": "hi"}]},
        },
    })

    response = await entry
    assert response.history == [{"role": "user", "content": "hi"}]


@pytest.mark.asyncio
async def test_uncorrelated_control_response_is_still_published() -> None:
    h = _Harness()
    await h.feed({"type": "control_response", "id": "msg_other", "data": {"status": "aborted"}})

    [event] = h.recorder.of_type(ControlResponse)
    assert event.request_id == "msg_other"
    assert event.control_type == "abort"


@pytest.mark.asyncio
async def test_file_list_response_resolves_pending_request() -> None:
    h = _Harness()
    entry = h.correlation.register("file_list", 5.0)
    await h.feed({
        "type": "file_list_response",
        "id": entry.request_id,
        "data": {"files": [{"name": "a.txt", "size": 3}]},
    })

    response = await entry
    assert isinstance(response, FileListResponse)
    assert response.files == [{"name": "a.txt", "size": 3}]


@pytest.mark.asyncio
async def test_connected_status_adopts_session_identity() -> None:
    h = _Harness()
    await h.feed({"type": "status", "data": {"status": "connected", "sessionId": "sess-1", "convId": "conv-9"}})

    assert h.state.session_id == "sess-1"
    assert h.state.conv_id == "conv-9"
    [event] = h.recorder.of_type(StatusUpdate)
    assert event.status == "connected"


@pytest.mark.asyncio
async def test_server_ping_is_answered() -> None:
    h = _Harness()
    await h.feed({"type": "ping", "id": "srv-ping-1"})
    await h.feed({"type": "pong", "id": "msg_x"})

    assert h.pongs == ["srv-ping-1"]
    assert h.recorder.events == []


@pytest.mark.asyncio
async def test_error_rate_limit_and_tool_frames() -> None:
    h = _Harness()
    await h.feed({"type": "error", "data": {"message": "bad input", "recoverable": False}})
    await h.feed({"type": "rate_limit", "data": {"retryAfter": 2}})
    await h.feed({"type": "tool_call", "data": {"toolCallId": "t1", "toolName": "search", "args": {"q": "x"}}})

    [error] = h.recorder.of_type(CommunicationError)
    assert error.code == "UNKNOWN"
    assert error.message == "bad input"
    assert error.recoverable is False
    [limited] = h.recorder.of_type(RateLimited)
    assert limited.retry_after == 2.0
    [tool] = h.recorder.of_type(ToolCall)
    assert tool.tool_name == "search"
    assert tool.args == {"q": "x"}


@pytest.mark.asyncio
async def test_malformed_frames_are_logged_and_dropped(caplog) -> None:
    h = _Harness()
    with caplog.at_level(logging.WARNING, logger="chatwire.realtime.dispatch"):
        await dispatch_frame(h.ctx, "{not json")
        await h.feed({"type": "surprise"})
        await h.feed({"type": "llm_chunk", "data": {"chunk": 42}})

    assert h.recorder.events == []
    assert caplog.text.count("dropping inbound frame") == 3
