from __future__ import annotations

import asyncio
from typing import Any

import pytest

from chatwire.client import ChatTransport
from chatwire.protocol.files import FileAttachment
from chatwire.state.connection import ConnectionStatus
from chatwire.state.settings import LimitsSettings
from chatwire.errors import (
    RateLimitError,
    RequestTimeoutError,
    ConnectionClosedError,
    ConnectionFailedError,
)
from chatwire.events.types import (
    StatusUpdate,
    PartialMessage,
    RequestExpired,
    ControlResponse,
    MessageComplete,
    FileUploadResponse,
)

from tests.utils import FakeConnector, EventRecorder, wait_until, make_settings


async def _connected(**overrides: Any) -> tuple[ChatTransport, FakeConnector, EventRecorder]:
    connector = FakeConnector()
    transport = ChatTransport(make_settings(**overrides), connect_fn=connector)
    recorder = EventRecorder(transport.bus)
    await transport.connect()
    return transport, connector, recorder


@pytest.mark.asyncio
async def test_end_to_end_streamed_reply() -> None:
    transport, connector, recorder = await _connected()
    ws = connector.last

    message_id = await transport.send_message("Hi")
    [sent] = ws.sent_of_type("user_message")
    assert sent["id"] == message_id
    assert sent["data"] == {"text": "Hi"}
    assert sent["metadata"]["clientId"] == transport.client_id

    ws.feed({"type": "llm_chunk", "id": message_id, "data": {"chunk": "Hel"}})
    ws.feed({"type": "llm_chunk", "id": message_id, "data": {"chunk": "lo"}})
    ws.feed({"type": "llm_complete", "id": message_id, "data": {"fullText": "Hello"}})
    await wait_until(lambda: recorder.of_type(MessageComplete))

    partials = recorder.of_type(PartialMessage)
    [complete] = recorder.of_type(MessageComplete)
    assert [p.text for p in partials] == ["Hel", "Hello"]
    assert len({p.stream_id for p in partials} | {complete.stream_id}) == 1
    assert complete.text == "Hello"
    assert transport.snapshot().turn is None
    await transport.disconnect()


@pytest.mark.asyncio
async def test_welcome_status_sets_session_identity() -> None:
    transport, connector, recorder = await _connected()
    connector.last.feed({"type": "status", "data": {"status": "connected", "sessionId": "s-1", "convId": "c-1"}})
    await wait_until(lambda: recorder.of_type(StatusUpdate))

    snap = transport.snapshot().connection
    assert snap.session_id == "s-1"
    assert snap.conv_id == "c-1"
    assert snap.status is ConnectionStatus.CONNECTED
    assert snap.messages_received == 1
    await transport.disconnect()


@pytest.mark.asyncio
async def test_history_empty_path_clears_loading() -> None:
    transport, connector, _recorder = await _connected()
    request = await transport.get_history()

    [sent] = connector.last.sent_of_type("control")
    assert sent["id"] == request.request_id
    assert sent["data"] == {"type": "get_history"}
    assert transport.snapshot().history_loading

    connector.last.feed({"type": "control_response", "data": {"status": "history"}})
    response = await asyncio.wait_for(request, timeout=1.0)

    assert isinstance(response, ControlResponse)
    assert response.history == []
    assert not transport.snapshot().history_loading
    await transport.disconnect()


@pytest.mark.asyncio
async def test_history_timeout_publishes_expiry() -> None:
    transport, _connector, recorder = await _connected(request_timeout=0.02)
    request = await transport.get_history()

    with pytest.raises(RequestTimeoutError):
        await request
    await wait_until(lambda: recorder.of_type(RequestExpired))

    [expired] = recorder.of_type(RequestExpired)
    assert expired.request_id == request.request_id
    assert expired.request_kind == "control:get_history"
    assert not transport.snapshot().history_loading
    await transport.disconnect()


@pytest.mark.asyncio
async def test_disconnect_mid_stream_clears_state() -> None:
    transport, connector, recorder = await _connected()
    connector.last.feed({"type": "llm_chunk", "id": "m1", "data": {"chunk": "part"}})
    await wait_until(lambda: recorder.of_type(PartialMessage))
    first_stream = recorder.of_type(PartialMessage)[0].stream_id
    pending = await transport.list_files()

    await transport.disconnect()

    with pytest.raises(ConnectionClosedError):
        await pending
    snap = transport.snapshot()
    assert snap.turn is None
    assert snap.pending_requests == 0
    assert snap.connection.status is ConnectionStatus.DISCONNECTED

    await transport.connect()
    connector.last.feed({"type": "llm_chunk", "id": "m1", "data": {"chunk": "fresh"}})
    await wait_until(lambda: len(recorder.of_type(PartialMessage)) == 2)

    second = recorder.of_type(PartialMessage)[1]
    assert second.stream_id != first_stream
    assert second.text == "fresh"
    await transport.disconnect()


@pytest.mark.asyncio
async def test_lost_socket_drops_turn_and_skips_replayed_messages() -> None:
    transport, connector, recorder = await _connected()
    ws = connector.last
    ws.feed({"type": "llm_chunk", "id": "m1", "data": {"chunk": "Done"}})
    ws.feed({"type": "llm_complete", "id": "m1", "data": {"fullText": "Done"}})
    ws.feed({"type": "llm_chunk", "id": "m2", "data": {"chunk": "Hal"}})
    await wait_until(lambda: len(recorder.of_type(PartialMessage)) == 2)

    ws.drop()
    await wait_until(lambda: len(connector.sockets) == 2 and transport.is_connected)
    assert transport.snapshot().turn is None

    replay = connector.last
    replay.feed({"type": "llm_chunk", "id": "m1", "data": {"chunk": "Done"}})
    replay.feed({"type": "llm_complete", "id": "m1", "data": {"fullText": "Done"}})
    replay.feed({"type": "llm_chunk", "id": "m2", "data": {"chunk": "Hal"}})
    replay.feed({"type": "llm_chunk", "id": "m2", "data": {"chunk": "lo"}})
    replay.feed({"type": "llm_complete", "id": "m2", "data": {"fullText": "Hallo"}})
    await wait_until(lambda: len(recorder.of_type(MessageComplete)) == 2)

    completes = recorder.of_type(MessageComplete)
    assert [c.message_id for c in completes] == ["m1", "m2"]
    assert completes[1].text == "Hallo"
    partials = recorder.of_type(PartialMessage)
    assert [p.text for p in partials] == ["Done", "Hal", "Hal", "Hallo"]
    assert partials[2].stream_id != partials[1].stream_id
    assert partials[3].stream_id == completes[1].stream_id
    await transport.disconnect()


@pytest.mark.asyncio
async def test_abort_discards_open_turn() -> None:
    transport, connector, recorder = await _connected()
    connector.last.feed({"type": "llm_chunk", "id": "m1", "data": {"chunk": "long answ"}})
    await wait_until(lambda: recorder.of_type(PartialMessage))

    request = await transport.abort()
    assert transport.snapshot().turn is None

    connector.last.feed({
        "type": "control_response",
        "id": request.request_id,
        "data": {"type": "abort", "status": "aborted"},
    })
    response = await asyncio.wait_for(request, timeout=1.0)
    assert response.status == "aborted"
    await transport.disconnect()


@pytest.mark.asyncio
async def test_file_commands_wire_payloads() -> None:
    transport, connector, recorder = await _connected()
    ws = connector.last

    upload = await transport.upload_files([FileAttachment.from_bytes("a.txt", b"abc")])
    await transport.list_files()
    await transport.request_file("a.txt", as_base64=True)

    [up] = ws.sent_of_type("file_upload")
    assert up["data"]["files"] == [{"name": "a.txt", "size": 3, "type": "text/plain", "data": "YWJj"}]
    [listing] = ws.sent_of_type("file_list")
    assert listing["data"] == {}
    [req] = ws.sent_of_type("file_request")
    assert req["data"] == {"fileName": "a.txt", "asBase64": True}
    assert transport.snapshot().pending_requests == 3

    ws.feed({"type": "file_upload_response", "id": upload.request_id, "data": {"status": "ok"}})
    response = await asyncio.wait_for(upload, timeout=1.0)
    assert isinstance(response, FileUploadResponse)
    assert recorder.of_type(FileUploadResponse) == [response]
    await transport.disconnect()


@pytest.mark.asyncio
async def test_bad_commands_raise_before_sending() -> None:
    transport, connector, _recorder = await _connected()

    with pytest.raises(ValueError):
        await transport.send_control("reboot")
    with pytest.raises(ValueError):
        await transport.request_file("  ")
    with pytest.raises(ValueError):
        await transport.upload_files([])
    assert connector.last.sent == []
    await transport.disconnect()


@pytest.mark.asyncio
async def test_outbound_limiter_rejects_excess_sends() -> None:
    connector = FakeConnector()
    transport = ChatTransport(
        make_settings(),
        limits=LimitsSettings(max_sends_per_window=2, send_window_seconds=60),
        connect_fn=connector,
    )
    await transport.connect()
    await transport.send_message("one")
    await transport.get_status()

    with pytest.raises(RateLimitError):
        await transport.list_files()
    assert transport.snapshot().pending_requests == 1
    assert len(connector.last.sent) == 2
    await transport.disconnect()


@pytest.mark.asyncio
async def test_server_ping_gets_pong_with_same_id() -> None:
    transport, connector, _recorder = await _connected()
    connector.last.feed({"type": "ping", "id": "srv-1"})
    await wait_until(lambda: connector.last.sent_of_type("pong"))

    [pong] = connector.last.sent_of_type("pong")
    assert pong["id"] == "srv-1"
    await transport.disconnect()


@pytest.mark.asyncio
async def test_stats_reflect_traffic() -> None:
    transport, connector, recorder = await _connected()
    await transport.send_message("x", {"stream": True})
    connector.last.feed({"type": "status", "data": {"status": "processing"}})
    await wait_until(lambda: recorder.of_type(StatusUpdate))

    stats = transport.stats()
    assert stats["status"] == "connected"
    assert stats["messages_sent"] == 1
    assert stats["messages_received"] == 1
    assert stats["pending_requests"] == 0
    assert connector.last.sent_of_type("user_message")[0]["data"] == {"text": "x", "stream": True}
    await transport.disconnect()


@pytest.mark.asyncio
async def test_async_context_manager_connects_and_disconnects() -> None:
    connector = FakeConnector()
    async with ChatTransport(make_settings(), connect_fn=connector) as transport:
        assert transport.is_connected
    assert transport.status is ConnectionStatus.DISCONNECTED
    assert connector.last.close_code == 1000


@pytest.mark.asyncio
async def test_async_context_manager_stops_retries_when_connect_fails() -> None:
    connector = FakeConnector(fail_forever=True)
    transport = ChatTransport(make_settings(), connect_fn=connector)

    with pytest.raises(ConnectionFailedError):
        async with transport:
            pass
    await asyncio.sleep(0.05)

    assert transport.status is ConnectionStatus.DISCONNECTED
    assert connector.calls == 1
