"""Chat transport engine: the public command surface over one session."""

from __future__ import annotations

import uuid
import asyncio
import logging
from typing import Any
from collections.abc import Callable, Awaitable

from chatwire.state.turn import TurnSnapshot
from chatwire.events.types import RequestExpired
from chatwire.state.pending import PendingRequest
from chatwire.runtime.settings import load_settings
from chatwire.handlers.limits import OutboundLimiter
from chatwire.state.snapshot import TransportSnapshot
from chatwire.handlers.correlation import CorrelationTable
from chatwire.transport.supervisor import SocketSupervisor
from chatwire.realtime.reassembler import StreamReassembler
from chatwire.events.bus import Handler, EventBus, Subscription
from chatwire.state.settings import LimitsSettings, TransportSettings
from chatwire.errors import NotConnectedError, ConnectionFailedError
from chatwire.protocol.files import FileAttachment, coerce_attachments
from chatwire.realtime.dispatch import DispatchContext, dispatch_frame
from chatwire.state.connection import ConnectionState, ConnectionStatus
from chatwire.protocol.envelope import Envelope, build_envelope, encode_envelope
from chatwire.config.protocol import (
    WS_TYPE_PONG,
    CONTROL_ABORT,
    CONTROL_TYPES,
    KIND_FILE_LIST,
    WS_TYPE_CONTROL,
    CLIENT_ID_PREFIX,
    KIND_FILE_UPLOAD,
    KIND_FILE_REQUEST,
    WS_TYPE_FILE_LIST,
    CONTROL_GET_STATUS,
    CONTROL_GET_HISTORY,
    KIND_CONTROL_PREFIX,
    WS_TYPE_FILE_UPLOAD,
    WS_TYPE_FILE_REQUEST,
    WS_TYPE_USER_MESSAGE,
    CONTROL_CLEAR_HISTORY,
)

logger = logging.getLogger(__name__)

ConnectFn = Callable[..., Awaitable[Any]]


class ChatTransport:
    """Resilient streaming chat session over a single WebSocket.

    Application code drives the session through the command methods and
    observes it through the event bus. Streamed assistant text arrives as
    `PartialMessage` events (full text so far, keyed by `stream_id`) followed by
    exactly one `MessageComplete` per turn. Correlated commands return a
    `PendingRequest`; await it for the response payload.

    Commands raise `NotConnectedError` when no socket is open. A failed
    `connect()` raises `ConnectionFailedError` and then retries in the
    background like a lost socket. Other transport failures never raise into
    the caller; they show up as `ConnectionStateChanged` events.
    """

    def __init__(
        self,
        settings: TransportSettings,
        *,
        limits: LimitsSettings | None = None,
        connect_fn: ConnectFn | None = None,
        bus: EventBus | None = None,
        client_id: str | None = None,
    ) -> None:
        self._settings = settings
        self._bus = bus or EventBus()
        self._state = ConnectionState(client_id=client_id or f"{CLIENT_ID_PREFIX}{uuid.uuid4().hex}")
        self._reassembler = StreamReassembler()
        self._correlation = CorrelationTable(on_expire=self._on_request_expired)
        self._limiter = OutboundLimiter(
            max_sends=limits.max_sends_per_window if limits else 0,
            window_seconds=limits.send_window_seconds if limits else 0.0,
        )
        self._background: set[asyncio.Task] = set()
        self._supervisor = SocketSupervisor(
            settings,
            self._state,
            bus=self._bus,
            on_frame=self._on_frame,
            on_lost=self._on_socket_lost,
            connect_fn=connect_fn,
        )
        self._dispatch = DispatchContext(
            bus=self._bus,
            reassembler=self._reassembler,
            correlation=self._correlation,
            connection=self._state,
            send_pong=self._send_pong,
        )

    @classmethod
    def from_env(cls, **overrides: Any) -> ChatTransport:
        """Build from `CHATWIRE_*` environment settings; keyword overrides win."""
        connect_fn = overrides.pop("connect_fn", None)
        bus = overrides.pop("bus", None)
        settings = load_settings(**overrides)
        return cls(settings.transport, limits=settings.limits, connect_fn=connect_fn, bus=bus)

    async def __aenter__(self) -> ChatTransport:
        try:
            await self.connect()
        except ConnectionFailedError:
            # No __aexit__ will run; stop the retries scheduled by the failure.
            await self.disconnect()
            raise
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.disconnect()

    # ---- observation ----

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def client_id(self) -> str:
        return self._state.client_id

    @property
    def settings(self) -> TransportSettings:
        return self._settings

    @property
    def is_connected(self) -> bool:
        return self._supervisor.is_connected

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    def subscribe(self, handler: Handler, *event_types: type) -> Subscription:
        return self._bus.subscribe(handler, *event_types)

    def snapshot(self) -> TransportSnapshot:
        turn: TurnSnapshot | None = self._reassembler.turn
        return TransportSnapshot(
            connection=self._state.snapshot(),
            turn=turn,
            pending_requests=len(self._correlation),
            history_loading=self._correlation.has_pending(f"{KIND_CONTROL_PREFIX}{CONTROL_GET_HISTORY}"),
        )

    def stats(self) -> dict[str, Any]:
        state = self._state
        return {
            "status": state.status.value,
            "client_id": state.client_id,
            "session_id": state.session_id,
            "messages_sent": state.messages_sent,
            "messages_received": state.messages_received,
            "reconnect_count": state.reconnect_count,
            "pending_requests": len(self._correlation),
            "subscribers": self._bus.subscriber_count(),
            "streaming": self._reassembler.turn is not None,
        }

    # ---- lifecycle ----

    async def connect(self) -> None:
        await self._supervisor.connect()

    async def disconnect(self) -> None:
        self._correlation.clear()
        self._reassembler.reset(forget_finalized=True)
        await self._supervisor.disconnect()

    # ---- commands ----

    async def send_message(self, text: str, options: dict[str, Any] | None = None) -> str:
        """Send a user message; returns the envelope id the server echoes back."""
        data: dict[str, Any] = {"text": text}
        if options:
            data.update(options)
            files = options.get("files")
            if files:
                data["files"] = [f.to_wire() for f in coerce_attachments(list(files))]
        envelope = build_envelope(WS_TYPE_USER_MESSAGE, data, client_id=self._state.client_id)
        await self._send(envelope, command=WS_TYPE_USER_MESSAGE)
        return envelope.id or ""

    async def send_control(self, control_type: str) -> PendingRequest:
        if control_type not in CONTROL_TYPES:
            raise ValueError(f"unknown control type {control_type!r}")
        entry = await self._request(
            f"{KIND_CONTROL_PREFIX}{control_type}",
            WS_TYPE_CONTROL,
            {"type": control_type},
        )
        if control_type == CONTROL_ABORT:
            self._reassembler.reset()
        return entry

    async def abort(self) -> PendingRequest:
        return await self.send_control(CONTROL_ABORT)

    async def clear_history(self) -> PendingRequest:
        return await self.send_control(CONTROL_CLEAR_HISTORY)

    async def get_history(self) -> PendingRequest:
        return await self.send_control(CONTROL_GET_HISTORY)

    async def get_status(self) -> PendingRequest:
        return await self.send_control(CONTROL_GET_STATUS)

    async def upload_files(self, files: list[FileAttachment | dict[str, Any]]) -> PendingRequest:
        attachments = coerce_attachments(list(files))
        if not attachments:
            raise ValueError("upload_files needs at least one file")
        return await self._request(
            KIND_FILE_UPLOAD,
            WS_TYPE_FILE_UPLOAD,
            {"files": [a.to_wire() for a in attachments]},
        )

    async def list_files(self) -> PendingRequest:
        return await self._request(KIND_FILE_LIST, WS_TYPE_FILE_LIST, {})

    async def request_file(self, file_name: str, as_base64: bool = False) -> PendingRequest:
        if not file_name or not file_name.strip():
            raise ValueError("file_name must be non-empty")
        return await self._request(
            KIND_FILE_REQUEST,
            WS_TYPE_FILE_REQUEST,
            {"fileName": file_name.strip(), "asBase64": bool(as_base64)},
        )

    # ---- internals ----

    async def _request(self, kind: str, msg_type: str, data: dict[str, Any]) -> PendingRequest:
        if not self._supervisor.is_connected:
            raise NotConnectedError(msg_type)
        # Registered before the send so a fast response always finds its entry.
        entry = self._correlation.register(kind, self._settings.request_timeout)
        envelope = build_envelope(msg_type, data, client_id=self._state.client_id, message_id=entry.request_id)
        try:
            await self._send(envelope, command=msg_type)
        except BaseException:
            self._correlation.discard(entry.request_id)
            raise
        logger.debug("request sent id=%s kind=%s", entry.request_id, kind)
        return entry

    async def _send(self, envelope: Envelope, *, command: str) -> None:
        if not self._supervisor.is_connected:
            raise NotConnectedError(command)
        self._limiter.consume(command)
        await self._supervisor.send(encode_envelope(envelope), command=command)

    async def _send_pong(self, ping_id: str | None) -> None:
        envelope = build_envelope(WS_TYPE_PONG, client_id=self._state.client_id, message_id=ping_id)
        try:
            await self._supervisor.send(encode_envelope(envelope), command=WS_TYPE_PONG)
        except NotConnectedError:
            logger.debug("pong skipped; not connected")

    async def _on_frame(self, raw: str | bytes) -> None:
        await dispatch_frame(self._dispatch, raw)

    def _on_socket_lost(self) -> None:
        dropped = self._reassembler.reset()
        if dropped is not None:
            logger.info("discarded incomplete stream %s after socket loss", dropped)

    def _on_request_expired(self, entry: PendingRequest) -> None:
        task = asyncio.create_task(
            self._bus.publish(RequestExpired(request_id=entry.request_id, request_kind=entry.kind))
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)


__all__ = ["ChatTransport"]
