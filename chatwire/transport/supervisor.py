"""Socket supervisor: owns the single WebSocket and its lifecycle.

One socket at a time. The supervisor opens it, reads frames in arrival order,
runs the heartbeat, notices when the socket is lost and drives reconnection
with exponential backoff. Every status change goes out on the event bus as a
`ConnectionStateChanged` event; nothing else is allowed to write the status.

Three tasks can exist per session: the reader, the heartbeat and the
reconnect loop. Event handlers run on those tasks, so `disconnect()` must be
safe to call from any of them: it never cancels or awaits the task it is
running on. Two counters keep stale work from acting: `_generation` changes
whenever the current socket is given up and `_epoch` changes on every
explicit `disconnect()`.
"""

from __future__ import annotations

import asyncio
import logging
import contextlib
from typing import Any
from collections.abc import Callable, Awaitable

import websockets

from chatwire.events.bus import EventBus
from chatwire.state.settings import TransportSettings
from chatwire.events.types import ConnectionStateChanged
from chatwire.protocol.envelope import now_ms, build_envelope, encode_envelope
from chatwire.errors import NotConnectedError, ConnectionFailedError
from chatwire.state.connection import ConnectionState, ConnectionStatus
from chatwire.config.protocol import (
    WS_TYPE_PING,
    WS_CLOSE_HEARTBEAT_CODE,
    WS_CLOSE_HEARTBEAT_REASON,
    WS_CLOSE_CLIENT_REQUEST_CODE,
    WS_CLOSE_CLIENT_REQUEST_REASON,
)

from .heartbeat import HeartbeatMonitor
from .options import ws_url, get_ws_options

logger = logging.getLogger(__name__)

ConnectFn = Callable[..., Awaitable[Any]]
FrameFn = Callable[[str | bytes], Awaitable[None]]
LostFn = Callable[[], None]

_ACTIVE_STATUSES = frozenset({
    ConnectionStatus.CONNECTING,
    ConnectionStatus.CONNECTED,
    ConnectionStatus.RECONNECTING,
})


def backoff_delay(attempt: int, base_s: float, cap_s: float) -> float:
    """Delay before reconnect attempt `attempt` (1-based)."""
    if attempt < 1:
        return 0.0
    return min(base_s * (2 ** (attempt - 1)), cap_s)


class SocketSupervisor:
    def __init__(
        self,
        settings: TransportSettings,
        state: ConnectionState,
        *,
        bus: EventBus,
        on_frame: FrameFn,
        on_lost: LostFn | None = None,
        connect_fn: ConnectFn | None = None,
    ) -> None:
        self._settings = settings
        self._state = state
        self._bus = bus
        self._on_frame = on_frame
        self._on_lost = on_lost or (lambda: None)
        self._connect_fn = connect_fn or websockets.connect
        self._url = ws_url(settings.url)
        self._ws_options = get_ws_options(settings)

        self._ws: Any | None = None
        self._heartbeat: HeartbeatMonitor | None = None
        self._reader_task: asyncio.Task | None = None
        self._reconnect_task: asyncio.Task | None = None
        self._generation = 0
        self._epoch = 0

    @property
    def url(self) -> str:
        return self._url

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and self._state.status is ConnectionStatus.CONNECTED

    # ---- public lifecycle ----

    async def connect(self) -> None:
        if self._state.status in _ACTIVE_STATUSES or self._reconnect_task is not None:
            logger.debug("connect ignored; status=%s", self._state.status.value)
            return
        epoch = self._epoch
        await self._set_status(ConnectionStatus.CONNECTING)
        if epoch != self._epoch:
            return
        try:
            ws = await self._open()
        except ConnectionFailedError as exc:
            logger.warning("%s", exc)
            if epoch == self._epoch:
                await self._set_status(ConnectionStatus.ERROR, reason=exc.reason)
            # A failed open is retried like an unexpected close.
            retry = self._settings.reconnect_attempts > 0 and self._reconnect_task is None
            if retry and epoch == self._epoch:
                self._reconnect_task = asyncio.create_task(self._reconnect_loop(exc.reason, epoch))
            raise
        if epoch != self._epoch:
            await self._close_socket(ws, WS_CLOSE_CLIENT_REQUEST_CODE, WS_CLOSE_CLIENT_REQUEST_REASON)
            return
        await self._adopt(ws)

    async def disconnect(self) -> None:
        self._epoch += 1
        self._generation += 1
        ws, self._ws = self._ws, None
        heartbeat, self._heartbeat = self._heartbeat, None
        tasks = [t for t in (self._reader_task, self._reconnect_task) if t is not None]
        self._reader_task = None
        self._reconnect_task = None

        current = asyncio.current_task()
        others = [t for t in tasks if t is not current and not t.done()]
        for task in others:
            task.cancel()
        if heartbeat is not None:
            await heartbeat.stop()
        if ws is not None:
            await self._close_socket(ws, WS_CLOSE_CLIENT_REQUEST_CODE, WS_CLOSE_CLIENT_REQUEST_REASON)
            logger.info("disconnected from %s", self._url)
        if others:
            await asyncio.gather(*others, return_exceptions=True)
        self._state.connected_at = None
        if self._state.status is not ConnectionStatus.DISCONNECTED:
            await self._set_status(ConnectionStatus.DISCONNECTED)

    async def send(self, payload: str, *, command: str) -> None:
        ws = self._ws
        if ws is None or self._state.status is not ConnectionStatus.CONNECTED:
            raise NotConnectedError(command)
        try:
            await ws.send(payload)
        except websockets.ConnectionClosed as exc:
            raise NotConnectedError(command) from exc
        self._state.messages_sent += 1

    # ---- socket ownership ----

    async def _open(self) -> Any:
        timeout_s = self._settings.timeout
        try:
            async with asyncio.timeout(timeout_s):
                return await self._connect_fn(self._url, **self._ws_options)
        except TimeoutError as exc:
            raise ConnectionFailedError(self._url, f"timed out after {timeout_s:.1f}s") from exc
        except Exception as exc:
            raise ConnectionFailedError(self._url, str(exc) or type(exc).__name__) from exc

    async def _adopt(self, ws: Any) -> None:
        self._generation += 1
        generation = self._generation
        self._ws = ws
        self._state.connected_at = now_ms()
        logger.info("connected to %s", self._url)
        await self._set_status(ConnectionStatus.CONNECTED)
        if generation != self._generation:
            return
        self._heartbeat = HeartbeatMonitor(
            send_ping=self._send_ping,
            on_silence=lambda silent_for: self._handle_lost(
                generation,
                f"no traffic for {silent_for:.1f}s",
                close_code=WS_CLOSE_HEARTBEAT_CODE,
                close_reason=WS_CLOSE_HEARTBEAT_REASON,
            ),
            interval_s=self._settings.heartbeat_interval,
            grace_s=self._settings.heartbeat_grace,
        )
        self._heartbeat.start()
        self._reader_task = asyncio.create_task(self._read_loop(ws, generation))

    async def _read_loop(self, ws: Any, generation: int) -> None:
        reason = "closed by server"
        try:
            async for raw in ws:
                if generation != self._generation:
                    return
                self._state.messages_received += 1
                self._state.last_message_at = now_ms()
                if self._heartbeat is not None:
                    self._heartbeat.touch()
                try:
                    await self._on_frame(raw)
                except Exception:
                    logger.exception("inbound frame handling failed")
        except websockets.ConnectionClosed as exc:
            reason = str(exc) or "connection closed"
        except Exception as exc:
            reason = str(exc) or type(exc).__name__
            logger.debug("reader stopped on socket error", exc_info=True)
        await self._handle_lost(generation, reason)

    async def _handle_lost(
        self,
        generation: int,
        reason: str,
        *,
        close_code: int = WS_CLOSE_CLIENT_REQUEST_CODE,
        close_reason: str = "",
    ) -> None:
        if generation != self._generation:
            return
        self._generation += 1
        epoch = self._epoch
        ws, self._ws = self._ws, None
        heartbeat, self._heartbeat = self._heartbeat, None
        reader, self._reader_task = self._reader_task, None
        logger.warning("socket lost: %s", reason)

        if heartbeat is not None:
            await heartbeat.stop()
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            await asyncio.gather(reader, return_exceptions=True)
        if ws is not None:
            await self._close_socket(ws, close_code, close_reason)

        if epoch != self._epoch:
            return
        self._state.connected_at = None
        self._on_lost()
        self._reconnect_task = asyncio.create_task(self._reconnect_loop(reason, epoch))

    async def _reconnect_loop(self, reason: str, epoch: int) -> None:
        max_attempts = self._settings.reconnect_attempts
        attempt = 0
        while epoch == self._epoch:
            if attempt >= max_attempts:
                logger.error("giving up after %d reconnect attempt(s): %s", attempt, reason)
                if self._reconnect_task is asyncio.current_task():
                    self._reconnect_task = None
                await self._set_status(ConnectionStatus.ERROR, attempt=attempt, max_attempts=max_attempts, reason=reason)
                break
            attempt += 1
            await self._set_status(
                ConnectionStatus.RECONNECTING,
                attempt=attempt,
                max_attempts=max_attempts,
                reason=reason,
            )
            delay = backoff_delay(attempt, self._settings.reconnect_delay, self._settings.reconnect_delay_max)
            logger.info("reconnect attempt %d/%d in %.2fs", attempt, max_attempts, delay)
            await asyncio.sleep(delay)
            if epoch != self._epoch:
                break
            await self._set_status(ConnectionStatus.CONNECTING, attempt=attempt, max_attempts=max_attempts)
            if epoch != self._epoch:
                break
            try:
                ws = await self._open()
            except ConnectionFailedError as exc:
                reason = exc.reason
                logger.warning("reconnect attempt %d/%d failed: %s", attempt, max_attempts, reason)
                continue
            if epoch != self._epoch:
                await self._close_socket(ws, WS_CLOSE_CLIENT_REQUEST_CODE, WS_CLOSE_CLIENT_REQUEST_REASON)
                break
            self._state.reconnect_count += 1
            self._reconnect_task = None
            await self._adopt(ws)
            break
        if self._reconnect_task is asyncio.current_task():
            self._reconnect_task = None

    # ---- helpers ----

    async def _send_ping(self) -> None:
        envelope = build_envelope(WS_TYPE_PING, client_id=self._state.client_id)
        try:
            await self.send(encode_envelope(envelope), command=WS_TYPE_PING)
        except NotConnectedError:
            logger.debug("heartbeat ping skipped; not connected")

    async def _close_socket(self, ws: Any, code: int, reason: str) -> None:
        with contextlib.suppress(Exception):
            await ws.close(code=code, reason=reason)

    async def _set_status(
        self,
        status: ConnectionStatus,
        *,
        attempt: int | None = None,
        max_attempts: int | None = None,
        reason: str | None = None,
    ) -> None:
        previous = self._state.status
        if previous is status and attempt is None:
            return
        self._state.status = status
        logger.debug("status %s -> %s", previous.value, status.value)
        await self._bus.publish(
            ConnectionStateChanged(
                status=status,
                previous=previous,
                snapshot=self._state.snapshot(),
                attempt=attempt,
                max_attempts=max_attempts,
                reason=reason,
            )
        )


__all__ = ["SocketSupervisor", "backoff_delay"]
