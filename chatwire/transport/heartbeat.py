"""Application-level heartbeat for one open socket (ping loop + silence watchdog)."""

from __future__ import annotations

import time
import asyncio
import logging
import contextlib
from collections.abc import Callable, Awaitable

logger = logging.getLogger(__name__)

PingFn = Callable[[], Awaitable[None]]
SilenceFn = Callable[[float], Awaitable[None]]


class HeartbeatMonitor:
    def __init__(
        self,
        *,
        send_ping: PingFn,
        on_silence: SilenceFn,
        interval_s: float,
        grace_s: float,
        tick_s: float | None = None,
    ) -> None:
        self._send_ping = send_ping
        self._on_silence = on_silence
        self._interval_s = float(interval_s)
        self._grace_s = max(0.0, float(grace_s))
        if tick_s is None:
            tick_s = min(self._interval_s, self._grace_s or self._interval_s) / 4
        self._tick_s = max(0.001, float(tick_s))
        self._last_activity = time.monotonic()
        self._last_ping = self._last_activity
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def silence_limit_s(self) -> float:
        return self._interval_s + self._grace_s

    def touch(self) -> None:
        self._last_activity = time.monotonic()

    def seconds_since_activity(self) -> float:
        return time.monotonic() - self._last_activity

    def start(self) -> asyncio.Task:
        if self._task is None:
            self._last_activity = self._last_ping = time.monotonic()
            self._task = asyncio.create_task(self._watchdog_loop())
        return self._task

    async def stop(self) -> None:
        self._stop_event.set()
        task, self._task = self._task, None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(Exception, asyncio.CancelledError):
            await task

    async def _watchdog_loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                await asyncio.sleep(self._tick_s)
                if self._stop_event.is_set():
                    break
                now = time.monotonic()
                silent_for = now - self._last_activity
                if silent_for >= self.silence_limit_s:
                    logger.warning("no inbound traffic for %.1fs; treating socket as lost", silent_for)
                    self._stop_event.set()
                    await self._on_silence(silent_for)
                    break
                if now - self._last_ping >= self._interval_s:
                    self._last_ping = now
                    await self._send_ping()
        except asyncio.CancelledError:
            return
        except Exception:
            logger.debug("heartbeat exiting due to unexpected error", exc_info=True)


__all__ = ["HeartbeatMonitor"]
