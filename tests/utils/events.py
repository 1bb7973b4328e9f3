"""Event recording helpers."""

from __future__ import annotations

import time
import asyncio
from typing import Any
from collections.abc import Callable

from chatwire.events.bus import EventBus
from chatwire.state.connection import ConnectionStatus
from chatwire.events.types import ConnectionStateChanged


class EventRecorder:
    def __init__(self, bus: EventBus) -> None:
        self.events: list[Any] = []
        self.subscription = bus.subscribe(self.events.append)

    def of_type(self, event_type: type) -> list[Any]:
        return [e for e in self.events if isinstance(e, event_type)]

    def statuses(self) -> list[ConnectionStatus]:
        return [e.status for e in self.of_type(ConnectionStateChanged)]


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() >= deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.001)


__all__ = ["EventRecorder", "wait_until"]
