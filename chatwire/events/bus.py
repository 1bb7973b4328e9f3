"""Fan-out event bus with no buffering or replay."""

from __future__ import annotations

import asyncio
import inspect
import logging
import collections
from typing import Any
from dataclasses import dataclass
from collections.abc import Callable, Awaitable

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[None] | None]
Predicate = Callable[[Any], bool]


@dataclass(slots=True, eq=False)
class Subscription:
    handler: Handler
    event_types: tuple[type, ...]
    bus: EventBus | None = None

    def matches(self, event: Any) -> bool:
        return not self.event_types or isinstance(event, self.event_types)

    def unsubscribe(self) -> None:
        if self.bus is not None:
            self.bus.unsubscribe(self)
            self.bus = None


class EventBus:
    """Deliver each published event to the subscribers registered at that moment.

    Handlers run sequentially in subscription order and may be plain or async
    callables; a top-level `publish` returns once every handler has run. Events
    published from inside a handler wait behind the one being delivered, so
    every subscriber sees events in emission order. A subscriber that joins
    later never sees earlier events. A failing handler is logged and does not
    affect the others.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        # Per delivering task: events published from inside one of its handlers.
        self._deferred: dict[asyncio.Task | None, collections.deque[Any]] = {}

    def subscribe(self, handler: Handler, *event_types: type) -> Subscription:
        sub = Subscription(handler=handler, event_types=tuple(event_types), bus=self)
        self._subscriptions.append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return

    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def publish(self, event: Any) -> None:
        """Deliver `event`, or queue it when called from inside a handler.

        A nested publish (a handler that disconnects, say) returns at once and
        its event is delivered by the outer call after the current event has
        reached every subscriber.
        """
        owner = asyncio.current_task()
        queue = self._deferred.get(owner)
        if queue is not None:
            queue.append(event)
            return
        queue = self._deferred[owner] = collections.deque([event])
        try:
            while queue:
                await self._deliver(queue.popleft())
        finally:
            del self._deferred[owner]

    async def _deliver(self, event: Any) -> None:
        for sub in tuple(self._subscriptions):
            if sub.bus is None or not sub.matches(event):
                continue
            try:
                result = sub.handler(event)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("event handler failed for %s", type(event).__name__)

    async def wait_for(
        self,
        event_type: type,
        predicate: Predicate | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Wait for the next matching event published after this call."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()

        def _on_event(event: Any) -> None:
            if future.done():
                return
            if predicate is not None and not predicate(event):
                return
            future.set_result(event)

        sub = self.subscribe(_on_event, event_type)
        try:
            if timeout is None:
                return await future
            async with asyncio.timeout(timeout):
                return await future
        finally:
            sub.unsubscribe()


__all__ = ["EventBus", "Handler", "Subscription"]
