"""Correlation table for request/response pairs sharing the socket."""

from __future__ import annotations

import time
import asyncio
import logging
from typing import Any
from collections import OrderedDict
from collections.abc import Callable

from chatwire.state.pending import PendingRequest
from chatwire.protocol.envelope import new_message_id
from chatwire.errors import RequestTimeoutError, ConnectionClosedError

logger = logging.getLogger(__name__)

ExpireFn = Callable[[PendingRequest], None]

_SETTLED_WINDOW = 1024


def _mark_retrieved(future: asyncio.Future[Any]) -> None:
    # Callers may fire-and-forget a request; the outcome is also published on
    # the bus, so an unawaited failure must not be reported as never retrieved.
    if not future.cancelled():
        future.exception()


class CorrelationTable:
    """Outstanding correlated requests keyed by request id.

    Every entry leaves the table exactly once: by `resolve`, by `expire` when
    its timer fires, or by `clear` on disconnect. Ids that left the table are
    remembered in a bounded window so late duplicates can be recognised.
    """

    def __init__(self, *, on_expire: ExpireFn | None = None) -> None:
        self._pending: dict[str, PendingRequest] = {}
        self._settled: OrderedDict[str, str] = OrderedDict()
        self._on_expire = on_expire

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    def register(self, kind: str, timeout_s: float, *, request_id: str | None = None) -> PendingRequest:
        loop = asyncio.get_running_loop()
        rid = request_id or new_message_id()
        if rid in self._pending:
            raise ValueError(f"request id {rid!r} is already pending")
        future: asyncio.Future[Any] = loop.create_future()
        future.add_done_callback(_mark_retrieved)
        entry = PendingRequest(
            request_id=rid,
            kind=kind,
            issued_at=time.monotonic(),
            timeout_s=float(timeout_s),
            future=future,
        )
        entry.timer = loop.call_later(entry.timeout_s, self.expire, rid)
        self._pending[rid] = entry
        return entry

    def get(self, request_id: str) -> PendingRequest | None:
        return self._pending.get(request_id)

    def has_pending(self, kind: str) -> bool:
        return any(entry.kind == kind for entry in self._pending.values())

    def is_settled(self, request_id: str | None) -> bool:
        return request_id is not None and request_id in self._settled

    def resolve(self, request_id: str | None, payload: Any) -> bool:
        """Deliver `payload` to the waiter; no-op for unknown or settled ids."""
        if request_id is None:
            return False
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return False
        self._settle(entry)
        if not entry.future.done():
            entry.future.set_result(payload)
        return True

    def oldest(self, kind: str) -> str | None:
        for rid, entry in self._pending.items():
            if entry.kind == kind:
                return rid
        return None

    def resolve_oldest(self, kind: str, payload: Any) -> tuple[str, Any] | None:
        """Resolve the oldest pending request of `kind`.

        `payload` may be a callable taking the chosen request id, for responses
        that must carry it. Returns the id and the delivered payload, or None
        when nothing of that kind is pending.
        """
        rid = self.oldest(kind)
        if rid is None:
            return None
        if callable(payload):
            payload = payload(rid)
        self.resolve(rid, payload)
        return rid, payload

    def expire(self, request_id: str) -> None:
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return
        self._settle(entry)
        logger.info("request timed out id=%s kind=%s after %.1fs", request_id, entry.kind, entry.timeout_s)
        if not entry.future.done():
            entry.future.set_exception(
                RequestTimeoutError(request_id=request_id, kind=entry.kind, timeout_s=entry.timeout_s)
            )
        if self._on_expire is not None:
            self._on_expire(entry)

    def discard(self, request_id: str) -> None:
        """Drop an entry whose request never reached the wire."""
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None
        entry.future.cancel()

    def clear(self) -> int:
        """Fail every pending request; returns how many were dropped."""
        entries = list(self._pending.values())
        self._pending.clear()
        for entry in entries:
            self._settle(entry)
            if not entry.future.done():
                entry.future.set_exception(ConnectionClosedError(request_id=entry.request_id, kind=entry.kind))
        if entries:
            logger.debug("cleared %d pending request(s)", len(entries))
        return len(entries)

    def _settle(self, entry: PendingRequest) -> None:
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None
        self._settled[entry.request_id] = entry.kind
        while len(self._settled) > _SETTLED_WINDOW:
            self._settled.popitem(last=False)


__all__ = ["CorrelationTable"]
