"""Client-side cap on outbound commands over a rolling window."""

from __future__ import annotations

import time
import collections
from collections.abc import Callable, Iterable

from chatwire.errors import RateLimitError
from chatwire.config.protocol import WS_TYPE_PING, WS_TYPE_PONG

TimeFn = Callable[[], float]


class OutboundLimiter:
    """Refuse outbound commands beyond `max_sends` per `window_seconds`.

    The server keeps its own limits and reports them with `rate_limit` frames;
    this cap only stops a runaway caller from flooding the socket. Off when
    either bound is 0. Liveness frames are never counted.
    """

    def __init__(
        self,
        *,
        max_sends: int,
        window_seconds: float,
        exempt: Iterable[str] = (WS_TYPE_PING, WS_TYPE_PONG),
        now_fn: TimeFn | None = None,
    ) -> None:
        self.max_sends = max(0, int(max_sends))
        self.window_seconds = max(0.0, float(window_seconds))
        self.exempt = frozenset(exempt)
        self._now = now_fn or time.monotonic
        self._sent: collections.deque[tuple[float, str]] = collections.deque()

    @property
    def enabled(self) -> bool:
        return self.max_sends > 0 and self.window_seconds > 0

    def remaining(self) -> int | None:
        """Sends left in the current window; None when the cap is off."""
        if not self.enabled:
            return None
        self._prune(self._now())
        return max(0, self.max_sends - len(self._sent))

    def recent(self) -> list[str]:
        self._prune(self._now())
        return [command for _at, command in self._sent]

    def consume(self, command: str) -> None:
        """Count one `command` or raise `RateLimitError` without counting it."""
        if not self.enabled or command in self.exempt:
            return
        now = self._now()
        self._prune(now)
        if len(self._sent) >= self.max_sends:
            oldest_at = self._sent[0][0]
            raise RateLimitError(
                retry_in=max(0.0, oldest_at + self.window_seconds - now),
                limit=self.max_sends,
                window_seconds=self.window_seconds,
                command=command,
            )
        self._sent.append((now, command))

    def reset(self) -> None:
        self._sent.clear()

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        sent = self._sent
        while sent and sent[0][0] <= cutoff:
            sent.popleft()


__all__ = ["OutboundLimiter"]
