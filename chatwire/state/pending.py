"""Pending request entries held by the correlation table."""

from __future__ import annotations

import asyncio
from typing import Any
from dataclasses import dataclass, field
from collections.abc import Generator


@dataclass(slots=True, eq=False)
class PendingRequest:
    """One outstanding correlated request.

    Awaiting the entry waits for the response payload; it raises
    `RequestTimeoutError` on expiry and `ConnectionClosedError` if the session
    is torn down first.
    """

    request_id: str
    kind: str
    issued_at: float
    timeout_s: float
    future: asyncio.Future[Any]
    timer: asyncio.TimerHandle | None = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.future.done()

    def __await__(self) -> Generator[Any, None, Any]:
        return self.future.__await__()


__all__ = ["PendingRequest"]
