"""Error types for the chat transport (dataclasses only)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ConnectionFailedError(Exception):
    """Raised when the socket could not be opened within the connect timeout."""

    url: str
    reason: str

    def __str__(self) -> str:
        return f"connection to {self.url} failed: {self.reason}"


@dataclass(frozen=True, slots=True)
class NotConnectedError(Exception):
    """Raised when a command is issued while no socket is open."""

    command: str

    def __str__(self) -> str:
        return f"cannot send {self.command!r}: not connected"


@dataclass(frozen=True, slots=True)
class RequestTimeoutError(Exception):
    """A correlated request received no response within its bound."""

    request_id: str
    kind: str
    timeout_s: float

    def __str__(self) -> str:
        return f"{self.kind} request {self.request_id} timed out after {self.timeout_s:.1f}s"


@dataclass(frozen=True, slots=True)
class ConnectionClosedError(Exception):
    """A pending request was abandoned because the session was torn down."""

    request_id: str
    kind: str

    def __str__(self) -> str:
        return f"{self.kind} request {self.request_id} cancelled: connection closed"


@dataclass(frozen=True, slots=True)
class ProtocolError(Exception):
    """Malformed or unrecognised envelope. Logged and dropped, never fatal."""

    reason: str
    msg_type: str | None = None

    def __str__(self) -> str:
        if self.msg_type:
            return f"{self.reason} (type={self.msg_type!r})"
        return self.reason


@dataclass(frozen=True, slots=True)
class DuplicateDeliveryError(Exception):
    """A fragment, completion or response was delivered more than once."""

    what: str
    key: str

    def __str__(self) -> str:
        return f"duplicate {self.what}: {self.key}"


@dataclass(frozen=True, slots=True)
class RateLimitError(Exception):
    """Raised when the client-side outbound cap refuses a command."""

    retry_in: float
    limit: int
    window_seconds: float
    command: str = ""

    def __str__(self) -> str:
        what = f"{self.command!r} refused" if self.command else "refused"
        return (
            f"{what}: outbound limit of {self.limit} per {self.window_seconds:.0f}s reached; "
            f"retry in {self.retry_in:.2f}s"
        )


__all__ = [
    "ConnectionClosedError",
    "ConnectionFailedError",
    "DuplicateDeliveryError",
    "NotConnectedError",
    "ProtocolError",
    "RateLimitError",
    "RequestTimeoutError",
]
