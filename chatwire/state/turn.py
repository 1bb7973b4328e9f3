"""Streaming turn state for one assistant response under construction."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TurnSnapshot:
    stream_id: str
    text: str
    sequence: int | None
    fragments: int


@dataclass(slots=True)
class StreamingTurn:
    stream_id: str
    accumulated_text: str = ""
    last_fragment: str | None = None
    sequence: int | None = None
    source_id: str | None = None
    fragments: int = 0
    is_complete: bool = False

    def snapshot(self) -> TurnSnapshot:
        return TurnSnapshot(
            stream_id=self.stream_id,
            text=self.accumulated_text,
            sequence=self.sequence,
            fragments=self.fragments,
        )


__all__ = ["StreamingTurn", "TurnSnapshot"]
