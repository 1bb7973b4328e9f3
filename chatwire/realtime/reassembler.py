"""Reassembly of streamed assistant fragments into one logical message."""

from __future__ import annotations

import enum
import uuid
import logging
from collections import OrderedDict

from chatwire.errors import DuplicateDeliveryError
from chatwire.config.protocol import STREAM_ID_PREFIX
from chatwire.state.turn import TurnSnapshot, StreamingTurn
from chatwire.events.types import PartialMessage, MessageComplete

logger = logging.getLogger(__name__)

_FINALIZED_WINDOW = 1024


class ReassemblerState(str, enum.Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    FINALIZING = "finalizing"


def _new_stream_id() -> str:
    return f"{STREAM_ID_PREFIX}{uuid.uuid4().hex}"


class StreamReassembler:
    """State machine for the single open streaming turn of a session.

    Idle -> Accumulating on the first fragment, Accumulating -> Accumulating
    on each further fragment, {Idle, Accumulating} -> Finalizing -> Idle on a
    completion. Each accepted fragment yields a `PartialMessage` carrying the
    full text so far; each accepted completion yields exactly one
    `MessageComplete` under the turn's stream id.
    """

    def __init__(self) -> None:
        self._turn: StreamingTurn | None = None
        self._state = ReassemblerState.IDLE
        self._finalized: OrderedDict[str, str] = OrderedDict()

    @property
    def state(self) -> ReassemblerState:
        return self._state

    @property
    def turn(self) -> TurnSnapshot | None:
        return self._turn.snapshot() if self._turn is not None else None

    def is_finalized(self, message_id: str | None) -> bool:
        return message_id is not None and message_id in self._finalized

    def accept_fragment(
        self,
        content: str,
        *,
        sequence: int | None = None,
        source_id: str | None = None,
    ) -> PartialMessage | None:
        try:
            self._check_fragment(content, source_id)
        except DuplicateDeliveryError as exc:
            logger.debug("fragment dropped: %s", exc)
            return None
        if not content:
            return None

        turn = self._turn
        if turn is None:
            turn = StreamingTurn(stream_id=_new_stream_id(), source_id=source_id)
            self._turn = turn
            self._state = ReassemblerState.ACCUMULATING
            logger.debug("turn opened stream_id=%s", turn.stream_id)

        turn.accumulated_text += content
        turn.last_fragment = content
        turn.fragments += 1
        if sequence is not None:
            turn.sequence = sequence
        if turn.source_id is None:
            turn.source_id = source_id
        return PartialMessage(stream_id=turn.stream_id, text=turn.accumulated_text, sequence=sequence)

    def accept_completion(self, full_text: str, message_id: str | None) -> MessageComplete | None:
        try:
            self._check_completion(message_id)
        except DuplicateDeliveryError as exc:
            logger.debug("completion dropped: %s", exc)
            return None

        self._state = ReassemblerState.FINALIZING
        turn = self._turn
        if turn is None:
            turn = StreamingTurn(stream_id=_new_stream_id())

        # Longer text wins: covers a completion racing ahead of the last
        # fragment as well as a server that only sends the final text.
        local = turn.accumulated_text
        server = full_text or ""
        text = server if len(server) >= len(local) else local

        turn.is_complete = True
        if message_id is not None:
            self._remember(message_id, turn.stream_id)
        if turn.source_id is not None:
            self._remember(turn.source_id, turn.stream_id)

        self._turn = None
        self._state = ReassemblerState.IDLE
        logger.debug("turn finalized stream_id=%s message_id=%s chars=%d", turn.stream_id, message_id, len(text))
        return MessageComplete(stream_id=turn.stream_id, text=text, message_id=message_id)

    def reset(self, *, forget_finalized: bool = False) -> str | None:
        """Drop the open turn without a completion; returns its stream id."""
        dropped = self._turn.stream_id if self._turn is not None else None
        self._turn = None
        self._state = ReassemblerState.IDLE
        if forget_finalized:
            self._finalized.clear()
        if dropped is not None:
            logger.debug("turn discarded stream_id=%s", dropped)
        return dropped

    def _check_fragment(self, content: str, source_id: str | None) -> None:
        if self.is_finalized(source_id):
            raise DuplicateDeliveryError("fragment of finalized message", str(source_id))
        turn = self._turn
        if turn is not None and content and turn.last_fragment == content:
            raise DuplicateDeliveryError("fragment", turn.stream_id)

    def _check_completion(self, message_id: str | None) -> None:
        if self.is_finalized(message_id):
            raise DuplicateDeliveryError("completion", str(message_id))

    def _remember(self, message_id: str, stream_id: str) -> None:
        self._finalized[message_id] = stream_id
        while len(self._finalized) > _FINALIZED_WINDOW:
            self._finalized.popitem(last=False)


__all__ = ["ReassemblerState", "StreamReassembler"]
