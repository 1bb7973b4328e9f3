from .reassembler import ReassemblerState, StreamReassembler
from .dispatch import HANDLERS, DispatchContext, dispatch_frame

__all__ = [
    "HANDLERS",
    "DispatchContext",
    "ReassemblerState",
    "StreamReassembler",
    "dispatch_frame",
]
