from .files import FileAttachment, coerce_attachments
from .parser import parse_envelope
from .envelope import Envelope, now_ms, build_envelope, new_message_id, encode_envelope

__all__ = [
    "Envelope",
    "FileAttachment",
    "build_envelope",
    "coerce_attachments",
    "encode_envelope",
    "new_message_id",
    "now_ms",
    "parse_envelope",
]
