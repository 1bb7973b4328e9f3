"""File payload shape shared by upload commands and file responses."""

from __future__ import annotations

import base64
import mimetypes
from typing import Any
from pathlib import Path
from dataclasses import dataclass

_DEFAULT_MIME = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class FileAttachment:
    """`{name, size, type, data?}` on the wire.

    `data` is base64 content. It is left out when the bytes already went
    through the HTTP multipart upload and only the reference is being sent.
    """

    name: str
    size: int
    type: str
    data: str | None = None

    @classmethod
    def from_bytes(cls, name: str, content: bytes, mime_type: str | None = None) -> FileAttachment:
        return cls(
            name=name,
            size=len(content),
            type=mime_type or mimetypes.guess_type(name)[0] or _DEFAULT_MIME,
            data=base64.b64encode(content).decode("ascii"),
        )

    @classmethod
    def from_path(cls, path: str | Path, *, inline: bool = True) -> FileAttachment:
        p = Path(path)
        if inline:
            return cls.from_bytes(p.name, p.read_bytes())
        return cls(name=p.name, size=p.stat().st_size, type=mimetypes.guess_type(p.name)[0] or _DEFAULT_MIME)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> FileAttachment:
        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("file entry missing non-empty 'name'")
        size = raw.get("size", 0)
        if not isinstance(size, int) or isinstance(size, bool) or size < 0:
            raise ValueError(f"file {name!r}: 'size' must be a non-negative integer")
        mime = raw.get("type") or _DEFAULT_MIME
        if not isinstance(mime, str):
            raise ValueError(f"file {name!r}: 'type' must be a string")
        data = raw.get("data")
        if data is not None and not isinstance(data, str):
            raise ValueError(f"file {name!r}: 'data' must be a base64 string")
        return cls(name=name.strip(), size=size, type=mime, data=data or None)

    def to_wire(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "size": self.size, "type": self.type}
        if self.data is not None:
            out["data"] = self.data
        return out


def coerce_attachments(files: list[FileAttachment | dict[str, Any]]) -> list[FileAttachment]:
    out: list[FileAttachment] = []
    for f in files:
        out.append(f if isinstance(f, FileAttachment) else FileAttachment.from_dict(f))
    return out


__all__ = ["FileAttachment", "coerce_attachments"]
