from __future__ import annotations

import base64

import pytest

from chatwire.protocol.files import FileAttachment, coerce_attachments


def test_from_bytes_encodes_and_guesses_type() -> None:
    att = FileAttachment.from_bytes("notes.txt", b"hello")
    assert att.size == 5
    assert att.type == "text/plain"
    assert base64.b64decode(att.data or "") == b"hello"


def test_from_path_reference_only(tmp_path) -> None:
    path = tmp_path / "data.csv"
    path.write_bytes(b"a,b\n1,2\n")

    inline = FileAttachment.from_path(path)
    ref = FileAttachment.from_path(path, inline=False)

    assert inline.data is not None
    assert ref.data is None
    assert ref.size == inline.size == 8
    assert "data" not in ref.to_wire()


def test_coerce_attachments_mixes_dicts_and_objects() -> None:
    out = coerce_attachments([
        {"name": " a.bin ", "size": 3},
        FileAttachment(name="b.txt", size=1, type="text/plain", data="eA=="),
    ])
    assert [a.name for a in out] == ["a.bin", "b.txt"]
    assert out[0].type == "application/octet-stream"
    assert out[1].to_wire() == {"name": "b.txt", "size": 1, "type": "text/plain", "data": "eA=="}


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"name": "  "},
        {"name": "a", "size": -1},
        {"name": "a", "size": True},
        {"name": "a", "type": 3},
        {"name": "a", "data": b"raw"},
    ],
)
def test_from_dict_rejects_bad_entries(raw: dict) -> None:
    with pytest.raises(ValueError):
        FileAttachment.from_dict(raw)
