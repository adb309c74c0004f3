"""Encoders turning normalized messages into MMDF or mboxrd mailbox blocks."""

from __future__ import annotations

from typing import Callable, Iterator

from mh_migration.errors import UnknownFormat
from mh_migration.headers import ENCODING, NormalizedMessage

MMDF_MARKER = b"\x01\x01\x01\x01\n"

Encoder = Callable[[NormalizedMessage], bytes]


def split_lines(data: bytes) -> Iterator[bytes]:
    """Yield the lines of ``data`` with their endings; only ``\\n`` ends a line."""

    start = 0
    length = len(data)
    while start < length:
        end = data.find(b"\n", start)
        end = length if end == -1 else end + 1
        yield data[start:end]
        start = end


def _split_newline(line: bytes) -> tuple[bytes, bytes]:
    if line.endswith(b"\r\n"):
        return line[:-2], b"\r\n"
    if line.endswith(b"\n"):
        return line[:-1], b"\n"
    return line, b""


def escape_from_lines(message: bytes) -> bytes:
    """Quote every line matching ``^>*From `` with one more ``>`` (mboxrd)."""

    escaped: list[bytes] = []
    for line in split_lines(message):
        content, newline = _split_newline(line)
        if content.lstrip(b">").startswith(b"From "):
            content = b">" + content
        escaped.append(content + newline)
    return b"".join(escaped)


def unescape_from_lines(message: bytes) -> bytes:
    """Remove one leading ``>`` from every line matching ``^>+From ``."""

    unescaped: list[bytes] = []
    for line in split_lines(message):
        content, newline = _split_newline(line)
        if content.startswith(b">") and content.lstrip(b">").startswith(b"From "):
            content = content[1:]
        unescaped.append(content + newline)
    return b"".join(unescaped)


def encode_mboxrd(message: NormalizedMessage) -> bytes:
    """Return ``message`` as an mboxrd block ending in a separating blank line."""

    block = message.envelope_line.encode(ENCODING) + escape_from_lines(
        message.body.encode(ENCODING)
    )
    if not block.endswith(b"\n\n"):
        block += b"\n"
    return block


def encode_mmdf(message: NormalizedMessage) -> bytes:
    """Return ``message`` framed between two MMDF marker lines."""

    return MMDF_MARKER + message.as_bytes() + MMDF_MARKER


_ENCODERS: dict[str, Encoder] = {
    "mmdf": encode_mmdf,
    "mboxrd": encode_mboxrd,
}

FORMATS = tuple(_ENCODERS)


def get_encoder(name: str) -> Encoder:
    """Return the encoder registered for ``name``."""

    try:
        return _ENCODERS[name]
    except KeyError:
        raise UnknownFormat(
            f"unknown mailbox format {name!r} (expected one of: {', '.join(FORMATS)})"
        ) from None


__all__ = [
    "FORMATS",
    "MMDF_MARKER",
    "Encoder",
    "encode_mboxrd",
    "encode_mmdf",
    "escape_from_lines",
    "get_encoder",
    "split_lines",
    "unescape_from_lines",
]
