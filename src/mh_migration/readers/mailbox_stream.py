"""Split MMDF and mboxrd streams back into individual messages."""

from __future__ import annotations

from typing import Iterator

from mh_migration.writers.mailbox_format import (
    MMDF_MARKER,
    split_lines,
    unescape_from_lines,
)


def iter_mmdf_messages(data: bytes) -> Iterator[bytes]:
    """Yield the content framed by each pair of MMDF marker lines in ``data``."""

    buffer: list[bytes] = []
    inside = False
    for line in split_lines(data):
        if line == MMDF_MARKER:
            if inside:
                yield b"".join(buffer)
                buffer = []
            inside = not inside
            continue
        if inside:
            buffer.append(line)
    if inside and buffer:
        yield b"".join(buffer)


def iter_mboxrd_messages(data: bytes) -> Iterator[bytes]:
    """Yield each message of an mboxrd stream, envelope line included.

    The blank line separating two messages is dropped and quoted
    ``>From `` lines are restored.
    """

    buffer: list[bytes] = []
    for line in split_lines(data):
        if line.startswith(b"From ") and (not buffer or buffer[-1] in (b"\n", b"\r\n")):
            if buffer:
                yield _finish_mboxrd(buffer)
                buffer = []
        buffer.append(line)
    if buffer:
        yield _finish_mboxrd(buffer)


def _finish_mboxrd(lines: list[bytes]) -> bytes:
    envelope, body = lines[0], lines[1:]
    if body and body[-1] in (b"\n", b"\r\n"):
        body = body[:-1]
    return envelope + unescape_from_lines(b"".join(body))


__all__ = ["iter_mboxrd_messages", "iter_mmdf_messages"]
