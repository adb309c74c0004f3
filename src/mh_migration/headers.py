"""Rebuild the envelope line and status headers of a single MH message.

MH message files carry no mailbox separator. Before a message can be written
to an MMDF or mboxrd stream it needs a ``From `` envelope line, which is either
taken from the top of the file, or rebuilt from the ``Delivery-date``,
``Received`` and ``Return-path`` headers, or, as a last resort, from the file
modification time.

Some mail readers also prepend ``Replied:``, ``Resent:`` and ``X-*:`` lines
*above* the envelope line. Those are lifted out and restored beneath it,
together with the ``X-Status``/``Status`` flags mailbox readers understand.

Messages are handled as ISO-8859-1 text so every byte maps to exactly one
character and survives the round trip unchanged.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Iterator

from mh_migration.errors import (
    MalformedEnvelopeDate,
    MalformedReconstructionDate,
    MalformedReturnPath,
)
from mh_migration.options import ConversionOptions

ENCODING = "latin-1"
UNKNOWN_SENDER = "-"

_DAYS = "Mon|Tue|Wed|Thu|Fri|Sat|Sun"
_MONTHS = "Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec"

_PREPENDED_HEADER = re.compile(r"(Resent|Replied|X-[^:\s]+):[ \t]*([^\n]*)\n")
_ENVELOPE_LINE = re.compile(r"From (\S+) ([^\n]*)(?:\n|\Z)")
_ASCTIME_DATE = re.compile(
    rf"(?:{_DAYS}) (?:{_MONTHS}) [ 0-3][0-9] [012][0-9]:[0-5][0-9]:[0-6][0-9] [12][0-9]{{3}}"
)
_HEADER_START = re.compile(r"([!-9;-~]+):[ \t]*([^\n]*)")
_HEADER_DATE = re.compile(
    rf"({_DAYS}), +([0-9]{{1,2}}) ({_MONTHS}) ([0-9]{{4}}) "
    r"([0-9]{2}:[0-9]{2}:[0-9]{2})(?: +([+-][0-9]{4}))?"
)
_ANGLE_ADDRESS = re.compile(r"<(\S+)>")
_BARE_ADDRESS = re.compile(r"\S+")


class HeaderMap:
    """Ordered mapping of header names to every value seen for that name."""

    def __init__(self) -> None:
        self._values: dict[str, list[str]] = {}

    def add(self, name: str, value: str) -> None:
        self._values.setdefault(name, []).append(value)

    def continue_value(self, name: str, line: str) -> None:
        """Append a folded continuation ``line`` to the latest value of ``name``."""

        values = self._values[name]
        values[-1] = f"{values[-1]}\n{line}"

    def get_all(self, name: str) -> list[str]:
        return list(self._values.get(name, ()))

    def first(self, name: str) -> str | None:
        """Return the first value stored under ``name``, ignoring case."""

        wanted = name.lower()
        for key, values in self._values.items():
            if key.lower() == wanted and values:
                return values[0]
        return None

    def items(self) -> Iterator[tuple[str, list[str]]]:
        for name, values in self._values.items():
            yield name, list(values)

    def sorted_lines(self) -> Iterator[str]:
        """Yield ``Name: value`` lines, names ascending, values in arrival order."""

        for name in sorted(self._values):
            for value in self._values[name]:
                yield f"{name}: {value}\n"

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)


@dataclass(frozen=True)
class Envelope:
    """Sender and delivery time recorded on a mailbox ``From `` line."""

    sender: str
    date: str
    trailing: str = ""

    @property
    def line(self) -> str:
        return f"From {self.sender} {self.date}{self.trailing}\n"


@dataclass(frozen=True)
class NormalizedMessage:
    """A message ready for a mailbox encoder: envelope line plus headers and body."""

    source: str
    envelope: Envelope
    body: str
    warnings: tuple[str, ...] = ()

    @property
    def envelope_line(self) -> str:
        return self.envelope.line

    def as_text(self) -> str:
        return self.envelope.line + self.body

    def as_bytes(self) -> bytes:
        return self.as_text().encode(ENCODING)


def normalize_message(
    raw: bytes,
    options: ConversionOptions,
    *,
    modified: float = 0.0,
    source: str = "<message>",
) -> NormalizedMessage:
    """Return ``raw`` with a valid envelope line and restored status headers.

    ``modified`` is the message file's modification time; it dates the
    envelope when neither the file nor its headers carry a usable date.
    ``source`` names the message in errors and warnings.

    Injected headers read top to bottom as ``X-Status: A``, ``Status: R``,
    then the lifted headers by ascending name. Mail readers expect
    ``X-Status`` directly above ``Status``, so this order is fixed.
    """

    text = raw.decode(ENCODING)
    cursor = 0

    prepended = HeaderMap()
    while True:
        match = _PREPENDED_HEADER.match(text, cursor)
        if match is None:
            break
        prepended.add(match.group(1), match.group(2))
        cursor = match.end()

    sender: str | None = None
    date: str | None = None
    trailing: str | None = None
    match = _ENVELOPE_LINE.match(text, cursor)
    if match is not None:
        sender, stamp = match.groups()
        date, trailing = stamp[:24], stamp[24:]
        cursor = match.end()
        if _ASCTIME_DATE.fullmatch(date) is None:
            raise MalformedEnvelopeDate(
                f"invalid date {date!r} in envelope line", source=source
            )

    headers = parse_headers(text, cursor)

    injected: list[str] = []
    if "Replied" in prepended:
        injected.append("X-Status: A\n")
    if options.mark_seen:
        injected.append("Status: R\n")
    injected.extend(prepended.sorted_lines())
    body = "".join(injected) + text[cursor:]

    if date is None:
        date, trailing = _reconstruct_date(headers, modified, source)
    if sender is None:
        sender = _reconstruct_sender(headers, source)

    warnings: list[str] = []
    if not body.endswith("\n"):
        body += "\n"
        warnings.append(f"{source}: added missing newline at end of message")
    if options.strip_trailing_blank_lines:
        body = _strip_trailing_blank_lines(body)

    return NormalizedMessage(
        source=source,
        envelope=Envelope(sender=sender, date=date, trailing=trailing or ""),
        body=body,
        warnings=tuple(warnings),
    )


def parse_headers(text: str, start: int = 0) -> HeaderMap:
    """Collect the header block of ``text`` beginning at offset ``start``.

    Scanning stops at the first line that neither starts a header nor
    continues one; nothing in ``text`` is modified.
    """

    headers = HeaderMap()
    current: str | None = None
    position = start
    length = len(text)
    while position < length:
        end = text.find("\n", position)
        end = length if end == -1 else end + 1
        line = text[position:end].rstrip("\n")
        if current is not None and line[:1] in (" ", "\t"):
            headers.continue_value(current, line)
        else:
            match = _HEADER_START.fullmatch(line)
            if match is None:
                break
            current = match.group(1)
            headers.add(current, match.group(2))
        position = end
    return headers


def _strip_trailing_blank_lines(body: str) -> str:
    """Drop whitespace-only lines after the last line with content."""

    content = body.rstrip(" \t\r\n")
    return body[: body.find("\n", len(content)) + 1]


def format_asctime(timestamp: float) -> str:
    """Return ``timestamp`` as a 24-character asctime string in UTC."""

    return time.asctime(time.gmtime(timestamp))


def _reconstruct_date(headers: HeaderMap, modified: float, source: str) -> tuple[str, str]:
    for name in ("Delivery-date", "Received"):
        value = headers.first(name)
        if value is None:
            continue
        match = _HEADER_DATE.search(value)
        if match is None:
            raise MalformedReconstructionDate(
                f"no usable date in {name} header {value.strip()!r}", source=source
            )
        day, day_of_month, month, year, clock, offset = match.groups()
        date = f"{day} {month} {int(day_of_month):2d} {clock} {year}"
        return date, f" {offset}" if offset else ""
    return format_asctime(modified), ""


def _reconstruct_sender(headers: HeaderMap, source: str) -> str:
    value = headers.first("Return-path")
    if value is None:
        return UNKNOWN_SENDER
    candidate = value.strip()
    match = _ANGLE_ADDRESS.fullmatch(candidate)
    if match is not None:
        return match.group(1)
    if _BARE_ADDRESS.fullmatch(candidate) is not None:
        return candidate
    raise MalformedReturnPath(f"unusable Return-path {candidate!r}", source=source)


__all__ = [
    "ENCODING",
    "UNKNOWN_SENDER",
    "Envelope",
    "HeaderMap",
    "NormalizedMessage",
    "format_asctime",
    "normalize_message",
    "parse_headers",
]
