"""Tests for converting MH folders into mailbox streams."""

import io
import json
import logging
import os
from pathlib import Path

import pytest

from mh_migration import migrate
from mh_migration.errors import MalformedEnvelopeDate, UnknownFormat, UnreadableSource
from mh_migration.options import ConversionOptions
from mh_migration.readers import mailbox_stream

MARKER = b"\x01\x01\x01\x01\n"


def _write_message(
    folder: Path,
    name: str,
    *,
    sender: str,
    subject: str,
    body: str = "Body\n",
) -> Path:
    folder.mkdir(parents=True, exist_ok=True)
    target = folder / name
    target.write_bytes(
        (
            f"From {sender} Mon Jan  1 12:00:00 2001\n"
            f"Subject: {subject}\n\n"
            f"{body}"
        ).encode("latin-1")
    )
    return target


def test_convert_sources_writes_mmdf_in_numeric_order(tmp_path: Path) -> None:
    inbox = tmp_path / "inbox"
    _write_message(inbox, "10", sender="ten@example.com", subject="Ten")
    _write_message(inbox, "2", sender="two@example.com", subject="Two")
    _write_message(inbox, "1", sender="one@example.com", subject="One")
    output = io.BytesIO()

    stats = migrate.convert_sources([inbox], output, ConversionOptions())

    data = output.getvalue()
    messages = list(mailbox_stream.iter_mmdf_messages(data))
    senders = [message.split(b" ", 2)[1] for message in messages]
    assert senders == [b"one@example.com", b"two@example.com", b"ten@example.com"]
    assert data.startswith(MARKER)
    assert data.endswith(MARKER)
    assert stats.converted_messages == 3
    assert stats.expanded_folders == 1
    assert stats.processed_sources == 1
    assert stats.bytes_written == len(data)
    assert stats.format == "mmdf"


def test_convert_sources_writes_mboxrd(tmp_path: Path) -> None:
    inbox = tmp_path / "inbox"
    _write_message(inbox, "1", sender="a@example.com", subject="A", body="From me\n")
    _write_message(inbox, "2", sender="b@example.com", subject="B")
    output = io.BytesIO()

    migrate.convert_sources([inbox], output, ConversionOptions(format="mboxrd"))

    assert output.getvalue() == (
        b"From a@example.com Mon Jan  1 12:00:00 2001\n"
        b"Subject: A\n\n>From me\n\n"
        b"From b@example.com Mon Jan  1 12:00:00 2001\n"
        b"Subject: B\n\nBody\n\n"
    )


def test_convert_sources_passes_options_to_every_message(tmp_path: Path) -> None:
    inbox = tmp_path / "inbox"
    _write_message(inbox, "1", sender="a@example.com", subject="A", body="Body\n\n\n")
    _write_message(inbox, "2", sender="b@example.com", subject="B", body="Body\n\n")
    output = io.BytesIO()

    migrate.convert_sources(
        [inbox],
        output,
        ConversionOptions(mark_seen=True, strip_trailing_blank_lines=True),
    )

    messages = list(mailbox_stream.iter_mmdf_messages(output.getvalue()))
    for message in messages:
        assert b"\nStatus: R\n" in message
        assert message.endswith(b"\n\nBody\n")


def test_convert_sources_rejects_unknown_format_before_reading(tmp_path: Path) -> None:
    output = io.BytesIO()

    with pytest.raises(UnknownFormat):
        migrate.convert_sources(
            [tmp_path / "does-not-exist"], output, ConversionOptions(format="maildir")
        )

    assert output.getvalue() == b""


def test_convert_sources_missing_source(tmp_path: Path) -> None:
    with pytest.raises(UnreadableSource):
        migrate.convert_sources([tmp_path / "missing"], io.BytesIO(), ConversionOptions())


def test_convert_sources_keeps_output_written_before_failure(tmp_path: Path) -> None:
    inbox = tmp_path / "inbox"
    _write_message(inbox, "1", sender="good@example.com", subject="Good")
    (inbox / "2").write_bytes(b"From bad@example.com Thu Foo 99 99:99:99 2020\n\nBody\n")
    _write_message(inbox, "3", sender="never@example.com", subject="Never")
    output = io.BytesIO()

    with pytest.raises(MalformedEnvelopeDate) as excinfo:
        migrate.convert_sources([inbox], output, ConversionOptions())

    assert excinfo.value.source == str(inbox / "2")
    data = output.getvalue()
    assert b"good@example.com" in data
    assert b"bad@example.com" not in data
    assert b"never@example.com" not in data
    assert data.count(MARKER) == 2


def test_convert_sources_warns_about_missing_newline(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    inbox = tmp_path / "inbox"
    _write_message(inbox, "1", sender="a@example.com", subject="A", body="no newline")
    output = io.BytesIO()

    with caplog.at_level(logging.WARNING, logger="mh_migration.migrate"):
        stats = migrate.convert_sources([inbox], output, ConversionOptions())

    assert stats.warnings == 1
    assert stats.converted_messages == 1
    assert output.getvalue().endswith(b"no newline\n" + MARKER)
    assert any(str(inbox / "1") in record.getMessage() for record in caplog.records)


def test_convert_sources_dates_bare_messages_from_mtime(tmp_path: Path) -> None:
    message = tmp_path / "inbox" / "1"
    message.parent.mkdir()
    message.write_bytes(b"Subject: bare\n\nBody\n")
    os.utime(message, (994_075_200, 994_075_200))
    output = io.BytesIO()

    migrate.convert_sources([message], output, ConversionOptions())

    assert output.getvalue().startswith(MARKER + b"From - Mon Jul  2 12:00:00 2001\n")


def test_scan_sources_collects_problems(tmp_path: Path) -> None:
    inbox = tmp_path / "inbox"
    _write_message(inbox, "1", sender="a@example.com", subject="A")
    (inbox / "2").write_bytes(b"Return-path: Not An Address\n\nBody\n")
    _write_message(inbox, "3", sender="c@example.com", subject="C", body="tail")

    report = migrate.scan_sources([inbox, tmp_path / "missing"], ConversionOptions())

    assert report.total_messages == 3
    assert report.valid_messages == 2
    assert [problem.error for problem in report.problems] == [
        "UnreadableSource",
        "MalformedReturnPath",
    ]
    assert report.problems[1].source == str(inbox / "2")
    assert len(report.warnings) == 1


def test_write_report_serializes_scan(tmp_path: Path) -> None:
    inbox = tmp_path / "inbox"
    inbox.mkdir()
    (inbox / "1").write_bytes(b"Delivery-date: someday\n\nBody\n")
    report = migrate.scan_sources([inbox], ConversionOptions())
    report_path = tmp_path / "reports" / "scan.json"

    migrate.write_report(report_path, report)

    data = json.loads(report_path.read_text())
    assert data["summary"]["total_messages"] == 1
    assert data["summary"]["problems"] == 1
    assert data["problems"][0]["error"] == "MalformedReconstructionDate"
    assert data["problems"][0]["source"] == str(inbox / "1")
