"""High-level workflows for converting MH messages into a mailbox stream."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterable

from tqdm import tqdm

from lib import mh
from mh_migration.errors import ConversionError, UnreadableSource
from mh_migration.headers import NormalizedMessage, normalize_message
from mh_migration.options import ConversionOptions
from mh_migration.readers import mh_folder
from mh_migration.writers import mailbox_format

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionStats:
    """Summary information produced by a conversion run."""

    processed_sources: int
    expanded_folders: int
    converted_messages: int
    warnings: int
    bytes_written: int
    format: str


def convert_sources(
    sources: Iterable[Path],
    output: BinaryIO,
    options: ConversionOptions,
    *,
    show_progress: bool = False,
) -> ConversionStats:
    """Append every message of ``sources`` to ``output`` in ``options.format``.

    The first message that cannot be converted aborts the run by raising a
    :class:`~mh_migration.errors.ConversionError`; blocks already written to
    ``output`` are left in place.
    """

    encoder = mailbox_format.get_encoder(options.format)

    source_list = list(sources)
    expanded_folders = sum(1 for source in source_list if source.is_dir())
    messages = list(mh_folder.expand_sources(source_list))

    converted = 0
    warnings = 0
    written = 0

    progress = None
    if show_progress and messages:
        progress = tqdm(total=len(messages), desc="Converting Mail", unit="msg")

    try:
        for path in messages:
            if progress:
                progress.set_postfix_str(path.name, refresh=False)

            message = _normalize_file(path, options)
            for warning in message.warnings:
                logger.warning(warning)
            warnings += len(message.warnings)

            block = encoder(message)
            output.write(block)
            written += len(block)
            converted += 1
            logger.debug("%s: %s", path, message.envelope_line.rstrip("\n"))

            if progress:
                progress.update(1)
    finally:
        if progress:
            progress.close()

    output.flush()

    return ConversionStats(
        processed_sources=len(source_list),
        expanded_folders=expanded_folders,
        converted_messages=converted,
        warnings=warnings,
        bytes_written=written,
        format=options.format,
    )


@dataclass(frozen=True)
class ScanProblem:
    """A message (or source) that would abort a conversion run."""

    source: str
    error: str
    message: str


@dataclass
class ScanReport:
    """Aggregate results from checking sources without writing a mailbox."""

    total_messages: int = 0
    valid_messages: int = 0
    problems: list[ScanProblem] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def scan_sources(
    sources: Iterable[Path],
    options: ConversionOptions,
    *,
    show_progress: bool = False,
) -> ScanReport:
    """Normalize every message of ``sources``, recording failures instead of stopping."""

    report = ScanReport()
    messages: list[Path] = []
    for source in sources:
        try:
            messages.extend(mh_folder.expand_sources([source]))
        except ConversionError as exc:
            report.problems.append(_problem(exc, str(source)))

    progress = tqdm(
        total=len(messages),
        disable=not show_progress,
        unit="msg",
        desc="Scanning Messages",
    )

    for path in messages:
        report.total_messages += 1
        try:
            message = _normalize_file(path, options)
        except ConversionError as exc:
            report.problems.append(_problem(exc, str(path)))
        else:
            report.valid_messages += 1
            report.warnings.extend(message.warnings)
        progress.update(1)

    progress.close()
    return report


def report_to_dict(report: ScanReport) -> dict:
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "summary": {
            "total_messages": report.total_messages,
            "valid_messages": report.valid_messages,
            "problems": len(report.problems),
            "warnings": len(report.warnings),
        },
        "problems": [
            {
                "source": problem.source,
                "error": problem.error,
                "message": problem.message,
            }
            for problem in report.problems
        ],
        "warnings": list(report.warnings),
    }


def write_report(report_path: Path, report: ScanReport) -> None:
    """Serialize ``report`` to ``report_path`` in JSON format."""

    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(json.dumps(report_to_dict(report), indent=2), encoding="utf-8")


def _normalize_file(path: Path, options: ConversionOptions) -> NormalizedMessage:
    try:
        record = mh.read_mh_message(path)
    except OSError as exc:
        raise UnreadableSource(
            f"cannot read message: {exc.strerror or exc}", source=str(path)
        ) from exc
    return normalize_message(
        record.payload,
        options,
        modified=record.modified,
        source=str(path),
    )


def _problem(exc: ConversionError, fallback_source: str) -> ScanProblem:
    return ScanProblem(
        source=exc.source or fallback_source,
        error=type(exc).__name__,
        message=exc.message,
    )


__all__ = [
    "ConversionStats",
    "ScanProblem",
    "ScanReport",
    "convert_sources",
    "report_to_dict",
    "scan_sources",
    "write_report",
]
