"""Helpers for locating messages inside MH folders."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from lib import mh
from mh_migration.errors import UnreadableSource


@dataclass(frozen=True)
class FolderSummary:
    """Message statistics for a single MH folder."""

    display_path: str
    directory: Path
    message_count: int
    first_message: int | None
    last_message: int | None
    skipped_entries: int


def folder_messages(folder: Path) -> list[Path]:
    """Return the message files of ``folder`` in ascending message-number order.

    Only regular files whose whole name is decimal digits are messages; the
    order is numeric, so ``2`` comes before ``10``.
    """

    try:
        entries = list(folder.iterdir())
    except OSError as exc:
        raise UnreadableSource(
            f"cannot list folder: {exc.strerror or exc}", source=str(folder)
        ) from exc

    messages = [
        entry for entry in entries if mh.is_message_name(entry.name) and entry.is_file()
    ]
    messages.sort(key=lambda entry: int(entry.name))
    return messages


def expand_sources(sources: Iterable[Path]) -> Iterator[Path]:
    """Yield message files for ``sources`` in the order they were given.

    Folders expand into their numerically sorted members; anything else is
    taken to be a single message file.
    """

    pending: deque[Path] = deque(sources)
    while pending:
        source = pending.popleft()
        if source.is_dir():
            yield from folder_messages(source)
        elif source.exists():
            yield source
        else:
            raise UnreadableSource("no such file or folder", source=str(source))


def summarize_folders(sources: Iterable[Path]) -> list[FolderSummary]:
    """Return summaries for each folder in ``sources``; message files are ignored."""

    summaries: list[FolderSummary] = []
    for source in sources:
        if not source.exists():
            raise UnreadableSource("no such file or folder", source=str(source))
        if not source.is_dir():
            continue
        messages = folder_messages(source)
        numbers = [int(path.name) for path in messages]
        total_entries = sum(1 for _ in source.iterdir())
        summaries.append(
            FolderSummary(
                display_path=_display_name(source),
                directory=source,
                message_count=len(messages),
                first_message=numbers[0] if numbers else None,
                last_message=numbers[-1] if numbers else None,
                skipped_entries=total_entries - len(messages),
            )
        )
    return summaries


def _display_name(folder: Path) -> str:
    return folder.name or str(folder)


__all__ = ["FolderSummary", "expand_sources", "folder_messages", "summarize_folders"]
