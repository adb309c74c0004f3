"""Helpers for reading MH message files."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

_MESSAGE_NAME = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class MhRecord:
    """Container for an MH message payload and its file modification time."""

    path: Path
    payload: bytes
    modified: float


def is_message_name(name: str) -> bool:
    """Return ``True`` when ``name`` is an MH message number (decimal digits only)."""

    return _MESSAGE_NAME.fullmatch(name) is not None


def read_mh_message(path: Path) -> MhRecord:
    """Return the raw bytes stored in ``path`` along with its modification time."""

    with path.open("rb") as handle:
        payload = handle.read()
        modified = os.fstat(handle.fileno()).st_mtime

    return MhRecord(path=path, payload=payload, modified=modified)


__all__ = ["MhRecord", "is_message_name", "read_mh_message"]
