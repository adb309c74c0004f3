"""Conversion settings shared by the normalizer, encoders and driver."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_FORMAT = "mmdf"


@dataclass(frozen=True)
class ConversionOptions:
    """Per-run settings; passed explicitly to every per-message step."""

    format: str = DEFAULT_FORMAT
    mark_seen: bool = False
    strip_trailing_blank_lines: bool = False
    verbose: bool = False


__all__ = ["DEFAULT_FORMAT", "ConversionOptions"]
