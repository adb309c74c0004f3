"""Exceptions raised while converting MH messages into a mailbox stream."""

from __future__ import annotations


class ConversionError(Exception):
    """Base class for errors that abort a conversion run."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.source = source

    def __str__(self) -> str:
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message


class MalformedEnvelopeDate(ConversionError):
    """The date of an existing ``From `` line is not an asctime timestamp."""


class MalformedReconstructionDate(ConversionError):
    """A ``Delivery-date`` or ``Received`` header needed for the envelope has no usable date."""


class MalformedReturnPath(ConversionError):
    """A ``Return-path`` header needed for the envelope is not an address token."""


class UnreadableSource(ConversionError):
    """A message file or folder could not be opened or read."""


class UnknownFormat(ConversionError):
    """The requested mailbox format is not supported."""


__all__ = [
    "ConversionError",
    "MalformedEnvelopeDate",
    "MalformedReconstructionDate",
    "MalformedReturnPath",
    "UnknownFormat",
    "UnreadableSource",
]
