"""Exceptions raised by the witness codec."""

from __future__ import annotations

from typing import Optional


class CodecError(RuntimeError):
    """Base class for every error raised by :mod:`zkwitness`."""


class DecodeError(CodecError):
    """Raised when an envelope cannot be turned into an owned value."""


class MissingFieldError(DecodeError):
    """Raised when a required nested structure is absent from a message."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Required field {name!r} is missing")
        self.name = name


class TypeMismatchError(DecodeError):
    """Raised when the envelope tag does not match the expected message kind."""

    def __init__(self, expected: object, actual: object, detail: Optional[str] = None) -> None:
        message = f"Expected a {expected} message, got {actual}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class TruncatedError(DecodeError):
    """Raised when a source yields fewer bytes than the framing promised."""


class MalformedMessageError(DecodeError):
    """Raised when an envelope references regions that break the layout."""


class MessageTooLargeError(DecodeError):
    """Raised when a length prefix exceeds the configured message limit."""


class BuilderError(CodecError):
    """Raised when the arena builder is used out of order."""


class ShortWriteError(CodecError):
    """Raised when a sink accepts fewer bytes than a framed message holds."""


__all__ = [
    "BuilderError",
    "CodecError",
    "DecodeError",
    "MalformedMessageError",
    "MessageTooLargeError",
    "MissingFieldError",
    "ShortWriteError",
    "TruncatedError",
    "TypeMismatchError",
]
