"""Runtime settings for the witness codec."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

MAX_FRAME_LENGTH = 0xFFFFFFFF
DEFAULT_MAX_MESSAGE_SIZE = MAX_FRAME_LENGTH

ENV_MAX_MESSAGE_SIZE = "ZKWITNESS_MAX_MESSAGE_SIZE"
ENV_SKIP_FOREIGN = "ZKWITNESS_SKIP_FOREIGN"

_FALSE_VALUES = {"", "0", "false", "no"}


@dataclass(frozen=True)
class CodecSettings:
    """Limits and policies applied while reading framed streams.

    ``max_message_size`` caps the length prefix accepted by the framer so a
    corrupted prefix cannot trigger an unbounded read. ``skip_foreign_messages``
    controls whether :func:`zkwitness.framing.iter_witnesses` passes over
    envelopes of other message kinds or rejects them.
    """

    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE
    skip_foreign_messages: bool = True

    def __post_init__(self) -> None:
        if self.max_message_size <= 0:
            raise ValueError("max_message_size must be positive")
        if self.max_message_size > MAX_FRAME_LENGTH:
            raise ValueError(
                f"max_message_size cannot exceed the frame limit {MAX_FRAME_LENGTH}"
            )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CodecSettings":
        env = os.environ if environ is None else environ
        kwargs = {}
        raw_size = env.get(ENV_MAX_MESSAGE_SIZE)
        if raw_size is not None and raw_size.strip():
            try:
                kwargs["max_message_size"] = int(raw_size.strip(), 0)
            except ValueError as exc:
                raise ValueError(
                    f"{ENV_MAX_MESSAGE_SIZE} must be an integer, got {raw_size!r}"
                ) from exc
        raw_skip = env.get(ENV_SKIP_FOREIGN)
        if raw_skip is not None:
            kwargs["skip_foreign_messages"] = raw_skip.strip().lower() not in _FALSE_VALUES
        return cls(**kwargs)


def default_settings() -> CodecSettings:
    """Return settings derived from the process environment."""

    return CodecSettings.from_env()


__all__ = [
    "CodecSettings",
    "DEFAULT_MAX_MESSAGE_SIZE",
    "ENV_MAX_MESSAGE_SIZE",
    "ENV_SKIP_FOREIGN",
    "MAX_FRAME_LENGTH",
    "default_settings",
]
