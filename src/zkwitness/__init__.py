"""Codec for witness messages of a proof-system interchange format."""

from .config import CodecSettings, default_settings
from .errors import (
    BuilderError,
    CodecError,
    DecodeError,
    MalformedMessageError,
    MessageTooLargeError,
    MissingFieldError,
    ShortWriteError,
    TruncatedError,
    TypeMismatchError,
)
from .framing import frame, iter_framed, iter_witnesses, read_framed, split_messages, write_framed
from .owned import VariablesOwned, WitnessOwned, decode_witness, encode_witness
from .wire import Builder, Message, peek_message_type

__version__ = "0.1.0"

__all__ = [
    "Builder",
    "BuilderError",
    "CodecError",
    "CodecSettings",
    "DecodeError",
    "MalformedMessageError",
    "Message",
    "MessageTooLargeError",
    "MissingFieldError",
    "ShortWriteError",
    "TruncatedError",
    "TypeMismatchError",
    "VariablesOwned",
    "WitnessOwned",
    "decode_witness",
    "default_settings",
    "encode_witness",
    "frame",
    "iter_framed",
    "iter_witnesses",
    "peek_message_type",
    "read_framed",
    "split_messages",
    "write_framed",
]
