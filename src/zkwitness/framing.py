"""Length-prefixed framing for streams of envelopes.

Each message on a stream is ``[u32 little-endian length][envelope]``, so a
reader can split messages of any kind without an out-of-band length channel.
"""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING, BinaryIO, Iterator, List, Optional

from .config import MAX_FRAME_LENGTH, CodecSettings, default_settings
from .errors import MessageTooLargeError, ShortWriteError, TruncatedError, TypeMismatchError
from .wire.reader import BufferLike, MessageView
from .wire.schema import LENGTH_STRUCT, Message

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .owned.witness import WitnessOwned

logger = logging.getLogger(__name__)

PREFIX_SIZE = LENGTH_STRUCT.size


def frame(envelope: BufferLike) -> bytes:
    """Return ``envelope`` with its length prefix prepended."""

    data = bytes(envelope)
    if len(data) > MAX_FRAME_LENGTH:
        raise ValueError(f"Envelope of {len(data)} bytes does not fit a 32-bit length prefix")
    return LENGTH_STRUCT.pack(len(data)) + data


def write_framed(envelope: BufferLike, sink: BinaryIO) -> int:
    """Write the length prefix and ``envelope`` to ``sink``.

    Partial writes are continued until the whole frame is accepted; a sink
    that stops accepting bytes raises :class:`ShortWriteError`.
    """

    data = memoryview(frame(envelope))
    written = 0
    while written < len(data):
        accepted = sink.write(data[written:])
        if accepted is None:
            # Buffered sinks report nothing and take the whole chunk.
            accepted = len(data) - written
        if accepted <= 0:
            raise ShortWriteError(f"Sink stopped after {written} of {len(data)} bytes")
        written += accepted
    return written


def _read_exact(source: BinaryIO, size: int) -> bytes:
    chunks: List[bytes] = []
    remaining = size
    while remaining:
        chunk = source.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def _read_length(source: BinaryIO, settings: CodecSettings, allow_eof: bool) -> Optional[int]:
    raw = _read_exact(source, PREFIX_SIZE)
    if not raw and allow_eof:
        return None
    if len(raw) != PREFIX_SIZE:
        raise TruncatedError(
            f"Stream ended after {len(raw)} of {PREFIX_SIZE} length prefix bytes"
        )
    (length,) = LENGTH_STRUCT.unpack(raw)
    if length > settings.max_message_size:
        raise MessageTooLargeError(
            f"Length prefix {length} exceeds the limit of {settings.max_message_size} bytes"
        )
    return length


def _read_payload(source: BinaryIO, length: int) -> bytes:
    envelope = _read_exact(source, length)
    if len(envelope) != length:
        raise TruncatedError(f"Stream ended after {len(envelope)} of {length} envelope bytes")
    return envelope


def read_framed(source: BinaryIO, settings: Optional[CodecSettings] = None) -> bytes:
    """Read exactly one length-prefixed envelope from ``source``."""

    settings = settings or default_settings()
    length = _read_length(source, settings, allow_eof=False)
    return _read_payload(source, length)


def iter_framed(source: BinaryIO, settings: Optional[CodecSettings] = None) -> Iterator[bytes]:
    """Yield envelopes until the stream ends cleanly on a message boundary."""

    settings = settings or default_settings()
    while True:
        length = _read_length(source, settings, allow_eof=True)
        if length is None:
            return
        yield _read_payload(source, length)


def split_messages(buffer: BufferLike, settings: Optional[CodecSettings] = None) -> List[bytes]:
    """Split an in-memory buffer of framed messages into envelopes."""

    return list(iter_framed(io.BytesIO(bytes(buffer)), settings))


def _tag_label(tag: int) -> str:
    try:
        return Message(tag).name
    except ValueError:
        return f"tag {tag}"


def iter_witnesses(
    source: BinaryIO, settings: Optional[CodecSettings] = None
) -> Iterator["WitnessOwned"]:
    """Decode every witness message of a stream that may carry other kinds."""

    from .owned.witness import decode_witness

    settings = settings or default_settings()
    for envelope in iter_framed(source, settings):
        with MessageView(envelope) as view:
            tag = view.message_type
        if tag == Message.WITNESS:
            yield decode_witness(envelope)
        elif settings.skip_foreign_messages:
            logger.debug("Skipping %s message of %d bytes", _tag_label(tag), len(envelope))
        else:
            raise TypeMismatchError(Message.WITNESS.name, _tag_label(tag))


__all__ = [
    "PREFIX_SIZE",
    "frame",
    "iter_framed",
    "iter_witnesses",
    "read_framed",
    "split_messages",
    "write_framed",
]
