"""Tests for length-prefixed framing of envelopes."""

from __future__ import annotations

import io
import struct
from pathlib import Path

import pytest

from zkwitness import (
    CodecSettings,
    DecodeError,
    MessageTooLargeError,
    ShortWriteError,
    TruncatedError,
    TypeMismatchError,
    VariablesOwned,
    WitnessOwned,
    decode_witness,
    encode_witness,
    frame,
    iter_framed,
    iter_witnesses,
    read_framed,
    split_messages,
    write_framed,
)
from zkwitness.config import MAX_FRAME_LENGTH
from zkwitness.wire import Builder, Message


def _witness(*pairs) -> WitnessOwned:
    variables = VariablesOwned()
    variables.extend(pairs)
    return WitnessOwned(assigned_variables=variables)


def _foreign_envelope(tag: int) -> bytes:
    builder = Builder()
    payload = builder.create_table([])
    root = builder.create_table([tag, payload], scalar_slots=(0,))
    return builder.finish(root)


class _ChunkedSink:
    """Sink accepting at most ``limit`` bytes per write, like an unbuffered pipe."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.data = b""
        self.calls = 0

    def write(self, data) -> int:
        self.calls += 1
        accepted = bytes(data[: self.limit])
        self.data += accepted
        return len(accepted)


class _TrickleSource:
    """Source returning at most one byte per read, like a slow socket."""

    def __init__(self, data: bytes) -> None:
        self._stream = io.BytesIO(data)

    def read(self, size: int = -1) -> bytes:
        return self._stream.read(min(size, 1))


def test_frame_prepends_little_endian_length() -> None:
    envelope = encode_witness(WitnessOwned())

    framed = frame(envelope)

    assert framed[:4] == struct.pack("<I", len(envelope))
    assert framed[4:] == envelope


@pytest.mark.parametrize(
    "witness",
    [WitnessOwned(), _witness((1, b"\x01"), (2, b"\xff\x00"))],
)
def test_write_then_read_returns_identical_bytes(witness: WitnessOwned) -> None:
    envelope = encode_witness(witness)
    sink = io.BytesIO()

    written = write_framed(envelope, sink)
    sink.seek(0)
    recovered = read_framed(sink)

    assert written == len(envelope) + 4
    assert recovered == envelope
    assert decode_witness(recovered) == witness


def test_read_tolerates_partial_reads() -> None:
    envelope = encode_witness(_witness((9, b"\x09")))

    assert read_framed(_TrickleSource(frame(envelope))) == envelope


def test_zero_length_input_is_truncated() -> None:
    with pytest.raises(TruncatedError):
        read_framed(io.BytesIO(b""))


def test_every_proper_prefix_of_a_framed_message_fails() -> None:
    framed = frame(encode_witness(_witness((1, b"\x01"), (2, b"\xff\x00"))))

    for size in range(len(framed)):
        with pytest.raises(DecodeError):
            decode_witness(read_framed(io.BytesIO(framed[:size])))


def test_short_payload_is_truncated_not_returned() -> None:
    framed = frame(encode_witness(_witness((1, b"\x01"))))

    with pytest.raises(TruncatedError):
        read_framed(io.BytesIO(framed[:-1]))


def test_length_prefix_above_the_limit_is_rejected() -> None:
    framed = frame(encode_witness(_witness((1, b"\x01"))))

    with pytest.raises(MessageTooLargeError):
        read_framed(io.BytesIO(framed), CodecSettings(max_message_size=8))


def test_default_limit_accepts_every_length_the_writer_can_emit() -> None:
    assert CodecSettings().max_message_size == MAX_FRAME_LENGTH
    source = io.BytesIO(struct.pack("<I", (1 << 30) + 1) + b"\x00" * 16)

    # The prefix is accepted; only the missing payload bytes are reported.
    with pytest.raises(TruncatedError):
        read_framed(source, CodecSettings())


def test_partial_writes_are_continued_until_the_frame_is_complete() -> None:
    witness = _witness((1, b"\x01"), (2, b"\xff\x00"), (3, b"\x03" * 32))
    envelope = encode_witness(witness)
    sink = _ChunkedSink(8)

    written = write_framed(envelope, sink)

    assert written == len(envelope) + 4
    assert sink.data == frame(envelope)
    assert sink.calls > 1
    assert decode_witness(read_framed(io.BytesIO(sink.data))) == witness


def test_sink_that_stops_accepting_is_reported() -> None:
    sink = _ChunkedSink(0)

    with pytest.raises(ShortWriteError):
        write_framed(b"envelope", sink)
    assert sink.data == b""


def test_sink_returning_none_is_accepted() -> None:
    chunks = []

    class _Sink:
        def write(self, data) -> None:
            chunks.append(bytes(data))

    assert write_framed(b"abc", _Sink()) == 7
    assert chunks == [b"\x03\x00\x00\x00abc"]


def test_iter_framed_stops_at_a_clean_boundary() -> None:
    first = encode_witness(_witness((1, b"\x01")))
    second = encode_witness(WitnessOwned())
    stream = io.BytesIO(frame(first) + frame(second))

    assert list(iter_framed(stream)) == [first, second]


def test_iter_framed_rejects_trailing_partial_message() -> None:
    first = encode_witness(_witness((1, b"\x01")))
    stream = io.BytesIO(frame(first) + b"\x05\x00")
    messages = iter_framed(stream)

    assert next(messages) == first
    with pytest.raises(TruncatedError):
        next(messages)


def test_split_messages_handles_mixed_kinds() -> None:
    witness = encode_witness(_witness((4, b"\x04")))
    header = _foreign_envelope(Message.CIRCUIT_HEADER)

    assert split_messages(frame(header) + frame(witness)) == [header, witness]
    assert split_messages(b"") == []


def test_iter_witnesses_skips_foreign_messages() -> None:
    first = _witness((1, b"\x01"))
    second = _witness((2, b"\x02"), (3, b"\x03"))
    stream = io.BytesIO(
        frame(_foreign_envelope(Message.CIRCUIT_HEADER))
        + frame(encode_witness(first))
        + frame(_foreign_envelope(Message.CONSTRAINT_SYSTEM))
        + frame(_foreign_envelope(77))
        + frame(encode_witness(second))
    )

    assert list(iter_witnesses(stream, CodecSettings())) == [first, second]


def test_iter_witnesses_can_reject_foreign_messages() -> None:
    stream = io.BytesIO(
        frame(encode_witness(WitnessOwned())) + frame(_foreign_envelope(Message.COMMAND))
    )
    witnesses = iter_witnesses(stream, CodecSettings(skip_foreign_messages=False))

    assert next(witnesses) == WitnessOwned()
    with pytest.raises(TypeMismatchError) as excinfo:
        next(witnesses)
    assert excinfo.value.actual == "COMMAND"


def test_write_into_and_read_from_a_file(tmp_path: Path) -> None:
    path = tmp_path / "witnesses.bin"
    witnesses = [_witness((1, b"\x01")), WitnessOwned(), _witness((2, b"\xff\x00"))]

    with path.open("wb") as fh:
        for witness in witnesses:
            witness.write_into(fh)

    with path.open("rb") as fh:
        assert WitnessOwned.read_from(fh) == witnesses[0]
        assert list(iter_witnesses(fh)) == witnesses[1:]
