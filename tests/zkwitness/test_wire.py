"""Tests for the arena builder and the zero-copy views."""

from __future__ import annotations

import struct

import pytest

from zkwitness import TypeMismatchError, WitnessOwned, encode_witness
from zkwitness.errors import BuilderError, TruncatedError
from zkwitness.wire import Builder, Message, MessageView, TableView, peek_message_type
from zkwitness.wire.schema import ABSENT, HEADER_SIZE


def test_builder_returns_forward_growing_offsets() -> None:
    builder = Builder()

    first = builder.create_bytes(b"abc")
    second = builder.create_u64_vector([1, 2])
    third = builder.create_offset_vector([first])

    assert first == HEADER_SIZE
    assert second == first + 4 + 3
    assert third == second + 4 + 16
    assert builder.offset == third + 4 + 4


def test_u64_vector_is_little_endian() -> None:
    builder = Builder()
    builder.create_u64_vector([1, 2**64 - 1])
    root = builder.create_table([])

    envelope = builder.finish(root)

    assert envelope[HEADER_SIZE : HEADER_SIZE + 20] == (
        struct.pack("<I", 2) + struct.pack("<QQ", 1, 2**64 - 1)
    )


@pytest.mark.parametrize("value", [-1, 2**64])
def test_u64_vector_rejects_out_of_range_ids(value: int) -> None:
    with pytest.raises(ValueError):
        Builder().create_u64_vector([value])


def test_table_cannot_reference_unwritten_regions() -> None:
    builder = Builder()
    child = builder.create_bytes(b"x")

    with pytest.raises(BuilderError):
        builder.create_table([child + 1])
    with pytest.raises(BuilderError):
        builder.create_offset_vector([builder.offset])


def test_table_scalar_slots_skip_reference_checks() -> None:
    builder = Builder()

    offset = builder.create_table([Message.WITNESS, ABSENT], scalar_slots=(0,))

    assert offset == HEADER_SIZE


def test_scalar_slots_must_fit_32_bits() -> None:
    with pytest.raises(ValueError):
        Builder().create_table([2**32], scalar_slots=(0,))


def test_finished_builder_rejects_further_writes() -> None:
    builder = Builder()
    root = builder.create_table([])
    builder.finish(root)

    assert builder.finished
    with pytest.raises(BuilderError):
        builder.create_bytes(b"late")
    with pytest.raises(BuilderError):
        builder.finish(root)


def test_finish_requires_a_written_root() -> None:
    with pytest.raises(BuilderError):
        Builder().finish(HEADER_SIZE)


def test_table_view_reads_absent_past_its_field_count() -> None:
    builder = Builder()
    payload = builder.create_bytes(b"p")
    table = builder.create_table([payload])
    envelope = builder.finish(table)

    view = TableView(memoryview(envelope), table)

    assert view.field_count == 1
    assert view.slot(0) == payload
    assert view.slot(5) == ABSENT
    assert not view.has(3)
    assert view.table(3) is None
    assert view.u64_vector(3) is None
    assert view.bytes_vector(3) is None


def test_table_view_rejects_slots_past_the_end() -> None:
    buffer = memoryview(struct.pack("<I", 4) + struct.pack("<HH", 3, 0) + b"\x00" * 4)

    with pytest.raises(TruncatedError):
        TableView(buffer, 4)


def test_peek_message_type() -> None:
    assert peek_message_type(encode_witness(WitnessOwned())) is Message.WITNESS


def test_peek_rejects_unknown_tags() -> None:
    builder = Builder()
    root = builder.create_table([42, ABSENT], scalar_slots=(0,))

    with pytest.raises(TypeMismatchError):
        peek_message_type(builder.finish(root))


def test_views_refuse_access_after_release() -> None:
    with MessageView(encode_witness(WitnessOwned())) as view:
        root = view.root
        assert view.message_type == Message.WITNESS

    with pytest.raises(ValueError):
        root.slot(0)
