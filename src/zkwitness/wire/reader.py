"""Zero-copy views over received envelopes.

Views borrow a :class:`memoryview` of the caller's buffer. A
:class:`MessageView` is a context manager and releases that memoryview on
exit, after which every :class:`TableView` derived from it refuses access.
Accessors that return data copy it out, so their results outlive the view.
"""

from __future__ import annotations

from typing import List, Optional, Union

import numpy as _np

from ..errors import (
    DecodeError,
    MalformedMessageError,
    MissingFieldError,
    TruncatedError,
    TypeMismatchError,
)
from .schema import (
    ABSENT,
    HEADER_SIZE,
    LENGTH_STRUCT,
    OFFSET_STRUCT,
    ROOT_OFFSET_STRUCT,
    TABLE_HEADER_STRUCT,
    U64_DTYPE,
    U64_SIZE,
    Message,
    RootField,
    field_name,
)

BufferLike = Union[bytes, bytearray, memoryview]


def _require(buf: memoryview, start: int, size: int, what: str) -> None:
    if start < HEADER_SIZE:
        raise MalformedMessageError(f"{what} offset {start} points into the envelope header")
    if start + size > len(buf):
        raise TruncatedError(
            f"{what} at offset {start} needs {size} bytes, envelope holds {len(buf)}"
        )


def _read_count(buf: memoryview, start: int, what: str) -> int:
    _require(buf, start, LENGTH_STRUCT.size, what)
    return LENGTH_STRUCT.unpack_from(buf, start)[0]


class TableView:
    """Read access to one table region of an envelope."""

    __slots__ = ("_buf", "_pos", "_field_count")

    def __init__(self, buf: memoryview, pos: int) -> None:
        _require(buf, pos, TABLE_HEADER_STRUCT.size, "Table")
        field_count, _reserved = TABLE_HEADER_STRUCT.unpack_from(buf, pos)
        _require(buf, pos + TABLE_HEADER_STRUCT.size, field_count * OFFSET_STRUCT.size, "Table slots")
        self._buf = buf
        self._pos = pos
        self._field_count = field_count

    @property
    def field_count(self) -> int:
        return self._field_count

    def slot(self, index: int) -> int:
        """Return the raw slot value, ``ABSENT`` past the end of the table."""

        if index >= self._field_count:
            return ABSENT
        position = self._pos + TABLE_HEADER_STRUCT.size + index * OFFSET_STRUCT.size
        return OFFSET_STRUCT.unpack_from(self._buf, position)[0]

    def has(self, index: int) -> bool:
        return self.slot(index) != ABSENT

    def table(self, index: int) -> Optional["TableView"]:
        offset = self.slot(index)
        if offset == ABSENT:
            return None
        return TableView(self._buf, offset)

    def require_table(self, field) -> "TableView":
        nested = self.table(field)
        if nested is None:
            raise MissingFieldError(field_name(field))
        return nested

    def u64_vector(self, index: int) -> Optional[List[int]]:
        """Copy a vector of unsigned 64-bit integers out of the buffer."""

        offset = self.slot(index)
        if offset == ABSENT:
            return None
        count = _read_count(self._buf, offset, "u64 vector")
        start = offset + LENGTH_STRUCT.size
        _require(self._buf, start, count * U64_SIZE, "u64 vector payload")
        if count == 0:
            return []
        return _np.frombuffer(self._buf, dtype=U64_DTYPE, count=count, offset=start).tolist()

    def bytes_vector(self, index: int) -> Optional[List[bytes]]:
        """Copy a vector of byte strings out of the buffer."""

        offset = self.slot(index)
        if offset == ABSENT:
            return None
        count = _read_count(self._buf, offset, "Offset vector")
        start = offset + LENGTH_STRUCT.size
        _require(self._buf, start, count * OFFSET_STRUCT.size, "Offset vector payload")
        values: List[bytes] = []
        for position in range(start, start + count * OFFSET_STRUCT.size, OFFSET_STRUCT.size):
            element = OFFSET_STRUCT.unpack_from(self._buf, position)[0]
            length = _read_count(self._buf, element, "Bytes")
            payload_start = element + LENGTH_STRUCT.size
            _require(self._buf, payload_start, length, "Bytes payload")
            values.append(bytes(self._buf[payload_start : payload_start + length]))
        return values


class MessageView:
    """Zero-copy view of one envelope: the root table and its tagged payload."""

    def __init__(self, envelope: BufferLike) -> None:
        buf = memoryview(envelope)
        if buf.format != "B" or buf.ndim != 1:
            buf = buf.cast("B")
        self._buf = buf
        try:
            if len(buf) < HEADER_SIZE:
                raise TruncatedError(
                    f"Envelope holds {len(buf)} bytes, shorter than its {HEADER_SIZE}-byte header"
                )
            root_offset = ROOT_OFFSET_STRUCT.unpack_from(buf, 0)[0]
            self._root = TableView(buf, root_offset)
        except DecodeError:
            buf.release()
            raise

    def __enter__(self) -> "MessageView":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def release(self) -> None:
        self._buf.release()

    @property
    def root(self) -> TableView:
        return self._root

    @property
    def message_type(self) -> int:
        """The raw tag stored in the envelope."""

        return self._root.slot(RootField.MESSAGE_TYPE)

    @property
    def kind(self) -> Message:
        tag = self.message_type
        try:
            return Message(tag)
        except ValueError:
            raise TypeMismatchError("known", tag, "unknown message tag") from None

    def message(self, expected: Message) -> TableView:
        """Return the payload table after checking the tag names ``expected``."""

        tag = self.message_type
        match tag:
            case expected.value:
                return self._root.require_table(RootField.MESSAGE)
            case (
                Message.NONE
                | Message.CIRCUIT_HEADER
                | Message.CONSTRAINT_SYSTEM
                | Message.WITNESS
                | Message.COMMAND
            ):
                raise TypeMismatchError(expected.name, Message(tag).name)
            case _:
                raise TypeMismatchError(expected.name, tag, "unknown message tag")


def peek_message_type(envelope: BufferLike) -> Message:
    """Return the message kind of an envelope without decoding its payload."""

    with MessageView(envelope) as view:
        return view.kind


__all__ = ["BufferLike", "MessageView", "TableView", "peek_message_type"]
