"""Append-only arena used to assemble envelopes bottom-up."""

from __future__ import annotations

import logging
from typing import Collection, Iterable, Sequence, Set

import numpy as _np

from ..errors import BuilderError
from .schema import (
    ABSENT,
    HEADER_SIZE,
    LENGTH_STRUCT,
    MAX_TABLE_FIELDS,
    OFFSET_STRUCT,
    ROOT_OFFSET_STRUCT,
    TABLE_HEADER_STRUCT,
    U64_DTYPE,
    U64_MAX,
)

logger = logging.getLogger(__name__)

_MAX_ENVELOPE_SIZE = 0xFFFFFFFF


class Builder:
    """Single forward-growing buffer with offset-returning writes.

    Each ``create_*`` call appends one region and returns its absolute offset
    in the finished envelope. Tables may only reference regions that this
    builder has already written, so children always precede their parents.
    A builder serves one encode call: after :meth:`finish` it rejects writes.
    """

    def __init__(self) -> None:
        self._arena = bytearray()
        self._regions: Set[int] = set()
        self._finished = False

    @property
    def offset(self) -> int:
        """Offset the next region will be written at."""

        return HEADER_SIZE + len(self._arena)

    @property
    def finished(self) -> bool:
        return self._finished

    def _append(self, *chunks: bytes) -> int:
        if self._finished:
            raise BuilderError("Builder has already been finished")
        start = self.offset
        size = sum(len(chunk) for chunk in chunks)
        if start + size > _MAX_ENVELOPE_SIZE:
            raise BuilderError("Envelope exceeds the 32-bit offset range")
        for chunk in chunks:
            self._arena += chunk
        self._regions.add(start)
        return start

    def _check_reference(self, offset: int) -> None:
        if offset not in self._regions:
            raise BuilderError(
                f"Offset {offset} does not reference a region written by this builder"
            )

    def create_bytes(self, data: bytes) -> int:
        return self._append(LENGTH_STRUCT.pack(len(data)), bytes(data))

    def create_u64_vector(self, values: Iterable[int]) -> int:
        items = [int(value) for value in values]
        for value in items:
            if not 0 <= value <= U64_MAX:
                raise ValueError(f"Value {value} does not fit in an unsigned 64-bit integer")
        payload = _np.asarray(items, dtype=U64_DTYPE).tobytes()
        return self._append(LENGTH_STRUCT.pack(len(items)), payload)

    def create_offset_vector(self, offsets: Sequence[int]) -> int:
        for offset in offsets:
            self._check_reference(offset)
        payload = b"".join(OFFSET_STRUCT.pack(offset) for offset in offsets)
        return self._append(LENGTH_STRUCT.pack(len(offsets)), payload)

    def create_table(self, slots: Sequence[int], scalar_slots: Collection[int] = ()) -> int:
        """Write a table whose slots hold offsets, or scalars where listed.

        Offset slots set to ``ABSENT`` mark a missing field.
        """

        if len(slots) > MAX_TABLE_FIELDS:
            raise BuilderError(f"Tables hold at most {MAX_TABLE_FIELDS} fields")
        for index, slot in enumerate(slots):
            if index in scalar_slots:
                if not 0 <= slot <= 0xFFFFFFFF:
                    raise ValueError(f"Scalar slot {index} does not fit in 32 bits")
            elif slot != ABSENT:
                self._check_reference(slot)
        header = TABLE_HEADER_STRUCT.pack(len(slots), 0)
        payload = b"".join(OFFSET_STRUCT.pack(slot) for slot in slots)
        return self._append(header, payload)

    def finish(self, root: int) -> bytes:
        """Seal the arena and return the envelope referencing ``root``."""

        if self._finished:
            raise BuilderError("Builder has already been finished")
        self._check_reference(root)
        self._finished = True
        envelope = ROOT_OFFSET_STRUCT.pack(root) + bytes(self._arena)
        logger.debug("Finished envelope: %d bytes, %d regions", len(envelope), len(self._regions))
        return envelope


__all__ = ["Builder"]
