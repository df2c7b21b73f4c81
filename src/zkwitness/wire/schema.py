"""Binary table layout shared by the arena builder and the zero-copy reader.

An envelope starts with a little-endian ``u32`` holding the absolute offset of
the root table, followed by the arena regions in the order they were written.
Every offset stored in the arena is absolute within the envelope, and ``0``
marks an absent field since no region can start inside the header.

The message tags reuse the zkInterface numbering, but the table layout is
this package's own and is not FlatBuffers: zkInterface tools cannot read
these envelopes, and only ``zkwitness`` peers can decode them.
"""

from __future__ import annotations

import importlib.util
import struct
from enum import IntEnum
from typing import Iterable, Union

_NUMPY_MISSING_MSG = (
    "The numpy package is required for the witness codec. Install it with 'pip install numpy'."
)

if importlib.util.find_spec("numpy") is None:  # pragma: no cover - deterministic import guard
    raise ModuleNotFoundError(_NUMPY_MISSING_MSG)

ROOT_OFFSET_STRUCT = struct.Struct("<I")
LENGTH_STRUCT = struct.Struct("<I")
OFFSET_STRUCT = struct.Struct("<I")
TABLE_HEADER_STRUCT = struct.Struct("<H H")
U64_DTYPE = "<u8"
U64_SIZE = 8
U64_MAX = 0xFFFFFFFFFFFFFFFF

HEADER_SIZE = ROOT_OFFSET_STRUCT.size
ABSENT = 0
MAX_TABLE_FIELDS = 0xFFFF


class Message(IntEnum):
    """Message kinds carried by the envelope union."""

    NONE = 0
    CIRCUIT_HEADER = 1
    CONSTRAINT_SYSTEM = 2
    WITNESS = 3
    COMMAND = 4


class RootField(IntEnum):
    MESSAGE_TYPE = 0
    MESSAGE = 1


class WitnessField(IntEnum):
    ASSIGNED_VARIABLES = 0


class VariablesField(IntEnum):
    VARIABLE_IDS = 0
    VALUES = 1


ROOT_FIELD_COUNT = len(RootField)
WITNESS_FIELD_COUNT = len(WitnessField)
VARIABLES_FIELD_COUNT = len(VariablesField)


def field_name(field: IntEnum) -> str:
    """Return the wire name of a table field, e.g. ``assigned_variables``."""

    return field.name.lower()


def ensure_bytes(value: Union[str, bytes, bytearray, memoryview, Iterable[int]]) -> bytes:
    """Coerce the provided value into a ``bytes`` instance.

    Strings are read as hex, with or without a ``0x`` prefix, which matches the
    way values appear in hand-written fixtures.
    """

    if isinstance(value, bytes):
        return value
    if isinstance(value, bytearray):
        return bytes(value)
    if isinstance(value, memoryview):
        return bytes(value.tobytes())
    if isinstance(value, str):
        text = value[2:] if value[:2].lower() == "0x" else value
        return bytes.fromhex(text)
    data = []
    for part in value:
        byte = int(part)
        if not 0 <= byte <= 0xFF:
            raise ValueError(f"Byte value {byte} is out of range")
        data.append(byte)
    return bytes(data)


__all__ = [
    "ABSENT",
    "HEADER_SIZE",
    "LENGTH_STRUCT",
    "MAX_TABLE_FIELDS",
    "Message",
    "OFFSET_STRUCT",
    "ROOT_FIELD_COUNT",
    "ROOT_OFFSET_STRUCT",
    "RootField",
    "TABLE_HEADER_STRUCT",
    "U64_DTYPE",
    "U64_MAX",
    "U64_SIZE",
    "VARIABLES_FIELD_COUNT",
    "VariablesField",
    "WITNESS_FIELD_COUNT",
    "WitnessField",
    "ensure_bytes",
    "field_name",
]
