"""Owned witness message and its encode/decode entry points."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, Mapping, Optional

from ..config import CodecSettings
from ..errors import MalformedMessageError, MissingFieldError
from ..framing import read_framed, write_framed
from ..wire.builder import Builder
from ..wire.reader import BufferLike, MessageView, TableView
from ..wire.schema import (
    ABSENT,
    ROOT_FIELD_COUNT,
    WITNESS_FIELD_COUNT,
    Message,
    RootField,
    WitnessField,
    field_name,
)
from .variables import VariablesOwned

logger = logging.getLogger(__name__)


@dataclass
class WitnessOwned:
    """Variable assignments satisfying a circuit, independent of any buffer."""

    assigned_variables: VariablesOwned = field(default_factory=VariablesOwned)

    def build(self, builder: Builder) -> int:
        """Add this witness to ``builder`` and return the offset of its root table."""

        assigned_variables = self.assigned_variables.build(builder)

        witness_slots = [ABSENT] * WITNESS_FIELD_COUNT
        witness_slots[WitnessField.ASSIGNED_VARIABLES] = assigned_variables
        witness = builder.create_table(witness_slots)

        root_slots = [ABSENT] * ROOT_FIELD_COUNT
        root_slots[RootField.MESSAGE_TYPE] = Message.WITNESS
        root_slots[RootField.MESSAGE] = witness
        return builder.create_table(root_slots, scalar_slots=(RootField.MESSAGE_TYPE,))

    def to_bytes(self) -> bytes:
        """Encode this witness as one unframed envelope using a fresh builder."""

        builder = Builder()
        envelope = builder.finish(self.build(builder))
        logger.debug(
            "Encoded witness with %d assignments into %d bytes",
            len(self.assigned_variables),
            len(envelope),
        )
        return envelope

    @classmethod
    def from_view(cls, table: TableView) -> "WitnessOwned":
        variables = table.require_table(WitnessField.ASSIGNED_VARIABLES)
        return cls(assigned_variables=VariablesOwned.from_view(variables))

    @classmethod
    def from_bytes(cls, envelope: BufferLike) -> "WitnessOwned":
        """Decode one unframed envelope, copying everything out of ``envelope``."""

        with MessageView(envelope) as view:
            witness = cls.from_view(view.message(Message.WITNESS))
        logger.debug("Decoded witness with %d assignments", len(witness.assigned_variables))
        return witness

    def write_into(self, sink: BinaryIO) -> int:
        """Write this witness to ``sink`` as a length-prefixed message.

        Returns the number of bytes written, prefix included.
        """

        return write_framed(self.to_bytes(), sink)

    @classmethod
    def read_from(
        cls, source: BinaryIO, settings: Optional[CodecSettings] = None
    ) -> "WitnessOwned":
        return cls.from_bytes(read_framed(source, settings))

    def to_dict(self) -> Dict[str, dict]:
        return {field_name(WitnessField.ASSIGNED_VARIABLES): self.assigned_variables.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "WitnessOwned":
        if not isinstance(data, Mapping):
            raise MalformedMessageError(f"Witness must be a mapping, got {type(data).__name__}")
        name = field_name(WitnessField.ASSIGNED_VARIABLES)
        if name not in data:
            raise MissingFieldError(name)
        return cls(assigned_variables=VariablesOwned.from_dict(data[name]))

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str) -> "WitnessOwned":
        return cls.from_dict(json.loads(text))


def encode_witness(witness: WitnessOwned) -> bytes:
    return witness.to_bytes()


def decode_witness(envelope: BufferLike) -> WitnessOwned:
    return WitnessOwned.from_bytes(envelope)


__all__ = ["WitnessOwned", "decode_witness", "encode_witness"]
