"""Owned, buffer-independent list of variable assignments."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Sequence, Tuple

from ..errors import MalformedMessageError, MissingFieldError
from ..wire.builder import Builder
from ..wire.reader import TableView
from ..wire.schema import (
    ABSENT,
    VARIABLES_FIELD_COUNT,
    VariablesField,
    ensure_bytes,
    field_name,
)

Assignment = Tuple[int, bytes]

DEFAULT_ELEMENT_SIZE = 32
CONSTANT_ONE_ID = 0


@dataclass
class VariablesOwned:
    """Parallel lists of variable ids and their value bytes.

    Position is the only link between an id and its value, so both lists are
    kept the same length and in insertion order. Ids are not required to be
    unique and are never sorted or deduplicated.
    """

    variable_ids: List[int] = field(default_factory=list)
    values: List[bytes] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.variable_ids = [int(variable_id) for variable_id in self.variable_ids]
        self.values = [ensure_bytes(value) for value in self.values]
        self._check_parallel()

    def _check_parallel(self) -> None:
        if len(self.variable_ids) != len(self.values):
            raise ValueError(
                f"variable_ids and values must have the same length "
                f"({len(self.variable_ids)} != {len(self.values)})"
            )

    def __len__(self) -> int:
        return len(self.variable_ids)

    def __iter__(self) -> Iterator[Assignment]:
        return zip(self.variable_ids, self.values)

    def __getitem__(self, index: int) -> Assignment:
        return self.variable_ids[index], self.values[index]

    def __setitem__(self, index: int, assignment: Assignment) -> None:
        variable_id, value = assignment
        self.variable_ids[index] = int(variable_id)
        self.values[index] = ensure_bytes(value)

    def append(self, variable_id: int, value) -> None:
        self.variable_ids.append(int(variable_id))
        self.values.append(ensure_bytes(value))

    def extend(self, assignments: Iterable[Tuple[int, object]]) -> None:
        for variable_id, value in assignments:
            self.append(variable_id, value)

    def clear(self) -> None:
        self.variable_ids.clear()
        self.values.clear()

    def as_mapping(self, skip_constant: bool = False) -> Dict[int, bytes]:
        """Project the assignments onto a dict, later entries overwriting earlier ones.

        ``skip_constant`` drops id ``0``, which proof systems reserve for the
        constant-one variable.
        """

        mapping: Dict[int, bytes] = {}
        for variable_id, value in self:
            if skip_constant and variable_id == CONSTANT_ONE_ID:
                continue
            mapping[variable_id] = value
        return mapping

    # ------------------------------------------------------------------
    # Field element helpers

    @classmethod
    def from_field_elements(
        cls,
        variable_ids: Sequence[int],
        elements: Sequence[int],
        element_size: int = DEFAULT_ELEMENT_SIZE,
    ) -> "VariablesOwned":
        """Encode integer field elements as fixed-width little-endian values."""

        if element_size <= 0:
            raise ValueError("element_size must be positive")
        if len(variable_ids) != len(elements):
            raise ValueError("variable_ids and elements must have the same length")
        values: List[bytes] = []
        for element in elements:
            try:
                values.append(int(element).to_bytes(element_size, "little"))
            except OverflowError as exc:
                raise ValueError(
                    f"Element {element} does not fit in {element_size} unsigned bytes"
                ) from exc
        return cls(variable_ids=list(variable_ids), values=values)

    def to_field_elements(self) -> List[int]:
        """Decode every value as a little-endian unsigned integer."""

        return [int.from_bytes(value, "little") for value in self.values]

    # ------------------------------------------------------------------
    # Wire conversion

    def build(self, builder: Builder) -> int:
        """Write the value strings, then the ids, then the table referencing both."""

        self._check_parallel()
        value_offsets = [builder.create_bytes(value) for value in self.values]
        values = builder.create_offset_vector(value_offsets)
        variable_ids = builder.create_u64_vector(self.variable_ids)
        slots = [ABSENT] * VARIABLES_FIELD_COUNT
        slots[VariablesField.VARIABLE_IDS] = variable_ids
        slots[VariablesField.VALUES] = values
        return builder.create_table(slots)

    @classmethod
    def from_view(cls, table: TableView) -> "VariablesOwned":
        """Copy the assignments out of a Variables table."""

        variable_ids = table.u64_vector(VariablesField.VARIABLE_IDS)
        if variable_ids is None:
            raise MissingFieldError(field_name(VariablesField.VARIABLE_IDS))
        values = table.bytes_vector(VariablesField.VALUES)
        if values is None:
            raise MissingFieldError(field_name(VariablesField.VALUES))
        if len(variable_ids) != len(values):
            raise MalformedMessageError(
                f"Variables table holds {len(variable_ids)} ids but {len(values)} values"
            )
        return cls(variable_ids=variable_ids, values=values)

    # ------------------------------------------------------------------
    # Text representation

    def to_dict(self) -> Dict[str, list]:
        return {
            "variable_ids": list(self.variable_ids),
            "values": [list(value) for value in self.values],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "VariablesOwned":
        if not isinstance(data, Mapping):
            raise MalformedMessageError(f"Variables must be a mapping, got {type(data).__name__}")
        for name in ("variable_ids", "values"):
            if name not in data:
                raise MissingFieldError(name)
            if not isinstance(data[name], (list, tuple)):
                raise MalformedMessageError(
                    f"{name} must be a list, got {type(data[name]).__name__}"
                )
        variable_ids = data["variable_ids"]
        for variable_id in variable_ids:
            if isinstance(variable_id, bool) or not isinstance(variable_id, int):
                raise MalformedMessageError(f"Variable id {variable_id!r} is not an integer")
        try:
            return cls(variable_ids=list(variable_ids), values=list(data["values"]))
        except (TypeError, ValueError) as exc:
            raise MalformedMessageError(str(exc)) from exc


__all__ = ["Assignment", "CONSTANT_ONE_ID", "DEFAULT_ELEMENT_SIZE", "VariablesOwned"]
