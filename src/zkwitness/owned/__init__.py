"""Owned, buffer-independent message values."""

from .variables import Assignment, VariablesOwned
from .witness import WitnessOwned, decode_witness, encode_witness

__all__ = ["Assignment", "VariablesOwned", "WitnessOwned", "decode_witness", "encode_witness"]
