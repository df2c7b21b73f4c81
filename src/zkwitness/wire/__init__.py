"""Wire layout, arena builder and zero-copy views."""

from .builder import Builder
from .reader import MessageView, TableView, peek_message_type
from .schema import Message, RootField, VariablesField, WitnessField, ensure_bytes

__all__ = [
    "Builder",
    "Message",
    "MessageView",
    "RootField",
    "TableView",
    "VariablesField",
    "WitnessField",
    "ensure_bytes",
    "peek_message_type",
]
