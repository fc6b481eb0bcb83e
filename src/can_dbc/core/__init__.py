"""Core modules for the CAN network model, bit layouts and attributes."""

from .arena import Key, MessageKey, NodeKey, SignalKey
from .attributes import AttributeKind, AttributeScope, AttributeSpec, AttributeValue, RelationKind
from .codec import Step, compile_steps, extract_signed, extract_unsigned, insert_raw
from .database import CanDatabase
from .enums import ByteOrder, IdFormat, MuxRole, SortOrder, ValueEncoding
from .errors import (
    CanDbcError,
    DatabaseCreateError,
    DatabaseError,
    DbcFileError,
    LayoutError,
)
from .layout import check_signal_fits, signal_fits
from .models import CANMessage, DecodedSignal, Message, MuxSelector, Node, Signal

__all__ = [
    "Key",
    "NodeKey",
    "MessageKey",
    "SignalKey",
    "AttributeKind",
    "AttributeScope",
    "AttributeSpec",
    "AttributeValue",
    "RelationKind",
    "Step",
    "compile_steps",
    "extract_unsigned",
    "extract_signed",
    "insert_raw",
    "CanDatabase",
    "ByteOrder",
    "IdFormat",
    "MuxRole",
    "SortOrder",
    "ValueEncoding",
    "CanDbcError",
    "DatabaseError",
    "DatabaseCreateError",
    "DbcFileError",
    "LayoutError",
    "check_signal_fits",
    "signal_fits",
    "CANMessage",
    "DecodedSignal",
    "Message",
    "MuxSelector",
    "Node",
    "Signal",
]
