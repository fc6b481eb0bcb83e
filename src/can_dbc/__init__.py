"""
CAN DBC tools.

Parse DBC network descriptions into an editable in-memory model, decode
signal values from raw payloads, and write the model back to DBC text.
"""

from .core import ByteOrder, CanDatabase, MuxRole, MuxSelector, ValueEncoding
from .create import new_database
from .grammar import DbcDecoder, ParseStats, load_file, load_string
from .trace import TraceEnricher, TraceReader
from .writer import dumps, save_to_file

__version__ = "0.1.0"

__all__ = [
    "ByteOrder",
    "CanDatabase",
    "MuxRole",
    "MuxSelector",
    "ValueEncoding",
    "new_database",
    "DbcDecoder",
    "ParseStats",
    "load_file",
    "load_string",
    "TraceEnricher",
    "TraceReader",
    "dumps",
    "save_to_file",
]
