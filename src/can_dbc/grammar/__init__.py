"""Line-oriented DBC grammar decoder."""

from .context import DecoderContext, Outcome, ParseStats
from .decoder import DbcDecoder, load_file, load_string

__all__ = [
    "DbcDecoder",
    "DecoderContext",
    "Outcome",
    "ParseStats",
    "load_file",
    "load_string",
]
