"""Enumerations shared by the model, codec and grammar."""

from enum import Enum


class ByteOrder(Enum):
    """Signal byte order; values are the DBC '@' digit."""

    MOTOROLA = "0"  # big-endian
    INTEL = "1"  # little-endian


class ValueEncoding(Enum):
    """How a signal's raw bits are interpreted."""

    UNSIGNED = "unsigned"
    SIGNED = "signed"
    IEEE_FLOAT = "float"
    IEEE_DOUBLE = "double"

    @property
    def is_float(self) -> bool:
        return self in (ValueEncoding.IEEE_FLOAT, ValueEncoding.IEEE_DOUBLE)


class MuxRole(Enum):
    """Multiplexing role of a signal inside its message."""

    NONE = "none"
    MULTIPLEXOR = "multiplexor"
    MULTIPLEXED = "multiplexed"


class IdFormat(Enum):
    STANDARD = "standard"
    EXTENDED = "extended"


class SortOrder(Enum):
    """Iteration order for database entity listings."""

    INSERTION = "insertion"
    NAME = "name"
