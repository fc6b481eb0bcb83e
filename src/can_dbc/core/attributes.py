"""
Typed custom attributes.

An AttributeSpec declares one attribute name for one scope (database, node,
message, signal) or for one relation kind (node<->signal, node<->message),
together with its value kind, bounds, enumeration options and optional
default. AttributeValue is a concrete, kind-tagged value.

Enumeration values are kept as option text in memory. DBC assignment
statements refer to them by zero-based index, defaults refer to them by text;
parse_value / parse_default and value_to_text / default_to_text convert.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from .errors import AttributeValueError

Number = Union[int, float]


class AttributeScope(Enum):
    """Entity scope; values are the DBC object keywords."""

    DATABASE = ""
    NODE = "BU_"
    MESSAGE = "BO_"
    SIGNAL = "SG_"


class RelationKind(Enum):
    """Relation scope; values are the DBC relation keywords."""

    NODE_SIGNAL = "BU_SG_REL_"
    NODE_MESSAGE = "BU_BO_REL_"


class AttributeKind(Enum):
    STRING = "STRING"
    INT = "INT"
    HEX = "HEX"
    FLOAT = "FLOAT"
    ENUM = "ENUM"


@dataclass(frozen=True, slots=True)
class AttributeValue:
    """A concrete attribute value tagged with its kind."""

    kind: AttributeKind
    value: Union[str, int, float]

    def __str__(self) -> str:
        if self.kind is AttributeKind.HEX:
            return f"0x{self.value:X}"
        return str(self.value)


def parse_int(text: str) -> int:
    """Decimal or 0x-prefixed integer; raises ValueError."""
    text = text.strip()
    if text[:2].lower() == "0x" or text[:3].lower() == "-0x":
        return int(text, 16)
    return int(text)


def format_number(value: Number) -> str:
    """Shortest text that reads back to the same number, without superfluous trailing zeros."""
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


@dataclass
class AttributeSpec:
    """
    Declaration of a custom attribute.

    Attributes:
        name: Attribute name, case-sensitive
        scope: AttributeScope for entity attributes, RelationKind for relations
        kind: Declared value kind
        minimum: Lower bound for INT/HEX/FLOAT, informational
        maximum: Upper bound for INT/HEX/FLOAT, informational
        options: Ordered option list for ENUM
        default: Default applied to entities of the scope
    """

    name: str
    scope: Union[AttributeScope, RelationKind]
    kind: AttributeKind
    minimum: Optional[Number] = None
    maximum: Optional[Number] = None
    options: list[str] = field(default_factory=list)
    default: Optional[AttributeValue] = None

    @property
    def is_relation(self) -> bool:
        return isinstance(self.scope, RelationKind)

    def parse_value(self, text: str) -> AttributeValue:
        """
        Parse the value text of an assignment statement.

        ENUM values are a zero-based index into the option list.

        Raises:
            AttributeValueError: Text does not match the declared kind
        """
        if self.kind is AttributeKind.STRING:
            return AttributeValue(self.kind, text)
        text = text.strip()
        try:
            if self.kind in (AttributeKind.INT, AttributeKind.HEX):
                return AttributeValue(self.kind, parse_int(text))
            if self.kind is AttributeKind.FLOAT:
                return AttributeValue(self.kind, float(text))
            index = parse_int(text)
        except ValueError:
            raise AttributeValueError(self.name, text, self.kind)
        if not 0 <= index < len(self.options):
            raise AttributeValueError(self.name, text, self.kind)
        return AttributeValue(self.kind, self.options[index])

    def parse_default(self, text: str) -> AttributeValue:
        """
        Parse the value text of a default statement.

        ENUM defaults name the option; a bare index is accepted as well.
        """
        if self.kind is AttributeKind.ENUM and text in self.options:
            return AttributeValue(self.kind, text)
        return self.parse_value(text)

    def coerce(self, value: Union[AttributeValue, str, int, float]) -> AttributeValue:
        """
        Validate a Python value against the declaration.

        ENUM accepts either the option text or its index.

        Raises:
            AttributeValueError: Value does not match the declared kind
        """
        if isinstance(value, AttributeValue):
            if value.kind is not self.kind:
                raise AttributeValueError(self.name, value.value, self.kind)
            value = value.value
        if self.kind is AttributeKind.STRING and isinstance(value, str):
            return AttributeValue(self.kind, value)
        if self.kind in (AttributeKind.INT, AttributeKind.HEX):
            if isinstance(value, int) and not isinstance(value, bool):
                return AttributeValue(self.kind, value)
            if isinstance(value, str):
                return self.parse_value(value)
        if self.kind is AttributeKind.FLOAT and isinstance(value, (int, float)) and not isinstance(value, bool):
            return AttributeValue(self.kind, float(value))
        if self.kind is AttributeKind.ENUM:
            if isinstance(value, str) and value in self.options:
                return AttributeValue(self.kind, value)
            if isinstance(value, int) and 0 <= value < len(self.options):
                return AttributeValue(self.kind, self.options[value])
        raise AttributeValueError(self.name, value, self.kind)

    def value_to_text(self, value: AttributeValue) -> str:
        """Render a value the way an assignment statement writes it."""
        if self.kind is AttributeKind.ENUM:
            return str(self.options.index(str(value.value)))
        if self.kind is AttributeKind.STRING:
            return quote(str(value.value))
        if self.kind is AttributeKind.FLOAT:
            return format_number(float(value.value))
        return str(value.value)

    def default_to_text(self) -> Optional[str]:
        """Render the default the way a default statement writes it."""
        if self.default is None:
            return None
        if self.kind is AttributeKind.ENUM:
            return quote(str(self.default.value))
        return self.value_to_text(self.default)

    def definition_text(self) -> str:
        """Render the type part of a declaration, e.g. 'INT 0 100'."""
        if self.kind is AttributeKind.STRING:
            return "STRING"
        if self.kind is AttributeKind.ENUM:
            return "ENUM " + ",".join(quote(option) for option in self.options)
        low = format_number(self.minimum if self.minimum is not None else 0)
        high = format_number(self.maximum if self.maximum is not None else 0)
        return f"{self.kind.value} {low} {high}"


_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"}


def escape(text: str) -> str:
    """Escape backslash, quote, newline, carriage return and tab."""
    return "".join(_ESCAPES.get(char, char) for char in text)


def quote(text: str) -> str:
    return f'"{escape(text)}"'
