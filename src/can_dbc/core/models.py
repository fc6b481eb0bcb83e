"""
Data models for the CAN network description.

These dataclasses hold:
- Nodes (ECUs), messages (frames) and signals owned by a CanDatabase
- Multiplexing selectors
- Trace-side records (raw frames and decoded signal samples)

Cross references between entities are stored as arena keys, never as
direct object references; resolve them through the owning CanDatabase.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from .arena import MessageKey, NodeKey, SignalKey
from .attributes import AttributeValue
from .codec import (
    Payload,
    Step,
    compile_steps,
    extract_unsigned,
    insert_raw,
    number_to_raw,
    raw_to_number,
    sign_extend,
)
from .enums import ByteOrder, IdFormat, MuxRole, ValueEncoding

STANDARD_ID_MAX = 0x7FF
EXTENDED_ID_FLAG = 0x80000000
FRAME_ID_MASK = 0x1FFFFFFF
CLASSIC_CAN_MAX_DLC = 8


def format_id_hex(message_id: int) -> str:
    """Canonical hexadecimal form of a numeric message id, e.g. 100 -> '0x64'."""
    return f"0x{message_id:X}"


def normalize_id_hex(text: str) -> Optional[str]:
    """
    Normalize a user supplied hexadecimal id to the canonical form.

    Accepts '0x64', '64', '64h', ' 0X064 ' etc. Returns None when the text is
    not hexadecimal.
    """
    cleaned = "".join(text.split())
    if cleaned[:2].lower() == "0x":
        cleaned = cleaned[2:]
    elif cleaned[-1:].lower() in ("x", "h"):
        cleaned = cleaned[:-1]
    if not cleaned:
        return None
    try:
        return format_id_hex(int(cleaned, 16))
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class MuxSelector:
    """Multiplexor value (or inclusive range) that gates a multiplexed signal."""

    low: int
    high: int

    @classmethod
    def single(cls, value: int) -> "MuxSelector":
        return cls(value, value)

    @property
    def is_range(self) -> bool:
        return self.low != self.high

    def matches(self, value: int) -> bool:
        return self.low <= value <= self.high

    def __str__(self) -> str:
        return f"{self.low}-{self.high}" if self.is_range else str(self.low)


@dataclass
class Node:
    """A network node (ECU)."""

    name: str
    comment: str = ""
    messages_sent: list[MessageKey] = field(default_factory=list)
    signals_sent: list[SignalKey] = field(default_factory=list)
    signals_read: list[SignalKey] = field(default_factory=list)
    attributes: dict[str, AttributeValue] = field(default_factory=dict)


@dataclass
class Message:
    """
    A CAN frame definition.

    message_id is the id exactly as written in the DBC file; extended frames
    carry bit 31 there. frame_id gives the id as it appears on the bus.
    """

    name: str
    message_id: int
    byte_length: int
    comment: str = ""
    sender_nodes: list[NodeKey] = field(default_factory=list)
    receiver_nodes: list[NodeKey] = field(default_factory=list)
    signals: list[SignalKey] = field(default_factory=list)
    attributes: dict[str, AttributeValue] = field(default_factory=dict)
    mux_multiplexors: list[SignalKey] = field(default_factory=list)
    mux_cases: dict[SignalKey, dict[MuxSelector, list[SignalKey]]] = field(default_factory=dict)

    @property
    def id_hex(self) -> str:
        return format_id_hex(self.message_id)

    @property
    def frame_id(self) -> int:
        return self.message_id & FRAME_ID_MASK

    @property
    def id_format(self) -> IdFormat:
        if self.message_id & EXTENDED_ID_FLAG or self.message_id > STANDARD_ID_MAX:
            return IdFormat.EXTENDED
        return IdFormat.STANDARD

    @property
    def msgtype(self) -> str:
        return "CAN" if self.byte_length <= CLASSIC_CAN_MAX_DLC else "CAN FD"


@dataclass
class Signal:
    """
    A named bit-field inside a message payload.

    The compiled extraction steps are memoized and recompiled automatically
    whenever bit_start, bit_length or byte_order no longer match the layout
    they were compiled for.
    """

    name: str
    bit_start: int = 0
    bit_length: int = 0
    byte_order: ByteOrder = ByteOrder.INTEL
    encoding: ValueEncoding = ValueEncoding.UNSIGNED
    factor: float = 1.0
    offset: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0
    unit: str = ""
    message: Optional[MessageKey] = None
    receiver_nodes: list[NodeKey] = field(default_factory=list)
    comment: str = ""
    value_table: dict[int, str] = field(default_factory=dict)
    attributes: dict[str, AttributeValue] = field(default_factory=dict)
    mux_role: MuxRole = MuxRole.NONE
    mux_switch: Optional[SignalKey] = None
    mux_selector: Optional[MuxSelector] = None
    _steps: tuple[Step, ...] = field(default=(), init=False, repr=False, compare=False)
    _compiled_for: Optional[tuple[int, int, ByteOrder]] = field(default=None, init=False, repr=False, compare=False)

    @property
    def is_signed(self) -> bool:
        return self.encoding is ValueEncoding.SIGNED

    def compile(self) -> tuple[Step, ...]:
        """Return the extraction steps, compiling them if the layout changed."""
        layout = (self.bit_start, self.bit_length, self.byte_order)
        if self._compiled_for != layout:
            self._steps = compile_steps(*layout)
            self._compiled_for = layout
        return self._steps

    def extract_raw(self, payload: Payload) -> int:
        """Raw integer at the signal position, sign-extended for SIGNED signals."""
        raw = extract_unsigned(self.compile(), payload)
        if self.encoding is ValueEncoding.SIGNED:
            return sign_extend(raw, self.bit_length)
        return raw

    def decode(self, payload: Payload) -> Union[int, float]:
        """Physical value: raw (or IEEE reinterpretation) * factor + offset."""
        number = raw_to_number(extract_unsigned(self.compile(), payload), self.encoding, self.bit_length)
        return number * self.factor + self.offset

    def encode_into(self, payload: bytearray, value: Union[int, float]) -> None:
        """Write a raw value (or IEEE number) into the payload."""
        insert_raw(self.compile(), payload, number_to_raw(value, self.encoding))

    def value_text(self, raw: int) -> Optional[str]:
        return self.value_table.get(raw)


@dataclass(frozen=True, slots=True)
class CANMessage:
    """
    A single raw CAN frame read from a BLF/ASC trace.

    Frozen for immutability and slots for memory efficiency
    when handling millions of frames.
    """

    timestamp: float  # Seconds since start
    arbitration_id: int  # CAN ID (11-bit or 29-bit)
    data: bytes
    is_extended_id: bool = False
    channel: int = 0

    @property
    def hex_id(self) -> str:
        return f"0x{self.arbitration_id:03X}"

    @property
    def hex_data(self) -> str:
        return " ".join(f"{b:02X}" for b in self.data)


@dataclass(frozen=True, slots=True)
class DecodedSignal:
    """
    A decoded signal sample with both raw and physical values.

    physical = raw * factor + offset
    """

    timestamp: float
    message_name: str
    message_id: int
    signal_name: str
    raw_value: int
    physical_value: float
    unit: str = ""
    text: Optional[str] = None  # Value-table description of raw_value

    @property
    def full_name(self) -> str:
        return f"{self.message_name}.{self.signal_name}"
