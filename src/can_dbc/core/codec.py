"""
Bit-layout compiler and raw value codec.

A signal's declared (bit_start, bit_length, byte_order) is compiled once into
a tuple of Steps. Each step copies a run of up to 8 bits from one payload
byte into the reassembled raw value:

    raw |= ((payload[byte_index] >> src_lsb) & mask(width)) << dst_lsb

Intel (little-endian) signals start at their least significant bit and walk
forward through the payload. Motorola (big-endian) signals start at their
most significant bit; within a byte the DBC bit number counts from the MSB,
and once bit 0 of a byte is consumed the walk continues at bit 7 of the
next byte.

These are pure functions with no dependency on the database model.
"""

import struct
from dataclasses import dataclass
from typing import Union

from .enums import ByteOrder, ValueEncoding

Payload = Union[bytes, bytearray, memoryview]


@dataclass(frozen=True, slots=True)
class Step:
    """One byte-local run of a compiled signal layout."""

    byte_index: int
    src_lsb: int  # Lowest bit of the run inside the payload byte
    width: int  # 1..8
    dst_lsb: int  # Where the run lands in the raw value

    @property
    def mask(self) -> int:
        return (1 << self.width) - 1


def compile_steps(bit_start: int, bit_length: int, byte_order: ByteOrder) -> tuple[Step, ...]:
    """
    Compile a declared bit position into extraction steps.

    Args:
        bit_start: DBC start bit
        bit_length: Number of bits, zero yields no steps
        byte_order: INTEL or MOTOROLA

    Returns:
        Steps ordered by payload position
    """
    if bit_length <= 0 or bit_start < 0:
        return ()
    if byte_order is ByteOrder.INTEL:
        return _compile_intel(bit_start, bit_length)
    return _compile_motorola(bit_start, bit_length)


def _compile_intel(bit_start: int, bit_length: int) -> tuple[Step, ...]:
    steps = []
    byte_index, bit = divmod(bit_start, 8)
    dst = 0
    remaining = bit_length
    while remaining > 0:
        width = min(8 - bit, remaining)
        steps.append(Step(byte_index, bit, width, dst))
        dst += width
        remaining -= width
        byte_index += 1
        bit = 0
    return tuple(steps)


def _compile_motorola(bit_start: int, bit_length: int) -> tuple[Step, ...]:
    steps = []
    byte_index = bit_start // 8
    # Bit number inside the byte counts from the MSB
    msb = 7 - (bit_start % 8)
    remaining = bit_length
    while remaining > 0:
        width = min(msb + 1, remaining)
        src_lsb = msb + 1 - width
        remaining -= width
        steps.append(Step(byte_index, src_lsb, width, remaining))
        if src_lsb == 0:
            byte_index += 1
            msb = 7
        else:
            msb = src_lsb - 1
    return tuple(steps)


def extract_unsigned(steps: tuple[Step, ...], payload: Payload) -> int:
    """Reassemble the raw unsigned value; bytes beyond the payload read as zero."""
    raw = 0
    size = len(payload)
    for step in steps:
        if step.byte_index >= size:
            continue
        raw |= ((payload[step.byte_index] >> step.src_lsb) & step.mask) << step.dst_lsb
    return raw


def sign_extend(raw: int, bit_length: int) -> int:
    """Interpret the low bit_length bits of raw as two's complement."""
    if bit_length > 0 and raw & (1 << (bit_length - 1)):
        return raw - (1 << bit_length)
    return raw


def extract_signed(steps: tuple[Step, ...], payload: Payload, bit_length: int) -> int:
    """Reassemble the raw value and sign-extend it from bit_length bits."""
    return sign_extend(extract_unsigned(steps, payload), bit_length)


def insert_raw(steps: tuple[Step, ...], payload: bytearray, raw: int) -> None:
    """
    Write a raw value into the payload at the compiled position.

    Negative values are stored in two's complement. Steps beyond the end of
    the payload are ignored.
    """
    if raw < 0:
        total = sum(step.width for step in steps)
        raw &= (1 << total) - 1
    for step in steps:
        if step.byte_index >= len(payload):
            continue
        chunk = (raw >> step.dst_lsb) & step.mask
        cleared = payload[step.byte_index] & ~(step.mask << step.src_lsb) & 0xFF
        payload[step.byte_index] = cleared | (chunk << step.src_lsb)


def raw_to_number(raw: int, encoding: ValueEncoding, bit_length: int) -> Union[int, float]:
    """
    Interpret an unsigned raw value according to the signal encoding.

    IEEE encodings reinterpret the raw bits as a single or double precision
    float; SIGNED sign-extends; UNSIGNED is returned as-is.
    """
    if encoding is ValueEncoding.IEEE_FLOAT:
        return struct.unpack("<f", (raw & 0xFFFFFFFF).to_bytes(4, "little"))[0]
    if encoding is ValueEncoding.IEEE_DOUBLE:
        return struct.unpack("<d", (raw & 0xFFFFFFFFFFFFFFFF).to_bytes(8, "little"))[0]
    if encoding is ValueEncoding.SIGNED:
        return sign_extend(raw, bit_length)
    return raw


def number_to_raw(value: Union[int, float], encoding: ValueEncoding) -> int:
    """Inverse of raw_to_number for IEEE encodings; integers pass through."""
    if encoding is ValueEncoding.IEEE_FLOAT:
        return int.from_bytes(struct.pack("<f", value), "little")
    if encoding is ValueEncoding.IEEE_DOUBLE:
        return int.from_bytes(struct.pack("<d", value), "little")
    return int(value)
