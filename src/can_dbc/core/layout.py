"""Signal layout validation against a message payload size."""

from .errors import (
    IntelOutOfBounds,
    LayoutError,
    MotorolaEndOutOfBounds,
    MotorolaStartOutOfBounds,
    ZeroBitLength,
)
from .enums import ByteOrder


def linearize_motorola(bit_start: int) -> int:
    """Map a DBC Motorola start bit to a flat LSB-first bit index."""
    return (bit_start & ~7) + (7 - (bit_start & 7))


def check_signal_fits(dlc: int, bit_start: int, bit_length: int, byte_order: ByteOrder) -> None:
    """
    Check that a signal's bits lie inside a payload of dlc bytes.

    Args:
        dlc: Message payload length in bytes
        bit_start: DBC start bit
        bit_length: Signal length in bits
        byte_order: INTEL or MOTOROLA

    Raises:
        ZeroBitLength: bit_length is zero
        IntelOutOfBounds: last Intel bit is beyond the payload
        MotorolaStartOutOfBounds: linearized Motorola start is beyond the payload
        MotorolaEndOutOfBounds: linearized Motorola end falls below bit 0
    """
    total_bits = dlc * 8
    if bit_length <= 0:
        raise ZeroBitLength(dlc)

    if byte_order is ByteOrder.INTEL:
        end = bit_start + bit_length - 1
        if bit_start < 0 or end >= total_bits:
            raise IntelOutOfBounds(end, total_bits, dlc)
        return

    start = linearize_motorola(bit_start)
    if bit_start < 0 or start >= total_bits:
        raise MotorolaStartOutOfBounds(start, total_bits, dlc)
    end = start - (bit_length - 1)
    if end < 0:
        raise MotorolaEndOutOfBounds(end, total_bits, dlc)


def signal_fits(dlc: int, bit_start: int, bit_length: int, byte_order: ByteOrder) -> bool:
    """Boolean form of check_signal_fits."""
    try:
        check_signal_fits(dlc, bit_start, bit_length, byte_order)
    except LayoutError:
        return False
    return True
