import unittest
import sys
from pathlib import Path

import cantools

# Add src to path to allow imports
sys.path.append(str(Path(__file__).parent.parent / "src"))

from can_dbc.core.codec import (
    Step,
    compile_steps,
    extract_signed,
    extract_unsigned,
    insert_raw,
    number_to_raw,
    raw_to_number,
)
from can_dbc.core.enums import ByteOrder, ValueEncoding
from can_dbc.core.layout import linearize_motorola
from can_dbc.core.models import Signal
from can_dbc.grammar import load_string


class TestCompileSteps(unittest.TestCase):
    def test_intel_single_byte(self):
        self.assertEqual(compile_steps(0, 8, ByteOrder.INTEL), (Step(0, 0, 8, 0),))

    def test_intel_crosses_bytes(self):
        steps = compile_steps(4, 12, ByteOrder.INTEL)
        self.assertEqual(steps, (Step(0, 4, 4, 0), Step(1, 0, 8, 4)))

    def test_motorola_single_byte(self):
        self.assertEqual(compile_steps(0, 8, ByteOrder.MOTOROLA), (Step(0, 0, 8, 0),))

    def test_motorola_walks_to_next_byte(self):
        steps = compile_steps(4, 8, ByteOrder.MOTOROLA)
        # Bit 4 counted from the MSB is bit 3 of byte 0: four bits there, four in byte 1
        self.assertEqual(steps, (Step(0, 0, 4, 4), Step(1, 4, 4, 0)))

    def test_widths_cover_length(self):
        for order in ByteOrder:
            for length in (1, 7, 8, 9, 33, 64):
                steps = compile_steps(3, length, order)
                self.assertEqual(sum(step.width for step in steps), length)
                self.assertTrue(all(1 <= step.width <= 8 for step in steps))

    def test_zero_length_has_no_steps(self):
        self.assertEqual(compile_steps(0, 0, ByteOrder.INTEL), ())


class TestExtraction(unittest.TestCase):
    def test_key_status_example(self):
        steps = compile_steps(0, 8, ByteOrder.INTEL)
        self.assertEqual(extract_unsigned(steps, bytes([0x2A, 0, 0, 0])), 42)

    def test_signed_sign_extension(self):
        steps = compile_steps(0, 4, ByteOrder.INTEL)
        self.assertEqual(extract_signed(steps, bytes([0x0F]), 4), -1)
        self.assertEqual(extract_signed(steps, bytes([0x07]), 4), 7)
        self.assertEqual(extract_signed(steps, bytes([0x08]), 4), -8)

    def test_short_payload_reads_zero(self):
        steps = compile_steps(8, 16, ByteOrder.INTEL)
        self.assertEqual(extract_unsigned(steps, bytes([0xFF, 0x12])), 0x12)

    def test_intel_round_trip_every_position(self):
        for length in range(1, 65):
            values = {1, (1 << length) - 1, 0xA5A5A5A5A5A5A5A5 & ((1 << length) - 1)}
            for start in range(0, 64 - length + 1):
                steps = compile_steps(start, length, ByteOrder.INTEL)
                for value in values:
                    payload = bytearray(8)
                    insert_raw(steps, payload, value)
                    self.assertEqual(extract_unsigned(steps, payload), value, (start, length, value))

    def test_motorola_round_trip_every_legal_position(self):
        for start in range(64):
            linear = linearize_motorola(start)
            for length in range(1, linear + 2):
                steps = compile_steps(start, length, ByteOrder.MOTOROLA)
                value = 0x5A5A5A5A5A5A5A5A & ((1 << length) - 1)
                payload = bytearray(16)
                insert_raw(steps, payload, value)
                self.assertEqual(extract_unsigned(steps, payload), value, (start, length))

    def test_signed_round_trip(self):
        for order in ByteOrder:
            for length in range(1, 65):
                steps = compile_steps(7 if order is ByteOrder.MOTOROLA else 0, length, order)
                for value in (-1, -(1 << (length - 1)), (1 << (length - 1)) - 1):
                    payload = bytearray(16)
                    insert_raw(steps, payload, value)
                    self.assertEqual(extract_signed(steps, payload, length), value, (order, length, value))

    def test_insert_preserves_neighbour_bits(self):
        steps = compile_steps(2, 4, ByteOrder.INTEL)
        payload = bytearray([0xFF])
        insert_raw(steps, payload, 0)
        self.assertEqual(payload, bytearray([0xC3]))

    def test_ieee_reinterpretation(self):
        raw = number_to_raw(1.5, ValueEncoding.IEEE_FLOAT)
        self.assertEqual(raw_to_number(raw, ValueEncoding.IEEE_FLOAT, 32), 1.5)
        raw = number_to_raw(-2.25, ValueEncoding.IEEE_DOUBLE)
        self.assertEqual(raw_to_number(raw, ValueEncoding.IEEE_DOUBLE, 64), -2.25)


class TestSignalCompilationCache(unittest.TestCase):
    def test_recompiles_after_layout_change(self):
        signal = Signal(name="S", bit_start=0, bit_length=8)
        first = signal.compile()
        self.assertIs(signal.compile(), first)
        signal.bit_start = 8
        self.assertEqual(signal.compile(), (Step(1, 0, 8, 0),))

    def test_decode_applies_scaling(self):
        signal = Signal(name="S", bit_start=0, bit_length=8, factor=0.5, offset=-10.0)
        self.assertEqual(signal.decode(bytes([100])), 40.0)


INTEL_DBC = """VERSION ""

NS_ :

BS_:

BU_: ECU

BO_ 100 Test: 8 ECU
 SG_ A : 0|12@1+ (1,0) [0|4095] "" ECU
 SG_ B : 12|9@1- (1,0) [-256|255] "" ECU
 SG_ C : 21|32@1+ (1,0) [0|4294967295] "" ECU
 SG_ D : 53|11@1+ (1,0) [0|2047] "" ECU
"""


class TestAgainstCantools(unittest.TestCase):
    """Intel extraction agrees with an independent DBC implementation."""

    def test_intel_signals_match(self):
        reference = cantools.database.load_string(INTEL_DBC, database_format="dbc")
        values = {"A": 1234, "B": -77, "C": 3000000000, "D": 1500}
        payload = reference.encode_message("Test", values)

        db = load_string(INTEL_DBC)
        for name, expected in values.items():
            signal = db.get_signal_by_name(name)
            self.assertEqual(signal.extract_raw(payload), expected, name)


if __name__ == "__main__":
    unittest.main()
