import unittest
import sys
from pathlib import Path

# Add src to path to allow imports
sys.path.append(str(Path(__file__).parent.parent / "src"))

from can_dbc.core.enums import ByteOrder
from can_dbc.core.errors import (
    IntelOutOfBounds,
    LayoutError,
    MotorolaEndOutOfBounds,
    MotorolaStartOutOfBounds,
    ZeroBitLength,
)
from can_dbc.core.layout import check_signal_fits, linearize_motorola, signal_fits


class TestLinearize(unittest.TestCase):
    def test_counts_from_msb_inside_byte(self):
        self.assertEqual(linearize_motorola(7), 0)
        self.assertEqual(linearize_motorola(0), 7)
        self.assertEqual(linearize_motorola(15), 8)
        self.assertEqual(linearize_motorola(8), 15)


class TestSignalFits(unittest.TestCase):
    def test_intel_fits_iff_last_bit_inside(self):
        for dlc in (1, 4, 8):
            total = dlc * 8
            for start in range(total + 4):
                for length in range(1, 70):
                    expected = start + length - 1 < total
                    self.assertEqual(
                        signal_fits(dlc, start, length, ByteOrder.INTEL),
                        expected,
                        (dlc, start, length),
                    )

    def test_motorola_fits_iff_both_ends_inside(self):
        for dlc in (1, 4, 8):
            total = dlc * 8
            for start in range(total + 8):
                linear = linearize_motorola(start)
                for length in range(1, 70):
                    expected = linear < total and linear - (length - 1) >= 0
                    self.assertEqual(
                        signal_fits(dlc, start, length, ByteOrder.MOTOROLA),
                        expected,
                        (dlc, start, length),
                    )

    def test_full_payload(self):
        self.assertTrue(signal_fits(8, 0, 64, ByteOrder.INTEL))
        self.assertTrue(signal_fits(8, 56, 64, ByteOrder.MOTOROLA))

    def test_zero_length_payload_rejects_everything(self):
        self.assertFalse(signal_fits(0, 0, 1, ByteOrder.INTEL))
        self.assertFalse(signal_fits(0, 0, 1, ByteOrder.MOTOROLA))


class TestLayoutErrors(unittest.TestCase):
    def test_zero_bit_length(self):
        with self.assertRaises(ZeroBitLength):
            check_signal_fits(8, 0, 0, ByteOrder.INTEL)

    def test_intel_out_of_bounds(self):
        with self.assertRaises(IntelOutOfBounds) as ctx:
            check_signal_fits(2, 10, 8, ByteOrder.INTEL)
        self.assertEqual(ctx.exception.end, 17)
        self.assertEqual(ctx.exception.total_bits, 16)
        self.assertEqual(ctx.exception.dlc, 2)

    def test_motorola_start_out_of_bounds(self):
        with self.assertRaises(MotorolaStartOutOfBounds) as ctx:
            check_signal_fits(1, 8, 1, ByteOrder.MOTOROLA)
        self.assertEqual(ctx.exception.start, 15)

    def test_motorola_end_out_of_bounds(self):
        with self.assertRaises(MotorolaEndOutOfBounds) as ctx:
            check_signal_fits(8, 7, 8, ByteOrder.MOTOROLA)
        self.assertEqual(ctx.exception.end, -7)

    def test_all_are_layout_errors(self):
        for error in (ZeroBitLength, IntelOutOfBounds, MotorolaStartOutOfBounds, MotorolaEndOutOfBounds):
            self.assertTrue(issubclass(error, LayoutError))


if __name__ == "__main__":
    unittest.main()
