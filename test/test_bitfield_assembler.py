#!/usr/bin/env python3
"""
Tests for bit-field assembly: annotation extents, Verilog defaults, access
kinds and mask/shift pairs.
"""

import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from bitfield_assembler import (
    FULL_REGISTER_FIELD,
    access_from_str,
    annotation_bit_field,
    full_register_field,
    lookup_access,
    mask_shift_bits,
    parse_bit_extent,
    parse_c_integer,
    parse_default_literal,
)
from register_model import Access, Range, Register, BitField, Single


class TestBitExtent(unittest.TestCase):
    """Annotation-style bit positions."""

    def test_every_valid_range(self):
        """Every "h:l" with l <= h <= 31 is a Range(l, h)."""
        for high in range(32):
            for low in range(high + 1):
                self.assertEqual(parse_bit_extent(f"{high}:{low}"), Range(low, high))

    def test_every_single_bit(self):
        """Every bare bit 0..31 is a Single."""
        for bit in range(32):
            self.assertEqual(parse_bit_extent(str(bit)), Single(bit))

    def test_brackets_are_ignored(self):
        self.assertEqual(parse_bit_extent("[7:0]"), Range(0, 7))

    def test_invalid_extents(self):
        """Out-of-range, reversed and non-numeric extents are rejected."""
        for extent in ("32", "40:0", "0:3", "a:b", "1:2:3", ""):
            with self.subTest(extent=extent):
                with self.assertRaises(ValueError):
                    parse_bit_extent(extent)


class TestDefaultLiteral(unittest.TestCase):

    def test_bases(self):
        self.assertEqual(parse_default_literal("4'h5"), 5)
        self.assertEqual(parse_default_literal("1'b1"), 1)
        self.assertEqual(parse_default_literal("8'd200"), 200)
        self.assertEqual(parse_default_literal("32'h0000_FFFF"), 0xFFFF)
        self.assertEqual(parse_default_literal("3'b1_01"), 5)

    def test_bad_literals(self):
        """A missing size prefix or unknown base letter is an error."""
        for text in ("5", "4'q5", "4'", "h5"):
            with self.subTest(text=text):
                with self.assertRaises(ValueError):
                    parse_default_literal(text)


class TestAccess(unittest.TestCase):

    def test_known_abbreviations(self):
        self.assertEqual(access_from_str("RO"), Access.READ_ONLY)
        self.assertEqual(access_from_str("R/O"), Access.READ_ONLY)
        self.assertEqual(access_from_str("R/W"), Access.READ_WRITE)
        self.assertEqual(access_from_str("R/W/SC"), Access.READ_WRITE)
        self.assertEqual(access_from_str("R/WTC/SS"), Access.READ_WRITE)
        self.assertEqual(access_from_str("WO"), Access.WRITE_ONLY)
        self.assertEqual(access_from_str("WOD"), Access.WRITE_ONLY)
        self.assertEqual(access_from_str("WT"), Access.WRITE_ONLY)

    def test_unknown_falls_back_to_read_write(self):
        """Unknown kinds become read-write and log a warning."""
        with self.assertLogs("bitfield_assembler", level="WARNING") as cm:
            self.assertEqual(access_from_str("R/W/XYZ"), Access.READ_WRITE)
        self.assertIn("Invalid BitField type: R/W/XYZ", cm.output[0])

    def test_strict_lookup(self):
        self.assertIsNone(lookup_access("??"))
        self.assertEqual(lookup_access(" RW "), Access.READ_WRITE)


class TestAnnotationBitField(unittest.TestCase):

    def test_full_annotation(self):
        bf = annotation_bit_field("UART_RXFIFO_RD_BYTE", "RO", "7:0", "8'b0")
        self.assertEqual(bf.name, "UART_RXFIFO_RD_BYTE")
        self.assertEqual(bf.bits, Range(0, 7))
        self.assertEqual(bf.access, Access.READ_ONLY)
        self.assertEqual(bf.reset_value, 0)

    def test_undecodable_default_keeps_zero(self):
        bf = annotation_bit_field("X", "RW", "3", "1'x1")
        self.assertEqual(bf.reset_value, 0)
        self.assertEqual(bf.bits, Single(3))

    def test_bad_extent_raises(self):
        with self.assertRaises(ValueError):
            annotation_bit_field("X", "RW", "33", "1'b0")


class TestMaskShift(unittest.TestCase):

    def test_single_bit_masks(self):
        """Population count 1 always gives a Single at the shift."""
        for mask_bit in range(32):
            for shift in range(32):
                self.assertEqual(mask_shift_bits(1 << mask_bit, shift), Single(shift))

    def test_multi_bit_masks(self):
        """Population count n > 1 with shift s gives Range(s, s + n - 1)."""
        for width in range(2, 33):
            mask = (1 << width) - 1
            for shift in range(0, 33 - width):
                self.assertEqual(mask_shift_bits(mask, shift), Range(shift, shift + width - 1))

    def test_range_past_bit_31(self):
        with self.assertRaises(ValueError):
            mask_shift_bits(0xFF, 28)

    def test_zero_mask(self):
        with self.assertRaises(ValueError):
            mask_shift_bits(0, 4)

    def test_c_integers(self):
        self.assertEqual(parse_c_integer("0x1F"), 31)
        self.assertEqual(parse_c_integer("16"), 16)
        self.assertEqual(parse_c_integer(" 0X10 "), 16)
        with self.assertRaises(ValueError):
            parse_c_integer("BIT(3)")

    def test_full_register_field(self):
        bf = full_register_field()
        self.assertEqual(bf.name, FULL_REGISTER_FIELD)
        self.assertEqual(bf.bits, Range(0, 31))
        self.assertEqual(bf.access, Access.READ_WRITE)


class TestRegisterResetValue(unittest.TestCase):

    def test_compose_reset_value(self):
        """Field defaults are masked to their width and shifted into place."""
        reg = Register(name="CONF0", bit_fields=[
            BitField(name="A", bits=Single(27), reset_value=1),
            BitField(name="B", bits=Range(0, 3), reset_value=0xFF),
            BitField(name="C", bits=Range(8, 9), reset_value=2),
        ])
        self.assertEqual(reg.compose_reset_value(), 0x0800020F)
        self.assertEqual(reg.reset_value, 0x0800020F)


if __name__ == "__main__":
    unittest.main()
