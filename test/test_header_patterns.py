#!/usr/bin/env python3
"""
Pattern library checks against lines taken from the vendor headers.
"""

import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from header_patterns import (
    bit_info_re,
    description_re,
    idf_base_re,
    idf_reg_index_re,
    idf_reg_re,
    interrupt_re,
    is_blank,
    is_conditional_marker,
    is_offset_register,
    is_shift,
    is_skip,
    mask_re,
    normalize_sdk_header,
    sdk_base_re,
    sdk_reg_offset_re,
    sdk_reg_re,
    shift_re,
)


class TestAnnotationPatterns(unittest.TestCase):

    def test_base_address(self):
        m = idf_base_re.search("#define DR_REG_UART_BASE                        0x3ff40000")
        self.assertEqual(m.groups(), ("UART", "3ff40000"))

    def test_direct_register(self):
        m = idf_reg_re.search("#define UART_FIFO_REG          (DR_REG_UART_BASE + 0x0)")
        self.assertEqual(m.groups(), ("UART_FIFO", "UART", "0x0"))

    def test_indexed_register(self):
        m = idf_reg_index_re.search("#define I2C_SCL_LOW_PERIOD_REG(i)          (REG_I2C_BASE(i) + 0x0000)")
        self.assertEqual(m.groups(), ("I2C_SCL_LOW_PERIOD", "I2C", "0x0000"))
        self.assertIsNone(idf_reg_re.search("#define I2C_SCL_LOW_PERIOD_REG(i)          (REG_I2C_BASE(i) + 0x0000)"))

    def test_bit_info(self):
        m = bit_info_re.search("/* UART_RXFIFO_RD_BYTE : RO ;bitpos:[7:0] ;default: 8'b0 ; */")
        self.assertEqual(m.groups(), ("UART_RXFIFO_RD_BYTE", "RO", "7:0", "8'b0"))

    def test_bit_info_compound_access(self):
        m = bit_info_re.search("/* UART_TXFIFO_RST : R/W/SC ;bitpos:[18] ;default: 1'h0 ; */")
        self.assertEqual(m.group(2), "R/W/SC")
        self.assertEqual(m.group(3), "18")

    def test_description(self):
        m = description_re.search("/*description: This register stores one byte data  read by rx fifo.*/")
        self.assertEqual(m.group(1), "This register stores one byte data  read by rx fifo.")

    def test_unterminated_description(self):
        self.assertIsNone(description_re.search("/*description: still going"))


class TestMaskShiftPatterns(unittest.TestCase):

    def test_base_address_variants(self):
        self.assertEqual(sdk_base_re.search("#define PERIPHS_GPIO_BASEADDR  0x60000300").groups(),
                         ("GPIO", "60000300"))
        self.assertEqual(sdk_base_re.search("#define PERIPHS_TIMER_BASEDDR  0x60000600").groups(),
                         ("TIMER", "60000600"))
        self.assertEqual(sdk_base_re.search("#define REG_SPI_BASE  (0x60000200)").groups(),
                         ("SPI", "60000200"))

    def test_register(self):
        m = sdk_reg_re.search("#define UART_CONF0_REG            (REG_UART_BASE + 0x20)")
        self.assertEqual(m.groups(), ("UART_CONF0", "UART", "0x20"))

    def test_offset_register(self):
        m = sdk_reg_offset_re.search("#define GPIO_OUT_W1TS_ADDRESS                   0x04")
        self.assertEqual(m.groups(), ("GPIO_OUT_W1TS", "04"))
        self.assertTrue(is_offset_register("#define PERIPHS_GPIO_OUT_ADDRESS 0x00"))
        self.assertFalse(is_offset_register("#define GPIO_BT_SEL 0x0000ffff"))

    def test_masks(self):
        self.assertEqual(mask_re.search("#define UART_BIT_NUM              0x00000003").groups(),
                         ("UART_BIT_NUM", "0x00000003"))
        self.assertEqual(mask_re.search("#define UART_RXFIFO_RST           (BIT(17))").groups(),
                         ("UART_RXFIFO_RST", "BIT(17)"))
        self.assertIsNone(mask_re.search("#define UART_CONF0_REG            (REG_UART_BASE + 0x20)"))

    def test_shift(self):
        self.assertEqual(shift_re.search("#define UART_BIT_NUM_S            2").groups(), ("UART_BIT_NUM", "2"))
        self.assertTrue(is_shift("#define GPIO_BT_SEL_S 0x10"))
        self.assertFalse(is_shift("#define UART_BIT_NUM 0x00000003"))

    def test_skip(self):
        self.assertTrue(is_skip("#define UART_RXFIFO_RD_BYTE_M  ((UART_RXFIFO_RD_BYTE_V)<<(UART_RXFIFO_RD_BYTE_S))"))
        self.assertTrue(is_skip("#define UART_RXFIFO_RD_BYTE_V  0xFF"))
        self.assertFalse(is_skip("#define UART_RXFIFO_RD_BYTE_S  0"))


class TestSharedPatterns(unittest.TestCase):

    def test_interrupt(self):
        m = interrupt_re.search("#define ETS_RTC_CORE_INTR_SOURCE                46/**< interrupt of rtc core, level*/")
        self.assertEqual(m.groups(), ("RTC_CORE_INTR", "46", "interrupt of rtc core, level"))

    def test_conditional_markers(self):
        self.assertTrue(is_conditional_marker("#ifdef __cplusplus"))
        self.assertTrue(is_conditional_marker("#ifndef _SOC_UART_REG_H_"))
        self.assertTrue(is_conditional_marker("#endif /*_SOC_UART_REG_H_ */"))
        self.assertFalse(is_conditional_marker("#define UART_FIFO_REG 0"))

    def test_blank(self):
        self.assertTrue(is_blank(""))
        self.assertTrue(is_blank("   \t"))
        self.assertFalse(is_blank("/* */"))


class TestNormalizeSdkHeader(unittest.TestCase):

    def test_literal_replacements(self):
        text = normalize_sdk_header("#define PERIPHS_IO_MUX                          0x60000800\n")
        self.assertEqual(sdk_base_re.search(text).groups(), ("IO_MUX", "60000800"))

    def test_regex_replacements(self):
        text = normalize_sdk_header("#define I2STXFIFO (REG_I2S_BASE + 0x0000)")
        self.assertEqual(text, "#define I2STXFIFO_REG (REG_I2S_BASE + 0x0000)")
        self.assertEqual(sdk_reg_re.search(text).groups(), ("I2STXFIFO", "I2S", "0x0000"))

    def test_uart_base(self):
        text = normalize_sdk_header("#define REG_UART_BASE (0x60000000 + (i)*0xf00)")
        self.assertIn("0x60000000", text)
        self.assertNotIn("(i)", text)


if __name__ == "__main__":
    unittest.main()
