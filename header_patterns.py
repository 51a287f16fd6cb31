"""
Pattern library for vendor register headers.

Two header families are recognised:
  - annotation style (esp-idf soc/*_reg.h): every field carries an inline
    comment with its access type, bit position and default,
  - mask/shift style (ESP8266 RTOS SDK *_register.h): fields are a mask macro
    followed by a `_S` shift macro.

Lines are matched with `search`, not `match`; vendor headers indent freely.
"""

import re

# ------------------ Annotation family (esp-idf) ------------------
# #define DR_REG_UART_BASE                        0x3ff40000
idf_base_re = re.compile(r'\#define[\s*]+DR_REG_(.*)_BASE[\s*]+0x([0-9a-fA-F]+)')
# #define UART_FIFO_REG          (DR_REG_UART_BASE + 0x0)
idf_reg_re = re.compile(r'\#define[\s*]+([^\s*]+)_REG[\s*]+\(DR_REG_(.*)_BASE \+ (.*)\)')
# #define I2C_SCL_LOW_PERIOD_REG(i)          (REG_I2C_BASE(i) + 0x0000)
idf_reg_index_re = re.compile(
    r'\#define[\s*]+([^\s*]+)_REG\(i\)[\s*]+\(REG_([0-9A-Za-z_]+)_BASE[\s*]*\(i\) \+ (.*?)\)'
)
# /* UART_RXFIFO_RD_BYTE : RO ;bitpos:[7:0] ;default: 8'b0 ; */
bit_info_re = re.compile(
    r'/\*[\s]+([0-9A-Za-z_]+)[\s]+:[\s]+([0-9A-Za-z_/]+)[\s]+;bitpos:\[(.*)\][\s];default:[\s]+(.*)[\s];[\s]\*/'
)
# /*description: This register stores one byte data  read by rx fifo.*/
# continuation lines are joined without separator before matching
description_re = re.compile(r'\*description:\s(.*[\n|\r|\r\n]?.*)\*/')

# ------------------ Mask/shift family (ESP8266 SDK) ------------------
sdk_base_re = re.compile(
    r'\#define[\s*]+(?:DR_REG|REG|PERIPHS)_(.*)_BASE(?:_?A?DDR)?[\s*]+\(?0x([0-9a-fA-F]+)\)?'
)
sdk_reg_re = re.compile(
    r'\#define[\s*]+(?:PERIPHS_)?([^\s*]+)_(?:REG|ADDRESS|U|ADDR)[\s*]+'
    r'\((?:DR_REG|REG|PERIPHS)_(.*)_BASE(?:_?A?DDR)? \+ (.*)\)'
)
# #define PERIPHS_GPIO_PIN0_ADDRESS 0x28   (relative to the peripheral named by the first segment)
sdk_reg_offset_re = re.compile(
    r'\#define[\s*]+(?:PERIPHS_)?([^\s*]+)_(?:ADDRESS|U|ADDR)[\s*]+(?:0x)?([0-9a-fA-F]+)'
)
sdk_reg_index_re = re.compile(
    r'\#define[\s*]+(?:PERIPHS_)?([^\s*]+)_(?:REG|ADDRESS|U|ADDR)\(i\)[\s*]+'
    r'\((?:DR_REG|REG|PERIPHS)_([0-9A-Za-z_]+)_BASE(?:_?A?DDR)?[\s*]*\(i\) \+ (.*?)\)'
)
mask_re = re.compile(
    r'\#define[\s*]+(?:PERIPHS_)?([^\s*]+)[\s*]+\(?(0x[0-9a-fA-F]+|[0-9]+|\(?BIT\(?[0-9]+\)?)\)?\)?'
)
shift_re = re.compile(r'\#define[\s*]+(?:PERIPHS_)?([^\s*]+)_(?:S|s)[\s*]+\(?(0x[0-9a-fA-F]+|[0-9]+)\)?')
# _M / _V helpers carry no information the mask+shift pair does not
skip_re = re.compile(r'\#define[\s*]+(?:PERIPHS_)?([^\s*]+)_(?:M|V)[\s*]+(\(|0x)')
single_bit_re = re.compile(r'BIT\(?([0-9]+)\)?')

# make the SDK headers a bit easier to handle
SDK_REPLACEMENTS = (
    ("PERIPHS_IO_MUX ", "PERIPHS_IO_MUX_BASE "),
    ("RTC_STORE0", "RTC_STORE0_REG"),
    ("RTC_STATE1", "RTC_STATE1_REG"),
    ("RTC_STATE2", "RTC_STATE2_REG"),
    ("(0x60000000 + (i)*0xf00)", "0x60000000"),  # uart base address
)
SDK_REPLACEMENTS_RE = (
    (re.compile(r'(I2S[^\s]+)[\s]+(\(REG_I2S_BASE \+ )'), r'\1_REG \2'),
    (re.compile(r'(SLC_[^\s]+)[\s]+(\(REG_SLC_BASE \+ )'), r'\1_REG \2'),
)

# ------------------ Shared ------------------
# #define ETS_UART0_INTR_SOURCE                   34/**< interrupt of UART0, level*/
interrupt_re = re.compile(
    r'\#define[\s]ETS_([0-9A-Za-z_/]+)_SOURCE[\s]+([0-9]+)/\*\*<\s([0-9A-Za-z_/\s,]+)\*/'
)
ifdef_re = re.compile(r'#ifn?def.*')
endif_re = re.compile(r'#endif')


def is_conditional_marker(s: str) -> bool:
    return bool(ifdef_re.search(s) or endif_re.search(s))
def is_blank(s: str) -> bool: return not s.strip()
def is_bit_info(s: str) -> bool: return bool(bit_info_re.search(s))
def is_mask(s: str) -> bool: return bool(mask_re.search(s))
def is_shift(s: str) -> bool: return bool(shift_re.search(s))
def is_skip(s: str) -> bool: return bool(skip_re.search(s))
def is_offset_register(s: str) -> bool: return bool(sdk_reg_offset_re.search(s))


def normalize_sdk_header(text: str) -> str:
    """Apply the literal, then the regex replacements to an SDK header."""
    for search, replace in SDK_REPLACEMENTS:
        text = text.replace(search, replace)
    for pattern, replace in SDK_REPLACEMENTS_RE:
        text = pattern.sub(replace, text)
    return text
