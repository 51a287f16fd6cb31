"""
Bit-field assembly for both header families.

Annotation style states the extent directly ("7:0", "3"); mask/shift style
encodes the width as the population count of a mask and the low bit as a
separate shift macro.
"""

from typing import Optional

from log_setup import get_logger
from register_model import Access, BitField, Bits, Range, Single

log = get_logger(__name__)

# Vendor access abbreviations. Compound write-effect suffixes (self-clear,
# write-to-clear, ...) have no representation in the model and fold into RW.
ACCESS_TYPES = {
    "RO": Access.READ_ONLY,
    "R/O": Access.READ_ONLY,
    "RW": Access.READ_WRITE,
    "R/W": Access.READ_WRITE,
    "R/WTC/SS": Access.READ_WRITE,
    "R/W/WTC/SS": Access.READ_WRITE,
    "R/SS/WTC": Access.READ_WRITE,
    "R/W/SC": Access.READ_WRITE,
    "R/W/SS": Access.READ_WRITE,
    "R/W/SS/SC": Access.READ_WRITE,
    "R/W/WTC": Access.READ_WRITE,
    "WO": Access.WRITE_ONLY,
    "W/O": Access.WRITE_ONLY,
    "WOD": Access.WRITE_ONLY,
    "WT": Access.WRITE_ONLY,
}

FULL_REGISTER_FIELD = "Register"

LITERAL_BASES = {"b": 2, "d": 10, "h": 16}


def lookup_access(s: str) -> Optional[Access]:
    """Strict table lookup, None when the abbreviation is unknown."""
    return ACCESS_TYPES.get(s.strip())


def access_from_str(s: str) -> Access:
    """
    Map a vendor access abbreviation onto one of the three access kinds.

    Unknown abbreviations fall back to read-write with a warning, the field
    itself is never dropped.
    """
    access = lookup_access(s)
    if access is None:
        log.warning(f"Invalid BitField type: {s}, assuming read-write")
        return Access.READ_WRITE
    return access


def parse_bit_extent(extent: str) -> Bits:
    """
    Parse an annotation bit position.

    Examples:
        "31:0" -> Range(0, 31)
        "7"    -> Single(7)

    Raises ValueError for anything else, including ranges outside 0..31.
    """
    parts = [p.strip() for p in extent.strip().strip('[]').split(':')]
    if len(parts) == 2:
        high, low = int(parts[0]), int(parts[1])
        return Range(low, high)
    if len(parts) == 1:
        return Single(int(parts[0]))
    raise ValueError(f"Failed to parse bitpos {extent}")


def parse_default_literal(text: str) -> int:
    """
    Decode a Verilog-style sized literal such as 4'h5, 1'b0 or 32'd1_000.

    Raises ValueError on a missing size prefix or an unknown base letter.
    """
    parts = text.strip().split("'")
    if len(parts) < 2 or not parts[1]:
        raise ValueError(f"invalid default format {text!r}")
    literal = parts[1].replace('_', '').strip()
    base = LITERAL_BASES.get(literal[:1].lower())
    if base is None:
        raise ValueError(f"invalid default format {text!r}")
    return int(literal[1:], base)


def annotation_bit_field(name: str, access: str, extent: str, default: str = "") -> BitField:
    """
    Build a field from a `/* NAME : ACCESS ;bitpos:[ext] ;default: lit ; */` capture.

    An unparsable extent raises ValueError; the caller records the field as
    invalid and carries on with the register.
    """
    bits = parse_bit_extent(extent)
    reset = 0
    if default:
        try:
            reset = parse_default_literal(default)
        except ValueError:
            log.debug(f"Ignoring default {default!r} of {name}")
    return BitField(name=name, bits=bits, access=access_from_str(access), reset_value=reset)


def parse_c_integer(value: str) -> int:
    """C literal: 0x-prefixed hex, otherwise decimal."""
    value = value.strip()
    if value.lower().startswith('0x'):
        return int(value, 16)
    return int(value, 10)


def mask_shift_bits(mask: int, shift: int) -> Bits:
    """
    Field extent from a mask and its shift.

    The width is the population count of the mask:
        (0x1, 5)  -> Single(5)
        (0xFF, 8) -> Range(8, 15)
    """
    width = bin(mask).count('1')
    if width == 0:
        raise ValueError("empty mask")
    if width == 1:
        return Single(shift)
    return Range(shift, shift + width - 1)


def single_bit_field(name: str, bit: int) -> BitField:
    return BitField(name=name, bits=Single(bit))


def mask_shift_bit_field(name: str, mask: int, shift: int) -> BitField:
    return BitField(name=name, bits=mask_shift_bits(mask, shift))


def full_register_field() -> BitField:
    """Used when a register has no mask macros at all."""
    return BitField(name=FULL_REGISTER_FIELD, bits=Range(0, 31), access=Access.READ_WRITE)
