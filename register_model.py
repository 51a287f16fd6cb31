"""
Register model shared by the header extractor and the documentation importer.

Peripherals are kept in a plain dict keyed by name while a run is in progress;
the device assembler turns that dict into the frozen SVD model.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

MAX_BIT = 31


class ChipType(Enum):
    ESP32 = "ESP32"
    ESP32C3 = "ESP32C3"
    ESP8266 = "ESP8266"

    @property
    def detailed_name(self) -> str:
        return CORE_NAMES[self]

    @classmethod
    def from_str(cls, s: str) -> "ChipType":
        """Case-insensitive lookup, e.g. "esp32c3" -> ChipType.ESP32C3"""
        try:
            return cls(s.strip().upper())
        except ValueError:
            raise ValueError(f"Invalid chip: {s}") from None

    def __str__(self):
        return self.value


CORE_NAMES = {
    ChipType.ESP32: "Xtensa LX6",
    ChipType.ESP32C3: "RISC-V RV32IMC single-core",
    ChipType.ESP8266: "Xtensa LX106",
}


class Access(Enum):
    READ_ONLY = "read-only"
    READ_WRITE = "read-write"
    WRITE_ONLY = "write-only"


@dataclass(frozen=True)
class Single:
    bit: int

    def __post_init__(self):
        if not 0 <= self.bit <= MAX_BIT:
            raise ValueError(f"bit {self.bit} outside 0..{MAX_BIT}")

    @property
    def offset(self) -> int:
        return self.bit

    @property
    def width(self) -> int:
        return 1


@dataclass(frozen=True)
class Range:
    low: int
    high: int

    def __post_init__(self):
        if not 0 <= self.low <= self.high <= MAX_BIT:
            raise ValueError(f"invalid bit range [{self.high}:{self.low}]")

    @property
    def offset(self) -> int:
        return self.low

    @property
    def width(self) -> int:
        return self.high - self.low + 1


Bits = Union[Single, Range]


@dataclass
class BitField:
    name: str
    bits: Bits = Single(0)
    access: Access = Access.READ_WRITE
    reset_value: int = 0
    description: str = ""


@dataclass
class Register:
    name: str = ""
    address: int = 0
    width: int = 32
    description: str = ""
    reset_value: int = 0
    detailed_description: Optional[str] = None
    bit_fields: List[BitField] = field(default_factory=list)

    def compose_reset_value(self) -> int:
        """
        OR the field defaults into a register reset value.

        Field values wider than their bit range are masked, e.g. a 4'hFF
        default on a [3:0] field contributes 0xF.
        """
        value = 0
        for bf in self.bit_fields:
            mask = (1 << bf.bits.width) - 1
            value |= (bf.reset_value & mask) << bf.bits.offset
        self.reset_value = value
        return value


@dataclass
class Interrupt:
    peripheral: str
    name: str
    value: int
    description: Optional[str] = None

    def __post_init__(self):
        if self.value < 0:
            raise ValueError(f"negative interrupt number for {self.name}")


@dataclass
class Peripheral:
    description: str = ""
    address: int = 0
    registers: List[Register] = field(default_factory=list)
    interrupts: List[Interrupt] = field(default_factory=list)
