"""
Peripheral registry: owns the name -> Peripheral map for one extraction run
and collects the non-fatal diagnostics reported at the end of it.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from log_setup import get_logger
from register_model import Interrupt, Peripheral, Register

log = get_logger(__name__)

# First segment of an interrupt source name -> peripheral name, where the
# vendor uses a different name in the interrupt list and the base defines.
INTERRUPT_PERIPHERAL_CORRECTIONS = {
    "RTC": "RTCCNTL",
    "TG0": "TIMG",
    "TG1": "TIMG",
    "PWM0": "MCPWM",
    "PWM1": "MCPWM",
    "UART0": "UART",
}


def interrupt_peripheral_name(interrupt_name: str) -> str:
    """
    Peripheral owning an interrupt source.

    Examples:
        "RTC_CORE_INTR_SOURCE" -> "RTCCNTL"
        "GPIO_INTR"            -> "GPIO"
    """
    segment = interrupt_name.split('_')[0]
    return INTERRUPT_PERIPHERAL_CORRECTIONS.get(segment, segment)


@dataclass
class Diagnostics:
    invalid_files: List[str] = field(default_factory=list)
    invalid_peripherals: List[str] = field(default_factory=list)
    invalid_registers: List[str] = field(default_factory=list)
    invalid_bit_fields: List[Tuple[str, str]] = field(default_factory=list)

    def is_clean(self) -> bool:
        return not (self.invalid_files or self.invalid_peripherals
                    or self.invalid_registers or self.invalid_bit_fields)

    def report(self):
        if self.invalid_files:
            log.info(f"The following files contained no parsable information {self.invalid_files}")
        if self.invalid_peripherals:
            log.info(f"The following peripherals failed to parse {self.invalid_peripherals}")
        if self.invalid_registers:
            log.info(f"The following registers failed to parse {self.invalid_registers}")
        if self.invalid_bit_fields:
            log.info(f"The following bit_fields failed to parse {self.invalid_bit_fields}")


class PeripheralRegistry:
    def __init__(self, seeds: Iterable[str] = ()):
        self.peripherals: Dict[str, Peripheral] = {}
        self.diagnostics = Diagnostics()
        # names whose base address has been recorded; later matches are ignored
        self._located = set()
        self.seed(seeds)

    def __contains__(self, name):
        return name in self.peripherals

    def __len__(self):
        return len(self.peripherals)

    def seed(self, names: Iterable[str]):
        """Create peripherals that exist but have no base address define."""
        for name in names:
            self.peripherals.setdefault(name, Peripheral(description=name))

    def record_base_address(self, name: str, address: int) -> bool:
        """First address recorded for a name wins. Returns True if recorded."""
        if name in self._located:
            return False
        p = self.peripherals.setdefault(name, Peripheral(description=name))
        p.address = address & 0xFFFFFFFF
        self._located.add(name)
        return True

    def add_base_addresses(self, text: str, pattern: Pattern) -> int:
        """Record every base-address define in a header, returns how many were new."""
        added = 0
        for m in pattern.finditer(text):
            name, address = m.group(1), m.group(2)
            if self.record_base_address(name, int(address, 16)):
                added += 1
        return added

    def get(self, name: str) -> Optional[Peripheral]:
        return self.peripherals.get(name)

    def add_register(self, peripheral_name: str, register: Register) -> bool:
        p = self.peripherals.get(peripheral_name)
        if p is None:
            log.debug(f"Orphaned register {register.name}: no peripheral called {peripheral_name}")
            self.diagnostics.invalid_peripherals.append(peripheral_name)
            return False
        p.registers.append(register)
        return True

    def add_interrupt(self, interrupt: Interrupt) -> bool:
        p = self.peripherals.get(interrupt.peripheral)
        if p is None:
            log.debug(f"No peripheral called {interrupt.peripheral} for interrupt {interrupt.name}")
            self.diagnostics.invalid_peripherals.append(interrupt.peripheral)
            return False
        p.interrupts.append(interrupt)
        return True

    def overlay_registers(self, name: str, doc_peripheral: Peripheral) -> bool:
        """Replace the whole register list of an existing peripheral."""
        p = self.peripherals.get(name)
        if p is None:
            return False
        p.registers = doc_peripheral.registers
        return True

    def insert(self, name: str, peripheral: Peripheral):
        if not peripheral.description:
            peripheral.description = name
        self.peripherals[name] = peripheral
        self._located.add(name)

    def take(self) -> Dict[str, Peripheral]:
        """Hand the map over; the registry is empty afterwards."""
        peripherals, self.peripherals = self.peripherals, {}
        self._located = set()
        return peripherals
