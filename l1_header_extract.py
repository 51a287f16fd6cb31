#!/usr/bin/env python3
"""
L1 Header Extraction
Recovers peripherals, registers, bit fields and interrupt sources from vendor
C headers.

Each header is scanned line by line with a small state machine. A state is a
tagged dataclass carrying the register under construction; the transition
function returns (next_state, consumed). When a line is not consumed the same
line is evaluated again in the next state, so one line can drive several
transitions (e.g. "blank line -> finalize -> look for the next register").

Known quirk: a register is only pushed into its peripheral
at a blank line or at the end of its bit fields. A register still being
built when the file ends is dropped.
"""

import os
import sys
from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Optional, Tuple

from bitfield_assembler import (
    annotation_bit_field,
    full_register_field,
    mask_shift_bit_field,
    parse_c_integer,
    single_bit_field,
)
from chip_config import ANNOTATION_FAMILY, ChipConfig
from header_patterns import (
    bit_info_re,
    description_re,
    idf_base_re,
    idf_reg_index_re,
    idf_reg_re,
    interrupt_re,
    is_bit_info,
    is_blank,
    is_conditional_marker,
    is_mask,
    is_offset_register,
    is_shift,
    is_skip,
    mask_re,
    normalize_sdk_header,
    sdk_base_re,
    sdk_reg_index_re,
    sdk_reg_offset_re,
    sdk_reg_re,
    shift_re,
    single_bit_re,
)
from log_setup import get_logger
from peripheral_registry import PeripheralRegistry, interrupt_peripheral_name
from register_model import BitField, Interrupt, Register

log = get_logger(__name__)


# ------------------ States ------------------
@dataclass
class FindRegister:
    pass


@dataclass
class FindBitFieldInfo:
    peripheral: str
    register: Register


@dataclass
class FindDescription:
    peripheral: str
    register: Register
    # None when the annotation was unparsable; its description is still consumed
    bit_field: Optional[BitField]
    buffer: Tuple[str, ...] = ()


@dataclass
class CheckEnd:
    peripheral: str
    register: Register


@dataclass
class FindBitFieldMask:
    peripheral: str
    register: Register


@dataclass
class FindBitFieldShift:
    peripheral: str
    register: Register
    mask: int


@dataclass
class FindBitFieldSkipShift:
    peripheral: str
    register: Register


@dataclass
class AssumeFullRegister:
    peripheral: str
    register: Register


# ------------------ Extractors ------------------
class HeaderExtractor:
    """Runs the per-line state machine of one header family over a header text."""

    def __init__(self, registry: PeripheralRegistry):
        self.registry = registry
        self.diagnostics = registry.diagnostics
        self._source = "<header>"
        self._lineno = 0
        self._found = False
        self._handlers = {}

    def extract(self, text: str, source: str = "<header>") -> bool:
        """
        Scan one header. Returns False (and flags the file) when nothing in it
        could be matched.
        """
        self._source = source
        self._found = False
        state = FindRegister()

        for lineno, line in enumerate(text.splitlines(), 1):
            self._lineno = lineno
            if is_conditional_marker(line):
                continue
            consumed = False
            while not consumed:
                state, consumed = self.step(state, line)

        if not isinstance(state, FindRegister):
            log.debug(f"{source}: dropping unfinished register {state.register.name}")
        if not self._found:
            self.diagnostics.invalid_files.append(source)
        return self._found

    def step(self, state, line: str):
        return self._handlers[type(state)](state, line)

    def _where(self) -> str:
        return f"{self._source}:{self._lineno}"

    def _begin_register(self, reg_name: str, offset: str) -> Optional[Register]:
        offset = offset.strip()
        while offset.startswith('0x'):
            offset = offset[2:]
        try:
            address = int(offset, 16)
        except ValueError:
            log.debug(f"Failed to parse register for {reg_name}: {offset}")
            self.diagnostics.invalid_registers.append(reg_name)
            return None
        self._found = True
        return Register(name=reg_name, address=address, description=reg_name)

    def _finalize(self, peripheral: str, register: Register):
        self.registry.add_register(peripheral, register)


class AnnotationExtractor(HeaderExtractor):
    """
    esp-idf style headers:

        #define UART_FIFO_REG(i)          (REG_UART_BASE(i) + 0x0)
        /* UART_RXFIFO_RD_BYTE : RO ;bitpos:[7:0] ;default: 8'b0 ; */
        /*description: This register stores one byte data  read by rx fifo.*/
        #define UART_RXFIFO_RD_BYTE  0x000000FF
        ...
        <blank line>
    """

    def __init__(self, registry: PeripheralRegistry):
        super().__init__(registry)
        self._handlers = {
            FindRegister: self._find_register,
            FindBitFieldInfo: self._find_bit_field_info,
            FindDescription: self._find_description,
            CheckEnd: self._check_end,
        }

    def _find_register(self, state, line):
        m = idf_reg_re.search(line) or idf_reg_index_re.search(line)
        if not m:
            return state, True

        reg_name, peripheral, offset = m.groups()
        if reg_name.endswith("(i)"):
            # some indexed definitions still get through the direct pattern
            self.diagnostics.invalid_registers.append(reg_name)
            return state, True
        register = self._begin_register(reg_name, offset)
        if register is None:
            return state, True
        return FindBitFieldInfo(peripheral, register), True

    def _find_bit_field_info(self, state, line):
        m = bit_info_re.search(line)
        if not m:
            # partial registers are discarded in this family
            log.debug(f"Failed to match reg info at {self._where()}")
            self.diagnostics.invalid_registers.append(state.register.name)
            return FindRegister(), False

        name, access, extent, default = m.groups()
        try:
            bit_field = annotation_bit_field(name, access, extent, default)
        except ValueError:
            log.debug(f"Failed to parse bitpos {extent} at {self._where()}")
            self.diagnostics.invalid_bit_fields.append((name, extent))
            bit_field = None
        return FindDescription(state.peripheral, state.register, bit_field), True

    def _find_description(self, state, line):
        buffer = state.buffer + (line,)
        m = description_re.search("".join(buffer))
        if not m:
            return replace(state, buffer=buffer), True

        if state.bit_field is not None:
            state.bit_field.description = m.group(1).strip()
            state.register.bit_fields.append(state.bit_field)
        return CheckEnd(state.peripheral, state.register), True

    def _check_end(self, state, line):
        if is_blank(line):
            state.register.compose_reset_value()
            self._finalize(state.peripheral, state.register)
            return FindRegister(), True
        if is_bit_info(line):
            # next bit field of the same register
            return FindBitFieldInfo(state.peripheral, state.register), False
        return state, True


class MaskShiftExtractor(HeaderExtractor):
    """
    ESP8266 SDK style headers:

        #define UART_CONF0_REG            (REG_UART_BASE + 0x20)
        #define UART_RXFIFO_RST           (BIT(17))
        #define UART_BIT_NUM              0x00000003
        #define UART_BIT_NUM_S            2
        <blank line>
    """

    def __init__(self, registry: PeripheralRegistry):
        super().__init__(registry)
        self._handlers = {
            FindRegister: self._find_register,
            FindBitFieldMask: self._find_bit_field_mask,
            FindBitFieldShift: self._find_bit_field_shift,
            FindBitFieldSkipShift: self._find_bit_field_skip_shift,
            AssumeFullRegister: self._assume_full_register,
            CheckEnd: self._check_end,
        }

    def _find_register(self, state, line):
        m = sdk_reg_re.search(line) or sdk_reg_index_re.search(line)
        if m:
            reg_name, peripheral, offset = m.groups()
            if reg_name.endswith("(i)"):
                self.diagnostics.invalid_registers.append(reg_name)
                return state, True
        else:
            m = sdk_reg_offset_re.search(line)
            if not m:
                return state, True
            reg_name, offset = m.groups()
            # offset-only defines are relative to the peripheral in the name
            peripheral = reg_name.split('_')[0]

        register = self._begin_register(reg_name, offset)
        if register is None:
            return state, True
        return FindBitFieldMask(peripheral, register), True

    def _find_bit_field_mask(self, state, line):
        if is_skip(line):
            return state, True
        if is_offset_register(line):
            # the next register starts before any mask was seen
            return AssumeFullRegister(state.peripheral, state.register), False

        m = mask_re.search(line)
        if not m:
            if not state.register.bit_fields:
                return AssumeFullRegister(state.peripheral, state.register), False
            # keep what was gathered so far, the line may start the next register
            log.debug(f"Failed to match reg mask at {self._where()}")
            self._finalize(state.peripheral, state.register)
            return FindRegister(), False

        define_name, value = m.groups()
        bit = single_bit_re.search(value)
        if bit:
            try:
                state.register.bit_fields.append(single_bit_field(define_name, int(bit.group(1))))
            except ValueError:
                log.debug(f"Failed to single bit match reg mask at {self._where()}")
                self.diagnostics.invalid_bit_fields.append((define_name, value))
                return state, True
            return FindBitFieldSkipShift(state.peripheral, state.register), True

        # C literal rules, so a bare "10" is decimal rather than hex
        try:
            mask = parse_c_integer(value)
        except ValueError:
            self.diagnostics.invalid_bit_fields.append((define_name, value))
            return state, True
        return FindBitFieldShift(state.peripheral, state.register, mask), True

    def _find_bit_field_shift(self, state, line):
        if is_skip(line):
            return state, True

        m = shift_re.search(line)
        if not m:
            if not state.register.bit_fields:
                return AssumeFullRegister(state.peripheral, state.register), False
            log.debug(f"Failed to match reg shift at {self._where()} ('{line}')")
            self._finalize(state.peripheral, state.register)
            return FindRegister(), False

        define_name, value = m.groups()
        try:
            bit_field = mask_shift_bit_field(define_name, state.mask, parse_c_integer(value))
        except ValueError:
            log.debug(f"Invalid mask {state.mask:#x} / shift {value} at {self._where()}")
            self.diagnostics.invalid_bit_fields.append((define_name, f"{state.mask:#x} << {value}"))
        else:
            state.register.bit_fields.append(bit_field)
        return CheckEnd(state.peripheral, state.register), True

    def _find_bit_field_skip_shift(self, state, line):
        # a BIT(n) mask may still be followed by its redundant shift define
        return CheckEnd(state.peripheral, state.register), is_shift(line)

    def _assume_full_register(self, state, line):
        self._found = True
        if not state.register.bit_fields:
            state.register.bit_fields.append(full_register_field())
        self._finalize(state.peripheral, state.register)
        return FindRegister(), False

    def _check_end(self, state, line):
        if is_blank(line):
            self._finalize(state.peripheral, state.register)
            return FindRegister(), True
        if is_mask(line):
            return FindBitFieldMask(state.peripheral, state.register), False
        return state, True


# ------------------ Interrupts ------------------
def extract_interrupts(text: str) -> List[Interrupt]:
    """
    Interrupt sources of the aggregate header.

    "#define ETS_RTC_CORE_INTR_SOURCE 46/**< interrupt of rtc core, level*/"
    -> Interrupt(peripheral="RTCCNTL", name="RTC_CORE_INTR", value=46, ...)
    """
    interrupts = []
    for m in interrupt_re.finditer(text):
        name, index, desc = m.groups()
        interrupts.append(Interrupt(
            peripheral=interrupt_peripheral_name(name),
            name=name,
            value=int(index),
            description=desc.strip(),
        ))
    return interrupts


# ------------------ Driver ------------------
def load_text(path: str) -> str:
    """Read a whole file. I/O errors propagate; a missing input aborts the run."""
    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        return f.read()


def list_headers(directory: str, suffixes: Iterable[str], extra_names: Iterable[str] = ()) -> List[str]:
    suffixes = tuple(suffixes)
    extra_names = set(extra_names)
    return [
        os.path.join(directory, name)
        for name in sorted(os.listdir(directory))
        if name.endswith(suffixes) or name in extra_names
    ]


def extractor_for(config: ChipConfig, registry: PeripheralRegistry) -> HeaderExtractor:
    if config.family == ANNOTATION_FAMILY:
        return AnnotationExtractor(registry)
    return MaskShiftExtractor(registry)


def extract_headers(
    config: ChipConfig,
    base_path: str = ".",
    load_text: Callable[[str], str] = load_text,
    list_headers: Callable[..., List[str]] = list_headers,
) -> PeripheralRegistry:
    """Extract every register header of a chip into a fresh registry."""
    header_dir = os.path.join(base_path, config.header_dir)
    annotation = config.family == ANNOTATION_FAMILY
    base_re = idf_base_re if annotation else sdk_base_re

    registry = PeripheralRegistry(config.seeds)
    soc_h = load_text(os.path.join(header_dir, config.aggregate_header))
    interrupts = extract_interrupts(soc_h)
    registry.add_base_addresses(soc_h, base_re)

    extra = (config.aggregate_header,) if config.scan_aggregate_header else ()
    files = list_headers(header_dir, config.header_suffixes, extra)
    extractor = extractor_for(config, registry)
    for path in files:
        text = load_text(path)
        if not annotation:
            text = normalize_sdk_header(text)
            registry.add_base_addresses(text, base_re)
        extractor.extract(text, path)

    for interrupt in interrupts:
        registry.add_interrupt(interrupt)

    log.info(f"Parsed {len(files)} headers for {config.chip} peripheral information")
    log.info(f"Found {len(registry)} peripherals and {len(interrupts)} interrupt sources")
    return registry


if __name__ == "__main__":
    from chip_config import get_chip_config
    from log_setup import setup_logging
    from register_model import ChipType

    if len(sys.argv) < 2:
        print("Usage: python l1_header_extract.py <chip> [sdk_root]")
        sys.exit(1)
    setup_logging()
    registry = extract_headers(get_chip_config(ChipType.from_str(sys.argv[1])),
                               sys.argv[2] if len(sys.argv) >= 3 else ".")
    registry.diagnostics.report()
    for name, p in sorted(registry.peripherals.items()):
        print(f"{name} @ {p.address:#010x}: {len(p.registers)} registers")
