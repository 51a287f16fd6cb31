#!/usr/bin/env python3
"""
L2 Documentation Import
Decodes register tables exported from the ESP8266 technical reference
(JSON, one cell object per table cell) into peripherals, and overlays them
onto the header-derived registry.

Two table layouts exist:
  - 7 columns:  address | register | signal | bits | default | SW | description
  - 8 columns:  NUM | word address | - | register | signal | bits | SW | description
    (indexed layout, addresses count 32-bit words)
"""

import copy
import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import pandas as pd

from bitfield_assembler import lookup_access, parse_default_literal
from chip_config import DEFAULT_DOC_DIR, ChipConfig
from extract_errors import DocDecodeError
from log_setup import get_logger
from peripheral_registry import PeripheralRegistry
from register_model import Access, BitField, Bits, Peripheral, Range, Register, Single

log = get_logger(__name__)

# garbage row before the header row in every exported table
GARBAGE_ROWS = 1
# a header row is the first row with text in this column
HEADER_MARKER_COLUMN = 4
WIDE_LAYOUT_MARKER = "NUM"

# the exported table has a corrupted address cell for this register
ADDRESS_OVERRIDES = {"UART_STATUS": "0x1c"}

SPI_DATA_BUFFER_BASE = 0x40
SPI_DATA_BUFFER_WORDS = 16


@dataclass
class Row:
    address: Optional[int]
    reg_name: str
    signal: str
    bit_pos: Optional[Bits]
    default: Optional[int]
    access: Optional[Access]
    description: str


def load_table(doc) -> Tuple[List[str], pd.DataFrame]:
    """
    Turn the exported JSON into (header, data rows).

    Only the last table of the outer list is used. Carriage returns are
    stripped from every cell, missing cells of short rows read as "".
    """
    if not isinstance(doc, list) or not doc:
        raise DocDecodeError("expected a non-empty list of tables")
    try:
        rows = [[cell.get("text", "") for cell in row] for row in doc[-1]["data"]]
    except (KeyError, TypeError, AttributeError) as e:
        raise DocDecodeError(f"malformed table: {e}") from e

    df = pd.DataFrame(rows).fillna("").astype(str)
    df = df.apply(lambda col: col.str.replace("\r", "", regex=False))

    if df.shape[1] <= HEADER_MARKER_COLUMN:
        raise DocDecodeError(f"table has only {df.shape[1]} columns")
    for idx in range(GARBAGE_ROWS, len(df)):
        if df.iat[idx, HEADER_MARKER_COLUMN]:
            header = df.iloc[idx].tolist()
            data = df.iloc[idx + 1:].reset_index(drop=True)
            return header, data
    raise DocDecodeError("no header row found")


def is_wide_layout(header: List[str]) -> bool:
    return bool(header) and header[0] == WIDE_LAYOUT_MARKER


def parse_addr(addr: str) -> Optional[int]:
    """
    "0x10" -> 16; "" and "0x20~0x2c" -> None (continuation row).
    Anything else that is not hex is fatal for the document.
    """
    addr = addr.strip()
    if not addr or '~' in addr:
        return None
    digits = addr[2:] if addr.lower().startswith('0x') else addr
    try:
        return int(digits, 16)
    except ValueError:
        raise DocDecodeError(f"invalid address {addr!r}") from None


def parse_bits(bit_pos: str) -> Optional[Bits]:
    """"[3:0]" -> Range(0, 3), "[5]" -> Single(5), unresolvable -> None"""
    nums = bit_pos.strip().lstrip('[').rstrip(']')
    if not nums:
        return None
    try:
        parts = [int(p) for p in nums.split(':')]
        if len(parts) == 1:
            return Single(parts[0])
        if len(parts) == 2:
            return Range(parts[1], parts[0])
    except ValueError:
        pass
    log.debug(f"Unresolvable bit position {bit_pos!r}")
    return None


def parse_default(default: str) -> Optional[int]:
    if not default.strip():
        return None
    try:
        return parse_default_literal(default)
    except ValueError as e:
        raise DocDecodeError(str(e)) from e


def extract_row(cells: List[str], wide: bool) -> Row:
    if wide:
        # NUM column is dropped, the third column is unused
        address, _, reg_name, signal, bit_pos, sw, description = cells[1:8]
        addr = parse_addr(address)
        return Row(
            address=addr * 4 if addr is not None else None,
            reg_name=reg_name,
            signal=signal,
            bit_pos=parse_bits(bit_pos),
            default=None,
            access=lookup_access(sw),
            description=description,
        )

    address, reg_name, signal, bit_pos, default, sw, description = cells[:7]
    address = ADDRESS_OVERRIDES.get(reg_name, address)
    return Row(
        address=parse_addr(address),
        reg_name=reg_name,
        signal=signal,
        bit_pos=parse_bits(bit_pos),
        default=parse_default(default),
        access=lookup_access(sw),
        description=description,
    )


def strip_address_suffix(name: str) -> str:
    while name.endswith("_ADDRESS"):
        name = name[:-len("_ADDRESS")]
    return name


def decode_table(header: List[str], data: pd.DataFrame) -> Peripheral:
    """Fold the table rows into one peripheral (base address left at 0)."""
    wide = is_wide_layout(header)
    width = 8 if wide else 7
    peripheral = Peripheral()

    def push(reg):
        if reg is not None and reg.name:
            reg.compose_reset_value()
            peripheral.registers.append(reg)

    reg = None
    last_access = Access.READ_WRITE
    for _, series in data.iterrows():
        cells = series.tolist()
        cells += [""] * (width - len(cells))
        if '~' in cells[0]:
            # index range of a register array, covered by its first row
            continue

        row = extract_row(cells, wide)
        if row.address is not None:
            push(reg)
            name = strip_address_suffix(row.reg_name)
            reg = Register(
                name=name,
                address=row.address,
                description=row.description or name,
            )

        if reg is None:
            log.debug(f"Skipping row before first register: {cells}")
            continue

        if row.signal and row.bit_pos is not None:
            bit_field = BitField(
                name=row.signal,
                bits=row.bit_pos,
                access=row.access or last_access,
                reset_value=row.default or 0,
                description=row.description,
            )
            last_access = bit_field.access
            reg.bit_fields.append(bit_field)
        elif row.description and reg.bit_fields:
            # continuation line of the previous field's description
            reg.bit_fields[-1].description += ", " + row.description

    push(reg)
    return peripheral


def decode_doc(doc) -> Peripheral:
    header, data = load_table(doc)
    return decode_table(header, data)


def load_json(path: str):
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def parse_doc(path: str, load_json: Callable[[str], object] = load_json) -> Peripheral:
    """Decode one documentation file. Decode errors name the file."""
    try:
        peripheral = decode_doc(load_json(path))
    except DocDecodeError as e:
        raise DocDecodeError(f"{path}: {e}") from e
    except json.JSONDecodeError as e:
        raise DocDecodeError(f"{path}: invalid JSON ({e})") from e
    log.info(f"Decoded {len(peripheral.registers)} registers from {path}")
    return peripheral


def spi_data_buffer_registers() -> List[Register]:
    """W0..W15, the 64-byte SPI data buffer, one 32-bit word each."""
    registers = []
    for i in range(SPI_DATA_BUFFER_WORDS):
        description = f"the data inside the buffer of the SPI module, word {i}"
        registers.append(Register(
            name=f"SPI_W{i}",
            address=SPI_DATA_BUFFER_BASE + 4 * i,
            description=description,
            bit_fields=[BitField(
                name=f"spi_w{i}",
                bits=Range(0, 31),
                access=Access.READ_WRITE,
                description=description,
            )],
        ))
    return registers


def apply_doc_overlays(
    registry: PeripheralRegistry,
    config: ChipConfig,
    doc_dir: str = DEFAULT_DOC_DIR,
    load_json: Callable[[str], object] = load_json,
) -> int:
    """
    Replace or add peripherals from documentation tables.
    Returns the number of peripherals touched.
    """
    touched = 0
    for name, doc_file in sorted(config.doc_overlays.items()):
        if name not in registry:
            log.warning(f"No {name} peripheral in the headers, skipping {doc_file}")
            continue
        registry.overlay_registers(name, parse_doc(os.path.join(doc_dir, doc_file), load_json))
        touched += 1

    decoded = {}
    for instance in config.doc_instances:
        if instance.doc_file not in decoded:
            decoded[instance.doc_file] = parse_doc(os.path.join(doc_dir, instance.doc_file), load_json)
        # every instance gets its own copy of the decoded registers
        peripheral = copy.deepcopy(decoded[instance.doc_file])
        peripheral.address = instance.address
        peripheral.description = instance.name
        if instance.name == "SPI" and config.spi_data_buffer:
            peripheral.registers.extend(spi_data_buffer_registers())
        registry.insert(instance.name, peripheral)
        touched += 1

    return touched


if __name__ == "__main__":
    from log_setup import setup_logging

    if len(sys.argv) < 2:
        print("Usage: python l2_doc_import.py <table.json>")
        sys.exit(1)
    setup_logging()
    doc_peripheral = parse_doc(sys.argv[1])
    for r in doc_peripheral.registers:
        print(f"{r.address:#06x} {r.name} ({len(r.bit_fields)} fields)")
    print(f"[INFO] {Path(sys.argv[1]).name}: {len(doc_peripheral.registers)} registers")
