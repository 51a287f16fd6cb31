#!/usr/bin/env python3
"""
L3 Device Assembly
Turns the peripheral map of a run into the frozen device model handed to the
SVD writer, plus CSV dumps of the registers and fields.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

import pandas as pd

from extract_errors import DeviceBuildError
from log_setup import get_logger
from register_model import Access, BitField, ChipType, Peripheral, Register

log = get_logger(__name__)

REGISTER_SIZE = 32
RESET_MASK = 0xFFFFFFFF


# ------------------ Device model ------------------
@dataclass(frozen=True)
class SvdField:
    name: str
    bit_offset: int
    bit_width: int
    access: Optional[Access] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class SvdRegister:
    name: str
    address_offset: int
    size: int = REGISTER_SIZE
    reset_value: int = 0
    description: Optional[str] = None
    fields: Tuple[SvdField, ...] = ()


@dataclass(frozen=True)
class SvdAddressBlock:
    offset: int
    size: int
    usage: str = "registers"


@dataclass(frozen=True)
class SvdInterrupt:
    name: str
    value: int
    description: Optional[str] = None


@dataclass(frozen=True)
class SvdPeripheral:
    name: str
    base_address: int
    description: Optional[str] = None
    address_block: Optional[SvdAddressBlock] = None
    interrupts: Tuple[SvdInterrupt, ...] = ()
    # None rather than empty, an SVD <registers> element needs a child
    registers: Optional[Tuple[SvdRegister, ...]] = None


@dataclass(frozen=True)
class SvdCpu:
    name: str
    revision: str
    endian: str
    mpu_present: bool
    fpu_present: bool
    nvic_priority_bits: int
    has_vendor_systick: bool


@dataclass(frozen=True)
class SvdDevice:
    name: str
    peripherals: Tuple[SvdPeripheral, ...]
    version: Optional[str] = None
    schema_version: Optional[str] = None
    description: Optional[str] = None
    address_unit_bits: int = 8
    width: Optional[int] = None
    cpu: Optional[SvdCpu] = None


# ------------------ Builders ------------------
class ModelBuilder:
    """
    Collects keyword values for one model type and checks the required ones
    are present before constructing it.

    Example:
        FieldBuilder().set(name="EN", bit_offset=0, bit_width=1).build()
    """
    model = None
    required: Tuple[str, ...] = ()

    def __init__(self):
        self._values = {}

    def set(self, **values):
        self._values.update(values)
        return self

    def build(self):
        missing = [name for name in self.required if self._values.get(name) is None]
        if missing:
            raise DeviceBuildError(f"{self.model.__name__} is missing {', '.join(missing)}")
        return self.model(**self._values)


class FieldBuilder(ModelBuilder):
    model = SvdField
    required = ("name", "bit_offset", "bit_width")


class RegisterBuilder(ModelBuilder):
    model = SvdRegister
    required = ("name", "address_offset")


class InterruptBuilder(ModelBuilder):
    model = SvdInterrupt
    required = ("name", "value")


class PeripheralBuilder(ModelBuilder):
    model = SvdPeripheral
    required = ("name", "base_address")


class CpuBuilder(ModelBuilder):
    model = SvdCpu
    required = ("name", "revision", "endian", "mpu_present", "fpu_present",
                "nvic_priority_bits", "has_vendor_systick")


class DeviceBuilder(ModelBuilder):
    model = SvdDevice
    required = ("name", "peripherals")


# ------------------ Assembly ------------------
def build_field(bf: BitField) -> SvdField:
    description = bf.description if bf.description.strip() else None
    return FieldBuilder().set(
        name=bf.name,
        bit_offset=bf.bits.offset,
        bit_width=bf.bits.width,
        access=bf.access,
        description=description,
    ).build()


def build_register(r: Register) -> SvdRegister:
    return RegisterBuilder().set(
        name=r.name,
        description=r.description,
        address_offset=r.address,
        size=REGISTER_SIZE,
        reset_value=r.reset_value & RESET_MASK,
        fields=tuple(build_field(bf) for bf in r.bit_fields),
    ).build()


def build_peripheral(name: str, p: Peripheral) -> SvdPeripheral:
    registers = tuple(build_register(r) for r in p.registers)
    interrupts = tuple(
        InterruptBuilder().set(name=i.name, value=i.value, description=i.description).build()
        for i in p.interrupts
    )
    block_size = sum(r.size for r in registers)
    return PeripheralBuilder().set(
        name=name,
        base_address=p.address,
        description=p.description or None,
        address_block=SvdAddressBlock(offset=0, size=block_size),
        interrupts=interrupts,
        registers=registers or None,
    ).build()


def build_cpu(chip: ChipType) -> SvdCpu:
    return CpuBuilder().set(
        name=chip.detailed_name,
        revision="1",
        endian="little",
        mpu_present=False,
        fpu_present=True,
        # 7 interrupt levels
        nvic_priority_bits=3,
        has_vendor_systick=False,
    ).build()


def assemble_device(chip: ChipType, peripherals: Dict[str, Peripheral]) -> SvdDevice:
    """Build the device model; peripherals come out sorted by name."""
    svd_peripherals = tuple(
        build_peripheral(name, peripherals[name]) for name in sorted(peripherals)
    )
    log.info(f"Assembled {chip} with {len(svd_peripherals)} peripherals")
    return DeviceBuilder().set(
        name=str(chip),
        version="1.0",
        schema_version="1.0",
        description=f"{chip} ({chip.detailed_name})",
        width=32,
        cpu=build_cpu(chip),
        peripherals=svd_peripherals,
    ).build()


# ------------------ CSV dumps ------------------
def device_to_frames(device: SvdDevice) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Flatten the device into (register summaries, register fields) tables.

    Returns:
        register_summaries: peripheral, name, address, offset, size, reset_value, description
        register_fields:    peripheral, register, name, bit_offset, bit_width, access, description
    """
    summaries = []
    fields = []
    for p in device.peripherals:
        for r in p.registers or ():
            summaries.append({
                'peripheral': p.name,
                'name': r.name,
                'address': f"{p.base_address + r.address_offset:#010x}",
                'offset': f"{r.address_offset:#x}",
                'size': r.size,
                'reset_value': f"{r.reset_value:#010x}",
                'description': r.description or '',
            })
            for f in r.fields:
                fields.append({
                    'peripheral': p.name,
                    'register': r.name,
                    'name': f.name,
                    'bit_offset': f.bit_offset,
                    'bit_width': f.bit_width,
                    'access': f.access.value if f.access else '',
                    'description': f.description or '',
                })

    summary_columns = ['peripheral', 'name', 'address', 'offset', 'size', 'reset_value', 'description']
    field_columns = ['peripheral', 'register', 'name', 'bit_offset', 'bit_width', 'access', 'description']
    return pd.DataFrame(summaries, columns=summary_columns), pd.DataFrame(fields, columns=field_columns)


def export_csv(device: SvdDevice, output_dir) -> Tuple[Path, Path]:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    summaries_df, fields_df = device_to_frames(device)
    summaries_csv = output_dir / "register_summaries.csv"
    fields_csv = output_dir / "register_fields.csv"
    summaries_df.to_csv(summaries_csv, index=False)
    fields_df.to_csv(fields_csv, index=False)

    log.info(f"Register summaries: {len(summaries_df)} rows -> {summaries_csv}")
    log.info(f"Register fields: {len(fields_df)} rows -> {fields_csv}")
    if len(summaries_df):
        log.info(f"Unique peripherals: {summaries_df['peripheral'].nunique()}")
    return summaries_csv, fields_csv
