#!/usr/bin/env python3
"""
L4 SVD Writer
Encodes the device model as a CMSIS-SVD document.
"""

import xml.etree.ElementTree as ET
from pathlib import Path

from l3_device_assemble import SvdCpu, SvdDevice, SvdField, SvdPeripheral, SvdRegister
from log_setup import get_logger

log = get_logger(__name__)

SCHEMA_INSTANCE = "http://www.w3.org/2001/XMLSchema-instance"
SCHEMA_LOCATION = "CMSIS-SVD.xsd"


def _hex(x: int) -> str:
    return f"{x:#010x}"


def _bool(x: bool) -> str:
    return "true" if x else "false"


def _text(parent: ET.Element, tag: str, value) -> ET.Element:
    elem = ET.SubElement(parent, tag)
    elem.text = str(value)
    return elem


def _make_pretty(elem: ET.Element, indentation="  ", level=0):
    """Indent in place through the text/tail attributes."""
    i = "\n" + level * indentation
    if len(elem):
        if not elem.text or not elem.text.strip():
            elem.text = i + indentation
        if not elem.tail or not elem.tail.strip():
            elem.tail = i
        for child in elem:
            _make_pretty(child, indentation, level + 1)
        # last child closes back to this level
        if not child.tail or not child.tail.strip():
            child.tail = i
    else:
        if level and (not elem.tail or not elem.tail.strip()):
            elem.tail = i


def encode_field(parent: ET.Element, f: SvdField):
    elem = ET.SubElement(parent, "field")
    _text(elem, "name", f.name)
    if f.description is not None:
        _text(elem, "description", f.description)
    _text(elem, "bitOffset", f.bit_offset)
    _text(elem, "bitWidth", f.bit_width)
    if f.access is not None:
        _text(elem, "access", f.access.value)


def encode_register(parent: ET.Element, r: SvdRegister):
    elem = ET.SubElement(parent, "register")
    _text(elem, "name", r.name)
    if r.description:
        _text(elem, "description", r.description)
    _text(elem, "addressOffset", f"{r.address_offset:#x}")
    _text(elem, "size", f"{r.size:#x}")
    _text(elem, "resetValue", _hex(r.reset_value))
    if r.fields:
        fields = ET.SubElement(elem, "fields")
        for f in r.fields:
            encode_field(fields, f)


def encode_peripheral(parent: ET.Element, p: SvdPeripheral):
    elem = ET.SubElement(parent, "peripheral")
    _text(elem, "name", p.name)
    if p.description:
        _text(elem, "description", p.description)
    _text(elem, "baseAddress", _hex(p.base_address))
    if p.address_block is not None:
        block = ET.SubElement(elem, "addressBlock")
        _text(block, "offset", f"{p.address_block.offset:#x}")
        _text(block, "size", f"{p.address_block.size:#x}")
        _text(block, "usage", p.address_block.usage)
    for i in p.interrupts:
        intr = ET.SubElement(elem, "interrupt")
        _text(intr, "name", i.name)
        if i.description:
            _text(intr, "description", i.description)
        _text(intr, "value", i.value)
    if p.registers:
        registers = ET.SubElement(elem, "registers")
        for r in p.registers:
            encode_register(registers, r)


def encode_cpu(parent: ET.Element, cpu: SvdCpu):
    elem = ET.SubElement(parent, "cpu")
    _text(elem, "name", cpu.name)
    _text(elem, "revision", cpu.revision)
    _text(elem, "endian", cpu.endian)
    _text(elem, "mpuPresent", _bool(cpu.mpu_present))
    _text(elem, "fpuPresent", _bool(cpu.fpu_present))
    _text(elem, "nvicPrioBits", cpu.nvic_priority_bits)
    _text(elem, "vendorSystickConfig", _bool(cpu.has_vendor_systick))


def encode_device(device: SvdDevice) -> ET.Element:
    root = ET.Element("device", {
        "schemaVersion": device.schema_version or "1.0",
        "xmlns:xs": SCHEMA_INSTANCE,
        "xs:noNamespaceSchemaLocation": SCHEMA_LOCATION,
    })
    _text(root, "name", device.name)
    if device.version:
        _text(root, "version", device.version)
    if device.description:
        _text(root, "description", device.description)
    if device.cpu is not None:
        encode_cpu(root, device.cpu)
    _text(root, "addressUnitBits", device.address_unit_bits)
    if device.width is not None:
        _text(root, "width", device.width)
    peripherals = ET.SubElement(root, "peripherals")
    for p in device.peripherals:
        encode_peripheral(peripherals, p)
    _make_pretty(root)
    return root


def device_to_string(device: SvdDevice) -> str:
    return ET.tostring(encode_device(device), encoding="unicode")


def write_svd(device: SvdDevice, path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tree = ET.ElementTree(encode_device(device))
    tree.write(path, encoding="utf-8", xml_declaration=True)
    log.info(f"Wrote {len(device.peripherals)} peripherals to {path}")
    return path
