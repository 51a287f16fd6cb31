#!/usr/bin/env python3
"""
header2svd
Builds a CMSIS-SVD description of an Espressif chip from its vendor C
headers (and, for the ESP8266, the register tables of its reference manual).

Pipeline:
  L1  headers         -> peripheral registry   (l1_header_extract)
  L2  doc tables      -> registry overlays     (l2_doc_import)
  L3  registry        -> device model / CSV    (l3_device_assemble)
  L4  device model    -> <chip>.svd            (l4_svd_writer)

Usage:
  python header2svd.py esp32 --sdk-root ~/esp
  python header2svd.py esp8266 --sdk-root ~/esp --doc-dir build --csv csv_out
"""

import argparse
import sys
from pathlib import Path

from chip_config import DEFAULT_DOC_DIR, get_chip_config
from extract_errors import DocDecodeError
from l1_header_extract import extract_headers
from l2_doc_import import apply_doc_overlays
from l3_device_assemble import assemble_device, export_csv
from l4_svd_writer import write_svd
from log_setup import get_logger, setup_logging
from register_model import ChipType

log = get_logger("header2svd")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="header2svd", description="Generate CMSIS-SVD files from Espressif SoC headers")
    p.add_argument("chip", help=f"Target chip, one of {', '.join(c.value for c in ChipType)} (case-insensitive)")
    p.add_argument("--sdk-root", type=Path, default=Path("."),
                   help="Directory holding the esp-idf / ESP8266_RTOS_SDK checkouts (default: .)")
    p.add_argument("--doc-dir", type=Path, default=Path(DEFAULT_DOC_DIR),
                   help=f"Directory of the exported register tables (default: {DEFAULT_DOC_DIR})")
    p.add_argument("--out-dir", type=Path, default=Path("."), help="Where <chip>.svd is written (default: .)")
    p.add_argument("--csv", type=Path, default=None, help="Also dump register/field CSVs into this directory")

    # Logging
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    p.add_argument("--quiet", action="store_true", help="Only print the bare messages")
    return p


def run(chip: ChipType, sdk_root: Path, doc_dir: Path, out_dir: Path, csv_dir=None) -> Path:
    config = get_chip_config(chip)

    registry = extract_headers(config, str(sdk_root))
    if config.needs_docs:
        apply_doc_overlays(registry, config, str(doc_dir))
    registry.diagnostics.report()

    device = assemble_device(chip, registry.take())
    svd_path = write_svd(device, Path(out_dir) / config.output_name)
    if csv_dir is not None:
        export_csv(device, csv_dir)
    return svd_path


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.quiet)

    try:
        chip = ChipType.from_str(args.chip)
    except ValueError as e:
        log.error(f"{e}; expected one of {', '.join(c.value for c in ChipType)}")
        return 1

    try:
        svd_path = run(chip, args.sdk_root, args.doc_dir, args.out_dir, args.csv)
    except (OSError, DocDecodeError) as e:
        log.error(str(e))
        return 1

    log.info(f"Done: {svd_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
