"""
Per-chip configuration: where the headers live, which family of header
grammar they use, and which peripherals need seeding or doc enrichment.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple

from register_model import ChipType

ANNOTATION_FAMILY = "annotation"
MASK_SHIFT_FAMILY = "mask_shift"

# Indexed in the esp-idf headers (REG_<P>_BASE(i)), so no base address define
# exists for them. These blocks are identical per instance.
IDF_SEED_PERIPHERALS = ("I2C", "SPI", "TIMG", "MCPWM", "UHCI")

DEFAULT_DOC_DIR = "build"


@dataclass(frozen=True)
class DocInstance:
    """A peripheral built entirely from a documentation table."""
    name: str
    doc_file: str
    address: int


@dataclass(frozen=True)
class ChipConfig:
    chip: ChipType
    family: str
    header_dir: str
    aggregate_header: str
    header_suffixes: Tuple[str, ...]
    scan_aggregate_header: bool = False
    seed_peripherals: Tuple[str, ...] = ()
    extra_seeds: Tuple[str, ...] = ()
    # peripheral name -> doc file whose registers replace the header ones
    doc_overlays: Dict[str, str] = field(default_factory=dict)
    doc_instances: Tuple[DocInstance, ...] = ()
    spi_data_buffer: bool = False

    @property
    def output_name(self) -> str:
        return f"{self.chip.value.lower()}.svd"

    @property
    def seeds(self) -> Tuple[str, ...]:
        return self.seed_peripherals + self.extra_seeds

    @property
    def needs_docs(self) -> bool:
        return bool(self.doc_overlays or self.doc_instances)


CHIP_CONFIGS = {
    ChipType.ESP32: ChipConfig(
        chip=ChipType.ESP32,
        family=ANNOTATION_FAMILY,
        header_dir="esp-idf/components/soc/esp32/include/soc/",
        aggregate_header="soc.h",
        header_suffixes=("_reg.h",),
        seed_peripherals=IDF_SEED_PERIPHERALS,
    ),
    ChipType.ESP32C3: ChipConfig(
        chip=ChipType.ESP32C3,
        family=ANNOTATION_FAMILY,
        header_dir="esp-idf/components/soc/esp32c3/include/soc/",
        aggregate_header="soc.h",
        header_suffixes=("_reg.h",),
        seed_peripherals=IDF_SEED_PERIPHERALS,
        extra_seeds=("UART",),
    ),
    ChipType.ESP8266: ChipConfig(
        chip=ChipType.ESP8266,
        family=MASK_SHIFT_FAMILY,
        header_dir="ESP8266_RTOS_SDK/components/esp8266/include/esp8266/",
        aggregate_header="eagle_soc.h",
        header_suffixes=("_register.h",),
        scan_aggregate_header=True,
        doc_overlays={"TIMER": "timer.json", "GPIO": "gpio.json"},
        doc_instances=(
            DocInstance("UART0", "uart.json", 0x60000000),
            DocInstance("UART1", "uart.json", 0x60000F00),
            DocInstance("SPI", "spi.json", 0x60000200),
        ),
        spi_data_buffer=True,
    ),
}


def get_chip_config(chip: ChipType) -> ChipConfig:
    return CHIP_CONFIGS[chip]
