"""
Layer-1 firmware versions and the tower-encoding behaviour each one selects.

0: initial version for 2016 running
1: saturated tower codes forwarded to layer 2 (run >= 275908)
2: all-LUT processing, no change in numeric behaviour (run >= 291173)
3: HF saturation codes, HF division done in the LUT, HB/HE saturation
   checked before decompression (run >= 299756)
"""

from enum import IntEnum
from typing import NamedTuple


class FirmwareVersion(IntEnum):
    V0 = 0
    V1 = 1
    V2 = 2
    V3 = 3


class EncodingStrategy(NamedTuple):
    forward_saturation: bool
    packed_lut: bool
    hbhe_saturation_before_lut: bool
    hf_saturation: bool
    hf_divide_in_lut: bool


_STRATEGIES = {
    FirmwareVersion.V0: EncodingStrategy(False, False, False, False, False),
    FirmwareVersion.V1: EncodingStrategy(True, False, False, False, False),
    FirmwareVersion.V2: EncodingStrategy(True, True, False, False, False),
    FirmwareVersion.V3: EncodingStrategy(True, True, True, True, True),
}

# First run of each firmware version
_FIRST_RUN = [
    (299756, FirmwareVersion.V3),
    (291173, FirmwareVersion.V2),
    (275908, FirmwareVersion.V1),
]


def to_firmware_version(fw_version) -> FirmwareVersion:
    try:
        return FirmwareVersion(int(fw_version))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Unsupported Layer-1 firmware version: {fw_version!r}") from exc


def strategy_for(fw_version) -> EncodingStrategy:
    return _STRATEGIES[to_firmware_version(fw_version)]


def firmware_version_for_run(run: int) -> FirmwareVersion:
    """Firmware version that was online for a given run number."""
    for first_run, version in _FIRST_RUN:
        if run >= first_run:
            return version
    return FirmwareVersion.V0
