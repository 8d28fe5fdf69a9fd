import numpy as np
import pytest

from calotrig.layer1.bits import LUT_ET_MASK, LUT_LOG_SHIFT
from calotrig.layer1.firmware import (
    FirmwareVersion,
    firmware_version_for_run,
    strategy_for,
    to_firmware_version,
)
from calotrig.layer1.lut import hf_divisor, hf_lut, identity_lut, log2_code, pack_lut, scaled_lut


@pytest.mark.parametrize("run,version", [
    (1, FirmwareVersion.V0),
    (275907, FirmwareVersion.V0),
    (275908, FirmwareVersion.V1),
    (291172, FirmwareVersion.V1),
    (291173, FirmwareVersion.V2),
    (299755, FirmwareVersion.V2),
    (299756, FirmwareVersion.V3),
    (320000, FirmwareVersion.V3),
])
def test_firmware_version_for_run(run, version):
    assert firmware_version_for_run(run) == version


@pytest.mark.parametrize("bad", [-1, 4, "v2", None])
def test_unknown_firmware_version_is_rejected(bad):
    with pytest.raises(ValueError):
        to_firmware_version(bad)


def test_strategy_flags_grow_with_version():
    v0, v1, v2, v3 = (strategy_for(v) for v in range(4))
    assert not any(v0)
    assert v1.forward_saturation and not v1.packed_lut
    assert v2.forward_saturation and v2.packed_lut and not v2.hf_saturation
    assert all(v3)


def test_log2_code():
    codes = log2_code([0, 1, 2, 3, 4, 127, 128, 255])
    assert codes.tolist() == [0, 0, 1, 1, 2, 6, 7, 7]


def test_pack_lut_keeps_et_and_adds_log():
    packed = pack_lut(identity_lut())
    assert np.array_equal(packed & LUT_ET_MASK, identity_lut())
    assert (packed[0, 0, 16] >> LUT_LOG_SHIFT) == 4


def test_scaled_lut_clips_to_input_range():
    table = scaled_lut([2.0] * 28, fg_scale=[0.5] * 28)
    assert table.shape == (28, 2, 256)
    assert table[0, 0, 100] == 200
    assert table[0, 0, 200] == 255
    assert table[0, 1, 100] == 50


def test_scaled_lut_rejects_mismatched_fine_grain_scales():
    with pytest.raises(ValueError):
        scaled_lut([1.0] * 28, fg_scale=[1.0] * 27)


def test_hf_divisor():
    assert hf_divisor([30, 39, 40, 41]).tolist() == [2, 2, 4, 4]


def test_hf_lut_division_folded_in():
    plain = hf_lut()
    divided = hf_lut(divide=True)
    assert plain.shape == (12, 2, 256)
    assert divided[0, 0, 100] == 50
    assert divided[10, 0, 100] == 25
    assert plain[10, 0, 100] == 100
