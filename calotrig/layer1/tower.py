"""
Tower encoding for the Layer-1 trigger.

All towers of an event are encoded in one vectorized pass; the HB/HE and HF
towers follow separate rules and the firmware strategy picks the variant.
"""

import numpy as np

from calotrig.geometry.uct_geometry import HF_FIRST_ETA
from calotrig.layer1.arena import Layer1Arena
from calotrig.layer1.bits import (
    ECAL_FLAG_MASK,
    EOH_FLAG_MASK,
    ER_MASK,
    ER_MAX_V,
    ER_SHIFT,
    ET_INPUT_MAX,
    ET_MASK,
    HCAL_FLAG_MASK,
    LUT_ET_MASK,
    LUT_LOG_MASK,
    LUT_LOG_SHIFT,
    ZERO_FLAG_MASK,
)
from calotrig.layer1.firmware import EncodingStrategy
from calotrig.layer1.lut import hf_divisor, log2_code


def _flag(condition, mask) -> np.ndarray:
    return np.where(condition, mask, 0).astype(np.uint32)


def _encode_hbhe(ecal_et, ecal_fg, hcal_et, hcal_fb, abs_eta, strategy, ecal_lut, hcal_lut):
    ecal = np.minimum(ecal_et, ET_INPUT_MAX)
    hcal = np.minimum(hcal_et, ET_INPUT_MAX)
    slot = abs_eta - 1
    fg = ecal_fg.astype(np.intp)
    fb = (hcal_fb & 0x1).astype(np.intp)

    if strategy.packed_lut:
        ecal_word = ecal_lut[slot, fg, ecal]
        hcal_word = hcal_lut[slot, fb, hcal]
        cal_ecal = ecal_word & LUT_ET_MASK
        cal_hcal = hcal_word & LUT_ET_MASK
        log_ecal = (ecal_word & LUT_LOG_MASK) >> LUT_LOG_SHIFT
        log_hcal = (hcal_word & LUT_LOG_MASK) >> LUT_LOG_SHIFT
    else:
        cal_ecal = ecal_lut[slot, fg, ecal]
        cal_hcal = hcal_lut[slot, fb, hcal]
        log_ecal = log2_code(ecal)
        log_hcal = log2_code(hcal)

    et = np.minimum(cal_ecal + cal_hcal, ET_MASK).astype(np.uint32)

    ecal_zero = cal_ecal == 0
    hcal_zero = cal_hcal == 0
    zero = ecal_zero | hcal_zero
    eoh = np.where(zero, hcal_zero & ~ecal_zero, cal_ecal >= cal_hcal)

    er = np.abs(log_ecal.astype(np.int64) - log_hcal.astype(np.int64))
    er = np.where(zero | (cal_ecal == cal_hcal), 0, np.minimum(er, ER_MAX_V)).astype(np.uint32)

    if strategy.forward_saturation:
        # Firmware 3 looks at the HCAL code before decompression
        hcal_check = hcal if strategy.hbhe_saturation_before_lut else cal_hcal
        saturated = (cal_ecal >= ET_INPUT_MAX) | (hcal_check >= ET_INPUT_MAX)
        et = np.where(saturated, ET_MASK, et).astype(np.uint32)

    return (et
            | (er << ER_SHIFT)
            | _flag(zero, ZERO_FLAG_MASK)
            | _flag(eoh, EOH_FLAG_MASK)
            | _flag(ecal_fg, ECAL_FLAG_MASK)
            | _flag(fb == 1, HCAL_FLAG_MASK))


def _encode_hf(hcal_et, hcal_fb, abs_eta, strategy, hf_lut):
    hcal = np.minimum(hcal_et, ET_INPUT_MAX)
    slot = abs_eta - HF_FIRST_ETA
    cal = hf_lut[slot, (hcal_fb & 0x1).astype(np.intp), hcal]
    if not strategy.hf_divide_in_lut:
        cal = cal // hf_divisor(abs_eta)
    et = np.minimum(cal, ET_MASK).astype(np.uint32)

    if strategy.hf_saturation:
        et = np.where(hcal >= ET_INPUT_MAX, ET_MASK, et).astype(np.uint32)

    # LSB: short over long fiber ratio, MSB: minimum-bias flag
    return (et
            | np.uint32(ZERO_FLAG_MASK)
            | _flag((hcal_fb & 0x1) != 0, ECAL_FLAG_MASK)
            | _flag((hcal_fb & 0x2) != 0, HCAL_FLAG_MASK))


def encode_towers(arena: Layer1Arena, strategy: EncodingStrategy, ecal_lut, hcal_lut, hf_lut) -> np.ndarray:
    """
    Encode every tower of the arena.

    Parameters:
    -----------
    arena : Layer1Arena
        Raw inputs for the event
    strategy : EncodingStrategy
        Firmware-dependent encoding rules
    ecal_lut, hcal_lut : np.ndarray
        HB/HE calibration tables (packed when strategy.packed_lut is set)
    hf_lut : np.ndarray
        HF calibration table (division folded in when strategy.hf_divide_in_lut is set)

    Returns:
    --------
    np.ndarray of uint32 tower words in arena order
    """
    geometry = arena.geometry
    words = np.zeros(geometry.n_towers, dtype=np.uint32)

    hbhe = np.flatnonzero(~geometry.tower_is_hf)
    if hbhe.size:
        words[hbhe] = _encode_hbhe(
            arena.ecal_et[hbhe], arena.ecal_fg[hbhe], arena.hcal_et[hbhe], arena.hcal_fb[hbhe],
            geometry.tower_abs_eta[hbhe], strategy, ecal_lut, hcal_lut)

    hf = np.flatnonzero(geometry.tower_is_hf)
    if hf.size:
        words[hf] = _encode_hf(
            arena.hcal_et[hf], arena.hcal_fb[hf], geometry.tower_abs_eta[hf], strategy, hf_lut)

    return words


class UCTTower:
    """Read view of one tower in a Layer-1 arena."""

    def __init__(self, arena: Layer1Arena, number: int):
        self._arena = arena
        self._number = int(number)

    @property
    def number(self) -> int:
        return self._number

    @property
    def calo_eta(self) -> int:
        return int(self._arena.geometry.tower_calo_eta[self._number])

    @property
    def calo_phi(self) -> int:
        return int(self._arena.geometry.tower_calo_phi[self._number])

    @property
    def index(self):
        return self.calo_eta, self.calo_phi

    @property
    def is_hf(self) -> bool:
        return bool(self._arena.geometry.tower_is_hf[self._number])

    # Raw inputs

    @property
    def ecal_et(self) -> int:
        return int(self._arena.ecal_et[self._number])

    @property
    def ecal_fg(self) -> bool:
        return bool(self._arena.ecal_fg[self._number])

    @property
    def hcal_et(self) -> int:
        return int(self._arena.hcal_et[self._number])

    @property
    def hcal_fb(self) -> int:
        return int(self._arena.hcal_fb[self._number])

    # Encoded word

    @property
    def tower_data(self) -> int:
        return int(self._arena.tower_data[self._number])

    def et(self) -> int:
        return self.tower_data & ET_MASK

    def er(self) -> int:
        return (self.tower_data & ER_MASK) >> ER_SHIFT

    @property
    def zero_flag(self) -> bool:
        return bool(self.tower_data & ZERO_FLAG_MASK)

    @property
    def eoh_flag(self) -> bool:
        return bool(self.tower_data & EOH_FLAG_MASK)

    @property
    def ecal_flag(self) -> bool:
        return bool(self.tower_data & ECAL_FLAG_MASK)

    @property
    def hcal_flag(self) -> bool:
        return bool(self.tower_data & HCAL_FLAG_MASK)

    def is_saturated(self) -> bool:
        return self.et() == ET_MASK

    def __repr__(self):
        return f"UCTTower(caloEta={self.calo_eta}, caloPhi={self.calo_phi})"

    def __str__(self):
        return (f"UCTTower: caloEta = {self.calo_eta}; caloPhi = {self.calo_phi}; "
                f"ecalET = {self.ecal_et}; ecalFG = {int(self.ecal_fg)}; "
                f"hcalET = {self.hcal_et}; hcalFB = {self.hcal_fb}; "
                f"towerData = 0x{self.tower_data:04x}; ET = {self.et()}")
