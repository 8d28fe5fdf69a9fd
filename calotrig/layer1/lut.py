"""
Look-up tables for tower calibration.

Tables are indexed ``[eta_slot, flag_bit, raw_et]``: eta_slot is |caloEta|-1
for HB/HE and |caloEta|-30 for HF, flag_bit is the ECAL fine-grain bit (ECAL
table) or the lowest feature bit (HCAL and HF tables).
"""

import numpy as np
from typing import Optional, Sequence

from calotrig.geometry.uct_geometry import HF_FIRST_ETA, HF_LAST_ETA, MAX_HBHE_ETA
from calotrig.layer1.bits import ER_MAX_V, ET_INPUT_MAX, LUT_ET_MASK, LUT_LOG_SHIFT

N_HF_ETA = HF_LAST_ETA - HF_FIRST_ETA + 1


def _raw_values():
    return np.arange(ET_INPUT_MAX + 1, dtype=np.uint32)


def identity_lut(n_eta: int = MAX_HBHE_ETA) -> np.ndarray:
    return np.broadcast_to(_raw_values(), (n_eta, 2, ET_INPUT_MAX + 1)).copy()


def scaled_lut(scale_by_abs_eta: Sequence[float], fg_scale: Optional[Sequence[float]] = None) -> np.ndarray:
    """
    Linear calibration table.

    Parameters:
    -----------
    scale_by_abs_eta : sequence of float
        One calibration factor per eta slot
    fg_scale : sequence of float, optional
        Factors used when the flag bit is set (default: same as scale_by_abs_eta)

    Returns:
    --------
    np.ndarray of shape (n_eta, 2, 256), values clipped to the raw input range
    """
    scales = np.asarray(scale_by_abs_eta, dtype=float)
    fg_scales = scales if fg_scale is None else np.asarray(fg_scale, dtype=float)
    if fg_scales.shape != scales.shape:
        raise ValueError("fg_scale must have one entry per eta slot")

    raw = _raw_values().astype(float)
    table = np.stack([np.outer(scales, raw), np.outer(fg_scales, raw)], axis=1)
    return np.clip(np.rint(table), 0, ET_INPUT_MAX).astype(np.uint32)


def log2_code(values) -> np.ndarray:
    """floor(log2(ET)) capped at the er range; zero maps to zero."""
    values = np.maximum(np.asarray(values, dtype=np.uint32), 1)
    return np.minimum(np.floor(np.log2(values)).astype(np.uint32), ER_MAX_V)


def pack_lut(lut: np.ndarray) -> np.ndarray:
    """Fold the log2 code of the raw input into the upper bits of each entry."""
    lut = np.asarray(lut, dtype=np.uint32)
    logs = log2_code(_raw_values())
    return (lut & LUT_ET_MASK) | (logs << LUT_LOG_SHIFT)


def hf_divisor(abs_eta) -> np.ndarray:
    """HF towers are sent twice (|eta| 30-39) or four times (|eta| 40-41)."""
    return np.where(np.asarray(abs_eta) >= 40, 4, 2).astype(np.uint32)


def hf_lut(scale_by_abs_eta: Optional[Sequence[float]] = None, divide: bool = False) -> np.ndarray:
    """HF table, optionally with the duplicate-tower division folded in."""
    if scale_by_abs_eta is None:
        table = identity_lut(N_HF_ETA)
    else:
        table = scaled_lut(scale_by_abs_eta)
    if divide:
        divisors = hf_divisor(np.arange(HF_FIRST_ETA, HF_LAST_ETA + 1))
        table = table // divisors[:, None, None]
    return table.astype(np.uint32)
