"""
Layer-1 calorimeter trigger: towers -> regions -> crates -> summary.

Typical use, once per event::

    layer1.clear_event()
    for (eta, phi), fg, et in ecal_inputs:
        layer1.set_ecal_data((eta, phi), fg, et)
    for (eta, phi), fb, et in hcal_inputs:
        layer1.set_hcal_data((eta, phi), fb, et)
    layer1.process()
    summary = layer1.get_summary()

clear_event() may be skipped when every tower is set for the event. When only
non-zero towers are set, inputs left non-zero by an earlier event must be
re-set or cleared by the caller. ECAL and HCAL inputs are tracked separately:
stale_towers() lists towers with either half left over and
process(clear_untouched=True) zeroes each stale half.
"""

import numpy as np
from typing import Dict, List, Optional

from calotrig.geometry.uct_geometry import UCTGeometry
from calotrig.layer1.arena import Layer1Arena
from calotrig.layer1.bits import ET_MASK, RAW_ET_MAX, REGION_ET_MASK
from calotrig.layer1.crate import UCTCrate, aggregate_crates
from calotrig.layer1.firmware import FirmwareVersion, strategy_for, to_firmware_version
from calotrig.layer1.lut import N_HF_ETA, hf_lut as make_hf_lut, identity_lut, pack_lut
from calotrig.layer1.region import (
    DEFAULT_ACTIVITY_FRACTION,
    DEFAULT_MAX_ACTIVE_TOWERS,
    UCTRegion,
    aggregate_regions,
)
from calotrig.layer1.tower import UCTTower, encode_towers


class UCTLayer1:
    """Layer-1 trigger for the full calorimeter.

    Parameters:
    -----------
    fw_version : int
        Layer-1 firmware version (0-3), see calotrig.layer1.firmware
    geometry : UCTGeometry, optional
        Routing tables (default: the standard trigger geometry)
    ecal_lut, hcal_lut : np.ndarray, optional
        HB/HE calibration tables, shape (28, 2, 256), identity if omitted
    hf_lut : np.ndarray, optional
        HF calibration table, shape (12, 2, 256). For firmware 3 the table
        must already include the duplicate-tower division.
    activity_fraction : float
        Fraction of region ET above which a tower counts as active
    max_active_towers : int
        Active tower count above which the tau veto is set
    """

    def __init__(self, fw_version=0, geometry: Optional[UCTGeometry] = None,
                 ecal_lut=None, hcal_lut=None, hf_lut=None,
                 activity_fraction: float = DEFAULT_ACTIVITY_FRACTION,
                 max_active_towers: int = DEFAULT_MAX_ACTIVE_TOWERS):
        self._fw_version = to_firmware_version(fw_version)
        self._strategy = strategy_for(self._fw_version)
        self._geometry = geometry if geometry is not None else UCTGeometry()
        self._arena = Layer1Arena(self._geometry)
        self._activity_fraction = float(activity_fraction)
        self._max_active_towers = int(max_active_towers)

        ecal_lut = identity_lut() if ecal_lut is None else np.asarray(ecal_lut, dtype=np.uint32)
        hcal_lut = identity_lut() if hcal_lut is None else np.asarray(hcal_lut, dtype=np.uint32)
        if self._strategy.packed_lut:
            ecal_lut = pack_lut(ecal_lut)
            hcal_lut = pack_lut(hcal_lut)
        if hf_lut is None:
            hf_lut = make_hf_lut(divide=self._strategy.hf_divide_in_lut)
        hf_lut = np.asarray(hf_lut, dtype=np.uint32)
        if hf_lut.shape[0] != N_HF_ETA:
            raise ValueError(f"HF LUT must have {N_HF_ETA} eta slots, got {hf_lut.shape[0]}")
        self._ecal_lut = ecal_lut
        self._hcal_lut = hcal_lut
        self._hf_lut = hf_lut

        self._crates = [UCTCrate(self._arena, n) for n in range(self._geometry.n_crates)]
        self._summary = 0

    def __copy__(self):
        raise TypeError("UCTLayer1 cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("UCTLayer1 cannot be copied")

    @property
    def fw_version(self) -> FirmwareVersion:
        return self._fw_version

    @property
    def geometry(self) -> UCTGeometry:
        return self._geometry

    # Access to Layer-1 information

    def get_crates(self) -> List[UCTCrate]:
        return self._crates

    @staticmethod
    def _lookup(lookup, index) -> Optional[int]:
        try:
            first, second = index
            return lookup(first, second)
        except (TypeError, ValueError):
            return None

    def get_region(self, region_index) -> Optional[UCTRegion]:
        """Region at (regionEta, regionPhi), or None if there is none."""
        number = self._lookup(self._geometry.get_region_number, region_index)
        if number is None:
            return None
        return UCTRegion(self._arena, number)

    def get_region_for_tower(self, tower_index) -> Optional[UCTRegion]:
        """Region owning the tower at (caloEta, caloPhi), or None."""
        number = self._lookup(self._geometry.get_tower_number, tower_index)
        if number is None:
            return None
        return UCTRegion(self._arena, int(self._geometry.tower_region[number]))

    def get_tower(self, tower_index) -> Optional[UCTTower]:
        number = self._lookup(self._geometry.get_tower_number, tower_index)
        if number is None:
            return None
        return UCTTower(self._arena, number)

    def get_summary(self) -> int:
        return self._summary

    def et(self) -> int:
        return self._summary

    # Event filling

    def clear_event(self) -> bool:
        """Zero every tower and all aggregates, e.g. before selective filling."""
        if not self._arena.is_consistent():
            print("Error: UCTLayer1: tower/region/crate tree is malformed")
            return False
        self._arena.reset()
        self._summary = 0
        return True

    def _route(self, tower_index, what, et) -> Optional[int]:
        number = self._lookup(self._geometry.get_tower_number, tower_index)
        if number is None:
            print(f"Error: UCTLayer1: Incorrect tower {tower_index!r} for {what} data")
            return None
        if int(et) < 0:
            print(f"Error: UCTLayer1: Negative {what} ET {et} for tower {tower_index!r}")
            return None
        return number

    def set_ecal_data(self, tower_index, ecal_fg, ecal_et) -> bool:
        """
        Store the ECAL primitive of one tower.

        ET above 32 bits is clamped (encoding only uses 8 bits); a negative ET
        or an index off the grid is rejected with False.
        """
        number = self._route(tower_index, 'ECAL', ecal_et)
        if number is None:
            return False
        self._arena.ecal_fg[number] = bool(ecal_fg)
        self._arena.ecal_et[number] = min(int(ecal_et), RAW_ET_MAX)
        self._arena.ecal_touched[number] = True
        return True

    def set_hcal_data(self, tower_index, hcal_fb, hcal_et) -> bool:
        """Store the HCAL primitive of one tower; same input rules as set_ecal_data."""
        number = self._route(tower_index, 'HCAL', hcal_et)
        if number is None:
            return False
        self._arena.hcal_fb[number] = int(hcal_fb) & RAW_ET_MAX
        self._arena.hcal_et[number] = min(int(hcal_et), RAW_ET_MAX)
        self._arena.hcal_touched[number] = True
        return True

    def stale_towers(self) -> List[tuple]:
        """(caloEta, caloPhi) of towers with an ECAL or HCAL input left from an earlier event."""
        stale = np.flatnonzero(self._arena.stale_mask())
        return [(int(self._geometry.tower_calo_eta[n]), int(self._geometry.tower_calo_phi[n]))
                for n in stale]

    # Processing

    def process(self, clear_untouched: bool = False) -> bool:
        """
        Encode towers, then aggregate regions, crates and the summary.

        Parameters:
        -----------
        clear_untouched : bool
            First zero every ECAL or HCAL input not set since the last
            process()/clear_event()

        Returns:
        --------
        bool : False if the tower/region/crate tree is malformed
        """
        arena = self._arena
        if not arena.is_consistent():
            print("Error: UCTLayer1: cannot process, a region or crate has no inputs")
            return False

        if clear_untouched:
            arena.clear_towers(ecal_mask=~arena.ecal_touched, hcal_mask=~arena.hcal_touched)

        arena.tower_data[:] = encode_towers(arena, self._strategy,
                                           self._ecal_lut, self._hcal_lut, self._hf_lut)
        arena.region_data[:] = aggregate_regions(arena, self._strategy,
                                                 self._activity_fraction, self._max_active_towers)
        arena.crate_et[:] = aggregate_crates(arena)
        self._summary = int(arena.crate_et.sum())
        arena.reset_touched()
        return True

    # Array access for plotting and batch output

    def tower_arrays(self) -> Dict[str, np.ndarray]:
        geometry = self._geometry
        arena = self._arena
        return {
            'calo_eta': geometry.tower_calo_eta.copy(),
            'calo_phi': geometry.tower_calo_phi.copy(),
            'ecal_et': arena.ecal_et.copy(),
            'hcal_et': arena.hcal_et.copy(),
            'et': (arena.tower_data & ET_MASK).astype(np.uint32),
        }

    def region_arrays(self) -> Dict[str, np.ndarray]:
        geometry = self._geometry
        return {
            'region_eta': geometry.region_eta.copy(),
            'region_phi': geometry.region_phi.copy(),
            'region_data': self._arena.region_data.copy(),
            'et': (self._arena.region_data & REGION_ET_MASK).astype(np.uint32),
        }

    def __str__(self):
        lines = [f"UCTLayer1: Summary = {self._summary}; firmware version = {int(self._fw_version)}"]
        payload = self._arena.has_payload()
        for crate in self._crates:
            lines.append("  " + str(crate))
            for region in crate.regions:
                towers = [t for t in region.towers if payload[t.number]]
                if region.et() == 0 and not towers:
                    continue
                lines.append("    " + str(region))
                for tower in towers:
                    lines.append("      " + str(tower))
        return "\n".join(lines)


def fill_layer1(layer: UCTLayer1, tower_inputs: Dict[str, np.ndarray]) -> int:
    """
    Push one event of trigger primitives into a layer.

    Parameters:
    -----------
    layer : UCTLayer1
        Layer to fill; it is not cleared here
    tower_inputs : dict
        'ecal_eta', 'ecal_phi', 'ecal_et', 'ecal_fg' and
        'hcal_eta', 'hcal_phi', 'hcal_et', 'hcal_fb' arrays (either group may be absent)

    Returns:
    --------
    int : number of primitives that did not route to a tower
    """
    failures = 0
    if 'ecal_eta' in tower_inputs:
        for eta, phi, fg, et in zip(tower_inputs['ecal_eta'], tower_inputs['ecal_phi'],
                                    tower_inputs['ecal_fg'], tower_inputs['ecal_et']):
            if not layer.set_ecal_data((int(eta), int(phi)), bool(fg), int(et)):
                failures += 1
    if 'hcal_eta' in tower_inputs:
        for eta, phi, fb, et in zip(tower_inputs['hcal_eta'], tower_inputs['hcal_phi'],
                                    tower_inputs['hcal_fb'], tower_inputs['hcal_et']):
            if not layer.set_hcal_data((int(eta), int(phi)), int(fb), int(et)):
                failures += 1
    return failures
