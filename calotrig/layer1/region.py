import numpy as np

from calotrig.layer1.arena import Layer1Arena
from calotrig.layer1.bits import (
    CRATE_NO_SHIFT,
    ECAL_FLAG_MASK,
    EOH_FLAG_MASK,
    ET_MASK,
    HIT_TOWER_BITS,
    HIT_TOWER_SHIFT,
    NEG_ETA_BIT,
    PHI_IN_CRATE_SHIFT,
    REGION_EG_VETO,
    REGION_ET_MASK,
    REGION_NO_SHIFT,
    REGION_TAU_VETO,
)
from calotrig.geometry.uct_geometry import N_REGION_PHI_IN_CRATE
from calotrig.layer1.firmware import EncodingStrategy
from calotrig.layer1.tower import UCTTower


DEFAULT_ACTIVITY_FRACTION = 0.125
DEFAULT_MAX_ACTIVE_TOWERS = 3


def _location_bits(geometry) -> np.ndarray:
    region_eta = geometry.region_eta.astype(np.int64)
    location = (np.abs(region_eta) - 1) << REGION_NO_SHIFT
    location |= (geometry.region_phi.astype(np.int64) % N_REGION_PHI_IN_CRATE) << PHI_IN_CRATE_SHIFT
    location |= geometry.region_crate.astype(np.int64) << CRATE_NO_SHIFT
    location |= np.where(region_eta < 0, NEG_ETA_BIT, 0)
    return location.astype(np.uint32)


def aggregate_regions(arena: Layer1Arena, strategy: EncodingStrategy,
                      activity_fraction: float = DEFAULT_ACTIVITY_FRACTION,
                      max_active_towers: int = DEFAULT_MAX_ACTIVE_TOWERS) -> np.ndarray:
    """
    Build the region words from the encoded towers.

    Region ET is the clamped sum of tower ET; a saturated tower saturates its
    region from firmware 1 on. For HB/HE regions, towers carrying more than
    activity_fraction of the region ET are active: too many active towers
    sets the tau veto, an active hadronic or fine-grain tower sets the EG veto.
    """
    geometry = arena.geometry
    starts = geometry.region_start[:-1]

    tower_et = (arena.tower_data & ET_MASK).astype(np.uint64)
    region_sum = np.add.reduceat(tower_et, starts)
    region_et = np.minimum(region_sum, REGION_ET_MASK)
    if strategy.forward_saturation:
        saturated = np.logical_or.reduceat(tower_et == ET_MASK, starts)
        region_et = np.where(saturated, REGION_ET_MASK, region_et)

    eoh = (arena.tower_data & EOH_FLAG_MASK) != 0
    fine_grain = (arena.tower_data & ECAL_FLAG_MASK) != 0

    features = np.zeros(geometry.n_regions, dtype=np.uint32)
    for region in np.flatnonzero(region_sum):
        towers = geometry.region_slice(region)
        ets = tower_et[towers]
        word = (int(np.argmax(ets)) << HIT_TOWER_SHIFT) & HIT_TOWER_BITS

        if not geometry.region_is_hf[region]:
            active = (ets > activity_fraction * float(region_sum[region])) & (ets > 0)
            if np.count_nonzero(active) > max_active_towers:
                word |= REGION_TAU_VETO
            if np.any(active & (~eoh[towers] | fine_grain[towers])):
                word |= REGION_EG_VETO
        features[region] = word

    return region_et.astype(np.uint32) | features | _location_bits(geometry)


class UCTRegion:
    """Read view of one region in a Layer-1 arena."""

    def __init__(self, arena: Layer1Arena, number: int):
        self._arena = arena
        self._number = int(number)

    @property
    def number(self) -> int:
        return self._number

    @property
    def region_eta(self) -> int:
        return int(self._arena.geometry.region_eta[self._number])

    @property
    def region_phi(self) -> int:
        return int(self._arena.geometry.region_phi[self._number])

    @property
    def index(self):
        return self.region_eta, self.region_phi

    @property
    def is_hf(self) -> bool:
        return bool(self._arena.geometry.region_is_hf[self._number])

    @property
    def crate(self) -> int:
        return int(self._arena.geometry.region_crate[self._number])

    @property
    def raw_data(self) -> int:
        return int(self._arena.region_data[self._number])

    def et(self) -> int:
        return self.raw_data & REGION_ET_MASK

    @property
    def eg_veto(self) -> bool:
        return bool(self.raw_data & REGION_EG_VETO)

    @property
    def tau_veto(self) -> bool:
        return bool(self.raw_data & REGION_TAU_VETO)

    @property
    def hit_tower_location(self) -> int:
        return (self.raw_data & HIT_TOWER_BITS) >> HIT_TOWER_SHIFT

    @property
    def towers(self):
        span = self._arena.geometry.region_slice(self._number)
        return [UCTTower(self._arena, n) for n in range(span.start, span.stop)]

    def get_tower(self, tower_index):
        """Tower of this region at (caloEta, caloPhi), or None."""
        geometry = self._arena.geometry
        number = geometry.get_tower_number(*tower_index)
        if number is None or geometry.tower_region[number] != self._number:
            return None
        return UCTTower(self._arena, number)

    def __repr__(self):
        return f"UCTRegion(regionEta={self.region_eta}, regionPhi={self.region_phi})"

    def __str__(self):
        return (f"UCTRegion: regionEta = {self.region_eta}; regionPhi = {self.region_phi}; "
                f"regionData = 0x{self.raw_data:08x}; ET = {self.et()}; "
                f"EGVeto = {int(self.eg_veto)}; TauVeto = {int(self.tau_veto)}; "
                f"hitTower = {self.hit_tower_location}")
