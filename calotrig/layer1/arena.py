import numpy as np

from calotrig.geometry.uct_geometry import UCTGeometry


class Layer1Arena:
    """Flat per-tower, per-region and per-crate state of one Layer-1 instance.

    Towers, regions and crates are addressed by their arena number from
    :class:`UCTGeometry`; the views in tower.py, region.py and crate.py read
    straight from these arrays.
    """

    def __init__(self, geometry: UCTGeometry):
        self.geometry = geometry
        n_towers = geometry.n_towers
        n_regions = geometry.n_regions

        # Raw inputs
        self.ecal_et = np.zeros(n_towers, dtype=np.uint32)
        self.ecal_fg = np.zeros(n_towers, dtype=bool)
        self.hcal_et = np.zeros(n_towers, dtype=np.uint32)
        self.hcal_fb = np.zeros(n_towers, dtype=np.uint32)
        self.ecal_touched = np.zeros(n_towers, dtype=bool)
        self.hcal_touched = np.zeros(n_towers, dtype=bool)

        # Derived
        self.tower_data = np.zeros(n_towers, dtype=np.uint32)
        self.region_data = np.zeros(n_regions, dtype=np.uint32)
        self.crate_et = np.zeros(geometry.n_crates, dtype=np.uint64)

    def is_consistent(self) -> bool:
        geometry = self.geometry
        n_towers = geometry.n_towers
        return (geometry.is_well_formed()
                and all(len(a) == n_towers for a in (self.ecal_et, self.ecal_fg, self.hcal_et,
                                                     self.hcal_fb, self.ecal_touched, self.hcal_touched,
                                                     self.tower_data))
                and len(self.region_data) == geometry.n_regions
                and len(self.crate_et) == geometry.n_crates)

    def clear_towers(self, ecal_mask=None, hcal_mask=None):
        """Zero ECAL and HCAL inputs under their own masks (all towers if both are None)."""
        if ecal_mask is None and hcal_mask is None:
            ecal_mask = hcal_mask = slice(None)
        if ecal_mask is not None:
            self.ecal_et[ecal_mask] = 0
            self.ecal_fg[ecal_mask] = False
        if hcal_mask is not None:
            self.hcal_et[hcal_mask] = 0
            self.hcal_fb[hcal_mask] = 0

    def reset_touched(self):
        self.ecal_touched[:] = False
        self.hcal_touched[:] = False

    def reset(self):
        self.clear_towers()
        self.reset_touched()
        self.tower_data[:] = 0
        self.region_data[:] = 0
        self.crate_et[:] = 0

    def ecal_payload(self) -> np.ndarray:
        return (self.ecal_et != 0) | self.ecal_fg

    def hcal_payload(self) -> np.ndarray:
        return (self.hcal_et != 0) | (self.hcal_fb != 0)

    def has_payload(self) -> np.ndarray:
        return self.ecal_payload() | self.hcal_payload()

    def stale_mask(self) -> np.ndarray:
        """Towers with an ECAL or HCAL half still holding input that was not re-set."""
        return ((self.ecal_payload() & ~self.ecal_touched)
                | (self.hcal_payload() & ~self.hcal_touched))
