"""
Layer-1 calorimeter trigger geometry.

Maps trigger tower indices (caloEta, caloPhi) onto regions and crates and
precomputes the flat lookup tables used by the Layer-1 arena. Towers of one
region are stored contiguously, as are the regions of one crate, so any
aggregation level is a plain slice of the arrays below.
"""

import numpy as np
from typing import Dict, List, Optional, Tuple


# Tower grid
MAX_CALO_PHI = 72
MAX_HBHE_ETA = 28
HF_FIRST_ETA = 30
HF_LAST_ETA = 41

# Aggregation arity
N_CRATES = 3
N_REGION_PHI_IN_CRATE = 6
N_PHI_IN_REGION = 4
N_HBHE_REGIONS = 7
N_HF_REGIONS = 4
N_ETA_IN_REGION = 4
N_HF_ETA_IN_REGION = 3
N_REGIONS_IN_SIDE = N_HBHE_REGIONS + N_HF_REGIONS


class UCTGeometry:
    """Routing tables for the tower -> region -> crate hierarchy.

    Arena order is crate, region-phi column inside the crate, eta side
    (negative first), region eta number, then tower phi and tower eta inside
    the region. The in-region tower number is ``i_phi * n_eta + i_eta``.
    """

    def __init__(self):
        tower_eta: List[int] = []
        tower_phi: List[int] = []
        tower_region: List[int] = []

        region_eta: List[int] = []
        region_phi: List[int] = []
        region_crate: List[int] = []
        region_start: List[int] = [0]
        crate_start: List[int] = [0]

        self._tower_lookup: Dict[Tuple[int, int], int] = {}
        self._region_lookup: Dict[Tuple[int, int], int] = {}

        for crate in range(N_CRATES):
            for phi_in_crate in range(N_REGION_PHI_IN_CRATE):
                rphi = crate * N_REGION_PHI_IN_CRATE + phi_in_crate
                for sign in (-1, 1):
                    for region_in_side in range(N_REGIONS_IN_SIDE):
                        region_number = len(region_eta)
                        reta = sign * (region_in_side + 1)
                        region_eta.append(reta)
                        region_phi.append(rphi)
                        region_crate.append(crate)
                        self._region_lookup[(reta, rphi)] = region_number

                        for abs_eta, calo_phi in self._towers_of_region(region_in_side, rphi):
                            calo_eta = sign * abs_eta
                            self._tower_lookup[(calo_eta, calo_phi)] = len(tower_eta)
                            tower_eta.append(calo_eta)
                            tower_phi.append(calo_phi)
                            tower_region.append(region_number)
                        region_start.append(len(tower_eta))
            crate_start.append(len(region_eta))

        self.tower_calo_eta = np.asarray(tower_eta, dtype=np.int32)
        self.tower_calo_phi = np.asarray(tower_phi, dtype=np.int32)
        self.tower_abs_eta = np.abs(self.tower_calo_eta)
        self.tower_is_hf = self.tower_abs_eta >= HF_FIRST_ETA
        self.tower_region = np.asarray(tower_region, dtype=np.int32)

        self.region_eta = np.asarray(region_eta, dtype=np.int32)
        self.region_phi = np.asarray(region_phi, dtype=np.int32)
        self.region_crate = np.asarray(region_crate, dtype=np.int32)
        self.region_is_hf = np.abs(self.region_eta) > N_HBHE_REGIONS
        self.region_start = np.asarray(region_start, dtype=np.int64)
        self.crate_start = np.asarray(crate_start, dtype=np.int64)

    @staticmethod
    def _towers_of_region(region_in_side, region_phi):
        """Yield (|caloEta|, caloPhi) of a region in arena order."""
        if region_in_side < N_HBHE_REGIONS:
            first_eta = region_in_side * N_ETA_IN_REGION + 1
            n_eta = N_ETA_IN_REGION
        else:
            first_eta = HF_FIRST_ETA + (region_in_side - N_HBHE_REGIONS) * N_HF_ETA_IN_REGION
            n_eta = N_HF_ETA_IN_REGION
        first_phi = region_phi * N_PHI_IN_REGION + 1
        for i_phi in range(N_PHI_IN_REGION):
            for i_eta in range(n_eta):
                yield first_eta + i_eta, first_phi + i_phi

    # Cardinalities

    @property
    def n_towers(self) -> int:
        return len(self.tower_calo_eta)

    @property
    def n_regions(self) -> int:
        return len(self.region_eta)

    @property
    def n_crates(self) -> int:
        return len(self.crate_start) - 1

    # Routing

    def get_tower_number(self, calo_eta, calo_phi) -> Optional[int]:
        """Arena number of a tower, or None if the index is not on the grid."""
        return self._tower_lookup.get((int(calo_eta), int(calo_phi)))

    def get_region_number(self, region_eta, region_phi) -> Optional[int]:
        return self._region_lookup.get((int(region_eta), int(region_phi)))

    def get_region_index(self, calo_eta, calo_phi) -> Optional[Tuple[int, int]]:
        """(regionEta, regionPhi) that owns the given tower."""
        tower = self.get_tower_number(calo_eta, calo_phi)
        if tower is None:
            return None
        region = self.tower_region[tower]
        return int(self.region_eta[region]), int(self.region_phi[region])

    def get_crate(self, calo_eta, calo_phi) -> Optional[int]:
        tower = self.get_tower_number(calo_eta, calo_phi)
        if tower is None:
            return None
        return int(self.region_crate[self.tower_region[tower]])

    def region_slice(self, region_number: int) -> slice:
        return slice(int(self.region_start[region_number]), int(self.region_start[region_number + 1]))

    def crate_slice(self, crate_number: int) -> slice:
        return slice(int(self.crate_start[crate_number]), int(self.crate_start[crate_number + 1]))

    def region_n_eta(self, region_number: int) -> int:
        return N_HF_ETA_IN_REGION if self.region_is_hf[region_number] else N_ETA_IN_REGION

    def is_well_formed(self) -> bool:
        """Every region owns towers and every crate owns regions."""
        if self.n_regions == 0 or self.n_crates == 0:
            return False
        if np.any(np.diff(self.region_start) <= 0):
            return False
        if np.any(np.diff(self.crate_start) <= 0):
            return False
        return bool(self.region_start[-1] == self.n_towers and self.crate_start[-1] == self.n_regions)
