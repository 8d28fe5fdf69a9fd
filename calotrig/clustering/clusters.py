"""Cluster and rec-hit containers consumed by the cluster tools."""

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

import awkward as ak
import numpy as np

from calotrig.geometry.detid import DetId

# Pseudorapidity returned for points on the beam axis (plus |z|)
ETA_MAX = 22756.0


@dataclass(frozen=True)
class XYZPoint:
    """Cartesian point (cm) with the usual collider coordinates."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @property
    def rho(self) -> float:
        return math.hypot(self.x, self.y)

    @property
    def phi(self) -> float:
        if self.x == 0.0 and self.y == 0.0:
            return 0.0
        return math.atan2(self.y, self.x)

    @property
    def eta(self) -> float:
        rho = self.rho
        if rho > 0.0:
            return math.asinh(self.z / rho)
        if self.z == 0.0:
            return 0.0
        # On the beam axis: finite, ordered by z
        if self.z > 0.0:
            return self.z + ETA_MAX
        return self.z - ETA_MAX


@dataclass
class CaloCluster:
    """
    Calorimeter cluster.

    hits_and_fractions: (detector id, fraction) pairs; a fraction is the share
    of the hit energy assigned to this cluster.
    """
    hits_and_fractions: List[Tuple[DetId, float]] = field(default_factory=list)
    energy: float = 0.0
    position: XYZPoint = field(default_factory=XYZPoint)

    def __post_init__(self):
        self.hits_and_fractions = [
            (hit if isinstance(hit, DetId) else DetId(hit), float(fraction))
            for hit, fraction in self.hits_and_fractions
        ]

    @property
    def x(self) -> float:
        return self.position.x

    @property
    def y(self) -> float:
        return self.position.y

    @property
    def z(self) -> float:
        return self.position.z

    @property
    def eta(self) -> float:
        return self.position.eta

    @property
    def phi(self) -> float:
        return self.position.phi

    def size(self) -> int:
        return len(self.hits_and_fractions)


@dataclass
class MultiCluster:
    """Group of layer clusters, e.g. one 3D shower built from 2D clusters."""
    clusters: List[CaloCluster] = field(default_factory=list)

    def __len__(self):
        return len(self.clusters)

    def __iter__(self):
        return iter(self.clusters)


def make_rechit_collection(ids: Iterable[int], energies: Iterable[float]) -> ak.Array:
    """Rec-hit collection as an awkward record array with 'id' and 'energy'."""
    if isinstance(ids, ak.Array):
        ids = ak.to_numpy(ids)
    elif not isinstance(ids, np.ndarray):
        ids = [int(i) for i in ids]
    if isinstance(energies, ak.Array):
        energies = ak.to_numpy(energies)
    ids = np.asarray(ids, dtype=np.uint32)
    energies = np.asarray(energies, dtype=np.float32)
    if ids.shape != energies.shape:
        raise ValueError(f"ids and energies differ in length: {ids.shape} vs {energies.shape}")
    return ak.zip({'id': ids, 'energy': energies})
