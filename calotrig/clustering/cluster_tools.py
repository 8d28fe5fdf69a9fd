"""
Derived quantities of calorimeter clusters: hadronic fraction, shower widths
and multi-cluster energy/position.

The tools are bound to one event at a time: get_event() attaches the rec-hit
collections and the id -> hit index map, get_event_setup() the geometry.
"""

import math
from typing import Mapping, NamedTuple, Optional

import awkward as ak
import numpy as np

from calotrig.clustering.clusters import CaloCluster, MultiCluster, XYZPoint
from calotrig.geometry.detid import Det, DetId, ForwardSubdetector, HcalSubdetector


DEFAULT_INPUT_TAGS = {
    'HGCEEInput': 'HGCalRecHitsEE',
    'HGCFHInput': 'HGCalRecHitsFH',
    'HGCBHInput': 'HGCalRecHitsBH',
    'hgcalHitMap': 'hgcalRecHitMap',
}

# Layer clusters below this share of the multi-cluster energy do not move its position
MULTICLUSTER_ENERGY_CUTOFF = 0.01

# w0 of the logarithmic weight
LOG_WEIGHT_OFFSET = 2.0


class ClusterWidths(NamedTuple):
    sigma_eta_eta: float
    sigma_phi_phi: float
    sigma_eta_eta_log: float
    sigma_phi_phi_log: float


def is_hadronic(detid: DetId) -> bool:
    det = detid.det()
    return (det == Det.HGCalHSi or det == Det.HGCalHSc
            or (det == Det.Forward and detid.subdet_id() == ForwardSubdetector.HGCHEF)
            or (det == Det.Hcal and detid.subdet_id() == HcalSubdetector.HcalEndcap))


def is_electromagnetic(detid: DetId) -> bool:
    det = detid.det()
    return det == Det.HGCalEE or (det == Det.Forward and detid.subdet_id() == ForwardSubdetector.HGCEE)


class ClusterTools:
    """Cluster quantities computed from the current event's rec-hits."""

    def __init__(self, config: Optional[Mapping[str, str]] = None):
        """
        Parameters:
        -----------
        config : dict, optional
            Input tags of the EE, FH and BH rec-hit collections and of the hit map
        """
        self.config = dict(DEFAULT_INPUT_TAGS)
        if config:
            self.config.update(config)

        self._rechits = None
        self._energies = None
        self._hit_map: Optional[Mapping[int, int]] = None
        self._geometry = None

    def get_event(self, event: Mapping):
        """Bind the rec-hit collections and hit map of a new event."""
        collections = [event[self.config[tag]] for tag in ('HGCEEInput', 'HGCFHInput', 'HGCBHInput')]
        self._rechits = ak.concatenate(collections)
        self._energies = ak.to_numpy(self._rechits['energy']).astype(np.float64)
        self._hit_map = event[self.config['hgcalHitMap']]

    def get_event_setup(self, geometry):
        """Bind the geometry (layer_of, position_of, last_layer_ee)."""
        self._geometry = geometry

    def _check_event(self):
        if self._hit_map is None:
            raise RuntimeError("ClusterTools: get_event() must be called before querying hits")

    def _check_setup(self):
        if self._geometry is None:
            raise RuntimeError("ClusterTools: get_event_setup() must be called before querying geometry")

    def _hit_energy(self, detid: DetId) -> Optional[float]:
        index = self._hit_map.get(detid.raw_id())
        if index is None:
            return None
        return float(self._energies[index])

    def get_cluster_hadron_fraction(self, cluster: CaloCluster) -> float:
        """Hadronic share of the cluster energy, -1 when the energy is not positive."""
        self._check_event()
        energy = 0.0
        energy_had = 0.0
        for detid, fraction in cluster.hits_and_fractions:
            hit_energy = self._hit_energy(detid)
            if hit_energy is None:
                continue
            hit_energy *= fraction
            energy += hit_energy
            if is_hadronic(detid):
                energy_had += hit_energy

        if energy > 0.0:
            return energy_had / energy
        return -1.0

    def get_multi_cluster_energy(self, multi_cluster: MultiCluster) -> float:
        return float(sum(cluster.energy for cluster in multi_cluster.clusters))

    def get_multi_cluster_position(self, multi_cluster: MultiCluster) -> XYZPoint:
        """Energy-weighted position of the layer clusters, ignoring those below 1% of the total."""
        if not multi_cluster.clusters:
            return XYZPoint()

        acc_x = acc_y = acc_z = 0.0
        total_weight = 0.0
        mc_energy = self.get_multi_cluster_energy(multi_cluster)
        for cluster in multi_cluster.clusters:
            if mc_energy != 0 and cluster.energy < MULTICLUSTER_ENERGY_CUTOFF * mc_energy:
                continue
            weight = cluster.energy
            acc_x += cluster.x * weight
            acc_y += cluster.y * weight
            acc_z += cluster.z * weight
            total_weight += weight

        if total_weight != 0:
            acc_x /= total_weight
            acc_y /= total_weight
            acc_z /= total_weight
        return XYZPoint(acc_x, acc_y, acc_z)

    def get_layer(self, detid) -> Optional[int]:
        self._check_setup()
        detid = detid if isinstance(detid, DetId) else DetId(detid)
        return self._geometry.layer_of(detid)

    def get_widths(self, cluster: CaloCluster) -> Optional[ClusterWidths]:
        """
        Shower widths in eta and phi from the electromagnetic hits of a cluster.

        Returns None when the cluster is empty, starts beyond the
        electromagnetic section, or has no weighted electromagnetic hit.
        Hits missing from the rec-hits or from the geometry are skipped.
        Log-weighted widths stay zero when every log weight is zero.
        """
        self._check_event()
        self._check_setup()
        hits = cluster.hits_and_fractions
        if not hits:
            return None
        first_layer = self.get_layer(hits[0][0])
        if first_layer is None or first_layer > self._geometry.last_layer_ee():
            return None

        centre_eta = cluster.position.eta
        centre_phi = cluster.position.phi

        sigma_eta_eta = sigma_phi_phi = 0.0
        sigma_eta_eta_log = sigma_phi_phi_log = 0.0
        sum_w = 0.0
        sum_log_w = 0.0

        for detid, fraction in hits:
            if fraction == 0.0:
                continue
            if not is_electromagnetic(detid):
                continue
            hit_energy = self._hit_energy(detid)
            if hit_energy is None or detid not in self._geometry:
                continue

            cell = self._geometry.position_of(detid)
            weight = hit_energy
            log_weight = 0.0
            if cluster.energy > 0.0 and hit_energy > 0.0:
                log_weight = max(0.0, LOG_WEIGHT_OFFSET + math.log(hit_energy / cluster.energy))

            d_eta2 = (cell.eta - centre_eta) ** 2
            d_phi2 = (cell.phi - centre_phi) ** 2
            sigma_eta_eta += d_eta2 * weight
            sigma_phi_phi += d_phi2 * weight
            sigma_eta_eta_log += d_eta2 * log_weight
            sigma_phi_phi_log += d_phi2 * log_weight
            sum_w += weight
            sum_log_w += log_weight

        if sum_w <= 0.0:
            return None

        sigma_eta_eta = math.sqrt(max(0.0, sigma_eta_eta / sum_w))
        sigma_phi_phi = math.sqrt(max(0.0, sigma_phi_phi / sum_w))
        if sum_log_w != 0:
            sigma_eta_eta_log = math.sqrt(max(0.0, sigma_eta_eta_log / sum_log_w))
            sigma_phi_phi_log = math.sqrt(max(0.0, sigma_phi_phi_log / sum_log_w))

        return ClusterWidths(sigma_eta_eta, sigma_phi_phi, sigma_eta_eta_log, sigma_phi_phi_log)
