import math

import pytest

from calotrig.clustering.cluster_tools import ClusterTools, ClusterWidths
from calotrig.clustering.clusters import ETA_MAX, CaloCluster, MultiCluster, XYZPoint, make_rechit_collection
from calotrig.geometry.detid import (
    Det,
    ForwardSubdetector,
    HcalSubdetector,
    make_forward_id,
    make_hcal_id,
    make_scintillator_id,
    make_silicon_id,
)
from calotrig.geometry.hgcal_geometry import HGCalGeometry
from calotrig.utils.root_io import build_hit_map

RHO = 50.0
Z = 320.0
DPHI = 0.05

EE1 = make_silicon_id(Det.HGCalEE, layer=5, cell_u=1)
EE2 = make_silicon_id(Det.HGCalEE, layer=5, cell_u=2)
EE3 = make_silicon_id(Det.HGCalEE, layer=6, cell_u=3)
NO_POSITION = make_silicon_id(Det.HGCalEE, layer=6, cell_u=4)
EE_LEGACY = make_forward_id(ForwardSubdetector.HGCEE, layer=4)
HSI = make_silicon_id(Det.HGCalHSi, layer=3)
FH_LEGACY = make_forward_id(ForwardSubdetector.HGCHEF, layer=2)
HSC = make_scintillator_id(layer=10, ieta=5, iphi=7)
HCAL_HE = make_hcal_id(HcalSubdetector.HcalEndcap, ieta=20, iphi=3, depth=2)
MISSING = make_silicon_id(Det.HGCalEE, layer=7, cell_u=9)


@pytest.fixture
def tools():
    ee = make_rechit_collection([EE1.raw_id(), EE2.raw_id(), EE3.raw_id(), EE_LEGACY.raw_id(), NO_POSITION.raw_id()],
                                [10.0, 10.0, 5.0, 4.0, 3.0])
    fh = make_rechit_collection([HSI.raw_id(), FH_LEGACY.raw_id()], [30.0, 6.0])
    bh = make_rechit_collection([HSC.raw_id(), HCAL_HE.raw_id()], [8.0, 2.0])
    event = {
        'HGCalRecHitsEE': ee,
        'HGCalRecHitsFH': fh,
        'HGCalRecHitsBH': bh,
        'hgcalRecHitMap': build_hit_map(ee, fh, bh),
    }

    positions = {
        EE1.raw_id(): (RHO * math.cos(DPHI), RHO * math.sin(DPHI), Z),
        EE2.raw_id(): (RHO * math.cos(-DPHI), RHO * math.sin(-DPHI), Z),
        EE3.raw_id(): (RHO, 0.0, Z),
        EE_LEGACY.raw_id(): (RHO, 0.0, Z),
        HSI.raw_id(): (RHO, 0.0, Z + 40.0),
        FH_LEGACY.raw_id(): (RHO, 0.0, Z + 40.0),
        HSC.raw_id(): (RHO, 0.0, Z + 60.0),
        HCAL_HE.raw_id(): (RHO, 0.0, Z + 80.0),
    }

    cluster_tools = ClusterTools()
    cluster_tools.get_event(event)
    cluster_tools.get_event_setup(HGCalGeometry(positions, last_layer_ee=28, last_layer_fh=36))
    return cluster_tools


def test_hadron_fraction(tools):
    cluster = CaloCluster([(EE1, 1.0), (HSI, 0.5)])
    assert tools.get_cluster_hadron_fraction(cluster) == pytest.approx(0.6)


def test_hadron_fraction_of_purely_hadronic_cluster(tools):
    cluster = CaloCluster([(HSC, 1.0), (FH_LEGACY, 1.0), (HCAL_HE, 1.0)])
    assert tools.get_cluster_hadron_fraction(cluster) == pytest.approx(1.0)


def test_hadron_fraction_counts_hcal_endcap(tools):
    cluster = CaloCluster([(EE3.raw_id(), 1.0), (HCAL_HE.raw_id(), 1.0)])
    assert tools.get_cluster_hadron_fraction(cluster) == pytest.approx(2.0 / 7.0)


def test_hadron_fraction_without_energy(tools):
    assert tools.get_cluster_hadron_fraction(CaloCluster([(MISSING, 1.0)])) == -1.0
    assert tools.get_cluster_hadron_fraction(CaloCluster()) == -1.0
    assert tools.get_cluster_hadron_fraction(CaloCluster([(EE1, 0.0)])) == -1.0


def test_multi_cluster_energy_and_position(tools):
    multi = MultiCluster([
        CaloCluster(energy=10.0, position=XYZPoint(1.0, 2.0, 3.0)),
        CaloCluster(energy=30.0, position=XYZPoint(5.0, 6.0, 7.0)),
    ])
    assert tools.get_multi_cluster_energy(multi) == pytest.approx(40.0)
    position = tools.get_multi_cluster_position(multi)
    assert (position.x, position.y, position.z) == pytest.approx((4.0, 5.0, 6.0))


def test_small_members_do_not_move_the_position(tools):
    members = [
        CaloCluster(energy=10.0, position=XYZPoint(1.0, 2.0, 3.0)),
        CaloCluster(energy=30.0, position=XYZPoint(5.0, 6.0, 7.0)),
    ]
    with_tiny = MultiCluster(members + [CaloCluster(energy=0.1, position=XYZPoint(100.0, 100.0, 100.0))])
    assert tools.get_multi_cluster_energy(with_tiny) == pytest.approx(40.1)
    assert tools.get_multi_cluster_position(with_tiny) == tools.get_multi_cluster_position(MultiCluster(members))


def test_multi_cluster_edge_cases(tools):
    assert tools.get_multi_cluster_energy(MultiCluster()) == 0.0
    assert tools.get_multi_cluster_position(MultiCluster()) == XYZPoint(0.0, 0.0, 0.0)

    single = CaloCluster(energy=3.0, position=XYZPoint(1.5, -2.0, 300.0))
    assert tools.get_multi_cluster_position(MultiCluster([single])) == XYZPoint(1.5, -2.0, 300.0)

    no_energy = MultiCluster([CaloCluster(position=XYZPoint(1.0, 1.0, 1.0))] * 2)
    assert tools.get_multi_cluster_position(no_energy) == XYZPoint()


@pytest.mark.parametrize("detid,layer", [
    (EE1, 5),
    (EE_LEGACY, 4),
    (HSI, 31),
    (FH_LEGACY, 30),
    (HSC, 38),
    (HCAL_HE, 38),
])
def test_get_layer(tools, detid, layer):
    assert tools.get_layer(detid) == layer
    assert tools.get_layer(detid.raw_id()) == layer


def test_widths_in_phi(tools):
    cluster = CaloCluster([(EE1, 1.0), (EE2, 1.0)], energy=20.0, position=XYZPoint(RHO, 0.0, Z))
    widths = tools.get_widths(cluster)
    assert isinstance(widths, ClusterWidths)
    assert widths.sigma_eta_eta == pytest.approx(0.0, abs=1e-7)
    assert widths.sigma_phi_phi == pytest.approx(DPHI)
    assert widths.sigma_eta_eta_log == pytest.approx(0.0, abs=1e-7)
    assert widths.sigma_phi_phi_log == pytest.approx(DPHI)


def test_log_widths_stay_zero_without_log_weight(tools):
    cluster = CaloCluster([(EE1, 1.0), (EE2, 1.0)], energy=1e6, position=XYZPoint(RHO, 0.0, Z))
    widths = tools.get_widths(cluster)
    assert widths.sigma_phi_phi == pytest.approx(DPHI)
    assert widths.sigma_eta_eta_log == 0.0
    assert widths.sigma_phi_phi_log == 0.0


def test_widths_ignore_hadronic_hits(tools):
    cluster = CaloCluster([(EE3, 1.0), (HSI, 1.0), (EE_LEGACY, 1.0)], energy=39.0,
                          position=XYZPoint(RHO, 0.0, Z))
    widths = tools.get_widths(cluster)
    assert widths is not None
    assert all(w == pytest.approx(0.0, abs=1e-7) for w in widths)


def test_widths_unavailable(tools):
    # Cluster starting in the hadronic section
    assert tools.get_widths(CaloCluster([(HSI, 1.0), (EE1, 1.0)], energy=40.0)) is None
    # No usable electromagnetic hit
    assert tools.get_widths(CaloCluster([(EE1, 0.0), (MISSING, 1.0)], energy=10.0)) is None
    assert tools.get_widths(CaloCluster()) is None


def test_widths_are_never_negative(tools):
    cluster = CaloCluster([(EE1, 0.7), (EE2, 0.2), (EE3, 1.0)], energy=25.0,
                          position=XYZPoint(RHO, 3.0, Z + 2.0))
    widths = tools.get_widths(cluster)
    assert all(w >= 0.0 for w in widths)


def test_tools_need_an_event_and_a_geometry():
    unbound = ClusterTools()
    with pytest.raises(RuntimeError):
        unbound.get_cluster_hadron_fraction(CaloCluster([(EE1, 1.0)]))
    with pytest.raises(RuntimeError):
        unbound.get_layer(EE1)


def test_custom_input_tags():
    ee = make_rechit_collection([EE1.raw_id()], [4.0])
    empty = make_rechit_collection([], [])
    tools = ClusterTools({'HGCEEInput': 'EE', 'HGCFHInput': 'FH', 'HGCBHInput': 'BH', 'hgcalHitMap': 'map'})
    tools.get_event({'EE': ee, 'FH': empty, 'BH': empty, 'map': build_hit_map(ee, empty, empty)})
    assert tools.get_cluster_hadron_fraction(CaloCluster([(EE1, 1.0)])) == 0.0


def test_point_coordinates():
    point = XYZPoint(3.0, 4.0, 0.0)
    assert point.rho == 5.0
    assert point.eta == 0.0
    assert XYZPoint(0.0, 0.0, 10.0).eta == pytest.approx(ETA_MAX + 10.0)
    assert XYZPoint(0.0, 0.0, -10.0).eta == pytest.approx(-ETA_MAX - 10.0)
    assert math.isfinite(XYZPoint(0.0, 0.0, 1e3).eta)
    assert XYZPoint().phi == 0.0


def test_widths_skip_hits_without_position(tools):
    with_unplaced = CaloCluster([(EE1, 1.0), (NO_POSITION, 1.0), (EE2, 1.0)], energy=23.0,
                                position=XYZPoint(RHO, 0.0, Z))
    widths = tools.get_widths(with_unplaced)
    assert widths.sigma_phi_phi == pytest.approx(DPHI)

    assert tools.get_widths(CaloCluster([(NO_POSITION, 1.0)], energy=3.0)) is None


def test_widths_for_centroid_on_beam_axis(tools):
    cluster = CaloCluster([(EE1, 1.0), (EE2, 1.0)], energy=20.0, position=XYZPoint(0.0, 0.0, Z))
    widths = tools.get_widths(cluster)
    assert widths is not None
    assert all(math.isfinite(w) for w in widths)
