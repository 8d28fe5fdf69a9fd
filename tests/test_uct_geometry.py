import numpy as np
import pytest

from calotrig.geometry.uct_geometry import UCTGeometry


@pytest.fixture(scope="module")
def geometry():
    return UCTGeometry()


def test_cardinalities(geometry):
    # 72 phi x 2 sides x (28 HB/HE + 12 HF) towers
    assert geometry.n_towers == 5760
    assert geometry.n_regions == 3 * 6 * 2 * 11
    assert geometry.n_crates == 3
    assert geometry.is_well_formed()


@pytest.mark.parametrize("tower", [(0, 1), (29, 1), (-29, 5), (42, 1), (1, 0), (1, 73), (-42, 72)])
def test_towers_off_the_grid_do_not_route(geometry, tower):
    assert geometry.get_tower_number(*tower) is None
    assert geometry.get_region_index(*tower) is None
    assert geometry.get_crate(*tower) is None


@pytest.mark.parametrize("tower,region", [
    ((1, 1), (1, 0)),
    ((-5, 8), (-2, 1)),
    ((28, 72), (7, 17)),
    ((30, 1), (8, 0)),
    ((-41, 72), (-11, 17)),
])
def test_tower_to_region(geometry, tower, region):
    assert geometry.get_region_index(*tower) == region


def test_crate_boundaries(geometry):
    assert geometry.get_crate(1, 1) == 0
    assert geometry.get_crate(-1, 24) == 0
    assert geometry.get_crate(1, 25) == 1
    assert geometry.get_crate(40, 72) == 2


def test_region_slices_are_contiguous(geometry):
    for region in range(geometry.n_regions):
        span = geometry.region_slice(region)
        assert np.all(geometry.tower_region[span] == region)
        n_eta = geometry.region_n_eta(region)
        assert span.stop - span.start == 4 * n_eta

    for crate in range(geometry.n_crates):
        span = geometry.crate_slice(crate)
        assert np.all(geometry.region_crate[span] == crate)


def test_in_region_order_is_phi_major(geometry):
    region = geometry.get_region_number(1, 0)
    span = geometry.region_slice(region)
    etas = geometry.tower_calo_eta[span].tolist()
    phis = geometry.tower_calo_phi[span].tolist()
    assert list(zip(etas, phis))[:5] == [(1, 1), (2, 1), (3, 1), (4, 1), (1, 2)]


def test_region_lookup_misses(geometry):
    assert geometry.get_region_number(0, 0) is None
    assert geometry.get_region_number(12, 0) is None
    assert geometry.get_region_number(1, 18) is None
