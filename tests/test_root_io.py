import awkward as ak
import numpy as np

from calotrig.clustering.clusters import make_rechit_collection
from calotrig.utils.root_io import (
    TOWER_INPUT_BRANCHES,
    build_hit_map,
    iterate_tower_inputs,
    open_events_tree,
    read_cluster_event,
    read_tower_inputs,
)


class FakeTree:
    """Minimal stand-in for an uproot TTree holding jagged branches."""

    def __init__(self, branches):
        self._branches = branches
        self.num_entries = len(next(iter(branches.values())))

    def arrays(self, names, entry_start=0, entry_stop=None):
        return ak.Array({name: self._branches[name][entry_start:entry_stop] for name in names})


def test_open_missing_file(tmp_path):
    tree, error = open_events_tree(str(tmp_path / "missing.root"))
    assert tree is None
    assert "does not exist" in error


def test_hit_map_first_occurrence_wins():
    ee = make_rechit_collection([11, 12], [1.0, 2.0])
    fh = make_rechit_collection([13, 11], [3.0, 4.0])
    hit_map = build_hit_map(ee, fh)
    assert hit_map == {11: 0, 12: 1, 13: 2}


def test_rechit_collection_fields():
    hits = make_rechit_collection(np.array([1, 2, 3]), [0.5, 1.5, 2.5])
    assert ak.fields(hits) == ['id', 'energy']
    assert ak.to_list(hits['id']) == [1, 2, 3]


def test_rechit_collection_length_mismatch():
    try:
        make_rechit_collection([1, 2], [1.0])
    except ValueError as exc:
        assert "differ in length" in str(exc)
    else:
        raise AssertionError("expected ValueError")


def test_read_cluster_event():
    tree = FakeTree({
        'EE/EE.cellID': [[101, 102], [103]],
        'EE/EE.energy': [[1.0, 2.0], [3.0]],
        'FH/FH.cellID': [[201], []],
        'FH/FH.energy': [[5.0], []],
        'BH/BH.cellID': [[], [301]],
        'BH/BH.energy': [[], [7.0]],
    })
    config = {'HGCEEInput': 'EE', 'HGCFHInput': 'FH', 'HGCBHInput': 'BH', 'hgcalHitMap': 'map'}

    event = read_cluster_event(tree, 0, config)
    assert ak.to_list(event['EE']['id']) == [101, 102]
    assert event['map'] == {101: 0, 102: 1, 201: 2}

    event = read_cluster_event(tree, 1, config)
    assert event['map'] == {103: 0, 301: 1}


def test_read_tower_inputs():
    data = {branch: [[1, 2], [3]] for branch in TOWER_INPUT_BRANCHES.values()}
    tree = FakeTree(data)

    inputs = read_tower_inputs(tree, 1)
    assert set(inputs) == set(TOWER_INPUT_BRANCHES)
    assert inputs['ecal_et'].tolist() == [3]

    entries = [entry for entry, _ in iterate_tower_inputs(tree)]
    assert entries == [0, 1]
