"""
ROOT input for the cluster tools and the Layer-1 emulator.

Rec-hit collections follow the EDM4hep branch layout
``<collection>/<collection>.cellID`` and ``<collection>/<collection>.energy``.
"""

import os
from typing import Dict, List, Optional, Sequence, Tuple

import awkward as ak
import numpy as np
import uproot

from calotrig.clustering.clusters import make_rechit_collection


TOWER_INPUT_BRANCHES = {
    'ecal_eta': 'ecalTPs_eta',
    'ecal_phi': 'ecalTPs_phi',
    'ecal_et': 'ecalTPs_et',
    'ecal_fg': 'ecalTPs_fg',
    'hcal_eta': 'hcalTPs_eta',
    'hcal_phi': 'hcalTPs_phi',
    'hcal_et': 'hcalTPs_et',
    'hcal_fb': 'hcalTPs_fb',
}


def open_events_tree(filepath: str, tree_name: str = 'events') -> Tuple[Optional[object], Optional[str]]:
    """
    Open a ROOT file and return its event tree.

    Returns:
    --------
    tuple: (tree_object, error_message)
        tree_object is None if the file failed to open
    """
    try:
        if not os.path.exists(filepath):
            return None, f"File does not exist: {filepath}"
        return uproot.open(f"{filepath}:{tree_name}"), None
    except Exception as e:
        return None, f"Failed to open {filepath}: {str(e)}"


def read_rechit_collections(events_tree, collections: Sequence[str], entry: int) -> Dict[str, ak.Array]:
    """
    Read rec-hit collections of one event.

    Parameters:
    -----------
    events_tree : uproot TTree
        Tree with EDM4hep-style calorimeter hit branches
    collections : list of str
        Collection names, e.g. ['EERecHits', 'FHRecHits', 'BHRecHits']
    entry : int
        Event number in the tree

    Returns:
    --------
    dict: collection name -> awkward record array with 'id' and 'energy'
    """
    branches = []
    for name in collections:
        branches.append(f'{name}/{name}.cellID')
        branches.append(f'{name}/{name}.energy')

    arrays = events_tree.arrays(branches, entry_start=entry, entry_stop=entry + 1)

    result = {}
    for name in collections:
        result[name] = make_rechit_collection(
            arrays[f'{name}/{name}.cellID'][0],
            arrays[f'{name}/{name}.energy'][0],
        )
    return result


def build_hit_map(*collections: ak.Array) -> Dict[int, int]:
    """
    Raw id -> index into the concatenation of the given collections.

    The first occurrence of an id wins.
    """
    hit_map: Dict[int, int] = {}
    offset = 0
    for collection in collections:
        ids = ak.to_numpy(collection['id']).tolist()
        for i, raw_id in enumerate(ids):
            hit_map.setdefault(int(raw_id), offset + i)
        offset += len(ids)
    return hit_map


def read_cluster_event(events_tree, entry: int, config: Dict[str, str]) -> Dict[str, object]:
    """
    Assemble the event mapping expected by ClusterTools.get_event().

    config maps 'HGCEEInput', 'HGCFHInput', 'HGCBHInput' to collection names
    and 'hgcalHitMap' to the key under which the hit map is stored.
    """
    names = [config['HGCEEInput'], config['HGCFHInput'], config['HGCBHInput']]
    event = read_rechit_collections(events_tree, names, entry)
    event[config['hgcalHitMap']] = build_hit_map(*(event[name] for name in names))
    return event


def read_tower_inputs(events_tree, entry: int, branches: Optional[Dict[str, str]] = None) -> Dict[str, np.ndarray]:
    """Layer-1 trigger primitives of one event as flat numpy arrays."""
    branches = dict(TOWER_INPUT_BRANCHES if branches is None else branches)
    arrays = events_tree.arrays(list(branches.values()), entry_start=entry, entry_stop=entry + 1)
    return {key: ak.to_numpy(arrays[branch][0]) for key, branch in branches.items()}


def iterate_tower_inputs(events_tree, entries: Optional[List[int]] = None,
                         branches: Optional[Dict[str, str]] = None):
    """Yield (entry, tower inputs) for the requested entries (all by default)."""
    if entries is None:
        entries = range(int(events_tree.num_entries))
    for entry in entries:
        yield entry, read_tower_inputs(events_tree, entry, branches)
