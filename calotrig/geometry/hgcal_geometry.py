"""
Geometry snapshot used by the cluster tools: cell positions and layer numbering.
"""

import numpy as np
from typing import Dict, Mapping, Optional, Sequence, Tuple

from calotrig.clustering.clusters import XYZPoint
from calotrig.geometry.detid import Det, DetId, ForwardSubdetector, HcalSubdetector, decode_layer


DEFAULT_LAST_LAYER_EE = 28
DEFAULT_LAST_LAYER_FH = 36


class HGCalGeometry:
    """
    Read-only lookup of layer and position by detector identifier.

    Layers are returned with an offset so that numbering runs continuously
    through the electromagnetic section and into the hadronic sections.
    """

    def __init__(self, positions: Mapping[int, Sequence[float]],
                 last_layer_ee: int = DEFAULT_LAST_LAYER_EE,
                 last_layer_fh: int = DEFAULT_LAST_LAYER_FH):
        """
        Parameters:
        -----------
        positions : mapping
            Raw identifier -> (x, y, z) cell centre in cm
        last_layer_ee : int
            Last layer of the electromagnetic section
        last_layer_fh : int
            Last layer (with offset) of the front hadronic section
        """
        self._positions: Dict[int, Tuple[float, float, float]] = {
            int(raw): (float(p[0]), float(p[1]), float(p[2])) for raw, p in positions.items()
        }
        self._last_layer_ee = int(last_layer_ee)
        self._last_layer_fh = int(last_layer_fh)

    @classmethod
    def from_arrays(cls, ids, x, y, z, **kwargs):
        """Build from parallel arrays, e.g. columns read with uproot."""
        ids = np.asarray(ids, dtype=np.uint64)
        xyz = np.column_stack([np.asarray(x, dtype=float), np.asarray(y, dtype=float),
                               np.asarray(z, dtype=float)])
        return cls(dict(zip(ids.tolist(), xyz.tolist())), **kwargs)

    def last_layer_ee(self) -> int:
        return self._last_layer_ee

    def last_layer_fh(self) -> int:
        return self._last_layer_fh

    def layer_offset(self, detid) -> int:
        detid = detid if isinstance(detid, DetId) else DetId(detid)
        det = detid.det()
        if det == Det.HGCalEE:
            return 0
        if det == Det.Forward and detid.subdet_id() == ForwardSubdetector.HGCEE:
            return 0
        if det == Det.Forward and detid.subdet_id() == ForwardSubdetector.HGCHEB:
            return self._last_layer_fh
        if det == Det.Hcal and detid.subdet_id() == HcalSubdetector.HcalEndcap:
            return self._last_layer_fh
        return self._last_layer_ee

    def layer_of(self, detid) -> Optional[int]:
        """Layer number with the section offset applied."""
        layer = decode_layer(detid)
        if layer is None:
            return None
        return layer + self.layer_offset(detid)

    def position_of(self, detid):
        """Cell centre of an identifier as an XYZPoint."""
        raw = int(detid)
        if raw not in self._positions:
            raise KeyError(f"No position known for detector id 0x{raw:08x}")
        return XYZPoint(*self._positions[raw])

    def __contains__(self, detid):
        return int(detid) in self._positions

    def __len__(self):
        return len(self._positions)
