import numpy as np

from calotrig.layer1.arena import Layer1Arena
from calotrig.layer1.bits import REGION_ET_MASK
from calotrig.layer1.region import UCTRegion


def aggregate_crates(arena: Layer1Arena) -> np.ndarray:
    """Crate ET: plain sum of the region ET of each crate."""
    region_et = (arena.region_data & REGION_ET_MASK).astype(np.uint64)
    return np.add.reduceat(region_et, arena.geometry.crate_start[:-1])


class UCTCrate:
    """Read view of one crate in a Layer-1 arena."""

    def __init__(self, arena: Layer1Arena, number: int):
        self._arena = arena
        self._number = int(number)

    @property
    def crate_number(self) -> int:
        return self._number

    def et(self) -> int:
        return int(self._arena.crate_et[self._number])

    @property
    def regions(self):
        span = self._arena.geometry.crate_slice(self._number)
        return [UCTRegion(self._arena, n) for n in range(span.start, span.stop)]

    def get_region(self, region_index):
        geometry = self._arena.geometry
        number = geometry.get_region_number(*region_index)
        if number is None or geometry.region_crate[number] != self._number:
            return None
        return UCTRegion(self._arena, number)

    def __repr__(self):
        return f"UCTCrate({self._number})"

    def __str__(self):
        return f"UCTCrate: crate = {self._number}; Summary = {self.et()}"
