"""
Coast polygon records and the per-coastline polygon arena.

A coast polygon is the unit of unconsolidated sediment routing: it spans the
cells between two coast-normal profiles, and keeps this iteration's sediment
ledger for three size classes. All sediment depths are cell-summed depths
(a volume divided by the cell area).
"""

from enum import Enum
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
from matplotlib.path import Path


class SizeClass(Enum):
    """Sediment size classes, each routed independently."""

    FINE = 'fine'
    SAND = 'sand'
    COARSE = 'coarse'


# Only these classes move polygon-to-polygon; fine sediment goes to suspension
ROUTED_SIZES = (SizeClass.SAND, SizeClass.COARSE)

# Adjacency entry meaning "no polygon here, this is the grid edge"
GRID_EDGE = None


class Neighbor(NamedTuple):
    """One entry of a polygon's up-coast or down-coast adjacency list."""

    polygon: Optional[int]  # Coast ID of the adjacent polygon, or GRID_EDGE
    share: float            # Fraction of exported sediment sent to it

    @property
    def at_grid_edge(self) -> bool:
        return self.polygon is GRID_EDGE


def _zero_ledger(sizes=tuple(SizeClass)) -> Dict[SizeClass, float]:
    return {size: 0.0 for size in sizes}


class Polygon:
    """
    A coast polygon and its this-iteration sediment ledger.

    Parameters
    ----------
    global_id : int
        Simulation-wide polygon number.
    coast_id : int
        Number of the polygon along its own coastline, from the up-coast end.
    coast_node : int
        Coastline point at the polygon's node (roughly mid-segment).
    up_coast_profile, down_coast_profile : int
        Coast-normal profiles bounding the polygon.
    boundary : array_like
        Ordered (x, y) boundary points in the external CRS.
    up_coast_points_used, down_coast_points_used : int
        Number of points of each bounding profile that belong to the polygon
        (fewer than the full profile if the polygon is triangular).
    node, antinode : tuple of int
        Grid (column, row) of the coast node cell and of the cell at the
        seaward end of the polygon.
    search_start_point : int, optional
        Boundary point from which a point-in-polygon search starts.
    """

    def __init__(
        self,
        global_id: int,
        coast_id: int,
        coast_node: int,
        up_coast_profile: int,
        down_coast_profile: int,
        boundary: Sequence[Tuple[float, float]],
        up_coast_points_used: int,
        down_coast_points_used: int,
        node: Tuple[int, int],
        antinode: Tuple[int, int],
        search_start_point: int = 0,
    ):
        # Identity and topology anchors
        self.global_id = global_id
        self.coast_id = coast_id
        self.coast_node = coast_node
        self.up_coast_profile = up_coast_profile
        self.down_coast_profile = down_coast_profile
        self.up_coast_points_used = up_coast_points_used
        self.down_coast_points_used = down_coast_points_used
        self.num_cells = 0

        # Geometry
        self.boundary = boundary
        self.search_start_point = search_start_point
        self.node = tuple(node)
        self.antinode = tuple(antinode)

        # Sediment ledger
        self.avg_d50 = 0.0                   # Average D50 of unconsolidated sediment [mm]
        self.seawater_volume = 0.0           # Seawater within the polygon [m³]
        self.potential_erosion = 0.0         # All size classes, <= 0
        self.erosion = _zero_ledger()        # Supply-limited erosion, <= 0
        self.deposition = _zero_ledger()     # Deposition target, >= 0
        self.cliff_collapse_erosion = _zero_ledger()
        self.cliff_collapse_talus = _zero_ledger(ROUTED_SIZES)
        self.platform_sediment = _zero_ledger(ROUTED_SIZES)
        self.stored = _zero_ledger()         # Pre-existing unconsolidated sediment, >= 0

        # Transport topology, set once per iteration by the geometry builder
        self.down_coast_this_iter = False
        self.up_coast_neighbors: List[Neighbor] = []
        self.down_coast_neighbors: List[Neighbor] = []
        self.circularities: List[int] = []

    def __repr__(self):
        direction = 'down' if self.down_coast_this_iter else 'up'
        return f'Polygon(coast_id={self.coast_id}, global_id={self.global_id}, {direction}-coast)'

    # Ledger updates

    def add_potential_erosion(self, depth: float) -> None:
        if depth > 0:
            raise ValueError(f'potential erosion must be <= 0, got {depth}')
        self.potential_erosion += depth

    def set_erosion(self, size: SizeClass, depth: float) -> None:
        if depth > 0:
            raise ValueError(f'{size.value} erosion must be <= 0, got {depth}')
        self.erosion[size] = depth

    def add_deposition(self, size: SizeClass, depth: float) -> None:
        if depth < 0:
            raise ValueError(f'{size.value} deposition must be >= 0, got {depth}')
        self.deposition[size] += depth

    def set_stored(self, size: SizeClass, depth: float) -> None:
        if depth < 0:
            raise ValueError(f'stored {size.value} must be >= 0, got {depth}')
        self.stored[size] = depth

    def add_cliff_collapse_erosion(self, size: SizeClass, depth: float) -> None:
        self.cliff_collapse_erosion[size] += depth

    def add_cliff_collapse_talus(self, size: SizeClass, depth: float) -> None:
        """Add sand or coarse talus; fine collapse debris goes to suspension instead."""
        if size not in ROUTED_SIZES:
            raise ValueError('cliff collapse talus is sand or coarse only')
        self.cliff_collapse_talus[size] += depth

    def add_platform_sediment(self, size: SizeClass, depth: float) -> None:
        """Add sand or coarse sediment derived from shore platform erosion."""
        if size not in ROUTED_SIZES:
            raise ValueError('shore platform sediment is sand or coarse only')
        self.platform_sediment[size] += depth

    @property
    def total_erosion(self) -> float:
        return sum(self.erosion.values())

    @property
    def total_deposition(self) -> float:
        return sum(self.deposition.values())

    @property
    def total_stored(self) -> float:
        return sum(self.stored.values())

    # Topology

    def set_neighbors(self, up_coast: Sequence[Neighbor], down_coast: Sequence[Neighbor]) -> None:
        self.up_coast_neighbors = [Neighbor(*entry) for entry in up_coast]
        self.down_coast_neighbors = [Neighbor(*entry) for entry in down_coast]

    @property
    def export_neighbors(self) -> List[Neighbor]:
        """Adjacency list in this iteration's transport direction."""
        if self.down_coast_this_iter:
            return self.down_coast_neighbors
        return self.up_coast_neighbors

    def add_circularity(self, coast_id: int) -> None:
        if coast_id not in self.circularities:
            self.circularities.append(coast_id)

    @property
    def boundary(self) -> np.ndarray:
        return self._boundary

    @boundary.setter
    def boundary(self, points) -> None:
        self._boundary = np.asarray(points, dtype=float)
        self._path = None

    @property
    def search_start_point(self) -> int:
        return self._search_start_point

    @search_start_point.setter
    def search_start_point(self, point: int) -> None:
        self._search_start_point = point
        self._path = None

    def contains_point(self, x: float, y: float) -> bool:
        """Is the external-CRS point (x, y) inside the polygon boundary?"""
        if len(self.boundary) < 3:
            return False
        if self._path is None:
            # Start the ring at the cached search start point
            ring = np.roll(self.boundary, -self.search_start_point, axis=0)
            self._path = Path(ring, closed=False)
        return bool(self._path.contains_point((x, y)))


class Coastline:
    """
    Arena of the polygons on one coastline, addressed by coast ID.

    The polygon at index 0 is at the up-coast end of the coastline and the
    last polygon is at the down-coast end. Adjacency lists refer to other
    polygons by index into this arena.
    """

    def __init__(self, coast: int, polygons: Sequence[Polygon]):
        self.coast = coast
        self._polygons = list(polygons)
        for index, polygon in enumerate(self._polygons):
            if polygon.coast_id != index:
                raise ValueError(
                    f'polygon at position {index} of coastline {coast} has coast_id {polygon.coast_id}')

    def __len__(self) -> int:
        return len(self._polygons)

    def __iter__(self) -> Iterator[Polygon]:
        return iter(self._polygons)

    def __getitem__(self, coast_id: int) -> Polygon:
        return self._polygons[coast_id]

    @property
    def up_coast_end(self) -> int:
        return 0

    @property
    def down_coast_end(self) -> int:
        return len(self._polygons) - 1

    def expected_edge_polygon(self, down_coast: bool) -> int:
        """Polygon whose export is expected to reach the grid edge for a direction."""
        return self.down_coast_end if down_coast else self.up_coast_end

    def total_stored(self, size: SizeClass) -> float:
        return sum(polygon.stored[size] for polygon in self._polygons)
