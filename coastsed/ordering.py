"""
Processing order for polygon-to-polygon sediment movement.

Sediment eroded from a polygon becomes the deposition target of its
neighbours in the transport direction, so every 'source' polygon must be
processed before its 'target' polygons. The adjacency graph is not guaranteed
to be acyclic; the order produced here is a stable sort with a pairwise
comparator, followed by a pass that flags two-polygon circularities
(X -> Y -> X). Longer cycles (A -> B -> C -> A) are not detected.
"""

import logging
from functools import cmp_to_key
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

from coastsed.polygon import GRID_EDGE, Coastline

logger = logging.getLogger(__name__)


class OrderKey(NamedTuple):
    """A polygon as seen by the ordering: its ID, direction and export targets."""

    coast_id: int
    down_coast: bool
    neighbors: Tuple[Optional[int], ...]

    @property
    def at_grid_edge(self) -> bool:
        return bool(self.neighbors) and self.neighbors[0] is GRID_EDGE

    def targets(self, coast_id: int) -> bool:
        return coast_id in self.neighbors

    def as_tuple(self) -> Tuple[int, ...]:
        # Grid edges sort below every real polygon
        return (self.coast_id, int(self.down_coast)) + tuple(
            -1 if neighbor is GRID_EDGE else neighbor for neighbor in self.neighbors)


def order_key(polygon) -> OrderKey:
    """Build the ordering key for a polygon from its transport-direction adjacency."""
    return OrderKey(
        polygon.coast_id,
        polygon.down_coast_this_iter,
        tuple(neighbor.polygon for neighbor in polygon.export_neighbors),
    )


def _precedes(left: OrderKey, right: OrderKey) -> bool:
    """Must ``left`` be processed before ``right``?"""
    if left.neighbors and right.neighbors:
        # Grid-edge polygons go last
        if left.at_grid_edge:
            return False
        if right.at_grid_edge:
            return True

        left_feeds_right = left.targets(right.coast_id)
        right_feeds_left = right.targets(left.coast_id)

        # A mutual pair has no source/target relation, so it falls through
        if left_feeds_right and not right_feeds_left:
            return True
        if right_feeds_left and not left_feeds_right:
            return False

    # No dependency: deterministic tie-break in the left polygon's drift direction
    if left.down_coast:
        return left.as_tuple() < right.as_tuple()
    return left.as_tuple() > right.as_tuple()


def compare_order_keys(left: OrderKey, right: OrderKey) -> int:
    if _precedes(left, right):
        return -1
    if _precedes(right, left):
        return 1
    return 0


def resolve_processing_order(keys: Iterable[OrderKey]) -> List[OrderKey]:
    """
    Sort polygons so that sources come before their targets.

    Parameters
    ----------
    keys : iterable of OrderKey
        One key per polygon, normally in coast-ID order.

    Returns
    -------
    list of OrderKey
        The processing sequence. The sort is stable, so polygons with no
        ordering relation keep their input order.
    """
    return sorted(keys, key=cmp_to_key(compare_order_keys))


def find_circularities(ordered: Sequence[OrderKey]) -> List[Tuple[int, int]]:
    """
    Find two-polygon circularities in a resolved processing sequence.

    Walks the sequence keeping the polygons already emitted as sources. A
    polygon that exports to one of those earlier polygons forms a pair with
    it. Only X -> Y -> X patterns are found this way.

    Returns
    -------
    list of (int, int)
        ``(later, earlier)`` coast-ID pairs, in discovery order.
    """
    sources = []
    pairs = []
    for key in ordered:
        sources.append(key.coast_id)
        for target in key.neighbors:
            if target is GRID_EDGE or target == key.coast_id:
                continue
            if target in sources:
                pair = (key.coast_id, target)
                if pair not in pairs:
                    pairs.append(pair)
    return pairs


class ProcessingOrder(NamedTuple):
    """Resolved order for one coastline."""

    keys: List[OrderKey]
    circularities: List[Tuple[int, int]]

    @property
    def sequence(self) -> List[int]:
        return [key.coast_id for key in self.keys]


def resolve_coastline_order(coastline: Coastline) -> ProcessingOrder:
    """
    Resolve a coastline's processing order and record its circularities.

    Each circularity is written symmetrically onto both polygons involved.
    """
    keys = resolve_processing_order(order_key(polygon) for polygon in coastline)
    pairs = find_circularities(keys)

    for later, earlier in pairs:
        coastline[later].add_circularity(earlier)
        coastline[earlier].add_circularity(later)
        logger.debug('Coastline %d: circularity between polygons %d and %d',
                     coastline.coast, later, earlier)

    return ProcessingOrder(keys, pairs)
