"""
Per-cell placement of deposition and erosion within a polygon.

The sediment router decides how much sediment a polygon gains or loses; the
placement collaborator decides which cells it goes on or comes from, and
reports back how much it actually managed to place. It may place less than
requested, never more.
"""

import logging
import math
from typing import Dict, Tuple

import numpy as np

from coastsed.errors import PlacementError
from coastsed.polygon import SizeClass

logger = logging.getLogger(__name__)


class CellPlacer:
    """
    Default placement collaborator backed by per-cell sediment depth arrays.

    Parameters
    ----------
    shape : tuple of int
        Raster shape as (ny, nx).
    max_cell_thickness : float, optional
        Limit on the total unconsolidated depth of any cell [m]. Deposition
        that would exceed it is not placed.
    """

    def __init__(self, shape: Tuple[int, int], max_cell_thickness: float = np.inf):
        self.shape = tuple(shape)
        self.max_cell_thickness = max_cell_thickness

        # Unconsolidated sediment depth on each cell [m], one array per size class
        self.sediment = {size: np.zeros(self.shape) for size in SizeClass}

        # Flat cell indices for each (coast, polygon coast ID)
        self._cells: Dict[Tuple[int, int], np.ndarray] = {}

    def register_polygon(self, coast: int, coast_id: int, rows, cols) -> None:
        """Assign raster cells to a polygon; replaces any earlier assignment."""
        rows = np.asarray(rows, dtype=int)
        cols = np.asarray(cols, dtype=int)
        self._cells[(coast, coast_id)] = np.ravel_multi_index((rows, cols), self.shape)

    def clear_polygons(self) -> None:
        self._cells.clear()

    def cells(self, coast: int, coast_id: int) -> np.ndarray:
        try:
            return self._cells[(coast, coast_id)]
        except KeyError:
            raise PlacementError(
                f'polygon {coast_id} on coastline {coast} has no registered cells',
                coast_id=coast, polygon_id=coast_id) from None

    def total_thickness(self) -> np.ndarray:
        return sum(self.sediment.values())

    def polygon_depth(self, coast: int, coast_id: int, size: SizeClass) -> float:
        """Cell-summed depth of one size class on a polygon."""
        return float(self.sediment[size].flat[self.cells(coast, coast_id)].sum())

    def _check_target(self, coast, coast_id, size, target):
        if not math.isfinite(target) or target < 0:
            raise PlacementError(
                f'invalid {size.value} target {target!r} for polygon {coast_id} on coastline {coast}',
                coast_id=coast, polygon_id=coast_id)

    def place_deposition(self, coast: int, coast_id: int, size: SizeClass, target: float) -> float:
        """
        Spread ``target`` evenly over the polygon's cells.

        Returns
        -------
        float
            Depth actually deposited, ``<= target``.
        """
        self._check_target(coast, coast_id, size, target)
        cells = self.cells(coast, coast_id)
        if target == 0 or cells.size == 0:
            return 0.0

        per_cell = target / cells.size
        room = self.max_cell_thickness - self.total_thickness().flat[cells]
        added = np.clip(np.minimum(per_cell, room), 0.0, None)

        layer = self.sediment[size]
        layer.flat[cells] += added
        deposited = float(min(added.sum(), target))

        if deposited < target:
            logger.debug('Polygon %d on coastline %d: %s deposition %.6g of %.6g (cells full)',
                         coast_id, coast, size.value, deposited, target)
        return deposited

    def place_erosion(self, coast: int, coast_id: int, size: SizeClass, target: float) -> float:
        """
        Remove up to ``target`` from the polygon's cells, proportionally to what each holds.

        Returns
        -------
        float
            Depth actually eroded, ``<= target`` and never more than the cells held.
        """
        self._check_target(coast, coast_id, size, target)
        cells = self.cells(coast, coast_id)
        if target == 0 or cells.size == 0:
            return 0.0

        layer = self.sediment[size]
        available = layer.flat[cells]
        total = float(available.sum())
        if total <= 0:
            return 0.0

        if total <= target:
            removed = available.copy()
        else:
            removed = available * (target / total)
        layer.flat[cells] = np.clip(available - removed, 0.0, None)

        return float(min(removed.sum(), target))
