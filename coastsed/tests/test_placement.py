"""
Tests for the default per-cell placement collaborator.
"""

import unittest

import numpy as np

from coastsed.errors import PlacementError
from coastsed.placement import CellPlacer
from coastsed.polygon import SizeClass


class TestCellPlacer(unittest.TestCase):
    """Test case for CellPlacer."""

    def setUp(self):
        """Set up test fixtures."""
        self.placer = CellPlacer((4, 6), max_cell_thickness=1.0)
        # Polygon 0 on coastline 0 covers a 2 x 2 block
        self.placer.register_polygon(0, 0, [0, 0, 1, 1], [0, 1, 0, 1])
        self.placer.register_polygon(0, 1, [], [])

    def test_deposition_spread_evenly(self):
        """Deposition is spread evenly over the polygon's cells."""
        deposited = self.placer.place_deposition(0, 0, SizeClass.SAND, 2.0)
        self.assertAlmostEqual(deposited, 2.0)
        np.testing.assert_allclose(self.placer.sediment[SizeClass.SAND][:2, :2], 0.5)
        self.assertEqual(self.placer.sediment[SizeClass.SAND][2:, :].sum(), 0.0)
        self.assertAlmostEqual(self.placer.polygon_depth(0, 0, SizeClass.SAND), 2.0)

    def test_deposition_limited_by_thickness(self):
        """Cells never hold more than the maximum thickness, so less may be deposited."""
        self.placer.sediment[SizeClass.COARSE][0, 0] = 0.9
        deposited = self.placer.place_deposition(0, 0, SizeClass.SAND, 4.0)
        self.assertAlmostEqual(deposited, 0.1 + 3 * 1.0)
        self.assertLessEqual(self.placer.total_thickness().max(), 1.0 + 1e-12)

    def test_erosion_proportional(self):
        """Erosion takes from each cell in proportion to what it holds."""
        layer = self.placer.sediment[SizeClass.SAND]
        layer[0, 0] = 0.6
        layer[1, 1] = 0.2
        eroded = self.placer.place_erosion(0, 0, SizeClass.SAND, 0.4)
        self.assertAlmostEqual(eroded, 0.4)
        self.assertAlmostEqual(layer[0, 0], 0.3)
        self.assertAlmostEqual(layer[1, 1], 0.1)

    def test_erosion_limited_by_supply(self):
        """Never erodes more than the cells hold."""
        self.placer.sediment[SizeClass.COARSE][0, 1] = 0.25
        eroded = self.placer.place_erosion(0, 0, SizeClass.COARSE, 3.0)
        self.assertAlmostEqual(eroded, 0.25)
        self.assertEqual(self.placer.sediment[SizeClass.COARSE].sum(), 0.0)

    def test_empty_polygon(self):
        """A polygon without cells places nothing."""
        self.assertEqual(self.placer.place_deposition(0, 1, SizeClass.SAND, 1.0), 0.0)
        self.assertEqual(self.placer.place_erosion(0, 1, SizeClass.SAND, 1.0), 0.0)

    def test_zero_target(self):
        self.assertEqual(self.placer.place_deposition(0, 0, SizeClass.SAND, 0.0), 0.0)

    def test_invalid_target(self):
        """Negative or non-finite targets are placement failures."""
        with self.assertRaises(PlacementError):
            self.placer.place_deposition(0, 0, SizeClass.SAND, -1.0)
        with self.assertRaises(PlacementError):
            self.placer.place_erosion(0, 0, SizeClass.SAND, float('nan'))

    def test_unregistered_polygon(self):
        with self.assertRaises(PlacementError) as caught:
            self.placer.place_erosion(3, 7, SizeClass.FINE, 1.0)
        self.assertEqual(caught.exception.coast_id, 3)
        self.assertEqual(caught.exception.polygon_id, 7)

    def test_clear_polygons(self):
        self.placer.clear_polygons()
        with self.assertRaises(PlacementError):
            self.placer.cells(0, 0)


if __name__ == '__main__':
    unittest.main()
