"""
Tests for the coast polygon record and the coastline arena.
"""

import unittest

from coastsed.polygon import GRID_EDGE, Coastline, Neighbor, Polygon, SizeClass


def make_polygon(coast_id, boundary=None):
    if boundary is None:
        boundary = [(coast_id, 0.0), (coast_id + 1, 0.0), (coast_id + 1, 1.0), (coast_id, 1.0)]
    return Polygon(
        global_id=100 + coast_id,
        coast_id=coast_id,
        coast_node=coast_id,
        up_coast_profile=coast_id,
        down_coast_profile=coast_id + 1,
        boundary=boundary,
        up_coast_points_used=2,
        down_coast_points_used=2,
        node=(coast_id, 0),
        antinode=(coast_id, 1),
    )


class TestPolygon(unittest.TestCase):
    """Test case for the Polygon record."""

    def setUp(self):
        """Set up test fixtures."""
        self.polygon = make_polygon(0)

    def test_initial_ledger(self):
        """A new polygon has an empty ledger."""
        for size in SizeClass:
            self.assertEqual(self.polygon.erosion[size], 0.0)
            self.assertEqual(self.polygon.deposition[size], 0.0)
            self.assertEqual(self.polygon.stored[size], 0.0)
        self.assertNotIn(SizeClass.FINE, self.polygon.cliff_collapse_talus)
        self.assertNotIn(SizeClass.FINE, self.polygon.platform_sediment)
        self.assertEqual(self.polygon.circularities, [])

    def test_sign_checks(self):
        """Ledger setters reject values of the wrong sign."""
        with self.assertRaises(ValueError):
            self.polygon.add_potential_erosion(0.5)
        with self.assertRaises(ValueError):
            self.polygon.set_erosion(SizeClass.SAND, 1.0)
        with self.assertRaises(ValueError):
            self.polygon.add_deposition(SizeClass.SAND, -1.0)
        with self.assertRaises(ValueError):
            self.polygon.set_stored(SizeClass.COARSE, -0.1)

    def test_fine_talus_rejected(self):
        """Fine sediment never becomes talus or platform sediment."""
        with self.assertRaises(ValueError):
            self.polygon.add_cliff_collapse_talus(SizeClass.FINE, 1.0)
        with self.assertRaises(ValueError):
            self.polygon.add_platform_sediment(SizeClass.FINE, 1.0)

    def test_totals(self):
        """Totals sum over all size classes."""
        self.polygon.add_deposition(SizeClass.SAND, 2.0)
        self.polygon.add_deposition(SizeClass.COARSE, 1.0)
        self.polygon.set_erosion(SizeClass.FINE, -0.5)
        self.polygon.set_stored(SizeClass.SAND, 3.0)
        self.assertAlmostEqual(self.polygon.total_deposition, 3.0)
        self.assertAlmostEqual(self.polygon.total_erosion, -0.5)
        self.assertAlmostEqual(self.polygon.total_stored, 3.0)

    def test_export_neighbors_follow_direction(self):
        """The export adjacency list is the one in this iteration's transport direction."""
        self.polygon.set_neighbors([(GRID_EDGE, 1.0)], [(1, 0.4), (2, 0.6)])
        self.polygon.down_coast_this_iter = True
        self.assertEqual(self.polygon.export_neighbors, [Neighbor(1, 0.4), Neighbor(2, 0.6)])
        self.polygon.down_coast_this_iter = False
        self.assertTrue(self.polygon.export_neighbors[0].at_grid_edge)

    def test_add_circularity_once(self):
        self.polygon.add_circularity(3)
        self.polygon.add_circularity(3)
        self.assertEqual(self.polygon.circularities, [3])

    def test_contains_point(self):
        """Point-in-polygon test on the boundary ring."""
        self.assertTrue(self.polygon.contains_point(0.5, 0.5))
        self.assertFalse(self.polygon.contains_point(1.5, 0.5))

        shifted = make_polygon(0)
        shifted.search_start_point = 2
        self.assertTrue(shifted.contains_point(0.25, 0.75))

    def test_contains_point_after_boundary_change(self):
        """Moving the boundary moves the region tested."""
        self.assertTrue(self.polygon.contains_point(0.5, 0.5))
        self.polygon.boundary = [(5.0, 0.0), (6.0, 0.0), (6.0, 1.0), (5.0, 1.0)]
        self.assertFalse(self.polygon.contains_point(0.5, 0.5))
        self.assertTrue(self.polygon.contains_point(5.5, 0.5))

    def test_contains_point_after_search_start_change(self):
        """A new search start point rebuilds the ring."""
        polygon = make_polygon(0, boundary=[(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)])
        self.assertTrue(polygon.contains_point(0.5, 0.5))
        polygon.search_start_point = 1
        self.assertIsNone(polygon._path)
        self.assertTrue(polygon.contains_point(0.5, 0.5))

    def test_degenerate_boundary(self):
        """A boundary of fewer than three points contains nothing."""
        polygon = make_polygon(0, boundary=[(0.0, 0.0), (1.0, 1.0)])
        self.assertFalse(polygon.contains_point(0.5, 0.5))


class TestCoastline(unittest.TestCase):
    """Test case for the coastline arena."""

    def setUp(self):
        """Set up test fixtures."""
        self.polygons = [make_polygon(i) for i in range(4)]
        self.coastline = Coastline(2, self.polygons)

    def test_indexing(self):
        self.assertEqual(len(self.coastline), 4)
        self.assertIs(self.coastline[2], self.polygons[2])
        self.assertEqual([p.coast_id for p in self.coastline], [0, 1, 2, 3])

    def test_coast_id_must_match_position(self):
        """Adjacency lists index the arena, so coast IDs must match positions."""
        with self.assertRaises(ValueError):
            Coastline(0, [make_polygon(1), make_polygon(0)])

    def test_ends(self):
        """The up-coast end is polygon 0, the down-coast end the last polygon."""
        self.assertEqual(self.coastline.up_coast_end, 0)
        self.assertEqual(self.coastline.down_coast_end, 3)
        self.assertEqual(self.coastline.expected_edge_polygon(True), 3)
        self.assertEqual(self.coastline.expected_edge_polygon(False), 0)

    def test_total_stored(self):
        for polygon in self.coastline:
            polygon.set_stored(SizeClass.SAND, 1.5)
        self.assertAlmostEqual(self.coastline.total_stored(SizeClass.SAND), 6.0)
        self.assertEqual(self.coastline.total_stored(SizeClass.COARSE), 0.0)


if __name__ == '__main__':
    unittest.main()
