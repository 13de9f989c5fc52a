"""
Tests for the report tables and figures.
"""

import os
import shutil
import tempfile
import unittest

import matplotlib
matplotlib.use('Agg')

from coastsed.budget import SedimentBudget
from coastsed.model import CoastalSedimentModel
from coastsed.ordering import resolve_coastline_order
from coastsed.polygon import GRID_EDGE, Coastline, Polygon, SizeClass
from coastsed.utils import (format_actual_movement_table, format_cliff_collapse_table,
                            format_platform_sediment_table, format_potential_erosion_table,
                            format_sediment_table, format_share_table,
                            format_sorted_sequence_table, plot_budget_history,
                            plot_polygon_budget)


def mutual_coastline():
    polygons = []
    for coast_id in range(3):
        polygon = Polygon(10 + coast_id, coast_id, coast_id, coast_id, coast_id + 1,
                          [(coast_id, 0), (coast_id + 1, 0), (coast_id + 1, 1), (coast_id, 1)],
                          2, 2, (coast_id, 0), (coast_id, 1))
        polygon.set_stored(SizeClass.SAND, 1.0 + coast_id)
        polygons.append(polygon)
    polygons[0].down_coast_this_iter = True
    polygons[0].set_neighbors([(GRID_EDGE, 1.0)], [(1, 1.0)])
    polygons[1].set_neighbors([(0, 1.0)], [(2, 1.0)])
    polygons[2].set_neighbors([(1, 1.0)], [(GRID_EDGE, 1.0)])
    polygons[1].add_potential_erosion(-2.0)
    return Coastline(1, polygons)


class TestTables(unittest.TestCase):
    """Test case for the fixed-width report tables."""

    def setUp(self):
        """Set up test fixtures."""
        self.coastline = mutual_coastline()
        self.order = resolve_coastline_order(self.coastline)

    def test_share_table(self):
        table = format_share_table(self.coastline)
        self.assertIn('Coastline 1', table)
        self.assertIn('(DOWN 1 1.000)', table)
        self.assertIn('(UP 0 1.000)', table)
        self.assertIn('(UP 1 1.000)', table)

    def test_sediment_table_in_volumes(self):
        """Stored depths are converted to volumes with the cell area."""
        table = format_sediment_table(self.coastline, 'stored sediment', cell_area=10.0)
        self.assertIn('stored sediment', table)
        total_line = table.splitlines()[-1]
        self.assertTrue(total_line.startswith('TOTAL'))
        self.assertIn('60.000', total_line)

    def test_platform_sediment_table(self):
        """Shore platform sand and coarse are listed per polygon and totalled."""
        self.coastline[0].add_platform_sediment(SizeClass.SAND, 0.5)
        self.coastline[2].add_platform_sediment(SizeClass.COARSE, 0.25)
        table = format_platform_sediment_table(self.coastline, cell_area=4.0)
        self.assertIn('shore platform', table)
        total_line = table.splitlines()[-1]
        self.assertTrue(total_line.startswith('TOTAL from shore platform'))
        cells = [cell.strip() for cell in total_line.split('|')[1:-1]]
        self.assertEqual(cells, ['3.000', '0.000', '2.000', '1.000'])

    def test_cliff_collapse_table(self):
        """Fine collapse debris goes to suspension; sand and coarse become talus."""
        polygon = self.coastline[1]
        polygon.add_cliff_collapse_erosion(SizeClass.FINE, 0.2)
        polygon.add_cliff_collapse_erosion(SizeClass.SAND, 0.5)
        polygon.add_cliff_collapse_erosion(SizeClass.COARSE, 0.3)
        polygon.add_cliff_collapse_talus(SizeClass.SAND, 0.5)
        polygon.add_cliff_collapse_talus(SizeClass.COARSE, 0.3)
        table = format_cliff_collapse_table(self.coastline, cell_area=10.0)
        self.assertIn('Suspension', table)
        total_line = table.splitlines()[-1]
        self.assertTrue(total_line.startswith('TOTAL from cliff collapse'))
        cells = [cell.strip() for cell in total_line.split('|')[1:-1]]
        self.assertEqual(cells, ['10.000', '8.000', '2.000', '2.000',
                                 '5.000', '5.000', '3.000', '3.000'])

    def test_potential_erosion_table(self):
        table = format_potential_erosion_table(self.coastline)
        self.assertIn('-2.000', table.splitlines()[-1])

    def test_sorted_sequence_table(self):
        """Circularity partners are listed against each polygon."""
        table = format_sorted_sequence_table(self.coastline, self.order)
        self.assertEqual(len(self.order.circularities), 1)
        rows = [line for line in table.splitlines() if line.strip().startswith('1')]
        self.assertEqual(len(rows), 3)
        self.assertTrue(any(line.rstrip('|').strip().endswith('1') for line in rows))

    def test_actual_movement_table_lost_row(self):
        """Sediment lost from the grid gets its own row."""
        budget = SedimentBudget()
        table = format_actual_movement_table(self.coastline, self.order, budget)
        self.assertNotIn('Lost from grid', table)

        budget.add('lost_from_grid', SizeClass.SAND, 1.5)
        table = format_actual_movement_table(self.coastline, self.order, budget)
        self.assertIn('Lost from grid', table)
        self.assertTrue(table.splitlines()[-1].startswith('TOTAL'))


class TestPlots(unittest.TestCase):
    """Test case for the figures."""

    def setUp(self):
        """Set up test fixtures."""
        self.output_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.output_dir)

    def test_polygon_budget_plot(self):
        path = plot_polygon_budget(mutual_coastline(), step=4, output_dir=self.output_dir)
        self.assertTrue(os.path.exists(path))
        self.assertTrue(path.endswith('coast_01_step_0004.png'))

    def test_budget_history_empty(self):
        self.assertIsNone(plot_budget_history([], output_dir=self.output_dir))

    def test_model_plot_output(self):
        """The model writes a budget figure per coastline and the run history."""
        model = CoastalSedimentModel({
            'nx': 12, 'ny': 4, 'n_polygons': 3, 'n_steps': 2,
            'log_detail': 0, 'plot_interval': 2, 'output_dir': self.output_dir,
        })
        model.run_model()
        files = sorted(os.listdir(self.output_dir))
        self.assertIn('coast_00_step_0002.png', files)
        self.assertIn('budget_history.png', files)


if __name__ == '__main__':
    unittest.main()
