"""
Core coastsed model: coastlines, forcing and the per-iteration routing loop.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from coastsed.budget import (EdgePolicy, RoutingContext, mass_balance_residual,
                             normalize_erodibility)
from coastsed.errors import ConfigurationError, PlacementError
from coastsed.placement import CellPlacer
from coastsed.polygon import GRID_EDGE, ROUTED_SIZES, Coastline, Neighbor, Polygon, SizeClass
from coastsed.sediment_routing import SedimentRouter

logger = logging.getLogger(__name__)

# Representative median grain sizes [mm]
D50 = {
    SizeClass.FINE: 0.03,
    SizeClass.SAND: 0.35,
    SizeClass.COARSE: 8.0,
}


class CoastalSedimentModel:
    """
    Coastal unconsolidated-sediment model on a raster of straight coastlines.

    Each iteration the model:
    1. Rebuilds the polygons of every coastline from the cell sediment arrays
    2. Draws this iteration's drift direction, potential erosion, shore
       platform supply and cliff collapses
    3. Routes sediment between polygons with supply-limited erosion
    4. Checks the sediment mass balance

    Parameters
    ----------
    config : dict, optional
        Configuration parameters for the model. If not provided, default values are used.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize the model with default or user-provided parameters."""
        # Default configuration parameters
        self.default_config = {
            # Grid parameters
            'nx': 60,                    # Raster width [cells], along the coast
            'ny': 12,                    # Raster height [cells]
            'cell_size': 10.0,           # Cell size [m]

            # Coastline parameters
            'n_coastlines': 1,           # Coastlines, each on its own band of rows
            'n_polygons': 6,             # Polygons per coastline
            'water_depth': 2.0,          # Mean seawater depth over polygon cells [m]

            # Time parameters
            'n_steps': 50,               # Number of iterations to simulate

            # Sediment parameters
            'edge_policy': 'open',       # Grid edges: 'closed', 'open' or 'recirculate'
            'fine_erodibility': 1.0,     # Raw erodibilities, normalized to sum to 1
            'sand_erodibility': 0.7,
            'coarse_erodibility': 0.3,
            'initial_fine': 0.05,        # Initial unconsolidated depth per cell [m]
            'initial_sand': 0.5,
            'initial_coarse': 0.2,
            'max_cell_thickness': 2.0,   # Maximum unconsolidated depth per cell [m]

            # Forcing parameters
            'potential_erosion_mean': 0.5,    # Mean potential erosion per polygon [m]
            'down_coast_probability': 0.5,    # Chance that a coastline's drift is down-coast
            'direction_noise': 0.1,           # Chance that one polygon reverses the drift
            'platform_sand_rate': 0.01,       # Shore platform supply per polygon [m]
            'platform_coarse_rate': 0.005,
            'cliff_collapse_probability': 0.05,
            'cliff_collapse_depth': 0.5,      # Collapse volume per polygon, as a depth [m]
            'cliff_fine_fraction': 0.2,       # Size split of collapse debris
            'cliff_sand_fraction': 0.5,       # (coarse gets the remainder)

            # Numerical parameters
            'seed': 0,                   # Random seed for the forcing
            'mass_balance_tolerance': 1e-6,

            # Output parameters
            'log_detail': 1,             # 0 summary, 1 per coastline, 2 per-polygon tables
            'save_interval': 1,          # Save output every N steps
            'plot_interval': 10,         # Plot output every N steps
            'output_dir': './output'     # Directory for output files
        }

        # Update with user configuration if provided
        self.config = self.default_config.copy()
        if config is not None:
            unknown = set(config) - set(self.default_config)
            if unknown:
                raise ConfigurationError(f"unknown configuration keys: {', '.join(sorted(unknown))}")
            self.config.update(config)
        self._validate_config()

        self.cell_area = self.config['cell_size'] ** 2
        self.rng = np.random.default_rng(self.config['seed'])

        # Routing state that lasts for the whole run
        self.context = RoutingContext(
            self.config['edge_policy'],
            normalize_erodibility(
                self.config['fine_erodibility'],
                self.config['sand_erodibility'],
                self.config['coarse_erodibility'],
            ),
        )
        self.placer = CellPlacer((self.config['ny'], self.config['nx']), self.config['max_cell_thickness'])
        self.router = SedimentRouter(self.context, self.placer, self.config['log_detail'], self.cell_area)

        # Initialize model domain
        self._initialize_domain()

        # Initialize output tracking
        self.iteration = 0
        self.coastlines: List[Coastline] = []
        self.last_results = []
        self.suspended_fine = 0.0
        self.output_data = []
        self.time_steps = []

    def _validate_config(self):
        """Check configuration values before anything is built."""
        cfg = self.config
        for key in ('nx', 'ny', 'n_coastlines', 'n_polygons'):
            if int(cfg[key]) != cfg[key] or cfg[key] < 1:
                raise ConfigurationError(f'{key} must be a positive integer, got {cfg[key]!r}')
        if cfg['cell_size'] <= 0:
            raise ConfigurationError('cell_size must be positive')
        if cfg['ny'] < cfg['n_coastlines']:
            raise ConfigurationError('ny must allow at least one row per coastline')
        if cfg['nx'] < cfg['n_polygons']:
            raise ConfigurationError('nx must allow at least one column per polygon')
        for key in ('down_coast_probability', 'direction_noise', 'cliff_collapse_probability',
                    'cliff_fine_fraction', 'cliff_sand_fraction'):
            if not 0.0 <= cfg[key] <= 1.0:
                raise ConfigurationError(f'{key} must be between 0 and 1, got {cfg[key]!r}')
        if cfg['cliff_fine_fraction'] + cfg['cliff_sand_fraction'] > 1.0:
            raise ConfigurationError('cliff_fine_fraction + cliff_sand_fraction must not exceed 1')
        for key in ('initial_fine', 'initial_sand', 'initial_coarse', 'potential_erosion_mean',
                    'platform_sand_rate', 'platform_coarse_rate', 'cliff_collapse_depth',
                    'water_depth', 'mass_balance_tolerance'):
            if cfg[key] < 0:
                raise ConfigurationError(f'{key} must not be negative')
        if cfg['save_interval'] < 1 or cfg['plot_interval'] < 0:
            raise ConfigurationError('save_interval must be >= 1 and plot_interval >= 0')
        if cfg['max_cell_thickness'] <= 0:
            raise ConfigurationError('max_cell_thickness must be positive')
        EdgePolicy.parse(cfg['edge_policy'])

    def _initialize_domain(self):
        """Assign cells to polygons and lay down the initial unconsolidated sediment."""
        initial = {
            SizeClass.FINE: self.config['initial_fine'],
            SizeClass.SAND: self.config['initial_sand'],
            SizeClass.COARSE: self.config['initial_coarse'],
        }
        for size, depth in initial.items():
            self.placer.sediment[size].fill(depth)

        for coast in range(self.config['n_coastlines']):
            rows = self._band_rows(coast)
            for coast_id in range(self.config['n_polygons']):
                cols = self._polygon_cols(coast_id)
                rr, cc = np.meshgrid(rows, cols, indexing='ij')
                self.placer.register_polygon(coast, coast_id, rr.ravel(), cc.ravel())

    def _band_rows(self, coast: int) -> np.ndarray:
        """Raster rows of a coastline; the last coastline takes any leftover rows."""
        per_band = self.config['ny'] // self.config['n_coastlines']
        start = coast * per_band
        stop = self.config['ny'] if coast == self.config['n_coastlines'] - 1 else start + per_band
        return np.arange(start, stop)

    def _polygon_cols(self, coast_id: int) -> np.ndarray:
        """Raster columns of a polygon; the down-coast end polygon takes any leftover columns."""
        per_polygon = self.config['nx'] // self.config['n_polygons']
        start = coast_id * per_polygon
        stop = self.config['nx'] if coast_id == self.config['n_polygons'] - 1 else start + per_polygon
        return np.arange(start, stop)

    def _build_coastlines(self) -> List[Coastline]:
        """
        Rebuild every coastline's polygons from the current cell sediment.

        Polygons are new records each iteration; only their coast IDs carry
        over. Stored sediment is the cell-summed depth on each polygon.
        """
        size = self.config['cell_size']
        n_polygons = self.config['n_polygons']
        coastlines = []

        for coast in range(self.config['n_coastlines']):
            rows = self._band_rows(coast)
            polygons = []
            for coast_id in range(n_polygons):
                cols = self._polygon_cols(coast_id)
                x0, x1 = cols[0] * size, (cols[-1] + 1) * size
                y0, y1 = rows[0] * size, (rows[-1] + 1) * size
                mid = int(cols[len(cols) // 2])

                polygon = Polygon(
                    global_id=coast * n_polygons + coast_id,
                    coast_id=coast_id,
                    coast_node=mid,
                    up_coast_profile=coast_id,
                    down_coast_profile=coast_id + 1,
                    boundary=[(x0, y0), (x1, y0), (x1, y1), (x0, y1)],
                    up_coast_points_used=len(rows),
                    down_coast_points_used=len(rows),
                    node=(mid, int(rows[0])),
                    antinode=(mid, int(rows[-1])),
                )
                polygon.num_cells = len(rows) * len(cols)
                polygon.seawater_volume = polygon.num_cells * self.cell_area * self.config['water_depth']

                for size_class in SizeClass:
                    polygon.set_stored(size_class, self.placer.polygon_depth(coast, coast_id, size_class))
                total = polygon.total_stored
                if total > 0:
                    polygon.avg_d50 = sum(D50[s] * polygon.stored[s] for s in SizeClass) / total

                up = GRID_EDGE if coast_id == 0 else coast_id - 1
                down = GRID_EDGE if coast_id == n_polygons - 1 else coast_id + 1
                polygon.set_neighbors([Neighbor(up, 1.0)], [Neighbor(down, 1.0)])
                polygons.append(polygon)

            coastlines.append(Coastline(coast, polygons))
        return coastlines

    def _apply_forcing(self, coastlines: List[Coastline]):
        """
        Draw this iteration's wave-driven and cliff/platform inputs.

        Shore platform sediment and cliff collapse talus are placed on the
        polygon's cells here, and the amounts actually placed are recorded on
        the polygon for the sediment router to add to its stored sediment.
        """
        cfg = self.config
        platform = {SizeClass.SAND: cfg['platform_sand_rate'], SizeClass.COARSE: cfg['platform_coarse_rate']}
        cliff_split = {
            SizeClass.FINE: cfg['cliff_fine_fraction'],
            SizeClass.SAND: cfg['cliff_sand_fraction'],
            SizeClass.COARSE: 1.0 - cfg['cliff_fine_fraction'] - cfg['cliff_sand_fraction'],
        }

        for coastline in coastlines:
            drift_down = self.rng.random() < cfg['down_coast_probability']
            for polygon in coastline:
                flip = self.rng.random() < cfg['direction_noise']
                polygon.down_coast_this_iter = drift_down != flip

                if cfg['potential_erosion_mean'] > 0:
                    polygon.add_potential_erosion(-self.rng.exponential(cfg['potential_erosion_mean']))

                for size, rate in platform.items():
                    if rate > 0:
                        placed = self.placer.place_deposition(coastline.coast, polygon.coast_id, size, rate)
                        polygon.add_platform_sediment(size, placed)

                if self.rng.random() < cfg['cliff_collapse_probability']:
                    self._collapse_cliff(coastline, polygon, cliff_split)

    def _collapse_cliff(self, coastline, polygon, split):
        depth = self.config['cliff_collapse_depth']
        for size, fraction in split.items():
            debris = depth * fraction
            if debris <= 0:
                continue
            polygon.add_cliff_collapse_erosion(size, debris)
            if size is SizeClass.FINE:
                # Fine debris goes straight to suspension
                self.suspended_fine += debris
            else:
                placed = self.placer.place_deposition(coastline.coast, polygon.coast_id, size, debris)
                polygon.add_cliff_collapse_talus(size, placed)
        logger.debug('Coastline %d: cliff collapse on polygon %d', coastline.coast, polygon.coast_id)

    def run_model(self):
        """Run the model for the specified number of iterations."""
        n_steps = self.config['n_steps']
        save_interval = self.config['save_interval']
        plot_interval = self.config['plot_interval']

        for step in range(1, n_steps + 1):
            # Perform a single iteration
            self.run_timestep()

            # Save output at specified intervals
            if step % save_interval == 0:
                self._save_output(step)

            # Plot output at specified intervals
            if plot_interval and step % plot_interval == 0:
                self._plot_output(step)

        budget = self.context.finish_run()
        logger.info('Run complete: eroded sand %.6g coarse %.6g, lost from grid sand %.6g coarse %.6g',
                    budget.eroded[SizeClass.SAND], budget.eroded[SizeClass.COARSE],
                    budget.lost_from_grid[SizeClass.SAND], budget.lost_from_grid[SizeClass.COARSE])
        return budget

    def run_timestep(self) -> Dict[str, Any]:
        """
        Run a single iteration of the model.

        Returns
        -------
        dict
            Summary of the iteration: failed coastlines, circularities,
            anomalies and the mass-balance residual per routed size class.
        """
        self.iteration += 1
        self.context.start_iteration(self.iteration)

        # Phase 1: Rebuild polygons from the cells
        self.coastlines = self._build_coastlines()

        # Phase 2: Forcing
        self._apply_forcing(self.coastlines)

        # Phase 3: Route sediment, one coastline at a time
        results = []
        failed = []
        for coastline in self.coastlines:
            try:
                results.append(self.router.route_coastline(coastline))
            except PlacementError as error:
                logger.error('Iteration %d: routing abandoned on coastline %d', self.iteration, coastline.coast)
                failed.append(coastline.coast)
                if error.result is not None:
                    results.append(error.result)
        self.last_results = results
        self.suspended_fine += self.context.iteration_budget.eroded[SizeClass.FINE]

        # Phase 4: Mass balance
        residual = self._check_mass_balance()

        return {
            'iteration': self.iteration,
            'failed_coastlines': failed,
            'circularities': sum(len(result.order.circularities) for result in results),
            'anomalies': sum(len(result.anomalies) for result in results),
            'residual': {size.value: value for size, value in residual.items()},
        }

    def _check_mass_balance(self):
        budget = self.context.iteration_budget
        residual = mass_balance_residual(budget)
        tolerance = self.config['mass_balance_tolerance']
        for size, value in residual.items():
            if abs(value) > tolerance * max(1.0, budget.eroded[size]):
                logger.warning('Iteration %d: %s mass balance residual %.6g',
                               self.iteration, size.value, value)
        return residual

    def _save_output(self, step):
        """Save the iteration's budget and sediment state."""
        budget = self.context.iteration_budget
        output = {
            'step': step,
            'budget': budget.as_dict(),
            'carry_forward': {size.value: self.context.carry_forward[size] for size in ROUTED_SIZES},
            'stored': {size.value: float(self.placer.sediment[size].sum()) for size in SizeClass},
            'suspended_fine': self.suspended_fine,
            'circularities': [list(result.order.circularities) for result in self.last_results],
            'sequence': [result.order.sequence for result in self.last_results],
        }
        self.output_data.append(output)
        self.time_steps.append(step)

    def _plot_output(self, step):
        """Plot the per-polygon budget of every coastline and the run history."""
        from coastsed.utils import plot_budget_history, plot_polygon_budget

        output_dir = self.config['output_dir']
        for coastline in self.coastlines:
            plot_polygon_budget(coastline, step=step, cell_area=self.cell_area, output_dir=output_dir)

        if self.output_data:
            plot_budget_history(self.output_data, cell_area=self.cell_area, output_dir=output_dir)
