#!/usr/bin/env python
"""
Run script for the coastsed model.

This script sets up and runs a simulation of sediment movement along two
straight coastlines, with sediment leaving the grid at open edges.
"""

import logging

from coastsed.model import CoastalSedimentModel

logger = logging.getLogger(__name__)


def main():
    """Set up and run a coastsed simulation."""
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    output_dir = './output'

    # Configure the model
    config = {
        # Grid parameters
        'nx': 120,                  # Raster width [cells]
        'ny': 20,                   # Raster height [cells]
        'cell_size': 10.0,          # Cell size [m]

        # Coastline parameters
        'n_coastlines': 2,          # Coastlines
        'n_polygons': 12,           # Polygons per coastline

        # Time parameters
        'n_steps': 100,             # Number of iterations to simulate

        # Sediment parameters
        'edge_policy': 'open',      # Sediment reaching a grid edge is lost
        'initial_sand': 0.5,        # Initial unconsolidated depth per cell [m]
        'initial_coarse': 0.2,

        # Forcing parameters
        'potential_erosion_mean': 1.0,
        'down_coast_probability': 0.7,
        'cliff_collapse_probability': 0.02,

        # Numerical parameters
        'seed': 42,

        # Output parameters
        'log_detail': 1,
        'save_interval': 1,         # Save output every N steps
        'plot_interval': 25,        # Plot output every N steps
        'output_dir': output_dir    # Directory for output files
    }

    # Create and initialize the model
    model = CoastalSedimentModel(config)

    logger.info('Starting coastsed simulation...')

    # Run simulation; saving and plotting follow the configured intervals
    budget = model.run_model()
    logger.info('Total sediment lost from grid: %.3f m³', budget.total('lost_from_grid') * model.cell_area)
    logger.info('Simulation complete. Results saved to %s', output_dir)


if __name__ == "__main__":
    main()
