"""
coastsed: supply-limited routing of unconsolidated coastal sediment.

Each coastline is divided into coast polygons, each spanning the cells
between two coast-normal profiles. Every iteration, wave-driven potential
erosion is turned into actual erosion, limited by the sediment each polygon
holds, and the eroded sediment is moved to adjacent polygons:
1. Processing order: sources before targets, with two-polygon circularities flagged
2. Deposition of what upstream polygons sent, coarse before sand
3. Supply-limited erosion of fine, sand and coarse sediment
4. Export of sand and coarse to adjacent polygons or across the grid edge

Fine sediment never moves polygon-to-polygon; it goes to suspension.

This implementation includes:
- Core model class (CoastalSedimentModel)
- Processing order resolution (resolve_coastline_order)
- Sediment routing module (SedimentRouter)
- Budgets, edge policies and the run-level routing context
- Utility functions for report tables and figures
"""

__version__ = "0.1.0"

# Import main classes for easier access
from coastsed.budget import EdgePolicy, RoutingContext, SedimentBudget
from coastsed.errors import CoastsedError, ConfigurationError, PlacementError, RoutingStateError
from coastsed.model import CoastalSedimentModel
from coastsed.ordering import resolve_coastline_order
from coastsed.placement import CellPlacer
from coastsed.polygon import GRID_EDGE, Coastline, Neighbor, Polygon, SizeClass
from coastsed.sediment_routing import SedimentRouter
