"""
Sediment routing module for coastsed.

Does the actual (supply-limited) redistribution of unconsolidated beach
sediment between the polygons of a coastline. Potential erosion and the
erodibility of each size class come from outside; this module turns them
into real erosion, limited by the sediment each polygon holds, and moves the
eroded sand and coarse sediment to the adjacent polygons in the transport
direction, or across the grid edge.
"""

import logging
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Set

from coastsed.budget import EdgePolicy, RoutingContext, SedimentBudget
from coastsed.errors import PlacementError, RoutingStateError
from coastsed.ordering import ProcessingOrder, resolve_coastline_order
from coastsed.polygon import ROUTED_SIZES, Coastline, Polygon, SizeClass

logger = logging.getLogger(__name__)

# Relative slack allowed when checking a placement result against its target
_PLACEMENT_TOLERANCE = 1e-9

# Coarse is deposited before sand; fine sediment is never deposited
_DEPOSITION_SEQUENCE = (SizeClass.COARSE, SizeClass.SAND)
_EROSION_SEQUENCE = (SizeClass.FINE, SizeClass.SAND, SizeClass.COARSE)


class PolygonPhase(Enum):
    """Routing phases of one polygon within one pass, in the only allowed order."""

    IDLE = 0
    DEPOSITION_APPLIED = 1
    EROSION_APPLIED = 2
    EXPORTED = 3
    DONE = 4


class AdjacencyAnomaly(NamedTuple):
    """A grid edge reached by a polygon that should not be at the grid edge."""

    coast: int
    polygon: int
    down_coast: bool
    sand: float
    coarse: float
    reason: str


class CoastlineResult:
    """Outcome of one routing pass over one coastline."""

    def __init__(self, coast: int, order: ProcessingOrder):
        self.coast = coast
        self.order = order
        self.budget = SedimentBudget()
        self.phases: Dict[int, PolygonPhase] = {}
        self.anomalies: List[AdjacencyAnomaly] = []
        self.error: Optional[PlacementError] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def completed(self) -> List[int]:
        """Coast IDs that reached DONE, in processing order."""
        return [coast_id for coast_id in self.order.sequence
                if self.phases.get(coast_id) is PolygonPhase.DONE]

    def advance(self, coast_id: int, phase: PolygonPhase) -> None:
        current = self.phases.get(coast_id, PolygonPhase.IDLE)
        if phase.value <= current.value:
            raise RoutingStateError(
                f'polygon {coast_id} on coastline {self.coast} cannot go from '
                f'{current.name} to {phase.name}')
        self.phases[coast_id] = phase


def update_stored_sediment(coastline: Coastline) -> None:
    """
    Add this iteration's shore platform and cliff collapse sediment to each polygon's store.

    Only sand and coarse are stored; fine sediment from either source is
    already in suspension.
    """
    for polygon in coastline:
        for size in ROUTED_SIZES:
            polygon.set_stored(
                size,
                polygon.stored[size] + polygon.platform_sediment[size] + polygon.cliff_collapse_talus[size],
            )


class SedimentRouter:
    """
    Supply-limited redistribution of unconsolidated sediment between coast polygons.

    Polygons are processed one at a time in resolved order. Each polygon
    first deposits what upstream polygons sent it, then erodes what it can,
    then exports the eroded sand and coarse sediment to its neighbours. The
    order is a precondition for correctness: a polygon's deposition target
    must already include every same-pass export from its sources.

    Parameters
    ----------
    context : RoutingContext
        Edge policy, erodibility weights, carry-forward and budgets for the run.
    placer : object
        Per-cell placement collaborator with ``place_deposition`` and
        ``place_erosion`` methods taking ``(coast, coast_id, size, target)``
        and returning the depth actually placed.
    log_detail : int, optional
        0 logs the per-coastline summary at DEBUG level, 1 at INFO, and 2 or
        more also logs the per-polygon report tables at DEBUG level.
    cell_area : float, optional
        Cell area used to report volumes in those tables.
    """

    def __init__(self, context: RoutingContext, placer, log_detail: int = 1, cell_area: float = 1.0):
        self.context = context
        self.placer = placer
        self.log_detail = log_detail
        self.cell_area = cell_area

    def route_coastline(self, coastline: Coastline) -> CoastlineResult:
        """
        Do one pass of actual sediment movement on a coastline.

        Returns
        -------
        CoastlineResult
            Processing order, circularities, per-polygon phases, anomalies and
            this coastline's budget.

        Raises
        ------
        PlacementError
            If any placement call fails. Polygons processed before the failure
            keep their changes, and their budget is still added to the
            iteration budget.
        """
        if self.log_detail >= 2:
            self._log_tables(coastline, 'before')

        update_stored_sediment(coastline)
        order = resolve_coastline_order(coastline)
        result = CoastlineResult(coastline.coast, order)

        if self.log_detail >= 2:
            self._log_tables(coastline, 'sorted', result)

        processed: Set[int] = set()
        try:
            for key in order.keys:
                self._route_polygon(coastline, coastline[key.coast_id], result, processed)
        except PlacementError as error:
            result.error = error
            error.result = result
            logger.error('Coastline %d: placement failed, %d of %d polygons processed: %s',
                         coastline.coast, len(result.completed), len(coastline), error)
            raise
        finally:
            self.context.iteration_budget.merge(result.budget)

        if self.log_detail >= 2:
            self._log_tables(coastline, 'after', result)

        budget = result.budget
        log = logger.info if self.log_detail >= 1 else logger.debug
        log(
            'Coastline %d: eroded sand %.6g coarse %.6g, lost from grid sand %.6g coarse %.6g, '
            '%d circularities, %d anomalies',
            coastline.coast, budget.eroded[SizeClass.SAND], budget.eroded[SizeClass.COARSE],
            budget.lost_from_grid[SizeClass.SAND], budget.lost_from_grid[SizeClass.COARSE],
            len(order.circularities), len(result.anomalies),
        )
        return result

    def _route_polygon(self, coastline, polygon, result, processed):
        coast_id = polygon.coast_id

        self._deposit(coastline, polygon, result.budget)
        result.advance(coast_id, PolygonPhase.DEPOSITION_APPLIED)
        # Anything sent here from now on is too late to be deposited this pass
        processed.add(coast_id)

        eroded = self._erode(coastline, polygon, result.budget)
        result.advance(coast_id, PolygonPhase.EROSION_APPLIED)

        if eroded[SizeClass.SAND] + eroded[SizeClass.COARSE] > 0:
            self._export(coastline, polygon, eroded, result, processed)
        result.advance(coast_id, PolygonPhase.EXPORTED)

        result.advance(coast_id, PolygonPhase.DONE)

    def _place(self, method, coastline, polygon, size, target):
        actual = method(coastline.coast, polygon.coast_id, size, target)
        if actual < 0 or actual > target * (1 + _PLACEMENT_TOLERANCE) + _PLACEMENT_TOLERANCE:
            raise PlacementError(
                f'{size.value} placement on polygon {polygon.coast_id} of coastline '
                f'{coastline.coast} returned {actual!r} for a target of {target!r}',
                coast_id=coastline.coast, polygon_id=polygon.coast_id)
        return min(actual, target)

    def _deposit(self, coastline: Coastline, polygon: Polygon, budget: SedimentBudget) -> None:
        """Deposit whatever adjacent polygons have sent here; defer any shortfall."""
        for size in _DEPOSITION_SEQUENCE:
            target = polygon.deposition[size]
            if target <= 0:
                continue

            deposited = self._place(self.placer.place_deposition, coastline, polygon, size, target)
            budget.add('deposited', size, deposited)

            shortfall = target - deposited
            if shortfall > 0:
                # Made up for by extra erosion later on, possibly next iteration
                self.context.defer_deposition(size, shortfall)
                budget.add('undeposited', size, shortfall)

    def _erode(self, coastline: Coastline, polygon: Polygon, budget: SedimentBudget) -> Dict[SizeClass, float]:
        """
        Do supply-limited erosion of each size class.

        The all-classes potential erosion is split between classes by
        erodibility, then limited by the depth of that class on the polygon.

        Returns
        -------
        dict
            Depth actually eroded, per size class.
        """
        eroded = {size: 0.0 for size in SizeClass}
        potential = -polygon.potential_erosion
        if potential <= 0:
            return eroded

        for size in _EROSION_SEQUENCE:
            stored = polygon.stored[size]
            if stored <= 0:
                continue

            target = min(potential * self.context.erodibility[size], stored)
            if size in ROUTED_SIZES:
                target += self.context.take_carry_forward(size, stored - target)

            actual = self._place(self.placer.place_erosion, coastline, polygon, size, target)
            if actual > 0:
                polygon.set_erosion(size, -actual)
                budget.add('eroded', size, actual)
                eroded[size] = actual

        return eroded

    def _export(self, coastline, polygon, eroded, result, processed):
        """Send eroded sand and coarse to adjacent polygons, or across the grid edge."""
        budget = result.budget
        neighbors = polygon.export_neighbors

        if not neighbors:
            logger.debug('Coastline %d: polygon %d has no adjacent polygon in its transport direction',
                         coastline.coast, polygon.coast_id)
            for size in ROUTED_SIZES:
                budget.add('unrouted', size, eroded[size])
            return

        for neighbor in neighbors:
            if neighbor.at_grid_edge:
                self._export_across_edge(coastline, polygon, eroded, result, processed)
                continue

            if not 0 <= neighbor.polygon < len(coastline):
                shares = {size: depth * neighbor.share for size, depth in eroded.items()}
                self._record_anomaly(coastline, polygon, shares, result,
                                     f'adjacent polygon {neighbor.polygon} is not on this coastline')
                continue

            adjacent = coastline[neighbor.polygon]
            for size in ROUTED_SIZES:
                if eroded[size] <= 0:
                    continue
                depth = eroded[size] * neighbor.share
                adjacent.add_deposition(size, depth)
                budget.add('exported', size, depth)
                if neighbor.polygon in processed:
                    budget.add('stranded', size, depth)

    def _export_across_edge(self, coastline, polygon, eroded, result, processed):
        budget = result.budget
        down_coast = polygon.down_coast_this_iter
        direction = 'DOWN-COAST' if down_coast else 'UP-COAST'

        if polygon.coast_id != coastline.expected_edge_polygon(down_coast):
            self._record_anomaly(coastline, polygon, eroded, result,
                                 f'sediment movement is {direction} but there is no adjacent polygon')
            return

        policy = self.context.edge_policy
        if policy is EdgePolicy.CLOSED:
            logger.debug('Coastline %d: polygon %d is at the %s end and grid edges are closed, '
                         'no sand or coarse sediment goes off-grid',
                         coastline.coast, polygon.coast_id, direction.lower())
            for size in ROUTED_SIZES:
                budget.add('closed_edge', size, eroded[size])

        elif policy is EdgePolicy.OPEN:
            for size in ROUTED_SIZES:
                budget.add('lost_from_grid', size, eroded[size])

        elif policy is EdgePolicy.RECIRCULATE:
            # Always re-enters at the up-coast end, whichever way the sediment is moving
            other_end = coastline[coastline.up_coast_end]
            for size in ROUTED_SIZES:
                if eroded[size] <= 0:
                    continue
                other_end.add_deposition(size, eroded[size])
                budget.add('recirculated', size, eroded[size])
                if other_end.coast_id in processed:
                    budget.add('stranded', size, eroded[size])

    def _record_anomaly(self, coastline, polygon, unrouted, result, reason):
        anomaly = AdjacencyAnomaly(
            coastline.coast,
            polygon.coast_id,
            polygon.down_coast_this_iter,
            unrouted[SizeClass.SAND],
            unrouted[SizeClass.COARSE],
            reason,
        )
        result.anomalies.append(anomaly)
        for size in ROUTED_SIZES:
            result.budget.add('unrouted', size, unrouted[size])
        logger.warning('Coastline %d: polygon %d: %s', coastline.coast, polygon.coast_id, reason)

    def _log_tables(self, coastline, stage, result=None):
        from coastsed.utils import (format_actual_movement_table, format_cliff_collapse_table,
                                    format_platform_sediment_table, format_potential_erosion_table,
                                    format_sediment_table, format_share_table,
                                    format_sorted_sequence_table)

        if stage == 'before':
            logger.debug('%s', format_share_table(coastline))
            logger.debug('%s', format_sediment_table(
                coastline, 'pre-existing unconsolidated sediment', self.cell_area))
            logger.debug('%s', format_platform_sediment_table(coastline, self.cell_area))
            logger.debug('%s', format_cliff_collapse_table(coastline, self.cell_area))
        elif stage == 'sorted':
            logger.debug('%s', format_sediment_table(
                coastline, 'unconsolidated sediment before movement', self.cell_area))
            logger.debug('%s', format_potential_erosion_table(coastline, self.cell_area))
            logger.debug('%s', format_sorted_sequence_table(coastline, result.order))
        else:
            logger.debug('%s', format_actual_movement_table(
                coastline, result.order, result.budget, self.cell_area))
