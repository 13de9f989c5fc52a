"""
Sediment budgets and the routing context carried between iterations.

The routing context is the only state that survives from one iteration to
the next: the run-level budget and the carry-forward of sand and coarse
sediment that could not be deposited. It is reset when a run starts.
"""

from enum import Enum
from typing import Dict, Mapping, Optional

from coastsed.errors import ConfigurationError
from coastsed.polygon import ROUTED_SIZES, SizeClass


class EdgePolicy(Enum):
    """What happens to sediment exported across a grid edge."""

    CLOSED = 'closed'            # Sediment stays; nothing is accounted as lost
    OPEN = 'open'                # Sediment leaves the grid
    RECIRCULATE = 'recirculate'  # Sediment re-enters at polygon 0 of the same coastline

    @classmethod
    def parse(cls, value) -> 'EdgePolicy':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            choices = ', '.join(policy.value for policy in cls)
            raise ConfigurationError(f'unknown edge policy {value!r}, expected one of: {choices}') from None


# Budget tallies, in the order they are reported
BUDGET_TERMS = (
    'eroded',         # Actually eroded from polygons
    'exported',       # Delivered to adjacent polygons as deposition targets
    'recirculated',   # Re-entered at the other end of the coastline
    'lost_from_grid',
    'closed_edge',    # Reached a closed grid edge
    'unrouted',       # Nowhere to go: empty adjacency list, or an anomalous grid edge
    'deposited',
    'undeposited',    # Deposition shortfall, added to carry-forward
    'stranded',       # Target given to a polygon that had already been processed
)


class SedimentBudget:
    """
    Per-size-class sediment tallies for one pass or one whole run.

    Every tally is a dict keyed by SizeClass, in cell-summed depth units.
    """

    def __init__(self):
        for term in BUDGET_TERMS:
            setattr(self, term, {size: 0.0 for size in SizeClass})

    def add(self, term: str, size: SizeClass, depth: float) -> None:
        getattr(self, term)[size] += depth

    def merge(self, other: 'SedimentBudget') -> None:
        for term in BUDGET_TERMS:
            mine = getattr(self, term)
            for size, depth in getattr(other, term).items():
                mine[size] += depth

    def total(self, term: str) -> float:
        return sum(getattr(self, term).values())

    def as_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            term: {size.value: depth for size, depth in getattr(self, term).items()}
            for term in BUDGET_TERMS
        }


def mass_balance_residual(budget: SedimentBudget) -> Dict[SizeClass, float]:
    """
    Eroded sediment not accounted for by where it ended up, for sand and coarse.

    ``eroded`` must equal ``deposited + undeposited + stranded + lost_from_grid
    + closed_edge + unrouted`` whenever every polygon exports its full eroded
    depth (adjacency shares summing to one). The ``undeposited`` term is the
    carry-forward added during the pass.
    """
    residual = {}
    for size in ROUTED_SIZES:
        accounted = (
            budget.deposited[size]
            + budget.undeposited[size]
            + budget.stranded[size]
            + budget.lost_from_grid[size]
            + budget.closed_edge[size]
            + budget.unrouted[size]
        )
        residual[size] = budget.eroded[size] - accounted
    return residual


def export_balance_residual(budget: SedimentBudget) -> Dict[SizeClass, float]:
    """Eroded sand/coarse minus everything sent somewhere by the export phase."""
    residual = {}
    for size in ROUTED_SIZES:
        sent = (
            budget.exported[size]
            + budget.recirculated[size]
            + budget.lost_from_grid[size]
            + budget.closed_edge[size]
            + budget.unrouted[size]
        )
        residual[size] = budget.eroded[size] - sent
    return residual


def normalize_erodibility(fine: float, sand: float, coarse: float) -> Dict[SizeClass, float]:
    """Normalize raw erodibilities so that the three weights sum to one."""
    raw = {SizeClass.FINE: fine, SizeClass.SAND: sand, SizeClass.COARSE: coarse}
    if any(value < 0 for value in raw.values()):
        raise ConfigurationError('erodibilities must be non-negative')
    total = sum(raw.values())
    if total <= 0:
        raise ConfigurationError('at least one erodibility must be positive')
    return {size: value / total for size, value in raw.items()}


class RoutingContext:
    """
    State shared by every routing pass in a run.

    Parameters
    ----------
    edge_policy : EdgePolicy or str
        Grid-edge handling, fixed for the run.
    erodibility : mapping of SizeClass to float
        Normalized per-class erodibility weights.
    """

    def __init__(self, edge_policy, erodibility: Mapping[SizeClass, float]):
        self.edge_policy = EdgePolicy.parse(edge_policy)
        self.erodibility = dict(erodibility)
        missing = set(SizeClass) - set(self.erodibility)
        if missing:
            raise ConfigurationError(
                f"missing erodibility for: {', '.join(sorted(size.value for size in missing))}")
        self.reset()

    def reset(self) -> None:
        """Start a new run: zero the carry-forward and all budgets."""
        self.carry_forward = {size: 0.0 for size in ROUTED_SIZES}
        self.run_budget = SedimentBudget()
        self.iteration_budget = SedimentBudget()
        self.iteration = 0

    def start_iteration(self, iteration: Optional[int] = None) -> None:
        """Fold the previous iteration into the run budget and start a fresh one."""
        self.run_budget.merge(self.iteration_budget)
        self.iteration_budget = SedimentBudget()
        self.iteration = self.iteration + 1 if iteration is None else iteration

    def run_totals(self) -> SedimentBudget:
        """Run budget including the iteration in progress."""
        totals = SedimentBudget()
        totals.merge(self.run_budget)
        totals.merge(self.iteration_budget)
        return totals

    def finish_run(self) -> SedimentBudget:
        self.run_budget.merge(self.iteration_budget)
        self.iteration_budget = SedimentBudget()
        return self.run_budget

    def defer_deposition(self, size: SizeClass, depth: float) -> None:
        """Carry a deposition shortfall forward to a later erosion target."""
        if size not in self.carry_forward:
            raise ValueError(f'{size.value} sediment is never carried forward')
        self.carry_forward[size] += depth

    def take_carry_forward(self, size: SizeClass, limit: float) -> float:
        """
        Withdraw carried-forward sediment, at most ``limit``.

        The carry-forward is not added in full and then cleared: the router
        passes the room left under the polygon's stored depth as ``limit``, so
        an erosion target never exceeds what the polygon holds. Whatever cannot
        be withdrawn stays in the carry-forward for the next polygon that
        erodes this size class.
        """
        taken = min(self.carry_forward[size], max(limit, 0.0))
        self.carry_forward[size] -= taken
        return taken
