"""
Exceptions raised by the coastsed package.
"""


class CoastsedError(Exception):
    """Base exception for coastal sediment routing errors."""


class ConfigurationError(CoastsedError, ValueError):
    """Invalid model or routing configuration."""


class PlacementError(CoastsedError, RuntimeError):
    """
    A per-cell placement call failed.

    Raised when the collaborator that places deposition or erosion on a
    polygon's cells cannot complete the request, or returns an amount that
    breaks its contract (negative, or more than the requested target).
    This aborts the remaining processing of the coastline.
    """

    def __init__(self, message, coast_id=None, polygon_id=None):
        super().__init__(message)
        self.coast_id = coast_id
        self.polygon_id = polygon_id
        # Partial CoastlineResult of the pass that failed, set by the router
        self.result = None


class RoutingStateError(CoastsedError, RuntimeError):
    """A polygon tried to move backwards through its routing phases."""
