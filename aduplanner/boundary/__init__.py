"""
Property boundary editing and building footprints
"""

from .session import BoundaryEditSession, BoundarySource, BoundaryState
from .footprint import BuildingFootprint, footprint_fits, place_on_boundary

__all__ = [
    "BoundaryEditSession",
    "BoundarySource",
    "BoundaryState",
    "BuildingFootprint",
    "footprint_fits",
    "place_on_boundary",
]
