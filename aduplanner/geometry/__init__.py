"""
Geometry primitives for ADU Planner

- Rings: closing and validating coordinate rings
- Spherical polygon area in square meters / square feet
- Rectangular footprints from width/length/rotation
- Local planar helpers backed by shapely (setback buffering, containment)
"""

from .primitives import (
    EARTH_RADIUS_M,
    FEET_PER_DEGREE_LAT,
    SQ_M_TO_SQ_FT,
    Coordinate,
    Ring,
    close_ring,
    distinct_points,
    feet_to_degrees,
    footprint_to_ring,
    open_ring,
    ring_area,
    ring_area_sqft,
    ring_center,
    ring_to_lng_lat,
    signed_ring_area,
    square_meters_to_feet,
    translate_ring,
    validate_ring,
)
from .local import (
    derive_setback_ring,
    from_local_feet,
    minimum_rectangle_corners,
    ring_contains,
    ring_is_simple,
    to_local_feet,
)

__all__ = [
    "EARTH_RADIUS_M",
    "FEET_PER_DEGREE_LAT",
    "SQ_M_TO_SQ_FT",
    "Coordinate",
    "Ring",
    "close_ring",
    "distinct_points",
    "feet_to_degrees",
    "footprint_to_ring",
    "open_ring",
    "ring_area",
    "ring_area_sqft",
    "ring_center",
    "ring_to_lng_lat",
    "signed_ring_area",
    "square_meters_to_feet",
    "translate_ring",
    "validate_ring",
    "derive_setback_ring",
    "from_local_feet",
    "minimum_rectangle_corners",
    "ring_contains",
    "ring_is_simple",
    "to_local_feet",
]
