"""
Local planar geometry

Projects lat/lng rings into a flat local frame in feet around a reference
point so shapely can buffer, validate and compare them. Uses the same
1 ft = 1/364000 degree convention as footprint_to_ring.
"""

import math
from typing import List, Optional, Sequence, Tuple

import shapely
from loguru import logger
from shapely.geometry import Polygon
from shapely.validation import explain_validity

from .primitives import (
    Coordinate,
    FEET_PER_DEGREE_LAT,
    Ring,
    close_ring,
    open_ring,
    ring_center,
)

LocalPoint = Tuple[float, float]


def to_local_feet(ring: Sequence[Coordinate], origin: Coordinate) -> List[LocalPoint]:
    """Convert coordinates to (east, north) feet from origin"""
    ft_per_deg_lng = FEET_PER_DEGREE_LAT * math.cos(math.radians(origin.lat))
    return [
        ((p.lng - origin.lng) * ft_per_deg_lng, (p.lat - origin.lat) * FEET_PER_DEGREE_LAT)
        for p in ring
    ]


def from_local_feet(points: Sequence[LocalPoint], origin: Coordinate) -> List[Coordinate]:
    """Convert (east, north) feet from origin back to coordinates"""
    ft_per_deg_lng = FEET_PER_DEGREE_LAT * math.cos(math.radians(origin.lat))
    return [
        Coordinate(origin.lat + north / FEET_PER_DEGREE_LAT, origin.lng + east / ft_per_deg_lng)
        for east, north in points
    ]


def _local_polygon(ring: Sequence[Coordinate], origin: Coordinate) -> Polygon:
    return Polygon(to_local_feet(open_ring(ring), origin))


def ring_is_simple(ring: Sequence[Coordinate]) -> bool:
    """True when the ring forms a valid simple polygon (no self-intersection)"""
    if len(open_ring(ring)) < 3:
        return False
    origin = ring_center(ring)
    polygon = _local_polygon(ring, origin)
    if not polygon.is_valid:
        logger.debug(f"Ring is not simple: {explain_validity(polygon)}")
        return False
    return True


def derive_setback_ring(
    boundary: Sequence[Coordinate],
    front_ft: float,
    back_ft: float,
    left_ft: float,
    right_ft: float
) -> Optional[Ring]:
    """
    Derive a setback ring by buffering the property boundary inward.

    Uses a uniform mitre buffer of the largest setback distance, which is
    conservative on the sides. When that collapses the polygon the smallest
    non-zero distance is tried instead.

    Returns:
        Closed ring, or None when no usable setback polygon exists
    """
    distances = [d for d in (front_ft, back_ft, left_ft, right_ft) if d and d > 0]
    if not distances:
        return None

    if len(open_ring(boundary)) < 3:
        logger.warning("Invalid property boundary - cannot derive setback")
        return None

    origin = ring_center(boundary)
    prop_poly = _local_polygon(boundary, origin)
    if not prop_poly.is_valid:
        # Try to fix invalid polygon
        prop_poly = prop_poly.buffer(0)

    buffered = prop_poly.buffer(-max(distances), join_style="mitre")
    if not isinstance(buffered, Polygon) or buffered.is_empty:
        logger.warning(f"Setback of {max(distances)}ft collapses the boundary, trying {min(distances)}ft")
        buffered = prop_poly.buffer(-min(distances), join_style="mitre")

    if not isinstance(buffered, Polygon) or buffered.is_empty or not buffered.is_valid:
        logger.warning("Setback buffer failed - no setback ring derived")
        return None

    if buffered.area >= prop_poly.area:
        logger.warning(f"Setback buffer failed - buffered area ({buffered.area:.1f}) >= property area ({prop_poly.area:.1f})")
        return None

    coords = list(buffered.exterior.coords)[:-1]
    return close_ring(from_local_feet(coords, origin))


def minimum_rectangle_corners(points: Sequence[Coordinate]) -> List[Coordinate]:
    """
    Four corners of the minimum rotated rectangle enclosing the points.

    Corners are returned in ring order starting from the northwest-most one.
    """
    origin = ring_center(points)
    polygon = Polygon(to_local_feet(open_ring(points), origin))
    rectangle = shapely.oriented_envelope(polygon)
    if not isinstance(rectangle, Polygon):
        raise ValueError("Points are collinear - no enclosing rectangle")
    corners = list(rectangle.exterior.coords)[:-1]
    if len(corners) != 4:
        raise ValueError(f"Degenerate rectangle with {len(corners)} corners")

    # Rotate so the corner furthest north-west leads
    start = max(range(4), key=lambda i: corners[i][1] - corners[i][0])
    corners = corners[start:] + corners[:start]
    return from_local_feet(corners, origin)


def ring_contains(outer: Sequence[Coordinate], inner: Sequence[Coordinate]) -> bool:
    """True when inner lies entirely within outer"""
    if len(open_ring(outer)) < 3 or len(open_ring(inner)) < 3:
        return False
    origin = ring_center(outer)
    outer_poly = _local_polygon(outer, origin)
    inner_poly = _local_polygon(inner, origin)
    if not outer_poly.is_valid:
        outer_poly = outer_poly.buffer(0)
    return outer_poly.contains(inner_poly)
