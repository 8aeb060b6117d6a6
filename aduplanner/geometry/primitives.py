"""
Geometry primitives

Coordinate rings, spherical polygon area and rectangular footprints.
Coordinates are decimal-degree latitude/longitude throughout.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import InvalidGeometry

# Mean Earth radius (IUGG), meters
EARTH_RADIUS_M = 6371008.8

SQ_M_TO_SQ_FT = 10.7639

# Local flat-earth approximation: 1 foot ~ 1/364000 degree of latitude
FEET_PER_DEGREE_LAT = 364000.0


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees"""
    lat: float
    lng: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    def to_lng_lat(self) -> List[float]:
        """GeoJSON position order"""
        return [self.lng, self.lat]

    def offset(self, dlat: float, dlng: float) -> "Coordinate":
        return Coordinate(self.lat + dlat, self.lng + dlng)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Coordinate":
        """
        Build from a {lat, lng} mapping.

        `lon` and `long` are accepted for the longitude key. Raises ValueError
        (or TypeError) when either value is missing or not numeric.
        """
        lat = data.get("lat", data.get("latitude"))
        lng = data.get("lng", data.get("lon", data.get("long", data.get("longitude"))))
        if lat is None or lng is None or isinstance(lat, bool) or isinstance(lng, bool):
            raise ValueError(f"Not a lat/lng point: {data!r}")
        lat, lng = float(lat), float(lng)
        if not (math.isfinite(lat) and math.isfinite(lng)):
            raise ValueError(f"Non-finite coordinate: {data!r}")
        if abs(lat) > 90 or abs(lng) > 180:
            raise ValueError(f"Coordinate out of range: {data!r}")
        return cls(lat, lng)


Ring = List[Coordinate]


def close_ring(points: Sequence[Coordinate]) -> Ring:
    """
    Ensure a ring is closed (first point == last point).

    Args:
        points: Ordered polygon vertices, closed or open

    Returns:
        A new list; the first point is appended when the ring is open

    Raises:
        InvalidGeometry: if fewer than 3 points are given
    """
    if len(points) < 3:
        raise InvalidGeometry(f"Need at least 3 points for a ring, got {len(points)}")

    ring = list(points)
    if ring[0] != ring[-1]:
        ring.append(ring[0])
    return ring


def distinct_points(points: Sequence[Coordinate]) -> List[Coordinate]:
    """Points in order with repeats removed"""
    seen = set()
    result = []
    for point in points:
        if point not in seen:
            seen.add(point)
            result.append(point)
    return result


def validate_ring(points: Sequence[Coordinate]) -> Ring:
    """Close a ring, rejecting it when it has fewer than 3 distinct points"""
    distinct = len(distinct_points(points))
    if distinct < 3:
        raise InvalidGeometry(f"Need at least 3 distinct points for a ring, got {distinct}")
    return close_ring(points)


def open_ring(ring: Sequence[Coordinate]) -> List[Coordinate]:
    """Drop the closing point of a closed ring"""
    if len(ring) > 1 and ring[0] == ring[-1]:
        return list(ring[:-1])
    return list(ring)


def _polar_triangle_area(tan1: float, lng1: float, tan2: float, lng2: float) -> float:
    """Signed area of the triangle (pole, p1, p2) on the unit sphere"""
    delta_lng = lng1 - lng2
    t = tan1 * tan2
    return 2 * math.atan2(t * math.sin(delta_lng), 1 + t * math.cos(delta_lng))


def signed_ring_area(ring: Sequence[Coordinate], radius: float = EARTH_RADIUS_M) -> float:
    """
    Signed spherical area of a ring in square meters.

    Sums the spherical excess of the triangles each edge forms with the
    north pole. Counter-clockwise rings are positive. A repeated closing
    point contributes nothing, so open and closed rings agree.
    """
    if len(ring) < 3:
        return 0.0

    total = 0.0
    prev = ring[-1]
    prev_tan = math.tan((math.pi / 2 - math.radians(prev.lat)) / 2)
    prev_lng = math.radians(prev.lng)
    for point in ring:
        tan_lat = math.tan((math.pi / 2 - math.radians(point.lat)) / 2)
        lng = math.radians(point.lng)
        total += _polar_triangle_area(tan_lat, lng, prev_tan, prev_lng)
        prev_tan = tan_lat
        prev_lng = lng

    return total * radius * radius


def ring_area(ring: Sequence[Coordinate], radius: float = EARTH_RADIUS_M) -> float:
    """Unsigned spherical area of a ring in square meters; 0 for fewer than 3 points"""
    return abs(signed_ring_area(ring, radius))


def square_meters_to_feet(area_sqm: float) -> float:
    return area_sqm * SQ_M_TO_SQ_FT


def ring_area_sqft(ring: Sequence[Coordinate]) -> float:
    """Unsigned spherical area of a ring in square feet"""
    return square_meters_to_feet(ring_area(ring))


def feet_to_degrees(center_lat: float, north_ft: float, east_ft: float) -> Tuple[float, float]:
    """Convert a local (north, east) offset in feet to (dlat, dlng) degrees"""
    dlat = north_ft / FEET_PER_DEGREE_LAT
    dlng = east_ft / (FEET_PER_DEGREE_LAT * math.cos(math.radians(center_lat)))
    return dlat, dlng


def footprint_to_ring(
    center: Coordinate,
    width_ft: float,
    length_ft: float,
    rotation_deg: float = 0.0
) -> Ring:
    """
    Build the closed ring of a rectangular footprint.

    Width runs north-south and length runs east-west before rotation.
    Rotation is applied about the center in the local feet frame, clockwise
    positive (as seen on a north-up map), so the enclosed area does not
    depend on the rotation. Valid only at local scale (a few hundred meters).

    Args:
        center: Footprint center
        width_ft: North-south extent in feet
        length_ft: East-west extent in feet
        rotation_deg: Clockwise rotation in degrees

    Returns:
        Closed ring of 5 points: NW, NE, SE, SW, NW (before rotation)
    """
    half_w = width_ft / 2
    half_l = length_ft / 2

    # (east, north) offsets in feet: NW, NE, SE, SW
    corners = [
        (-half_l, half_w),
        (half_l, half_w),
        (half_l, -half_w),
        (-half_l, -half_w),
    ]

    theta = math.radians(rotation_deg)
    cos_t = math.cos(theta)
    sin_t = math.sin(theta)

    ring = []
    for east, north in corners:
        rotated_east = east * cos_t + north * sin_t
        rotated_north = -east * sin_t + north * cos_t
        dlat, dlng = feet_to_degrees(center.lat, rotated_north, rotated_east)
        ring.append(center.offset(dlat, dlng))

    return close_ring(ring)


def translate_ring(ring: Sequence[Coordinate], dlat: float, dlng: float) -> Ring:
    """Move every point of a ring by the same degree offset"""
    return [point.offset(dlat, dlng) for point in ring]


def ring_center(ring: Sequence[Coordinate]) -> Optional[Coordinate]:
    """Center of the ring's lat/lng bounding box"""
    if not ring:
        return None
    lats = [p.lat for p in ring]
    lngs = [p.lng for p in ring]
    return Coordinate((min(lats) + max(lats)) / 2, (min(lngs) + max(lngs)) / 2)


def ring_to_lng_lat(ring: Sequence[Coordinate]) -> List[List[float]]:
    """Ring as GeoJSON [lng, lat] positions"""
    return [point.to_lng_lat() for point in ring]
