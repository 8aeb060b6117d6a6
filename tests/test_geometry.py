"""Tests for aduplanner/geometry/primitives.py."""
import math
import pytest

from aduplanner.errors import InvalidGeometry
from aduplanner.geometry import (
    EARTH_RADIUS_M,
    Coordinate,
    close_ring,
    footprint_to_ring,
    open_ring,
    ring_area,
    ring_area_sqft,
    ring_center,
    signed_ring_area,
    square_meters_to_feet,
    translate_ring,
    validate_ring,
)
from conftest import CENTER, square

A = Coordinate(0.0, 0.0)
B = Coordinate(0.0, 0.001)
C = Coordinate(0.001, 0.001)
D = Coordinate(0.001, 0.0)


# --- close_ring ---

def test_close_ring_appends_first_point():
    ring = close_ring([A, B, C, D])
    assert ring == [A, B, C, D, A]


def test_close_ring_is_idempotent():
    once = close_ring([A, B, C])
    assert close_ring(once) == once


def test_close_ring_returns_new_list():
    points = [A, B, C]
    ring = close_ring(points)
    assert points == [A, B, C]
    assert ring is not points


@pytest.mark.parametrize("points", [[], [A], [A, B]])
def test_close_ring_too_few_points(points):
    with pytest.raises(InvalidGeometry):
        close_ring(points)


def test_invalid_geometry_is_value_error():
    with pytest.raises(ValueError):
        close_ring([A, B])


# --- validate_ring ---

def test_validate_ring_rejects_two_distinct_points():
    with pytest.raises(InvalidGeometry, match="distinct"):
        validate_ring([A, B, A])


def test_validate_ring_closes():
    assert validate_ring([A, B, C]) == [A, B, C, A]


def test_open_ring_drops_closing_point():
    assert open_ring([A, B, C, A]) == [A, B, C]
    assert open_ring([A, B, C]) == [A, B, C]


# --- ring_area ---

def test_ring_area_octant():
    # Equator, prime meridian and 90E meridian bound one eighth of the sphere
    ring = [Coordinate(0, 0), Coordinate(0, 90), Coordinate(90, 0)]
    assert ring_area(ring) == pytest.approx(math.pi / 2 * EARTH_RADIUS_M ** 2, rel=1e-9)


def test_ring_area_orientation_independent():
    ring = close_ring([A, B, C, D])
    reversed_ring = close_ring([D, C, B, A])
    assert ring_area(ring) == pytest.approx(ring_area(reversed_ring), rel=1e-12)
    assert signed_ring_area(ring) == pytest.approx(-signed_ring_area(reversed_ring), rel=1e-12)


def test_ring_area_open_and_closed_agree():
    assert ring_area([A, B, C, D]) == pytest.approx(ring_area([A, B, C, D, A]), rel=1e-12)


@pytest.mark.parametrize("ring", [[], [A], [A, B]])
def test_ring_area_degenerate_is_zero(ring):
    assert ring_area(ring) == 0


def test_ring_area_sqft_conversion():
    ring = [A, B, C, D]
    assert ring_area_sqft(ring) == pytest.approx(ring_area(ring) * 10.7639)
    assert square_meters_to_feet(1.0) == pytest.approx(10.7639)


# --- footprint_to_ring ---

def test_footprint_ring_is_closed_with_five_points():
    ring = footprint_to_ring(CENTER, 20, 30, 0)
    assert len(ring) == 5
    assert ring[0] == ring[-1]


def test_footprint_first_corner_is_northwest():
    ring = footprint_to_ring(CENTER, 20, 30, 0)
    assert ring[0].lat > CENTER.lat
    assert ring[0].lng < CENTER.lng


def test_footprint_dimensions():
    ring = footprint_to_ring(CENTER, 20, 30, 0)
    nw, ne, se = ring[0], ring[1], ring[2]
    assert (nw.lat - se.lat) * 364000 == pytest.approx(20)
    assert (ne.lng - nw.lng) * 364000 * math.cos(math.radians(CENTER.lat)) == pytest.approx(30)


def test_footprint_rotation_is_clockwise():
    ring = footprint_to_ring(CENTER, 20, 30, 90)
    # The unrotated NW corner ends up north-east of center
    assert ring[0].lat > CENTER.lat
    assert ring[0].lng > CENTER.lng


def test_footprint_area_unchanged_by_rotation():
    straight = ring_area_sqft(footprint_to_ring(CENTER, 40, 40, 0))
    turned = ring_area_sqft(footprint_to_ring(CENTER, 40, 40, 90))
    assert turned == pytest.approx(straight, rel=0.01)
    skewed = ring_area_sqft(footprint_to_ring(CENTER, 40, 40, 33))
    assert skewed == pytest.approx(straight, rel=0.01)


def test_footprint_area_matches_dimensions():
    assert ring_area_sqft(footprint_to_ring(CENTER, 20, 30, 15)) == pytest.approx(600, rel=0.01)


# --- helpers ---

def test_translate_ring():
    ring = translate_ring([A, B, C], 1.0, 2.0)
    assert [p.lat for p in ring] == pytest.approx([1.0, 1.0, 1.001])
    assert [p.lng for p in ring] == pytest.approx([2.0, 2.001, 2.001])


def test_ring_center():
    assert ring_center(square(CENTER, 50)).lat == pytest.approx(CENTER.lat)
    assert ring_center(square(CENTER, 50)).lng == pytest.approx(CENTER.lng)
    assert ring_center([]) is None


# --- Coordinate ---

def test_coordinate_from_mapping_accepts_lon():
    assert Coordinate.from_mapping({"lat": 1, "lon": 2}) == Coordinate(1.0, 2.0)
    assert Coordinate.from_mapping({"lat": "1.5", "lng": "2.5"}) == Coordinate(1.5, 2.5)


@pytest.mark.parametrize("data", [
    {"lat": 1},
    {"lat": True, "lng": 2},
    {"lat": 95, "lng": 2},
    {"lat": float("nan"), "lng": 2},
    {"lat": "north", "lng": 2},
])
def test_coordinate_from_mapping_rejects(data):
    with pytest.raises(ValueError):
        Coordinate.from_mapping(data)
