"""Shared fixtures for ADU planner tests."""
import pytest
from loguru import logger

from aduplanner.geometry import Coordinate, footprint_to_ring
from aduplanner.surface import InMemoryMapSurface

CENTER = Coordinate(37.7749, -122.4194)


def square(center, side_ft):
    """Closed square ring of side_ft feet around center."""
    return footprint_to_ring(center, side_ft, side_ft, 0)


def rect(center, width_ft, length_ft):
    return footprint_to_ring(center, width_ft, length_ft, 0)


def as_points(ring):
    """Ring as the {lat, lng} dicts the vision service sends."""
    return [p.to_dict() for p in ring]


@pytest.fixture
def center():
    return CENTER


@pytest.fixture
def property_ring(center):
    """100 x 100 ft parcel, about 10,000 sq ft."""
    return square(center, 100)


@pytest.fixture
def structure_ring(center):
    """30 x 40 ft house, about 1,200 sq ft."""
    return rect(center.offset(0.00005, 0), 30, 40)


@pytest.fixture
def constraints_payload(property_ring, structure_ring):
    """camelCase constraints analysis as returned by the service."""
    return {
        "propertyBoundary": {"coordinates": as_points(property_ring)},
        "structures": [{"type": "main_house", "coordinates": as_points(structure_ring)}],
        "setbacks": {"front": 20, "back": 10, "left": 5, "right": 5},
        "buildableAreas": [],
    }


@pytest.fixture
def surface(center):
    return InMemoryMapSurface(center=center, zoom=19)


@pytest.fixture
def log_messages():
    """Messages logged at WARNING or above during the test."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)
