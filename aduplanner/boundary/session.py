"""
Boundary edit session

State machine for the user-adjustable property boundary:

    EMPTY --start_drawing--> DRAWING --complete_drawing--> UNLOCKED
    UNLOCKED --lock--> LOCKED --unlock--> UNLOCKED
    any --ai_detect--> LOCKED
    any --clear--> EMPTY

The boundary is always 0 or 4 corners; the path is the closed ring of the
corners and is derived on every read.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from loguru import logger

from ..errors import InvalidGeometry, InvalidTransition
from ..geometry import (
    Coordinate,
    Ring,
    close_ring,
    distinct_points,
    minimum_rectangle_corners,
    open_ring,
    ring_area_sqft,
    ring_to_lng_lat,
    translate_ring,
    validate_ring,
)

PointLike = Union[Coordinate, Mapping[str, Any]]


class BoundaryState(Enum):
    EMPTY = "empty"
    DRAWING = "drawing"
    UNLOCKED = "unlocked"
    LOCKED = "locked"


class BoundarySource(Enum):
    MANUAL = "manual"
    AI = "ai"


def _as_coordinate(point: PointLike) -> Coordinate:
    if isinstance(point, Coordinate):
        return point
    return Coordinate.from_mapping(point)


class BoundaryEditSession:
    """
    Interactive boundary state for one map view.

    Disallowed actions raise InvalidTransition and invalid input raises
    InvalidGeometry; in both cases the session is left unchanged.
    """

    def __init__(self, on_change: Optional[Callable[["BoundaryEditSession"], None]] = None):
        self._state = BoundaryState.EMPTY
        self._corners: List[Coordinate] = []
        self._source: Optional[BoundarySource] = None
        self._area_sqft: Optional[float] = None
        self._listener = on_change
        # Bumped by clear() so responses to earlier requests can be recognized as stale
        self.epoch = 0

    # -- read-only view --------------------------------------------------

    @property
    def state(self) -> BoundaryState:
        return self._state

    @property
    def corners(self) -> List[Coordinate]:
        return list(self._corners)

    @property
    def path(self) -> Ring:
        return close_ring(self._corners) if self._corners else []

    @property
    def locked(self) -> bool:
        return self._state == BoundaryState.LOCKED

    @property
    def source(self) -> Optional[BoundarySource]:
        return self._source

    @property
    def has_boundary(self) -> bool:
        return bool(self._corners)

    @property
    def area_sqft(self) -> Optional[float]:
        """Area tracked for AI-detected boundaries; None for manual ones"""
        return self._area_sqft

    def compute_area_sqft(self) -> Optional[float]:
        return ring_area_sqft(self.path) if self._corners else None

    def set_listener(self, listener: Optional[Callable[["BoundaryEditSession"], None]]) -> None:
        self._listener = listener

    # -- internals -------------------------------------------------------

    def _require(self, action: str, *states: BoundaryState) -> None:
        if self._state not in states:
            allowed = ", ".join(s.value for s in states)
            raise InvalidTransition(f"Cannot {action} while {self._state.value} (allowed: {allowed})")

    def _set_corners(self, corners: Sequence[Coordinate]) -> None:
        self._corners = list(corners)
        if self._source == BoundarySource.AI:
            self._area_sqft = ring_area_sqft(self.path)

    def _changed(self) -> None:
        if self._listener is not None:
            self._listener(self)

    # -- transitions -----------------------------------------------------

    def start_drawing(self) -> None:
        self._require("start drawing", BoundaryState.EMPTY)
        self._state = BoundaryState.DRAWING
        logger.debug("Boundary drawing started")
        self._changed()

    def cancel_drawing(self) -> None:
        self._require("cancel drawing", BoundaryState.DRAWING)
        self._state = BoundaryState.EMPTY
        self._changed()

    def complete_drawing(self, points: Sequence[PointLike]) -> None:
        """
        Finish a hand-drawn boundary.

        The first four points become the corners. Fewer than four points, or
        fewer than three distinct ones, raises InvalidGeometry and drawing
        continues.
        """
        self._require("complete drawing", BoundaryState.DRAWING)
        coords = [_as_coordinate(p) for p in points]
        if len(coords) < 4:
            raise InvalidGeometry(f"A boundary needs 4 corners, got {len(coords)} points")
        corners = coords[:4]
        validate_ring(corners)

        self._source = BoundarySource.MANUAL
        self._area_sqft = None
        self._set_corners(corners)
        self._state = BoundaryState.UNLOCKED
        logger.info("Boundary drawn manually")
        self._changed()

    def lock(self) -> None:
        self._require("lock", BoundaryState.UNLOCKED)
        self._state = BoundaryState.LOCKED
        logger.info("Boundary locked")
        self._changed()

    def unlock(self) -> None:
        self._require("unlock", BoundaryState.LOCKED)
        self._state = BoundaryState.UNLOCKED
        logger.info("Boundary unlocked for editing")
        self._changed()

    def drag_corner(self, index: int, point: PointLike) -> None:
        self._require("drag a corner", BoundaryState.UNLOCKED)
        if not 0 <= index < len(self._corners):
            raise IndexError(f"Corner index {index} out of range 0-{len(self._corners) - 1}")
        corners = list(self._corners)
        corners[index] = _as_coordinate(point)
        validate_ring(corners)
        self._set_corners(corners)
        self._changed()

    def drag_whole_boundary(self, dlat: float, dlng: float) -> None:
        """Translate every corner by the same offset in degrees"""
        self._require("drag the boundary", BoundaryState.UNLOCKED)
        self._set_corners(translate_ring(self._corners, dlat, dlng))
        self._changed()

    def move_boundary_to(self, center: PointLike) -> None:
        """Drag the boundary so the midpoint of corners 0 and 2 lands on center"""
        self._require("drag the boundary", BoundaryState.UNLOCKED)
        target = _as_coordinate(center)
        current = self.center
        self.drag_whole_boundary(target.lat - current.lat, target.lng - current.lng)

    @property
    def center(self) -> Optional[Coordinate]:
        """Midpoint of the diagonal between corners 0 and 2"""
        if not self._corners:
            return None
        a, c = self._corners[0], self._corners[2]
        return Coordinate((a.lat + c.lat) / 2, (a.lng + c.lng) / 2)

    def ai_detect(self, ring: Sequence[PointLike]) -> None:
        """
        Accept an AI-detected boundary and lock it immediately.

        Four distinct points are used as the corners in order; any other
        valid ring is reduced to its minimum rotated rectangle.
        """
        coords = [_as_coordinate(p) for p in ring]
        validate_ring(coords)
        points = distinct_points(open_ring(coords))
        if len(points) == 4:
            corners = points
        else:
            try:
                corners = minimum_rectangle_corners(points)
            except ValueError as e:
                raise InvalidGeometry(f"Detected boundary has no enclosing rectangle: {e}") from e
            logger.debug(f"Reduced {len(points)}-point detection to its minimum rectangle")

        self._source = BoundarySource.AI
        self._set_corners(corners)
        self._state = BoundaryState.LOCKED
        logger.info(f"AI boundary detected and locked: {self._area_sqft:,.0f} sq ft")
        self._changed()

    def clear(self) -> None:
        self._corners = []
        self._source = None
        self._area_sqft = None
        self._state = BoundaryState.EMPTY
        self.epoch += 1
        logger.debug("Boundary cleared")
        self._changed()

    def to_geojson(self) -> Dict[str, Any]:
        return {
            "type": "Feature",
            "geometry": {
                "type": "Polygon",
                "coordinates": [ring_to_lng_lat(self.path)]
            } if self._corners else None,
            "properties": {
                "state": self._state.value,
                "source": self._source.value if self._source else None,
                "locked": self.locked,
                "area_sqft": round(self._area_sqft, 2) if self._area_sqft is not None else None,
            }
        }
