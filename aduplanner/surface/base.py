"""
Map display surface capability

The constraint layer and the vision orchestrator only talk to the map through
this small interface: attach/detach polygons and read the viewport.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Optional, Protocol, Sequence

from ..geometry import Coordinate

# Web Mercator ground resolution at zoom 0 for 256px tiles, meters per pixel
METERS_PER_PIXEL_Z0 = 156543.03392

METERS_PER_DEGREE_LAT = 111320.0


@dataclass(frozen=True)
class ViewportBounds:
    """Viewport bounding box in decimal degrees"""
    north: float
    south: float
    east: float
    west: float

    @property
    def center(self) -> Coordinate:
        return Coordinate((self.north + self.south) / 2, (self.east + self.west) / 2)

    def contains(self, point: Coordinate) -> bool:
        return self.south <= point.lat <= self.north and self.west <= point.lng <= self.east

    def to_dict(self) -> Dict[str, float]:
        return {"north": self.north, "south": self.south, "east": self.east, "west": self.west}

    @classmethod
    def around(cls, center: Coordinate, radius_m: float) -> "ViewportBounds":
        """Square bounds extending radius_m from center in each direction"""
        dlat = radius_m / METERS_PER_DEGREE_LAT
        dlng = radius_m / (METERS_PER_DEGREE_LAT * math.cos(math.radians(center.lat)))
        return cls(
            north=center.lat + dlat,
            south=center.lat - dlat,
            east=center.lng + dlng,
            west=center.lng - dlng,
        )

    @classmethod
    def from_zoom(
        cls,
        center: Coordinate,
        zoom: float,
        width_px: int = 640,
        height_px: int = 640
    ) -> "ViewportBounds":
        """Bounds of a width x height pixel viewport at a Web Mercator zoom level"""
        meters_per_px = METERS_PER_PIXEL_Z0 * math.cos(math.radians(center.lat)) / (2 ** zoom)
        half_h = height_px * meters_per_px / 2
        half_w = width_px * meters_per_px / 2
        dlat = half_h / METERS_PER_DEGREE_LAT
        dlng = half_w / (METERS_PER_DEGREE_LAT * math.cos(math.radians(center.lat)))
        return cls(
            north=center.lat + dlat,
            south=center.lat - dlat,
            east=center.lng + dlng,
            west=center.lng - dlng,
        )


class MapDisplaySurface(Protocol):
    """
    Capability interface of the map widget.

    `style` is a PolygonStyle; handles are opaque and only meaningful to the
    surface that issued them.
    """

    def attach_polygon(self, ring: Sequence[Coordinate], style: Any) -> Hashable:
        ...

    def detach_polygon(self, handle: Hashable) -> None:
        ...

    def get_viewport_bounds(self) -> Optional[ViewportBounds]:
        ...

    def get_center(self) -> Optional[Coordinate]:
        ...

    def get_zoom(self) -> Optional[float]:
        ...
