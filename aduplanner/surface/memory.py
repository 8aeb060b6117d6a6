"""
Headless map surface

Keeps attached polygons in memory. Used by the CLI and tests in place of a
live map widget.
"""

import itertools
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from ..geometry import Coordinate, Ring, ring_to_lng_lat
from .base import ViewportBounds


class InMemoryMapSurface:
    """Map display surface backed by a dict of attached polygons"""

    def __init__(
        self,
        center: Optional[Coordinate] = None,
        zoom: Optional[float] = None,
        bounds: Optional[ViewportBounds] = None
    ):
        self._handles = itertools.count(1)
        self.polygons: Dict[int, Tuple[Ring, Any]] = {}
        self._center = center
        self._zoom = zoom
        self._bounds = bounds
        if bounds is None and center is not None and zoom is not None:
            self._bounds = ViewportBounds.from_zoom(center, zoom)

    def set_viewport(
        self,
        center: Coordinate,
        zoom: float,
        bounds: Optional[ViewportBounds] = None
    ) -> None:
        self._center = center
        self._zoom = zoom
        self._bounds = bounds or ViewportBounds.from_zoom(center, zoom)

    def attach_polygon(self, ring: Sequence[Coordinate], style: Any) -> int:
        handle = next(self._handles)
        self.polygons[handle] = (list(ring), style)
        logger.debug(f"Attached polygon {handle} ({len(ring)} points)")
        return handle

    def detach_polygon(self, handle: int) -> None:
        if self.polygons.pop(handle, None) is None:
            logger.warning(f"Detach of unknown polygon handle {handle}")

    def get_viewport_bounds(self) -> Optional[ViewportBounds]:
        return self._bounds

    def get_center(self) -> Optional[Coordinate]:
        return self._center

    def get_zoom(self) -> Optional[float]:
        return self._zoom

    @property
    def attached_rings(self) -> List[Ring]:
        return [ring for ring, _ in self.polygons.values()]

    def to_geojson(self) -> Dict[str, Any]:
        """Attached polygons as a GeoJSON FeatureCollection"""
        features = []
        for handle, (ring, style) in self.polygons.items():
            properties: Dict[str, Any] = {"handle": handle}
            if hasattr(style, "to_dict"):
                properties.update(style.to_dict())
            features.append({
                "type": "Feature",
                "geometry": {"type": "Polygon", "coordinates": [ring_to_lng_lat(ring)]},
                "properties": properties,
            })
        return {"type": "FeatureCollection", "features": features}
