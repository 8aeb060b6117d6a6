"""
Map display surfaces

- MapDisplaySurface: capability interface consumed by the core
- InMemoryMapSurface: headless surface
- ImageMapSurface: renders polygons over a satellite image
"""

from .base import MapDisplaySurface, ViewportBounds
from .image import ImageMapSurface, coordinate_to_pixel, wgs84_to_web_mercator
from .memory import InMemoryMapSurface

__all__ = [
    "MapDisplaySurface",
    "ViewportBounds",
    "ImageMapSurface",
    "InMemoryMapSurface",
    "coordinate_to_pixel",
    "wgs84_to_web_mercator",
]
