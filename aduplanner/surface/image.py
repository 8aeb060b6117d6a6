"""
Image-backed map surface

Draws attached polygons over a captured satellite image. WGS84 points are
projected to pixels by linear interpolation in Web Mercator space between the
image bounds.
"""

import itertools
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger
from PIL import Image, ImageColor, ImageDraw
from pyproj import Transformer

from ..geometry import Coordinate, Ring, open_ring
from .base import ViewportBounds

_TO_WEB_MERCATOR = Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)


def wgs84_to_web_mercator(lng: float, lat: float) -> Tuple[float, float]:
    """
    Convert WGS84 (EPSG:4326) to Web Mercator (EPSG:3857)

    Returns:
        (x, y) in Web Mercator meters
    """
    return _TO_WEB_MERCATOR.transform(lng, lat)


def coordinate_to_pixel(
    point: Coordinate,
    bounds: ViewportBounds,
    image_size: Tuple[int, int]
) -> Tuple[int, int]:
    """
    Convert a coordinate to image pixel coordinates.

    Image Y grows downward, so north maps to row 0. Points outside the bounds
    are clamped to the image edge.
    """
    width, height = image_size
    x_west, y_north = wgs84_to_web_mercator(bounds.west, bounds.north)
    x_east, y_south = wgs84_to_web_mercator(bounds.east, bounds.south)
    x, y = wgs84_to_web_mercator(point.lng, point.lat)

    if x_east == x_west:
        px = width // 2
    else:
        px = int((x - x_west) / (x_east - x_west) * width)
    if y_north == y_south:
        py = height // 2
    else:
        py = int((y_north - y) / (y_north - y_south) * height)

    return max(0, min(px, width - 1)), max(0, min(py, height - 1))


def _rgba(color: str, opacity: float) -> Tuple[int, int, int, int]:
    r, g, b = ImageColor.getrgb(color)[:3]
    return r, g, b, int(round(255 * max(0.0, min(opacity, 1.0))))


class ImageMapSurface:
    """
    Map display surface rendering onto a PIL image.

    Polygons are kept until detached and drawn in z-index order by render().
    """

    def __init__(
        self,
        image: Image.Image,
        bounds: ViewportBounds,
        zoom: Optional[float] = None
    ):
        self.image = image
        self.bounds = bounds
        self.zoom = zoom
        self._handles = itertools.count(1)
        self.polygons: Dict[int, Tuple[Ring, Any]] = {}

    @classmethod
    def from_file(cls, path: Path, bounds: ViewportBounds, zoom: Optional[float] = None) -> "ImageMapSurface":
        return cls(Image.open(path), bounds, zoom)

    def attach_polygon(self, ring: Sequence[Coordinate], style: Any) -> int:
        handle = next(self._handles)
        self.polygons[handle] = (list(ring), style)
        return handle

    def detach_polygon(self, handle: int) -> None:
        if self.polygons.pop(handle, None) is None:
            logger.warning(f"Detach of unknown polygon handle {handle}")

    def get_viewport_bounds(self) -> Optional[ViewportBounds]:
        return self.bounds

    def get_center(self) -> Optional[Coordinate]:
        return self.bounds.center

    def get_zoom(self) -> Optional[float]:
        return self.zoom

    def _pixels(self, ring: Sequence[Coordinate]) -> List[Tuple[int, int]]:
        return [coordinate_to_pixel(p, self.bounds, self.image.size) for p in open_ring(ring)]

    def render(self) -> Image.Image:
        """Composite all attached polygons over the base image"""
        base = self.image.convert("RGBA")
        overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)

        ordered = sorted(self.polygons.values(), key=lambda item: getattr(item[1], "z_index", 0))
        for ring, style in ordered:
            pixels = self._pixels(ring)
            if len(pixels) < 3:
                continue
            draw.polygon(
                pixels,
                fill=_rgba(style.fill_color, style.fill_opacity),
                outline=_rgba(style.stroke_color, style.stroke_opacity),
                width=style.stroke_weight
            )

        logger.debug(f"Rendered {len(ordered)} polygons on {base.size[0]}x{base.size[1]} image")
        return Image.alpha_composite(base, overlay)

    def save(self, output_path: Path, quality: int = 95) -> Path:
        """Render and save; JPEG output is flattened onto a white background"""
        output_path = Path(output_path)
        result = self.render()
        if output_path.suffix.lower() in (".jpg", ".jpeg"):
            background = Image.new("RGB", result.size, (255, 255, 255))
            background.paste(result, mask=result.split()[3])
            result = background
        output_path.parent.mkdir(parents=True, exist_ok=True)
        result.save(output_path, quality=quality)
        logger.info(f"Saved overlay image to: {output_path}")
        return output_path
