"""
Viewport image capture

Produces the satellite image sent to the vision service. The Mapbox capture
downloads the tiles covering the viewport, merges them and crops to the exact
bounds.
"""

import base64
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Protocol, Tuple

import mercantile
import requests
from loguru import logger
from PIL import Image

from ..config import ImageryConfig, get_config
from ..errors import ServiceError
from ..surface.base import ViewportBounds


def image_to_data_url(image: Image.Image, quality: int = 90) -> str:
    """Encode an image as a base64 JPEG data URL"""
    if image.mode != "RGB":
        image = image.convert("RGB")
    buffer = BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


@dataclass
class CapturedImage:
    """A captured viewport image and the bounds it covers"""
    image: Image.Image
    bounds: ViewportBounds
    zoom: float
    data_url: str


class ViewportCapture(Protocol):
    def capture(self, bounds: ViewportBounds, zoom: float) -> CapturedImage:
        ...


class StaticImageCapture:
    """Capture that always returns a given image, e.g. a saved screenshot"""

    def __init__(self, image: Image.Image, quality: int = 90):
        self.image = image
        self.quality = quality

    @classmethod
    def from_file(cls, path: Path, quality: int = 90) -> "StaticImageCapture":
        with Image.open(path) as img:
            img.load()
            return cls(img.copy(), quality)

    def capture(self, bounds: ViewportBounds, zoom: float) -> CapturedImage:
        return CapturedImage(self.image, bounds, zoom, image_to_data_url(self.image, self.quality))


class MapboxViewportCapture:
    """
    Downloads and merges Mapbox satellite tiles for a viewport.

    Tiles are fetched at the viewport zoom, capped at the configured maximum.
    """

    def __init__(
        self,
        imagery_config: Optional[ImageryConfig] = None,
        session: Optional[requests.Session] = None,
        cache_dir: Optional[str] = None
    ):
        self.config = imagery_config or get_config().imagery
        self.session = session or requests.Session()
        self.cache_dir = Path(cache_dir) if cache_dir else None
        if self.cache_dir:
            self.cache_dir.mkdir(parents=True, exist_ok=True)

    def capture(self, bounds: ViewportBounds, zoom: float) -> CapturedImage:
        if not self.config.mapbox_access_token:
            raise ServiceError("MAPBOX_ACCESS_TOKEN not set - cannot capture satellite imagery")

        tile_zoom = max(1, min(int(round(zoom)), self.config.mapbox_max_zoom))
        tiles = list(mercantile.tiles(bounds.west, bounds.south, bounds.east, bounds.north, tile_zoom))
        if not tiles:
            raise ServiceError("No imagery tiles cover the viewport")

        logger.info(f"Downloading {len(tiles)} Mapbox tiles at zoom {tile_zoom}")
        tile_images = [(tile, self._download_tile(tile)) for tile in tiles]

        merged = self._merge_tiles(tile_images, bounds)
        logger.info(f"Captured viewport image {merged.size[0]}x{merged.size[1]}px")
        return CapturedImage(
            image=merged,
            bounds=bounds,
            zoom=zoom,
            data_url=image_to_data_url(merged, self.config.jpeg_quality),
        )

    def _tile_cache_path(self, tile: mercantile.Tile) -> Optional[Path]:
        if not self.cache_dir:
            return None
        return self.cache_dir / f"tile_{tile.z}_{tile.x}_{tile.y}.jpg"

    def _download_tile(self, tile: mercantile.Tile) -> Image.Image:
        cache_path = self._tile_cache_path(tile)
        if cache_path and cache_path.exists():
            try:
                with Image.open(cache_path) as img:
                    img.load()
                    return img.copy()
            except OSError as e:
                logger.warning(f"Failed to load cached tile {cache_path}: {e}")

        url = self.config.mapbox_satellite_url.format(
            z=tile.z, x=tile.x, y=tile.y, token=self.config.mapbox_access_token
        )
        try:
            response = self.session.get(url, timeout=self.config.request_timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise ServiceError(f"Failed to download tile {tile.z}/{tile.x}/{tile.y}: {e}") from e

        img = Image.open(BytesIO(response.content)).convert("RGB")
        if cache_path:
            img.save(cache_path, quality=95)
        return img

    def _merge_tiles(
        self,
        tile_images: List[Tuple[mercantile.Tile, Image.Image]],
        bounds: ViewportBounds
    ) -> Image.Image:
        """Paste tiles on a grid, then crop to the viewport bounds"""
        tile_size = self.config.tile_size
        min_x = min(tile.x for tile, _ in tile_images)
        max_x = max(tile.x for tile, _ in tile_images)
        min_y = min(tile.y for tile, _ in tile_images)
        max_y = max(tile.y for tile, _ in tile_images)

        merged_width = (max_x - min_x + 1) * tile_size
        merged_height = (max_y - min_y + 1) * tile_size
        merged = Image.new("RGB", (merged_width, merged_height), color=(0, 0, 0))

        for tile, img in tile_images:
            if img.size != (tile_size, tile_size):
                img = img.resize((tile_size, tile_size), Image.Resampling.LANCZOS)
            merged.paste(img, ((tile.x - min_x) * tile_size, (tile.y - min_y) * tile_size))

        # Web Mercator extent of the tile grid
        top_left = mercantile.xy_bounds(mercantile.Tile(min_x, min_y, tile_images[0][0].z))
        bottom_right = mercantile.xy_bounds(mercantile.Tile(max_x, max_y, tile_images[0][0].z))
        grid_left, grid_top = top_left.left, top_left.top
        grid_right, grid_bottom = bottom_right.right, bottom_right.bottom

        west, north = mercantile.xy(bounds.west, bounds.north)
        east, south = mercantile.xy(bounds.east, bounds.south)

        def to_px(x: float) -> int:
            return int((x - grid_left) / (grid_right - grid_left) * merged_width)

        def to_py(y: float) -> int:
            return int((grid_top - y) / (grid_top - grid_bottom) * merged_height)

        crop_left = max(0, min(to_px(west), merged_width - 1))
        crop_right = max(crop_left + 1, min(to_px(east), merged_width))
        crop_top = max(0, min(to_py(north), merged_height - 1))
        crop_bottom = max(crop_top + 1, min(to_py(south), merged_height))

        logger.debug(f"Cropping merged tiles to ({crop_left}, {crop_top}, {crop_right}, {crop_bottom})")
        return merged.crop((crop_left, crop_top, crop_right, crop_bottom))
