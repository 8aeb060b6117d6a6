"""
Configuration settings for ADU Planner
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import os

from loguru import logger

try:
    from dotenv import load_dotenv
    HAS_DOTENV = True
except ImportError:
    HAS_DOTENV = False


@dataclass
class VisionServiceConfig:
    """Vision analysis service endpoint and request settings"""
    base_url: str = "http://localhost:3000"
    analyze_path: str = "/api/vision/analyze"

    # Request settings
    request_timeout: int = 90  # Vision calls with large images are slow
    max_retries: int = 3
    retry_delay: float = 1.0

    user_agent: str = "ADUPlanner/1.0"

    @property
    def analyze_url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.analyze_path.lstrip("/")


@dataclass
class ImageryConfig:
    """Satellite imagery capture settings"""
    mapbox_satellite_url: str = (
        "https://api.mapbox.com/styles/v1/mapbox/satellite-v9/tiles/{z}/{x}/{y}"
        "?access_token={token}"
    )
    mapbox_access_token: str = ""
    mapbox_max_zoom: int = 20
    default_zoom: int = 19
    tile_size: int = 512  # Mapbox style tiles are 512x512
    jpeg_quality: int = 90
    capture_radius_m: float = 40.0  # Half-width of the viewport used by the CLI
    request_timeout: int = 30


@dataclass
class AnalysisConfig:
    """Buildable area analysis settings"""
    # Share of the constrained area assumed buildable when the vision
    # service reports no figure of its own
    heuristic_buildable_ratio: float = 0.6


@dataclass
class PlannerConfig:
    """Top-level configuration"""
    vision: VisionServiceConfig = field(default_factory=VisionServiceConfig)
    imagery: ImageryConfig = field(default_factory=ImageryConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)


def load_env(env_file: Optional[str] = None) -> bool:
    """
    Load a .env file if python-dotenv is available.

    Looks in the project root, the current directory and the home directory,
    in that order. Existing environment variables are never overridden.
    """
    if not HAS_DOTENV:
        logger.debug("python-dotenv not installed - .env file support unavailable")
        return False

    if env_file:
        return load_dotenv(env_file, override=False)

    env_paths = [
        Path(__file__).parent.parent / ".env",
        Path.cwd() / ".env",
        Path.home() / ".env",
    ]
    for env_path in env_paths:
        if env_path.exists():
            load_dotenv(env_path, override=False)
            logger.debug(f"Loaded .env file from {env_path}")
            return True
    return False


def apply_env(config: PlannerConfig) -> PlannerConfig:
    """Apply environment overrides to a config instance"""
    service_url = os.getenv("ADU_VISION_SERVICE_URL")
    if service_url:
        config.vision.base_url = service_url

    token = os.getenv("MAPBOX_ACCESS_TOKEN")
    if token:
        config.imagery.mapbox_access_token = token

    return config


# Global config instance
config = PlannerConfig()


def get_config() -> PlannerConfig:
    """Get global configuration"""
    return config


def validate_config(config: PlannerConfig) -> None:
    """
    Validate that all required configuration values are set.
    Raises ValueError if any required value is missing or invalid.
    """
    errors = []

    if not config.vision.base_url:
        errors.append("vision.base_url is required but not set")
    elif not config.vision.base_url.startswith(("http://", "https://")):
        errors.append(f"vision.base_url must be an http(s) URL, got {config.vision.base_url!r}")

    if config.vision.request_timeout <= 0:
        errors.append(f"vision.request_timeout must be positive, got {config.vision.request_timeout}")

    if config.vision.max_retries < 1:
        errors.append(f"vision.max_retries must be at least 1, got {config.vision.max_retries}")

    if config.imagery.mapbox_max_zoom < 1 or config.imagery.mapbox_max_zoom > 22:
        errors.append(f"imagery.mapbox_max_zoom must be between 1 and 22, got {config.imagery.mapbox_max_zoom}")

    if not 1 <= config.imagery.jpeg_quality <= 100:
        errors.append(f"imagery.jpeg_quality must be between 1 and 100, got {config.imagery.jpeg_quality}")

    ratio = config.analysis.heuristic_buildable_ratio
    if ratio < 0 or ratio > 1:
        errors.append(f"analysis.heuristic_buildable_ratio must be within [0, 1], got {ratio}")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)
