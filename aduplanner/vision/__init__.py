"""
Vision service integration

- Viewport capture (Mapbox tiles or a static image)
- HTTP client for the analysis endpoint
- Tolerant parsing of model output
- Request orchestration and result routing
"""

from .capture import (
    CapturedImage,
    MapboxViewportCapture,
    StaticImageCapture,
    ViewportCapture,
    image_to_data_url,
)
from .client import VisionServiceClient
from .orchestrator import (
    AnalysisResult,
    VisionRequestOrchestrator,
    extract_constraints_payload,
    extract_payload,
)
from .parsing import parse_model_json, strip_code_fence
from .prompts import build_prompt

__all__ = [
    "CapturedImage",
    "MapboxViewportCapture",
    "StaticImageCapture",
    "ViewportCapture",
    "image_to_data_url",
    "VisionServiceClient",
    "AnalysisResult",
    "VisionRequestOrchestrator",
    "extract_constraints_payload",
    "extract_payload",
    "parse_model_json",
    "strip_code_fence",
    "build_prompt",
]
