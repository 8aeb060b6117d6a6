"""
Vision request orchestrator

Captures the viewport, sends it to the vision service and routes the result:
boundary detections go to the boundary edit session, constraint analyses to
the constraint layer engine, and general analyses back to the caller.

One request may be outstanding at a time. A response that arrives after the
boundary session was cleared (or after invalidate()) is discarded.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from loguru import logger
from pydantic import ValidationError

from ..boundary.session import BoundaryEditSession
from ..config import get_config
from ..constraints.layer import ConstraintLayerEngine
from ..constraints.models import AreaSummary, ConstraintSet
from ..constraints.normalizer import has_constraint_geometry, normalize_constraints
from ..errors import InvalidGeometry, MalformedResponse, MissingViewport, PlannerError, RequestInProgress
from ..models import BoundaryCorners, LatLng, PropertyAnalysis, VisionRequest
from ..surface.base import MapDisplaySurface, ViewportBounds
from .capture import MapboxViewportCapture, ViewportCapture
from .client import VisionServiceClient
from .parsing import parse_model_json
from .prompts import build_prompt


@dataclass
class AnalysisResult:
    """Outcome of one applied vision request"""
    type: str
    raw: str = ""
    constraint_set: Optional[ConstraintSet] = None
    summary: Optional[AreaSummary] = None
    analysis: Optional[PropertyAnalysis] = None


def extract_payload(body: Dict[str, Any]) -> Dict[str, Any]:
    """The processed object of a response, parsing the raw model text when needed"""
    processed = body.get("processed")
    if isinstance(processed, dict):
        return processed
    raw = body.get("raw")
    if isinstance(raw, str) and raw.strip():
        return parse_model_json(raw)
    raise MalformedResponse("Vision response has neither a processed object nor raw text")


def extract_constraints_payload(body: Dict[str, Any]) -> Dict[str, Any]:
    """
    The constraint geometry of a `constraints` response.

    The service may put a qualitative summary in `processed` and keep the
    rings only in the raw model text, so `processed` is used only when it
    carries geometry.
    """
    processed = body.get("processed")
    if isinstance(processed, dict) and has_constraint_geometry(processed):
        return processed
    raw = body.get("raw")
    if isinstance(raw, str) and raw.strip():
        if isinstance(processed, dict):
            logger.debug("Processed object has no constraint geometry, reading raw model output")
        return parse_model_json(raw)
    return extract_payload(body)


class VisionRequestOrchestrator:
    """Dispatches vision requests for one map view"""

    def __init__(
        self,
        surface: MapDisplaySurface,
        session: BoundaryEditSession,
        engine: ConstraintLayerEngine,
        client: Optional[VisionServiceClient] = None,
        capture: Optional[ViewportCapture] = None,
        default_zoom: Optional[float] = None
    ):
        self.surface = surface
        self.session = session
        self.engine = engine
        self.client = client or VisionServiceClient()
        self.capture = capture or MapboxViewportCapture()
        self.default_zoom = default_zoom if default_zoom is not None else get_config().imagery.default_zoom
        self._busy = False
        self._generation = 0

    @property
    def is_busy(self) -> bool:
        return self._busy

    def invalidate(self) -> None:
        """Discard the response of any request currently outstanding"""
        self._generation += 1

    def _token(self) -> Tuple[int, int]:
        return self.session.epoch, self._generation

    def _viewport(self) -> Tuple[ViewportBounds, Any, float]:
        bounds = self.surface.get_viewport_bounds()
        center = self.surface.get_center()
        if bounds is None or center is None:
            raise MissingViewport("Map bounds not available")
        zoom = self.surface.get_zoom()
        if zoom is None:
            zoom = self.default_zoom
        return bounds, center, zoom

    async def _request(self, analysis_type: str, prompt: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Capture and send one request.

        Returns the response body, or None when the session changed while the
        request was outstanding. Failures of such a request are dropped too.
        """
        if self._busy:
            raise RequestInProgress("A vision request is already in progress")
        bounds, center, zoom = self._viewport()

        self._busy = True
        token = self._token()
        try:
            captured = await asyncio.to_thread(self.capture.capture, bounds, zoom)
            request = VisionRequest(
                image=captured.data_url,
                prompt=build_prompt(analysis_type, center, zoom, prompt),
                property_center=LatLng.from_coordinate(center),
                zoom_level=zoom,
                type=analysis_type,
            )
            body = await asyncio.to_thread(self.client.analyze, request)
        except PlannerError as e:
            if self._token() != token:
                logger.info(f"Discarding stale {analysis_type} failure: {e}")
                return None
            raise
        finally:
            self._busy = False

        if self._token() != token:
            logger.info(f"Discarding stale {analysis_type} response")
            return None
        return body

    async def detect_boundary(
        self,
        analysis_type: str = "property",
        prompt: Optional[str] = None
    ) -> Optional[AnalysisResult]:
        """
        Detect the property boundary and lock it into the session.

        `constraints` requests also rebuild the constraint layer from the
        rest of the analysis.
        """
        if analysis_type == "constraints":
            return await self.analyze_constraints(prompt)
        if analysis_type != "property":
            raise ValueError(f"Boundary detection needs a 'property' or 'constraints' request, got {analysis_type!r}")

        body = await self._request("property", prompt)
        if body is None:
            return None

        corners = body.get("corners")
        if corners is None:
            corners = extract_payload(body).get("corners")
        try:
            detected = BoundaryCorners.model_validate({"corners": corners})
        except ValidationError as e:
            raise MalformedResponse(f"Invalid boundary corners in response: {e}") from e

        self.session.ai_detect(detected.to_ring())
        return AnalysisResult(type="property", raw=str(body.get("raw") or ""))

    async def analyze_constraints(self, prompt: Optional[str] = None) -> Optional[AnalysisResult]:
        """Run a constraints analysis and rebuild the constraint layer from it"""
        body = await self._request("constraints", prompt)
        if body is None:
            return None

        constraint_set = normalize_constraints(extract_constraints_payload(body), require_geometry=True)

        if constraint_set.property_boundary:
            try:
                self.session.ai_detect(constraint_set.property_boundary)
            except InvalidGeometry as e:
                logger.warning(f"Detected property boundary not usable for editing: {e}")

        summary = self.engine.rebuild(constraint_set)
        return AnalysisResult(
            type="constraints",
            raw=str(body.get("raw") or ""),
            constraint_set=constraint_set,
            summary=summary,
        )

    async def analyze_general(self, prompt: Optional[str] = None) -> Optional[AnalysisResult]:
        """Run a qualitative analysis; map state is not touched"""
        body = await self._request("general", prompt)
        if body is None:
            return None

        try:
            analysis = PropertyAnalysis.model_validate(extract_payload(body))
        except ValidationError as e:
            raise MalformedResponse(f"Invalid property analysis in response: {e}") from e

        logger.info(
            f"General analysis: {len(analysis.structures)} structures, "
            f"{len(analysis.buildable_areas)} buildable areas"
        )
        return AnalysisResult(type="general", raw=str(body.get("raw") or ""), analysis=analysis)
