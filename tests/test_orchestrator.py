"""Tests for aduplanner/vision/orchestrator.py with fake capture and transport."""
import asyncio
import json
import threading

import pytest
from PIL import Image

from aduplanner.boundary import BoundaryEditSession, BoundarySource, BoundaryState
from aduplanner.constraints import ConstraintKind, ConstraintLayerEngine, ConstraintSet, normalize_constraints
from aduplanner.errors import MalformedResponse, MissingViewport, RequestInProgress, ServiceError
from aduplanner.models import PropertyAnalysis
from aduplanner.surface import InMemoryMapSurface
from aduplanner.vision import StaticImageCapture, VisionRequestOrchestrator
from conftest import CENTER, as_points, rect, square


class FakeClient:
    """Answers each request with the next queued body (or raises it)."""

    def __init__(self, *bodies, on_request=None):
        self.bodies = list(bodies)
        self.requests = []
        self.on_request = on_request

    def analyze(self, request):
        self.requests.append(request)
        if self.on_request:
            self.on_request()
        body = self.bodies.pop(0)
        if isinstance(body, Exception):
            raise body
        return body


class Harness:
    def __init__(self, *bodies, surface=None, on_request=None):
        self.surface = surface or InMemoryMapSurface(center=CENTER, zoom=19)
        self.session = BoundaryEditSession()
        self.engine = ConstraintLayerEngine(self.surface)
        self.client = FakeClient(*bodies, on_request=on_request)
        self.orchestrator = VisionRequestOrchestrator(
            self.surface,
            self.session,
            self.engine,
            client=self.client,
            capture=StaticImageCapture(Image.new("RGB", (8, 8), (40, 120, 40))),
        )


BOUNDARY = rect(CENTER, 60, 90)
CORNERS_BODY = {"corners": as_points(BOUNDARY[:4])}


# --- boundary detection ---

def test_detect_boundary_locks_ai_boundary():
    h = Harness(CORNERS_BODY)
    result = asyncio.run(h.orchestrator.detect_boundary())
    assert result.type == "property"
    assert h.session.state == BoundaryState.LOCKED
    assert h.session.source == BoundarySource.AI
    assert h.session.corners == BOUNDARY[:4]
    assert not h.orchestrator.is_busy


def test_fenced_raw_corners_match_plain():
    fenced = Harness({"raw": "```json\n" + json.dumps(CORNERS_BODY) + "\n```"})
    asyncio.run(fenced.orchestrator.detect_boundary())
    plain = Harness(CORNERS_BODY)
    asyncio.run(plain.orchestrator.detect_boundary())
    assert fenced.session.corners == plain.session.corners


def test_request_body_carries_viewport():
    h = Harness(CORNERS_BODY)
    asyncio.run(h.orchestrator.detect_boundary())
    wire = h.client.requests[0].to_wire()
    assert wire["type"] == "property"
    assert wire["propertyCenter"] == {"lat": CENTER.lat, "lng": CENTER.lng}
    assert wire["zoomLevel"] == 19
    assert wire["image"].startswith("data:image/jpeg;base64,")
    assert "four corners" in wire["prompt"]


def test_invalid_corners_leave_session_untouched():
    h = Harness({"corners": [{"lat": 1, "lng": 2}]})
    with pytest.raises(MalformedResponse):
        asyncio.run(h.orchestrator.detect_boundary())
    assert h.session.state == BoundaryState.EMPTY


def test_detect_boundary_rejects_general_type():
    h = Harness()
    with pytest.raises(ValueError):
        asyncio.run(h.orchestrator.detect_boundary("general"))


# --- constraints ---

def test_constraints_request_rebuilds_layer(constraints_payload):
    h = Harness({"raw": "...", "processed": constraints_payload})
    result = asyncio.run(h.orchestrator.detect_boundary("constraints"))
    assert result.summary.total_buildable_sqft == pytest.approx(8800, rel=0.01)
    assert h.engine.summary == result.summary
    assert ConstraintKind.PROPERTY in [c.kind for c in h.engine.constraints]
    assert h.session.state == BoundaryState.LOCKED
    assert "zoom level 19" in h.client.requests[0].prompt


def test_constraints_parsed_from_raw(constraints_payload):
    h = Harness({"raw": "Analysis:\n" + json.dumps(constraints_payload)})
    result = asyncio.run(h.orchestrator.analyze_constraints())
    assert result.constraint_set.has_property_boundary


def test_constraints_read_from_raw_when_processed_is_qualitative(constraints_payload):
    summary_shape = PropertyAnalysis.from_constraint_set(normalize_constraints(constraints_payload)).to_wire()
    h = Harness({"raw": "```json\n" + json.dumps(constraints_payload) + "\n```", "processed": summary_shape})
    result = asyncio.run(h.orchestrator.analyze_constraints())
    assert result.constraint_set.has_property_boundary
    assert [s.type for s in result.constraint_set.structures] == ["main_house"]
    assert result.summary.total_buildable_sqft == pytest.approx(8800, rel=0.01)
    assert h.session.state == BoundaryState.LOCKED


def test_qualitative_processed_with_unusable_raw(constraints_payload):
    summary_shape = PropertyAnalysis.from_constraint_set(normalize_constraints(constraints_payload)).to_wire()
    h = Harness({"raw": "I could not find the parcel.", "processed": summary_shape})
    with pytest.raises(MalformedResponse):
        asyncio.run(h.orchestrator.analyze_constraints())
    assert h.engine.constraints == []


def test_constraints_without_geometry_fail_without_overwrite(property_ring):
    h = Harness({"processed": {"setbacks": {"front": 20}}})
    h.engine.rebuild(ConstraintSet(property_boundary=property_ring))
    previous = h.engine.summary
    with pytest.raises(MalformedResponse):
        asyncio.run(h.orchestrator.analyze_constraints())
    assert h.engine.summary == previous


def test_service_error_propagates_and_keeps_state(property_ring):
    h = Harness(ServiceError("Vision analysis failed", 500))
    h.session.ai_detect(square(CENTER, 100))
    h.engine.rebuild(ConstraintSet(property_boundary=property_ring))
    corners = h.session.corners
    previous = h.engine.summary
    with pytest.raises(ServiceError, match="^Vision analysis failed$"):
        asyncio.run(h.orchestrator.analyze_constraints())
    assert h.session.corners == corners
    assert h.engine.summary == previous
    assert not h.orchestrator.is_busy


def test_missing_viewport_dispatches_nothing():
    h = Harness(CORNERS_BODY, surface=InMemoryMapSurface())
    with pytest.raises(MissingViewport):
        asyncio.run(h.orchestrator.detect_boundary())
    assert h.client.requests == []
    assert not h.orchestrator.is_busy


def test_zoom_zero_is_sent_as_is():
    h = Harness(CORNERS_BODY, surface=InMemoryMapSurface(center=CENTER, zoom=0))
    asyncio.run(h.orchestrator.detect_boundary())
    request = h.client.requests[0]
    assert request.zoom_level == 0
    assert "zoom level 0." in request.prompt


# --- general ---

def test_general_analysis_does_not_touch_map():
    body = {"processed": {
        "structures": [{"type": "garage", "condition": "poor", "location": "rear", "notes": []}],
        "buildableAreas": [{"location": "backyard", "suitability": "excellent", "estimatedSize": "800 sq ft"}],
    }}
    h = Harness(body)
    result = asyncio.run(h.orchestrator.analyze_general())
    assert result.analysis.structures[0].condition == "poor"
    assert result.analysis.buildable_areas[0].estimated_size == "800 sq ft"
    assert h.engine.constraints == []
    assert h.session.state == BoundaryState.EMPTY


def test_general_analysis_invalid_shape():
    h = Harness({"processed": {"structures": [{"condition": "poor"}]}})
    with pytest.raises(MalformedResponse):
        asyncio.run(h.orchestrator.analyze_general())


def test_response_without_payload():
    h = Harness({})
    with pytest.raises(MalformedResponse):
        asyncio.run(h.orchestrator.analyze_general())


# --- concurrency ---

def test_second_request_rejected_while_busy():
    release = threading.Event()
    h = Harness({"processed": {}}, on_request=lambda: release.wait(5))

    async def scenario():
        first = asyncio.create_task(h.orchestrator.analyze_general())
        await asyncio.sleep(0)
        assert h.orchestrator.is_busy
        with pytest.raises(RequestInProgress):
            await h.orchestrator.analyze_general()
        release.set()
        return await first

    result = asyncio.run(scenario())
    assert result.analysis is not None
    assert len(h.client.requests) == 1
    assert not h.orchestrator.is_busy


def test_response_discarded_after_clear():
    h = Harness(CORNERS_BODY, {"processed": {}})
    h.client.on_request = h.session.clear
    assert asyncio.run(h.orchestrator.detect_boundary()) is None
    assert h.session.state == BoundaryState.EMPTY
    assert h.session.corners == []


def test_failure_discarded_after_clear():
    h = Harness(ServiceError("Vision analysis failed", 500))
    h.client.on_request = h.session.clear
    assert asyncio.run(h.orchestrator.analyze_constraints()) is None
    assert not h.orchestrator.is_busy


def test_response_discarded_after_invalidate(constraints_payload):
    h = Harness({"processed": constraints_payload})
    h.client.on_request = h.orchestrator.invalidate
    assert asyncio.run(h.orchestrator.analyze_constraints()) is None
    assert h.engine.constraints == []
    # A fresh request afterwards is applied normally
    h.client.on_request = None
    h.client.bodies.append({"processed": constraints_payload})
    assert asyncio.run(h.orchestrator.analyze_constraints()) is not None
