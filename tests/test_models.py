"""Tests for the pydantic wire models."""
import pytest
from pydantic import ValidationError

from aduplanner.constraints import BuildableArea, ConstraintSet, Setbacks, StructureFootprint
from aduplanner.models import BoundaryCorners, LatLng, PropertyAnalysis, VisionRequest
from conftest import CENTER, as_points, rect, square


def test_request_serializes_camel_case():
    request = VisionRequest(
        image="data:image/jpeg;base64,AAAA",
        prompt="p",
        property_center=LatLng.from_coordinate(CENTER),
        zoom_level=19,
        type="constraints",
    )
    wire = request.to_wire()
    assert set(wire) == {"image", "prompt", "propertyCenter", "zoomLevel", "type"}
    assert wire["propertyCenter"]["lat"] == CENTER.lat


def test_request_rejects_unknown_type():
    with pytest.raises(ValidationError):
        VisionRequest(image="x", prompt="p", property_center=LatLng(lat=0, lng=0), zoom_level=19, type="soil")


def test_latlng_range():
    with pytest.raises(ValidationError):
        LatLng(lat=91, lng=0)


def test_boundary_corners_to_ring():
    corners = BoundaryCorners.model_validate({"corners": as_points(square(CENTER, 100)[:4])})
    ring = corners.to_ring()
    assert len(ring) == 4
    assert ring[0] == square(CENTER, 100)[0]


def test_boundary_corners_minimum():
    with pytest.raises(ValidationError):
        BoundaryCorners.model_validate({"corners": as_points(square(CENTER, 100)[:2])})


def test_empty_analysis_defaults():
    analysis = PropertyAnalysis()
    assert analysis.property_type == "unknown"
    assert analysis.structures == []
    assert analysis.setbacks.front == 0
    assert analysis.construction_suitability.best_locations == []


def test_analysis_parses_camel_case():
    analysis = PropertyAnalysis.model_validate({
        "propertyType": "single_family",
        "confidence": 0.8,
        "buildableAreas": [{"location": "rear yard", "suitability": "good", "estimatedSize": "600 sq ft"}],
        "access": {"bestRoutes": ["side gate"], "privacyFeatures": [], "challenges": []},
        "constructionSuitability": {"bestLocations": [{"location": "rear", "rating": "excellent", "reasons": []}]},
    })
    assert analysis.property_type == "single_family"
    assert analysis.access.best_routes == ["side gate"]
    assert analysis.construction_suitability.best_locations[0].rating == "excellent"


def test_unknown_ratings_read_as_good():
    analysis = PropertyAnalysis.model_validate({
        "structures": [{"type": "house", "condition": "fair"}],
        "buildableAreas": [{"location": "side yard", "suitability": "Excellent"}, {"suitability": None}],
        "constructionSuitability": {"bestLocations": [{"location": "rear", "rating": "medium"}]},
    })
    assert analysis.structures[0].condition == "good"
    assert [a.suitability for a in analysis.buildable_areas] == ["excellent", "good"]
    assert analysis.construction_suitability.best_locations[0].rating == "good"


@pytest.mark.parametrize("value,expected", [
    ("multi_family", "unknown"),
    ("Single Family", "single_family"),
    (None, "unknown"),
    ("townhouse", "townhouse"),
])
def test_property_type_coerced(value, expected):
    assert PropertyAnalysis.model_validate({"propertyType": value}).property_type == expected


@pytest.mark.parametrize("value,expected", [("high", 0.0), (None, 0.0), ("0.85", 0.85), (0.7, 0.7)])
def test_confidence_coerced(value, expected):
    assert PropertyAnalysis.model_validate({"confidence": value}).confidence == pytest.approx(expected)


def test_setback_distances_coerced():
    analysis = PropertyAnalysis.model_validate({
        "setbacks": {"front": "20 ft", "back": None, "left": "unknown", "right": -5, "notes": None},
    })
    assert analysis.setbacks.front == 20
    assert analysis.setbacks.back == 0
    assert analysis.setbacks.left == 0
    assert analysis.setbacks.right == 0
    assert analysis.setbacks.notes == []


def test_null_lists_and_text():
    analysis = PropertyAnalysis.model_validate({
        "structures": [{"type": "garage", "location": None, "notes": "needs roof work"}],
        "terrain": {"description": None, "concerns": None},
        "access": {"bestRoutes": None},
    })
    assert analysis.structures[0].location == ""
    assert analysis.structures[0].notes == ["needs roof work"]
    assert analysis.terrain.concerns == []
    assert analysis.access.best_routes == []


def test_structure_type_still_required():
    with pytest.raises(ValidationError):
        PropertyAnalysis.model_validate({"structures": [{"condition": "poor"}]})


def test_from_constraint_set():
    area_ring = rect(CENTER.offset(-0.0001, 0), 20, 30)
    constraint_set = ConstraintSet(
        property_boundary=square(CENTER, 100),
        structures=[StructureFootprint(type="garage", ring=rect(CENTER, 20, 20))],
        setbacks=Setbacks(front=20, back=10, left=5, right=5),
        buildable_areas=[BuildableArea(ring=area_ring, suitability="excellent", notes=["flat"])],
    )
    analysis = PropertyAnalysis.from_constraint_set(constraint_set)
    assert analysis.structures[0].type == "garage"
    assert analysis.setbacks.back == 10
    size = analysis.buildable_areas[0].estimated_size
    assert size.endswith(" sq ft")
    assert int(size.split()[0].replace(",", "")) == pytest.approx(600, rel=0.01)
    assert analysis.buildable_areas[0].challenges == ["flat"]
    assert analysis.construction_suitability.best_locations[0].rating == "excellent"
