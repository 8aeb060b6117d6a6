"""
Pydantic models for the vision service wire format
Field names serialize to the camelCase keys the service expects
"""

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .constraints.models import ConstraintSet
from .constraints.normalizer import coerce_number
from .geometry import Coordinate, ring_area_sqft


AnalysisType = Literal["general", "constraints", "property"]
Rating = Literal["excellent", "good", "poor"]
PropertyType = Literal["single_family", "townhouse", "unknown"]

RATINGS = ("excellent", "good", "poor")
PROPERTY_TYPES = ("single_family", "townhouse", "unknown")


def _rating(value: Any) -> str:
    """Unknown or missing ratings read as "good", as the normalizer does"""
    text = str(value).strip().lower() if value is not None else ""
    return text if text in RATINGS else "good"


def _number(value: Any) -> float:
    number = coerce_number(value)
    return number if number is not None else 0.0


def _strings(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(v) for v in value if v is not None]
    return value


def _text(value: Any) -> str:
    return "" if value is None else str(value)


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# ============================================================
# Request / Response
# ============================================================

class LatLng(WireModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)

    @classmethod
    def from_coordinate(cls, point: Coordinate) -> "LatLng":
        return cls(lat=point.lat, lng=point.lng)

    def to_coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)


class VisionRequest(WireModel):
    image: str  # data URL
    prompt: str
    property_center: LatLng
    zoom_level: float
    type: AnalysisType = "general"


class BoundaryCorners(WireModel):
    """Response body of a `property` request"""
    corners: List[LatLng] = Field(min_length=3)

    def to_ring(self) -> List[Coordinate]:
        return [c.to_coordinate() for c in self.corners]


# ============================================================
# General (qualitative) analysis
# ============================================================

class StructureAssessment(WireModel):
    type: str
    condition: Rating = "good"
    location: str = ""
    notes: List[str] = Field(default_factory=list)

    @field_validator("condition", mode="before")
    @classmethod
    def coerce_condition(cls, v: Any) -> str:
        return _rating(v)

    @field_validator("location", mode="before")
    @classmethod
    def coerce_location(cls, v: Any) -> str:
        return _text(v)

    @field_validator("notes", mode="before")
    @classmethod
    def coerce_notes(cls, v: Any) -> Any:
        return _strings(v)


class SetbackAssessment(WireModel):
    front: float = 0
    back: float = 0
    left: float = 0
    right: float = 0
    notes: List[str] = Field(default_factory=list)

    @field_validator("front", "back", "left", "right", mode="before")
    @classmethod
    def coerce_distance(cls, v: Any) -> float:
        # Distances in feet; text such as "20 ft" is accepted
        return max(0.0, _number(v))

    @field_validator("notes", mode="before")
    @classmethod
    def coerce_notes(cls, v: Any) -> Any:
        return _strings(v)


class BuildableAreaAssessment(WireModel):
    location: str = ""
    suitability: Rating = "good"
    estimated_size: str = ""
    advantages: List[str] = Field(default_factory=list)
    challenges: List[str] = Field(default_factory=list)

    @field_validator("suitability", mode="before")
    @classmethod
    def coerce_suitability(cls, v: Any) -> str:
        return _rating(v)

    @field_validator("location", "estimated_size", mode="before")
    @classmethod
    def coerce_texts(cls, v: Any) -> str:
        return _text(v)

    @field_validator("advantages", "challenges", mode="before")
    @classmethod
    def coerce_lists(cls, v: Any) -> Any:
        return _strings(v)


class TerrainAssessment(WireModel):
    description: str = ""
    concerns: List[str] = Field(default_factory=list)
    opportunities: List[str] = Field(default_factory=list)

    @field_validator("description", mode="before")
    @classmethod
    def coerce_description(cls, v: Any) -> str:
        return _text(v)

    @field_validator("concerns", "opportunities", mode="before")
    @classmethod
    def coerce_lists(cls, v: Any) -> Any:
        return _strings(v)


class AccessAssessment(WireModel):
    best_routes: List[str] = Field(default_factory=list)
    privacy_features: List[str] = Field(default_factory=list)
    challenges: List[str] = Field(default_factory=list)

    @field_validator("best_routes", "privacy_features", "challenges", mode="before")
    @classmethod
    def coerce_lists(cls, v: Any) -> Any:
        return _strings(v)


class LocationRating(WireModel):
    location: str = ""
    rating: Rating = "good"
    reasons: List[str] = Field(default_factory=list)

    @field_validator("rating", mode="before")
    @classmethod
    def coerce_rating(cls, v: Any) -> str:
        return _rating(v)

    @field_validator("reasons", mode="before")
    @classmethod
    def coerce_reasons(cls, v: Any) -> Any:
        return _strings(v)


class ConstructionSuitability(WireModel):
    best_locations: List[LocationRating] = Field(default_factory=list)
    general_notes: List[str] = Field(default_factory=list)

    @field_validator("general_notes", mode="before")
    @classmethod
    def coerce_notes(cls, v: Any) -> Any:
        return _strings(v)


class PropertyAnalysis(WireModel):
    """
    Qualitative property analysis returned for `general` requests.

    Every section defaults to empty, so `PropertyAnalysis()` is the
    "nothing found" result.
    """
    property_type: PropertyType = "unknown"
    confidence: float = 0
    structures: List[StructureAssessment] = Field(default_factory=list)
    setbacks: SetbackAssessment = Field(default_factory=SetbackAssessment)
    buildable_areas: List[BuildableAreaAssessment] = Field(default_factory=list)
    terrain: TerrainAssessment = Field(default_factory=TerrainAssessment)
    access: AccessAssessment = Field(default_factory=AccessAssessment)
    construction_suitability: ConstructionSuitability = Field(default_factory=ConstructionSuitability)

    @field_validator("property_type", mode="before")
    @classmethod
    def coerce_property_type(cls, v: Any) -> str:
        text = str(v).strip().lower().replace("-", "_").replace(" ", "_") if v is not None else ""
        return text if text in PROPERTY_TYPES else "unknown"

    @field_validator("confidence", mode="before")
    @classmethod
    def coerce_confidence(cls, v: Any) -> float:
        return _number(v)

    @classmethod
    def from_constraint_set(cls, constraint_set: ConstraintSet) -> "PropertyAnalysis":
        """Describe a geometric constraint set in the qualitative format"""

        def at(point: Coordinate) -> str:
            return f"({point.lat:.6f}, {point.lng:.6f})"

        structures = [
            StructureAssessment(type=s.type, location=f"Located at coordinates {at(s.ring[0])}")
            for s in constraint_set.structures
        ]
        areas = []
        locations = []
        for area in constraint_set.buildable_areas:
            location = f"Area at coordinates {at(area.ring[0])}"
            areas.append(BuildableAreaAssessment(
                location=location,
                suitability=area.suitability,
                estimated_size=f"{ring_area_sqft(area.ring):,.0f} sq ft",
                challenges=list(area.notes),
            ))
            locations.append(LocationRating(
                location=location, rating=area.suitability, reasons=list(area.notes)
            ))

        setbacks = constraint_set.setbacks
        return cls(
            structures=structures,
            setbacks=SetbackAssessment(
                front=setbacks.front, back=setbacks.back, left=setbacks.left, right=setbacks.right
            ),
            buildable_areas=areas,
            terrain=TerrainAssessment(
                description="Analysis focused on property boundaries and setbacks"
            ),
            construction_suitability=ConstructionSuitability(best_locations=locations),
        )
