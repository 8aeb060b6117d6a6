"""
Constraint data models

Data classes for the canonical constraint set produced by the normalizer and
the typed polygons the constraint layer displays.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..geometry import Coordinate, Ring, ring_to_lng_lat


class ConstraintKind(Enum):
    """Constraint polygon kinds"""
    PROPERTY = "property"
    STRUCTURE = "structure"
    SETBACK = "setback"
    FRONT_YARD = "frontYard"
    BUILDABLE_AREA = "buildableArea"


# Kinds whose area is subtracted from the property area
OBSTRUCTION_KINDS = frozenset({ConstraintKind.STRUCTURE})


@dataclass(frozen=True)
class PolygonStyle:
    """Display style for a polygon on the map surface"""
    stroke_color: str
    fill_color: str
    stroke_opacity: float = 0.9
    stroke_weight: int = 2
    fill_opacity: float = 0.35
    z_index: int = 0
    editable: bool = False
    draggable: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strokeColor": self.stroke_color,
            "strokeOpacity": self.stroke_opacity,
            "strokeWeight": self.stroke_weight,
            "fillColor": self.fill_color,
            "fillOpacity": self.fill_opacity,
            "zIndex": self.z_index,
            "editable": self.editable,
            "draggable": self.draggable,
        }


CONSTRAINT_STYLES: Dict[ConstraintKind, PolygonStyle] = {
    ConstraintKind.PROPERTY: PolygonStyle("#0066FF", "#0066FF", fill_opacity=0.2, z_index=0),
    ConstraintKind.SETBACK: PolygonStyle("#FFA000", "#FFA000", fill_opacity=0.15, z_index=1),
    ConstraintKind.FRONT_YARD: PolygonStyle("#FDD835", "#FDD835", fill_opacity=0.2, z_index=1),
    ConstraintKind.BUILDABLE_AREA: PolygonStyle("#059669", "#34D399", fill_opacity=0.3, z_index=2),
    ConstraintKind.STRUCTURE: PolygonStyle("#FF4444", "#FF4444", fill_opacity=0.4, z_index=3),
}

# Boundary being edited by the user
BOUNDARY_STYLE = PolygonStyle("#2196F3", "#90CAF9", stroke_opacity=0.8, fill_opacity=0.35)

# Placed building footprint
FOOTPRINT_STYLE = PolygonStyle(
    "#059669", "#34D399", stroke_opacity=1.0, fill_opacity=0.4, z_index=4,
    editable=True, draggable=True
)


@dataclass(frozen=True)
class Constraint:
    """
    A typed polygon shown on the map.

    Constraints are never mutated; the layer replaces the whole set on
    every rebuild.
    """
    kind: ConstraintKind
    ring: Tuple[Coordinate, ...]
    area_sqft: float
    label: Optional[str] = None

    @property
    def style(self) -> PolygonStyle:
        return CONSTRAINT_STYLES[self.kind]

    def to_geojson(self) -> Dict[str, Any]:
        """Convert to GeoJSON format"""
        return {
            "type": "Feature",
            "geometry": {
                "type": "Polygon",
                "coordinates": [ring_to_lng_lat(self.ring)]
            },
            "properties": {
                "kind": self.kind.value,
                "area_sqft": round(self.area_sqft, 2),
                "label": self.label,
            }
        }


@dataclass
class StructureFootprint:
    """An existing structure detected on the parcel"""
    type: str
    ring: Ring


@dataclass
class Setbacks:
    """Setback distances in feet, with the setback polygon when supplied"""
    front: float = 0.0
    back: float = 0.0
    left: float = 0.0
    right: float = 0.0
    ring: Optional[Ring] = None

    @property
    def any_distance(self) -> bool:
        return any(d > 0 for d in (self.front, self.back, self.left, self.right))


@dataclass
class BuildableArea:
    """A candidate area for construction"""
    ring: Ring
    suitability: str = "good"
    notes: List[str] = field(default_factory=list)


@dataclass
class ConstraintSet:
    """
    Canonical constraints for one parcel.

    Every ring is closed and has at least 3 points; absent data is an empty
    ring or list, never a partial one.
    """
    property_boundary: Ring = field(default_factory=list)
    structures: List[StructureFootprint] = field(default_factory=list)
    setbacks: Setbacks = field(default_factory=Setbacks)
    buildable_areas: List[BuildableArea] = field(default_factory=list)
    front_yard: Ring = field(default_factory=list)

    # Buildable area the vision service reported as a number, in sq ft
    reported_buildable_sqft: Optional[float] = None

    @property
    def has_property_boundary(self) -> bool:
        return bool(self.property_boundary)

    @property
    def is_empty(self) -> bool:
        return not (self.property_boundary or self.structures or self.buildable_areas)


@dataclass(frozen=True)
class AreaSummary:
    """
    Aggregate areas of one rebuild, in square feet.

    `total_buildable_sqft` is the property area minus structure areas and is
    None when there is no property boundary. `estimated_buildable_sqft`
    prefers the figure reported by the vision service, else applies the
    heuristic ratio to the total constrained area.
    """
    property_sqft: Optional[float]
    structures_sqft: float
    total_buildable_sqft: Optional[float]
    total_constrained_sqft: Optional[float]
    estimated_buildable_sqft: Optional[float]
    estimate_source: Optional[str]  # "reported" | "heuristic"
    constraint_count: int

    def to_dict(self) -> Dict[str, Any]:
        def _round(value: Optional[float]) -> Optional[float]:
            return None if value is None else round(value, 2)

        return {
            "property_sqft": _round(self.property_sqft),
            "structures_sqft": _round(self.structures_sqft),
            "total_buildable_sqft": _round(self.total_buildable_sqft),
            "total_constrained_sqft": _round(self.total_constrained_sqft),
            "estimated_buildable_sqft": _round(self.estimated_buildable_sqft),
            "estimate_source": self.estimate_source,
            "constraint_count": self.constraint_count,
        }
