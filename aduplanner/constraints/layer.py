"""
Constraint layer engine

Owns the constraint polygons shown on a map surface. Every rebuild detaches
the previous polygons and attaches a fresh set; constraints are never edited
in place.
"""

from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence

from loguru import logger

from ..config import AnalysisConfig, get_config
from ..errors import InvalidGeometry
from ..geometry import Coordinate, derive_setback_ring, ring_area_sqft, validate_ring
from ..surface.base import MapDisplaySurface
from .models import (
    OBSTRUCTION_KINDS,
    AreaSummary,
    Constraint,
    ConstraintKind,
    ConstraintSet,
)

SummaryObserver = Callable[[AreaSummary], None]


def summarize_constraints(
    constraints: Sequence[Constraint],
    reported_buildable_sqft: Optional[float] = None,
    heuristic_ratio: float = 0.6
) -> AreaSummary:
    """
    Aggregate the areas of a constraint list.

    Geometric buildable area is the property area minus structure areas,
    floored at 0, and only reported when a property boundary exists. The
    estimate prefers a reported figure and otherwise applies heuristic_ratio
    to the constrained area (the property, else the buildable areas).
    """
    property_areas = [c.area_sqft for c in constraints if c.kind == ConstraintKind.PROPERTY]
    structures_sqft = sum(c.area_sqft for c in constraints if c.kind in OBSTRUCTION_KINDS)
    buildable_areas = [c.area_sqft for c in constraints if c.kind == ConstraintKind.BUILDABLE_AREA]

    property_sqft = sum(property_areas) if property_areas else None
    total_buildable = None
    if property_sqft is not None:
        total_buildable = max(0.0, property_sqft - structures_sqft)

    if property_sqft is not None:
        total_constrained = property_sqft
    elif buildable_areas:
        total_constrained = sum(buildable_areas)
    else:
        total_constrained = None

    if reported_buildable_sqft is not None:
        estimated, source = reported_buildable_sqft, "reported"
    elif total_constrained is not None:
        estimated, source = total_constrained * heuristic_ratio, "heuristic"
    else:
        estimated, source = None, None

    return AreaSummary(
        property_sqft=property_sqft,
        structures_sqft=structures_sqft,
        total_buildable_sqft=total_buildable,
        total_constrained_sqft=total_constrained,
        estimated_buildable_sqft=estimated,
        estimate_source=source,
        constraint_count=len(constraints),
    )


class ConstraintLayerEngine:
    """
    Keeps the displayed constraint polygons in sync with a ConstraintSet.

    The engine is the only writer of the polygons it attached and the only
    one that releases their handles.
    """

    def __init__(
        self,
        surface: MapDisplaySurface,
        on_constraints_ready: Optional[SummaryObserver] = None,
        analysis_config: Optional[AnalysisConfig] = None
    ):
        self.surface = surface
        self._observer = on_constraints_ready
        self.analysis_config = analysis_config or get_config().analysis
        self._handles: List[Hashable] = []
        self._constraints: List[Constraint] = []
        self._summary: Optional[AreaSummary] = None

    @property
    def constraints(self) -> List[Constraint]:
        return list(self._constraints)

    @property
    def summary(self) -> Optional[AreaSummary]:
        return self._summary

    def set_observer(self, observer: Optional[SummaryObserver]) -> None:
        self._observer = observer

    def _make_constraint(
        self,
        kind: ConstraintKind,
        ring: Sequence[Coordinate],
        label: Optional[str] = None
    ) -> Optional[Constraint]:
        try:
            closed = validate_ring(ring)
        except InvalidGeometry as e:
            logger.warning(f"Skipping {kind.value} constraint{f' ({label})' if label else ''}: {e}")
            return None
        area = ring_area_sqft(closed)
        logger.debug(f"{kind.value}{f' ({label})' if label else ''}: {area:.1f} sq ft")
        return Constraint(kind=kind, ring=tuple(closed), area_sqft=area, label=label)

    def _setback_ring(self, constraint_set: ConstraintSet) -> Optional[List[Coordinate]]:
        setbacks = constraint_set.setbacks
        if setbacks.ring:
            return setbacks.ring
        if setbacks.any_distance and constraint_set.has_property_boundary:
            return derive_setback_ring(
                constraint_set.property_boundary,
                setbacks.front, setbacks.back, setbacks.left, setbacks.right
            )
        return None

    def _build(self, constraint_set: ConstraintSet) -> List[Constraint]:
        candidates = []
        if constraint_set.property_boundary:
            candidates.append((ConstraintKind.PROPERTY, constraint_set.property_boundary, "Property boundary"))

        setback_ring = self._setback_ring(constraint_set)
        if setback_ring:
            candidates.append((ConstraintKind.SETBACK, setback_ring, "Setback"))

        if constraint_set.front_yard:
            candidates.append((ConstraintKind.FRONT_YARD, constraint_set.front_yard, "Front yard"))

        for structure in constraint_set.structures:
            candidates.append((ConstraintKind.STRUCTURE, structure.ring, structure.type))

        for area in constraint_set.buildable_areas:
            candidates.append((ConstraintKind.BUILDABLE_AREA, area.ring, area.suitability))

        constraints = []
        for kind, ring, label in candidates:
            constraint = self._make_constraint(kind, ring, label)
            if constraint is not None:
                constraints.append(constraint)
        return constraints

    def rebuild(self, constraint_set: ConstraintSet) -> AreaSummary:
        """
        Replace the displayed constraints with those of constraint_set.

        Malformed rings are skipped with a warning. The resulting summary is
        passed to the observer, if one is registered.
        """
        self.clear()

        constraints = self._build(constraint_set)
        for constraint in constraints:
            self._handles.append(self.surface.attach_polygon(list(constraint.ring), constraint.style))
        self._constraints = constraints

        summary = summarize_constraints(
            constraints,
            constraint_set.reported_buildable_sqft,
            self.analysis_config.heuristic_buildable_ratio
        )
        self._summary = summary

        if summary.total_buildable_sqft is not None:
            logger.info(
                f"Rebuilt {len(constraints)} constraints: "
                f"buildable {summary.total_buildable_sqft:,.0f} sq ft"
            )
        else:
            logger.info(f"Rebuilt {len(constraints)} constraints: no property boundary")

        if self._observer is not None:
            self._observer(summary)
        return summary

    def clear(self) -> None:
        """Detach every polygon this engine attached"""
        for handle in self._handles:
            self.surface.detach_polygon(handle)
        self._handles = []
        self._constraints = []
        self._summary = None

    def close(self) -> None:
        self.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def to_geojson(self) -> Dict[str, Any]:
        """Current constraints as a FeatureCollection, with the summary attached"""
        return {
            "type": "FeatureCollection",
            "features": [c.to_geojson() for c in self._constraints],
            "properties": self._summary.to_dict() if self._summary else {},
        }
