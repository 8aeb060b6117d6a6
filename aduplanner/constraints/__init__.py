"""
Constraint normalization and the constraint layer engine
"""

from .models import (
    BOUNDARY_STYLE,
    CONSTRAINT_STYLES,
    FOOTPRINT_STYLE,
    OBSTRUCTION_KINDS,
    AreaSummary,
    BuildableArea,
    Constraint,
    ConstraintKind,
    ConstraintSet,
    PolygonStyle,
    Setbacks,
    StructureFootprint,
)
from .normalizer import coerce_number, has_constraint_geometry, iter_rings, normalize_constraints
from .layer import ConstraintLayerEngine, summarize_constraints

__all__ = [
    "BOUNDARY_STYLE",
    "CONSTRAINT_STYLES",
    "FOOTPRINT_STYLE",
    "OBSTRUCTION_KINDS",
    "AreaSummary",
    "BuildableArea",
    "Constraint",
    "ConstraintKind",
    "ConstraintSet",
    "PolygonStyle",
    "Setbacks",
    "StructureFootprint",
    "coerce_number",
    "has_constraint_geometry",
    "iter_rings",
    "normalize_constraints",
    "ConstraintLayerEngine",
    "summarize_constraints",
]
