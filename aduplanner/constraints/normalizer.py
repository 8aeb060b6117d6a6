"""
Constraint normalizer

Turns schema-flexible vision output into a canonical ConstraintSet.
Keys may be snake_case or camelCase and most fields may be missing; this is
the only module that knows the raw field names.
"""

import re
from typing import Any, Iterable, List, Mapping, Optional

from loguru import logger

from ..errors import InvalidGeometry, MalformedResponse
from ..geometry import Coordinate, Ring, ring_is_simple, validate_ring
from .models import BuildableArea, ConstraintSet, Setbacks, StructureFootprint

SUITABILITY_LEVELS = ("excellent", "good", "poor")

_NUMBER_RE = re.compile(r"-?\d[\d,]*(?:\.\d+)?")
_SQFT_RE = re.compile(
    r"(\d[\d,]*(?:\.\d+)?)\s*(?:sq\.?\s*(?:ft|feet)|square\s+f(?:ee|oo)t|sqft|ft²|ft2)",
    re.IGNORECASE
)

_ENVELOPE_KEYS = ("processed", "parsed")
_CONSTRAINT_KEYS = (
    "property_boundary", "propertyBoundary", "property_boundaries", "propertyBoundaries",
    "structures", "setbacks", "buildable_areas", "buildableAreas",
)


def _first_present(payload: Mapping[str, Any], *keys: str) -> Any:
    """Value of the first key present with a non-None value"""
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def coerce_number(value: Any) -> Optional[float]:
    """Parse a number from a float, int or text such as '20 ft'"""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _NUMBER_RE.search(value)
        if match:
            try:
                return float(match.group(0).replace(",", ""))
            except ValueError:
                return None
    return None


def _parse_sqft(value: Any) -> Optional[float]:
    """Area in sq ft from a number or from text qualified with a sq ft unit"""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        match = _SQFT_RE.search(value)
        if match:
            return float(match.group(1).replace(",", ""))
    return None


def _coerce_ring(raw: Any, label: str) -> Ring:
    """
    Closed ring from a point list or a {coordinates: [...]} mapping.

    Unusable points are skipped; a ring left with fewer than 3 distinct
    points is dropped (returns an empty ring).
    """
    if isinstance(raw, Mapping):
        raw = raw.get("coordinates")
    if not isinstance(raw, list):
        return []

    points = []
    for item in raw:
        if not isinstance(item, Mapping):
            logger.debug(f"{label}: skipping non-point {item!r}")
            continue
        try:
            points.append(Coordinate.from_mapping(item))
        except (TypeError, ValueError) as e:
            logger.debug(f"{label}: skipping point: {e}")

    try:
        ring = validate_ring(points)
    except InvalidGeometry as e:
        logger.warning(f"Dropping {label}: {e}")
        return []

    if not ring_is_simple(ring):
        logger.warning(f"{label} is self-intersecting; areas may be unreliable")

    return ring


def _coerce_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _coerce_notes(item: Mapping[str, Any]) -> List[str]:
    notes: List[str] = []
    for key in ("notes", "advantages", "challenges"):
        value = item.get(key)
        if isinstance(value, str):
            notes.append(value)
        elif isinstance(value, list):
            notes.extend(str(v) for v in value if v is not None)
    return notes


def _normalize_property_boundary(payload: Mapping[str, Any]) -> Ring:
    boundary = _first_present(payload, "property_boundary", "propertyBoundary")
    if boundary is not None:
        return _coerce_ring(boundary, "property boundary")

    # Some responses list several candidate boundaries; take the first usable one
    candidates = _first_present(payload, "property_boundaries", "propertyBoundaries")
    for i, candidate in enumerate(_coerce_list(candidates)):
        ring = _coerce_ring(candidate, f"property boundary candidate {i + 1}")
        if ring:
            return ring
    return []


def _normalize_structures(payload: Mapping[str, Any]) -> List[StructureFootprint]:
    structures = []
    for i, item in enumerate(_coerce_list(payload.get("structures"))):
        if not isinstance(item, Mapping):
            continue
        structure_type = str(item.get("type") or "structure")
        ring = _coerce_ring(item, f"structure {i + 1} ({structure_type})")
        if ring:
            structures.append(StructureFootprint(type=structure_type, ring=ring))
    return structures


def _normalize_setbacks(payload: Mapping[str, Any]) -> Setbacks:
    raw = payload.get("setbacks")
    if not isinstance(raw, Mapping):
        return Setbacks()

    def distance(*keys: str) -> float:
        value = coerce_number(_first_present(raw, *keys))
        return max(0.0, value) if value is not None else 0.0

    ring = _coerce_ring(raw, "setback polygon") if raw.get("coordinates") else []
    return Setbacks(
        front=distance("front"),
        back=distance("back", "rear"),
        left=distance("left"),
        right=distance("right"),
        ring=ring or None,
    )


def _normalize_buildable_areas(payload: Mapping[str, Any]) -> List[BuildableArea]:
    areas = []
    raw_areas = _first_present(payload, "buildable_areas", "buildableAreas")
    for i, item in enumerate(_coerce_list(raw_areas)):
        if not isinstance(item, Mapping) or item.get("coordinates") is None:
            continue
        ring = _coerce_ring(item, f"buildable area {i + 1}")
        if not ring:
            continue
        suitability = str(item.get("suitability") or item.get("rating") or "good").lower()
        if suitability not in SUITABILITY_LEVELS:
            suitability = "good"
        areas.append(BuildableArea(ring=ring, suitability=suitability, notes=_coerce_notes(item)))
    return areas


def _reported_buildable_sqft(payload: Mapping[str, Any]) -> Optional[float]:
    """Explicit buildable area figure, or the sum of per-area size estimates"""
    value = _first_present(
        payload, "buildable_area_sqft", "buildableAreaSqFt", "buildable_area", "buildableArea"
    )
    reported = _parse_sqft(value)
    if reported is None and isinstance(value, str):
        reported = coerce_number(value)
    if reported is not None:
        return max(0.0, reported)

    estimates = []
    raw_areas = _first_present(payload, "buildable_areas", "buildableAreas")
    for item in _coerce_list(raw_areas):
        if isinstance(item, Mapping):
            size = _parse_sqft(_first_present(item, "estimated_size", "estimatedSize"))
            if size is not None:
                estimates.append(size)
    if estimates:
        return sum(estimates)
    return None


def _unwrap(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    if any(key in payload for key in _CONSTRAINT_KEYS):
        return payload
    for key in _ENVELOPE_KEYS:
        inner = payload.get(key)
        if isinstance(inner, Mapping):
            return inner
    return payload


def has_constraint_geometry(payload: Any) -> bool:
    """
    Whether a payload carries a property boundary or a structure with
    coordinates. Qualitative analyses have the same sections without rings.
    """
    if not isinstance(payload, Mapping):
        return False
    payload = _unwrap(payload)
    boundary = _first_present(
        payload, "property_boundary", "propertyBoundary", "property_boundaries", "propertyBoundaries"
    )
    if boundary:
        return True
    return any(
        isinstance(item, Mapping) and item.get("coordinates")
        for item in _coerce_list(payload.get("structures"))
    )


def normalize_constraints(payload: Any, require_geometry: bool = False) -> ConstraintSet:
    """
    Normalize raw analysis output into a ConstraintSet.

    Args:
        payload: Parsed vision output (a mapping)
        require_geometry: Fail when neither a property boundary nor any
            structure survives normalization

    Returns:
        ConstraintSet with closed rings only

    Raises:
        MalformedResponse: if payload is not a mapping, or geometry was
            required and none was found
    """
    if not isinstance(payload, Mapping):
        raise MalformedResponse(
            f"Analysis payload must be a JSON object, got {type(payload).__name__}"
        )

    payload = _unwrap(payload)

    front_yard = _first_present(payload, "front_yard", "frontYard")
    constraint_set = ConstraintSet(
        property_boundary=_normalize_property_boundary(payload),
        structures=_normalize_structures(payload),
        setbacks=_normalize_setbacks(payload),
        buildable_areas=_normalize_buildable_areas(payload),
        front_yard=_coerce_ring(front_yard, "front yard") if front_yard is not None else [],
        reported_buildable_sqft=_reported_buildable_sqft(payload),
    )

    if require_geometry and not (constraint_set.property_boundary or constraint_set.structures):
        raise MalformedResponse("Analysis contains neither a property boundary nor any structure")

    logger.debug(
        f"Normalized constraints: boundary={'yes' if constraint_set.property_boundary else 'no'}, "
        f"structures={len(constraint_set.structures)}, "
        f"buildable_areas={len(constraint_set.buildable_areas)}"
    )
    return constraint_set


def iter_rings(constraint_set: ConstraintSet) -> Iterable[Ring]:
    """All non-empty rings of a constraint set"""
    if constraint_set.property_boundary:
        yield constraint_set.property_boundary
    for structure in constraint_set.structures:
        yield structure.ring
    if constraint_set.setbacks.ring:
        yield constraint_set.setbacks.ring
    if constraint_set.front_yard:
        yield constraint_set.front_yard
    for area in constraint_set.buildable_areas:
        yield area.ring
