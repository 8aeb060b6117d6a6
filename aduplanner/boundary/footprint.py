"""
Building footprint placement

A footprint is a rotated rectangle described by its size and center. Its ring
is derived on demand so it can never go stale.
"""

from dataclasses import dataclass, replace
from typing import Optional, Sequence

from ..errors import InvalidGeometry, InvalidTransition
from ..geometry import Coordinate, Ring, footprint_to_ring, ring_area_sqft, ring_contains
from .session import BoundaryEditSession


@dataclass(frozen=True)
class BuildingFootprint:
    """Rectangular building footprint; width runs north-south, length east-west"""
    width_ft: float
    length_ft: float
    rotation_deg: float
    center: Coordinate

    def __post_init__(self):
        if self.width_ft <= 0 or self.length_ft <= 0:
            raise InvalidGeometry(
                f"Footprint dimensions must be positive, got {self.width_ft}x{self.length_ft} ft"
            )

    @property
    def ring(self) -> Ring:
        return footprint_to_ring(self.center, self.width_ft, self.length_ft, self.rotation_deg)

    @property
    def area_sqft(self) -> float:
        """Spherical area of the derived ring"""
        return ring_area_sqft(self.ring)

    @property
    def nominal_area_sqft(self) -> float:
        return self.width_ft * self.length_ft

    def moved_to(self, center: Coordinate) -> "BuildingFootprint":
        return replace(self, center=center)

    def translated(self, dlat: float, dlng: float) -> "BuildingFootprint":
        return replace(self, center=self.center.offset(dlat, dlng))

    def rotated(self, delta_deg: float) -> "BuildingFootprint":
        return replace(self, rotation_deg=(self.rotation_deg + delta_deg) % 360)

    def resized(
        self,
        width_ft: Optional[float] = None,
        length_ft: Optional[float] = None
    ) -> "BuildingFootprint":
        return replace(
            self,
            width_ft=self.width_ft if width_ft is None else width_ft,
            length_ft=self.length_ft if length_ft is None else length_ft,
        )


def place_on_boundary(
    session: BoundaryEditSession,
    width_ft: float,
    length_ft: float,
    rotation_deg: float = 0.0
) -> BuildingFootprint:
    """Footprint centered on the session's boundary"""
    center = session.center
    if center is None:
        raise InvalidTransition("No boundary to place a footprint on")
    return BuildingFootprint(width_ft, length_ft, rotation_deg, center)


def footprint_fits(
    footprint: BuildingFootprint,
    boundary: Sequence[Coordinate],
    setback: Optional[Sequence[Coordinate]] = None
) -> bool:
    """True when the footprint lies inside the boundary and, if given, the setback ring"""
    ring = footprint.ring
    if not ring_contains(boundary, ring):
        return False
    if setback and not ring_contains(setback, ring):
        return False
    return True
