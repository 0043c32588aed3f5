"""
Geospatial helpers for distance-based feed scoring.
"""

import math
from dataclasses import dataclass
from typing import Optional

# Mean Earth radius in kilometers
EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinates:
    """Geographic point; either component may be unknown."""

    lat: Optional[float]
    lng: Optional[float]

    @property
    def is_complete(self) -> bool:
        return self.lat is not None and self.lng is not None

    @classmethod
    def of(cls, entity: object) -> "Coordinates":
        """Read ``latitude``/``longitude`` attributes off a user or report."""
        return cls(
            getattr(entity, "latitude", None), getattr(entity, "longitude", None)
        )


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates in decimal degrees
        lat2, lon2: Second point coordinates in decimal degrees

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_km(a: Coordinates, b: Coordinates) -> Optional[float]:
    """
    Distance between two points, or None if either point is incomplete.

    A None result means the distance signal is skipped, not that the points
    are far apart.
    """
    if not (a.is_complete and b.is_complete):
        return None
    return haversine_distance(a.lat, a.lng, b.lat, b.lng)  # type: ignore[arg-type]
