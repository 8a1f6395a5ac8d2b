"""Great-circle distance between coordinate pairs."""

from __future__ import annotations

import math
from itertools import combinations

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in kilometres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # Rounding can push a a hair past 1.0 for antipodal points
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def max_pairwise_distance_km(points: list[tuple[float, float]]) -> float:
    """Largest distance between any two points; 0.0 for fewer than two."""
    if len(points) < 2:
        return 0.0
    return max(
        haversine_km(a[0], a[1], b[0], b[1]) for a, b in combinations(points, 2)
    )
