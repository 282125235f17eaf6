"""
Great-circle distance and proximity ranking.

Pure functions only: no API calls and no I/O.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Protocol, Tuple

from .models import Coordinate, NearbyAppointment

EARTH_RADIUS_KM = 6371.0
KM_TO_MILES = 0.621371


class Locatable(Protocol):
    """Anything with an identifier and a position."""

    @property
    def id(self) -> str: ...

    @property
    def coordinate(self) -> Coordinate: ...


def distance(a: Coordinate, b: Coordinate) -> float:
    """
    Haversine distance between two coordinates in kilometers.
    """
    d_lat = math.radians(b.latitude - a.latitude)
    d_lng = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.latitude))
        * math.cos(math.radians(b.latitude))
        * math.sin(d_lng / 2) ** 2
    )
    # Rounding can push h marginally past 1 for antipodal points
    h = min(max(h, 0.0), 1.0)

    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def rank_by_distance(
    center: Coordinate,
    points: Iterable[Locatable],
) -> List[Tuple[Locatable, float]]:
    """
    Pair every point with its distance from ``center``, nearest first.

    Ties keep their input order.
    """
    with_distance = [(point, distance(center, point.coordinate)) for point in points]
    return sorted(with_distance, key=lambda pair: pair[1])


def find_nearby(
    center: Coordinate,
    points: Iterable[Locatable],
    radius_km: float,
) -> List[NearbyAppointment]:
    """
    Find all points within ``radius_km`` of ``center``.

    Args:
        center: Reference position
        points: Objects exposing ``id`` and ``coordinate``
        radius_km: Inclusive search radius in kilometers

    Returns:
        NearbyAppointment rows sorted ascending by distance
    """
    return [
        NearbyAppointment(id=point.id, distance=km)
        for point, km in rank_by_distance(center, points)
        if km <= radius_km
    ]


def km_to_miles(km: float) -> float:
    """Convert kilometers to miles (display only)."""
    return km * KM_TO_MILES


def _one_decimal(value: float) -> str:
    # Half-up on the exact binary value, so 1.25 reads "1.3" and not "1.2"
    return str(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def format_distance(km: float, unit: str = "km") -> str:
    """
    Format a kilometer value for display, e.g. ``1.2 km`` or ``0.7 mi``.
    """
    if math.isnan(km):
        return ""
    if unit == "mi":
        return f"{_one_decimal(km_to_miles(km))} mi"
    return f"{_one_decimal(km)} km"
