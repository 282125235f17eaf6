"""
Offline stand-ins for the geocoder and drive-time provider.
"""

import json
import logging
from pathlib import Path
from typing import Dict

from ..domain.distance import distance
from ..domain.models import Coordinate

logger = logging.getLogger(__name__)


def _normalize_address(address: str) -> str:
    return " ".join(address.lower().replace(",", " ").split())


class MockGeocoder:
    """
    Geocoder that looks addresses up in mock_geocoding_data.json.

    Matching ignores case, commas and repeated whitespace. Useful for
    trying the CLI without network access.
    """

    def __init__(self, data_file: Path | None = None):
        self.data_file = data_file or Path(__file__).parent / "mock_geocoding_data.json"
        self._load_addresses()

    def _load_addresses(self):
        """Load mock address data from JSON file."""
        self.addresses: Dict[str, Coordinate] = {}

        if not self.data_file.exists():
            return

        with open(self.data_file, "r", encoding="utf-8") as f:
            entries = json.load(f)

        for entry in entries:
            try:
                coordinate = Coordinate(latitude=float(entry["lat"]), longitude=float(entry["lng"]))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping invalid mock address entry %r: %s", entry, e)
                continue
            self.addresses[_normalize_address(entry["address"])] = coordinate

    async def geocode(self, address: str) -> Coordinate | None:
        return self.addresses.get(_normalize_address(address))


class MockDriveTimeProvider:
    """
    Estimates drive time from straight-line distance.

    The distance is stretched by ``detour_factor`` to approximate the road
    network and driven at ``average_speed_kmh``.
    """

    def __init__(self, average_speed_kmh: float = 40.0, detour_factor: float = 1.3):
        if average_speed_kmh <= 0:
            raise ValueError("average_speed_kmh must be greater than zero")
        self.average_speed_kmh = average_speed_kmh
        self.detour_factor = detour_factor

    async def drive_time_minutes(self, origin: Coordinate, destination: Coordinate) -> float | None:
        road_km = distance(origin, destination) * self.detour_factor
        return road_km / self.average_speed_kmh * 60
