"""
OpenStreetMap Nominatim client for turning addresses into coordinates.
"""

import asyncio
import logging
from typing import Any, List

import requests

from ..domain.exceptions import GeocodingError
from ..domain.models import Coordinate

logger = logging.getLogger(__name__)


class NominatimGeocoder:
    """
    Geocodes free-text addresses with the Nominatim ``/search`` endpoint.

    Only the best match is requested. Nominatim's usage policy requires an
    identifying User-Agent and at most one request per second, which the
    suggestion service enforces through its rate limiter.
    """

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        user_agent: str = "repscheduler/0.1",
        timeout_seconds: float = 8.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.headers = {
            "User-Agent": user_agent,
            "Accept": "application/json",
        }
        self.session = session or requests.Session()

    async def geocode(self, address: str) -> Coordinate | None:
        """
        Resolve an address to a coordinate.

        Returns:
            The best match, or None if nothing matched

        Raises:
            GeocodingError: If the request fails
        """
        return await asyncio.to_thread(self.geocode_sync, address)

    def geocode_sync(self, address: str) -> Coordinate | None:
        """Blocking variant of :meth:`geocode`."""
        url = f"{self.base_url}/search"
        params = {"format": "json", "q": address, "limit": 1}

        try:
            response = self.session.get(
                url,
                params=params,
                headers=self.headers,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise GeocodingError(f"Failed to geocode address '{address}': {e}") from e
        except ValueError as e:
            raise GeocodingError(f"Geocoder returned invalid JSON: {e}") from e

        return self._parse_search_response(data, address)

    def _parse_search_response(self, data: Any, address: str) -> Coordinate | None:
        """
        Parse the search response into a coordinate.

        Response format:
        [
            {"lat": "52.5170365", "lon": "13.3888599", "display_name": "..."}
        ]
        """
        results: List[Any] = data if isinstance(data, list) else []
        if not results:
            logger.info("No geocoding match for %r", address)
            return None

        best = results[0]
        lat = best.get("lat") if isinstance(best, dict) else None
        lon = best.get("lon") if isinstance(best, dict) else None
        if not lat or not lon:
            logger.info("Geocoding match for %r has no position", address)
            return None

        try:
            return Coordinate(latitude=float(lat), longitude=float(lon))
        except ValueError as e:
            logger.warning("Could not parse geocoding result for %r: %s", address, e)
            return None
