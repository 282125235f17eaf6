"""
Google Distance Matrix API client for drive times.
"""

import asyncio
import logging
from typing import Any, Dict

import requests

from ..domain.exceptions import DriveTimeError
from ..domain.models import Coordinate

logger = logging.getLogger(__name__)


class DistanceMatrixClient:
    """
    Fetches driving durations between two positions.

    Uses the JSON Distance Matrix endpoint with a single origin and
    destination, driving mode and metric units.
    """

    DEFAULT_ENDPOINT = "https://maps.googleapis.com/maps/api/distancematrix/json"

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_ENDPOINT,
        timeout_seconds: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    async def drive_time_minutes(self, origin: Coordinate, destination: Coordinate) -> float | None:
        """
        Driving time from ``origin`` to ``destination`` in minutes.

        Returns:
            Minutes, or None if no route is known

        Raises:
            DriveTimeError: If the request fails
        """
        return await asyncio.to_thread(self.drive_time_minutes_sync, origin, destination)

    def drive_time_minutes_sync(self, origin: Coordinate, destination: Coordinate) -> float | None:
        """Blocking variant of :meth:`drive_time_minutes`."""
        params = {
            "origins": f"{origin.latitude},{origin.longitude}",
            "destinations": f"{destination.latitude},{destination.longitude}",
            "mode": "driving",
            "units": "metric",
            "key": self.api_key,
        }

        try:
            response = self.session.get(
                self.base_url,
                params=params,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise DriveTimeError(f"Failed to fetch drive time: {e}") from e
        except ValueError as e:
            raise DriveTimeError(f"Distance Matrix returned invalid JSON: {e}") from e

        return self._parse_matrix_response(data)

    def _parse_matrix_response(self, data: Dict[str, Any]) -> float | None:
        """
        Extract the duration of the first element in minutes.

        Response format:
        {
            "status": "OK",
            "rows": [
                {"elements": [{"status": "OK", "duration": {"value": 754, "text": "13 mins"}}]}
            ]
        }
        """
        status = data.get("status", "")
        if status != "OK":
            logger.warning(
                "Distance Matrix request rejected: %s %s",
                status,
                data.get("error_message", ""),
            )
            return None

        try:
            element = data["rows"][0]["elements"][0]
            seconds = element["duration"]["value"]
        except (KeyError, IndexError, TypeError):
            logger.info("Distance Matrix returned no route")
            return None

        return seconds / 60
