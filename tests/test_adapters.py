"""
Tests for the geocoding and drive-time adapters.
"""

import asyncio
from typing import Any, Dict, List

import pytest
import requests

from repscheduler.adapters.distance_matrix_client import DistanceMatrixClient
from repscheduler.adapters.mock_clients import MockDriveTimeProvider, MockGeocoder
from repscheduler.adapters.nominatim_geocoder import NominatimGeocoder
from repscheduler.domain.distance import distance
from repscheduler.domain.exceptions import DriveTimeError, GeocodingError
from repscheduler.domain.models import Coordinate


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class FakeSession:
    """Records requests and answers with a canned response."""

    def __init__(self, response: FakeResponse | None = None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.requests: List[Dict[str, Any]] = []

    def get(self, url, **kwargs):
        self.requests.append({"url": url, **kwargs})
        if self.error:
            raise self.error
        return self.response


class TestNominatimGeocoder:
    """Tests for NominatimGeocoder."""

    def test_geocode_best_match(self):
        session = FakeSession(FakeResponse([{"lat": "38.8977", "lon": "-77.0365", "display_name": "White House"}]))
        geocoder = NominatimGeocoder(base_url="https://geo.example/", user_agent="tests/1.0", session=session)

        coordinate = asyncio.run(geocoder.geocode("1600 Pennsylvania Ave NW"))

        assert coordinate == Coordinate(latitude=38.8977, longitude=-77.0365)
        request = session.requests[0]
        assert request["url"] == "https://geo.example/search"
        assert request["params"] == {"format": "json", "q": "1600 Pennsylvania Ave NW", "limit": 1}
        assert request["headers"]["User-Agent"] == "tests/1.0"

    def test_no_match(self):
        geocoder = NominatimGeocoder(session=FakeSession(FakeResponse([])))

        assert asyncio.run(geocoder.geocode("Atlantis")) is None

    def test_match_without_position(self):
        geocoder = NominatimGeocoder(session=FakeSession(FakeResponse([{"display_name": "Somewhere"}])))

        assert asyncio.run(geocoder.geocode("Somewhere")) is None

    def test_http_error(self):
        geocoder = NominatimGeocoder(session=FakeSession(FakeResponse([], status_code=503)))

        with pytest.raises(GeocodingError, match="503"):
            asyncio.run(geocoder.geocode("Somewhere"))

    def test_connection_error(self):
        geocoder = NominatimGeocoder(session=FakeSession(error=requests.exceptions.ConnectionError("offline")))

        with pytest.raises(GeocodingError, match="offline"):
            geocoder.geocode_sync("Somewhere")


class TestDistanceMatrixClient:
    """Tests for DistanceMatrixClient."""

    ORIGIN = Coordinate(latitude=38.8973, longitude=-77.0063)
    DESTINATION = Coordinate(latitude=38.9096, longitude=-77.0434)

    def test_duration_in_minutes(self):
        payload = {
            "status": "OK",
            "rows": [{"elements": [{"status": "OK", "duration": {"value": 750, "text": "13 mins"}}]}],
        }
        session = FakeSession(FakeResponse(payload))
        client = DistanceMatrixClient(api_key="secret", session=session)

        minutes = asyncio.run(client.drive_time_minutes(self.ORIGIN, self.DESTINATION))

        assert minutes == 12.5
        params = session.requests[0]["params"]
        assert params["origins"] == "38.8973,-77.0063"
        assert params["destinations"] == "38.9096,-77.0434"
        assert params["mode"] == "driving"
        assert params["key"] == "secret"

    def test_no_route(self):
        payload = {"status": "OK", "rows": [{"elements": [{"status": "ZERO_RESULTS"}]}]}
        client = DistanceMatrixClient(api_key="secret", session=FakeSession(FakeResponse(payload)))

        assert client.drive_time_minutes_sync(self.ORIGIN, self.DESTINATION) is None

    def test_rejected_request(self):
        payload = {"status": "REQUEST_DENIED", "error_message": "bad key", "rows": []}
        client = DistanceMatrixClient(api_key="bad", session=FakeSession(FakeResponse(payload)))

        assert client.drive_time_minutes_sync(self.ORIGIN, self.DESTINATION) is None

    def test_transport_error(self):
        client = DistanceMatrixClient(
            api_key="secret",
            session=FakeSession(error=requests.exceptions.Timeout("timed out")),
        )

        with pytest.raises(DriveTimeError, match="timed out"):
            client.drive_time_minutes_sync(self.ORIGIN, self.DESTINATION)


class TestMockClients:
    """Tests for the offline stand-ins."""

    def test_mock_geocoder_normalizes_addresses(self):
        geocoder = MockGeocoder()

        coordinate = asyncio.run(geocoder.geocode("union station  washington DC"))

        assert coordinate == Coordinate(latitude=38.8973, longitude=-77.0063)
        assert asyncio.run(geocoder.geocode("Unknown Road 1")) is None

    def test_mock_drive_time(self):
        provider = MockDriveTimeProvider(average_speed_kmh=60, detour_factor=1.0)
        origin = Coordinate(latitude=0.0, longitude=0.0)
        destination = Coordinate(latitude=1.0, longitude=0.0)

        minutes = asyncio.run(provider.drive_time_minutes(origin, destination))

        assert minutes == pytest.approx(distance(origin, destination))
