"""
Adapters layer - External integrations (geocoding, drive times, persistence).
"""

from .distance_matrix_client import DistanceMatrixClient
from .json_store import JsonAppointmentStore
from .mock_clients import MockDriveTimeProvider, MockGeocoder
from .nominatim_geocoder import NominatimGeocoder

__all__ = [
    "DistanceMatrixClient",
    "JsonAppointmentStore",
    "MockDriveTimeProvider",
    "MockGeocoder",
    "NominatimGeocoder",
]
