"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .appointment_service import AppointmentService, AppointmentStoreProtocol
from .rate_limiter import RateLimiter
from .suggestion_service import (
    DriveTimeProviderProtocol,
    GeocoderProtocol,
    RankedAppointment,
    Suggestion,
    SuggestionService,
)

__all__ = [
    "AppointmentService",
    "AppointmentStoreProtocol",
    "DriveTimeProviderProtocol",
    "GeocoderProtocol",
    "RankedAppointment",
    "RateLimiter",
    "Suggestion",
    "SuggestionService",
]
