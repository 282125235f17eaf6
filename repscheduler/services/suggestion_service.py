"""
Application service that turns a candidate location into a scheduling hint.

The service geocodes the address, ranks the rep's existing appointments by
distance, asks the drive-time provider about the closest ones and delegates
the start-time choice to the domain-level ``SlotSuggester``. Geocoder and
drive-time provider are plain protocols so tests can pass in stubs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Protocol, Sequence, Tuple

import pendulum

from ..domain.distance import find_nearby, format_distance, rank_by_distance
from ..domain.exceptions import DriveTimeError
from ..domain.models import Appointment, Coordinate, NearbyAppointment
from ..domain.slot_suggester import DEFAULT_DURATION_MINUTES, SlotSuggester
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

CLOSEST_LIMIT = 3


class GeocoderProtocol(Protocol):
    """Protocol describing the geocoder behaviour needed by the service."""

    async def geocode(self, address: str) -> Coordinate | None:
        """Return the position of an address, or None if unknown."""


class DriveTimeProviderProtocol(Protocol):
    """Protocol describing the drive-time lookup needed by the service."""

    async def drive_time_minutes(self, origin: Coordinate, destination: Coordinate) -> float | None:
        """Return driving minutes between two positions, or None if unknown."""


@dataclass(frozen=True)
class RankedAppointment:
    """An existing appointment with its distance from a candidate location."""
    appointment: Appointment
    distance: float  # kilometers
    drive_time: float | None = None  # minutes


@dataclass(frozen=True)
class Suggestion:
    """
    Recommended day and start time for a new appointment.
    """
    date: date
    time: str
    nearest: RankedAppointment
    unit: str = "km"
    closest: Tuple[RankedAppointment, ...] = ()

    def format_display(self) -> str:
        """
        Format the suggestion for display.
        Format: Mon, Jan 19 · near 1.2 km · 12 min drive · try 09:30
        """
        day = pendulum.date(self.date.year, self.date.month, self.date.day)
        parts = [
            day.format("ddd, MMM D"),
            f"near {format_distance(self.nearest.distance, self.unit)}",
        ]
        if self.nearest.drive_time:
            parts.append(f"{round(self.nearest.drive_time)} min drive")
        parts.append(f"try {self.time}")
        return " · ".join(parts)


class SuggestionService:
    """
    Orchestrates geocoding, proximity ranking and slot suggestion.
    """

    def __init__(
        self,
        geocoder: GeocoderProtocol,
        drive_time_provider: DriveTimeProviderProtocol | None = None,
        slot_suggester: SlotSuggester | None = None,
        rate_limiter: RateLimiter | None = None,
        min_address_length: int = 5,
    ) -> None:
        self._geocoder = geocoder
        self._drive_time_provider = drive_time_provider
        self._slot_suggester = slot_suggester or SlotSuggester()
        self._rate_limiter = rate_limiter
        self._min_address_length = min_address_length

    async def geocode(self, address: str) -> Coordinate | None:
        """
        Geocode an address, skipping inputs too short to be meaningful.

        Raises:
            GeocodingError: If the geocoder fails
            RateLimitExceededError: If geocoding is requested too often
        """
        address = address.strip()
        if len(address) < self._min_address_length:
            logger.debug("Address %r too short to geocode", address)
            return None

        if self._rate_limiter:
            self._rate_limiter.acquire("geocode")

        coordinate = await self._geocoder.geocode(address)
        if coordinate is None:
            logger.info("No coordinates found for %r", address)
        return coordinate

    def rank_nearby(
        self,
        center: Coordinate,
        appointments: Sequence[Appointment],
        radius_km: float,
    ) -> List[NearbyAppointment]:
        """Appointments within ``radius_km``, nearest first."""
        return find_nearby(center, _located(appointments), radius_km)

    async def closest_appointments(
        self,
        center: Coordinate,
        appointments: Sequence[Appointment],
        limit: int = CLOSEST_LIMIT,
    ) -> List[RankedAppointment]:
        """
        The ``limit`` nearest appointments regardless of distance, with drive times.
        """
        ranked = rank_by_distance(center, _located(appointments))[:limit]
        return [
            RankedAppointment(
                appointment=appointment,
                distance=km,
                drive_time=await self._drive_time(center, appointment.coordinate),
            )
            for appointment, km in ranked
        ]

    async def nearby_with_drive_times(
        self,
        center: Coordinate,
        appointments: Sequence[Appointment],
        radius_km: float,
        limit: int = CLOSEST_LIMIT,
    ) -> List[RankedAppointment]:
        """
        Appointments within ``radius_km`` (at most ``limit``) with drive times.
        """
        nearby = [
            (appointment, km)
            for appointment, km in rank_by_distance(center, _located(appointments))
            if km <= radius_km
        ][:limit]

        results: List[RankedAppointment] = []
        for appointment, km in nearby:
            results.append(
                RankedAppointment(
                    appointment=appointment,
                    distance=km,
                    drive_time=await self._drive_time(center, appointment.coordinate),
                )
            )
        return results

    async def suggest_for_coordinate(
        self,
        center: Coordinate,
        appointments: Sequence[Appointment],
        duration_minutes: int = DEFAULT_DURATION_MINUTES,
        unit: str = "km",
    ) -> Suggestion | None:
        """
        Suggest the day of the nearest appointment and a free start time on it.

        Returns:
            The suggestion, or None if no appointment has a position
        """
        closest = await self.closest_appointments(center, appointments)
        if not closest:
            return None

        primary = closest[0]
        target_day = primary.appointment.calendar_day
        suggested_time = self._slot_suggester.suggest(
            appointments,
            target_day,
            duration_minutes,
        )

        suggestion = Suggestion(
            date=target_day,
            time=suggested_time,
            nearest=primary,
            unit=unit,
            closest=tuple(closest),
        )
        logger.debug("Suggestion for %s: %s", center, suggestion.format_display())
        return suggestion

    async def suggest_for_address(
        self,
        address: str,
        appointments: Sequence[Appointment],
        duration_minutes: int = DEFAULT_DURATION_MINUTES,
        unit: str = "km",
    ) -> Suggestion | None:
        """Geocode ``address`` and suggest a slot near it."""
        center = await self.geocode(address)
        if center is None:
            return None

        return await self.suggest_for_coordinate(
            center,
            appointments,
            duration_minutes=duration_minutes,
            unit=unit,
        )

    async def _drive_time(self, origin: Coordinate, destination: Coordinate) -> float | None:
        """Drive time in minutes, or None when the provider can't tell."""
        if self._drive_time_provider is None:
            return None

        try:
            return await self._drive_time_provider.drive_time_minutes(origin, destination)
        except DriveTimeError as exc:
            logger.warning("Drive time unavailable: %s", exc)
            return None


def _located(appointments: Sequence[Appointment]) -> List[Appointment]:
    """Appointments that can take part in proximity ranking."""
    return [appointment for appointment in appointments if appointment.coordinate is not None]
