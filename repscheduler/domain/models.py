"""
Domain models for appointments, coordinates and the scheduling window.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional

import pendulum

APPOINTMENT_STATUSES = ("scheduled", "completed", "cancelled")


@dataclass(frozen=True)
class Coordinate:
    """
    Immutable geographic position in decimal degrees.

    Invariant: latitude in [-90, 90], longitude in [-180, 180].
    """
    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude must be between -90 and 90, got {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude must be between -180 and 180, got {self.longitude}")

    def __str__(self) -> str:
        return f"{self.latitude:.5f}, {self.longitude:.5f}"


@dataclass(frozen=True)
class Interval:
    """Occupied block of a day in minutes since midnight, end exclusive."""
    start_minute: int
    end_minute: int


@dataclass(frozen=True)
class NearbyAppointment:
    """Result row of a proximity search."""
    id: str
    distance: float  # kilometers


@dataclass(frozen=True)
class Appointment:
    """
    A rep's appointment.

    Only ``date``, ``time`` and ``duration`` matter for slot suggestions;
    ``coordinate`` is needed for proximity ranking. ``date`` is compared by
    calendar day, so a ``datetime`` value is accepted and its time ignored.
    """
    date: date
    time: str  # "HH:MM", 24-hour
    duration: Optional[int] = None  # minutes
    id: str = ""
    name: str = ""
    address: str = ""
    coordinate: Optional[Coordinate] = None
    notes: str = ""
    status: str = "scheduled"

    def __post_init__(self):
        if self.duration is not None and self.duration <= 0:
            raise ValueError(f"Duration must be positive, got {self.duration}")
        if self.status not in APPOINTMENT_STATUSES:
            raise ValueError(
                f"Unknown status '{self.status}', expected one of {', '.join(APPOINTMENT_STATUSES)}"
            )

    @property
    def calendar_day(self) -> date:
        """Return the appointment's date without time-of-day."""
        return calendar_day(self.date)

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the flat mapping used by the appointment store."""
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "lat": self.coordinate.latitude if self.coordinate else None,
            "lng": self.coordinate.longitude if self.coordinate else None,
            "date": self.calendar_day.isoformat(),
            "time": self.time,
            "duration": self.duration,
            "notes": self.notes,
            "status": self.status,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Appointment":
        """
        Build an appointment from a stored mapping.

        Raises:
            KeyError: If ``date`` or ``time`` is missing
            ValueError: If a value is invalid
        """
        lat = record.get("lat")
        lng = record.get("lng")
        coordinate = None
        if lat is not None and lng is not None:
            coordinate = Coordinate(latitude=float(lat), longitude=float(lng))

        duration = record.get("duration")

        return cls(
            date=parse_calendar_day(record["date"]),
            time=str(record["time"]),
            duration=int(duration) if duration is not None else None,
            id=str(record.get("id", "")),
            name=record.get("name", ""),
            address=record.get("address", ""),
            coordinate=coordinate,
            notes=record.get("notes", ""),
            status=record.get("status", "scheduled"),
        )


@dataclass(frozen=True)
class WorkingWindow:
    """
    Daily window in which appointments may be placed, in minutes since midnight.
    """
    start_minute: int = 9 * 60
    end_minute: int = 17 * 60
    step_minutes: int = 15

    def __post_init__(self):
        if not 0 <= self.start_minute < self.end_minute <= 24 * 60:
            raise ValueError(
                f"Invalid working window {self.start_minute}-{self.end_minute}"
            )
        if self.step_minutes <= 0:
            raise ValueError("step_minutes must be greater than zero")

    @classmethod
    def from_hours(cls, start_hour: int, end_hour: int, step_minutes: int = 15) -> "WorkingWindow":
        return cls(
            start_minute=start_hour * 60,
            end_minute=end_hour * 60,
            step_minutes=step_minutes,
        )


def calendar_day(value: date) -> date:
    """Strip time-of-day (and with it any timezone offset) from a date value."""
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_calendar_day(value: Any) -> date:
    """
    Parse a date, datetime or ISO string into a calendar day.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, date):
        return calendar_day(value)

    try:
        parsed = pendulum.parse(str(value), exact=True)
    except ValueError as exc:  # pendulum ParserError is a ValueError
        raise ValueError(f"Could not parse date: {value}") from exc

    if isinstance(parsed, (date, datetime)):
        return calendar_day(parsed)

    raise ValueError(f"Could not parse date: {value}")
