"""
Domain layer - Pure business logic without external dependencies.
"""

from .distance import distance, find_nearby, format_distance, km_to_miles, rank_by_distance
from .models import Appointment, Coordinate, Interval, NearbyAppointment, WorkingWindow
from .slot_suggester import SlotSuggester, suggest_slot

__all__ = [
    "Appointment",
    "Coordinate",
    "Interval",
    "NearbyAppointment",
    "WorkingWindow",
    "SlotSuggester",
    "distance",
    "find_nearby",
    "format_distance",
    "km_to_miles",
    "rank_by_distance",
    "suggest_slot",
]
