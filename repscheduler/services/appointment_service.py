"""
Rate-limited access to a rep's appointments.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Protocol

from ..domain.exceptions import StoreError
from ..domain.models import Appointment, calendar_day
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class AppointmentStoreProtocol(Protocol):
    """Protocol describing the persistence operations needed by the service."""

    async def fetch_appointments(self, owner_id: str) -> List[Appointment]:
        """Return all appointments of an owner."""

    async def create_appointment(self, owner_id: str, appointment: Appointment) -> str:
        """Persist a new appointment and return its id."""

    async def update_appointment(self, appointment_id: str, updates: Dict[str, Any]) -> None:
        """Change fields of an existing appointment."""

    async def delete_appointment(self, appointment_id: str) -> None:
        """Remove an appointment."""


def log_store_error(context: str, error: StoreError, **details: Any) -> None:
    """Log a store failure with its code, user message and call details."""
    logger.error(
        "[%s] %s: %s (%s) %s",
        context,
        error.code,
        error.message,
        error.user_message,
        details,
    )


class AppointmentService:
    """
    Wraps an appointment store with rate limits and error logging.

    Reads are limited per rep and in total, writes per rep. Store failures
    are logged with context and re-raised.
    """

    def __init__(
        self,
        store: AppointmentStoreProtocol,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self._store = store
        self._rate_limiter = rate_limiter or RateLimiter()

    async def list_appointments(self, rep_id: str) -> List[Appointment]:
        """Fetch all appointments of a rep."""
        self._rate_limiter.acquire("read_appointments", f"read_appointments:{rep_id}")
        self._rate_limiter.acquire("total_reads")

        try:
            return await self._store.fetch_appointments(rep_id)
        except StoreError as exc:
            log_store_error("fetch_appointments", exc, rep_id=rep_id)
            raise

    async def appointments_on(self, rep_id: str, day: date) -> List[Appointment]:
        """Fetch a rep's appointments on one calendar day, ordered by start time."""
        target = calendar_day(day)
        appointments = await self.list_appointments(rep_id)
        same_day = [apt for apt in appointments if apt.calendar_day == target]
        return sorted(same_day, key=lambda apt: apt.time)

    async def add_appointment(self, rep_id: str, appointment: Appointment) -> str:
        """Store a new appointment and return its id."""
        self._rate_limiter.acquire("write_appointment", f"write_appointment:{rep_id}")

        try:
            appointment_id = await self._store.create_appointment(rep_id, appointment)
        except StoreError as exc:
            log_store_error("create_appointment", exc, rep_id=rep_id)
            raise

        logger.info("Added appointment %s for rep %s", appointment_id, rep_id)
        return appointment_id

    async def update_appointment(
        self,
        rep_id: str,
        appointment_id: str,
        updates: Dict[str, Any],
    ) -> None:
        """Apply field updates to an appointment."""
        self._rate_limiter.acquire("write_appointment", f"write_appointment:{rep_id}")

        try:
            await self._store.update_appointment(appointment_id, updates)
        except StoreError as exc:
            log_store_error(
                "update_appointment", exc, rep_id=rep_id, appointment_id=appointment_id
            )
            raise

        logger.info("Updated appointment %s for rep %s: %s", appointment_id, rep_id, sorted(updates))

    async def remove_appointment(self, rep_id: str, appointment_id: str) -> None:
        """Delete an appointment."""
        self._rate_limiter.acquire("write_appointment", f"write_appointment:{rep_id}")

        try:
            await self._store.delete_appointment(appointment_id)
        except StoreError as exc:
            log_store_error(
                "delete_appointment", exc, rep_id=rep_id, appointment_id=appointment_id
            )
            raise

        logger.info("Removed appointment %s for rep %s", appointment_id, rep_id)
