"""
Appointment store backed by a local JSON file.
"""

import asyncio
import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List

import pendulum

from ..domain.exceptions import StoreError
from ..domain.models import Appointment

logger = logging.getLogger(__name__)

# Fields a caller may change through update_appointment
UPDATABLE_FIELDS = {
    "name", "address", "lat", "lng", "date", "time", "duration", "notes", "status",
}


class JsonAppointmentStore:
    """
    Persists appointments for all reps in a single JSON document.

    File format:
    {
        "appointments": [
            {"id": "...", "repId": "rep-1", "name": "...", "lat": 52.5, "lng": 13.4,
             "date": "2026-01-19", "time": "09:30", "duration": 30, ...}
        ]
    }
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def fetch_appointments(self, owner_id: str) -> List[Appointment]:
        """Return the owner's appointments ordered by date."""
        records = await asyncio.to_thread(self._read_records)

        appointments: List[Appointment] = []
        for record in records:
            if not isinstance(record, dict):
                logger.warning("Skipping invalid appointment record: %r", record)
                continue
            if record.get("repId") != owner_id:
                continue
            try:
                appointments.append(Appointment.from_record(record))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping invalid appointment record %s: %s", record.get("id"), e)

        return sorted(appointments, key=lambda apt: apt.calendar_day)

    async def create_appointment(self, owner_id: str, appointment: Appointment) -> str:
        """Store a new appointment and return its generated id."""
        async with self._lock:
            records = await asyncio.to_thread(self._read_records)

            appointment_id = uuid.uuid4().hex
            now = pendulum.now("UTC").to_iso8601_string()
            record = appointment.to_record()
            record.update(
                {"id": appointment_id, "repId": owner_id, "createdAt": now, "updatedAt": now}
            )
            records.append(record)

            await asyncio.to_thread(self._write_records, records)

        logger.debug("Created appointment %s for %s", appointment_id, owner_id)
        return appointment_id

    async def update_appointment(self, appointment_id: str, updates: Dict[str, Any]) -> None:
        """
        Apply field updates to an existing appointment.

        Raises:
            StoreError: ``not-found`` if the id is unknown,
                ``failed-precondition`` if the result would be invalid
        """
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise StoreError(
                "failed-precondition",
                f"Cannot update field(s): {', '.join(sorted(unknown))}",
            )

        async with self._lock:
            records = await asyncio.to_thread(self._read_records)
            record = self._find_record(records, appointment_id)

            candidate = {**record, **updates}
            try:
                Appointment.from_record(candidate)
            except (KeyError, ValueError) as e:
                raise StoreError("failed-precondition", f"Invalid appointment update: {e}") from e

            record.update(updates)
            record["updatedAt"] = pendulum.now("UTC").to_iso8601_string()

            await asyncio.to_thread(self._write_records, records)

    async def delete_appointment(self, appointment_id: str) -> None:
        """
        Remove an appointment.

        Raises:
            StoreError: ``not-found`` if the id is unknown
        """
        async with self._lock:
            records = await asyncio.to_thread(self._read_records)
            record = self._find_record(records, appointment_id)
            records.remove(record)
            await asyncio.to_thread(self._write_records, records)

    @staticmethod
    def _find_record(records: List[Dict[str, Any]], appointment_id: str) -> Dict[str, Any]:
        for record in records:
            if isinstance(record, dict) and record.get("id") == appointment_id:
                return record
        raise StoreError("not-found", f"No appointment with id {appointment_id}")

    def _read_records(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise StoreError("unavailable", f"Could not read {self.path}: {e}") from e
        except json.JSONDecodeError as e:
            raise StoreError("failed-precondition", f"Corrupt appointment file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StoreError("failed-precondition", f"Unexpected content in {self.path}")

        records = data.get("appointments", [])
        if not isinstance(records, list):
            raise StoreError("failed-precondition", f"'appointments' in {self.path} must be a list")

        return records

    def _write_records(self, records: List[Dict[str, Any]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump({"appointments": records}, f, indent=2)
            tmp_path.replace(self.path)
        except OSError as e:
            raise StoreError("unavailable", f"Could not write {self.path}: {e}") from e
