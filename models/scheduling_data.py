"""SchedulingData: Momentaufnahme aller Planungsdaten einer Fahrschule (Pydantic v2)."""

import json
from collections import Counter
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from config.schema import SchoolConfig
from models.booking import Booking
from models.car import Car
from models.course import Course
from models.holiday import HolidayDeclaration
from models.session import BookingSession


class SchedulingData(BaseModel):
    """Fahrzeuge, Kurse, Buchungen, Termine und Feiertage einer Schule.

    Die Engine arbeitet nur auf solchen Momentaufnahmen; Laden und Speichern
    übernimmt der Aufrufer (hier: JSON-Datei).
    """

    config: SchoolConfig
    cars: list[Car] = []
    courses: list[Course] = []
    bookings: list[Booking] = []
    sessions: list[BookingSession] = []
    holidays: list[HolidayDeclaration] = []
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    data_version: str = "1.0"

    # ─── Übersicht ───

    def summary(self) -> str:
        """Kurze Übersicht über den Datensatz."""
        status_counts = Counter(s.status.value for s in self.sessions)
        status_str = ", ".join(f"{k}: {v}" for k, v in sorted(status_counts.items()))
        lines = [
            f"Schule: {self.config.school_name}",
            f"Fahrzeuge: {len(self.cars)}",
            f"Kurse: {len(self.courses)}",
            f"Buchungen: {len(self.bookings)}",
            f"Termine: {len(self.sessions)}" + (f" ({status_str})" if status_str else ""),
            f"Feiertage: {len(self.holidays)} "
            f"({sum(1 for h in self.holidays if h.is_active)} aktiv)",
        ]
        return "\n".join(lines)

    # ─── Lookups ───

    def get_car(self, car_id: int) -> Optional[Car]:
        return next((c for c in self.cars if c.id == car_id), None)

    def get_course(self, course_id: int) -> Optional[Course]:
        return next((c for c in self.courses if c.id == course_id), None)

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        return next((b for b in self.bookings if b.id == booking_id), None)

    def sessions_for_booking(self, booking_id: int) -> list[BookingSession]:
        """Alle Termine einer Buchung (inkl. stornierter), nach Datum sortiert."""
        return sorted(
            (s for s in self.sessions if s.booking_id == booking_id),
            key=lambda s: (s.session_date, s.day_number),
        )

    def sessions_for_car(self, car_id: int, day: Optional[date] = None) -> list[BookingSession]:
        """Termine eines Fahrzeugs, optional nur an einem Tag."""
        return [
            s for s in self.sessions
            if s.car_id == car_id and (day is None or s.session_date == day)
        ]

    def active_holidays(self) -> list[HolidayDeclaration]:
        return [h for h in self.holidays if h.is_active]

    def next_booking_id(self) -> int:
        return max((b.id for b in self.bookings), default=0) + 1

    def next_session_id(self) -> int:
        return max((s.id or 0 for s in self.sessions), default=0) + 1

    # ─── Persistenz ────────────────────────────────────────────────────────

    def save_json(self, path: Path) -> None:
        """Speichert den kompletten Datensatz als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        now = datetime.now(timezone.utc)
        updated = self.model_copy(update={
            "modified_at": now,
            "created_at": self.created_at or now,
        })
        with open(path, "w", encoding="utf-8") as f:
            f.write(updated.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "SchedulingData":
        """Lädt einen Datensatz aus einer JSON-Datei."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"JSON-Datei nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate(json.load(f))
