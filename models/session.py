"""Datenmodell für einen einzelnen Kurstermin (Pydantic v2)."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from models.timeslot import to_utc_date


class SessionStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# Noch offene, planbare Termine
SCHEDULED_STATUSES = frozenset({SessionStatus.PENDING, SessionStatus.CONFIRMED})


class BookingSession(BaseModel):
    """Ein Termin (Tag k) eines mehrtägigen Fahrkurses.

    Wird nie hart gelöscht: eine Änderung setzt status=CANCELLED und
    deleted_at, der Datensatz bleibt für die Historie erhalten.
    """

    id: Optional[int] = None        # Vergabe durch die Speicherschicht
    booking_id: int
    day_number: int                 # 1-basiert
    session_date: date              # Kalenderdatum in UTC
    slot: str                       # "09:00-10:00"
    car_id: int
    driver_id: Optional[int] = None
    status: SessionStatus = SessionStatus.PENDING
    attended: bool = False
    deleted_at: Optional[datetime] = None
    instructor_notes: Optional[str] = None
    internal_notes: Optional[str] = None

    @field_validator("session_date", mode="before")
    @classmethod
    def _normalize_date(cls, v):
        return to_utc_date(v)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, v):
        return v.upper() if isinstance(v, str) else v

    @model_validator(mode="after")
    def _check_deleted(self):
        if self.day_number < 1:
            raise ValueError(f"day_number muss >= 1 sein (ist {self.day_number})")
        if self.deleted_at is not None and self.status != SessionStatus.CANCELLED:
            raise ValueError(
                f"Session {self.id}: deleted_at gesetzt, Status ist aber "
                f"{self.status.value} statt CANCELLED"
            )
        return self

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_scheduled(self) -> bool:
        """PENDING/CONFIRMED und nicht weg-geändert."""
        return self.status in SCHEDULED_STATUSES and not self.is_deleted

    @property
    def date_key(self) -> str:
        """Datum als "YYYY-MM-DD" (UTC) für Vergleiche."""
        return self.session_date.isoformat()

    def append_note(self, note: str) -> Optional[str]:
        """Neuer internal_notes-Text mit angehängter Notiz (ändert nichts)."""
        if not self.internal_notes:
            return note
        return f"{self.internal_notes}\n{note}"
