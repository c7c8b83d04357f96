"""Datenmodell für eine Kursbuchung (Pydantic v2)."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from models.timeslot import to_utc_date


class Booking(BaseModel):
    """Eine Buchung: Kunde + Fahrzeug + Kurs + fester Slot ab einem Startdatum.

    Die einzelnen Termine liegen als BookingSession mit booking_id vor.
    """

    id: int
    car_id: int
    course_id: int
    slot: str
    start_date: date
    customer_name: str = ""
    customer_mobile: Optional[str] = None
    booking_reference: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("start_date", mode="before")
    @classmethod
    def _normalize_date(cls, v):
        return to_utc_date(v)

    @property
    def reference(self) -> str:
        return self.booking_reference or f"BK-{self.id:05d}"
