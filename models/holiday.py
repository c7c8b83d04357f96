"""Datenmodell für eine Feiertags-/Sperr-Deklaration (Pydantic v2)."""

import json
from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from models.timeslot import to_utc_date


class DeclarationType(str, Enum):
    ALL_CARS_MULTIPLE_DATES = "ALL_CARS_MULTIPLE_DATES"
    ONE_CAR_MULTIPLE_DATES = "ONE_CAR_MULTIPLE_DATES"
    ALL_CARS_PARTICULAR_SLOTS = "ALL_CARS_PARTICULAR_SLOTS"
    ONE_CAR_PARTICULAR_SLOTS = "ONE_CAR_PARTICULAR_SLOTS"

    @property
    def is_car_scoped(self) -> bool:
        return self in (DeclarationType.ONE_CAR_MULTIPLE_DATES,
                        DeclarationType.ONE_CAR_PARTICULAR_SLOTS)

    @property
    def is_slot_scoped(self) -> bool:
        return self in (DeclarationType.ALL_CARS_PARTICULAR_SLOTS,
                        DeclarationType.ONE_CAR_PARTICULAR_SLOTS)


class HolidayDeclaration(BaseModel):
    """Sperrt Fahrzeuge für einen Datumsbereich (ganztägig oder einzelne Slots).

    start_date/end_date sind inklusive und werden als UTC-Datum verglichen.
    """

    id: Optional[int] = None
    declaration_type: DeclarationType
    start_date: date
    end_date: date
    car_id: Optional[int] = None        # Pflicht bei ONE_CAR_*
    slots: Optional[list[str]] = None   # Pflicht bei *_PARTICULAR_SLOTS
    reason: Optional[str] = None
    is_active: bool = True              # False = durch neuere Deklaration ersetzt

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _normalize_date(cls, v):
        return to_utc_date(v)

    @field_validator("slots", mode="before")
    @classmethod
    def _parse_slots(cls, v):
        # Das Backend speichert die Slots als JSON-String
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
            try:
                return json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"Slots sind kein gültiges JSON: {v!r}") from e
        return v

    @model_validator(mode="after")
    def _check_scope(self):
        if self.start_date > self.end_date:
            raise ValueError(
                f"Feiertag: start_date {self.start_date} liegt nach end_date {self.end_date}"
            )
        if self.declaration_type.is_car_scoped and self.car_id is None:
            raise ValueError(
                f"{self.declaration_type.value} benötigt eine car_id"
            )
        if self.declaration_type.is_slot_scoped and not self.slots:
            raise ValueError(
                f"{self.declaration_type.value} benötigt mindestens einen Slot"
            )
        return self

    # ─── Abfragen ───

    def covers(self, day: date) -> bool:
        """Liegt das Datum im (inklusiven) Zeitraum?"""
        return self.start_date <= to_utc_date(day) <= self.end_date

    def applies_to_car(self, car_id: int) -> bool:
        return not self.declaration_type.is_car_scoped or self.car_id == car_id

    def blocks_whole_day(self, day: date, car_id: int) -> bool:
        """Ganztägige Sperre für dieses Fahrzeug an diesem Tag."""
        return (
            self.is_active
            and not self.declaration_type.is_slot_scoped
            and self.applies_to_car(car_id)
            and self.covers(day)
        )

    def blocks_slot(self, day: date, car_id: int, slot: str) -> bool:
        """Sperrt die Deklaration genau diesen Slot (ganztägig oder slot-genau)?"""
        if self.blocks_whole_day(day, car_id):
            return True
        return (
            self.is_active
            and self.declaration_type.is_slot_scoped
            and self.applies_to_car(car_id)
            and self.covers(day)
            and slot in (self.slots or [])
        )

    @property
    def day_count(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def blocked_slot_count(self, slots_per_day: int) -> int:
        """Anzahl gesperrter Slots (pro Fahrzeug) über den ganzen Zeitraum."""
        if self.declaration_type.is_slot_scoped:
            return self.day_count * len(self.slots or [])
        return self.day_count * slots_per_day

    def describe(self) -> str:
        scope = f"Fahrzeug {self.car_id}" if self.declaration_type.is_car_scoped else "alle Fahrzeuge"
        period = (
            self.start_date.isoformat() if self.start_date == self.end_date
            else f"{self.start_date.isoformat()} bis {self.end_date.isoformat()}"
        )
        if self.declaration_type.is_slot_scoped:
            return f"Feiertag ({scope}, {period}, Slots {', '.join(self.slots or [])})"
        return f"Feiertag ({scope}, {period})"
