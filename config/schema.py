from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class Weekday(str, Enum):
    """Wochentage in der Schreibweise der Schulverwaltung (MONDAY..SUNDAY).

    Die Reihenfolge entspricht ``date.weekday()`` (0=Montag).
    """
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def parse(cls, value: "str | Weekday") -> "Weekday":
        """Groß-/Kleinschreibung egal: "sunday", "Sunday", "SUNDAY"."""
        if isinstance(value, Weekday):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(
                f"Unbekannter Wochentag: {value!r} "
                f"(erlaubt: {', '.join(d.value for d in cls)})"
            )

    @property
    def day_index(self) -> int:
        """0=Montag … 6=Sonntag (wie ``date.weekday()``)."""
        return list(Weekday).index(self)


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def _check_hhmm(value: str) -> str:
    parts = value.split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Uhrzeit muss im Format HH:MM angegeben werden: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if hours > 23 or minutes > 59:
        raise ValueError(f"Ungültige Uhrzeit: {value!r}")
    return f"{hours:02d}:{minutes:02d}"


# ─── SCHULKALENDER ───

class SchoolCalendarConfig(BaseModel):
    """Öffnungszeiten, Mittagspause und wöchentlicher Ruhetag der Fahrschule.

    Aus diesen Werten werden die 60-Minuten-Slots für jedes Fahrzeug erzeugt.
    """
    # Beginn des ersten Slots im Format "HH:MM"
    day_start_time: str = Field(description="Tagesbeginn (HH:MM)")
    # Ende des letzten Slots im Format "HH:MM"
    day_end_time: str = Field(description="Tagesende (HH:MM)")
    # Optionale Mittagspause; beide Werte oder keiner
    lunch_start_time: Optional[str] = Field(None, description="Beginn Mittagspause")
    lunch_end_time: Optional[str] = Field(None, description="Ende Mittagspause")
    # Wöchentlicher Ruhetag (kein Fahrbetrieb), z.B. SUNDAY
    weekly_holiday: Optional[Weekday] = Field(None, description="Wöchentlicher Ruhetag")

    @field_validator("day_start_time", "day_end_time")
    @classmethod
    def _normalize_day_times(cls, v: str) -> str:
        return _check_hhmm(v)

    @field_validator("lunch_start_time", "lunch_end_time")
    @classmethod
    def _normalize_lunch_times(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        return _check_hhmm(v)

    @field_validator("weekly_holiday", mode="before")
    @classmethod
    def _parse_weekday(cls, v):
        if v is None or v == "":
            return None
        return Weekday.parse(v)

    @model_validator(mode="after")
    def _check_times(self):
        start, end = _minutes(self.day_start_time), _minutes(self.day_end_time)
        if start >= end:
            raise ValueError(
                f"Tagesbeginn {self.day_start_time} muss vor Tagesende "
                f"{self.day_end_time} liegen"
            )
        if (self.lunch_start_time is None) != (self.lunch_end_time is None):
            raise ValueError("Mittagspause braucht Beginn UND Ende")
        if self.lunch_start_time is not None:
            ls, le = _minutes(self.lunch_start_time), _minutes(self.lunch_end_time)
            if ls >= le:
                raise ValueError(
                    f"Mittagspause: Beginn {self.lunch_start_time} muss vor "
                    f"Ende {self.lunch_end_time} liegen"
                )
            if ls < start or le > end:
                raise ValueError(
                    "Mittagspause muss innerhalb der Öffnungszeiten liegen"
                )
        return self

    @property
    def has_lunch(self) -> bool:
        return self.lunch_start_time is not None


# ─── BUCHUNGSREGELN ───

class BookingRules(BaseModel):
    """Geschäftsregeln für Buchungen und Terminänderungen."""
    # Frühester Kursbeginn: heute + min_lead_days
    min_lead_days: int = Field(1, ge=0, le=30,
        description="Vorlauf in Tagen für neue Buchungen")
    # Blockiert eine stornierte Session denselben Slot am selben Tag weiterhin?
    cancelled_blocks_slot: bool = Field(True,
        description="Stornierte Sessions blockieren ihren Slot weiterhin")
    # Suchhorizont für freie Kurstage (find_course_dates)
    max_search_days: int = Field(365, ge=1,
        description="Maximale Anzahl Tage bei der Suche nach freien Kurstagen")


# ─── GESAMT-KONFIGURATION ───

class SchoolConfig(BaseModel):
    """Gesamt-Konfiguration einer Fahrschule."""
    school_name: str = Field(description="Name der Fahrschule")
    calendar: SchoolCalendarConfig
    booking: BookingRules = BookingRules()
