"""Datenmodell für einen Fahrstunden-Slot ("HH:MM-HH:MM") und Datums-Helfer."""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Union

SLOT_MINUTES = 60


def parse_time(hhmm: str) -> int:
    """ "HH:MM" → Minuten seit Mitternacht.

    Prüft nur die Zerlegbarkeit; nicht-numerische Teile lösen ValueError aus.
    """
    hours, minutes = hhmm.strip().split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(minutes: int) -> str:
    """Minuten seit Mitternacht → "HH:MM" (zweistellig, 24h)."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def to_utc_date(value: Union[date, datetime, str]) -> date:
    """Normalisiert einen Datumswert auf das Kalenderdatum in UTC.

    Zeitzonen-behaftete datetimes werden nach UTC umgerechnet, naive
    datetimes gelten bereits als UTC. Strings: "YYYY-MM-DD" oder ISO-8601.
    """
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return date.fromisoformat(text)
        value = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def to_utc_datetime(value: datetime) -> datetime:
    """Zeitzonen-behaftete datetimes nach UTC umrechnen, naive gelten als UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class SlotLabel:
    """Ein einstündiger Slot, z.B. 09:00-10:00.

    Immutable (frozen=True) damit es als Dict-Key / Set-Element nutzbar ist.
    In Sessions und Feiertagen wird nur die String-Form gespeichert.
    """

    # Minuten seit Mitternacht
    start: int
    end: int

    @classmethod
    def parse(cls, label: str) -> "SlotLabel":
        """ "09:00-10:00" → SlotLabel(540, 600)."""
        start_str, end_str = label.split("-")
        return cls(parse_time(start_str), parse_time(end_str))

    @property
    def label(self) -> str:
        return f"{format_minutes(self.start)}-{format_minutes(self.end)}"

    @property
    def start_time(self) -> time:
        return time(self.start // 60, self.start % 60)

    @property
    def start_hour(self) -> int:
        return self.start // 60

    def overlaps(self, start: int, end: int) -> bool:
        """Echte Überschneidung mit dem halboffenen Intervall [start, end)."""
        return self.start < end and start < self.end

    def __str__(self) -> str:
        return self.label


def slot_start_time(label: str) -> time:
    """Startzeit eines Slot-Strings als ``time``."""
    return SlotLabel.parse(label).start_time
