"""Slot-Generator: Öffnungszeiten → geordnete Liste einstündiger Slots."""

import logging
from typing import Optional

from config.schema import SchoolCalendarConfig
from models.timeslot import SLOT_MINUTES, SlotLabel, parse_time

logger = logging.getLogger(__name__)


def overlaps_lunch(start: int, end: int, lunch_start: int, lunch_end: int) -> bool:
    """Überschneidet das Fenster [start, end) die Mittagspause [lunch_start, lunch_end)?

    Positiv wenn der Beginn in der Pause liegt, das Ende in der Pause liegt
    (genau auf lunch_start endend zählt nicht) oder das Fenster die Pause
    vollständig umschließt.
    """
    return (
        (lunch_start <= start < lunch_end)
        or (lunch_start < end <= lunch_end)
        or (start < lunch_start and end > lunch_end)
    )


def generate_slots(
    day_start: str,
    day_end: str,
    lunch_start: Optional[str] = None,
    lunch_end: Optional[str] = None,
) -> list[str]:
    """Erzeugt alle 60-Minuten-Slots zwischen day_start und day_end.

    Ein angebrochener Rest (< 60 min) am Tagesende wird verworfen.
    Slots, die die Mittagspause berühren, entfallen. Ohne Pausenangabe
    (eine der beiden fehlt) wird nichts ausgeschlossen.

    Args:
        day_start: "HH:MM"
        day_end: "HH:MM"
        lunch_start: optional "HH:MM"
        lunch_end: optional "HH:MM"

    Returns:
        Aufsteigend sortierte Slot-Strings "HH:MM-HH:MM".

    Raises:
        ValueError: bei nicht-numerischen Stunden/Minuten.
    """
    start = parse_time(day_start)
    end = parse_time(day_end)
    lunch: Optional[tuple[int, int]] = None
    if lunch_start and lunch_end:
        lunch = (parse_time(lunch_start), parse_time(lunch_end))

    slots: list[str] = []
    current = start
    while current + SLOT_MINUTES <= end:
        nxt = current + SLOT_MINUTES
        if lunch is None or not overlaps_lunch(current, nxt, *lunch):
            slots.append(SlotLabel(current, nxt).label)
        current = nxt

    logger.debug(f"Slots {day_start}-{day_end}: {len(slots)} erzeugt")
    return slots


def slots_for_calendar(calendar: SchoolCalendarConfig) -> list[str]:
    """Slots direkt aus der Schul-Konfiguration."""
    return generate_slots(
        calendar.day_start_time,
        calendar.day_end_time,
        calendar.lunch_start_time,
        calendar.lunch_end_time,
    )


def categorize_slots(slots: list[str]) -> dict[str, list[str]]:
    """Gruppiert Slots nach Tageszeit: Vormittag (< 12 Uhr), Nachmittag (< 17 Uhr), Abend."""
    groups: dict[str, list[str]] = {"morning": [], "afternoon": [], "evening": []}
    for slot in slots:
        hour = SlotLabel.parse(slot).start_hour
        if hour < 12:
            groups["morning"].append(slot)
        elif hour < 17:
            groups["afternoon"].append(slot)
        else:
            groups["evening"].append(slot)
    return groups
