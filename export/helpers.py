"""Gemeinsame Hilfsfunktionen für Export und Konsolenausgabe."""

from datetime import date, timedelta

from engine.day_schedule import SlotCell, SlotState
from models.scheduling_data import SchedulingData

# ─── Farbpalette (RRGGBB, ohne #) ─────────────────────────────────────────────

COLORS: dict[str, str] = {
    "free":      "E8F5E9",
    "booked":    "B3D4FF",
    "cancelled": "E0E0E0",
    "holiday":   "FFD4B3",
    "off_day":   "DDDDDD",
    "header":    "4472C4",
}

# Rich-Stile für die Tagesübersicht in der Konsole
RICH_STYLES: dict[SlotState, str] = {
    SlotState.FREE:    "green",
    SlotState.BOOKED:  "bold blue",
    SlotState.HOLIDAY: "yellow",
    SlotState.OFF_DAY: "dim",
}

STATE_LABELS: dict[SlotState, str] = {
    SlotState.FREE:    "frei",
    SlotState.BOOKED:  "gebucht",
    SlotState.HOLIDAY: "Feiertag",
    SlotState.OFF_DAY: "Ruhetag",
}


def hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Wandelt RRGGBB-String in (r, g, b)-Tupel um."""
    h = hex_color.lstrip("#")
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def today_str() -> str:
    """Gibt das heutige Datum als DD.MM.YYYY zurück."""
    return date.today().strftime("%d.%m.%Y")


def format_day(day: date) -> str:
    """"2024-11-01" → "Fr 01.11.2024"."""
    names = ["Mo", "Di", "Mi", "Do", "Fr", "Sa", "So"]
    return f"{names[day.weekday()]} {day.strftime('%d.%m.%Y')}"


def date_range(start: date, days: int) -> list[date]:
    return [start + timedelta(days=i) for i in range(days)]


# ─── Zellen ───────────────────────────────────────────────────────────────────

def cell_color(cell: SlotCell) -> str:
    """Hintergrundfarbe für eine Zelle der Tagesübersicht."""
    return {
        SlotState.FREE: COLORS["free"],
        SlotState.BOOKED: COLORS["booked"],
        SlotState.HOLIDAY: COLORS["holiday"],
        SlotState.OFF_DAY: COLORS["off_day"],
    }[cell.state]


def cell_text(cell: SlotCell, data: SchedulingData) -> str:
    """Kurztext für eine Zelle: Kunde + Buchungsreferenz bzw. Zustand."""
    if cell.state != SlotState.BOOKED or cell.booking_id is None:
        return STATE_LABELS[cell.state]
    booking = data.get_booking(cell.booking_id)
    if booking is None:
        return f"Buchung {cell.booking_id}"
    name = booking.customer_name or booking.reference
    return f"{name} ({booking.reference})"
