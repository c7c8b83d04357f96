"""Gemeinsame Sperr-Prädikate für Slot-Verfügbarkeit und Terminänderungen.

Prüfreihenfolge:
  1. Wöchentlicher Ruhetag   → ganzer Tag gesperrt (hat Vorrang)
  2. Ganztägiger Feiertag    → ganzer Tag gesperrt (alle Fahrzeuge / ein Fahrzeug)
  3. Slot-Feiertag           → nur die gelisteten Slots gesperrt
  4. Belegung                → Session desselben Fahrzeugs, Datums und Slots
"""

from datetime import date
from typing import Iterable, Optional, Union

from config.schema import Weekday
from models.holiday import HolidayDeclaration
from models.session import BookingSession, SessionStatus
from models.timeslot import to_utc_date

# Stornierte Sessions blockieren ihren Slot am selben Tag weiterhin
OCCUPYING_STATUSES = frozenset({
    SessionStatus.PENDING,
    SessionStatus.CONFIRMED,
    SessionStatus.CANCELLED,
})


def occupying_statuses(cancelled_blocks_slot: bool = True) -> frozenset:
    if cancelled_blocks_slot:
        return OCCUPYING_STATUSES
    return OCCUPYING_STATUSES - {SessionStatus.CANCELLED}


def is_weekly_off_day(day: date, weekly_holiday: Optional[Union[Weekday, str]]) -> bool:
    if not weekly_holiday:
        return False
    return to_utc_date(day).weekday() == Weekday.parse(weekly_holiday).day_index


def whole_day_holiday(
    day: date, car_id: int, holidays: Iterable[HolidayDeclaration]
) -> Optional[HolidayDeclaration]:
    """Erste ganztägige Sperre für Fahrzeug/Tag oder None."""
    return next((h for h in holidays if h.blocks_whole_day(day, car_id)), None)


def slot_holiday(
    day: date, car_id: int, slot: str, holidays: Iterable[HolidayDeclaration]
) -> Optional[HolidayDeclaration]:
    """Erste Deklaration (ganztägig oder slot-genau), die den Slot sperrt."""
    return next((h for h in holidays if h.blocks_slot(day, car_id, slot)), None)


def occupying_session(
    day: date,
    car_id: int,
    slot: str,
    sessions: Iterable[BookingSession],
    statuses: frozenset = OCCUPYING_STATUSES,
) -> Optional[BookingSession]:
    """Session, die Fahrzeug/Tag/Slot belegt, oder None."""
    key = to_utc_date(day)
    for s in sessions:
        if (s.car_id == car_id and s.session_date == key
                and s.slot == slot and s.status in statuses):
            return s
    return None


def block_reasons(
    day: date,
    car_id: int,
    slot: str,
    sessions: Iterable[BookingSession],
    holidays: Iterable[HolidayDeclaration],
    weekly_holiday: Optional[Union[Weekday, str]] = None,
    statuses: frozenset = OCCUPYING_STATUSES,
) -> list[str]:
    """Alle Gründe, warum Fahrzeug/Tag/Slot nicht buchbar ist (leer = frei).

    Ein Ruhetag liefert genau einen Grund, weitere Prüfungen entfallen.
    """
    day = to_utc_date(day)
    if is_weekly_off_day(day, weekly_holiday):
        return [f"{day.isoformat()} ist wöchentlicher Ruhetag ({Weekday.parse(weekly_holiday).value})"]

    reasons: list[str] = []
    holiday = slot_holiday(day, car_id, slot, holidays)
    if holiday is not None:
        reasons.append(f"{day.isoformat()} {slot}: {holiday.describe()}")
    session = occupying_session(day, car_id, slot, sessions, statuses)
    if session is not None:
        reasons.append(
            f"{day.isoformat()} {slot}: Fahrzeug {car_id} bereits belegt "
            f"(Buchung {session.booking_id}, Status {session.status.value})"
        )
    return reasons


def is_slot_blocked(
    day: date,
    car_id: int,
    slot: str,
    sessions: Iterable[BookingSession],
    holidays: Iterable[HolidayDeclaration],
    weekly_holiday: Optional[Union[Weekday, str]] = None,
    statuses: frozenset = OCCUPYING_STATUSES,
) -> bool:
    return bool(block_reasons(day, car_id, slot, sessions, holidays,
                              weekly_holiday, statuses))
