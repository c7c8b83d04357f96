"""Verfügbarkeitsfilter: welche Slots eines Fahrzeugs sind an einem Tag buchbar?

Reine Funktion ohne versteckte Uhr: "jetzt" wird explizit übergeben.
"""

import logging
from datetime import date, datetime
from typing import Iterable, Optional, Union

from config.schema import Weekday
from engine.blocking import (
    OCCUPYING_STATUSES,
    is_weekly_off_day,
    occupying_session,
    slot_holiday,
    whole_day_holiday,
)
from models.holiday import HolidayDeclaration
from models.session import BookingSession
from models.timeslot import slot_start_time, to_utc_date, to_utc_datetime

logger = logging.getLogger(__name__)


def is_past_slot(slot: str, day: date, now: Optional[datetime]) -> bool:
    """Liegt der Slot-Beginn heute nicht mehr echt in der Zukunft?

    Nur relevant wenn ``day`` das UTC-Datum von ``now`` ist; sonst immer False.
    """
    if now is None:
        return False
    now = to_utc_datetime(now)
    if now.date() != to_utc_date(day):
        return False
    return not slot_start_time(slot) > now.time()


def available_slots(
    day: Union[date, datetime, str],
    car_id: int,
    all_slots: list[str],
    existing_sessions: Iterable[BookingSession],
    holidays: Iterable[HolidayDeclaration],
    weekly_holiday: Optional[Union[Weekday, str]] = None,
    now: Optional[datetime] = None,
    statuses: frozenset = OCCUPYING_STATUSES,
) -> list[str]:
    """Teilfolge von ``all_slots``, die für Fahrzeug ``car_id`` am Tag buchbar ist.

    Ein Slot entfällt bei:
      - wöchentlichem Ruhetag (ganzer Tag, hat Vorrang)
      - Belegung durch eine Session desselben Fahrzeugs/Datums/Slots
        mit Status in ``statuses`` (Standard: PENDING, CONFIRMED, CANCELLED)
      - ganztägigem Feiertag (alle Fahrzeuge oder dieses Fahrzeug)
      - Slot-Feiertag, der genau diesen Slot listet
      - vergangener Startzeit, falls ``day`` das Datum von ``now`` ist

    Die Reihenfolge von ``all_slots`` bleibt erhalten.
    """
    day = to_utc_date(day)
    if is_weekly_off_day(day, weekly_holiday):
        logger.debug(f"{day}: wöchentlicher Ruhetag – keine Slots")
        return []

    holidays = list(holidays)
    if whole_day_holiday(day, car_id, holidays) is not None:
        logger.debug(f"{day}: ganztägiger Feiertag für Fahrzeug {car_id}")
        return []

    sessions = [s for s in existing_sessions if s.car_id == car_id]
    result: list[str] = []
    for slot in all_slots:
        if occupying_session(day, car_id, slot, sessions, statuses) is not None:
            continue
        if slot_holiday(day, car_id, slot, holidays) is not None:
            continue
        if is_past_slot(slot, day, now):
            continue
        result.append(slot)

    logger.debug(
        f"Fahrzeug {car_id} am {day}: {len(result)}/{len(all_slots)} Slots frei"
    )
    return result


class AvailabilityFilter:
    """Bindet Kalender-Konfiguration und Datenbestand für wiederholte Abfragen."""

    def __init__(
        self,
        all_slots: list[str],
        sessions: Iterable[BookingSession],
        holidays: Iterable[HolidayDeclaration],
        weekly_holiday: Optional[Union[Weekday, str]] = None,
        statuses: frozenset = OCCUPYING_STATUSES,
    ) -> None:
        self.all_slots = list(all_slots)
        self.sessions = list(sessions)
        self.holidays = list(holidays)
        self.weekly_holiday = weekly_holiday
        self.statuses = statuses

    def slots_for(self, day: date, car_id: int,
                  now: Optional[datetime] = None) -> list[str]:
        return available_slots(
            day, car_id, self.all_slots, self.sessions, self.holidays,
            self.weekly_holiday, now, self.statuses,
        )

    def is_available(self, day: date, car_id: int, slot: str,
                     now: Optional[datetime] = None) -> bool:
        return slot in self.slots_for(day, car_id, now)
