"""Tagesübersicht für den Disponenten: Fahrzeug × Slot → Zustand."""

from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Optional, Union

from pydantic import BaseModel

from config.schema import Weekday
from engine.blocking import is_weekly_off_day, slot_holiday
from models.car import Car
from models.holiday import HolidayDeclaration
from models.session import BookingSession, SessionStatus
from models.timeslot import to_utc_date


class SlotState(str, Enum):
    FREE = "FREE"
    BOOKED = "BOOKED"
    HOLIDAY = "HOLIDAY"
    OFF_DAY = "OFF_DAY"


class SlotCell(BaseModel):
    slot: str
    state: SlotState
    booking_id: Optional[int] = None
    session_id: Optional[int] = None
    session_status: Optional[SessionStatus] = None


class CarDaySchedule(BaseModel):
    """Alle Slots eines Fahrzeugs an einem Tag."""

    car_id: int
    car_name: str
    day: date
    cells: list[SlotCell]

    @property
    def free_count(self) -> int:
        return sum(1 for c in self.cells if c.state == SlotState.FREE)

    def cell(self, slot: str) -> Optional[SlotCell]:
        return next((c for c in self.cells if c.slot == slot), None)


def _active_session(sessions: list[BookingSession], car_id: int, day: date,
                    slot: str) -> Optional[BookingSession]:
    # Stornierte Termine erscheinen im Raster nicht als Buchung
    for s in sessions:
        if (s.car_id == car_id and s.session_date == day and s.slot == slot
                and s.status != SessionStatus.CANCELLED):
            return s
    return None


def build_day_schedule(
    day: Union[date, str],
    cars: Iterable[Car],
    all_slots: list[str],
    sessions: Iterable[BookingSession],
    holidays: Iterable[HolidayDeclaration],
    weekly_holiday: Optional[Union[Weekday, str]] = None,
) -> list[CarDaySchedule]:
    """Raster für alle Fahrzeuge; Feiertag hat Vorrang vor Buchung."""
    day = to_utc_date(day)
    sessions = [s for s in sessions if s.session_date == day]
    holidays = list(holidays)
    off_day = is_weekly_off_day(day, weekly_holiday)

    schedules: list[CarDaySchedule] = []
    for car in cars:
        cells: list[SlotCell] = []
        for slot in all_slots:
            if off_day:
                cells.append(SlotCell(slot=slot, state=SlotState.OFF_DAY))
                continue
            if slot_holiday(day, car.id, slot, holidays) is not None:
                cells.append(SlotCell(slot=slot, state=SlotState.HOLIDAY))
                continue
            session = _active_session(sessions, car.id, day, slot)
            if session is not None:
                cells.append(SlotCell(
                    slot=slot, state=SlotState.BOOKED,
                    booking_id=session.booking_id, session_id=session.id,
                    session_status=session.status,
                ))
            else:
                cells.append(SlotCell(slot=slot, state=SlotState.FREE))
        schedules.append(CarDaySchedule(car_id=car.id, car_name=car.name,
                                        day=day, cells=cells))
    return schedules


def next_free_date(
    car_id: int,
    slot: str,
    sessions: Iterable[BookingSession],
    weekly_holiday: Optional[Union[Weekday, str]] = None,
) -> Optional[date]:
    """Tag nach dem letzten nicht stornierten Termin dieses Fahrzeugs/Slots.

    Fällt dieser Tag auf den Ruhetag, wird ein Tag weitergezählt.
    None, wenn der Slot nie belegt war.
    """
    dates = [
        s.session_date for s in sessions
        if s.car_id == car_id and s.slot == slot and s.status != SessionStatus.CANCELLED
    ]
    if not dates:
        return None
    nxt = max(dates) + timedelta(days=1)
    if is_weekly_off_day(nxt, weekly_holiday):
        nxt += timedelta(days=1)
    return nxt
