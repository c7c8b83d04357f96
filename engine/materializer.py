"""Kurs-Materialisierung: Startdatum + Kurstage → datierte Einzeltermine.

Übersprungen wird nur der wöchentliche Ruhetag. Feiertags-Deklarationen
werden hier NICHT berücksichtigt – ein Kurs kann also in einen deklarierten
Feiertag fallen (siehe analysis.session_validator, Warnung "session_on_holiday").
"""

import logging
from datetime import date, timedelta
from typing import Iterable, Optional, Union

from config.schema import Weekday
from engine.blocking import OCCUPYING_STATUSES, is_weekly_off_day, occupying_session
from models.booking import Booking
from models.car import Car
from models.session import BookingSession, SessionStatus
from models.timeslot import to_utc_date

logger = logging.getLogger(__name__)


def _next_teaching_day(day: date, weekly_holiday) -> date:
    while is_weekly_off_day(day, weekly_holiday):
        day += timedelta(days=1)
    return day


def materialize_session_dates(
    start_date: Union[date, str],
    course_days: int,
    weekly_holiday: Optional[Union[Weekday, str]] = None,
) -> list[date]:
    """Liefert genau ``course_days`` aufsteigende Kurstage ab ``start_date``.

    Tag 1 ist ``start_date`` (fällt es auf den Ruhetag, rutscht es auf den
    nächsten Betriebstag). Jeder weitere Tag ist der nächste Kalendertag
    nach dem Vortag, der kein Ruhetag ist.

    Raises:
        ValueError: wenn course_days < 1.
    """
    if course_days < 1:
        raise ValueError(f"course_days muss >= 1 sein (ist {course_days})")

    current = _next_teaching_day(to_utc_date(start_date), weekly_holiday)
    dates = [current]
    while len(dates) < course_days:
        current = _next_teaching_day(current + timedelta(days=1), weekly_holiday)
        dates.append(current)
    return dates


def find_course_dates(
    start_date: Union[date, str],
    course_days: int,
    car_id: int,
    slot: str,
    sessions: Iterable[BookingSession],
    weekly_holiday: Optional[Union[Weekday, str]] = None,
    statuses: frozenset = OCCUPYING_STATUSES,
    max_search_days: int = 365,
) -> list[date]:
    """Wie materialize_session_dates, überspringt aber zusätzlich Tage,
    an denen Fahrzeug und Slot schon belegt sind.

    Als belegt gelten Sessions mit Status in ``statuses``, standardmäßig
    derselbe Satz wie bei der Verfügbarkeitsprüfung (PENDING, CONFIRMED,
    CANCELLED). Damit bietet die Terminsuche keinen Tag an, den
    ``available_slots`` für Fahrzeug/Slot sperrt. Das Buchungsformular der
    Web-Anwendung gibt stornierte Tage dagegen frei und sperrt COMPLETED;
    dieses Verhalten erhält man mit ``cancelled_blocks_slot=False`` bzw.
    einem eigenen ``statuses``-Satz. COMPLETED liegt stets in der
    Vergangenheit und ist für die Suche ab einem zukünftigen Starttag ohne
    Bedeutung.

    Raises:
        ValueError: wenn course_days < 1 oder innerhalb von
            ``max_search_days`` nicht genug freie Tage gefunden werden.
    """
    if course_days < 1:
        raise ValueError(f"course_days muss >= 1 sein (ist {course_days})")

    sessions = [s for s in sessions if s.car_id == car_id and s.slot == slot]
    first = to_utc_date(start_date)
    current = first
    dates: list[date] = []
    while len(dates) < course_days:
        if (current - first).days >= max_search_days:
            raise ValueError(
                f"Nur {len(dates)} von {course_days} freien Kurstagen für "
                f"Fahrzeug {car_id}/{slot} innerhalb von {max_search_days} Tagen gefunden"
            )
        if (not is_weekly_off_day(current, weekly_holiday)
                and occupying_session(current, car_id, slot, sessions, statuses) is None):
            dates.append(current)
        current += timedelta(days=1)
    return dates


def materialize_sessions(
    booking: Booking,
    dates: list[date],
    driver_id: Optional[int] = None,
) -> list[BookingSession]:
    """Erzeugt für jeden Kurstag eine PENDING-Session (day_number = 1..n).

    Slot, Fahrzeug und Fahrlehrer sind für alle Tage gleich.
    """
    sessions = [
        BookingSession(
            booking_id=booking.id,
            day_number=k,
            session_date=day,
            slot=booking.slot,
            car_id=booking.car_id,
            driver_id=driver_id,
            status=SessionStatus.PENDING,
        )
        for k, day in enumerate(dates, start=1)
    ]
    logger.info(
        f"Buchung {booking.id}: {len(sessions)} Termine "
        f"{dates[0] if dates else '-'} … {dates[-1] if dates else '-'} ({booking.slot})"
    )
    return sessions


def materialize_booking(
    booking: Booking,
    car: Car,
    course_days: int,
    weekly_holiday: Optional[Union[Weekday, str]] = None,
) -> list[BookingSession]:
    """Standardweg: Kurstage nach Ruhetags-Regel, Fahrlehrer aus dem Fahrzeug."""
    dates = materialize_session_dates(booking.start_date, course_days, weekly_holiday)
    return materialize_sessions(booking, dates, car.assigned_driver_id)
