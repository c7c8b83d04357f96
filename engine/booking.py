"""Buchungsplanung: Buchungsanfrage prüfen und Kurstermine erzeugen."""

import logging
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator

from engine.availability import available_slots, is_past_slot
from engine.blocking import block_reasons, occupying_statuses
from engine.materializer import find_course_dates, materialize_session_dates, materialize_sessions
from engine.slots import slots_for_calendar
from models.booking import Booking
from models.scheduling_data import SchedulingData
from models.session import BookingSession
from models.timeslot import to_utc_date

logger = logging.getLogger(__name__)


class DateStrategy(str, Enum):
    # Nur Ruhetag überspringen (Standard)
    WEEKLY_HOLIDAY = "weekly_holiday"
    # Zusätzlich belegte Tage desselben Fahrzeugs/Slots überspringen
    SKIP_OCCUPIED = "skip_occupied"


class BookingRequest(BaseModel):
    """Eingabe des Buchungsformulars."""

    car_id: int
    course_id: int
    slot: str
    start_date: date
    customer_name: str = ""
    customer_mobile: Optional[str] = None

    @field_validator("start_date", mode="before")
    @classmethod
    def _normalize_date(cls, v):
        return to_utc_date(v)


class BookingPlan(BaseModel):
    """Ablehnungsgründe ODER neue Buchung mit ihren Terminen."""

    rejections: list[str] = []
    booking: Optional[Booking] = None
    sessions: list[BookingSession] = []

    @property
    def is_accepted(self) -> bool:
        return not self.rejections


class BookingPlanner:
    """Prüft Buchungsanfragen gegen einen Datenbestand und materialisiert die Termine."""

    def __init__(self, data: SchedulingData,
                 strategy: DateStrategy = DateStrategy.WEEKLY_HOLIDAY) -> None:
        self.data = data
        self.strategy = strategy
        self.calendar = data.config.calendar
        self.rules = data.config.booking
        self.statuses = occupying_statuses(self.rules.cancelled_blocks_slot)

    def offered_slots(self, car_id: int, day: date,
                      now: Optional[datetime] = None) -> list[str]:
        """Slots, die das Formular für Fahrzeug/Tag anbieten würde."""
        return available_slots(
            day, car_id, slots_for_calendar(self.calendar),
            self.data.sessions_for_car(car_id), self.data.active_holidays(),
            self.calendar.weekly_holiday, now, self.statuses,
        )

    def validate(self, request: BookingRequest, today: date,
                 now: Optional[datetime] = None) -> list[str]:
        """Alle Gründe gegen die Buchung (leer = buchbar).

        Mit ``now`` entfällt am heutigen Tag ein Slot, der schon begonnen hat.
        """
        errors: list[str] = []
        car = self.data.get_car(request.car_id)
        if car is None:
            errors.append(f"Fahrzeug {request.car_id} existiert nicht")
        elif not car.is_bookable:
            errors.append(f"Fahrzeug {car.name} ist nicht buchbar ({car.status.value})")

        if self.data.get_course(request.course_id) is None:
            errors.append(f"Kurs {request.course_id} existiert nicht")

        if not request.slot:
            errors.append("Bitte einen Slot wählen")
        elif request.slot not in slots_for_calendar(self.calendar):
            errors.append(f"Slot {request.slot} liegt nicht im Tagesraster der Schule")

        min_date = today + timedelta(days=self.rules.min_lead_days)
        if request.start_date < min_date:
            errors.append(
                f"Kursbeginn muss ab {min_date.strftime('%d %b %Y')} liegen"
            )

        if car is not None and request.slot and not errors:
            errors.extend(block_reasons(
                request.start_date, request.car_id, request.slot,
                self.data.sessions_for_car(request.car_id), self.data.active_holidays(),
                self.calendar.weekly_holiday, self.statuses,
            ))
            if is_past_slot(request.slot, request.start_date, now):
                errors.append(
                    f"{request.start_date.isoformat()} {request.slot}: Slot hat bereits begonnen"
                )
        return errors

    def plan(self, request: BookingRequest, today: date,
             now: Optional[datetime] = None) -> BookingPlan:
        errors = self.validate(request, today, now)
        if errors:
            logger.info(f"Buchung abgelehnt: {'; '.join(errors)}")
            return BookingPlan(rejections=errors)

        car = self.data.get_car(request.car_id)
        course = self.data.get_course(request.course_id)
        if self.strategy is DateStrategy.SKIP_OCCUPIED:
            try:
                dates = find_course_dates(
                    request.start_date, course.course_days, car.id, request.slot,
                    self.data.sessions_for_car(car.id), self.calendar.weekly_holiday,
                    self.statuses, self.rules.max_search_days,
                )
            except ValueError as e:
                return BookingPlan(rejections=[str(e)])
        else:
            dates = materialize_session_dates(
                request.start_date, course.course_days, self.calendar.weekly_holiday,
            )

        booking = Booking(
            id=self.data.next_booking_id(),
            car_id=car.id,
            course_id=course.id,
            slot=request.slot,
            start_date=dates[0],
            customer_name=request.customer_name,
            customer_mobile=request.customer_mobile,
            created_at=now,
        )
        sessions = materialize_sessions(booking, dates, car.assigned_driver_id)
        first_id = self.data.next_session_id()
        sessions = [s.model_copy(update={"id": first_id + i}) for i, s in enumerate(sessions)]
        return BookingPlan(booking=booking, sessions=sessions)

    def commit(self, plan: BookingPlan) -> SchedulingData:
        """Neue Momentaufnahme mit Buchung und Terminen (der bisherige Datensatz bleibt unverändert)."""
        if not plan.is_accepted or plan.booking is None:
            raise ValueError("Abgelehnte Buchung kann nicht übernommen werden")
        return self.data.model_copy(update={
            "bookings": [*self.data.bookings, plan.booking],
            "sessions": [*self.data.sessions, *plan.sessions],
        })
