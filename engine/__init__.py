"""Planungs-Engine: Slots, Verfügbarkeit, Kurstermine und Terminänderungen."""

from .slots import generate_slots, slots_for_calendar, categorize_slots
from .availability import available_slots, AvailabilityFilter
from .materializer import (
    materialize_session_dates, materialize_sessions, materialize_booking, find_course_dates,
)
from .amendment import (
    AmendmentAction, AmendmentEngine, AmendmentInputError, AmendmentPlan,
    AmendmentRequest, apply_plan,
)
from .booking import BookingPlanner, BookingPlan, BookingRequest, DateStrategy
from .day_schedule import build_day_schedule, next_free_date, CarDaySchedule, SlotState

__all__ = [
    "generate_slots",
    "slots_for_calendar",
    "categorize_slots",
    "available_slots",
    "AvailabilityFilter",
    "materialize_session_dates",
    "materialize_sessions",
    "materialize_booking",
    "find_course_dates",
    "AmendmentAction",
    "AmendmentEngine",
    "AmendmentInputError",
    "AmendmentPlan",
    "AmendmentRequest",
    "apply_plan",
    "BookingPlanner",
    "BookingPlan",
    "BookingRequest",
    "DateStrategy",
    "build_day_schedule",
    "next_free_date",
    "CarDaySchedule",
    "SlotState",
]
