from models.timeslot import SlotLabel
from models.session import BookingSession, SessionStatus
from models.holiday import DeclarationType, HolidayDeclaration
from models.car import Car, CarStatus
from models.course import Course
from models.booking import Booking
from models.scheduling_data import SchedulingData

__all__ = [
    "SlotLabel",
    "BookingSession",
    "SessionStatus",
    "DeclarationType",
    "HolidayDeclaration",
    "Car",
    "CarStatus",
    "Course",
    "Booking",
    "SchedulingData",
]
