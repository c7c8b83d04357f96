"""Tests für Slot-Generator, Verfügbarkeit, Kurstermine, Tagesübersicht und Buchung."""

from datetime import date, datetime, timedelta, timezone

import pytest

from config.defaults import default_school_config
from engine.availability import AvailabilityFilter, available_slots, is_past_slot
from engine.blocking import block_reasons, occupying_statuses
from engine.booking import BookingPlanner, BookingRequest, DateStrategy
from engine.day_schedule import SlotState, build_day_schedule, next_free_date
from engine.materializer import (
    find_course_dates, materialize_booking, materialize_session_dates, materialize_sessions,
)
from engine.slots import categorize_slots, generate_slots, overlaps_lunch
from models.booking import Booking
from models.car import Car, CarStatus
from models.course import Course
from models.holiday import DeclarationType, HolidayDeclaration
from models.scheduling_data import SchedulingData
from models.session import BookingSession, SessionStatus
from models.timeslot import SlotLabel, parse_time

ALL_SLOTS = [
    "09:00-10:00", "10:00-11:00", "11:00-12:00", "12:00-13:00",
    "14:00-15:00", "15:00-16:00", "16:00-17:00",
]


def _session(car_id=5, day="2024-11-20", slot="10:00-11:00",
             status=SessionStatus.CONFIRMED, **kw) -> BookingSession:
    deleted = kw.pop("deleted_at", None)
    if status == SessionStatus.CANCELLED and deleted is None:
        deleted = datetime(2024, 11, 1, tzinfo=timezone.utc)
    return BookingSession(
        id=kw.pop("id", 1), booking_id=kw.pop("booking_id", 1),
        day_number=kw.pop("day_number", 1), session_date=day, slot=slot,
        car_id=car_id, status=status, deleted_at=deleted, **kw,
    )


# ─── SLOT-GENERATOR ───────────────────────────────────────────────────────────

class TestGenerateSlots:
    def test_standard_day_with_lunch(self):
        """09-17 Uhr mit Mittag 13-14 → 7 Slots ohne 13:00-14:00."""
        slots = generate_slots("09:00", "17:00", "13:00", "14:00")
        assert slots == ALL_SLOTS

    @pytest.mark.parametrize("start,end,expected", [
        ("09:00", "17:00", 8),
        ("08:30", "12:00", 3),      # angebrochene Stunde entfällt
        ("09:00", "09:59", 0),
        ("00:00", "23:59", 23),
    ])
    def test_count_without_lunch(self, start, end, expected):
        slots = generate_slots(start, end)
        assert len(slots) == expected
        assert len(slots) == (parse_time(end) - parse_time(start)) // 60

    def test_slots_contiguous_and_sixty_minutes(self):
        slots = [SlotLabel.parse(s) for s in generate_slots("07:15", "15:15")]
        for a, b in zip(slots, slots[1:]):
            assert a.end == b.start
        assert all(s.end - s.start == 60 for s in slots)

    def test_unaligned_lunch_removes_both_touching_slots(self):
        """Mittag 12:30-13:30 berührt 12:00-13:00 und 13:00-14:00."""
        slots = generate_slots("09:00", "17:00", "12:30", "13:30")
        assert "12:00-13:00" not in slots
        assert "13:00-14:00" not in slots
        assert "11:00-12:00" in slots
        assert "14:00-15:00" in slots

    @pytest.mark.parametrize("lunch", [("12:30", "13:30"), ("13:00", "14:00"),
                                       ("10:15", "10:45"), ("11:00", "13:00")])
    def test_no_slot_overlaps_lunch(self, lunch):
        ls, le = (parse_time(t) for t in lunch)
        for slot in generate_slots("08:00", "18:00", *lunch):
            assert not SlotLabel.parse(slot).overlaps(ls, le)

    def test_only_one_lunch_value_ignored(self):
        assert generate_slots("09:00", "11:00", "10:00", None) == ["09:00-10:00", "10:00-11:00"]

    def test_slot_ending_at_lunch_start_kept(self):
        assert not overlaps_lunch(parse_time("12:00"), parse_time("13:00"),
                                  parse_time("13:00"), parse_time("14:00"))

    def test_malformed_time_raises(self):
        with pytest.raises(ValueError):
            generate_slots("neun", "17:00")

    def test_categorize_slots(self):
        groups = categorize_slots(ALL_SLOTS + ["17:00-18:00"])
        assert groups["morning"] == ALL_SLOTS[:3]
        assert groups["afternoon"] == ["12:00-13:00", "14:00-15:00", "15:00-16:00", "16:00-17:00"]
        assert groups["evening"] == ["17:00-18:00"]


# ─── VERFÜGBARKEIT ────────────────────────────────────────────────────────────

class TestAvailableSlots:
    def test_weekly_holiday_returns_empty(self):
        """Sonntag + Ruhetag SUNDAY → leer, unabhängig von anderen Eingaben."""
        sunday = date(2024, 11, 24)
        assert available_slots(sunday, 5, ALL_SLOTS, [], [], "SUNDAY") == []
        assert available_slots(sunday, 5, ALL_SLOTS, [], [], "sunday") == []

    def test_occupied_slot_only_for_same_car(self):
        """Belegung von Fahrzeug 5 sperrt nicht Fahrzeug 6."""
        sessions = [_session()]
        day = date(2024, 11, 20)
        free_5 = available_slots(day, 5, ALL_SLOTS, sessions, [])
        free_6 = available_slots(day, 6, ALL_SLOTS, sessions, [])
        assert "10:00-11:00" not in free_5
        assert "10:00-11:00" in free_6
        assert free_6 == ALL_SLOTS

    def test_other_date_not_blocked(self):
        assert available_slots(date(2024, 11, 21), 5, ALL_SLOTS, [_session()], []) == ALL_SLOTS

    def test_cancelled_blocks_by_default(self):
        sessions = [_session(status=SessionStatus.CANCELLED)]
        assert "10:00-11:00" not in available_slots(date(2024, 11, 20), 5, ALL_SLOTS, sessions, [])

    def test_cancelled_released_when_configured(self):
        sessions = [_session(status=SessionStatus.CANCELLED)]
        free = available_slots(date(2024, 11, 20), 5, ALL_SLOTS, sessions, [],
                               statuses=occupying_statuses(False))
        assert "10:00-11:00" in free

    @pytest.mark.parametrize("status", [SessionStatus.COMPLETED, SessionStatus.NO_SHOW])
    def test_finished_sessions_do_not_block(self, status):
        sessions = [_session(status=status)]
        assert available_slots(date(2024, 11, 20), 5, ALL_SLOTS, sessions, []) == ALL_SLOTS

    def test_particular_slot_holiday_one_car(self):
        """ONE_CAR_PARTICULAR_SLOTS sperrt nur den Slot dieses Fahrzeugs."""
        holiday = HolidayDeclaration(
            declaration_type=DeclarationType.ONE_CAR_PARTICULAR_SLOTS,
            car_id=5, start_date="2024-12-01", end_date="2024-12-01",
            slots=["09:00-10:00"],
        )
        day = date(2024, 12, 1)
        assert available_slots(day, 5, ALL_SLOTS, [], [holiday]) == ALL_SLOTS[1:]
        assert available_slots(day, 6, ALL_SLOTS, [], [holiday]) == ALL_SLOTS
        assert available_slots(date(2024, 12, 2), 5, ALL_SLOTS, [], [holiday]) == ALL_SLOTS

    def test_whole_day_holiday_all_cars(self):
        holiday = HolidayDeclaration(
            declaration_type=DeclarationType.ALL_CARS_MULTIPLE_DATES,
            start_date="2024-12-24", end_date="2024-12-26",
        )
        for day in (date(2024, 12, 24), date(2024, 12, 26)):
            assert available_slots(day, 5, ALL_SLOTS, [], [holiday]) == []
        assert available_slots(date(2024, 12, 27), 5, ALL_SLOTS, [], [holiday]) == ALL_SLOTS

    def test_past_slots_removed_today(self):
        """Heute 10:30 → Slots bis 10:00 entfallen (Beginn muss echt später sein)."""
        now = datetime(2024, 11, 20, 10, 30, tzinfo=timezone.utc)
        free = available_slots(date(2024, 11, 20), 5, ALL_SLOTS, [], [], now=now)
        assert free == ALL_SLOTS[2:]

    def test_slot_starting_exactly_now_removed(self):
        now = datetime(2024, 11, 20, 11, 0, tzinfo=timezone.utc)
        free = available_slots(date(2024, 11, 20), 5, ALL_SLOTS, [], [], now=now)
        assert "11:00-12:00" not in free
        assert free[0] == "12:00-13:00"

    def test_future_day_ignores_time(self):
        now = datetime(2024, 11, 20, 23, 0, tzinfo=timezone.utc)
        assert available_slots(date(2024, 11, 21), 5, ALL_SLOTS, [], [], now=now) == ALL_SLOTS

    def test_is_past_slot_without_now(self):
        assert not is_past_slot("09:00-10:00", date(2024, 11, 20), None)

    def test_aware_now_is_converted_to_utc(self):
        """20.11. 03:00 (+05:30) ist 19.11. 21:30 UTC → am 19.11. ist alles vorbei."""
        now = datetime(2024, 11, 20, 3, 0, tzinfo=timezone(timedelta(hours=5, minutes=30)))
        slots = ["09:00-10:00", "10:00-11:00", "16:00-17:00"]
        assert available_slots(date(2024, 11, 19), 5, slots, [], [], now=now) == []
        assert available_slots(date(2024, 11, 20), 5, slots, [], [], now=now) == slots
        assert is_past_slot("16:00-17:00", date(2024, 11, 19), now)
        assert not is_past_slot("09:00-10:00", date(2024, 11, 20), now)

    def test_result_is_order_preserving_subsequence(self):
        sessions = [_session(slot="12:00-13:00"), _session(slot="09:00-10:00", id=2)]
        free = available_slots(date(2024, 11, 20), 5, ALL_SLOTS, sessions, [])
        it = iter(ALL_SLOTS)
        assert all(s in it for s in free)

    def test_idempotent(self):
        sessions = [_session()]
        first = available_slots(date(2024, 11, 20), 5, ALL_SLOTS, sessions, [])
        second = available_slots(date(2024, 11, 20), 5, ALL_SLOTS, sessions, [])
        assert first == second

    def test_availability_filter(self):
        f = AvailabilityFilter(ALL_SLOTS, [_session()], [], "SUNDAY")
        assert not f.is_available(date(2024, 11, 20), 5, "10:00-11:00")
        assert f.is_available(date(2024, 11, 20), 6, "10:00-11:00")
        assert f.slots_for(date(2024, 11, 24), 6) == []


class TestBlockReasons:
    def test_off_day_single_reason(self):
        reasons = block_reasons(date(2024, 11, 24), 5, "10:00-11:00",
                                [_session(day="2024-11-24")], [], "SUNDAY")
        assert len(reasons) == 1
        assert "Ruhetag" in reasons[0]

    def test_holiday_and_occupancy_both_reported(self):
        holiday = HolidayDeclaration(
            declaration_type=DeclarationType.ALL_CARS_MULTIPLE_DATES,
            start_date="2024-11-20", end_date="2024-11-20",
        )
        reasons = block_reasons(date(2024, 11, 20), 5, "10:00-11:00", [_session()], [holiday])
        assert len(reasons) == 2

    def test_free_slot_no_reasons(self):
        assert block_reasons(date(2024, 11, 20), 6, "10:00-11:00", [_session()], []) == []


# ─── KURSTERMINE ──────────────────────────────────────────────────────────────

class TestMaterializer:
    def test_skips_weekly_holiday(self):
        """Start Fr 01.11.2024, 5 Tage, Ruhetag Samstag → 2.11. entfällt."""
        dates = materialize_session_dates("2024-11-01", 5, "SATURDAY")
        assert dates == [date(2024, 11, 1), date(2024, 11, 3), date(2024, 11, 4),
                         date(2024, 11, 5), date(2024, 11, 6)]

    def test_no_weekly_holiday_consecutive(self):
        dates = materialize_session_dates(date(2024, 11, 1), 3)
        assert dates == [date(2024, 11, 1), date(2024, 11, 2), date(2024, 11, 3)]

    def test_start_on_holiday_rolls_forward(self):
        """Start auf dem Ruhetag → Tag 1 ist der nächste Betriebstag."""
        dates = materialize_session_dates("2024-11-02", 2, "SATURDAY")
        assert dates == [date(2024, 11, 3), date(2024, 11, 4)]

    @pytest.mark.parametrize("days", [1, 7, 15, 30])
    def test_exact_count_strictly_increasing_no_holiday(self, days):
        dates = materialize_session_dates("2024-11-01", days, "SUNDAY")
        assert len(dates) == days
        assert all(a < b for a, b in zip(dates, dates[1:]))
        assert all(d.weekday() != 6 for d in dates)

    @pytest.mark.parametrize("days", [0, -3])
    def test_non_positive_days_raise(self, days):
        with pytest.raises(ValueError):
            materialize_session_dates("2024-11-01", days)

    def test_ignores_declared_holidays(self):
        """Feiertags-Deklarationen werden beim Materialisieren nicht berücksichtigt."""
        dates = materialize_session_dates("2024-12-23", 4, "SUNDAY")
        assert date(2024, 12, 24) in dates

    def test_materialize_sessions(self):
        booking = Booking(id=9, car_id=5, course_id=1, slot="10:00-11:00",
                          start_date="2024-11-01")
        car = Car(id=5, name="Swift", assigned_driver_id=7)
        sessions = materialize_booking(booking, car, 3, "SATURDAY")
        assert [s.day_number for s in sessions] == [1, 2, 3]
        assert [s.session_date for s in sessions] == [
            date(2024, 11, 1), date(2024, 11, 3), date(2024, 11, 4)]
        assert all(s.slot == "10:00-11:00" and s.car_id == 5 and s.driver_id == 7
                   for s in sessions)
        assert all(s.status == SessionStatus.PENDING and s.id is None for s in sessions)

    def test_materialize_sessions_empty(self):
        booking = Booking(id=9, car_id=5, course_id=1, slot="10:00-11:00",
                          start_date="2024-11-01")
        assert materialize_sessions(booking, []) == []

    def test_find_course_dates_skips_occupied(self):
        sessions = [_session(day="2024-11-02"), _session(day="2024-11-04", id=2)]
        dates = find_course_dates("2024-11-01", 3, 5, "10:00-11:00", sessions, "SUNDAY")
        assert dates == [date(2024, 11, 1), date(2024, 11, 5), date(2024, 11, 6)]

    def test_find_course_dates_horizon(self):
        sessions = [_session(day=date(2024, 11, 1) + timedelta(days=i), id=i + 1)
                    for i in range(10)]
        with pytest.raises(ValueError):
            find_course_dates("2024-11-01", 2, 5, "10:00-11:00", sessions,
                              max_search_days=10)

    def test_find_course_dates_status_set(self):
        """Stornierte Tage sperren wie bei der Verfügbarkeit, COMPLETED nicht."""
        sessions = [_session(day="2024-11-01", status=SessionStatus.CANCELLED),
                    _session(day="2024-11-02", status=SessionStatus.COMPLETED, id=2)]
        dates = find_course_dates("2024-11-01", 2, 5, "10:00-11:00", sessions)
        assert dates == [date(2024, 11, 2), date(2024, 11, 3)]
        freed = find_course_dates("2024-11-01", 2, 5, "10:00-11:00", sessions,
                                  statuses=occupying_statuses(False))
        assert freed == [date(2024, 11, 1), date(2024, 11, 2)]


# ─── TAGESÜBERSICHT ───────────────────────────────────────────────────────────

class TestDaySchedule:
    CARS = [Car(id=5, name="Swift"), Car(id=6, name="Golf")]

    def test_states(self):
        holiday = HolidayDeclaration(
            declaration_type=DeclarationType.ONE_CAR_PARTICULAR_SLOTS,
            car_id=6, start_date="2024-11-20", end_date="2024-11-20",
            slots=["09:00-10:00"],
        )
        sessions = [_session(), _session(slot="11:00-12:00", id=2,
                                         status=SessionStatus.CANCELLED)]
        swift, golf = build_day_schedule("2024-11-20", self.CARS, ALL_SLOTS,
                                         sessions, [holiday], "SUNDAY")
        assert swift.cell("10:00-11:00").state == SlotState.BOOKED
        assert swift.cell("10:00-11:00").booking_id == 1
        assert swift.cell("11:00-12:00").state == SlotState.FREE
        assert golf.cell("09:00-10:00").state == SlotState.HOLIDAY
        assert golf.free_count == len(ALL_SLOTS) - 1

    def test_holiday_wins_over_booking(self):
        holiday = HolidayDeclaration(
            declaration_type=DeclarationType.ALL_CARS_MULTIPLE_DATES,
            start_date="2024-11-20", end_date="2024-11-20",
        )
        swift, _ = build_day_schedule(date(2024, 11, 20), self.CARS, ALL_SLOTS,
                                      [_session()], [holiday])
        assert swift.cell("10:00-11:00").state == SlotState.HOLIDAY

    def test_off_day(self):
        schedules = build_day_schedule(date(2024, 11, 24), self.CARS, ALL_SLOTS, [], [], "SUNDAY")
        assert all(c.state == SlotState.OFF_DAY for s in schedules for c in s.cells)

    def test_next_free_date(self):
        sessions = [_session(day="2024-11-22"), _session(day="2024-11-23", id=2),
                    _session(day="2024-11-25", id=3, status=SessionStatus.CANCELLED)]
        # 23.11. ist Samstag, der 24. Sonntag (Ruhetag) → 25.11.
        assert next_free_date(5, "10:00-11:00", sessions, "SUNDAY") == date(2024, 11, 25)
        assert next_free_date(6, "10:00-11:00", sessions) is None


# ─── BUCHUNG ──────────────────────────────────────────────────────────────────

def _make_data(sessions=None, holidays=None) -> SchedulingData:
    return SchedulingData(
        config=default_school_config(),
        cars=[Car(id=5, name="Swift", assigned_driver_id=7),
              Car(id=6, name="Golf", status=CarStatus.MAINTENANCE)],
        courses=[Course(id=1, name="Grundkurs", course_days=3)],
        sessions=sessions or [],
        holidays=holidays or [],
    )


class TestBookingPlanner:
    TODAY = date(2024, 11, 18)

    def _request(self, **kw) -> BookingRequest:
        base = dict(car_id=5, course_id=1, slot="10:00-11:00",
                    start_date="2024-11-22", customer_name="Anna Weber")
        base.update(kw)
        return BookingRequest(**base)

    def test_plan_creates_booking_and_sessions(self):
        """Fr 22.11., 3 Tage, Ruhetag Sonntag → 22., 23., 25.11."""
        planner = BookingPlanner(_make_data())
        plan = planner.plan(self._request(), self.TODAY)
        assert plan.is_accepted
        assert plan.booking.id == 1
        assert [s.session_date for s in plan.sessions] == [
            date(2024, 11, 22), date(2024, 11, 23), date(2024, 11, 25)]
        assert [s.id for s in plan.sessions] == [1, 2, 3]
        assert all(s.driver_id == 7 for s in plan.sessions)

    def test_commit_returns_new_snapshot(self):
        data = _make_data()
        planner = BookingPlanner(data)
        new = planner.commit(planner.plan(self._request(), self.TODAY))
        assert len(new.bookings) == 1
        assert len(new.sessions) == 3
        assert data.sessions == []

    def test_commit_rejected_raises(self):
        planner = BookingPlanner(_make_data())
        plan = planner.plan(self._request(car_id=99), self.TODAY)
        with pytest.raises(ValueError):
            planner.commit(plan)

    def test_rejects_unknown_and_unbookable(self):
        planner = BookingPlanner(_make_data())
        assert planner.validate(self._request(car_id=99), self.TODAY)
        assert planner.validate(self._request(car_id=6), self.TODAY)
        assert planner.validate(self._request(course_id=42), self.TODAY)

    def test_rejects_slot_outside_grid(self):
        planner = BookingPlanner(_make_data())
        errors = planner.validate(self._request(slot="13:00-14:00"), self.TODAY)
        assert any("Tagesraster" in e for e in errors)

    def test_rejects_start_before_lead_time(self):
        planner = BookingPlanner(_make_data())
        assert planner.validate(self._request(start_date=self.TODAY), self.TODAY)
        assert not planner.validate(self._request(start_date="2024-11-19"), self.TODAY)

    def test_rejects_occupied_start(self):
        planner = BookingPlanner(_make_data(sessions=[_session(day="2024-11-22")]))
        errors = planner.validate(self._request(), self.TODAY)
        assert any("belegt" in e for e in errors)

    def test_rejects_start_on_off_day(self):
        planner = BookingPlanner(_make_data())
        assert planner.validate(self._request(start_date="2024-11-24"), self.TODAY)

    def test_skip_occupied_strategy(self):
        data = _make_data(sessions=[_session(day="2024-11-23")])
        plan = BookingPlanner(data, DateStrategy.SKIP_OCCUPIED).plan(self._request(), self.TODAY)
        assert [s.session_date for s in plan.sessions] == [
            date(2024, 11, 22), date(2024, 11, 25), date(2024, 11, 26)]

    def test_offered_slots(self):
        planner = BookingPlanner(_make_data(sessions=[_session(day="2024-11-22")]))
        offered = planner.offered_slots(5, date(2024, 11, 22))
        assert "10:00-11:00" not in offered
        assert len(offered) == len(ALL_SLOTS) - 1

    def test_rejects_slot_already_started_today(self):
        """Ohne Vorlauf: heute 15:00 → 09:00 abgelehnt, 16:00 buchbar wie angeboten."""
        data = _make_data()
        config = data.config.model_copy(update={
            "booking": data.config.booking.model_copy(update={"min_lead_days": 0}),
        })
        planner = BookingPlanner(data.model_copy(update={"config": config}))
        now = datetime(2024, 11, 20, 15, 0, tzinfo=timezone.utc)
        today = now.date()

        assert planner.offered_slots(5, today, now) == ["16:00-17:00"]
        plan = planner.plan(self._request(slot="09:00-10:00", start_date=today), today, now)
        assert not plan.is_accepted
        assert any("begonnen" in r for r in plan.rejections)
        assert planner.plan(self._request(slot="16:00-17:00", start_date=today),
                            today, now).is_accepted
