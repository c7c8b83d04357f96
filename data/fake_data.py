"""Testdaten-Generator für den Fahrschul-Terminplaner.

Erzeugt einen reproduzierbaren Datensatz mit absichtlichen Engpässen:

  1. Werkstatt-Fahrzeug: ein Fahrzeug steht auf MAINTENANCE und ist nicht buchbar
  2. Schulweiter Feiertag: ein ganzer Tag für alle Fahrzeuge gesperrt
  3. Slot-Sperre: ein Fahrzeug verliert an mehreren Tagen den ersten Vormittagsslot
  4. Beliebte Slots: Buchungen häufen sich im späten Nachmittag
  5. Historie: eine Buchung wurde bereits einmal verschoben (stornierte Termine)
"""

import logging
import random
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from config.schema import SchoolConfig
from engine.amendment import AmendmentAction, AmendmentEngine, AmendmentRequest, apply_plan
from engine.booking import BookingPlanner, BookingRequest, DateStrategy
from engine.slots import slots_for_calendar
from models.car import Car, CarStatus
from models.course import Course
from models.holiday import DeclarationType, HolidayDeclaration
from models.scheduling_data import SchedulingData

logger = logging.getLogger(__name__)

# ─── Namens-Listen ────────────────────────────────────────────────────────────

_FIRST_NAMES = [
    "Anna", "Birgit", "Christian", "Deniz", "Eva", "Finn", "Hannah", "Jonas",
    "Karin", "Leon", "Lena", "Markus", "Mia", "Noah", "Olga", "Paul",
    "Sandra", "Tobias", "Ulrike", "Yusuf",
]

_LAST_NAMES = [
    "Müller", "Schmidt", "Schneider", "Fischer", "Weber", "Meyer",
    "Wagner", "Becker", "Schulz", "Hoffmann", "Koch", "Richter",
    "Klein", "Wolf", "Neumann", "Braun", "Krüger", "Lange",
]

_CAR_MODELS = ["Swift VXi", "Golf 1.0 TSI", "Polo Automatik", "i20 Trend", "Corsa Edition"]

_COURSES = [
    ("Schnupperkurs", 5, 149.0),
    ("Grundkurs", 10, 289.0),
    ("Intensivkurs", 15, 399.0),
    ("Komplettkurs", 20, 499.0),
]


class FakeDataGenerator:
    """Generiert einen vollständigen SchedulingData-Datensatz auf Basis der SchoolConfig."""

    def __init__(
        self,
        config: SchoolConfig,
        seed: Optional[int] = None,
        today: Optional[date] = None,
        num_cars: int = 4,
        num_bookings: int = 12,
    ) -> None:
        self.config = config
        self.rng = random.Random(seed)
        self.today = today or date.today()
        self.num_cars = num_cars
        self.num_bookings = num_bookings
        self.slots = slots_for_calendar(config.calendar)

    # ─── Stammdaten ───────────────────────────────────────────────────────────

    def _generate_cars(self) -> list[Car]:
        cars = []
        for i in range(1, self.num_cars + 1):
            model = _CAR_MODELS[(i - 1) % len(_CAR_MODELS)]
            city = self.rng.choice(["B", "HH", "M", "K", "F"])
            cars.append(Car(
                id=i,
                name=f"{model} #{i}",
                registration=f"{city}-FS {self.rng.randint(100, 9999)}",
                assigned_driver_id=100 + i,
                status=CarStatus.AVAILABLE,
            ))
        # Engpass 1: letztes Fahrzeug in der Werkstatt
        if len(cars) > 1:
            cars[-1] = cars[-1].model_copy(update={"status": CarStatus.MAINTENANCE})
        return cars

    def _generate_courses(self) -> list[Course]:
        return [
            Course(id=i, name=name, course_days=days, price=price,
                   description=f"{days} Fahrstunden à 60 Minuten")
            for i, (name, days, price) in enumerate(_COURSES, start=1)
        ]

    def _generate_holidays(self, cars: list[Car]) -> list[HolidayDeclaration]:
        holidays: list[HolidayDeclaration] = []
        # Engpass 2: schulweiter Feiertag in gut zwei Wochen
        closed = self.today + timedelta(days=self.rng.randint(15, 20))
        holidays.append(HolidayDeclaration(
            id=1,
            declaration_type=DeclarationType.ALL_CARS_MULTIPLE_DATES,
            start_date=closed,
            end_date=closed,
            reason="Betriebsausflug",
        ))
        # Engpass 3: erstes Fahrzeug verliert den ersten Slot für drei Tage
        if cars and self.slots:
            start = self.today + timedelta(days=self.rng.randint(3, 6))
            holidays.append(HolidayDeclaration(
                id=2,
                declaration_type=DeclarationType.ONE_CAR_PARTICULAR_SLOTS,
                start_date=start,
                end_date=start + timedelta(days=2),
                car_id=cars[0].id,
                slots=[self.slots[0]],
                reason="Fahrlehrer-Fortbildung",
            ))
        # Ersetzte Deklaration (inaktiv): darf nichts mehr sperren
        holidays.append(HolidayDeclaration(
            id=3,
            declaration_type=DeclarationType.ALL_CARS_MULTIPLE_DATES,
            start_date=self.today + timedelta(days=2),
            end_date=self.today + timedelta(days=2),
            reason="Verschoben",
            is_active=False,
        ))
        return holidays

    # ─── Buchungen ────────────────────────────────────────────────────────────

    def _pick_slot(self) -> str:
        # Engpass 4: späte Slots doppelt gewichtet
        weights = [2 if i >= len(self.slots) // 2 else 1 for i in range(len(self.slots))]
        return self.rng.choices(self.slots, weights=weights, k=1)[0]

    def _customer(self) -> tuple[str, str]:
        name = f"{self.rng.choice(_FIRST_NAMES)} {self.rng.choice(_LAST_NAMES)}"
        mobile = "01" + "".join(str(self.rng.randint(0, 9)) for _ in range(9))
        return name, mobile

    def _generate_bookings(self, data: SchedulingData) -> SchedulingData:
        """Bucht zufällige Anfragen; abgelehnte Anfragen werden übersprungen."""
        bookable = [c for c in data.cars if c.is_bookable]
        lead = self.config.booking.min_lead_days
        now = datetime.combine(self.today, time(8, 0), tzinfo=timezone.utc)
        attempts = 0
        while len(data.bookings) < self.num_bookings and attempts < self.num_bookings * 10:
            attempts += 1
            name, mobile = self._customer()
            request = BookingRequest(
                car_id=self.rng.choice(bookable).id,
                course_id=self.rng.choice(data.courses).id,
                slot=self._pick_slot(),
                start_date=self.today + timedelta(days=lead + self.rng.randint(0, 10)),
                customer_name=name,
                customer_mobile=mobile,
            )
            # Belegte Tage desselben Fahrzeugs/Slots werden übersprungen
            planner = BookingPlanner(data, DateStrategy.SKIP_OCCUPIED)
            plan = planner.plan(request, self.today, now)
            if plan.is_accepted:
                data = planner.commit(plan)
        logger.debug(f"{len(data.bookings)} Buchungen nach {attempts} Versuchen")
        return data

    def _reschedule_one(self, data: SchedulingData) -> SchedulingData:
        """Engpass 5: letzten Termin der ersten Buchung um eine Woche verschieben."""
        if not data.bookings:
            return data
        booking = data.bookings[0]
        sessions = data.sessions_for_booking(booking.id)
        engine = AmendmentEngine(
            data.sessions, data.active_holidays(), self.config.calendar.weekly_holiday,
        )
        now = datetime.combine(self.today, time(9, 0), tzinfo=timezone.utc)
        selectable = engine.selectable_sessions(sessions, self.today)
        if not selectable:
            return data
        last = selectable[-1]
        for shift in range(7, 21):
            request = AmendmentRequest(
                booking_id=booking.id,
                action=AmendmentAction.CHANGE_DATE,
                session_ids=[last.id],
                new_dates=[last.session_date + timedelta(days=shift)],
                reason="Kunde im Urlaub",
            )
            plan = engine.plan(request, sessions, now)
            if plan.is_accepted:
                return data.model_copy(update={
                    "sessions": apply_plan(data.sessions, plan, data.next_session_id()),
                })
        return data

    # ─── Gesamt ───────────────────────────────────────────────────────────────

    def generate(self) -> SchedulingData:
        """Erzeugt Fahrzeuge, Kurse, Feiertage, Buchungen und Termine."""
        cars = self._generate_cars()
        data = SchedulingData(
            config=self.config,
            cars=cars,
            courses=self._generate_courses(),
            holidays=self._generate_holidays(cars),
        )
        data = self._generate_bookings(data)
        data = self._reschedule_one(data)
        logger.info(f"Testdaten erzeugt: {len(data.bookings)} Buchungen, "
                    f"{len(data.sessions)} Termine")
        return data

    def print_summary(self, data: SchedulingData) -> None:
        """Gibt eine Rich-Tabelle mit Übersicht der erzeugten Daten aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        table = Table(title="Erzeugte Testdaten", box=box.ROUNDED)
        table.add_column("Kategorie", style="bold cyan")
        table.add_column("Anzahl", justify="right")
        table.add_column("Details")

        bookable = sum(1 for c in data.cars if c.is_bookable)
        cancelled = sum(1 for s in data.sessions if not s.is_scheduled)
        table.add_row("Fahrzeuge", str(len(data.cars)),
                      f"{bookable} buchbar, {len(data.cars) - bookable} Werkstatt")
        table.add_row("Kurse", str(len(data.courses)),
                      ", ".join(f"{c.course_days}d" for c in data.courses))
        table.add_row("Buchungen", str(len(data.bookings)), "")
        table.add_row("Termine", str(len(data.sessions)), f"{cancelled} storniert")
        table.add_row("Feiertage", str(len(data.holidays)),
                      f"{len(data.active_holidays())} aktiv")

        console.print(table)
