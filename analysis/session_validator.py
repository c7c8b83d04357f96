"""Integritätsprüfung eines gespeicherten Terminbestands.

Prüft die Termine unabhängig von der Engine auf Widersprüche, z.B. nach
einem Import oder einer abgebrochenen Terminänderung.
"""

from collections import defaultdict
from typing import Literal

from pydantic import BaseModel

from engine.blocking import is_weekly_off_day, slot_holiday
from models.scheduling_data import SchedulingData
from models.session import SessionStatus


class ValidationViolation(BaseModel):
    """Eine einzelne Unstimmigkeit."""

    severity: Literal["error", "warning"]
    constraint: str      # z.B. "car_double_booking"
    description: str
    entity: str          # "Buchung 3" / "Fahrzeug 2"


class ValidationReport(BaseModel):
    """Ergebnis der Integritätsprüfung."""

    violations: list[ValidationViolation]
    is_valid: bool       # True wenn keine Errors (Warnings ok)

    @property
    def errors(self) -> list[ValidationViolation]:
        return [v for v in self.violations if v.severity == "error"]

    @property
    def warnings(self) -> list[ValidationViolation]:
        return [v for v in self.violations if v.severity == "warning"]

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        status = (
            "[bold green]✓ KONSISTENT[/bold green]"
            if self.is_valid
            else "[bold red]✗ WIDERSPRÜCHE GEFUNDEN[/bold red]"
        )
        lines = [status, f"Fehler: {len(self.errors)} | Warnungen: {len(self.warnings)}"]
        console.print(Panel("\n".join(lines), title="Termin-Validierung", border_style="cyan"))

        if not self.violations:
            console.print("[dim]Keine Unstimmigkeiten gefunden.[/dim]")
            return

        table = Table(box=box.ROUNDED, show_lines=True)
        table.add_column("Typ", width=8)
        table.add_column("Prüfung", width=24)
        table.add_column("Entität", width=14)
        table.add_column("Beschreibung")

        for v in self.violations:
            color = "red" if v.severity == "error" else "yellow"
            table.add_row(
                f"[{color}]{v.severity.upper()}[/{color}]",
                v.constraint,
                v.entity,
                v.description,
            )
        console.print(table)


class SessionValidator:
    """Prüft den Terminbestand eines SchedulingData-Datensatzes."""

    def validate(self, data: SchedulingData) -> ValidationReport:
        """Führt alle Prüfungen durch und gibt einen ValidationReport zurück."""
        violations: list[ValidationViolation] = []

        violations.extend(self._check_deleted_status(data))
        violations.extend(self._check_car_double_booking(data))
        violations.extend(self._check_unknown_references(data))
        violations.extend(self._check_day_numbers(data))
        violations.extend(self._check_weekly_holiday(data))
        violations.extend(self._check_holidays(data))

        has_errors = any(v.severity == "error" for v in violations)
        return ValidationReport(violations=violations, is_valid=not has_errors)

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    def _check_deleted_status(self, data: SchedulingData) -> list[ValidationViolation]:
        """deleted_at darf nur bei stornierten Terminen gesetzt sein.

        Das Modell erzwingt das beim Laden; geprüft wird trotzdem, falls
        Termine per model_construct o.ä. ohne Validierung entstanden sind.
        """
        return [
            ValidationViolation(
                severity="error",
                constraint="deleted_not_cancelled",
                entity=f"Buchung {s.booking_id}",
                description=(
                    f"Termin {s.id} ({s.date_key}) hat deleted_at, "
                    f"Status ist aber {s.status.value}"
                ),
            )
            for s in data.sessions
            if s.deleted_at is not None and s.status != SessionStatus.CANCELLED
        ]

    def _check_car_double_booking(self, data: SchedulingData) -> list[ValidationViolation]:
        """Ein Fahrzeug darf pro Tag und Slot höchstens einen offenen Termin haben."""
        violations: list[ValidationViolation] = []
        seen: dict[tuple, list[int]] = defaultdict(list)
        for s in data.sessions:
            if s.is_scheduled:
                seen[(s.car_id, s.session_date, s.slot)].append(s.booking_id)

        for (car_id, day, slot), bookings in seen.items():
            if len(bookings) > 1:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="car_double_booking",
                    entity=f"Fahrzeug {car_id}",
                    description=(
                        f"{day.isoformat()} {slot}: {len(bookings)} offene Termine "
                        f"(Buchungen {', '.join(str(b) for b in sorted(bookings))})"
                    ),
                ))
        return violations

    def _check_unknown_references(self, data: SchedulingData) -> list[ValidationViolation]:
        """Termine müssen auf vorhandene Buchungen und Fahrzeuge verweisen."""
        violations: list[ValidationViolation] = []
        booking_ids = {b.id for b in data.bookings}
        car_ids = {c.id for c in data.cars}
        for s in data.sessions:
            if s.booking_id not in booking_ids:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="unknown_booking",
                    entity=f"Buchung {s.booking_id}",
                    description=f"Termin {s.id} verweist auf unbekannte Buchung",
                ))
            if s.car_id not in car_ids:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="unknown_car",
                    entity=f"Fahrzeug {s.car_id}",
                    description=f"Termin {s.id} verweist auf unbekanntes Fahrzeug",
                ))
        return violations

    def _check_day_numbers(self, data: SchedulingData) -> list[ValidationViolation]:
        """Offene Termine einer Buchung: jede Tagesnummer höchstens einmal.

        Lücken sind nach Stornierungen normal und nur dann auffällig, wenn
        für die fehlende Nummer auch kein stornierter Termin existiert.
        """
        violations: list[ValidationViolation] = []
        for booking in data.bookings:
            sessions = data.sessions_for_booking(booking.id)
            if not sessions:
                continue
            course = data.get_course(booking.course_id)

            scheduled = [s.day_number for s in sessions if s.is_scheduled]
            duplicates = sorted({n for n in scheduled if scheduled.count(n) > 1})
            if duplicates:
                violations.append(ValidationViolation(
                    severity="warning",
                    constraint="duplicate_day_number",
                    entity=f"Buchung {booking.id}",
                    description=f"Tagesnummer(n) {duplicates} mehrfach offen",
                ))

            known = {s.day_number for s in sessions}
            expected = course.course_days if course else max(known)
            missing = [n for n in range(1, expected + 1) if n not in known]
            if missing:
                violations.append(ValidationViolation(
                    severity="warning",
                    constraint="day_number_gap",
                    entity=f"Buchung {booking.id}",
                    description=f"Kein Termin für Tag(e) {missing} von {expected}",
                ))
        return violations

    def _check_weekly_holiday(self, data: SchedulingData) -> list[ValidationViolation]:
        weekly = data.config.calendar.weekly_holiday
        if weekly is None:
            return []
        return [
            ValidationViolation(
                severity="warning",
                constraint="session_on_off_day",
                entity=f"Buchung {s.booking_id}",
                description=f"Termin {s.id} liegt auf dem Ruhetag ({s.date_key})",
            )
            for s in data.sessions
            if s.is_scheduled and is_weekly_off_day(s.session_date, weekly)
        ]

    def _check_holidays(self, data: SchedulingData) -> list[ValidationViolation]:
        """Kurstermine werden ohne Feiertags-Prüfung erzeugt und können kollidieren."""
        holidays = data.active_holidays()
        violations: list[ValidationViolation] = []
        for s in data.sessions:
            if not s.is_scheduled:
                continue
            holiday = slot_holiday(s.session_date, s.car_id, s.slot, holidays)
            if holiday is not None:
                violations.append(ValidationViolation(
                    severity="warning",
                    constraint="session_on_holiday",
                    entity=f"Buchung {s.booking_id}",
                    description=(
                        f"Termin {s.id} ({s.date_key} {s.slot}): {holiday.describe()}"
                    ),
                ))
        return violations
