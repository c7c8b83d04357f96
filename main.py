"""Fahrschul-Terminplaner: Haupt-CLI.

Verwendung:
  python main.py setup                          Ersteinrichtung (Wizard)
  python main.py config edit                    Konfiguration bearbeiten
  python main.py config show                    Konfiguration anzeigen
  python main.py generate                       Testdaten erzeugen und speichern
  python main.py slots                          Slot-Raster anzeigen
  python main.py available --car 1 --date D     Freie Slots eines Fahrzeugs
  python main.py book ...                       Kurs buchen
  python main.py amend ...                      Termine stornieren/verschieben
  python main.py schedule --date D              Tagesübersicht aller Fahrzeuge
  python main.py validate                       Integritätsprüfung
  python main.py export                         Excel-Export
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

from models.timeslot import to_utc_datetime

console = Console()

# Standard-Pfad für den gespeicherten Datensatz
DEFAULT_DATA_JSON = Path("output/scheduling_data.json")

_DATE = click.DateTime(formats=["%Y-%m-%d"])
_DATETIME = click.DateTime(formats=["%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"])


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _load_config_or_abort():
    """Lädt die Konfiguration oder bricht mit Fehlermeldung ab."""
    from config.manager import ConfigManager
    mgr = ConfigManager()
    if mgr.first_run_check():
        console.print(
            "[red]Keine Konfiguration gefunden.[/red]\n"
            "Führen Sie zunächst [bold]python main.py setup[/bold] aus."
        )
        sys.exit(1)
    try:
        return mgr, mgr.load()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _load_data_or_abort(json_path: str):
    """Lädt den Datensatz; die aktuelle Konfiguration ersetzt die gespeicherte."""
    from models.scheduling_data import SchedulingData

    _, config = _load_config_or_abort()
    p = Path(json_path)
    if not p.exists():
        console.print(
            f"[red]Keine Datendatei gefunden: {p}[/red]\n"
            "Verwenden Sie [bold]python main.py generate[/bold]."
        )
        sys.exit(1)
    try:
        data = SchedulingData.load_json(p)
    except ValueError as e:
        console.print(f"[red]Datendatei ungültig: {p}[/red]\n{e}")
        sys.exit(1)
    return data.model_copy(update={"config": config})


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return to_utc_datetime(now)


def _parse_ids(value: str) -> list[int]:
    try:
        return [int(v) for v in value.split(",") if v.strip()]
    except ValueError:
        raise click.BadParameter(f"Kommagetrennte Zahlen erwartet: {value!r}")


def _print_rejections(title: str, rejections: list[str]) -> None:
    console.print(Panel(
        "\n".join(f"• {r}" for r in rejections),
        title=f"[bold red]{title}[/bold red]",
        border_style="red",
    ))


# ─── SETUP ────────────────────────────────────────────────────────────────────

@click.command("setup")
def cmd_setup():
    """Ersteinrichtung: Schulkonfiguration mit dem Setup-Wizard anlegen."""
    from config.wizard import run_wizard
    from config.manager import ConfigManager

    mgr = ConfigManager()
    if not mgr.first_run_check():
        console.print(
            "[yellow]Eine Konfiguration existiert bereits.[/yellow]\n"
            "Verwenden Sie [bold]python main.py config edit[/bold] zum Bearbeiten."
        )
        if not click.confirm("Trotzdem neu einrichten?", default=False):
            return

    config = run_wizard()
    if config is not None:
        mgr.save(config)
        console.print("[bold green]Einrichtung abgeschlossen![/bold green]")
        console.print("Führen Sie jetzt [bold]python main.py generate[/bold] aus.")


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anzeigen oder bearbeiten."""


@cmd_config.command("show")
def config_show():
    """Zeigt die aktuelle Konfiguration an."""
    from config.wizard import show_slot_table

    mgr, config = _load_config_or_abort()
    mgr.show(config)
    show_slot_table(config.calendar)


@cmd_config.command("edit")
def config_edit():
    """Bearbeitet die Konfiguration interaktiv."""
    mgr, config = _load_config_or_abort()
    mgr.edit_interactive(config)


# ─── GENERATE ─────────────────────────────────────────────────────────────────

@click.command("generate")
@click.option("--seed", default=42, help="Zufalls-Seed für reproduzierbare Daten.")
@click.option("--today", type=_DATE, default=None,
              help="Stichtag für die Testdaten (Standard: heute).")
@click.option("--bookings", "num_bookings", default=12, help="Anzahl Buchungen.")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON),
              help="Pfad für den JSON-Datensatz.")
@click.option("--validate", "run_validate", is_flag=True, default=True,
              help="Integritätsprüfung nach Generierung.")
def cmd_generate(seed: int, today: Optional[datetime], num_bookings: int,
                 json_path: str, run_validate: bool):
    """Erzeugt Testdaten (Fahrzeuge, Kurse, Buchungen, Feiertage)."""
    mgr, config = _load_config_or_abort()
    from data.fake_data import FakeDataGenerator
    from analysis.session_validator import SessionValidator

    console.print("[bold]Testdaten werden generiert...[/bold]")
    gen = FakeDataGenerator(config, seed=seed,
                            today=today.date() if today else None,
                            num_bookings=num_bookings)
    data = gen.generate()
    gen.print_summary(data)
    console.print(f"\n[dim]{data.summary()}[/dim]")

    if run_validate:
        SessionValidator().validate(data).print_rich()

    out_path = Path(json_path)
    data.save_json(out_path)
    console.print(f"[green]✓[/green] JSON gespeichert: {out_path}")


# ─── SLOTS ────────────────────────────────────────────────────────────────────

@click.command("slots")
def cmd_slots():
    """Zeigt das Slot-Raster der Fahrschule."""
    from config.wizard import show_slot_table

    _, config = _load_config_or_abort()
    show_slot_table(config.calendar)


# ─── AVAILABLE ────────────────────────────────────────────────────────────────

@click.command("available")
@click.option("--car", "car_id", type=int, required=True, help="Fahrzeug-ID.")
@click.option("--date", "day", type=_DATE, required=True, help="Datum (YYYY-MM-DD).")
@click.option("--now", type=_DATETIME, default=None,
              help="Bezugszeitpunkt in UTC (Standard: jetzt).")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON))
def cmd_available(car_id: int, day: datetime, now: Optional[datetime], json_path: str):
    """Listet die buchbaren Slots eines Fahrzeugs an einem Tag."""
    from engine.booking import BookingPlanner
    from engine.slots import categorize_slots

    data = _load_data_or_abort(json_path)
    car = data.get_car(car_id)
    if car is None:
        console.print(f"[red]Fahrzeug {car_id} existiert nicht.[/red]")
        sys.exit(1)

    free = BookingPlanner(data).offered_slots(car_id, day.date(), _now(now))
    if not free:
        console.print(f"[yellow]{car.name}: keine freien Slots am {day.date()}.[/yellow]")
        return

    table = Table(title=f"{car.name} – {day.date().isoformat()}", box=box.ROUNDED)
    table.add_column("Tageszeit", style="bold")
    table.add_column("Freie Slots")
    labels = {"morning": "Vormittag", "afternoon": "Nachmittag", "evening": "Abend"}
    for key, slots in categorize_slots(free).items():
        if slots:
            table.add_row(labels[key], ", ".join(slots))
    console.print(table)


# ─── BOOK ─────────────────────────────────────────────────────────────────────

@click.command("book")
@click.option("--car", "car_id", type=int, required=True, help="Fahrzeug-ID.")
@click.option("--course", "course_id", type=int, required=True, help="Kurs-ID.")
@click.option("--slot", required=True, help='Slot, z.B. "09:00-10:00".')
@click.option("--start", "start", type=_DATE, required=True, help="Kursbeginn.")
@click.option("--name", "customer_name", default="", help="Name des Kunden.")
@click.option("--mobile", "customer_mobile", default=None, help="Mobilnummer.")
@click.option("--skip-occupied", is_flag=True, default=False,
              help="Belegte Tage desselben Fahrzeugs/Slots überspringen.")
@click.option("--now", type=_DATETIME, default=None)
@click.option("--json-path", default=str(DEFAULT_DATA_JSON))
def cmd_book(car_id: int, course_id: int, slot: str, start: datetime,
             customer_name: str, customer_mobile: Optional[str],
             skip_occupied: bool, now: Optional[datetime], json_path: str):
    """Bucht einen Kurs und legt alle Kurstermine an."""
    from engine.booking import BookingPlanner, BookingRequest, DateStrategy

    data = _load_data_or_abort(json_path)
    strategy = DateStrategy.SKIP_OCCUPIED if skip_occupied else DateStrategy.WEEKLY_HOLIDAY
    planner = BookingPlanner(data, strategy)
    now = _now(now)
    request = BookingRequest(
        car_id=car_id, course_id=course_id, slot=slot, start_date=start.date(),
        customer_name=customer_name, customer_mobile=customer_mobile,
    )
    plan = planner.plan(request, now.date(), now)
    if not plan.is_accepted:
        _print_rejections("Buchung abgelehnt", plan.rejections)
        sys.exit(1)

    data = planner.commit(plan)
    data.save_json(Path(json_path))

    table = Table(title=f"Buchung {plan.booking.reference}", box=box.ROUNDED)
    table.add_column("Tag", justify="right")
    table.add_column("Datum")
    table.add_column("Slot")
    table.add_column("Termin-ID", justify="right")
    for s in plan.sessions:
        table.add_row(str(s.day_number), s.date_key, s.slot, str(s.id))
    console.print(table)
    console.print(f"[green]✓[/green] {len(plan.sessions)} Termine angelegt.")


# ─── AMEND ────────────────────────────────────────────────────────────────────

@click.command("amend")
@click.option("--booking", "booking_id", type=int, required=True, help="Buchungs-ID.")
@click.option("--action", type=click.Choice(
    ["CANCEL_BOOKING", "CHANGE_DATE", "CAR_BREAKDOWN", "CAR_HOLIDAY"],
    case_sensitive=False), required=True)
@click.option("--sessions", "session_ids", default="",
              help="Kommagetrennte Termin-IDs.")
@click.option("--from-date", type=_DATE, default=None,
              help="Alle offenen Termine ab diesem Datum auswählen.")
@click.option("--dates", "new_dates", default="",
              help="CHANGE_DATE: kommagetrennte Ersatzdaten (gleiche Reihenfolge).")
@click.option("--reason", required=True, help="Grund der Änderung.")
@click.option("--now", type=_DATETIME, default=None)
@click.option("--json-path", default=str(DEFAULT_DATA_JSON))
def cmd_amend(booking_id: int, action: str, session_ids: str,
              from_date: Optional[datetime], new_dates: str, reason: str,
              now: Optional[datetime], json_path: str):
    """Storniert oder verschiebt Termine einer Buchung."""
    from engine.amendment import (
        AmendmentAction, AmendmentEngine, AmendmentInputError, AmendmentRequest, apply_plan,
    )

    data = _load_data_or_abort(json_path)
    if data.get_booking(booking_id) is None:
        console.print(f"[red]Buchung {booking_id} existiert nicht.[/red]")
        sys.exit(1)

    now = _now(now)
    booking_sessions = data.sessions_for_booking(booking_id)
    engine = AmendmentEngine(
        data.sessions, data.active_holidays(), data.config.calendar.weekly_holiday,
        statuses=_statuses(data),
    )
    ids = _parse_ids(session_ids)
    if from_date is not None:
        ids = engine.cascade_selection(booking_sessions, from_date.date(), now.date())

    try:
        request = AmendmentRequest(
            booking_id=booking_id,
            action=AmendmentAction(action.upper()),
            session_ids=ids,
            new_dates=[d.strip() for d in new_dates.split(",") if d.strip()],
            reason=reason,
        )
        plan = engine.plan(request, booking_sessions, now)
    except (AmendmentInputError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    if not plan.is_accepted:
        _print_rejections("Änderung abgelehnt", plan.rejections)
        sys.exit(1)

    sessions = apply_plan(data.sessions, plan, data.next_session_id())
    data.model_copy(update={"sessions": sessions}).save_json(Path(json_path))
    console.print(
        f"[green]✓[/green] {len(plan.cancellations)} Termin(e) storniert, "
        f"{len(plan.creations)} neu angelegt."
    )


def _statuses(data) -> frozenset:
    from engine.blocking import occupying_statuses
    return occupying_statuses(data.config.booking.cancelled_blocks_slot)


# ─── SCHEDULE ─────────────────────────────────────────────────────────────────

@click.command("schedule")
@click.option("--date", "day", type=_DATE, default=None, help="Datum (Standard: heute).")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON))
def cmd_schedule(day: Optional[datetime], json_path: str):
    """Tagesübersicht: Fahrzeug × Slot."""
    from engine.day_schedule import build_day_schedule
    from engine.slots import slots_for_calendar
    from export.helpers import RICH_STYLES, cell_text, format_day

    data = _load_data_or_abort(json_path)
    target = day.date() if day else _now(None).date()
    slots = slots_for_calendar(data.config.calendar)
    schedules = build_day_schedule(
        target, data.cars, slots, data.sessions, data.active_holidays(),
        data.config.calendar.weekly_holiday,
    )

    table = Table(title=format_day(target), box=box.ROUNDED, show_lines=True)
    table.add_column("Fahrzeug", style="bold")
    for slot in slots:
        table.add_column(slot, justify="center")
    for sched in schedules:
        table.add_row(
            sched.car_name,
            *[f"[{RICH_STYLES[c.state]}]{cell_text(c, data)}[/]" for c in sched.cells],
        )
    console.print(table)


# ─── VALIDATE ─────────────────────────────────────────────────────────────────

@click.command("validate")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON),
              help="Pfad zur gespeicherten JSON-Datei.")
def cmd_validate(json_path: str):
    """Prüft den Terminbestand auf Widersprüche."""
    from analysis.session_validator import SessionValidator

    data = _load_data_or_abort(json_path)
    console.print(f"\n{data.summary()}\n")
    report = SessionValidator().validate(data)
    report.print_rich()

    sys.exit(0 if report.is_valid else 1)


# ─── EXPORT ───────────────────────────────────────────────────────────────────

@click.command("export")
@click.option("--start", type=_DATE, default=None, help="Erster Tag (Standard: heute).")
@click.option("--days", default=7, help="Anzahl Tage.")
@click.option("--output", "-o", default="output/terminplan.xlsx",
              help="Ausgabepfad für die Excel-Datei.")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON))
def cmd_export(start: Optional[datetime], days: int, output: str, json_path: str):
    """Exportiert Tagesübersichten und Terminliste als Excel."""
    from export.excel_export import export_schedule

    data = _load_data_or_abort(json_path)
    out = export_schedule(data, Path(output), start.date() if start else _now(None).date(), days)
    console.print(f"[green]✓[/green] Excel gespeichert: {out}")


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug-Logging.")
def cli(verbose: bool):
    """Fahrschul-Terminplaner: Slots, Buchungen und Terminänderungen.

    Starten Sie mit: python main.py setup
    """
    _setup_logging(verbose)


def main():
    """Einstiegspunkt. Startet automatisch den Wizard beim ersten Aufruf."""
    from config.manager import ConfigManager
    mgr = ConfigManager()

    if len(sys.argv) == 1 and mgr.first_run_check():
        console.print(Panel(
            "[bold]Willkommen beim Fahrschul-Terminplaner![/bold]\n\n"
            "Keine Konfiguration gefunden.\n"
            "Der Setup-Wizard wird jetzt gestartet...",
            border_style="cyan",
        ))
        sys.argv.append("setup")

    cli()


# Befehle registrieren
cli.add_command(cmd_setup)
cli.add_command(cmd_config)
cli.add_command(cmd_generate)
cli.add_command(cmd_slots)
cli.add_command(cmd_available)
cli.add_command(cmd_book)
cli.add_command(cmd_amend)
cli.add_command(cmd_schedule)
cli.add_command(cmd_validate)
cli.add_command(cmd_export)


if __name__ == "__main__":
    main()
