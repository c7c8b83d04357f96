"""Interaktiver Setup-Wizard für die Ersteinrichtung der Fahrschule.

Führt den Nutzer durch Öffnungszeiten, Ruhetag und Buchungsregeln.
Nutzt rich für die Konsolenausgabe.
"""

from typing import Optional

from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table
from rich import box

from config.defaults import default_booking_rules, default_calendar
from config.schema import BookingRules, SchoolCalendarConfig, SchoolConfig
from engine.slots import categorize_slots, slots_for_calendar

console = Console()

_PERIOD_LABELS = {"morning": "Vormittag", "afternoon": "Nachmittag", "evening": "Abend"}


def _header(title: str) -> None:
    console.print()
    console.print(Panel(f"[bold cyan]{title}[/bold cyan]", expand=False))


def _info(text: str) -> None:
    console.print(f"[dim]{text}[/dim]")


def _success(text: str) -> None:
    console.print(f"[green]✓[/green] {text}")


def _warn(text: str) -> None:
    console.print(f"[yellow]⚠[/yellow]  {text}")


def show_slot_table(cal: SchoolCalendarConfig) -> None:
    """Zeigt das resultierende Slot-Raster gruppiert nach Tageszeit."""
    groups = categorize_slots(slots_for_calendar(cal))
    table = Table(title="Slot-Raster", box=box.ROUNDED)
    table.add_column("Tageszeit", style="bold", width=12)
    table.add_column("Slots")
    for key, slots in groups.items():
        if slots:
            table.add_row(_PERIOD_LABELS[key], ", ".join(slots))
    console.print(table)
    if cal.has_lunch:
        _info(f"Mittagspause {cal.lunch_start_time} - {cal.lunch_end_time}")
    if cal.weekly_holiday:
        _info(f"Ruhetag: {cal.weekly_holiday.value}")


# ─── SCHRITTE ───

def ask_calendar(current: SchoolCalendarConfig) -> SchoolCalendarConfig:
    """Öffnungszeiten abfragen; ungültige Eingaben werden wiederholt abgefragt."""
    while True:
        start = Prompt.ask("Tagesbeginn (HH:MM)", default=current.day_start_time)
        end = Prompt.ask("Tagesende (HH:MM)", default=current.day_end_time)
        lunch_start = lunch_end = None
        if Confirm.ask("Mittagspause?", default=current.has_lunch):
            lunch_start = Prompt.ask("  Beginn", default=current.lunch_start_time or "13:00")
            lunch_end = Prompt.ask("  Ende", default=current.lunch_end_time or "14:00")
        weekly = Prompt.ask(
            "Ruhetag (MONDAY … SUNDAY, leer = keiner)",
            default=current.weekly_holiday.value if current.weekly_holiday else "",
        )
        try:
            return SchoolCalendarConfig(
                day_start_time=start,
                day_end_time=end,
                lunch_start_time=lunch_start,
                lunch_end_time=lunch_end,
                weekly_holiday=weekly or None,
            )
        except ValidationError as e:
            _warn(f"Ungültige Eingabe: {e.errors()[0]['msg']}")


def ask_booking_rules(current: BookingRules) -> BookingRules:
    """Buchungsregeln abfragen."""
    while True:
        lead = IntPrompt.ask("Vorlauf für neue Buchungen (Tage)", default=current.min_lead_days)
        blocks = Confirm.ask(
            "Stornierte Termine sperren ihren Slot am selben Tag?",
            default=current.cancelled_blocks_slot,
        )
        horizon = IntPrompt.ask("Suchhorizont für freie Kurstage (Tage)",
                                default=current.max_search_days)
        try:
            return BookingRules(min_lead_days=lead, cancelled_blocks_slot=blocks,
                                max_search_days=horizon)
        except ValidationError as e:
            _warn(f"Ungültige Eingabe: {e.errors()[0]['msg']}")


def _wizard_calendar() -> SchoolCalendarConfig:
    _header("Schritt 2: Öffnungszeiten")
    default_cal = default_calendar()
    show_slot_table(default_cal)
    if Confirm.ask("Standard-Öffnungszeiten übernehmen?", default=True):
        return default_cal
    cal = ask_calendar(default_cal)
    show_slot_table(cal)
    return cal


def _wizard_booking() -> BookingRules:
    _header("Schritt 3: Buchungsregeln")
    _info("Vorlauf 1 Tag, stornierte Termine sperren ihren Slot weiterhin.")
    if Confirm.ask("Standard-Regeln übernehmen?", default=True):
        return default_booking_rules()
    return ask_booking_rules(default_booking_rules())


# ─── ZUSAMMENFASSUNG ───

def _show_summary(config: SchoolConfig) -> None:
    _header("Zusammenfassung")
    cal = config.calendar
    table = Table(box=box.ROUNDED, title="Konfigurationsübersicht")
    table.add_column("Bereich", style="bold cyan")
    table.add_column("Wert")
    table.add_row("Fahrschule", config.school_name)
    table.add_row("Öffnungszeiten", f"{cal.day_start_time} - {cal.day_end_time}")
    table.add_row("Slots/Tag", str(len(slots_for_calendar(cal))))
    table.add_row("Ruhetag", cal.weekly_holiday.value if cal.weekly_holiday else "–")
    table.add_row("Vorlauf", f"{config.booking.min_lead_days} Tag(e)")
    console.print(table)


# ─── HAUPT-WIZARD ───

def run_wizard() -> Optional[SchoolConfig]:
    """Führt den interaktiven Setup-Wizard aus.

    Returns:
        Fertige SchoolConfig oder None, wenn der Nutzer abbricht.
    """
    console.print()
    console.print(Panel(
        "[bold]Willkommen beim Fahrschul-Terminplaner![/bold]\n\n"
        "Der Wizard richtet Öffnungszeiten, Ruhetag und Buchungsregeln ein.\n"
        "[dim]Standard-Werte können mit Enter übernommen werden.[/dim]",
        title="[bold cyan]Fahrschul-Terminplaner[/bold cyan]",
        border_style="cyan",
    ))

    if not Confirm.ask("\nMöchten Sie jetzt die Fahrschule einrichten?", default=True):
        console.print("[yellow]Einrichtung abgebrochen.[/yellow]")
        return None

    try:
        _header("Schritt 1: Fahrschule")
        name = Prompt.ask("Name der Fahrschule", default="Muster-Fahrschule")
        config = SchoolConfig(
            school_name=name,
            calendar=_wizard_calendar(),
            booking=_wizard_booking(),
        )
        _show_summary(config)

        if not Confirm.ask("\nKonfiguration speichern?", default=True):
            console.print("[yellow]Konfiguration wird nicht gespeichert.[/yellow]")
            return None

        _success("Konfiguration wird gespeichert...")
        return config

    except KeyboardInterrupt:
        console.print("\n[yellow]Wizard abgebrochen.[/yellow]")
        return None
