"""Konfigurationsmanager: Laden, Speichern, Validieren und interaktives Bearbeiten.

Nutzt ruamel.yaml für YAML-Serialisierung mit Kommentaren.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich import box
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from config.schema import SchoolConfig
from config.wizard import ask_booking_rules, ask_calendar, show_slot_table

console = Console()
yaml = YAML()
yaml.default_flow_style = False
yaml.width = 120


# ─── YAML-KOMMENTAR-AUFBAU ───

_YAML_HEADER = f"""\
# ============================================
# Fahrschul-Terminplaner: Schulkonfiguration
# Version: 1.0
# Erstellt: {date.today().isoformat()}
# ============================================
"""

_SECTION_COMMENTS = {
    "calendar": (
        "Öffnungszeiten",
        "Slots à 60 Minuten von day_start_time bis day_end_time.\n"
        "Slots, die die Mittagspause berühren, entfallen.",
    ),
    "booking": (
        "Buchungsregeln",
        "cancelled_blocks_slot: stornierte Termine sperren ihren Slot am selben Tag.",
    ),
}


class ConfigManager:
    CONFIG_DIR = Path("config")
    DEFAULT_CONFIG = CONFIG_DIR / "school_config.yaml"

    def __init__(self, path: Optional[Path] = None) -> None:
        if path is not None:
            self.DEFAULT_CONFIG = Path(path)

    def first_run_check(self) -> bool:
        """Gibt True zurück wenn noch keine Config existiert (Erstaufruf)."""
        return not self.DEFAULT_CONFIG.exists()

    # ─── Laden ───

    def load(self, path: Optional[Path] = None) -> SchoolConfig:
        """Lade Config aus YAML. Validiert automatisch via Pydantic."""
        target = Path(path) if path else self.DEFAULT_CONFIG
        if not target.exists():
            raise FileNotFoundError(
                f"Konfigurationsdatei nicht gefunden: {target}\n"
                f"Führen Sie 'python main.py setup' aus, um die Schule einzurichten."
            )
        with open(target, "r", encoding="utf-8") as f:
            raw = yaml.load(f)
        try:
            return SchoolConfig.model_validate(json.loads(json.dumps(raw)))
        except Exception as e:
            raise ValueError(
                f"Konfigurationsdatei ungültig: {target}\n"
                f"Pydantic-Fehler: {e}"
            ) from e

    # ─── Speichern ───

    def save(self, config: SchoolConfig, path: Optional[Path] = None) -> Path:
        """Speichere Config als YAML mit deutschen Kommentaren."""
        target = Path(path) if path else self.DEFAULT_CONFIG
        target.parent.mkdir(parents=True, exist_ok=True)

        data = self._build_commented_yaml(config)

        with open(target, "w", encoding="utf-8") as f:
            f.write(_YAML_HEADER + "\n")
            yaml.dump(data, f)

        console.print(f"[green]✓[/green] Konfiguration gespeichert: {target}")
        return target

    def _build_commented_yaml(self, config: SchoolConfig) -> CommentedMap:
        """Baut die YAML-Struktur mit Kommentaren auf."""
        raw = json.loads(config.model_dump_json())
        cm = CommentedMap(raw)

        for field, (label, comment) in _SECTION_COMMENTS.items():
            cm.yaml_set_comment_before_after_key(
                field,
                before=f"\n─── {label} ───" + (f"\n{comment}" if comment else ""),
            )

        if "calendar" in cm:
            cal = CommentedMap(cm["calendar"])
            cal.yaml_add_eol_comment("MONDAY … SUNDAY oder leer", "weekly_holiday")
            cm["calendar"] = cal

        return cm

    # ─── Anzeige ───

    def show(self, config: SchoolConfig) -> None:
        """Gibt die Konfiguration als Rich-Tabelle aus."""
        cal = config.calendar
        table = Table(title=config.school_name, box=box.ROUNDED)
        table.add_column("Parameter", style="bold")
        table.add_column("Wert")
        table.add_row("Tagesbeginn", cal.day_start_time)
        table.add_row("Tagesende", cal.day_end_time)
        table.add_row(
            "Mittagspause",
            f"{cal.lunch_start_time} - {cal.lunch_end_time}" if cal.has_lunch else "–",
        )
        table.add_row("Ruhetag", cal.weekly_holiday.value if cal.weekly_holiday else "–")
        table.add_row("Vorlauf (Tage)", str(config.booking.min_lead_days))
        table.add_row("Storno sperrt Slot", "ja" if config.booking.cancelled_blocks_slot else "nein")
        table.add_row("Suchhorizont (Tage)", str(config.booking.max_search_days))
        console.print(table)

    # ─── Interaktives Bearbeiten ───

    def edit_interactive(self, config: SchoolConfig) -> SchoolConfig:
        """Interaktives Bearbeitungsmenü für die Konfiguration."""
        while True:
            console.print()
            console.print(Panel(
                "[bold]Konfiguration bearbeiten[/bold]",
                border_style="cyan",
            ))
            console.print("  [bold]1.[/bold] Öffnungszeiten & Ruhetag")
            console.print("  [bold]2.[/bold] Buchungsregeln")
            console.print("  [bold]0.[/bold] Speichern & Zurück")

            choice = Prompt.ask("\nAuswahl", default="0")

            if choice == "1":
                config = config.model_copy(
                    update={"calendar": ask_calendar(config.calendar)}
                )
                show_slot_table(config.calendar)
            elif choice == "2":
                config = config.model_copy(
                    update={"booking": ask_booking_rules(config.booking)}
                )
            elif choice == "0":
                self.save(config)
                break
            else:
                console.print("[yellow]Ungültige Auswahl.[/yellow]")

        return config
