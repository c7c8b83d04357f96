"""Excel-Export für Tagesübersichten und Terminlisten (openpyxl)."""

from datetime import date
from pathlib import Path

from engine.day_schedule import CarDaySchedule, build_day_schedule
from engine.slots import slots_for_calendar
from models.scheduling_data import SchedulingData
from models.session import SessionStatus

from export.helpers import (
    COLORS, cell_color, cell_text, date_range, format_day, today_str,
)


class ScheduleExcelExporter:
    """Exportiert einen SchedulingData-Datensatz in eine Excel-Datei.

    Blätter:
      - Übersicht   (Kennzahlen)
      - je Tag      (Fahrzeug × Slot)
      - Termine     (alle Termine inkl. stornierter)
      - Feiertage
    """

    # Spaltenbreiten (Excel-Einheiten)
    COL_CAR_W  = 18
    COL_SLOT_W = 22

    # Zeilenhöhen (Punkte)
    ROW_HEADER_H = 22
    ROW_CAR_H    = 36

    SESSION_HEADERS = [
        "ID", "Buchung", "Tag", "Datum", "Slot", "Fahrzeug",
        "Fahrlehrer", "Status", "Gelöscht am", "Interne Notizen",
    ]

    def __init__(self, data: SchedulingData):
        self.data = data
        self.calendar = data.config.calendar
        self.slots = slots_for_calendar(self.calendar)

    # ─── Öffentliche API ──────────────────────────────────────────────────────

    def export(self, output_path: Path, start: date, days: int = 7) -> Path:
        """Erstellt die Excel-Datei für ``days`` Tage ab ``start``."""
        from openpyxl import Workbook
        wb = Workbook()
        wb.remove(wb.active)   # Leeres Standard-Sheet entfernen

        self._sheet_uebersicht(wb, start, days)
        for day in date_range(start, days):
            self._sheet_tag(wb, day)
        self._sheet_termine(wb)
        self._sheet_feiertage(wb)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)
        return output_path

    # ─── Style-Helpers ────────────────────────────────────────────────────────

    def _fill(self, hex_color: str):
        from openpyxl.styles import PatternFill
        return PatternFill(start_color=hex_color, end_color=hex_color, fill_type="solid")

    def _center_align(self, wrap: bool = True):
        from openpyxl.styles import Alignment
        return Alignment(wrap_text=wrap, horizontal="center", vertical="center")

    def _thin_border(self):
        from openpyxl.styles import Border, Side
        s = Side(border_style="thin", color="BBBBBB")
        return Border(left=s, right=s, top=s, bottom=s)

    def _write_header(self, ws, headers: list[str], row: int = 1) -> None:
        from openpyxl.styles import Font
        fill = self._fill(COLORS["header"])
        border = self._thin_border()
        for col, text in enumerate(headers, 1):
            cell = ws.cell(row=row, column=col, value=text)
            cell.fill = fill
            cell.font = Font(bold=True, color="FFFFFF", size=10)
            cell.alignment = self._center_align(wrap=False)
            cell.border = border
        ws.row_dimensions[row].height = self.ROW_HEADER_H

    # ─── Blätter ──────────────────────────────────────────────────────────────

    def _sheet_uebersicht(self, wb, start: date, days: int) -> None:
        from openpyxl.styles import Font

        ws = wb.create_sheet(title="Übersicht")
        ws.cell(row=1, column=1, value=self.data.config.school_name).font = Font(bold=True, size=13)
        ws.cell(row=2, column=1, value=f"Erstellt: {today_str()}")
        ws.cell(row=3, column=1,
                value=f"Zeitraum: {format_day(start)} ({days} Tage)")

        row = 5
        for line in self.data.summary().splitlines():
            ws.cell(row=row, column=1, value=line)
            row += 1

        row += 1
        self._write_header(ws, ["Fahrzeug", "Kennzeichen", "Status", "Freie Slots"], row)
        row += 1
        border = self._thin_border()
        free_by_car: dict[int, int] = {c.id: 0 for c in self.data.cars}
        for day in date_range(start, days):
            for sched in self._schedules(day):
                free_by_car[sched.car_id] += sched.free_count
        for car in self.data.cars:
            values = [car.name, car.registration or "", car.status.value, free_by_car[car.id]]
            for col, value in enumerate(values, 1):
                ws.cell(row=row, column=col, value=value).border = border
            row += 1

        ws.column_dimensions["A"].width = 40
        ws.column_dimensions["B"].width = 14
        ws.column_dimensions["C"].width = 14
        ws.column_dimensions["D"].width = 12

    def _schedules(self, day: date) -> list[CarDaySchedule]:
        return build_day_schedule(
            day, self.data.cars, self.slots, self.data.sessions,
            self.data.active_holidays(), self.calendar.weekly_holiday,
        )

    def _sheet_tag(self, wb, day: date) -> None:
        """Tagesblatt: eine Zeile je Fahrzeug, eine Spalte je Slot."""
        from openpyxl.styles import Font
        from openpyxl.utils import get_column_letter

        ws = wb.create_sheet(title=format_day(day))
        self._write_header(ws, ["Fahrzeug", *self.slots])
        ws.column_dimensions["A"].width = self.COL_CAR_W
        for col in range(2, 2 + len(self.slots)):
            ws.column_dimensions[get_column_letter(col)].width = self.COL_SLOT_W

        border = self._thin_border()
        for row, sched in enumerate(self._schedules(day), start=2):
            name_cell = ws.cell(row=row, column=1, value=sched.car_name)
            name_cell.font = Font(bold=True)
            name_cell.border = border
            for col, cell in enumerate(sched.cells, start=2):
                c = ws.cell(row=row, column=col, value=cell_text(cell, self.data))
                c.fill = self._fill(cell_color(cell))
                c.alignment = self._center_align()
                c.border = border
            ws.row_dimensions[row].height = self.ROW_CAR_H
        ws.freeze_panes = "B2"

    def _sheet_termine(self, wb) -> None:
        ws = wb.create_sheet(title="Termine")
        self._write_header(ws, self.SESSION_HEADERS)
        border = self._thin_border()
        sessions = sorted(
            self.data.sessions,
            key=lambda s: (s.session_date, s.slot, s.car_id, s.id or 0),
        )
        for row, s in enumerate(sessions, start=2):
            car = self.data.get_car(s.car_id)
            values = [
                s.id, s.booking_id, s.day_number, s.date_key, s.slot,
                car.name if car else s.car_id, s.driver_id, s.status.value,
                s.deleted_at.isoformat() if s.deleted_at else "",
                s.internal_notes or "",
            ]
            for col, value in enumerate(values, 1):
                c = ws.cell(row=row, column=col, value=value)
                c.border = border
                if s.status == SessionStatus.CANCELLED:
                    c.fill = self._fill(COLORS["cancelled"])
        widths = [6, 9, 5, 12, 13, 18, 10, 12, 22, 50]
        self._set_widths(ws, widths)
        ws.freeze_panes = "A2"

    def _sheet_feiertage(self, wb) -> None:
        ws = wb.create_sheet(title="Feiertage")
        self._write_header(ws, ["ID", "Typ", "Von", "Bis", "Fahrzeug",
                                "Slots", "Tage", "Gesperrte Slots", "Aktiv", "Grund"])
        border = self._thin_border()
        for row, h in enumerate(self.data.holidays, start=2):
            values = [
                h.id, h.declaration_type.value, h.start_date.isoformat(),
                h.end_date.isoformat(), h.car_id if h.car_id is not None else "alle",
                ", ".join(h.slots or []), h.day_count,
                h.blocked_slot_count(len(self.slots)),
                "ja" if h.is_active else "nein", h.reason or "",
            ]
            for col, value in enumerate(values, 1):
                ws.cell(row=row, column=col, value=value).border = border
        self._set_widths(ws, [6, 28, 12, 12, 10, 30, 6, 15, 6, 30])

    def _set_widths(self, ws, widths: list[int]) -> None:
        from openpyxl.utils import get_column_letter
        for col, width in enumerate(widths, 1):
            ws.column_dimensions[get_column_letter(col)].width = width


def export_schedule(data: SchedulingData, output_path: Path, start: date,
                    days: int = 7) -> Path:
    """Kurzform für ScheduleExcelExporter(data).export(...)."""
    return ScheduleExcelExporter(data).export(output_path, start, days)
