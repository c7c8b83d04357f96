"""Export-Modul: Excel (openpyxl) für Tagesübersichten und Terminlisten."""

from export.excel_export import ScheduleExcelExporter, export_schedule

__all__ = ["ScheduleExcelExporter", "export_schedule"]
