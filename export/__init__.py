"""Export-Modul: Abrechnung als Excel (openpyxl)."""

from export.excel_export import BillingExporter

__all__ = ["BillingExporter"]
