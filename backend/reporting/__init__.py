"""Reporting utilities for backend-generated documents."""

from backend.reporting.common import ExportFile, NothingToExportError
from backend.reporting.csv_export import build_evidence_csv, build_expenses_csv, build_payments_csv
from backend.reporting.pdf_report import build_consolidated_pdf, build_expenses_pdf, build_payments_pdf
from backend.reporting.workbook_export import (
    build_consolidated_workbook,
    build_expenses_workbook,
    build_payments_workbook,
)

__all__ = [
    "ExportFile",
    "NothingToExportError",
    "build_consolidated_pdf",
    "build_consolidated_workbook",
    "build_evidence_csv",
    "build_expenses_csv",
    "build_expenses_pdf",
    "build_expenses_workbook",
    "build_payments_csv",
    "build_payments_pdf",
    "build_payments_workbook",
]
