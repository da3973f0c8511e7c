"""Excel-compatible CSV exports of the filtered dashboard collections."""

from __future__ import annotations

import csv
import io
import logging
from datetime import date
from typing import Callable, Sequence, TypeVar

from backend.reporting.common import (
    CSV_MEDIA_TYPE,
    NOT_AVAILABLE,
    PROJECT_NOT_FOUND,
    ExportFile,
    as_text,
    dated_filename,
    ensure_not_empty,
    expense_detail_row,
    payment_detail_row,
)
from shared.formatting import format_long_date
from shared.labels import EVIDENCE_TYPE_LABELS, UNSPECIFIED, label_for
from shared.models import EvidenceRecord, ExpenseRecord, PaymentRecord


logger = logging.getLogger(__name__)

# Spreadsheet applications only detect UTF-8 when the BOM is present.
BOM = "\ufeff"

RecordT = TypeVar("RecordT")


def render_csv(header: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Quote only fields holding a comma, a quote or a line break; quotes are doubled."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def _build(
    records: Sequence[RecordT],
    row_builder: Callable[[RecordT], dict[str, object]],
    prefix: str,
    today: date | None,
) -> ExportFile:
    ensure_not_empty(records)
    rows = [row_builder(record) for record in records]
    header = list(rows[0])
    body = render_csv(header, [[as_text(row[column]) for column in header] for row in rows])
    export = ExportFile(
        filename=dated_filename(prefix, "csv", today),
        media_type=CSV_MEDIA_TYPE,
        content=(BOM + body).encode("utf-8"),
    )
    logger.info("csv_export_built filename=%s rows=%s", export.filename, len(rows))
    return export


def evidence_detail_row(record: EvidenceRecord) -> dict[str, object]:
    return {
        "CÓDIGO PROYECTO": str(record.proyecto.id) if record.proyecto else NOT_AVAILABLE,
        "NOMBRE DEL PROYECTO": record.proyecto.nombre if record.proyecto else PROJECT_NOT_FOUND,
        "TIPO DE EVIDENCIA": label_for(EVIDENCE_TYPE_LABELS, record.tipo_evidencia),
        "NOMBRE DEL ARCHIVO": record.nombre_archivo or UNSPECIFIED,
        "DESCRIPCIÓN": record.descripcion or UNSPECIFIED,
        "FECHA DE ACTIVIDAD": format_long_date(record.fecha_actividad),
        "TAMAÑO (KB)": round(record.tamano_archivo / 1024, 1) if record.tamano_archivo else NOT_AVAILABLE,
        "URL DEL ARCHIVO": record.url_archivo or NOT_AVAILABLE,
    }


def build_expenses_csv(records: Sequence[ExpenseRecord], *, today: date | None = None) -> ExportFile:
    return _build(records, expense_detail_row, "gastos-proyectos", today)


def build_payments_csv(records: Sequence[PaymentRecord], *, today: date | None = None) -> ExportFile:
    return _build(records, payment_detail_row, "pagos-personal", today)


def build_evidence_csv(records: Sequence[EvidenceRecord], *, today: date | None = None) -> ExportFile:
    return _build(records, evidence_detail_row, "evidencias-proyectos", today)
