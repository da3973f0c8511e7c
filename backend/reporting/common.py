"""Shared pieces of every export: the file envelope, the empty guard and row decomposition."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Sized

from shared.formatting import date_parts, format_cop, format_long_date, plain_number
from shared.labels import (
    EXPENSE_CATEGORY_LABELS,
    LABOR_TYPE_LABELS,
    PAYMENT_STATUS_LABELS,
    PROJECT_NOT_FOUND,
    UNSPECIFIED,
    WORKER_NOT_FOUND,
    approval_label,
    label_for,
    payment_status_code,
)
from shared.models import ExpenseRecord, PaymentRecord


CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

NOT_AVAILABLE = "N/A"
NO_NOTES = "SIN OBSERVACIONES"
NOT_SPECIFIED = "No especificado"
NO_PAYMENT_DATE = "SIN FECHA DE PAGO"


class NothingToExportError(ValueError):
    """Raised before any file is produced when the collection is empty."""

    def __init__(self, message: str = "No hay registros para exportar") -> None:
        super().__init__(message)


@dataclass(slots=True)
class ExportFile:
    filename: str
    media_type: str
    content: bytes

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'


def ensure_not_empty(records: Sized) -> None:
    if len(records) == 0:
        raise NothingToExportError()


def dated_filename(prefix: str, extension: str, today: date | None = None) -> str:
    return f"{prefix}-{(today or date.today()).isoformat()}.{extension}"


def _long_date_or(value: date | datetime | None, placeholder: str) -> str:
    return format_long_date(value) if value is not None else placeholder


def expense_detail_row(record: ExpenseRecord) -> dict[str, object]:
    """Raw, formatted and decomposed values of one expense; never an empty cell."""

    parts = date_parts(record.fecha_gasto)
    return {
        "CÓDIGO PROYECTO": str(record.proyecto.id) if record.proyecto else NOT_AVAILABLE,
        "NOMBRE DEL PROYECTO": record.proyecto.nombre if record.proyecto else PROJECT_NOT_FOUND,
        "CATEGORÍA DEL GASTO": label_for(EXPENSE_CATEGORY_LABELS, record.tipo_gasto),
        "DESCRIPCIÓN DETALLADA": record.descripcion or UNSPECIFIED,
        "VALOR NUMÉRICO": record.monto,
        "VALOR FORMATEADO (COP)": format_cop(record.monto),
        "FECHA DE EJECUCIÓN": format_long_date(record.fecha_gasto),
        "RESPONSABLE/EJECUTOR": record.responsable or UNSPECIFIED,
        "ESTADO DE APROBACIÓN": approval_label(record.aprobado),
        "OBSERVACIONES ADICIONALES": record.observaciones or NO_NOTES,
        "FECHA DE REGISTRO EN SISTEMA": _long_date_or(record.created_at, NOT_AVAILABLE),
        "MES DE EJECUCIÓN": parts["month"],
        "AÑO DE EJECUCIÓN": parts["year"],
        "TRIMESTRE": parts["quarter"],
        "DÍA DE LA SEMANA": parts["weekday"],
    }


def payment_detail_row(record: PaymentRecord) -> dict[str, object]:
    """Raw, formatted and decomposed values of one payment; never an empty cell."""

    parts = date_parts(record.fecha_actividad)
    worker = record.trabajador
    return {
        "CÓDIGO PROYECTO": str(record.proyecto.id) if record.proyecto else NOT_AVAILABLE,
        "NOMBRE DEL PROYECTO": record.proyecto.nombre if record.proyecto else PROJECT_NOT_FOUND,
        "CÓDIGO TRABAJADOR": str(worker.id) if worker else NOT_AVAILABLE,
        "NOMBRE DEL TRABAJADOR": worker.nombre if worker else WORKER_NOT_FOUND,
        "ESPECIALIDAD": (worker.especialidad if worker else None) or UNSPECIFIED,
        "TIPO DE LABOR": label_for(LABOR_TYPE_LABELS, record.tipo_labor),
        "FECHA DE ACTIVIDAD": format_long_date(record.fecha_actividad),
        "HORAS TRABAJADAS": record.horas_trabajadas if record.horas_trabajadas is not None else NOT_SPECIFIED,
        "VALOR POR HORA": format_cop(worker.valor_hora) if worker and worker.valor_hora else NOT_SPECIFIED,
        "VALOR PACTADO": record.valor_pactado,
        "VALOR FORMATEADO (COP)": format_cop(record.valor_pactado),
        "ESTADO DE PAGO": label_for(PAYMENT_STATUS_LABELS, payment_status_code(record.estado_pago)),
        "FECHA DE PAGO": _long_date_or(record.fecha_pago, NO_PAYMENT_DATE),
        "OBSERVACIONES ADICIONALES": record.observaciones or NO_NOTES,
        "FECHA DE REGISTRO EN SISTEMA": _long_date_or(record.created_at, NOT_AVAILABLE),
        "MES DE ACTIVIDAD": parts["month"],
        "AÑO DE ACTIVIDAD": parts["year"],
        "TRIMESTRE": parts["quarter"],
        "DÍA DE LA SEMANA": parts["weekday"],
    }


def as_text(value: object) -> str:
    """Render a detail cell for text outputs; numbers keep their plain form."""

    if isinstance(value, (Decimal, int, float)) and not isinstance(value, bool):
        return plain_number(value)
    return str(value)
