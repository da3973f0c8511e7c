"""Multi-sheet openpyxl workbooks for expense, payment and consolidated exports."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from typing import Callable, Iterable, Sequence, TypeVar

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from backend.reporting.common import (
    NOT_AVAILABLE,
    PROJECT_NOT_FOUND,
    XLSX_MEDIA_TYPE,
    ExportFile,
    NothingToExportError,
    dated_filename,
    ensure_not_empty,
    expense_detail_row,
    payment_detail_row,
)
from backend.services.consolidated import ConsolidatedData
from shared.formatting import format_percentage, format_short_date, format_timestamp
from shared.labels import (
    EVIDENCE_TYPE_LABELS,
    EXPENSE_CATEGORY_LABELS,
    LABOR_TYPE_LABELS,
    PROJECT_STATUS_LABELS,
    approval_code,
    label_for,
    payment_status_code,
)
from shared.models import ExpenseRecord, PaymentRecord


logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")

COP_NUMBER_FORMAT = '"$" #,##0'
_HEADER_FONT = Font(bold=True, color="FFFFFF")
_HEADER_FILL = PatternFill(start_color="E11D48", end_color="E11D48", fill_type="solid")

DETAIL_SHEET = "📊 REPORTE DETALLADO"
PROJECT_SHEET = "📈 RESUMEN POR PROYECTO"
CATEGORY_SHEET = "📊 RESUMEN POR CATEGORÍA"
LABOR_SHEET = "📊 RESUMEN POR TIPO LABOR"
STATS_SHEET = "📋 ESTADÍSTICAS GENERALES"

EXPENSE_DETAIL_WIDTHS = [15, 35, 25, 40, 15, 20, 25, 20, 20, 30, 25, 15, 10, 12, 15]
PAYMENT_DETAIL_WIDTHS = [15, 35, 15, 30, 20, 25, 25, 15, 15, 15, 20, 15, 20, 30, 25, 15, 10, 12, 15]
EXPENSE_PROJECT_WIDTHS = [15, 35, 18, 12, 12, 12, 18, 18, 12]
PAYMENT_PROJECT_WIDTHS = [15, 35, 18, 12, 12, 12, 12, 18, 18, 12]
EXPENSE_CATEGORY_WIDTHS = [30, 18, 12, 10, 10, 18, 12]
PAYMENT_LABOR_WIDTHS = [30, 18, 12, 10, 10, 10, 18, 12]
STATS_WIDTHS = [30, 25, 50]

_SETTLED = "settled"
_PENDING = "pending"
_CANCELLED = "cancelled"


@dataclass(slots=True)
class GroupTotals:
    """Amounts and counts of one group split by status."""

    code: str
    name: str
    total: Decimal = Decimal("0")
    count: int = 0
    settled_count: int = 0
    settled_amount: Decimal = Decimal("0")
    pending_count: int = 0
    pending_amount: Decimal = Decimal("0")
    cancelled_count: int = 0
    cancelled_amount: Decimal = Decimal("0")

    @property
    def average(self) -> Decimal:
        return self.total / self.count if self.count else Decimal("0")

    def add(self, amount: Decimal, status: str) -> None:
        self.total += amount
        self.count += 1
        if status == _SETTLED:
            self.settled_count += 1
            self.settled_amount += amount
        elif status == _CANCELLED:
            self.cancelled_count += 1
            self.cancelled_amount += amount
        else:
            self.pending_count += 1
            self.pending_amount += amount


def group_totals(
    records: Iterable[RecordT],
    *,
    key: Callable[[RecordT], tuple[str, str]],
    amount: Callable[[RecordT], Decimal],
    status: Callable[[RecordT], str],
) -> list[GroupTotals]:
    """Group in first-seen order; `key` returns the group code and display name."""

    groups: dict[str, GroupTotals] = {}
    for record in records:
        code, name = key(record)
        group = groups.get(code)
        if group is None:
            group = groups[code] = GroupTotals(code=code, name=name)
        group.add(amount(record), status(record))
    return list(groups.values())


def expense_status(record: ExpenseRecord) -> str:
    return _SETTLED if approval_code(record.aprobado) == "aprobado" else _PENDING


def payment_status(record: PaymentRecord) -> str:
    code = payment_status_code(record.estado_pago)
    if code == "pagado":
        return _SETTLED
    if code == "cancelado":
        return _CANCELLED
    return _PENDING


def _project_key(record: ExpenseRecord | PaymentRecord) -> tuple[str, str]:
    if record.proyecto is None:
        return NOT_AVAILABLE, PROJECT_NOT_FOUND
    return str(record.proyecto.id), record.proyecto.nombre


def _write_sheet(
    workbook: Workbook,
    title: str,
    header: Sequence[str],
    rows: Iterable[Sequence[object]],
    *,
    widths: Sequence[int],
    money_columns: Iterable[int] = (),
) -> Worksheet:
    sheet = workbook.create_sheet(title=title)
    sheet.append(list(header))
    for cell in sheet[1]:
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
    for row in rows:
        sheet.append(list(row))
    for index, width in enumerate(widths, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width
    for column in money_columns:
        for (cell,) in sheet.iter_rows(min_row=2, min_col=column, max_col=column):
            if isinstance(cell.value, (int, float, Decimal)):
                cell.number_format = COP_NUMBER_FORMAT
    sheet.freeze_panes = "A2"
    return sheet


def _new_workbook() -> Workbook:
    workbook = Workbook()
    workbook.remove(workbook.active)
    return workbook


def _to_export(workbook: Workbook, prefix: str, today: date | None) -> ExportFile:
    buffer = BytesIO()
    workbook.save(buffer)
    export = ExportFile(
        filename=dated_filename(prefix, "xlsx", today),
        media_type=XLSX_MEDIA_TYPE,
        content=buffer.getvalue(),
    )
    logger.info("workbook_export_built filename=%s sheets=%s", export.filename, len(workbook.sheetnames))
    return export


def _detail_sheet(workbook: Workbook, rows: list[dict[str, object]], widths: Sequence[int], money_header: str) -> None:
    header = list(rows[0])
    _write_sheet(
        workbook,
        DETAIL_SHEET,
        header,
        ([row[column] for column in header] for row in rows),
        widths=widths,
        money_columns=[header.index(money_header) + 1],
    )


def _stats_sheet(workbook: Workbook, rows: list[tuple[str, object, str]]) -> None:
    sheet = _write_sheet(workbook, STATS_SHEET, ["MÉTRICA", "VALOR", "DESCRIPCIÓN"], rows, widths=STATS_WIDTHS)
    for index, (label, _, _) in enumerate(rows, start=2):
        if label.startswith(("MONTO", "PROMEDIO")):
            sheet.cell(row=index, column=2).number_format = COP_NUMBER_FORMAT


def build_expenses_workbook(
    records: Sequence[ExpenseRecord],
    *,
    today: date | None = None,
    generated_at: datetime | None = None,
) -> ExportFile:
    ensure_not_empty(records)
    generated_at = generated_at or datetime.now()
    workbook = _new_workbook()

    _detail_sheet(workbook, [expense_detail_row(record) for record in records], EXPENSE_DETAIL_WIDTHS, "VALOR NUMÉRICO")

    by_project = group_totals(records, key=_project_key, amount=lambda r: r.monto, status=expense_status)
    _write_sheet(
        workbook,
        PROJECT_SHEET,
        [
            "CÓDIGO",
            "NOMBRE DEL PROYECTO",
            "TOTAL GASTOS",
            "CANTIDAD DE GASTOS",
            "GASTOS APROBADOS",
            "GASTOS PENDIENTES",
            "MONTO APROBADO",
            "MONTO PENDIENTE",
            "% APROBACIÓN",
        ],
        (
            [
                group.code,
                group.name,
                group.total,
                group.count,
                group.settled_count,
                group.pending_count,
                group.settled_amount,
                group.pending_amount,
                format_percentage(group.settled_count, group.count),
            ]
            for group in by_project
        ),
        widths=EXPENSE_PROJECT_WIDTHS,
        money_columns=(3, 7, 8),
    )

    grand_total = sum((record.monto for record in records), Decimal("0"))
    by_category = group_totals(
        records,
        key=lambda r: (r.tipo_gasto, label_for(EXPENSE_CATEGORY_LABELS, r.tipo_gasto)),
        amount=lambda r: r.monto,
        status=expense_status,
    )
    _write_sheet(
        workbook,
        CATEGORY_SHEET,
        [
            "CATEGORÍA DE GASTO",
            "TOTAL INVERTIDO",
            "CANTIDAD DE GASTOS",
            "APROBADOS",
            "PENDIENTES",
            "PROMEDIO POR GASTO",
            "% DEL TOTAL",
        ],
        (
            [
                group.name,
                group.total,
                group.count,
                group.settled_count,
                group.pending_count,
                group.average,
                format_percentage(group.total, grand_total),
            ]
            for group in by_category
        ),
        widths=EXPENSE_CATEGORY_WIDTHS,
        money_columns=(2, 6),
    )

    approved = sum((group.settled_amount for group in by_project), Decimal("0"))
    pending = sum((group.pending_amount for group in by_project), Decimal("0"))
    _stats_sheet(
        workbook,
        [
            ("TOTAL DE GASTOS REGISTRADOS", len(records), "Cantidad total de gastos en el sistema"),
            ("MONTO TOTAL INVERTIDO", grand_total, "Suma total de todos los gastos"),
            ("MONTO APROBADO", approved, "Suma de gastos ya aprobados"),
            ("MONTO PENDIENTE", pending, "Suma de gastos pendientes de aprobación"),
            ("% DE APROBACIÓN", format_percentage(approved, grand_total), "Porcentaje de gastos aprobados vs total"),
            ("PROMEDIO POR GASTO", grand_total / len(records), "Valor promedio por gasto registrado"),
            ("PROYECTOS INVOLUCRADOS", len({r.proyecto_id for r in records}), "Cantidad de proyectos con gastos"),
            ("FECHA DE GENERACIÓN", format_timestamp(generated_at), "Fecha y hora de generación del reporte"),
        ],
    )
    return _to_export(workbook, "reporte-gastos-profesional", today)


def build_payments_workbook(
    records: Sequence[PaymentRecord],
    *,
    today: date | None = None,
    generated_at: datetime | None = None,
) -> ExportFile:
    ensure_not_empty(records)
    generated_at = generated_at or datetime.now()
    workbook = _new_workbook()

    _detail_sheet(workbook, [payment_detail_row(record) for record in records], PAYMENT_DETAIL_WIDTHS, "VALOR PACTADO")

    by_project = group_totals(records, key=_project_key, amount=lambda r: r.valor_pactado, status=payment_status)
    _write_sheet(
        workbook,
        PROJECT_SHEET,
        [
            "CÓDIGO",
            "NOMBRE DEL PROYECTO",
            "TOTAL PAGOS",
            "CANTIDAD DE PAGOS",
            "PAGOS PAGADOS",
            "PAGOS PENDIENTES",
            "PAGOS CANCELADOS",
            "MONTO PAGADO",
            "MONTO PENDIENTE",
            "% PAGADOS",
        ],
        (
            [
                group.code,
                group.name,
                group.total,
                group.count,
                group.settled_count,
                group.pending_count,
                group.cancelled_count,
                group.settled_amount,
                group.pending_amount,
                format_percentage(group.settled_amount, group.total),
            ]
            for group in by_project
        ),
        widths=PAYMENT_PROJECT_WIDTHS,
        money_columns=(3, 8, 9),
    )

    grand_total = sum((record.valor_pactado for record in records), Decimal("0"))
    by_labor = group_totals(
        records,
        key=lambda r: (r.tipo_labor, label_for(LABOR_TYPE_LABELS, r.tipo_labor)),
        amount=lambda r: r.valor_pactado,
        status=payment_status,
    )
    _write_sheet(
        workbook,
        LABOR_SHEET,
        [
            "TIPO DE LABOR",
            "TOTAL INVERTIDO",
            "CANTIDAD DE PAGOS",
            "PAGADOS",
            "PENDIENTES",
            "CANCELADOS",
            "PROMEDIO POR PAGO",
            "% DEL TOTAL",
        ],
        (
            [
                group.name,
                group.total,
                group.count,
                group.settled_count,
                group.pending_count,
                group.cancelled_count,
                group.average,
                format_percentage(group.total, grand_total),
            ]
            for group in by_labor
        ),
        widths=PAYMENT_LABOR_WIDTHS,
        money_columns=(2, 7),
    )

    paid = sum((group.settled_amount for group in by_project), Decimal("0"))
    pending = sum((group.pending_amount for group in by_project), Decimal("0"))
    cancelled = sum((group.cancelled_amount for group in by_project), Decimal("0"))
    workers = {r.trabajador_id for r in records if r.trabajador_id is not None}
    _stats_sheet(
        workbook,
        [
            ("TOTAL DE PAGOS REGISTRADOS", len(records), "Cantidad total de pagos en el sistema"),
            ("MONTO TOTAL INVERTIDO", grand_total, "Suma total de todos los pagos"),
            ("MONTO PAGADO", paid, "Suma de pagos ya realizados"),
            ("MONTO PENDIENTE", pending, "Suma de pagos pendientes de realizar"),
            ("MONTO CANCELADO", cancelled, "Suma de pagos cancelados"),
            ("% DE PAGOS REALIZADOS", format_percentage(paid, grand_total), "Porcentaje de pagos realizados vs total"),
            ("PROMEDIO POR PAGO", grand_total / len(records), "Valor promedio por pago registrado"),
            ("PROYECTOS INVOLUCRADOS", len({r.proyecto_id for r in records}), "Cantidad de proyectos con pagos"),
            ("TRABAJADORES ACTIVOS", len(workers), "Cantidad de trabajadores con pagos"),
            ("FECHA DE GENERACIÓN", format_timestamp(generated_at), "Fecha y hora de generación del reporte"),
        ],
    )
    return _to_export(workbook, "reporte-pagos-profesional", today)


def build_consolidated_workbook(
    data: ConsolidatedData,
    *,
    include_summary: bool = True,
    include_details: bool = True,
    today: date | None = None,
) -> ExportFile:
    """Summary sheet plus one sheet per non-empty module."""

    if not (data.projects or data.expenses or data.payments or data.evidence):
        raise NothingToExportError()
    if not include_summary and not include_details:
        raise NothingToExportError("Seleccione al menos una sección del reporte")
    workbook = _new_workbook()
    summary = data.summary

    if include_summary:
        sheet = _write_sheet(
            workbook,
            "Resumen",
            ["Métrica", "Valor"],
            [
                ("Total de proyectos", summary.total_projects),
                ("Proyectos activos", summary.active_projects),
                ("Presupuesto total", summary.total_budget),
                ("Gastos ejecutados", summary.expense_total),
                ("Pagos realizados", summary.payment_total),
                ("Eficiencia presupuestal (%)", round(float(summary.budget_efficiency), 2)),
                ("Total evidencias", summary.evidence_total),
                ("Fecha inicio", summary.period_start),
                ("Fecha fin", summary.period_end),
                ("Fecha generación", format_short_date(data.generated_at.date())),
            ],
            widths=[25, 20],
        )
        for row in (4, 5, 6):
            sheet.cell(row=row, column=2).number_format = COP_NUMBER_FORMAT

    if include_details and data.projects:
        _write_sheet(
            workbook,
            "Proyectos",
            ["ID", "Nombre", "Estado", "Presupuesto", "Gastos Totales", "Pagos Totales", "Evidencias", "Fecha Inicio", "Fecha Fin"],
            (
                [
                    str(row.project.id),
                    row.project.nombre,
                    label_for(PROJECT_STATUS_LABELS, row.project.estado),
                    row.project.presupuesto_total,
                    row.expense_total,
                    row.payment_total,
                    row.evidence_count,
                    row.project.fecha_inicio.isoformat(),
                    row.project.fecha_fin.isoformat() if row.project.fecha_fin else "",
                ]
                for row in data.projects
            ),
            widths=[15, 30, 15, 15, 15, 15, 10, 12, 12],
            money_columns=(4, 5, 6),
        )
    if include_details and data.expenses:
        _write_sheet(
            workbook,
            "Gastos",
            ["ID", "Concepto", "Monto", "Categoría", "Fecha", "Proyecto", "Evidencia"],
            (
                [
                    str(row.id),
                    row.descripcion,
                    row.monto,
                    label_for(EXPENSE_CATEGORY_LABELS, row.tipo_gasto),
                    row.fecha_gasto.isoformat(),
                    row.proyecto.nombre if row.proyecto else PROJECT_NOT_FOUND,
                    "Sí" if row.evidencia_url else "No",
                ]
                for row in data.expenses
            ),
            widths=[15, 40, 15, 25, 12, 25, 10],
            money_columns=(3,),
        )
    if include_details and data.payments:
        _write_sheet(
            workbook,
            "Pagos",
            ["ID", "Trabajador", "Monto", "Tipo de labor", "Fecha", "Proyecto", "Horas"],
            (
                [
                    str(row.id),
                    row.trabajador.nombre if row.trabajador else NOT_AVAILABLE,
                    row.valor_pactado,
                    label_for(LABOR_TYPE_LABELS, row.tipo_labor),
                    row.fecha_actividad.isoformat(),
                    row.proyecto.nombre if row.proyecto else PROJECT_NOT_FOUND,
                    row.horas_trabajadas if row.horas_trabajadas is not None else 0,
                ]
                for row in data.payments
            ),
            widths=[15, 25, 15, 25, 12, 25, 8],
            money_columns=(3,),
        )
    if include_details and data.evidence:
        _write_sheet(
            workbook,
            "Evidencias",
            ["ID", "Título", "Tipo", "Fecha", "Proyecto", "Tamaño (KB)"],
            (
                [
                    str(row.id),
                    row.nombre_archivo,
                    label_for(EVIDENCE_TYPE_LABELS, row.tipo_evidencia),
                    row.fecha_actividad.isoformat(),
                    row.proyecto.nombre if row.proyecto else PROJECT_NOT_FOUND,
                    round(row.tamano_archivo / 1024, 1) if row.tamano_archivo else 0,
                ]
                for row in data.evidence
            ),
            widths=[15, 30, 15, 12, 25, 12],
        )

    if not workbook.sheetnames:
        raise NothingToExportError()
    return _to_export(workbook, "reporte-consolidado", today)
