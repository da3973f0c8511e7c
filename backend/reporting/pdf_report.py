"""Generate the branded PDF reports offered by the dashboard."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from typing import Callable, Sequence, TypeVar

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen.canvas import Canvas
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from backend.reporting.common import (
    PDF_MEDIA_TYPE,
    PROJECT_NOT_FOUND,
    WORKER_NOT_FOUND,
    ExportFile,
    NothingToExportError,
    dated_filename,
    ensure_not_empty,
)
from backend.reporting.workbook_export import GroupTotals, expense_status, group_totals, payment_status
from backend.services.consolidated import ConsolidatedData
from shared.formatting import format_cop, format_percentage, format_short_date, format_timestamp
from shared.labels import (
    EXPENSE_CATEGORY_LABELS,
    LABOR_TYPE_LABELS,
    PAYMENT_STATUS_PLAIN_LABELS,
    PROJECT_STATUS_LABELS,
    approval_code,
    approval_plain_label,
    label_for,
    payment_status_code,
)
from shared.models import ExpenseRecord, PaymentRecord


logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")

ATTRIBUTION = "SiGeCul - Sistema de Gestión Cultural"
DEFAULT_CONSOLIDATED_TITLE = "Reporte Consolidado"
DETAIL_ROW_LIMIT = 25

PAGE_WIDTH_MM = A4[0] / mm
PAGE_HEIGHT_MM = A4[1] / mm
MARGIN_MM = 20
HEADER_BAND_MM = 30

BRAND_COLOR = colors.Color(225 / 255, 29 / 255, 72 / 255)
SECTION_COLOR = colors.Color(37 / 255, 99 / 255, 235 / 255)
FOOTER_COLOR = colors.Color(128 / 255, 128 / 255, 128 / 255)


class _FooterCanvas(Canvas):
    """Defers every page until save() so the footer can print the total page count."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states: list[dict] = []

    @property
    def page_count(self) -> int:
        return len(self._saved_page_states)

    def showPage(self) -> None:  # noqa: N802 (ReportLab API)
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self) -> None:
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(page_count=page_count)
            super().showPage()
        super().save()

    def _draw_footer(self, *, page_count: int) -> None:
        self.setFont("Helvetica", 8)
        self.setFillColor(FOOTER_COLOR)
        self.drawString(MARGIN_MM * mm, 10 * mm, ATTRIBUTION)
        self.drawRightString((PAGE_WIDTH_MM - MARGIN_MM) * mm, 10 * mm, f"Página {self._pageNumber} de {page_count}")


def _truncate(value: str, max_length: int) -> str:
    return value if len(value) <= max_length else value[:max_length]


class _Cursor:
    """Top-down writer on a canvas; every emit checks the remaining space first."""

    def __init__(self, pdf: Canvas, *, y: float) -> None:
        self.pdf = pdf
        self.y = y

    def ensure_space(self, needed: float) -> None:
        if self.y + needed > PAGE_HEIGHT_MM - MARGIN_MM:
            self.pdf.showPage()
            self.y = MARGIN_MM

    def text(self, x: float, value: str, *, size: int = 10, bold: bool = False, color=colors.black) -> None:
        self.pdf.setFont("Helvetica-Bold" if bold else "Helvetica", size)
        self.pdf.setFillColor(color)
        self.pdf.drawString(x * mm, (PAGE_HEIGHT_MM - self.y) * mm, value)

    def line(self, value: str, *, step: float = 7, **style) -> None:
        self.ensure_space(step)
        self.text(MARGIN_MM, value, **style)
        self.y += step

    def row(self, columns: Sequence[tuple[float, str]], *, step: float = 8, **style) -> None:
        self.ensure_space(step)
        for x, value in columns:
            self.text(x, value, **style)
        self.y += step


def _draw_header(pdf: Canvas, *, org_name: str, title: str) -> None:
    pdf.setFillColor(BRAND_COLOR)
    pdf.rect(0, (PAGE_HEIGHT_MM - HEADER_BAND_MM) * mm, PAGE_WIDTH_MM * mm, HEADER_BAND_MM * mm, stroke=0, fill=1)
    pdf.setFillColor(colors.white)
    pdf.setFont("Helvetica-Bold", 16)
    pdf.drawString(MARGIN_MM * mm, (PAGE_HEIGHT_MM - 15) * mm, org_name)
    pdf.setFont("Helvetica", 12)
    pdf.drawString(MARGIN_MM * mm, (PAGE_HEIGHT_MM - 25) * mm, title)


def _section(cursor: _Cursor, title: str, header: Sequence[tuple[float, str]]) -> None:
    cursor.ensure_space(40)
    cursor.line(title, step=10, size=14, bold=True, color=SECTION_COLOR)
    cursor.row(header, step=6, size=9, bold=True)


def build_consolidated_pdf(
    data: ConsolidatedData,
    *,
    org_name: str,
    title: str = DEFAULT_CONSOLIDATED_TITLE,
    include_summary: bool = True,
    include_details: bool = True,
    top_projects: int = 10,
    top_expenses: int = 15,
    today: date | None = None,
) -> ExportFile:
    """Render the consolidated report on a canvas with a deferred footer pass."""

    if not (data.projects or data.expenses or data.payments or data.evidence):
        raise NothingToExportError()

    buffer = BytesIO()
    pdf = _FooterCanvas(buffer, pagesize=A4)
    pdf.setTitle(title)
    _draw_header(pdf, org_name=org_name, title=title)

    summary = data.summary
    cursor = _Cursor(pdf, y=HEADER_BAND_MM + 15)
    cursor.line(f"Fecha de generación: {format_timestamp(data.generated_at)}")
    cursor.line(f"Período: {summary.period_start} - {summary.period_end}", step=15)

    if include_summary:
        cursor.ensure_space(60)
        cursor.line("RESUMEN EJECUTIVO", step=10, size=14, bold=True)
        for value in (
            f"Total de proyectos: {summary.total_projects}",
            f"Proyectos activos: {summary.active_projects}",
            f"Presupuesto total: {format_cop(summary.total_budget)}",
            f"Gastos ejecutados: {format_cop(summary.expense_total)}",
            f"Pagos realizados: {format_cop(summary.payment_total)}",
            f"Eficiencia presupuestal: {format_percentage(summary.expense_total, summary.total_budget)}",
            f"Total evidencias: {summary.evidence_total}",
        ):
            cursor.line(value)
        cursor.y += 10

    if include_details and data.projects:
        _section(cursor, "PROYECTOS", [(20, "Proyecto"), (80, "Estado"), (120, "Presupuesto"), (160, "Gastos")])
        ranked = sorted(data.projects, key=lambda row: row.project.presupuesto_total, reverse=True)
        for row in ranked[:top_projects]:
            cursor.row(
                [
                    (20, _truncate(row.project.nombre, 25)),
                    (80, label_for(PROJECT_STATUS_LABELS, row.project.estado)),
                    (120, format_cop(row.project.presupuesto_total)),
                    (160, format_cop(row.expense_total)),
                ],
                size=8,
            )
        cursor.y += 10

    if include_details and data.expenses:
        _section(cursor, "PRINCIPALES GASTOS", [(20, "Concepto"), (80, "Categoría"), (130, "Monto"), (160, "Fecha")])
        ranked = sorted(data.expenses, key=lambda row: row.monto, reverse=True)
        for row in ranked[:top_expenses]:
            cursor.row(
                [
                    (20, _truncate(row.descripcion, 20)),
                    (80, label_for(EXPENSE_CATEGORY_LABELS, row.tipo_gasto)),
                    (130, format_cop(row.monto)),
                    (160, format_short_date(row.fecha_gasto)),
                ],
                size=8,
            )

    pdf.showPage()
    pdf.save()
    export = ExportFile(
        filename=dated_filename("reporte-consolidado", "pdf", today),
        media_type=PDF_MEDIA_TYPE,
        content=buffer.getvalue(),
    )
    logger.info("consolidated_pdf_built filename=%s pages=%s", export.filename, pdf.page_count)
    return export


@dataclass(slots=True)
class _Kpi:
    label: str
    value: str


def _build_kpi_cards(kpis: Sequence[_Kpi]) -> Table:
    styles = getSampleStyleSheet()
    card_style = ParagraphStyle(
        name="KpiCard",
        parent=styles["BodyText"],
        fontSize=10,
        leading=14,
        textColor=colors.HexColor("#1F2937"),
    )
    cells = [[Paragraph(f"<b>{kpi.label}</b><br/>{kpi.value}", card_style) for kpi in kpis]]
    table = Table(cells, colWidths=[44 * mm] * len(kpis))
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#F4F6F8")),
                ("BOX", (0, 0), (-1, -1), 0.6, colors.HexColor("#DDE2E8")),
                ("INNERGRID", (0, 0), (-1, -1), 0.4, colors.HexColor("#DDE2E8")),
                ("LEFTPADDING", (0, 0), (-1, -1), 8),
                ("RIGHTPADDING", (0, 0), (-1, -1), 8),
                ("TOPPADDING", (0, 0), (-1, -1), 8),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
            ]
        )
    )
    return table


def _build_bar_chart(groups: Sequence[GroupTotals], title: str) -> bytes:
    ordered = sorted(groups, key=lambda group: group.total, reverse=True)
    fig, ax = plt.subplots(figsize=(6.2, 3.2), dpi=140)
    ax.barh([group.name for group in ordered], [float(group.total) for group in ordered], color="#E11D48")
    ax.invert_yaxis()
    ax.set_title(title)
    ax.tick_params(axis="y", labelsize=8)
    ax.tick_params(axis="x", labelsize=7)
    ax.xaxis.set_major_formatter(lambda value, _: format_cop(value).replace("$", r"\$"))
    for side in ("top", "right"):
        ax.spines[side].set_visible(False)

    image_buffer = BytesIO()
    fig.savefig(image_buffer, format="png", bbox_inches="tight")
    plt.close(fig)
    image_buffer.seek(0)
    return image_buffer.read()


def _striped_table(table_data: list[list[str]], col_widths: Sequence[float], *, amount_column: int) -> Table:
    table = Table(table_data, colWidths=list(col_widths), repeatRows=1)
    table_style: list[tuple] = [
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#EEF1F4")),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#D7DCE2")),
        ("ALIGN", (amount_column, 1), (amount_column, -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]
    for row_index in range(1, len(table_data)):
        if row_index % 2 == 0:
            table_style.append(("BACKGROUND", (0, row_index), (-1, row_index), colors.HexColor("#FAFBFC")))
    table.setStyle(TableStyle(table_style))
    return table


def _entity_report(
    records: Sequence[RecordT],
    *,
    org_name: str,
    title: str,
    kpis: Sequence[_Kpi],
    groups: Sequence[GroupTotals],
    group_heading: str,
    detail_header: list[str],
    detail_row: Callable[[RecordT], list[str]],
    col_widths: Sequence[float],
    prefix: str,
    today: date | None,
    generated_at: datetime,
) -> ExportFile:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=16 * mm,
        leftMargin=16 * mm,
        topMargin=16 * mm,
        bottomMargin=18 * mm,
        title=title,
    )
    styles = getSampleStyleSheet()
    section_title_style = ParagraphStyle(name="SectionTitle", parent=styles["Heading2"], spaceAfter=4, fontSize=12)
    subtitle_style = ParagraphStyle(name="Subtitle", parent=styles["BodyText"], fontSize=9, textColor=colors.HexColor("#6B7280"))

    total = sum((group.total for group in groups), Decimal("0"))
    story = [
        Paragraph(org_name, subtitle_style),
        Paragraph(title, styles["Title"]),
        Paragraph(f"Fecha de generación: {format_timestamp(generated_at)}", subtitle_style),
        Spacer(1, 5 * mm),
        _build_kpi_cards(kpis),
        Spacer(1, 6 * mm),
        Paragraph(group_heading, section_title_style),
        Image(BytesIO(_build_bar_chart(groups, group_heading)), width=166 * mm, height=86 * mm),
        Spacer(1, 3 * mm),
        _striped_table(
            [["Categoría", "Cantidad", "Monto", "% del total"]]
            + [
                [group.name, str(group.count), format_cop(group.total), format_percentage(group.total, total)]
                for group in sorted(groups, key=lambda group: group.total, reverse=True)
            ],
            [80 * mm, 25 * mm, 40 * mm, 25 * mm],
            amount_column=2,
        ),
        Spacer(1, 6 * mm),
        Paragraph("Detalle de registros", section_title_style),
    ]
    if len(records) > DETAIL_ROW_LIMIT:
        story.append(Paragraph(f"Se muestran los primeros {DETAIL_ROW_LIMIT} de {len(records)} registros.", styles["Italic"]))
        story.append(Spacer(1, 2 * mm))
    story.append(
        _striped_table(
            [detail_header] + [detail_row(record) for record in records[:DETAIL_ROW_LIMIT]],
            col_widths,
            amount_column=detail_header.index("Monto"),
        )
    )

    doc.build(story, canvasmaker=_FooterCanvas)
    export = ExportFile(
        filename=dated_filename(prefix, "pdf", today),
        media_type=PDF_MEDIA_TYPE,
        content=buffer.getvalue(),
    )
    logger.info("entity_pdf_built filename=%s rows=%s", export.filename, len(records))
    return export


def build_expenses_pdf(
    records: Sequence[ExpenseRecord],
    *,
    org_name: str,
    today: date | None = None,
    generated_at: datetime | None = None,
) -> ExportFile:
    ensure_not_empty(records)
    total = sum((record.monto for record in records), Decimal("0"))
    approved = sum((r.monto for r in records if approval_code(r.aprobado) == "aprobado"), Decimal("0"))
    groups = group_totals(
        records,
        key=lambda r: (r.tipo_gasto, label_for(EXPENSE_CATEGORY_LABELS, r.tipo_gasto)),
        amount=lambda r: r.monto,
        status=expense_status,
    )
    return _entity_report(
        records,
        org_name=org_name,
        title="Reporte de Gastos",
        kpis=[
            _Kpi("GASTOS REGISTRADOS", str(len(records))),
            _Kpi("MONTO TOTAL", format_cop(total)),
            _Kpi("TASA DE APROBACIÓN", format_percentage(approved, total)),
            _Kpi("PROYECTOS INVOLUCRADOS", str(len({r.proyecto_id for r in records}))),
        ],
        groups=groups,
        group_heading="Distribución por categoría",
        detail_header=["Fecha", "Proyecto", "Categoría", "Descripción", "Monto", "Estado"],
        detail_row=lambda r: [
            format_short_date(r.fecha_gasto),
            _truncate(r.proyecto.nombre if r.proyecto else PROJECT_NOT_FOUND, 22),
            label_for(EXPENSE_CATEGORY_LABELS, r.tipo_gasto),
            _truncate(r.descripcion, 28),
            format_cop(r.monto),
            approval_plain_label(r.aprobado),
        ],
        col_widths=[20 * mm, 36 * mm, 28 * mm, 46 * mm, 25 * mm, 23 * mm],
        prefix="reporte-gastos-corporativo",
        today=today,
        generated_at=generated_at or datetime.now(),
    )


def build_payments_pdf(
    records: Sequence[PaymentRecord],
    *,
    org_name: str,
    today: date | None = None,
    generated_at: datetime | None = None,
) -> ExportFile:
    ensure_not_empty(records)
    total = sum((record.valor_pactado for record in records), Decimal("0"))
    paid = sum((r.valor_pactado for r in records if payment_status_code(r.estado_pago) == "pagado"), Decimal("0"))
    groups = group_totals(
        records,
        key=lambda r: (r.tipo_labor, label_for(LABOR_TYPE_LABELS, r.tipo_labor)),
        amount=lambda r: r.valor_pactado,
        status=payment_status,
    )
    return _entity_report(
        records,
        org_name=org_name,
        title="Reporte de Pagos al Personal",
        kpis=[
            _Kpi("PAGOS REGISTRADOS", str(len(records))),
            _Kpi("MONTO TOTAL", format_cop(total)),
            _Kpi("TASA DE PAGO", format_percentage(paid, total)),
            _Kpi("PROYECTOS INVOLUCRADOS", str(len({r.proyecto_id for r in records}))),
        ],
        groups=groups,
        group_heading="Distribución por tipo de labor",
        detail_header=["Fecha", "Trabajador", "Proyecto", "Labor", "Monto", "Estado"],
        detail_row=lambda r: [
            format_short_date(r.fecha_actividad),
            _truncate(r.trabajador.nombre if r.trabajador else WORKER_NOT_FOUND, 24),
            _truncate(r.proyecto.nombre if r.proyecto else PROJECT_NOT_FOUND, 24),
            label_for(LABOR_TYPE_LABELS, r.tipo_labor),
            format_cop(r.valor_pactado),
            label_for(PAYMENT_STATUS_PLAIN_LABELS, payment_status_code(r.estado_pago)),
        ],
        col_widths=[20 * mm, 38 * mm, 38 * mm, 30 * mm, 25 * mm, 27 * mm],
        prefix="reporte-pagos-corporativo",
        today=today,
        generated_at=generated_at or datetime.now(),
    )
