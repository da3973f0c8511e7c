"""Tests for the branded PDF reports."""

import re
from datetime import date
from decimal import Decimal
from io import BytesIO
from uuid import uuid4

import pytest
from pypdf import PdfReader

from backend.reporting import NothingToExportError, build_consolidated_pdf, build_expenses_pdf, build_payments_pdf
from backend.reporting.pdf_report import ATTRIBUTION, DETAIL_ROW_LIMIT
from backend.services.consolidated import consolidate
from shared.models import ConsolidatedFilters, ExpenseRecord
from tests.fakes import (
    SUPERVISOR_ID,
    TODAY,
    evidence_records,
    expense_records,
    payment_records,
    projects,
)


def _page_count(content: bytes) -> int:
    return len(re.findall(rb"/Type /Page\b", content))


def _page_texts(content: bytes) -> list[str]:
    """Text of each page with runs of whitespace collapsed, so wrapped cells read as one line."""

    reader = PdfReader(BytesIO(content))
    return [" ".join((page.extract_text() or "").split()) for page in reader.pages]


def _text(content: bytes) -> str:
    return " ".join(_page_texts(content))


def _data(expenses=None):
    return consolidate(
        projects=[project for project in projects() if project.supervisor_id == SUPERVISOR_ID],
        expenses=expenses if expenses is not None else expense_records(),
        payments=payment_records(),
        evidence=evidence_records(),
        filters=ConsolidatedFilters(),
        today=TODAY,
    )


def _ranked_expenses(count: int) -> list[ExpenseRecord]:
    """Expenses in ascending amount order, each with a distinct short description."""

    template = expense_records()[0]
    return [
        ExpenseRecord(
            **{
                **template.model_dump(),
                "id": uuid4(),
                "descripcion": f"Gasto {index:03d}",
                "monto": Decimal(1000 + index),
            }
        )
        for index in range(count)
    ]


def test_consolidated_pdf_renders_single_page() -> None:
    export = build_consolidated_pdf(_data(), org_name="CORPORACIÓN CULTURAL CÚCUTA", today=TODAY)

    assert export.content.startswith(b"%PDF")
    assert export.filename == "reporte-consolidado-2026-03-02.pdf"
    assert export.media_type == "application/pdf"
    assert _page_count(export.content) == 1
    text = _text(export.content)
    assert "CORPORACIÓN CULTURAL CÚCUTA" in text
    assert "Total de proyectos: 2" in text


def test_consolidated_pdf_footer_on_every_page() -> None:
    export = build_consolidated_pdf(_data(_ranked_expenses(120)), org_name="ORG", top_expenses=120, today=TODAY)

    pages = _page_texts(export.content)
    assert len(pages) >= 3
    for number, text in enumerate(pages, start=1):
        assert f"Página {number} de {len(pages)}" in text
        assert ATTRIBUTION in text


def test_consolidated_top_lists_are_ranked_before_truncation() -> None:
    export = build_consolidated_pdf(
        _data(_ranked_expenses(30)),
        org_name="ORG",
        top_projects=1,
        top_expenses=2,
        today=TODAY,
    )

    text = _text(export.content)
    assert "Gasto 029" in text
    assert "Gasto 028" in text
    assert text.index("Gasto 029") < text.index("Gasto 028")
    assert "Gasto 027" not in text
    assert "Gasto 000" not in text
    # Highest budget first; names are cut to 25 characters.
    assert "Festival de Teatro Callej" in text
    assert "Festival de Teatro Callejero" not in text
    assert "Taller de Danza" not in text


def test_consolidated_pdf_sections_are_optional() -> None:
    full = _text(build_consolidated_pdf(_data(), org_name="ORG", today=TODAY).content)
    bare = _text(
        build_consolidated_pdf(_data(), org_name="ORG", include_summary=False, include_details=False, today=TODAY).content
    )

    assert "RESUMEN EJECUTIVO" in full
    assert "PRINCIPALES GASTOS" in full
    assert "RESUMEN EJECUTIVO" not in bare
    assert "Total de proyectos" not in bare
    assert "PRINCIPALES GASTOS" not in bare
    assert "Página 1 de 1" in bare


def test_consolidated_pdf_refuses_empty_data() -> None:
    empty = consolidate(projects=[], expenses=[], payments=[], evidence=[], filters=ConsolidatedFilters())

    with pytest.raises(NothingToExportError):
        build_consolidated_pdf(empty, org_name="ORG")


def test_expenses_pdf_executive_report() -> None:
    export = build_expenses_pdf(expense_records(), org_name="ORG", today=date(2026, 3, 2))

    assert export.content.startswith(b"%PDF")
    assert export.filename == "reporte-gastos-corporativo-2026-03-02.pdf"
    text = _text(export.content)
    assert "PROYECTOS INVOLUCRADOS" in text
    assert "PROYECTOS ACTIVOS" not in text
    assert "Reporte de Gastos" in text


def test_expense_status_cells_are_plain_text() -> None:
    text = _text(build_expenses_pdf(expense_records(), org_name="ORG", today=TODAY).content)

    assert "PENDIENTE DE APROBACIÓN" in text
    assert "APROBADO" in text
    for glyph in ("✅", "⏳", "❌", "■"):
        assert glyph not in text


def test_payment_status_cells_are_plain_text() -> None:
    text = _text(build_payments_pdf(payment_records(), org_name="ORG", today=TODAY).content)

    assert "PAGADO" in text
    assert "PENDIENTE DE PAGO" in text
    assert "CANCELADO" in text
    assert "PROYECTOS INVOLUCRADOS" in text
    for glyph in ("✅", "⏳", "❌", "■"):
        assert glyph not in text


def test_payments_pdf_limits_detail_rows() -> None:
    template = payment_records()[0]
    many = [
        template.model_copy(
            update={
                "id": uuid4(),
                "trabajador": template.trabajador.model_copy(update={"nombre": f"Trabajador {index:03d}"}),
            }
        )
        for index in range(40)
    ]

    export = build_payments_pdf(many, org_name="ORG", today=TODAY)

    assert export.filename == "reporte-pagos-corporativo-2026-03-02.pdf"
    pages = _page_texts(export.content)
    text = " ".join(pages)
    assert f"Se muestran los primeros {DETAIL_ROW_LIMIT} de 40 registros." in text
    assert "Trabajador 000" in text
    assert f"Trabajador {DETAIL_ROW_LIMIT - 1:03d}" in text
    assert f"Trabajador {DETAIL_ROW_LIMIT:03d}" not in text
    assert "Trabajador 039" not in text
    for number, page_text in enumerate(pages, start=1):
        assert f"Página {number} de {len(pages)}" in page_text
        assert ATTRIBUTION in page_text


@pytest.mark.parametrize("builder", [build_expenses_pdf, build_payments_pdf])
def test_entity_pdf_refuses_empty_collection(builder) -> None:
    with pytest.raises(NothingToExportError):
        builder([], org_name="ORG")
