"""Tests for COP/date formatting and the centralized label tables."""

from datetime import date, datetime
from decimal import Decimal

from shared.formatting import (
    date_parts,
    format_cop,
    format_long_date,
    format_percentage,
    format_short_date,
    format_timestamp,
    plain_number,
)
from shared.labels import (
    EXPENSE_CATEGORY_LABELS,
    UNSPECIFIED,
    approval_label,
    evidence_types_for,
    label_for,
    payment_status_code,
)


def test_format_cop_groups_with_dots_and_no_decimals() -> None:
    assert format_cop(Decimal("50000")) == "$\u00a050.000"
    assert format_cop(Decimal("1234567.5")) == "$\u00a01.234.568"
    assert format_cop(-1000) == "-$\u00a01.000"
    assert format_cop(0) == "$\u00a00"


def test_plain_number_has_no_exponent() -> None:
    assert plain_number(Decimal("5E+4")) == "50000"
    assert plain_number(Decimal("12.50")) == "12.5"


def test_format_percentage_guards_zero_denominator() -> None:
    assert format_percentage(Decimal("80000"), Decimal("200000")) == "40.0%"
    assert format_percentage(1, 3) == "33.3%"
    assert format_percentage(5, 0) == "0%"


def test_spanish_dates() -> None:
    assert format_long_date(date(2026, 1, 5)) == "lunes, 5 de enero de 2026"
    assert format_short_date(date(2026, 3, 2)) == "02/03/2026"
    assert format_timestamp(datetime(2026, 3, 2, 9, 5)) == "lunes, 2 de marzo de 2026, 09:05"


def test_date_parts_are_uppercase() -> None:
    assert date_parts(date(2026, 11, 1)) == {
        "month": "NOVIEMBRE",
        "year": "2026",
        "quarter": "Q4",
        "weekday": "DOMINGO",
    }


def test_label_for_falls_back_to_uppercased_code() -> None:
    assert label_for(EXPENSE_CATEGORY_LABELS, "transporte") == "TRANSPORTE Y MOVILIZACIÓN"
    assert label_for(EXPENSE_CATEGORY_LABELS, "viaticos") == "VIATICOS"
    assert label_for(EXPENSE_CATEGORY_LABELS, None) == UNSPECIFIED


def test_status_codes_default_to_pending() -> None:
    assert approval_label(None) == approval_label(False)
    assert payment_status_code(None) == "pendiente"
    assert payment_status_code("pagado") == "pagado"


def test_evidence_groups_resolve_raw_types() -> None:
    assert evidence_types_for("documentos") == {"documento", "lista_asistencia", "informe"}
    assert evidence_types_for("video") == {"video"}
