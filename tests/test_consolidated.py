"""Tests for the consolidated report data assembly."""

from datetime import date
from decimal import Decimal

from backend.services.consolidated import (
    OPEN_BOUND,
    budget_efficiency,
    consolidate,
    expenses_by_category,
    monthly_trend,
    payments_by_worker,
)
from shared.models import ConsolidatedFilters
from tests.fakes import (
    PROJECT_A_ID,
    PROJECT_B_ID,
    SUPERVISOR_ID,
    TODAY,
    WORKER_ID,
    build_seeded_services,
    evidence_records,
    expense_records,
    payment_records,
    projects,
)


def _own_projects():
    return [project for project in projects() if project.supervisor_id == SUPERVISOR_ID]


def _consolidate(filters: ConsolidatedFilters):
    return consolidate(
        projects=_own_projects(),
        expenses=expense_records(),
        payments=payment_records(),
        evidence=evidence_records(),
        filters=filters,
        today=TODAY,
    )


def test_summary_without_filters() -> None:
    summary = _consolidate(ConsolidatedFilters()).summary

    assert summary.total_projects == 2
    assert summary.active_projects == 1
    assert summary.total_budget == Decimal("1500000")
    assert summary.expense_total == Decimal("200000")
    assert summary.payment_total == Decimal("350000")
    assert summary.evidence_total == 2
    assert summary.period_start == OPEN_BOUND
    assert summary.period_end == OPEN_BOUND


def test_per_project_totals() -> None:
    totals = {row.project.id: row for row in _consolidate(ConsolidatedFilters()).projects}

    assert totals[PROJECT_A_ID].expense_total == Decimal("80000")
    assert totals[PROJECT_A_ID].payment_total == Decimal("250000")
    assert totals[PROJECT_A_ID].evidence_count == 1
    assert totals[PROJECT_B_ID].expense_total == Decimal("120000")


def test_status_and_date_filters() -> None:
    data = _consolidate(
        ConsolidatedFilters(statuses=["activo"], date_start=date(2026, 2, 11), date_end=date(2026, 2, 28))
    )

    assert [row.project.id for row in data.projects] == [PROJECT_A_ID]
    assert [row.monto for row in data.expenses] == [Decimal("30000")]
    assert [row.valor_pactado for row in data.payments] == [Decimal("200000")]
    assert data.summary.period_start == "2026-02-11"


def test_amount_filters_apply_to_expenses_and_payments() -> None:
    data = _consolidate(ConsolidatedFilters(amount_min=Decimal("100000")))

    assert [row.monto for row in data.expenses] == [Decimal("120000")]
    assert sorted(row.valor_pactado for row in data.payments) == [Decimal("100000"), Decimal("200000")]


def test_budget_efficiency_is_guarded() -> None:
    assert budget_efficiency(Decimal("50"), Decimal("200")) == Decimal("25")
    assert budget_efficiency(Decimal("50"), Decimal("0")) == Decimal("0")


def test_service_builds_from_supervisor_records() -> None:
    services = build_seeded_services()

    data = services.consolidated.build(
        supervisor_id=SUPERVISOR_ID,
        filters=ConsolidatedFilters(project_ids=[PROJECT_B_ID]),
    )

    assert data.summary.total_projects == 1
    assert data.summary.expense_total == Decimal("120000")
    assert len(data.evidence) == 1


def test_projects_by_status_shares() -> None:
    shares = {row.estado: row for row in _consolidate(ConsolidatedFilters()).projects_by_status}

    assert set(shares) == {"activo", "planificacion"}
    assert shares["activo"].count == 1
    assert shares["activo"].percentage == Decimal("50")


def test_expenses_by_category_shares() -> None:
    shares = {row.tipo_gasto: row for row in expenses_by_category(expense_records())}

    assert shares["transporte"].total == Decimal("80000")
    assert shares["transporte"].percentage == Decimal("40")
    assert shares["materiales"].percentage == Decimal("60")


def test_payments_by_worker_ranked_and_limited() -> None:
    ranked = payments_by_worker(payment_records())

    assert [(row.nombre, row.total) for row in ranked] == [
        ("Ana Pérez", Decimal("300000")),
        ("Luis Gómez", Decimal("50000")),
    ]
    assert ranked[0].trabajador_id == WORKER_ID
    assert ranked[0].projects_label == "2 proyectos"
    assert ranked[1].projects_label == "1 proyecto"
    assert [row.nombre for row in payments_by_worker(payment_records(), limit=1)] == ["Ana Pérez"]


def test_monthly_trend_covers_six_months_across_year_end() -> None:
    trend = monthly_trend(expense_records(), payment_records(), today=TODAY)

    assert [point.label for point in trend] == [
        "oct 2025",
        "nov 2025",
        "dic 2025",
        "ene 2026",
        "feb 2026",
        "mar 2026",
    ]
    february = trend[4]
    assert february.month == date(2026, 2, 1)
    assert february.expense_total == Decimal("200000")
    # Only the paid payment has a payment date.
    assert february.payment_total == Decimal("200000")
    assert trend[5].expense_total == Decimal("0")


def test_consolidated_data_carries_breakdowns() -> None:
    data = _consolidate(ConsolidatedFilters(statuses=["activo"]))

    assert [row.estado for row in data.projects_by_status] == ["activo"]
    assert {row.tipo_gasto for row in data.expenses_by_category} == {"transporte"}
    assert [row.nombre for row in data.payments_by_worker] == ["Ana Pérez", "Luis Gómez"]
    assert len(data.monthly_trend) == 6
