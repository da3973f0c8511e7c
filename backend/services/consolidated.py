"""Assemble the cross-module data behind consolidated reports."""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from backend.services.records_service import RecordsService
from shared.formatting import MONTH_NAMES
from shared.labels import WORKER_NOT_FOUND
from shared.models import (
    ConsolidatedFilters,
    EvidenceRecord,
    ExpenseRecord,
    PaymentRecord,
    Project,
    ProjectStatus,
)


logger = logging.getLogger(__name__)

OPEN_BOUND = "Sin límite"
TOP_WORKERS = 10
TREND_MONTHS = 6


@dataclass(slots=True)
class ProjectTotals:
    """A project with the totals of its rows inside the report window."""

    project: Project
    expense_total: Decimal = Decimal("0")
    payment_total: Decimal = Decimal("0")
    evidence_count: int = 0


@dataclass(slots=True)
class ConsolidatedSummary:
    total_projects: int
    active_projects: int
    total_budget: Decimal
    expense_total: Decimal
    payment_total: Decimal
    evidence_total: int
    budget_efficiency: Decimal
    period_start: str
    period_end: str

@dataclass(slots=True)
class StatusShare:
    estado: str
    count: int
    percentage: Decimal


@dataclass(slots=True)
class CategoryShare:
    tipo_gasto: str
    total: Decimal
    percentage: Decimal


@dataclass(slots=True)
class WorkerPayments:
    """A worker's paid-out total across the report window."""

    trabajador_id: UUID | None
    nombre: str
    total: Decimal
    project_count: int

    @property
    def projects_label(self) -> str:
        return f"{self.project_count} proyecto{'' if self.project_count == 1 else 's'}"


@dataclass(slots=True)
class MonthlyTrendPoint:
    month: date
    label: str
    expense_total: Decimal
    payment_total: Decimal



@dataclass(slots=True)
class ConsolidatedData:
    projects: list[ProjectTotals]
    expenses: list[ExpenseRecord]
    payments: list[PaymentRecord]
    evidence: list[EvidenceRecord]
    summary: ConsolidatedSummary
    projects_by_status: list[StatusShare] = field(default_factory=list)
    expenses_by_category: list[CategoryShare] = field(default_factory=list)
    payments_by_worker: list[WorkerPayments] = field(default_factory=list)
    monthly_trend: list[MonthlyTrendPoint] = field(default_factory=list)
    generated_at: datetime = field(default_factory=datetime.now)


def _in_window(value: date | None, filters: ConsolidatedFilters) -> bool:
    if value is None:
        return filters.date_start is None and filters.date_end is None
    if filters.date_start is not None and value < filters.date_start:
        return False
    if filters.date_end is not None and value > filters.date_end:
        return False
    return True


def _in_amount_range(value: Decimal, filters: ConsolidatedFilters) -> bool:
    if filters.amount_min is not None and value < filters.amount_min:
        return False
    if filters.amount_max is not None and value > filters.amount_max:
        return False
    return True


def budget_efficiency(expense_total: Decimal, total_budget: Decimal) -> Decimal:
    """Executed share of the budget in percent; zero when nothing was budgeted."""

    if total_budget <= 0:
        return Decimal("0")
    return expense_total / total_budget * Decimal("100")


def _share(part: Decimal | int, whole: Decimal | int) -> Decimal:
    if not whole:
        return Decimal("0")
    return Decimal(part) / Decimal(whole) * Decimal("100")


def projects_by_status(projects: list[Project]) -> list[StatusShare]:
    counts = Counter(project.estado for project in projects)
    return [
        StatusShare(estado=estado, count=count, percentage=_share(count, len(projects)))
        for estado, count in counts.items()
    ]


def expenses_by_category(expenses: list[ExpenseRecord]) -> list[CategoryShare]:
    totals: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for row in expenses:
        totals[row.tipo_gasto] += row.monto
    grand_total = sum(totals.values(), Decimal("0"))
    return [
        CategoryShare(tipo_gasto=code, total=total, percentage=_share(total, grand_total))
        for code, total in totals.items()
    ]


def payments_by_worker(payments: list[PaymentRecord], *, limit: int = TOP_WORKERS) -> list[WorkerPayments]:
    """Workers ranked by total agreed value, highest first, cut to `limit`."""

    totals: dict[UUID | None, Decimal] = defaultdict(lambda: Decimal("0"))
    projects: dict[UUID | None, set[UUID | None]] = defaultdict(set)
    names: dict[UUID | None, str] = {}
    for row in payments:
        totals[row.trabajador_id] += row.valor_pactado
        projects[row.trabajador_id].add(row.proyecto_id)
        names[row.trabajador_id] = row.trabajador.nombre if row.trabajador else WORKER_NOT_FOUND
    ranked = sorted(totals, key=lambda worker_id: totals[worker_id], reverse=True)
    return [
        WorkerPayments(
            trabajador_id=worker_id,
            nombre=names[worker_id],
            total=totals[worker_id],
            project_count=len(projects[worker_id]),
        )
        for worker_id in ranked[:limit]
    ]


def _shift_month(month_start: date, offset: int) -> date:
    index = month_start.year * 12 + month_start.month - 1 + offset
    return date(index // 12, index % 12 + 1, 1)


def monthly_trend(
    expenses: list[ExpenseRecord],
    payments: list[PaymentRecord],
    *,
    today: date,
    months: int = TREND_MONTHS,
) -> list[MonthlyTrendPoint]:
    """Per-month totals for the last `months` months, oldest first.

    Expenses are bucketed by `fecha_gasto`, payments by `fecha_pago`; unpaid
    payments have no payment date and stay out of the trend.
    """

    current = today.replace(day=1)
    points = []
    for offset in range(months - 1, -1, -1):
        start = _shift_month(current, -offset)
        end = _shift_month(start, 1)
        points.append(
            MonthlyTrendPoint(
                month=start,
                label=f"{MONTH_NAMES[start.month - 1][:3]} {start.year}",
                expense_total=sum((r.monto for r in expenses if start <= r.fecha_gasto < end), Decimal("0")),
                payment_total=sum(
                    (r.valor_pactado for r in payments if r.fecha_pago is not None and start <= r.fecha_pago < end),
                    Decimal("0"),
                ),
            )
        )
    return points


def consolidate(
    *,
    projects: list[Project],
    expenses: list[ExpenseRecord],
    payments: list[PaymentRecord],
    evidence: list[EvidenceRecord],
    filters: ConsolidatedFilters,
    today: date | None = None,
) -> ConsolidatedData:
    wanted_ids = set(filters.project_ids)
    wanted_statuses = {str(status) for status in filters.statuses}
    selected = [
        project
        for project in projects
        if (not wanted_ids or project.id in wanted_ids)
        and (not wanted_statuses or project.estado in wanted_statuses)
    ]
    selected_ids = {project.id for project in selected}

    kept_expenses = [
        row
        for row in expenses
        if row.proyecto_id in selected_ids
        and _in_window(row.fecha_gasto, filters)
        and _in_amount_range(row.monto, filters)
    ]
    kept_payments = [
        row
        for row in payments
        if row.proyecto_id in selected_ids
        and _in_window(row.fecha_actividad, filters)
        and _in_amount_range(row.valor_pactado, filters)
    ]
    kept_evidence = [
        row for row in evidence if row.proyecto_id in selected_ids and _in_window(row.fecha_actividad, filters)
    ]

    totals = {project.id: ProjectTotals(project=project) for project in selected}
    for expense in kept_expenses:
        totals[expense.proyecto_id].expense_total += expense.monto
    for payment in kept_payments:
        totals[payment.proyecto_id].payment_total += payment.valor_pactado
    for item in kept_evidence:
        totals[item.proyecto_id].evidence_count += 1

    total_budget = sum((project.presupuesto_total for project in selected), Decimal("0"))
    expense_total = sum((row.monto for row in kept_expenses), Decimal("0"))
    summary = ConsolidatedSummary(
        total_projects=len(selected),
        active_projects=sum(1 for project in selected if project.estado == ProjectStatus.ACTIVO.value),
        total_budget=total_budget,
        expense_total=expense_total,
        payment_total=sum((row.valor_pactado for row in kept_payments), Decimal("0")),
        evidence_total=len(kept_evidence),
        budget_efficiency=budget_efficiency(expense_total, total_budget),
        period_start=filters.date_start.isoformat() if filters.date_start else OPEN_BOUND,
        period_end=filters.date_end.isoformat() if filters.date_end else OPEN_BOUND,
    )
    return ConsolidatedData(
        projects=list(totals.values()),
        expenses=kept_expenses,
        payments=kept_payments,
        evidence=kept_evidence,
        summary=summary,
        projects_by_status=projects_by_status(selected),
        expenses_by_category=expenses_by_category(kept_expenses),
        payments_by_worker=payments_by_worker(kept_payments),
        monthly_trend=monthly_trend(kept_expenses, kept_payments, today=today or date.today()),
    )


@dataclass(slots=True)
class ConsolidatedService:
    records_service: RecordsService

    def build(
        self, *, supervisor_id: UUID, filters: ConsolidatedFilters, today: date | None = None
    ) -> ConsolidatedData:
        data = consolidate(
            projects=self.records_service.list_projects(supervisor_id),
            expenses=self.records_service.expense_records(supervisor_id),
            payments=self.records_service.payment_records(supervisor_id),
            evidence=self.records_service.evidence_records(supervisor_id),
            filters=filters,
            today=today,
        )
        logger.info(
            "consolidated_data_built supervisor_id=%s projects=%s expenses=%s payments=%s evidence=%s",
            supervisor_id,
            data.summary.total_projects,
            len(data.expenses),
            len(data.payments),
            len(data.evidence),
        )
        return data
