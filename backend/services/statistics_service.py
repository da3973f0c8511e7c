"""Headline figures for the expenses, payments, evidence and reports pages."""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Iterable, TypeVar
from uuid import UUID

from backend.repositories.workers_repository import WorkersRepository
from backend.services.records_service import RecordsService
from shared.labels import EVIDENCE_TYPE_GROUPS, approval_code, payment_status_code
from shared.models import EvidenceStats, ExpenseStats, PaymentStats, ProjectStatus, ReportStats


logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")

INACTIVITY_WINDOW_DAYS = 30

_EVIDENCE_BUCKETS = {
    "fotografias": "images",
    "videos": "videos",
    "documentos": "documents",
    "audios": "audios",
}


def month_bounds(today: date) -> tuple[date, date]:
    """First and last day of the calendar month containing `today`."""

    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def _sum(rows: Iterable[RecordT], amount: Callable[[RecordT], Decimal]) -> Decimal:
    return sum((amount(row) for row in rows), Decimal("0"))


def _average(total: Decimal, count: int) -> Decimal:
    if count == 0:
        return Decimal("0")
    return (total / count).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _evidence_bucket(tipo_evidencia: str) -> str:
    for group, types in EVIDENCE_TYPE_GROUPS.items():
        if tipo_evidencia in types:
            return _EVIDENCE_BUCKETS.get(group, "others")
    return "others"


@dataclass(slots=True)
class StatisticsService:
    """Compute the statistics cards over the supervisor's cached records.

    Month figures cover the calendar month of `today`; "today" figures match
    the record date exactly.
    """

    records_service: RecordsService
    workers_repository: WorkersRepository

    def expense_stats(self, supervisor_id: UUID, *, today: date | None = None) -> ExpenseStats:
        today = today or date.today()
        first, last = month_bounds(today)
        records = self.records_service.expense_records(supervisor_id)
        total = _sum(records, lambda r: r.monto)
        stats = ExpenseStats(
            total=total,
            month_total=_sum((r for r in records if first <= r.fecha_gasto <= last), lambda r: r.monto),
            today_total=_sum((r for r in records if r.fecha_gasto == today), lambda r: r.monto),
            approved_total=_sum((r for r in records if approval_code(r.aprobado) == "aprobado"), lambda r: r.monto),
            pending_total=_sum((r for r in records if approval_code(r.aprobado) == "pendiente"), lambda r: r.monto),
            average=_average(total, len(records)),
            count=len(records),
        )
        logger.info("expense_stats_built supervisor_id=%s count=%s", supervisor_id, stats.count)
        return stats

    def payment_stats(self, supervisor_id: UUID, *, today: date | None = None) -> PaymentStats:
        today = today or date.today()
        first, last = month_bounds(today)
        records = self.records_service.payment_records(supervisor_id)
        workers = self.workers_repository.list_workers(active_only=False)
        total = _sum(records, lambda r: r.valor_pactado)

        def by_status(code: str) -> Decimal:
            return _sum((r for r in records if payment_status_code(r.estado_pago) == code), lambda r: r.valor_pactado)

        stats = PaymentStats(
            total=total,
            month_total=_sum((r for r in records if first <= r.fecha_actividad <= last), lambda r: r.valor_pactado),
            today_total=_sum((r for r in records if r.fecha_actividad == today), lambda r: r.valor_pactado),
            pending_total=by_status("pendiente"),
            paid_total=by_status("pagado"),
            average=_average(total, len(records)),
            count=len(records),
            total_workers=len(workers),
            active_workers=sum(1 for worker in workers if worker.activo is not False),
        )
        logger.info("payment_stats_built supervisor_id=%s count=%s", supervisor_id, stats.count)
        return stats

    def evidence_stats(self, supervisor_id: UUID) -> EvidenceStats:
        counts = {"images": 0, "videos": 0, "documents": 0, "audios": 0, "others": 0}
        records = self.records_service.evidence_records(supervisor_id)
        for record in records:
            counts[_evidence_bucket(record.tipo_evidencia)] += 1
        logger.info("evidence_stats_built supervisor_id=%s count=%s", supervisor_id, len(records))
        return EvidenceStats(total=len(records), **counts)

    def report_stats(self, supervisor_id: UUID, *, today: date | None = None) -> ReportStats:
        """Totals for the reports page.

        A project is inactive when it has no expense dated and no payment paid
        within the last `INACTIVITY_WINDOW_DAYS` days.
        """

        today = today or date.today()
        first, last = month_bounds(today)
        since = today - timedelta(days=INACTIVITY_WINDOW_DAYS)
        projects = self.records_service.list_projects(supervisor_id)
        expenses = self.records_service.expense_records(supervisor_id)
        payments = self.records_service.payment_records(supervisor_id)
        evidence = self.records_service.evidence_records(supervisor_id)

        recently_active = {r.proyecto_id for r in expenses if r.fecha_gasto >= since}
        recently_active |= {r.proyecto_id for r in payments if r.fecha_pago is not None and r.fecha_pago >= since}
        paid_this_month = [r for r in payments if r.fecha_pago is not None and first <= r.fecha_pago <= last]

        return ReportStats(
            total_projects=len(projects),
            active_projects=sum(1 for project in projects if project.estado == ProjectStatus.ACTIVO.value),
            expense_total=_sum(expenses, lambda r: r.monto),
            payment_total=_sum(payments, lambda r: r.valor_pactado),
            evidence_total=len(evidence),
            expense_month_total=_sum((r for r in expenses if first <= r.fecha_gasto <= last), lambda r: r.monto),
            payment_month_total=_sum(paid_this_month, lambda r: r.valor_pactado),
            inactive_projects=sum(1 for project in projects if project.id not in recently_active),
        )
