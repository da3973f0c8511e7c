"""Fetch and join the supervisor's records from the repositories."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable
from uuid import UUID

from backend.events import EventBus, UpdateEvent, UpdateTopic
from backend.repositories.evidence_repository import EvidenceRepository
from backend.repositories.expenses_repository import ExpensesRepository
from backend.repositories.payments_repository import PaymentsRepository
from backend.repositories.projects_repository import ProjectsRepository
from backend.repositories.workers_repository import WorkersRepository
from shared.models import EvidenceRecord, ExpenseRecord, PaymentRecord, Project


logger = logging.getLogger(__name__)


_PROJECTS = "projects"
_EXPENSES = "expenses"
_PAYMENTS = "payments"
_EVIDENCE = "evidence"

DEFAULT_CACHE_TTL_SECONDS = 30.0

# Cached collections made stale by each update topic.
_STALE_KINDS: dict[UpdateTopic, frozenset[str]] = {
    UpdateTopic.PROJECTS: frozenset({_PROJECTS, _EXPENSES, _PAYMENTS, _EVIDENCE}),
    UpdateTopic.EXPENSES: frozenset({_PROJECTS, _EXPENSES}),
    UpdateTopic.PAYMENTS: frozenset({_PAYMENTS}),
    UpdateTopic.WORKERS: frozenset({_PAYMENTS}),
    UpdateTopic.EVIDENCE: frozenset({_EVIDENCE}),
}


@dataclass(slots=True)
class RecordsService:
    """Give consumers joined records for a supervisor's project set.

    Children are fetched with one `in.(...)` query per table and their parents
    are attached by id lookup, so callers never see how the join happened.
    Results are cached per supervisor until an update event makes them stale
    or `ttl_seconds` pass, so writes made outside this process still show up.
    """

    projects_repository: ProjectsRepository
    expenses_repository: ExpensesRepository
    payments_repository: PaymentsRepository
    workers_repository: WorkersRepository
    evidence_repository: EvidenceRepository
    event_bus: EventBus | None = None
    ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    clock: Callable[[], float] = time.monotonic
    _cache: dict[tuple[UUID, str], tuple[float, list]] = field(default_factory=dict, init=False, repr=False)
    _unsubscribe: Callable[[], None] | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.event_bus is not None:
            self._unsubscribe = self.event_bus.subscribe(None, self._on_update)

    def _on_update(self, event: UpdateEvent) -> None:
        stale = _STALE_KINDS.get(event.topic, frozenset())
        dropped = [key for key in self._cache if key[1] in stale]
        for key in dropped:
            del self._cache[key]
        logger.info(
            "records_cache_invalidated topic=%s sequence=%s dropped=%s",
            event.topic.value,
            event.sequence,
            len(dropped),
        )

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def invalidate(self, supervisor_id: UUID | None = None) -> None:
        if supervisor_id is None:
            self._cache.clear()
            return
        for key in [key for key in self._cache if key[0] == supervisor_id]:
            del self._cache[key]

    def _cached(self, supervisor_id: UUID, kind: str, loader: Callable[[], list]) -> list:
        key = (supervisor_id, kind)
        now = self.clock()
        entry = self._cache.get(key)
        if entry is None or now - entry[0] >= self.ttl_seconds:
            if entry is not None:
                logger.info("records_cache_expired supervisor_id=%s kind=%s", supervisor_id, kind)
            entry = (now, loader())
            self._cache[key] = entry
        return list(entry[1])

    def list_projects(self, supervisor_id: UUID) -> list[Project]:
        return self._cached(
            supervisor_id,
            _PROJECTS,
            lambda: self.projects_repository.list_projects(supervisor_id=supervisor_id),
        )

    def expense_records(self, supervisor_id: UUID) -> list[ExpenseRecord]:
        return self._cached(
            supervisor_id,
            _EXPENSES,
            lambda: self.join_expenses(self.list_projects(supervisor_id)),
        )

    def payment_records(self, supervisor_id: UUID) -> list[PaymentRecord]:
        return self._cached(
            supervisor_id,
            _PAYMENTS,
            lambda: self.join_payments(self.list_projects(supervisor_id)),
        )

    def evidence_records(self, supervisor_id: UUID) -> list[EvidenceRecord]:
        return self._cached(
            supervisor_id,
            _EVIDENCE,
            lambda: self.join_evidence(self.list_projects(supervisor_id)),
        )

    def join_expenses(self, projects: list[Project]) -> list[ExpenseRecord]:
        if not projects:
            return []
        by_id = {project.id: project for project in projects}
        expenses = self.expenses_repository.list_expenses(project_ids=list(by_id))
        logger.info("expenses_fetched projects=%s rows=%s", len(by_id), len(expenses))
        return [
            ExpenseRecord(**expense.model_dump(), proyecto=by_id.get(expense.proyecto_id))
            for expense in expenses
        ]

    def join_payments(self, projects: list[Project]) -> list[PaymentRecord]:
        if not projects:
            return []
        by_id = {project.id: project for project in projects}
        payments = self.payments_repository.list_payments(project_ids=list(by_id))
        worker_ids = [payment.trabajador_id for payment in payments if payment.trabajador_id]
        workers = {worker.id: worker for worker in self.workers_repository.get_workers(worker_ids)}
        logger.info(
            "payments_fetched projects=%s rows=%s workers=%s", len(by_id), len(payments), len(workers)
        )
        return [
            PaymentRecord(
                **payment.model_dump(),
                proyecto=by_id.get(payment.proyecto_id),
                trabajador=workers.get(payment.trabajador_id) if payment.trabajador_id else None,
            )
            for payment in payments
        ]

    def join_evidence(self, projects: list[Project]) -> list[EvidenceRecord]:
        if not projects:
            return []
        by_id = {project.id: project for project in projects}
        evidence = self.evidence_repository.list_evidence(project_ids=list(by_id))
        logger.info("evidence_fetched projects=%s rows=%s", len(by_id), len(evidence))
        return [
            EvidenceRecord(**item.model_dump(), proyecto=by_id.get(item.proyecto_id))
            for item in evidence
        ]
