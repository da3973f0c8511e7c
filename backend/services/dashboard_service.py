"""Mutations over projects, expenses, payments, workers and evidence.

Every operation returns the stored model or a `ServiceError`; backend failures
never escape this boundary. Successful mutations publish an `UpdateEvent` so
readers drop stale joined collections.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from backend.events import EventBus, UpdateTopic
from backend.repositories.evidence_repository import EvidenceRepository
from backend.repositories.expenses_repository import ExpensesRepository
from backend.repositories.payments_repository import PaymentsRepository
from backend.repositories.projects_repository import ProjectsRepository
from backend.repositories.workers_repository import WorkersRepository
from shared.models import (
    Evidence,
    EvidenceCreateRequest,
    Expense,
    ExpenseCreateRequest,
    ExpenseUpdateRequest,
    Payment,
    PaymentCreateRequest,
    PaymentStatus,
    PaymentUpdateRequest,
    Project,
    ProjectCreateRequest,
    ProjectUpdateRequest,
    ServiceError,
    ServiceErrorCode,
    Worker,
    WorkerCreateRequest,
    WorkerUpdateRequest,
)


logger = logging.getLogger(__name__)


def _not_found(entity: str) -> ServiceError:
    return ServiceError(code=ServiceErrorCode.NOT_FOUND, message=f"{entity} no encontrado")


def _backend_error(action: str, exc: Exception) -> ServiceError:
    logger.exception("dashboard_mutation_failed action=%s", action)
    return ServiceError(code=ServiceErrorCode.BACKEND_ERROR, message=str(exc))


def _changes(request: Any) -> dict[str, Any]:
    return request.model_dump(mode="json", exclude_unset=True)


def _no_changes() -> ServiceError:
    return ServiceError(code=ServiceErrorCode.VALIDATION_ERROR, message="No hay cambios para guardar")


@dataclass(slots=True)
class DashboardService:
    projects_repository: ProjectsRepository
    expenses_repository: ExpensesRepository
    payments_repository: PaymentsRepository
    workers_repository: WorkersRepository
    evidence_repository: EvidenceRepository
    event_bus: EventBus

    def _owned_project(self, supervisor_id: UUID, project_id: UUID | None) -> Project | None:
        if project_id is None:
            return None
        project = self.projects_repository.get_project(project_id)
        if project is None or project.supervisor_id != supervisor_id:
            return None
        return project

    # Projects

    def create_project(self, *, supervisor_id: UUID, request: ProjectCreateRequest) -> Project | ServiceError:
        if request.fecha_fin is not None and request.fecha_fin < request.fecha_inicio:
            return ServiceError(
                code=ServiceErrorCode.VALIDATION_ERROR,
                message="La fecha de fin no puede ser anterior a la fecha de inicio",
            )
        try:
            project = self.projects_repository.create_project(supervisor_id=supervisor_id, request=request)
        except Exception as exc:
            return _backend_error("create_project", exc)
        self.event_bus.publish(UpdateTopic.PROJECTS, entity_id=project.id, project_id=project.id)
        return project

    def update_project(
        self, *, supervisor_id: UUID, project_id: UUID, request: ProjectUpdateRequest
    ) -> Project | ServiceError:
        changes = _changes(request)
        if not changes:
            return _no_changes()
        try:
            if self._owned_project(supervisor_id, project_id) is None:
                return _not_found("Proyecto")
            project = self.projects_repository.update_project(project_id, changes)
        except Exception as exc:
            return _backend_error("update_project", exc)
        if project is None:
            return _not_found("Proyecto")
        self.event_bus.publish(UpdateTopic.PROJECTS, entity_id=project_id, project_id=project_id)
        return project

    def delete_project(self, *, supervisor_id: UUID, project_id: UUID) -> UUID | ServiceError:
        try:
            if self._owned_project(supervisor_id, project_id) is None:
                return _not_found("Proyecto")
            deleted = self.projects_repository.delete_project(project_id)
        except Exception as exc:
            return _backend_error("delete_project", exc)
        if not deleted:
            return _not_found("Proyecto")
        self.event_bus.publish(UpdateTopic.PROJECTS, entity_id=project_id, project_id=project_id)
        return project_id

    def recompute_executed_budget(self, project_id: UUID) -> Decimal:
        """Persist the sum of the project's expense amounts as its executed budget."""

        expenses = self.expenses_repository.list_expenses(project_ids=[project_id])
        total = sum((expense.monto for expense in expenses), Decimal("0"))
        self.projects_repository.set_executed_budget(project_id, total)
        logger.info("executed_budget_recomputed project_id=%s total=%s", project_id, total)
        return total

    # Expenses

    def _owned_expense(self, supervisor_id: UUID, expense_id: UUID) -> Expense | None:
        expense = self.expenses_repository.get_expense(expense_id)
        if expense is None or self._owned_project(supervisor_id, expense.proyecto_id) is None:
            return None
        return expense

    def _after_expense_change(self, expense_id: UUID, *project_ids: UUID | None) -> None:
        """Publish the change once the write is stored; a failed recompute is logged, not raised."""

        for project_id in dict.fromkeys(project_ids):
            if project_id is None:
                continue
            try:
                self.recompute_executed_budget(project_id)
            except Exception:
                logger.exception(
                    "executed_budget_recompute_failed project_id=%s expense_id=%s", project_id, expense_id
                )
        for project_id in dict.fromkeys(project_ids):
            self.event_bus.publish(UpdateTopic.EXPENSES, entity_id=expense_id, project_id=project_id)

    def create_expense(self, *, supervisor_id: UUID, request: ExpenseCreateRequest) -> Expense | ServiceError:
        try:
            if self._owned_project(supervisor_id, request.proyecto_id) is None:
                return _not_found("Proyecto")
            expense = self.expenses_repository.create_expense(request)
        except Exception as exc:
            return _backend_error("create_expense", exc)
        self._after_expense_change(expense.id, expense.proyecto_id)
        return expense

    def update_expense(
        self, *, supervisor_id: UUID, expense_id: UUID, request: ExpenseUpdateRequest
    ) -> Expense | ServiceError:
        changes = _changes(request)
        if not changes:
            return _no_changes()
        try:
            current = self._owned_expense(supervisor_id, expense_id)
            if current is None:
                return _not_found("Gasto")
            if request.proyecto_id is not None and self._owned_project(supervisor_id, request.proyecto_id) is None:
                return _not_found("Proyecto")
            expense = self.expenses_repository.update_expense(expense_id, changes)
        except Exception as exc:
            return _backend_error("update_expense", exc)
        if expense is None:
            return _not_found("Gasto")
        self._after_expense_change(expense_id, current.proyecto_id, expense.proyecto_id)
        return expense

    def set_expense_approval(
        self, *, supervisor_id: UUID, expense_id: UUID, aprobado: bool
    ) -> Expense | ServiceError:
        return self.update_expense(
            supervisor_id=supervisor_id,
            expense_id=expense_id,
            request=ExpenseUpdateRequest(aprobado=aprobado),
        )

    def delete_expense(self, *, supervisor_id: UUID, expense_id: UUID) -> Expense | ServiceError:
        try:
            if self._owned_expense(supervisor_id, expense_id) is None:
                return _not_found("Gasto")
            deleted = self.expenses_repository.delete_expense(expense_id)
        except Exception as exc:
            return _backend_error("delete_expense", exc)
        if deleted is None:
            return _not_found("Gasto")
        self._after_expense_change(expense_id, deleted.proyecto_id)
        return deleted

    # Payments

    def _owned_payment(self, supervisor_id: UUID, payment_id: UUID) -> Payment | None:
        payment = self.payments_repository.get_payment(payment_id)
        if payment is None or self._owned_project(supervisor_id, payment.proyecto_id) is None:
            return None
        return payment

    def _payable_worker_error(self, worker_id: UUID) -> ServiceError | None:
        worker = self.workers_repository.get_worker(worker_id)
        if worker is None:
            return _not_found("Trabajador")
        if worker.activo is False:
            return ServiceError(
                code=ServiceErrorCode.VALIDATION_ERROR,
                message="El trabajador está inactivo",
                details={"trabajador_id": str(worker_id)},
            )
        return None

    def create_payment(self, *, supervisor_id: UUID, request: PaymentCreateRequest) -> Payment | ServiceError:
        try:
            if self._owned_project(supervisor_id, request.proyecto_id) is None:
                return _not_found("Proyecto")
            worker_error = self._payable_worker_error(request.trabajador_id)
            if worker_error is not None:
                return worker_error
            payment = self.payments_repository.create_payment(request)
        except Exception as exc:
            return _backend_error("create_payment", exc)
        self.event_bus.publish(UpdateTopic.PAYMENTS, entity_id=payment.id, project_id=payment.proyecto_id)
        return payment

    def update_payment(
        self, *, supervisor_id: UUID, payment_id: UUID, request: PaymentUpdateRequest
    ) -> Payment | ServiceError:
        changes = _changes(request)
        if not changes:
            return _no_changes()
        try:
            if self._owned_payment(supervisor_id, payment_id) is None:
                return _not_found("Pago")
            if request.proyecto_id is not None and self._owned_project(supervisor_id, request.proyecto_id) is None:
                return _not_found("Proyecto")
            if request.trabajador_id is not None:
                worker_error = self._payable_worker_error(request.trabajador_id)
                if worker_error is not None:
                    return worker_error
            payment = self.payments_repository.update_payment(payment_id, changes)
        except Exception as exc:
            return _backend_error("update_payment", exc)
        if payment is None:
            return _not_found("Pago")
        self.event_bus.publish(UpdateTopic.PAYMENTS, entity_id=payment_id, project_id=payment.proyecto_id)
        return payment

    def set_payment_status(
        self,
        *,
        supervisor_id: UUID,
        payment_id: UUID,
        status: PaymentStatus,
        fecha_pago: date | None = None,
    ) -> Payment | ServiceError:
        """Change the status; a payment marked paid without a date is dated today."""

        if status == PaymentStatus.PAGADO and fecha_pago is None:
            fecha_pago = date.today()
        request = PaymentUpdateRequest(estado_pago=status, fecha_pago=fecha_pago)
        return self.update_payment(supervisor_id=supervisor_id, payment_id=payment_id, request=request)

    def delete_payment(self, *, supervisor_id: UUID, payment_id: UUID) -> Payment | ServiceError:
        try:
            if self._owned_payment(supervisor_id, payment_id) is None:
                return _not_found("Pago")
            deleted = self.payments_repository.delete_payment(payment_id)
        except Exception as exc:
            return _backend_error("delete_payment", exc)
        if deleted is None:
            return _not_found("Pago")
        self.event_bus.publish(UpdateTopic.PAYMENTS, entity_id=payment_id, project_id=deleted.proyecto_id)
        return deleted

    # Workers

    def _cedula_conflict(self, cedula: str, *, exclude_id: UUID | None = None) -> ServiceError | None:
        holders = [worker for worker in self.workers_repository.find_active_by_cedula(cedula) if worker.id != exclude_id]
        if not holders:
            return None
        return ServiceError(
            code=ServiceErrorCode.CONFLICT,
            message=f"Ya existe un trabajador activo con la cédula {cedula}",
            details={"trabajador_id": str(holders[0].id), "nombre": holders[0].nombre},
        )

    def list_workers(self, *, active_only: bool = False) -> list[Worker] | ServiceError:
        try:
            return self.workers_repository.list_workers(active_only=active_only)
        except Exception as exc:
            return _backend_error("list_workers", exc)

    def create_worker(self, request: WorkerCreateRequest) -> Worker | ServiceError:
        try:
            conflict = self._cedula_conflict(request.cedula)
            if conflict is not None:
                return conflict
            worker = self.workers_repository.create_worker(request)
        except Exception as exc:
            return _backend_error("create_worker", exc)
        self.event_bus.publish(UpdateTopic.WORKERS, entity_id=worker.id)
        return worker

    def update_worker(self, worker_id: UUID, request: WorkerUpdateRequest) -> Worker | ServiceError:
        changes = _changes(request)
        if not changes:
            return _no_changes()
        try:
            current = self.workers_repository.get_worker(worker_id)
            if current is None:
                return _not_found("Trabajador")
            if request.cedula is not None and current.activo is not False:
                conflict = self._cedula_conflict(request.cedula, exclude_id=worker_id)
                if conflict is not None:
                    return conflict
            worker = self.workers_repository.update_worker(worker_id, changes)
        except Exception as exc:
            return _backend_error("update_worker", exc)
        if worker is None:
            return _not_found("Trabajador")
        self.event_bus.publish(UpdateTopic.WORKERS, entity_id=worker_id)
        return worker

    def set_worker_active(self, worker_id: UUID, activo: bool) -> Worker | ServiceError:
        try:
            current = self.workers_repository.get_worker(worker_id)
            if current is None:
                return _not_found("Trabajador")
            if activo:
                conflict = self._cedula_conflict(current.cedula, exclude_id=worker_id)
                if conflict is not None:
                    return conflict
            worker = self.workers_repository.update_worker(worker_id, {"activo": activo})
        except Exception as exc:
            return _backend_error("set_worker_active", exc)
        if worker is None:
            return _not_found("Trabajador")
        self.event_bus.publish(UpdateTopic.WORKERS, entity_id=worker_id)
        return worker

    def delete_worker(self, worker_id: UUID) -> UUID | ServiceError:
        """Hard-delete a worker that has no payments; otherwise ask for deactivation."""

        try:
            if self.workers_repository.get_worker(worker_id) is None:
                return _not_found("Trabajador")
            payments = self.payments_repository.count_for_worker(worker_id)
            if payments:
                return ServiceError(
                    code=ServiceErrorCode.CONFLICT,
                    message=(
                        "El trabajador tiene pagos asociados y no puede eliminarse; "
                        "desactívelo en su lugar"
                    ),
                    details={"payments": payments},
                )
            deleted = self.workers_repository.delete_worker(worker_id)
        except Exception as exc:
            return _backend_error("delete_worker", exc)
        if not deleted:
            return _not_found("Trabajador")
        self.event_bus.publish(UpdateTopic.WORKERS, entity_id=worker_id)
        return worker_id

    # Evidence

    def create_evidence(self, *, supervisor_id: UUID, request: EvidenceCreateRequest) -> Evidence | ServiceError:
        try:
            if self._owned_project(supervisor_id, request.proyecto_id) is None:
                return _not_found("Proyecto")
            evidence = self.evidence_repository.create_evidence(request)
        except Exception as exc:
            return _backend_error("create_evidence", exc)
        self.event_bus.publish(UpdateTopic.EVIDENCE, entity_id=evidence.id, project_id=evidence.proyecto_id)
        return evidence

    def delete_evidence(self, *, supervisor_id: UUID, evidence_id: UUID) -> Evidence | ServiceError:
        try:
            owned_ids = [project.id for project in self.projects_repository.list_projects(supervisor_id=supervisor_id)]
            owned = {item.id for item in self.evidence_repository.list_evidence(project_ids=owned_ids)}
            if evidence_id not in owned:
                return _not_found("Evidencia")
            deleted = self.evidence_repository.delete_evidence(evidence_id)
        except Exception as exc:
            return _backend_error("delete_evidence", exc)
        if deleted is None:
            return _not_found("Evidencia")
        self.event_bus.publish(UpdateTopic.EVIDENCE, entity_id=evidence_id, project_id=deleted.proyecto_id)
        return deleted
