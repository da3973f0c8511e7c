"""Tests for mutations, executed budget recomputation and worker rules."""

from datetime import date
from decimal import Decimal

import pytest

from backend.events import UpdateEvent, UpdateTopic
from shared.models import (
    ExpenseCreateRequest,
    ExpenseUpdateRequest,
    PaymentCreateRequest,
    PaymentStatus,
    ProjectCreateRequest,
    ProjectUpdateRequest,
    ServiceError,
    ServiceErrorCode,
    WorkerCreateRequest,
    WorkerUpdateRequest,
)
from tests.fakes import (
    EXPENSE_MATERIALS_ID,
    EXPENSE_TRANSPORT_PENDING_ID,
    EVIDENCE_PHOTO_ID,
    FOREIGN_PROJECT_ID,
    INACTIVE_WORKER_ID,
    PAYMENT_PENDING_ID,
    PROJECT_A_ID,
    PROJECT_B_ID,
    SUPERVISOR_ID,
    WORKER_ID,
    build_seeded_services,
)


@pytest.fixture
def services():
    return build_seeded_services()


def _executed(services, project_id) -> Decimal | None:
    return services.dashboard.projects_repository.get_project(project_id).presupuesto_ejecutado


def test_create_expense_recomputes_executed_budget_and_publishes(services) -> None:
    events: list[UpdateEvent] = []
    services.event_bus.subscribe(UpdateTopic.EXPENSES, events.append)

    result = services.dashboard.create_expense(
        supervisor_id=SUPERVISOR_ID,
        request=ExpenseCreateRequest(
            proyecto_id=PROJECT_A_ID,
            tipo_gasto="refrigerios",
            descripcion="Refrigerios del ensayo",
            monto=Decimal("20000"),
            fecha_gasto=date(2026, 2, 15),
        ),
    )

    assert not isinstance(result, ServiceError)
    assert _executed(services, PROJECT_A_ID) == Decimal("100000")
    assert [event.entity_id for event in events] == [result.id]


def test_moving_an_expense_recomputes_both_projects(services) -> None:
    result = services.dashboard.update_expense(
        supervisor_id=SUPERVISOR_ID,
        expense_id=EXPENSE_MATERIALS_ID,
        request=ExpenseUpdateRequest(proyecto_id=PROJECT_A_ID),
    )

    assert not isinstance(result, ServiceError)
    assert _executed(services, PROJECT_A_ID) == Decimal("200000")
    assert _executed(services, PROJECT_B_ID) == Decimal("0")


def test_delete_expense_recomputes_executed_budget(services) -> None:
    result = services.dashboard.delete_expense(supervisor_id=SUPERVISOR_ID, expense_id=EXPENSE_TRANSPORT_PENDING_ID)

    assert not isinstance(result, ServiceError)
    assert _executed(services, PROJECT_A_ID) == Decimal("30000")


def test_expense_on_foreign_project_is_not_found(services) -> None:
    result = services.dashboard.create_expense(
        supervisor_id=SUPERVISOR_ID,
        request=ExpenseCreateRequest(
            proyecto_id=FOREIGN_PROJECT_ID,
            tipo_gasto="otros",
            descripcion="Intento",
            monto=Decimal("1"),
            fecha_gasto=date(2026, 2, 15),
        ),
    )

    assert isinstance(result, ServiceError)
    assert result.code == ServiceErrorCode.NOT_FOUND


def test_update_without_changes_is_a_validation_error(services) -> None:
    result = services.dashboard.update_project(
        supervisor_id=SUPERVISOR_ID,
        project_id=PROJECT_A_ID,
        request=ProjectUpdateRequest(),
    )

    assert isinstance(result, ServiceError)
    assert result.code == ServiceErrorCode.VALIDATION_ERROR


def test_project_end_before_start_is_rejected(services) -> None:
    result = services.dashboard.create_project(
        supervisor_id=SUPERVISOR_ID,
        request=ProjectCreateRequest(
            nombre="Muestra",
            presupuesto_total=Decimal("10"),
            fecha_inicio=date(2026, 5, 1),
            fecha_fin=date(2026, 4, 1),
        ),
    )

    assert isinstance(result, ServiceError)
    assert result.code == ServiceErrorCode.VALIDATION_ERROR


def test_payment_requires_active_worker(services) -> None:
    result = services.dashboard.create_payment(
        supervisor_id=SUPERVISOR_ID,
        request=PaymentCreateRequest(
            proyecto_id=PROJECT_A_ID,
            trabajador_id=INACTIVE_WORKER_ID,
            fecha_actividad=date(2026, 2, 20),
            tipo_labor="logistica",
            valor_pactado=Decimal("60000"),
        ),
    )

    assert isinstance(result, ServiceError)
    assert result.code == ServiceErrorCode.VALIDATION_ERROR


def test_marking_payment_paid_defaults_payment_date_to_today(services) -> None:
    result = services.dashboard.set_payment_status(
        supervisor_id=SUPERVISOR_ID,
        payment_id=PAYMENT_PENDING_ID,
        status=PaymentStatus.PAGADO,
    )

    assert not isinstance(result, ServiceError)
    assert result.estado_pago == "pagado"
    assert result.fecha_pago == date.today()


def test_worker_with_duplicate_active_cedula_is_a_conflict(services) -> None:
    result = services.dashboard.create_worker(WorkerCreateRequest(nombre="Otra Ana", cedula="1090123456"))

    assert isinstance(result, ServiceError)
    assert result.code == ServiceErrorCode.CONFLICT


def test_inactive_worker_cedula_can_be_reused_but_blocks_reactivation(services) -> None:
    created = services.dashboard.create_worker(WorkerCreateRequest(nombre="Nuevo", cedula="1090999999"))
    assert not isinstance(created, ServiceError)

    result = services.dashboard.set_worker_active(INACTIVE_WORKER_ID, True)

    assert isinstance(result, ServiceError)
    assert result.code == ServiceErrorCode.CONFLICT


def test_update_worker_rejects_cedula_of_another_active_worker(services) -> None:
    created = services.dashboard.create_worker(WorkerCreateRequest(nombre="Nuevo", cedula="123"))
    assert not isinstance(created, ServiceError)

    result = services.dashboard.update_worker(created.id, WorkerUpdateRequest(cedula="1090123456"))

    assert isinstance(result, ServiceError)
    assert result.code == ServiceErrorCode.CONFLICT


def test_worker_with_payments_cannot_be_deleted(services) -> None:
    result = services.dashboard.delete_worker(WORKER_ID)

    assert isinstance(result, ServiceError)
    assert result.code == ServiceErrorCode.CONFLICT
    assert "desactívelo" in result.message


def test_deactivate_worker_publishes_worker_event(services) -> None:
    events: list[UpdateEvent] = []
    services.event_bus.subscribe(UpdateTopic.WORKERS, events.append)

    result = services.dashboard.set_worker_active(WORKER_ID, False)

    assert not isinstance(result, ServiceError)
    assert result.activo is False
    assert [event.entity_id for event in events] == [WORKER_ID]


def test_delete_evidence_of_own_project(services) -> None:
    result = services.dashboard.delete_evidence(supervisor_id=SUPERVISOR_ID, evidence_id=EVIDENCE_PHOTO_ID)
    missing = services.dashboard.delete_evidence(supervisor_id=SUPERVISOR_ID, evidence_id=EVIDENCE_PHOTO_ID)

    assert not isinstance(result, ServiceError)
    assert isinstance(missing, ServiceError)
    assert missing.code == ServiceErrorCode.NOT_FOUND


def test_backend_failure_becomes_backend_error(services, monkeypatch) -> None:
    def _boom(*_args, **_kwargs):
        raise RuntimeError("Supabase request failed with status 500: oops")

    monkeypatch.setattr(services.dashboard.workers_repository, "list_workers", _boom)

    result = services.dashboard.list_workers()

    assert isinstance(result, ServiceError)
    assert result.code == ServiceErrorCode.BACKEND_ERROR
    assert "status 500" in result.message


def test_stored_expense_is_published_even_when_budget_recompute_fails(services, monkeypatch, caplog) -> None:
    def _boom(*_args, **_kwargs):
        raise RuntimeError("Supabase request failed with status 503: unavailable")

    events: list[UpdateEvent] = []
    services.event_bus.subscribe(UpdateTopic.EXPENSES, events.append)
    assert len(services.records.expense_records(SUPERVISOR_ID)) == 3
    monkeypatch.setattr(services.dashboard.projects_repository, "set_executed_budget", _boom)
    caplog.set_level("INFO")

    result = services.dashboard.create_expense(
        supervisor_id=SUPERVISOR_ID,
        request=ExpenseCreateRequest(
            proyecto_id=PROJECT_A_ID,
            tipo_gasto="refrigerios",
            descripcion="Refrigerios del ensayo",
            monto=Decimal("20000"),
            fecha_gasto=date(2026, 2, 15),
        ),
    )

    assert not isinstance(result, ServiceError)
    assert [event.entity_id for event in events] == [result.id]
    assert len(services.records.expense_records(SUPERVISOR_ID)) == 4
    assert f"executed_budget_recompute_failed project_id={PROJECT_A_ID}" in caplog.text


def test_deleted_expense_is_published_even_when_budget_recompute_fails(services, monkeypatch) -> None:
    def _boom(*_args, **_kwargs):
        raise RuntimeError("Supabase request failed with status 503: unavailable")

    events: list[UpdateEvent] = []
    services.event_bus.subscribe(UpdateTopic.EXPENSES, events.append)
    monkeypatch.setattr(services.dashboard.projects_repository, "set_executed_budget", _boom)

    result = services.dashboard.delete_expense(supervisor_id=SUPERVISOR_ID, expense_id=EXPENSE_TRANSPORT_PENDING_ID)

    assert not isinstance(result, ServiceError)
    assert [event.entity_id for event in events] == [EXPENSE_TRANSPORT_PENDING_ID]
