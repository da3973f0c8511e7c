"""Repository interfaces and adapters for pagos_personal."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol
from uuid import UUID, uuid4

from backend.db.supabase_client import SupabaseClient
from backend.repositories.projects_repository import ids_filter
from shared.models import Payment, PaymentCreateRequest


class PaymentsRepository(Protocol):
    def list_payments(self, *, project_ids: list[UUID]) -> list[Payment]:
        """Return payments of the given projects ordered by activity date, newest first."""

    def get_payment(self, payment_id: UUID) -> Payment | None:
        """Return one payment by id."""

    def create_payment(self, request: PaymentCreateRequest) -> Payment:
        """Insert a payment."""

    def update_payment(self, payment_id: UUID, changes: dict[str, Any]) -> Payment | None:
        """Apply a partial update and return the stored row."""

    def delete_payment(self, payment_id: UUID) -> Payment | None:
        """Delete a payment and return the removed row."""

    def count_for_worker(self, worker_id: UUID) -> int:
        """Return how many payments reference the worker."""


class InMemoryPaymentsRepository:
    """In-memory repository used for local dev/tests when Supabase is not configured."""

    def __init__(self, seed: list[Payment] | None = None) -> None:
        self._rows: dict[UUID, Payment] = {payment.id: payment for payment in seed or []}

    def list_payments(self, *, project_ids: list[UUID]) -> list[Payment]:
        wanted = set(project_ids)
        rows = [row for row in self._rows.values() if row.proyecto_id in wanted]
        return sorted(rows, key=lambda row: row.fecha_actividad, reverse=True)

    def get_payment(self, payment_id: UUID) -> Payment | None:
        return self._rows.get(payment_id)

    def create_payment(self, request: PaymentCreateRequest) -> Payment:
        payment = Payment(
            id=uuid4(),
            created_at=datetime.now(timezone.utc),
            **request.model_dump(mode="json"),
        )
        self._rows[payment.id] = payment
        return payment

    def update_payment(self, payment_id: UUID, changes: dict[str, Any]) -> Payment | None:
        current = self._rows.get(payment_id)
        if current is None:
            return None
        updated = Payment.model_validate({**current.model_dump(), **changes})
        self._rows[payment_id] = updated
        return updated

    def delete_payment(self, payment_id: UUID) -> Payment | None:
        return self._rows.pop(payment_id, None)

    def count_for_worker(self, worker_id: UUID) -> int:
        return sum(1 for row in self._rows.values() if row.trabajador_id == worker_id)


class SupabasePaymentsRepository:
    """Supabase repository for pagos_personal."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    def list_payments(self, *, project_ids: list[UUID]) -> list[Payment]:
        if not project_ids:
            return []
        rows, _ = self._client.get_rows(
            table="pagos_personal",
            query=[
                ("select", "*"),
                ("proyecto_id", ids_filter(project_ids)),
                ("order", "fecha_actividad.desc"),
            ],
            with_count=False,
            use_anon_key=False,
        )
        return [Payment.model_validate(row) for row in rows]

    def get_payment(self, payment_id: UUID) -> Payment | None:
        rows, _ = self._client.get_rows(
            table="pagos_personal",
            query={"select": "*", "id": f"eq.{payment_id}", "limit": 1},
            with_count=False,
            use_anon_key=False,
        )
        return Payment.model_validate(rows[0]) if rows else None

    def create_payment(self, request: PaymentCreateRequest) -> Payment:
        rows = self._client.post_rows(
            table="pagos_personal",
            payload=request.model_dump(mode="json"),
            use_anon_key=False,
        )
        return Payment.model_validate(rows[0])

    def update_payment(self, payment_id: UUID, changes: dict[str, Any]) -> Payment | None:
        rows = self._client.patch_rows(
            table="pagos_personal",
            query={"id": f"eq.{payment_id}"},
            payload=changes,
            use_anon_key=False,
        )
        return Payment.model_validate(rows[0]) if rows else None

    def delete_payment(self, payment_id: UUID) -> Payment | None:
        rows = self._client.delete_rows(
            table="pagos_personal",
            query={"id": f"eq.{payment_id}"},
            use_anon_key=False,
        )
        return Payment.model_validate(rows[0]) if rows else None

    def count_for_worker(self, worker_id: UUID) -> int:
        rows, total = self._client.get_rows(
            table="pagos_personal",
            query={"select": "id", "trabajador_id": f"eq.{worker_id}", "limit": 1},
            with_count=True,
            use_anon_key=False,
        )
        return total if total is not None else len(rows)
