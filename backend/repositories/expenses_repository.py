"""Repository interfaces and adapters for gastos_proyecto."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol
from uuid import UUID, uuid4

from backend.db.supabase_client import SupabaseClient
from backend.repositories.projects_repository import ids_filter
from shared.models import Expense, ExpenseCreateRequest


class ExpensesRepository(Protocol):
    def list_expenses(self, *, project_ids: list[UUID]) -> list[Expense]:
        """Return expenses of the given projects ordered by expense date, newest first."""

    def get_expense(self, expense_id: UUID) -> Expense | None:
        """Return one expense by id."""

    def create_expense(self, request: ExpenseCreateRequest) -> Expense:
        """Insert an expense."""

    def update_expense(self, expense_id: UUID, changes: dict[str, Any]) -> Expense | None:
        """Apply a partial update and return the stored row."""

    def delete_expense(self, expense_id: UUID) -> Expense | None:
        """Delete an expense and return the removed row."""


class InMemoryExpensesRepository:
    """In-memory repository used for local dev/tests when Supabase is not configured."""

    def __init__(self, seed: list[Expense] | None = None) -> None:
        self._rows: dict[UUID, Expense] = {expense.id: expense for expense in seed or []}

    def list_expenses(self, *, project_ids: list[UUID]) -> list[Expense]:
        wanted = set(project_ids)
        rows = [row for row in self._rows.values() if row.proyecto_id in wanted]
        return sorted(rows, key=lambda row: row.fecha_gasto, reverse=True)

    def get_expense(self, expense_id: UUID) -> Expense | None:
        return self._rows.get(expense_id)

    def create_expense(self, request: ExpenseCreateRequest) -> Expense:
        expense = Expense(
            id=uuid4(),
            created_at=datetime.now(timezone.utc),
            **request.model_dump(mode="json"),
        )
        self._rows[expense.id] = expense
        return expense

    def update_expense(self, expense_id: UUID, changes: dict[str, Any]) -> Expense | None:
        current = self._rows.get(expense_id)
        if current is None:
            return None
        updated = Expense.model_validate({**current.model_dump(), **changes})
        self._rows[expense_id] = updated
        return updated

    def delete_expense(self, expense_id: UUID) -> Expense | None:
        return self._rows.pop(expense_id, None)


class SupabaseExpensesRepository:
    """Supabase repository for gastos_proyecto."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    def list_expenses(self, *, project_ids: list[UUID]) -> list[Expense]:
        if not project_ids:
            return []
        rows, _ = self._client.get_rows(
            table="gastos_proyecto",
            query=[
                ("select", "*"),
                ("proyecto_id", ids_filter(project_ids)),
                ("order", "fecha_gasto.desc"),
            ],
            with_count=False,
            use_anon_key=False,
        )
        return [Expense.model_validate(row) for row in rows]

    def get_expense(self, expense_id: UUID) -> Expense | None:
        rows, _ = self._client.get_rows(
            table="gastos_proyecto",
            query={"select": "*", "id": f"eq.{expense_id}", "limit": 1},
            with_count=False,
            use_anon_key=False,
        )
        return Expense.model_validate(rows[0]) if rows else None

    def create_expense(self, request: ExpenseCreateRequest) -> Expense:
        rows = self._client.post_rows(
            table="gastos_proyecto",
            payload=request.model_dump(mode="json"),
            use_anon_key=False,
        )
        return Expense.model_validate(rows[0])

    def update_expense(self, expense_id: UUID, changes: dict[str, Any]) -> Expense | None:
        rows = self._client.patch_rows(
            table="gastos_proyecto",
            query={"id": f"eq.{expense_id}"},
            payload=changes,
            use_anon_key=False,
        )
        return Expense.model_validate(rows[0]) if rows else None

    def delete_expense(self, expense_id: UUID) -> Expense | None:
        rows = self._client.delete_rows(
            table="gastos_proyecto",
            query={"id": f"eq.{expense_id}"},
            use_anon_key=False,
        )
        return Expense.model_validate(rows[0]) if rows else None
