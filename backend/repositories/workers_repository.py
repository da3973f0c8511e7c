"""Repository interfaces and adapters for trabajadores."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol
from uuid import UUID, uuid4

from backend.db.supabase_client import SupabaseClient
from backend.repositories.projects_repository import ids_filter
from shared.models import Worker, WorkerCreateRequest


class WorkersRepository(Protocol):
    def get_workers(self, worker_ids: list[UUID]) -> list[Worker]:
        """Return the workers with the given ids, in any order."""

    def list_workers(self, *, active_only: bool = False) -> list[Worker]:
        """Return workers sorted by name."""

    def get_worker(self, worker_id: UUID) -> Worker | None:
        """Return one worker by id."""

    def find_active_by_cedula(self, cedula: str) -> list[Worker]:
        """Return active workers registered with the national ID."""

    def create_worker(self, request: WorkerCreateRequest) -> Worker:
        """Insert an active worker."""

    def update_worker(self, worker_id: UUID, changes: dict[str, Any]) -> Worker | None:
        """Apply a partial update and return the stored row."""

    def delete_worker(self, worker_id: UUID) -> bool:
        """Delete a worker and report whether a row was removed."""


class InMemoryWorkersRepository:
    """In-memory repository used for local dev/tests when Supabase is not configured."""

    def __init__(self, seed: list[Worker] | None = None) -> None:
        self._rows: dict[UUID, Worker] = {worker.id: worker for worker in seed or []}

    def get_workers(self, worker_ids: list[UUID]) -> list[Worker]:
        return [self._rows[worker_id] for worker_id in dict.fromkeys(worker_ids) if worker_id in self._rows]

    def list_workers(self, *, active_only: bool = False) -> list[Worker]:
        rows = [row for row in self._rows.values() if row.activo or not active_only]
        return sorted(rows, key=lambda row: row.nombre.lower())

    def get_worker(self, worker_id: UUID) -> Worker | None:
        return self._rows.get(worker_id)

    def find_active_by_cedula(self, cedula: str) -> list[Worker]:
        return [row for row in self._rows.values() if row.cedula == cedula and row.activo]

    def create_worker(self, request: WorkerCreateRequest) -> Worker:
        worker = Worker(
            id=uuid4(),
            activo=True,
            created_at=datetime.now(timezone.utc),
            **request.model_dump(mode="json"),
        )
        self._rows[worker.id] = worker
        return worker

    def update_worker(self, worker_id: UUID, changes: dict[str, Any]) -> Worker | None:
        current = self._rows.get(worker_id)
        if current is None:
            return None
        updated = Worker.model_validate({**current.model_dump(), **changes})
        self._rows[worker_id] = updated
        return updated

    def delete_worker(self, worker_id: UUID) -> bool:
        return self._rows.pop(worker_id, None) is not None


class SupabaseWorkersRepository:
    """Supabase repository for trabajadores."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    def get_workers(self, worker_ids: list[UUID]) -> list[Worker]:
        unique_ids = list(dict.fromkeys(worker_ids))
        if not unique_ids:
            return []
        rows, _ = self._client.get_rows(
            table="trabajadores",
            query={"select": "*", "id": ids_filter(unique_ids)},
            with_count=False,
            use_anon_key=False,
        )
        return [Worker.model_validate(row) for row in rows]

    def list_workers(self, *, active_only: bool = False) -> list[Worker]:
        query: list[tuple[str, str | int]] = [("select", "*"), ("order", "nombre.asc")]
        if active_only:
            query.append(("activo", "eq.true"))
        rows, _ = self._client.get_rows(
            table="trabajadores", query=query, with_count=False, use_anon_key=False
        )
        return [Worker.model_validate(row) for row in rows]

    def get_worker(self, worker_id: UUID) -> Worker | None:
        rows, _ = self._client.get_rows(
            table="trabajadores",
            query={"select": "*", "id": f"eq.{worker_id}", "limit": 1},
            with_count=False,
            use_anon_key=False,
        )
        return Worker.model_validate(rows[0]) if rows else None

    def find_active_by_cedula(self, cedula: str) -> list[Worker]:
        rows, _ = self._client.get_rows(
            table="trabajadores",
            query={"select": "*", "cedula": f"eq.{cedula}", "activo": "eq.true"},
            with_count=False,
            use_anon_key=False,
        )
        return [Worker.model_validate(row) for row in rows]

    def create_worker(self, request: WorkerCreateRequest) -> Worker:
        payload = {**request.model_dump(mode="json"), "activo": True}
        rows = self._client.post_rows(table="trabajadores", payload=payload, use_anon_key=False)
        return Worker.model_validate(rows[0])

    def update_worker(self, worker_id: UUID, changes: dict[str, Any]) -> Worker | None:
        rows = self._client.patch_rows(
            table="trabajadores",
            query={"id": f"eq.{worker_id}"},
            payload=changes,
            use_anon_key=False,
        )
        return Worker.model_validate(rows[0]) if rows else None

    def delete_worker(self, worker_id: UUID) -> bool:
        rows = self._client.delete_rows(
            table="trabajadores",
            query={"id": f"eq.{worker_id}", "select": "id"},
            use_anon_key=False,
        )
        return bool(rows)
