"""Repository interfaces and adapters for historial_reportes."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Protocol
from uuid import UUID, uuid4

from backend.db.supabase_client import SupabaseClient
from shared.models import ReportHistoryCreateRequest, ReportHistoryEntry, ReportState


TABLE = "historial_reportes"


class ReportHistoryRepository(Protocol):
    def list_reports(self, *, created_by: str) -> list[ReportHistoryEntry]:
        """Return the reports generated by `created_by`, newest first."""

    def get_report(self, report_id: UUID) -> ReportHistoryEntry | None:
        """Return one history row."""

    def create_report(self, request: ReportHistoryCreateRequest) -> ReportHistoryEntry:
        """Insert a row in `procesando` state with no downloads and no size."""

    def update_report(self, report_id: UUID, changes: dict[str, object]) -> ReportHistoryEntry | None:
        """Patch a history row and return it, or None when it does not exist."""

    def delete_report(self, report_id: UUID) -> bool:
        """Delete a history row; False when nothing was deleted."""


def _new_row_payload(request: ReportHistoryCreateRequest) -> dict[str, object]:
    payload = request.model_dump(mode="json")
    payload.update({"estado": ReportState.PROCESANDO.value, "descargas": 0, "tamaño_mb": 0})
    return payload


class InMemoryReportHistoryRepository:
    """In-memory repository used for local dev/tests when Supabase is not configured."""

    def __init__(self, seed: list[ReportHistoryEntry] | None = None) -> None:
        self._rows: dict[UUID, ReportHistoryEntry] = {row.id: row for row in seed or []}

    def list_reports(self, *, created_by: str) -> list[ReportHistoryEntry]:
        rows = [row for row in self._rows.values() if row.creado_por == created_by]
        return sorted(rows, key=lambda row: row.fecha_creacion, reverse=True)

    def get_report(self, report_id: UUID) -> ReportHistoryEntry | None:
        return self._rows.get(report_id)

    def create_report(self, request: ReportHistoryCreateRequest) -> ReportHistoryEntry:
        entry = ReportHistoryEntry.model_validate(
            {**_new_row_payload(request), "id": uuid4(), "fecha_creacion": datetime.now(timezone.utc)}
        )
        self._rows[entry.id] = entry
        return entry

    def update_report(self, report_id: UUID, changes: dict[str, object]) -> ReportHistoryEntry | None:
        current = self._rows.get(report_id)
        if current is None:
            return None
        updated = ReportHistoryEntry.model_validate({**current.model_dump(by_alias=True), **changes})
        self._rows[report_id] = updated
        return updated

    def delete_report(self, report_id: UUID) -> bool:
        return self._rows.pop(report_id, None) is not None


class SupabaseReportHistoryRepository:
    """Supabase repository for historial_reportes."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    def list_reports(self, *, created_by: str) -> list[ReportHistoryEntry]:
        rows, _ = self._client.get_rows(
            table=TABLE,
            query=[
                ("select", "*"),
                ("creado_por", f"eq.{created_by}"),
                ("order", "fecha_creacion.desc"),
            ],
            with_count=False,
            use_anon_key=False,
        )
        return [ReportHistoryEntry.model_validate(row) for row in rows]

    def get_report(self, report_id: UUID) -> ReportHistoryEntry | None:
        rows, _ = self._client.get_rows(
            table=TABLE,
            query={"select": "*", "id": f"eq.{report_id}", "limit": 1},
            with_count=False,
            use_anon_key=False,
        )
        return ReportHistoryEntry.model_validate(rows[0]) if rows else None

    def create_report(self, request: ReportHistoryCreateRequest) -> ReportHistoryEntry:
        rows = self._client.post_rows(table=TABLE, payload=_new_row_payload(request), use_anon_key=False)
        return ReportHistoryEntry.model_validate(rows[0])

    def update_report(self, report_id: UUID, changes: dict[str, object]) -> ReportHistoryEntry | None:
        payload = {key: str(value) if isinstance(value, Decimal) else value for key, value in changes.items()}
        rows = self._client.patch_rows(
            table=TABLE,
            query={"id": f"eq.{report_id}"},
            payload=payload,
            use_anon_key=False,
        )
        return ReportHistoryEntry.model_validate(rows[0]) if rows else None

    def delete_report(self, report_id: UUID) -> bool:
        rows = self._client.delete_rows(table=TABLE, query={"id": f"eq.{report_id}"}, use_anon_key=False)
        return bool(rows)
