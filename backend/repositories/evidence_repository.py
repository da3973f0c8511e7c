"""Repository interfaces and adapters for evidencias_proyecto."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol
from uuid import UUID, uuid4

from backend.db.supabase_client import SupabaseClient
from backend.repositories.projects_repository import ids_filter
from shared.models import Evidence, EvidenceCreateRequest


class EvidenceRepository(Protocol):
    def list_evidence(self, *, project_ids: list[UUID]) -> list[Evidence]:
        """Return evidence of the given projects ordered by activity date, newest first."""

    def create_evidence(self, request: EvidenceCreateRequest) -> Evidence:
        """Insert the metadata row of an already uploaded file."""

    def delete_evidence(self, evidence_id: UUID) -> Evidence | None:
        """Delete an evidence row and return it."""


class InMemoryEvidenceRepository:
    """In-memory repository used for local dev/tests when Supabase is not configured."""

    def __init__(self, seed: list[Evidence] | None = None) -> None:
        self._rows: dict[UUID, Evidence] = {item.id: item for item in seed or []}

    def list_evidence(self, *, project_ids: list[UUID]) -> list[Evidence]:
        wanted = set(project_ids)
        rows = [row for row in self._rows.values() if row.proyecto_id in wanted]
        return sorted(rows, key=lambda row: row.fecha_actividad, reverse=True)

    def create_evidence(self, request: EvidenceCreateRequest) -> Evidence:
        evidence = Evidence(
            id=uuid4(),
            created_at=datetime.now(timezone.utc),
            **request.model_dump(mode="json"),
        )
        self._rows[evidence.id] = evidence
        return evidence

    def delete_evidence(self, evidence_id: UUID) -> Evidence | None:
        return self._rows.pop(evidence_id, None)


class SupabaseEvidenceRepository:
    """Supabase repository for evidencias_proyecto."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    def list_evidence(self, *, project_ids: list[UUID]) -> list[Evidence]:
        if not project_ids:
            return []
        rows, _ = self._client.get_rows(
            table="evidencias_proyecto",
            query=[
                ("select", "*"),
                ("proyecto_id", ids_filter(project_ids)),
                ("order", "fecha_actividad.desc"),
            ],
            with_count=False,
            use_anon_key=False,
        )
        return [Evidence.model_validate(row) for row in rows]

    def create_evidence(self, request: EvidenceCreateRequest) -> Evidence:
        payload = request.model_dump(mode="json", exclude={"tamano_archivo"})
        payload["tamaño_archivo"] = request.tamano_archivo
        rows = self._client.post_rows(table="evidencias_proyecto", payload=payload, use_anon_key=False)
        return Evidence.model_validate(rows[0])

    def delete_evidence(self, evidence_id: UUID) -> Evidence | None:
        rows = self._client.delete_rows(
            table="evidencias_proyecto",
            query={"id": f"eq.{evidence_id}"},
            use_anon_key=False,
        )
        return Evidence.model_validate(rows[0]) if rows else None
