"""Repository interfaces and adapters for the proyectos table."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Protocol
from uuid import UUID, uuid4

from backend.db.supabase_client import SupabaseClient
from shared.models import Project, ProjectCreateRequest


def ids_filter(ids: list[UUID]) -> str:
    """Render a PostgREST `in.(...)` filter value."""

    return f"in.({','.join(str(item) for item in ids)})"


class ProjectsRepository(Protocol):
    def list_projects(self, *, supervisor_id: UUID) -> list[Project]:
        """Return the supervisor's projects, newest first."""

    def get_project(self, project_id: UUID) -> Project | None:
        """Return one project by id."""

    def create_project(self, *, supervisor_id: UUID, request: ProjectCreateRequest) -> Project:
        """Insert a project owned by the supervisor."""

    def update_project(self, project_id: UUID, changes: dict[str, Any]) -> Project | None:
        """Apply a partial update and return the stored row."""

    def delete_project(self, project_id: UUID) -> bool:
        """Delete a project and report whether a row was removed."""

    def set_executed_budget(self, project_id: UUID, amount: Decimal) -> None:
        """Persist the recomputed executed budget."""


class InMemoryProjectsRepository:
    """In-memory repository used for local dev/tests when Supabase is not configured."""

    def __init__(self, seed: list[Project] | None = None) -> None:
        self._rows: dict[UUID, Project] = {project.id: project for project in seed or []}

    def list_projects(self, *, supervisor_id: UUID) -> list[Project]:
        rows = [row for row in self._rows.values() if row.supervisor_id == supervisor_id]
        return sorted(rows, key=lambda row: row.fecha_inicio, reverse=True)

    def get_project(self, project_id: UUID) -> Project | None:
        return self._rows.get(project_id)

    def create_project(self, *, supervisor_id: UUID, request: ProjectCreateRequest) -> Project:
        project = Project(
            id=uuid4(),
            supervisor_id=supervisor_id,
            presupuesto_ejecutado=Decimal("0"),
            **request.model_dump(mode="json"),
        )
        self._rows[project.id] = project
        return project

    def update_project(self, project_id: UUID, changes: dict[str, Any]) -> Project | None:
        current = self._rows.get(project_id)
        if current is None:
            return None
        updated = Project.model_validate({**current.model_dump(), **changes})
        self._rows[project_id] = updated
        return updated

    def delete_project(self, project_id: UUID) -> bool:
        return self._rows.pop(project_id, None) is not None

    def set_executed_budget(self, project_id: UUID, amount: Decimal) -> None:
        self.update_project(project_id, {"presupuesto_ejecutado": amount})


class SupabaseProjectsRepository:
    """Supabase repository for proyectos."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    def list_projects(self, *, supervisor_id: UUID) -> list[Project]:
        rows, _ = self._client.get_rows(
            table="proyectos",
            query=[
                ("select", "*"),
                ("supervisor_id", f"eq.{supervisor_id}"),
                ("order", "fecha_inicio.desc"),
            ],
            with_count=False,
            use_anon_key=False,
        )
        return [Project.model_validate(row) for row in rows]

    def get_project(self, project_id: UUID) -> Project | None:
        rows, _ = self._client.get_rows(
            table="proyectos",
            query={"select": "*", "id": f"eq.{project_id}", "limit": 1},
            with_count=False,
            use_anon_key=False,
        )
        return Project.model_validate(rows[0]) if rows else None

    def create_project(self, *, supervisor_id: UUID, request: ProjectCreateRequest) -> Project:
        payload = {
            **request.model_dump(mode="json"),
            "supervisor_id": str(supervisor_id),
            "presupuesto_ejecutado": "0",
        }
        rows = self._client.post_rows(table="proyectos", payload=payload, use_anon_key=False)
        return Project.model_validate(rows[0])

    def update_project(self, project_id: UUID, changes: dict[str, Any]) -> Project | None:
        rows = self._client.patch_rows(
            table="proyectos",
            query={"id": f"eq.{project_id}"},
            payload=changes,
            use_anon_key=False,
        )
        return Project.model_validate(rows[0]) if rows else None

    def delete_project(self, project_id: UUID) -> bool:
        rows = self._client.delete_rows(
            table="proyectos",
            query={"id": f"eq.{project_id}", "select": "id"},
            use_anon_key=False,
        )
        return bool(rows)

    def set_executed_budget(self, project_id: UUID, amount: Decimal) -> None:
        self._client.patch_rows(
            table="proyectos",
            query={"id": f"eq.{project_id}", "select": "id"},
            payload={"presupuesto_ejecutado": str(amount)},
            use_anon_key=False,
        )
