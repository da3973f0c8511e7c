"""Lookup of dashboard users (usuarios) behind Supabase auth accounts."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from backend.db.supabase_client import SupabaseClient


class UsersRepository(Protocol):
    def get_user_id_for_auth_user(self, *, auth_user_id: UUID) -> UUID | None:
        """Return the active usuarios.id linked to the auth account."""


class InMemoryUsersRepository:
    def __init__(self, mapping: dict[UUID, UUID] | None = None) -> None:
        self._mapping = dict(mapping or {})

    def get_user_id_for_auth_user(self, *, auth_user_id: UUID) -> UUID | None:
        return self._mapping.get(auth_user_id)


class SupabaseUsersRepository:
    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    def get_user_id_for_auth_user(self, *, auth_user_id: UUID) -> UUID | None:
        rows, _ = self._client.get_rows(
            table="usuarios",
            query={
                "select": "id",
                "auth_user_id": f"eq.{auth_user_id}",
                "activo": "eq.true",
                "limit": 1,
            },
            with_count=False,
            use_anon_key=False,
        )
        if not rows or not rows[0].get("id"):
            return None
        return UUID(str(rows[0]["id"]))
