"""Unit tests for Supabase client query encoding and error normalization."""

from __future__ import annotations

import json
from io import BytesIO
from urllib.error import HTTPError, URLError

import pytest

from backend.db.supabase_client import SupabaseClient, SupabaseRequestError, SupabaseSettings


def _build_client() -> SupabaseClient:
    return SupabaseClient(
        SupabaseSettings(url="https://example.supabase.co", service_role_key="service-role")
    )


class _Response:
    def __init__(self, body: bytes = b"[]", headers: dict[str, str] | None = None) -> None:
        self._body = body
        self.headers = headers or {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def read(self) -> bytes:
        return self._body


def test_get_rows_uses_doseq_for_repeated_query_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _fake_urlopen(request):
        assert "fecha_gasto=gte.2026-01-01" in request.full_url
        assert "fecha_gasto=lte.2026-01-31" in request.full_url
        assert request.get_header("Authorization") == "Bearer service-role"
        return _Response()

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _fake_urlopen)

    rows, total = client.get_rows(
        table="gastos_proyecto",
        query=[("fecha_gasto", "gte.2026-01-01"), ("fecha_gasto", "lte.2026-01-31")],
        with_count=False,
    )

    assert rows == []
    assert total is None


def test_get_rows_parses_exact_count(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _fake_urlopen(request):
        assert request.get_header("Prefer") == "count=exact"
        return _Response(b'[{"id": "1"}]', headers={"content-range": "0-0/7"})

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _fake_urlopen)

    rows, total = client.get_rows(table="pagos_personal", query={"select": "id"}, with_count=True)

    assert rows == [{"id": "1"}]
    assert total == 7


def test_get_rows_includes_status_and_body_on_http_error(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _raise_http_error(_request):
        raise HTTPError(
            url="https://example.supabase.co/rest/v1/proyectos",
            code=400,
            msg="Bad Request",
            hdrs=None,
            fp=BytesIO(b"Bad Request from Supabase"),
        )

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _raise_http_error)

    with pytest.raises(SupabaseRequestError, match="status 400") as error:
        client.get_rows(table="proyectos", query={"select": "*"}, with_count=False)

    assert "Bad Request from Supabase" in str(error.value)
    assert error.value.status == 400


def test_unreachable_host_is_normalized(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _raise_url_error(_request):
        raise URLError("connection refused")

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _raise_url_error)

    with pytest.raises(SupabaseRequestError, match="connection refused") as error:
        client.get_rows(table="proyectos", query={"select": "*"}, with_count=False)

    assert error.value.status is None


def test_post_rows_sends_json_and_returns_representation(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _fake_urlopen(request):
        assert request.get_method() == "POST"
        assert request.full_url == "https://example.supabase.co/rest/v1/trabajadores"
        assert request.get_header("Prefer") == "return=representation"
        assert request.get_header("Content-type") == "application/json"
        assert json.loads(request.data) == {"nombre": "Ana Pérez", "activo": True}
        return _Response(b'[{"id": "w-1"}]')

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _fake_urlopen)

    rows = client.post_rows(table="trabajadores", payload={"nombre": "Ana Pérez", "activo": True})

    assert rows == [{"id": "w-1"}]


def test_patch_rows_uses_patch_method_and_query(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _fake_urlopen(request):
        assert request.get_method() == "PATCH"
        assert request.full_url == (
            "https://example.supabase.co/rest/v1/gastos_proyecto?"
            "id=eq.00000000-0000-0000-0000-000000000000"
        )
        assert json.loads(request.data) == {"aprobado": True}
        return _Response()

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _fake_urlopen)

    rows = client.patch_rows(
        table="gastos_proyecto",
        query={"id": "eq.00000000-0000-0000-0000-000000000000"},
        payload={"aprobado": True},
    )

    assert rows == []


def test_delete_rows_uses_delete_method_and_query_params(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _fake_urlopen(request):
        assert request.get_method() == "DELETE"
        assert request.full_url == (
            "https://example.supabase.co/rest/v1/evidencias_proyecto?"
            "id=eq.00000000-0000-0000-0000-000000000000"
        )
        assert request.data is None
        return _Response(b"")

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _fake_urlopen)

    rows = client.delete_rows(
        table="evidencias_proyecto",
        query={"id": "eq.00000000-0000-0000-0000-000000000000"},
    )

    assert rows == []


def test_anon_mode_requires_anon_key() -> None:
    client = _build_client()

    with pytest.raises(ValueError, match="Missing Supabase API key"):
        client.get_rows(table="proyectos", query={"select": "*"}, with_count=False, use_anon_key=True)
