"""Tests for bearer token validation against Supabase Auth."""

from __future__ import annotations

from io import BytesIO
from urllib.error import HTTPError
from uuid import UUID

import pytest

from backend.auth.supabase_auth import UnauthorizedError, authenticate_bearer_token


AUTH_USER_ID = "90000000-0000-4000-8000-000000000001"


class _Response:
    status = 200

    def __init__(self, body: bytes) -> None:
        self._body = body

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def read(self) -> bytes:
        return self._body


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co/")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")


def test_valid_token_returns_account(configured, monkeypatch) -> None:
    def _fake_urlopen(request, timeout):
        assert request.full_url == "https://example.supabase.co/auth/v1/user"
        assert request.get_header("Authorization") == "Bearer session-token"
        assert request.get_header("Apikey") == "anon"
        return _Response(f'{{"id": "{AUTH_USER_ID}", "email": "ana@example.org"}}'.encode())

    monkeypatch.setattr("backend.auth.supabase_auth.urlopen", _fake_urlopen)

    account = authenticate_bearer_token("session-token")

    assert account.auth_user_id == UUID(AUTH_USER_ID)
    assert account.email == "ana@example.org"


def test_rejected_token_raises(configured, monkeypatch) -> None:
    def _raise(_request, timeout):
        raise HTTPError(url="x", code=401, msg="Unauthorized", hdrs=None, fp=BytesIO(b"{}"))

    monkeypatch.setattr("backend.auth.supabase_auth.urlopen", _raise)

    with pytest.raises(UnauthorizedError):
        authenticate_bearer_token("expired")


@pytest.mark.parametrize("body", [b'{"id": "not-a-uuid"}', b"[]", b"not json"])
def test_malformed_account_payload_raises(configured, monkeypatch, body) -> None:
    monkeypatch.setattr("backend.auth.supabase_auth.urlopen", lambda _request, timeout: _Response(body))

    with pytest.raises(UnauthorizedError):
        authenticate_bearer_token("token")


def test_missing_configuration_raises(monkeypatch) -> None:
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)

    with pytest.raises(UnauthorizedError, match="not configured"):
        authenticate_bearer_token("token")
