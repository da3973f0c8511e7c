"""Tests for shared configuration helpers."""

from shared import config


def test_cors_allow_origins_defaults_in_dev(monkeypatch) -> None:
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)

    assert config.cors_allow_origins() == ["http://localhost:3000", "http://127.0.0.1:3000"]


def test_cors_allow_origins_parses_comma_separated_list(monkeypatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.com, https://b.com,")

    assert config.cors_allow_origins() == ["https://a.com", "https://b.com"]


def test_cors_allow_origins_uses_ui_origin_in_prod(monkeypatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)
    monkeypatch.setenv("UI_ORIGIN", "https://sigecul.example.org")

    assert config.cors_allow_origins() == ["https://sigecul.example.org"]


def test_cors_allow_origins_warns_and_defaults_to_empty_in_prod(monkeypatch, caplog) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)
    monkeypatch.delenv("UI_ORIGIN", raising=False)

    assert config.cors_allow_origins() == []
    assert "cors_allow_origins_empty_in_prod" in caplog.text


def test_org_name_default_and_override(monkeypatch) -> None:
    monkeypatch.delenv("SIGECUL_ORG_NAME", raising=False)
    assert config.org_name() == "CORPORACIÓN CULTURAL CÚCUTA"

    monkeypatch.setenv("SIGECUL_ORG_NAME", "  Fundación Teatro Abierto ")
    assert config.org_name() == "Fundación Teatro Abierto"


def test_report_limits_use_defaults_when_missing(monkeypatch) -> None:
    monkeypatch.delenv("SIGECUL_REPORT_TOP_PROJECTS", raising=False)
    monkeypatch.delenv("SIGECUL_REPORT_TOP_EXPENSES", raising=False)

    assert config.report_top_projects() == 10
    assert config.report_top_expenses() == 15


def test_report_limits_accept_positive_integers(monkeypatch) -> None:
    monkeypatch.setenv("SIGECUL_REPORT_TOP_PROJECTS", "25")

    assert config.report_top_projects() == 25


def test_report_limits_fall_back_on_invalid_values(monkeypatch, caplog) -> None:
    monkeypatch.setenv("SIGECUL_REPORT_TOP_PROJECTS", "muchos")
    monkeypatch.setenv("SIGECUL_REPORT_TOP_EXPENSES", "-3")

    assert config.report_top_projects() == 10
    assert config.report_top_expenses() == 15
    assert "invalid_int_setting" in caplog.text


def test_app_env_defaults_to_dev(monkeypatch) -> None:
    monkeypatch.delenv("APP_ENV", raising=False)

    assert config.app_env() == "dev"


def test_records_cache_ttl_defaults_and_ignores_invalid_values(monkeypatch, caplog) -> None:
    monkeypatch.delenv("SIGECUL_RECORDS_CACHE_TTL_SECONDS", raising=False)
    assert config.records_cache_ttl_seconds() == 30

    monkeypatch.setenv("SIGECUL_RECORDS_CACHE_TTL_SECONDS", "120")
    assert config.records_cache_ttl_seconds() == 120

    monkeypatch.setenv("SIGECUL_RECORDS_CACHE_TTL_SECONDS", "soon")
    assert config.records_cache_ttl_seconds() == 30
    assert "invalid_int_setting name=SIGECUL_RECORDS_CACHE_TTL_SECONDS" in caplog.text
