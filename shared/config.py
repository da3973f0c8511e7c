"""Configuration helpers for environment variables."""

from __future__ import annotations

import os
import logging

from dotenv import load_dotenv


logger = logging.getLogger(__name__)


_DEFAULT_ORG_NAME = "CORPORACIÓN CULTURAL CÚCUTA"
_DEFAULT_TOP_PROJECTS = 10
_DEFAULT_TOP_EXPENSES = 15
_DEFAULT_RECORDS_CACHE_TTL_SECONDS = 30
_LOCAL_ENVS = {"dev", "local"}
_LOCAL_UI_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _is_local_env(value: str | None) -> bool:
    return (value or "dev").strip().lower() in _LOCAL_ENVS


if _is_local_env(os.getenv("APP_ENV")):
    load_dotenv()


def get_env(name: str, default: str | None = None) -> str | None:
    """Return a raw environment value or default."""
    return os.getenv(name, default)


def app_env() -> str:
    """Return the current application environment."""
    return (get_env("APP_ENV", "dev") or "dev").strip() or "dev"


def cors_allow_origins() -> list[str]:
    """Return the dashboard origins allowed by CORS.

    An explicit CORS_ALLOW_ORIGINS list wins. Local environments fall back to
    the dashboard dev server, deployed ones to UI_ORIGIN.
    """
    raw_origins = get_env("CORS_ALLOW_ORIGINS", "") or ""
    parsed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]

    if parsed_origins:
        return parsed_origins

    if _is_local_env(app_env()):
        return list(_LOCAL_UI_ORIGINS)

    ui_origin = (get_env("UI_ORIGIN", "") or "").strip()
    if ui_origin:
        return [ui_origin]

    logger.warning(
        "cors_allow_origins_empty_in_prod app_env=%s; define CORS_ALLOW_ORIGINS or UI_ORIGIN",
        app_env(),
    )

    return []


def _positive_int(name: str, default: int) -> int:
    raw_value = (get_env(name, "") or "").strip()
    if not raw_value:
        return default
    try:
        value = int(raw_value)
    except ValueError:
        logger.warning("invalid_int_setting name=%s value=%s default=%s", name, raw_value, default)
        return default
    return value if value > 0 else default


def org_name() -> str:
    """Return the organization name printed on report headers."""
    return (get_env("SIGECUL_ORG_NAME", "") or "").strip() or _DEFAULT_ORG_NAME


def report_top_projects() -> int:
    """Return how many projects the consolidated PDF lists."""
    return _positive_int("SIGECUL_REPORT_TOP_PROJECTS", _DEFAULT_TOP_PROJECTS)


def report_top_expenses() -> int:
    """Return how many expenses the consolidated PDF lists."""
    return _positive_int("SIGECUL_REPORT_TOP_EXPENSES", _DEFAULT_TOP_EXPENSES)


def records_cache_ttl_seconds() -> int:
    """Return how long joined records stay cached before they are refetched."""
    return _positive_int("SIGECUL_RECORDS_CACHE_TTL_SECONDS", _DEFAULT_RECORDS_CACHE_TTL_SECONDS)


def supabase_url() -> str | None:
    """Return Supabase URL when configured."""
    return get_env("SUPABASE_URL")


def supabase_service_role_key() -> str | None:
    """Return Supabase service role key when configured."""
    return get_env("SUPABASE_SERVICE_ROLE_KEY")


def supabase_anon_key() -> str | None:
    """Return Supabase anon key when configured."""
    return get_env("SUPABASE_ANON_KEY")
