"""Bearer token validation against Supabase Auth for dashboard requests."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from uuid import UUID
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from shared import config


logger = logging.getLogger(__name__)

AUTH_TIMEOUT_SECONDS = 10


class UnauthorizedError(Exception):
    """Raised when a bearer token does not map to a Supabase account."""


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    """The Supabase account behind a session; not yet a dashboard user."""

    auth_user_id: UUID
    email: str | None = None


def _parse_account(payload: object) -> AuthenticatedUser:
    if not isinstance(payload, dict):
        raise UnauthorizedError("Unauthorized")
    raw_id = payload.get("id")
    try:
        auth_user_id = UUID(str(raw_id)) if isinstance(raw_id, str) else None
    except ValueError:
        auth_user_id = None
    if auth_user_id is None:
        raise UnauthorizedError("Unauthorized")
    email = payload.get("email")
    return AuthenticatedUser(auth_user_id=auth_user_id, email=email if isinstance(email, str) else None)


def authenticate_bearer_token(token: str) -> AuthenticatedUser:
    """Ask Supabase Auth who owns the session token.

    Any transport failure or non-200 answer is reported as
    `UnauthorizedError`, so callers only need to map one exception to 401.
    """

    supabase_url = (config.supabase_url() or "").rstrip("/")
    anon_key = config.supabase_anon_key()
    if not supabase_url or not anon_key:
        logger.warning("auth_not_configured")
        raise UnauthorizedError("Supabase auth is not configured")

    request = Request(
        url=f"{supabase_url}/auth/v1/user",
        headers={
            "apikey": anon_key,
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        },
        method="GET",
    )
    try:
        with urlopen(request, timeout=AUTH_TIMEOUT_SECONDS) as response:  # noqa: S310 - URL comes from env config
            if response.status != 200:
                raise UnauthorizedError("Unauthorized")
            payload = json.loads(response.read().decode("utf-8"))
    except HTTPError as exc:
        logger.info("auth_token_rejected status=%s", exc.code)
        raise UnauthorizedError("Unauthorized") from exc
    except URLError as exc:
        logger.warning("auth_unreachable reason=%s", exc.reason)
        raise UnauthorizedError("Unauthorized") from exc
    except ValueError as exc:
        raise UnauthorizedError("Unauthorized") from exc
    return _parse_account(payload)
