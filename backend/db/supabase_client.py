"""Minimal Supabase PostgREST client used by backend repositories only."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen


logger = logging.getLogger(__name__)

QueryParams = dict[str, str | int] | list[tuple[str, str | int]]


class SupabaseRequestError(RuntimeError):
    """Raised when a PostgREST call fails; carries the HTTP status when known."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


@dataclass(slots=True)
class SupabaseSettings:
    url: str
    service_role_key: str
    anon_key: str | None = None


class SupabaseClient:
    def __init__(self, settings: SupabaseSettings) -> None:
        self.settings = settings

    def healthcheck(self) -> bool:
        return bool(self.settings.url and self.settings.service_role_key)

    def _api_key(self, use_anon_key: bool) -> str:
        api_key = self.settings.anon_key if use_anon_key else self.settings.service_role_key
        if not api_key:
            raise ValueError("Missing Supabase API key for requested mode")
        return api_key

    def _request(
        self,
        *,
        table: str,
        method: str,
        query: QueryParams | None,
        body: object | None,
        prefer: str,
        use_anon_key: bool,
    ) -> tuple[Any, Any]:
        api_key = self._api_key(use_anon_key)
        url = f"{self.settings.url}/rest/v1/{table}"
        if query:
            url = f"{url}?{urlencode(query, doseq=True)}"
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
            "Prefer": prefer,
        }
        data = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(body, default=str).encode("utf-8")
        request = Request(url=url, headers=headers, data=data, method=method)
        try:
            with urlopen(request) as response:  # noqa: S310 - URL comes from trusted env config
                raw = response.read().decode("utf-8")
                payload = json.loads(raw) if raw.strip() else []
                return payload, response.headers
        except HTTPError as exc:
            body_text = exc.read().decode("utf-8", errors="replace")[:500]
            logger.warning("supabase_request_failed table=%s method=%s status=%s", table, method, exc.code)
            raise SupabaseRequestError(
                f"Supabase request failed with status {exc.code}: {body_text}",
                status=exc.code,
            ) from exc
        except URLError as exc:
            logger.warning("supabase_unreachable table=%s method=%s reason=%s", table, method, exc.reason)
            raise SupabaseRequestError(f"Supabase request failed: {exc.reason}") from exc

    def get_rows(
        self,
        *,
        table: str,
        query: QueryParams,
        with_count: bool,
        use_anon_key: bool = False,
    ) -> tuple[list[dict[str, Any]], int | None]:
        """Fetch rows from PostgREST and optionally parse exact row count."""

        rows, headers = self._request(
            table=table,
            method="GET",
            query=query,
            body=None,
            prefer="count=exact" if with_count else "return=representation",
            use_anon_key=use_anon_key,
        )
        total: int | None = None
        if with_count:
            content_range = headers.get("content-range") if headers else None
            if content_range and "/" in content_range:
                _, total_str = content_range.split("/", maxsplit=1)
                if total_str.isdigit():
                    total = int(total_str)
        return rows, total

    def post_rows(
        self,
        *,
        table: str,
        payload: dict[str, Any] | list[dict[str, Any]],
        prefer: str = "return=representation",
        use_anon_key: bool = False,
    ) -> list[dict[str, Any]]:
        rows, _ = self._request(
            table=table,
            method="POST",
            query=None,
            body=payload,
            prefer=prefer,
            use_anon_key=use_anon_key,
        )
        return rows

    def patch_rows(
        self,
        *,
        table: str,
        query: QueryParams,
        payload: dict[str, Any],
        use_anon_key: bool = False,
    ) -> list[dict[str, Any]]:
        rows, _ = self._request(
            table=table,
            method="PATCH",
            query=query,
            body=payload,
            prefer="return=representation",
            use_anon_key=use_anon_key,
        )
        return rows

    def delete_rows(
        self,
        *,
        table: str,
        query: QueryParams,
        use_anon_key: bool = False,
    ) -> list[dict[str, Any]]:
        rows, _ = self._request(
            table=table,
            method="DELETE",
            query=query,
            body=None,
            prefer="return=representation",
            use_anon_key=use_anon_key,
        )
        return rows
