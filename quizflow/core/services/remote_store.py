"""Async REST client for the hosted relational backend.

The backend exposes one PostgREST endpoint per table under ``/rest/v1`` and
an auth endpoint under ``/auth/v1``. Rows are inserted and selected
verbatim; there are no transactions spanning several calls.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from quizflow.constants.network_constants import REMOTE_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when a call to a storage collaborator fails."""


class RemoteStore:
    """Thin table-level CRUD over HTTP."""

    def __init__(
        self,
        url: str,
        key: str,
        *,
        timeout: float = REMOTE_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = url.rstrip("/")
        self._key = key
        self._timeout = timeout
        self._transport = transport

    async def select(
        self,
        table: str,
        *,
        filters: dict[str, str] | None = None,
        order: str | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, str] = {"select": "*"}
        params.update(filters or {})
        if order:
            params["order"] = order
        payload = await self._request("GET", f"/rest/v1/{table}", params=params)
        return list(payload or [])

    async def select_one(self, table: str, *, filters: dict[str, str]) -> dict[str, Any]:
        rows = await self.select(table, filters=filters)
        if len(rows) != 1:
            raise PersistenceError(f"Expected exactly one row in {table}, found {len(rows)}.")
        return rows[0]

    async def insert(
        self,
        table: str,
        rows: dict[str, Any] | list[dict[str, Any]],
        *,
        returning: bool = True,
    ) -> list[dict[str, Any]]:
        prefer = "return=representation" if returning else "return=minimal"
        payload = await self._request(
            "POST",
            f"/rest/v1/{table}",
            json=rows,
            headers={"Prefer": prefer},
        )
        return list(payload or [])

    async def update(self, table: str, patch: dict[str, Any], *, filters: dict[str, str]) -> None:
        await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=filters,
            json=patch,
            headers={"Prefer": "return=minimal"},
        )

    async def delete(self, table: str, *, filters: dict[str, str]) -> None:
        await self._request("DELETE", f"/rest/v1/{table}", params=filters)

    async def get_user(self, access_token: str) -> dict[str, Any]:
        """Exchange an access token for the account it belongs to."""
        payload = await self._request(
            "GET",
            "/auth/v1/user",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not isinstance(payload, dict) or "id" not in payload:
            raise PersistenceError("Auth provider returned no user.")
        return payload

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        request_headers = {
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
            "Content-Type": "application/json",
        }
        request_headers.update(headers or {})
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method, path, params=params, json=json, headers=request_headers
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            message = _error_message(exc.response)
            logger.warning("%s %s failed: %s", method, path, message)
            raise PersistenceError(message) from exc
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise PersistenceError(str(exc) or exc.__class__.__name__) from exc

        if not response.content:
            return None
        return response.json()


def equals(value: object) -> str:
    """PostgREST ``eq`` filter value."""
    return f"eq.{value}"


def in_list(values: list[str]) -> str:
    """PostgREST ``in`` filter value."""
    return "in.(" + ",".join(values) + ")"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"
