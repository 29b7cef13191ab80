"""Supabase (PostgREST) task store backend over HTTP using httpx."""

import logging
from collections.abc import Sequence
from datetime import date, datetime
from typing import Any

import httpx

from src.core.config import constants
from src.core.errors import RecordNotFoundError, StoreError
from src.core.store import Filter, validate_identifier


logger = logging.getLogger(__name__)


def _format_scalar(value: Any, *, quote: bool = False) -> str:
    """Render a value the way PostgREST expects it in a query string."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime | date):
        value = value.isoformat()
    if isinstance(value, str) and quote:
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return str(value)


def build_filter_params(filters: Sequence[Filter]) -> list[tuple[str, str]]:
    """Translate filter predicates into PostgREST query parameters."""
    params: list[tuple[str, str]] = []
    for item in filters:
        validate_identifier(item.column)
        if item.operator == "eq":
            params.append((item.column, f"eq.{_format_scalar(item.value)}"))
        else:
            members = ",".join(_format_scalar(v, quote=True) for v in item.value)
            params.append((item.column, f"in.({members})"))
    return params


def _error_message(response: httpx.Response) -> str:
    """Extract the store's error message from a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        parts = [str(body[key]) for key in ("code", "message", "details", "hint") if body.get(key)]
        if parts:
            return ": ".join(parts)
    return response.text


def _decode_rows(response: httpx.Response, table: str) -> list[dict[str, Any]]:
    """Return the JSON array of rows in a successful response."""
    try:
        body = response.json()
    except ValueError as e:
        content_type = response.headers.get("content-type", "unknown")
        msg = f"{table} answered {response.status_code} with a non-JSON body ({content_type})"
        raise StoreError(msg, status_code=response.status_code) from e

    if not isinstance(body, list) or not all(isinstance(row, dict) for row in body):
        msg = f"{table} answered {response.status_code} with {type(body).__name__} instead of a list of rows"
        raise StoreError(msg, status_code=response.status_code)
    return body


class RestTaskStore:
    """Task store reached through the Supabase REST API.

    Rows live at ``{base_url}/rest/v1/{table}``; the API key is sent both as
    ``apikey`` and as a bearer token.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout: float = constants.API_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=f"{self._base_url}/rest/v1",
                headers={
                    "apikey": self._api_key,
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: list[tuple[str, str]],
        json: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        validate_identifier(table)
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = await self._get_client().request(method, f"/{table}", params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error("rest_request_failed", extra={"table": table, "method": method, "error": str(e)})
            msg = f"{method} {table} failed: {type(e).__name__}: {e}"
            raise StoreError(msg) from e

        if response.is_error:
            message = _error_message(response)
            logger.error(
                "rest_request_rejected",
                extra={"table": table, "method": method, "status_code": response.status_code, "error": message},
            )
            msg = f"{method} {table} rejected with status {response.status_code}: {message}"
            raise StoreError(msg, status_code=response.status_code)

        return response

    async def select(
        self,
        table: str,
        *,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """Select rows matching the filters, optionally ordered by one column."""
        params = [("select", "*"), *build_filter_params(filters)]
        if order_by:
            validate_identifier(order_by)
            params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))

        response = await self._request("GET", table, params=params)
        records = _decode_rows(response, table)
        logger.info("Selected records", extra={"table": table, "count": len(records)})
        return records

    async def insert(self, table: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return the representation the store sends back."""
        response = await self._request("POST", table, params=[], json=data, prefer="return=representation")
        records = _decode_rows(response, table)
        if not records:
            msg = f"Insert into {table} returned no row"
            raise StoreError(msg)

        logger.info("Inserted record", extra={"table": table, "record_id": records[0].get("id")})
        return records[0]

    async def update(self, table: str, data: dict[str, Any], *, filters: Sequence[Filter]) -> list[dict[str, Any]]:
        """Update matching rows; PostgREST answers an unmatched PATCH with an empty list."""
        if not data:
            msg = "Empty update payload"
            raise ValueError(msg)

        response = await self._request(
            "PATCH", table, params=build_filter_params(filters), json=data, prefer="return=representation"
        )
        records = _decode_rows(response, table)
        if not records:
            msg = f"Record not found in {table}: update matched no rows"
            raise RecordNotFoundError(msg, status_code=404)

        logger.info("Updated records", extra={"table": table, "count": len(records)})
        return records

    async def delete(self, table: str, *, filters: Sequence[Filter]) -> None:
        """Delete matching rows. Matching nothing is not an error."""
        params = build_filter_params(filters)
        if not params:
            msg = "Refusing to delete without a filter"
            raise ValueError(msg)

        await self._request("DELETE", table, params=params)
        logger.info("Deleted records", extra={"table": table})
