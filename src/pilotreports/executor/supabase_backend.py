"""Supabase backend - calls the database's rpc functions over http.

postgrest exposes every database function at POST /rest/v1/rpc/{name} with
the arguments as a json object. a function that doesn't exist comes back as
a 404, which is how we spot a missing migration.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import httpx

from pilotreports.errors import BackendError, BackendFunctionMissing
from pilotreports.executor.base import MIGRATIONS

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


class SupabaseBackend:
    """Async client for the reporting rpc functions.

    pass an httpx.AsyncClient in to share a connection pool (or to mock the
    transport in tests), otherwise one is created on first use and closed
    by aclose().
    """

    dialect = "postgres"

    def __init__(
        self,
        url: str,
        key: str,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.key = key
        self.timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error") or body)
        return str(body)

    async def rpc(self, function: str, payload: dict[str, Any]) -> Any:
        """Call a database function and return its decoded json."""
        logger.debug("calling rpc %s", function)
        try:
            response = await self.client.post(
                f"{self.url}/rest/v1/rpc/{function}",
                json=payload,
                headers=self._headers(),
            )
        except httpx.RequestError as e:
            raise BackendError(f"Request to {function} failed: {e}") from e

        if response.status_code >= 400:
            error = BackendError(self._error_message(response), status_code=response.status_code)
            if error.is_missing_function:
                raise BackendFunctionMissing(function, MIGRATIONS.get(function)) from error
            raise error

        if not response.content:
            return None
        return response.json()

    async def get_table_columns(self, table_name: str) -> list[dict[str, Any]]:
        return await self.rpc("get_table_columns", {"table_name": table_name}) or []

    async def execute_raw_sql(
        self, query: str, params: list[Any] | None = None
    ) -> list[dict[str, Any]]:
        data = await self.rpc(
            "execute_raw_sql",
            {"query": query, "params": [_jsonable(p) for p in params or []]},
        )
        # the function reports sql errors in-band rather than as http errors
        if isinstance(data, dict):
            if data.get("error"):
                raise BackendError(str(data["error"]))
            data = data.get("data", [])
        return data or []

    async def execute_custom_report_query(
        self, configuration: dict[str, Any], limit: int = 1000, offset: int = 0
    ) -> dict[str, Any]:
        return await self.rpc(
            "execute_custom_report_query",
            {
                "p_report_configuration": configuration,
                "p_limit": limit,
                "p_offset": offset,
            },
        ) or {}

    async def aclose(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "SupabaseBackend":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()
