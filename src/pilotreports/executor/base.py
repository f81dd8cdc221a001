"""The backend surface the reporting code talks to.

three rpc-ish calls, modelled on what the hosted database exposes. anything
that implements them (duckdb locally, supabase over http) can back a
ReportingService.
"""

from typing import Any, Protocol

# migration that installs each rpc function, for the "please run ..." hint
MIGRATIONS = {
    "get_table_columns": "20250710_add_get_table_columns_function.sql",
    "execute_raw_sql": "20250710_add_execute_raw_sql_function.sql",
}


class ReportBackend(Protocol):
    dialect: str

    async def get_table_columns(self, table_name: str) -> list[dict[str, Any]]:
        """Rows of {column_name, data_type} for a table."""
        ...

    async def execute_raw_sql(
        self, query: str, params: list[Any] | None = None
    ) -> list[dict[str, Any]]: ...

    async def execute_custom_report_query(
        self, configuration: dict[str, Any], limit: int = 1000, offset: int = 0
    ) -> dict[str, Any]:
        """Returns {success, data, message}."""
        ...

    async def aclose(self) -> None: ...
