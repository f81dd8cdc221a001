"""DuckDB backend.

handy for local work and tests: point it at a duckdb file holding copies of
the pilot program tables and the same compiled sql runs against it. the
calls are async to match the http backend but duckdb itself is sync and
fast enough that we just call it inline.
"""

import logging
from typing import Any

import duckdb

from pilotreports.errors import BackendError, BackendFunctionMissing

logger = logging.getLogger(__name__)


class DuckDBBackend:
    """Run report queries against DuckDB.

    thin wrapper that handles connection management and turns rows into
    dicts. duckdb errors come back out as BackendError.
    """

    dialect = "duckdb"

    def __init__(self, database_path: str | None = None) -> None:
        """Set up the backend without connecting yet.

        Args:
            database_path: Path to DuckDB file, or None for in-memory.
        """
        self.database_path = database_path
        self._conn: duckdb.DuckDBPyConnection | None = None  # lazy init

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            self._conn = duckdb.connect(self.database_path or ":memory:")
        return self._conn

    def execute(self, sql: str, params: list[Any] | None = None) -> list[dict[str, Any]]:
        """Run sql with ? placeholders and return rows as dicts."""
        logger.debug("duckdb execute: %s", sql)
        try:
            result = self.conn.execute(sql, params or [])
            if result.description is None:
                return []  # DDL and friends
            columns = [desc[0] for desc in result.description]
            rows = result.fetchall()
        except duckdb.Error as e:
            raise BackendError(f"DuckDB query failed: {e}") from e
        return [dict(zip(columns, row)) for row in rows]

    def table_exists(self, table_name: str) -> bool:
        rows = self.execute(
            "SELECT COUNT(*) AS n FROM information_schema.tables WHERE table_name = ?",
            [table_name],
        )
        return rows[0]["n"] > 0

    async def get_table_columns(self, table_name: str) -> list[dict[str, Any]]:
        return self.execute(
            """
            SELECT column_name, data_type
            FROM information_schema.columns
            WHERE table_name = ?
            ORDER BY ordinal_position
            """,
            [table_name],
        )

    async def execute_raw_sql(
        self, query: str, params: list[Any] | None = None
    ) -> list[dict[str, Any]]:
        return self.execute(query, params)

    async def execute_custom_report_query(
        self, configuration: dict[str, Any], limit: int = 1000, offset: int = 0
    ) -> dict[str, Any]:
        # the structured report function only exists in the hosted database
        raise BackendFunctionMissing("execute_custom_report_query")

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    async def aclose(self) -> None:
        self.close()

    def __enter__(self) -> "DuckDBBackend":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    async def __aenter__(self) -> "DuckDBBackend":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
