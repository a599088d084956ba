"""
Typed lookups against the server catalog.

`CatalogQueries` turns the statements in `src.database_config.sql` into plain
values. Subclasses supply `execute_query`: `ConnectionCatalog` runs through the
engine connection itself, the SQLAlchemy adapter through its own pool.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from src.database_config import sql
from src.database_config.ports import QueryExecutor


class CatalogQueries:
    def execute_query(
        self, statement: str, parameters: Mapping[str, Any] | None = None
    ) -> Sequence[Mapping[str, Any]]:
        raise NotImplementedError

    def active_connection_count(self, database_name: str) -> int:
        rows = self.execute_query(
            sql.ACTIVE_CONNECTION_COUNT, sql.database_parameters(database_name)
        )
        return int(rows[0]["active_connections"]) if rows else 0

    def filestream_directory_in_use(
        self, directory_name: str, database_name: str = ""
    ) -> list[str]:
        """Names of other databases already using `directory_name`."""
        rows = self.execute_query(
            sql.FILESTREAM_DIRECTORY_IN_USE,
            sql.filestream_directory_parameters(directory_name, database_name),
        )
        return [row["database_name"] for row in rows]

    def service_objective(self, database_name: str) -> str:
        """Service objective of a cloud database; "" when the catalog has none."""
        rows = self.execute_query(sql.SERVICE_OBJECTIVE, sql.database_parameters(database_name))
        return str(rows[0]["service_objective"] or "") if rows else ""


class ConnectionCatalog(CatalogQueries):
    """Catalog lookups sent through the engine connection."""

    def __init__(self, executor: QueryExecutor) -> None:
        self.executor: QueryExecutor = executor

    def execute_query(
        self, statement: str, parameters: Mapping[str, Any] | None = None
    ) -> Sequence[Mapping[str, Any]]:
        return self.executor.execute_query(statement, parameters)
