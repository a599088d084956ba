"""
SQLAlchemy-backed catalog queries.

`SqlAlchemyQueryRunner` satisfies the `QueryExecutor` port and inherits the
typed catalog lookups the reconciler and state reader use. Every call opens a
short-lived connection from the engine's pool.

`default_catalog` picks the runner when `SQLSERVER_URL` is configured and
falls back to querying through the engine connection otherwise.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from src import settings
from src.database_config.catalog import CatalogQueries, ConnectionCatalog
from src.database_config.ports import QueryExecutor
from src.logger import LOGGER


class SqlAlchemyQueryRunner(CatalogQueries):
    """Runs parameterised catalog queries through an SQLAlchemy `Engine`."""

    def __init__(self, engine: Engine) -> None:
        self.engine: Engine = engine

    def execute_query(
        self, statement: str, parameters: Mapping[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Run `statement` with bind `parameters` and return the rows as dicts."""
        LOGGER.debug("Executing query with parameters %s.", dict(parameters or {}))
        with self.engine.connect() as connection:
            result = connection.execute(text(statement), dict(parameters or {}))
            return [dict(row) for row in result.mappings()]


def create_query_runner(
    url: str | None = None, *, timeout: int = settings.SQLSERVER_QUERY_TIMEOUT
) -> SqlAlchemyQueryRunner:
    """Build a runner from `url`, defaulting to the `SQLSERVER_URL` setting."""
    url = url or settings.SQLSERVER_URL
    if not url:
        raise ValueError("No database URL given and SQLSERVER_URL is not set.")
    engine = create_engine(url, connect_args={"timeout": timeout}, pool_pre_ping=True)
    LOGGER.info("Created query engine for %s.", engine.url.render_as_string(hide_password=True))
    return SqlAlchemyQueryRunner(engine)


def default_catalog(connection: QueryExecutor) -> CatalogQueries:
    if settings.SQLSERVER_URL:
        return create_query_runner(settings.SQLSERVER_URL)
    return ConnectionCatalog(connection)
