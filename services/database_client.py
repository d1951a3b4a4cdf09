"""
Database Client - Async PostgreSQL access for guarded scripts

Wraps a SQLAlchemy async engine on the asyncpg driver and exposes the small
surface the guard needs: connect, disconnect, raw queries, bulk deletes and
the server-reported database name.
"""

import re
from typing import Any

from sqlalchemy import column, delete, table, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.sql import Delete

from exceptions import DatabaseOperationException, ValidationException
from logging_config import logger
from utils import redact_connection

ASYNC_DRIVER = "postgresql+asyncpg"
CURRENT_DATABASE_QUERY = "SELECT current_database() AS db_name"

# Query parameters understood by Prisma but rejected by asyncpg
_PRISMA_ONLY_PARAMS = ("schema", "connection_limit", "pool_timeout", "pgbouncer")

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def to_async_url(connection: str) -> str:
    """
    Rewrite a postgres:// or postgresql:// URL for the asyncpg driver

    Prisma-only query parameters are dropped.
    """
    try:
        url = make_url(connection)
    except ArgumentError as e:
        raise DatabaseOperationException(
            "connect",
            f"Invalid connection string: {redact_connection(connection)}",
            details={"error": str(e)},
        ) from e
    if url.drivername in ("postgres", "postgresql"):
        url = url.set(drivername=ASYNC_DRIVER)
    url = url.difference_update_query(_PRISMA_ONLY_PARAMS)
    return url.render_as_string(hide_password=False)


def quote_identifier(name: str) -> str:
    """Double-quote a table, sequence or schema name for raw SQL"""
    if not _IDENTIFIER_PATTERN.match(name):
        raise ValidationException("identifier", f"Refusing unsafe SQL identifier '{name}'")
    return f'"{name}"'


def build_delete_statement(table_name: str, filters: dict[str, Any] | None = None) -> Delete:
    """DELETE statement for a table, restricted by column equality filters"""
    filters = filters or {}
    target = table(table_name, *(column(name) for name in filters))
    statement = delete(target)
    for name, value in filters.items():
        statement = statement.where(target.c[name] == value)
    return statement


class DatabaseClient:
    """Async client for the shop database"""

    def __init__(self, connection: str, engine_factory=create_async_engine, **engine_kwargs):
        """
        Args:
            connection: Connection string as found in DATABASE_URL
            engine_factory: Callable building the AsyncEngine
            engine_kwargs: Extra arguments for the engine factory
        """
        self.connection = connection
        self.engine_factory = engine_factory
        self.engine_kwargs = engine_kwargs
        self.engine: AsyncEngine | None = None

    def _require_engine(self) -> AsyncEngine:
        if self.engine is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self.engine

    async def connect(self) -> None:
        """Create the engine and verify the server answers"""
        target = redact_connection(self.connection)
        try:
            self.engine = self.engine_factory(to_async_url(self.connection), **self.engine_kwargs)
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Failed to connect to database {target}: {str(e)}")
            await self.disconnect()
            raise DatabaseOperationException(
                "connect", f"Could not connect to {target}", details={"error": str(e)}
            ) from e
        logger.info(f"Database connection established: {target}")

    async def disconnect(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            logger.debug("Database connection closed")

    async def raw_query(self, sql: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """
        Execute raw SQL in its own transaction

        Returns:
            Rows as dictionaries, or an empty list for statements without rows
        """
        engine = self._require_engine()
        try:
            async with engine.begin() as conn:
                result = await conn.execute(text(sql), params or {})
                if not result.returns_rows:
                    return []
                return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            raise DatabaseOperationException(
                "query", f"Raw query failed: {str(e)}", details={"sql": sql}
            ) from e

    async def delete_many(self, table_name: str, filters: dict[str, Any] | None = None) -> int:
        """
        Delete every row of a table matching the filters

        Returns:
            Number of deleted rows
        """
        engine = self._require_engine()
        try:
            async with engine.begin() as conn:
                result = await conn.execute(build_delete_statement(table_name, filters))
                return result.rowcount
        except SQLAlchemyError as e:
            raise DatabaseOperationException(
                "delete", table=table_name, details={"error": str(e), "filters": filters or {}}
            ) from e

    async def current_database(self) -> str | None:
        rows = await self.raw_query(CURRENT_DATABASE_QUERY)
        return rows[0]["db_name"] if rows else None

    async def __aenter__(self) -> "DatabaseClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()
