"""Unit tests for the async database client"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from exceptions import DatabaseOperationException, ValidationException
from services.database_client import (
    DatabaseClient,
    build_delete_statement,
    quote_identifier,
    to_async_url,
)


def compile_sql(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


def make_engine(result=None, error=None):
    """Engine double whose begin()/connect() yield the same connection"""
    conn = MagicMock()
    conn.execute = AsyncMock(return_value=result, side_effect=error)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=conn)
    context.__aexit__ = AsyncMock(return_value=False)

    engine = MagicMock()
    engine.begin.return_value = context
    engine.connect.return_value = context
    engine.dispose = AsyncMock()
    return engine, conn


class TestToAsyncUrl:
    @pytest.mark.parametrize(
        "connection",
        ["postgres://u:p@localhost:5432/shop_test", "postgresql://u:p@localhost:5432/shop_test"],
    )
    def test_rewrites_driver(self, connection):
        assert to_async_url(connection) == "postgresql+asyncpg://u:p@localhost:5432/shop_test"

    def test_drops_prisma_only_parameters(self):
        url = to_async_url("postgresql://u:p@localhost:5432/shop_test?schema=public&sslmode=require")

        assert "schema=" not in url
        assert "sslmode=require" in url

    def test_invalid_url_is_redacted(self):
        with pytest.raises(DatabaseOperationException) as exc_info:
            to_async_url("not a url")

        assert exc_info.value.operation == "connect"


class TestQuoteIdentifier:
    def test_quotes_mixed_case_names(self):
        assert quote_identifier("OrderItem_id_seq") == '"OrderItem_id_seq"'

    @pytest.mark.parametrize("name", ['Order"; DROP TABLE x', "", "1abc", "a b"])
    def test_rejects_unsafe_names(self, name):
        with pytest.raises(ValidationException):
            quote_identifier(name)


class TestBuildDeleteStatement:
    def test_delete_all_rows_quotes_prisma_table(self):
        sql = compile_sql(build_delete_statement("Order"))

        assert sql == 'DELETE FROM "Order"'

    def test_filters_become_where_clause(self):
        sql = compile_sql(build_delete_statement("HeroSlide", {"isActive": False}))

        assert sql.startswith('DELETE FROM "HeroSlide" WHERE "HeroSlide"."isActive" = ')


class TestDatabaseClient:
    """Test the client against an engine double"""

    @pytest.mark.asyncio
    async def test_connect_uses_async_url(self):
        engine, conn = make_engine()
        factory = MagicMock(return_value=engine)
        client = DatabaseClient("postgres://u:p@h/shop_test", engine_factory=factory, pool_pre_ping=True)

        await client.connect()

        factory.assert_called_once_with("postgresql+asyncpg://u:p@h/shop_test", pool_pre_ping=True)
        conn.execute.assert_awaited_once()
        assert client.engine is engine

    @pytest.mark.asyncio
    async def test_connect_failure_is_wrapped(self):
        engine, _ = make_engine(error=OperationalError("SELECT 1", {}, Exception("refused")))
        client = DatabaseClient("postgres://u:secret@h/shop_test", engine_factory=MagicMock(return_value=engine))

        with pytest.raises(DatabaseOperationException) as exc_info:
            await client.connect()

        assert "secret" not in exc_info.value.message
        assert client.engine is None
        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_queries_require_connection(self):
        client = DatabaseClient("postgres://u:p@h/shop_test")

        with pytest.raises(RuntimeError, match="Call connect"):
            await client.raw_query("SELECT 1")

    @pytest.mark.asyncio
    async def test_raw_query_returns_dict_rows(self):
        result = MagicMock()
        result.returns_rows = True
        result.mappings.return_value.all.return_value = [{"db_name": "shop_test"}]
        engine, _ = make_engine(result=result)
        client = DatabaseClient("postgres://u:p@h/shop_test", engine_factory=MagicMock(return_value=engine))
        await client.connect()

        assert await client.current_database() == "shop_test"

    @pytest.mark.asyncio
    async def test_raw_query_without_rows(self):
        result = MagicMock()
        result.returns_rows = False
        engine, _ = make_engine(result=result)
        client = DatabaseClient("postgres://u:p@h/shop_test", engine_factory=MagicMock(return_value=engine))
        await client.connect()

        assert await client.raw_query('ALTER SEQUENCE "User_id_seq" RESTART WITH 1') == []

    @pytest.mark.asyncio
    async def test_delete_many_returns_rowcount(self):
        result = MagicMock()
        result.rowcount = 7
        engine, conn = make_engine(result=result)
        client = DatabaseClient("postgres://u:p@h/shop_test", engine_factory=MagicMock(return_value=engine))
        await client.connect()

        assert await client.delete_many("Order") == 7
        statement = conn.execute.await_args.args[0]
        assert compile_sql(statement) == 'DELETE FROM "Order"'

    @pytest.mark.asyncio
    async def test_delete_many_failure_is_wrapped(self):
        engine, conn = make_engine()
        client = DatabaseClient("postgres://u:p@h/shop_test", engine_factory=MagicMock(return_value=engine))
        await client.connect()
        conn.execute.side_effect = OperationalError("DELETE", {}, Exception("lock timeout"))

        with pytest.raises(DatabaseOperationException) as exc_info:
            await client.delete_many("Order")

        assert exc_info.value.table == "Order"
        assert exc_info.value.operation == "delete"

    @pytest.mark.asyncio
    async def test_async_context_manager_disconnects(self):
        engine, _ = make_engine()
        client = DatabaseClient("postgres://u:p@h/shop_test", engine_factory=MagicMock(return_value=engine))

        async with client:
            assert client.engine is engine

        engine.dispose.assert_awaited_once()
        assert client.engine is None
