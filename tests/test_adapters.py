"""Tests for the adapter layer: in-memory store and postgres SQL construction."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from runion_admin.adapters.base import is_collection, parse_columns, serialize_row
from runion_admin.adapters.memory import InMemoryAdapter
from runion_admin.adapters.postgres import (
    AsyncPostgresAdapter,
    PostgresSession,
    build_where,
    normalize_url,
    quote_ident,
)


@pytest.fixture
def people() -> InMemoryAdapter:
    return InMemoryAdapter({
        "Person": [
            {"id": "a", "name": "Anna", "club": "BSE", "age": 30},
            {"id": "b", "name": "Béla", "club": None, "age": 41},
            {"id": "c", "name": "Csaba", "club": "BSE", "age": 25},
        ]
    })


# ------------------------------------------------------------------
# Shared helpers
# ------------------------------------------------------------------


class TestBaseHelpers:
    def test_parse_columns(self) -> None:
        """'*' means all columns; strings are split on commas."""
        assert parse_columns("*") is None
        assert parse_columns("id, name") == ["id", "name"]
        assert parse_columns(["id"]) == ["id"]

    def test_is_collection(self) -> None:
        assert is_collection([1])
        assert is_collection({1})
        assert not is_collection("abc")
        assert not is_collection({"a": 1})

    def test_serialize_row(self) -> None:
        """Datetimes become ISO strings."""
        ts = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert serialize_row({"t": ts, "n": 1}) == {"t": "2026-01-01T00:00:00+00:00", "n": 1}


# ------------------------------------------------------------------
# InMemoryAdapter
# ------------------------------------------------------------------


class TestInMemoryFilters:
    async def test_equality(self, people) -> None:
        rows = await people.select("Person", filters={"club": "BSE"})
        assert {r["id"] for r in rows} == {"a", "c"}

    async def test_none_matches_null(self, people) -> None:
        rows = await people.select("Person", filters={"club": None})
        assert [r["id"] for r in rows] == ["b"]

    async def test_collection_is_in(self, people) -> None:
        rows = await people.select("Person", filters={"id": ["a", "b"]})
        assert {r["id"] for r in rows} == {"a", "b"}

    async def test_empty_collection_matches_nothing(self, people) -> None:
        assert await people.select("Person", filters={"id": []}) == []

    async def test_no_filters_matches_all(self, people) -> None:
        assert len(await people.select("Person")) == 3

    async def test_order_limit_columns(self, people) -> None:
        """'-age' sorts descending, limit caps, columns project."""
        rows = await people.select("Person", columns=["id"], order_by="-age", limit=2)
        assert rows == [{"id": "b"}, {"id": "a"}]

    async def test_unknown_table_is_empty(self, people) -> None:
        assert await people.select("Nope") == []


class TestInMemoryWrites:
    async def test_insert_fills_id(self) -> None:
        db = InMemoryAdapter()
        row = await db.insert("Person", {"name": "Dóra"})
        assert row["id"]
        assert db.rows("Person") == [row]

    async def test_duplicate_key_raises(self, people) -> None:
        with pytest.raises(ValueError, match="duplicate key"):
            await people.insert("Person", {"id": "a"})
        with pytest.raises(ValueError):
            await people.bulk_insert("Person", [{"id": "x"}, {"id": "x"}])

    async def test_update_returns_first_row(self, people) -> None:
        row = await people.update("Person", {"age": 31}, {"id": "a"})
        assert row["age"] == 31

    async def test_update_without_match_raises(self, people) -> None:
        with pytest.raises(ValueError, match="No rows matched"):
            await people.update("Person", {"age": 1}, {"id": "zzz"})

    async def test_upsert_reports_insert(self, people) -> None:
        assert await people.upsert("Person", "id", {"id": "d", "name": "Dóra"}) is True
        assert await people.upsert("Person", "id", {"id": "d", "name": "Dorka"}) is False
        assert (await people.select("Person", filters={"id": "d"}))[0]["name"] == "Dorka"

    async def test_delete_counts(self, people) -> None:
        assert await people.delete("Person", {"club": "BSE"}) == 2
        assert await people.delete("Person") == 1
        assert people.rows("Person") == []

    async def test_select_returns_copies(self, people) -> None:
        rows = await people.select("Person", filters={"id": "a"})
        rows[0]["name"] = "changed"
        assert people.rows("Person")[0]["name"] == "Anna"


class TestInMemoryTransaction:
    async def test_commit(self, people) -> None:
        async with people.transaction() as uow:
            await uow.delete("Person", {"id": "a"})
        assert len(people.rows("Person")) == 2

    async def test_rollback_on_error(self, people) -> None:
        with pytest.raises(RuntimeError):
            async with people.transaction() as uow:
                await uow.delete("Person")
                raise RuntimeError("boom")
        assert len(people.rows("Person")) == 3

    async def test_close(self, people) -> None:
        await people.close()
        assert people.closed


# ------------------------------------------------------------------
# Postgres SQL construction
# ------------------------------------------------------------------


class TestPostgresHelpers:
    def test_normalize_url(self) -> None:
        assert normalize_url("postgres://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"
        assert normalize_url("postgresql://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"
        assert normalize_url("postgresql+asyncpg://h/db") == "postgresql+asyncpg://h/db"

    def test_quote_ident(self) -> None:
        assert quote_ident("OrderItem") == '"OrderItem"'
        assert quote_ident('we"ird') == '"we""ird"'

    def test_build_where(self) -> None:
        params: dict = {}
        clause = build_where({"userId": "u1", "deletedAt": None, "id": ["a", "b"]}, params)
        assert clause == ' WHERE "userId" = :w_0 AND "deletedAt" IS NULL AND "id" = ANY(:w_2)'
        assert params == {"w_0": "u1", "w_2": ["a", "b"]}

    def test_build_where_empty_collection(self) -> None:
        params: dict = {}
        assert build_where({"id": []}, params) == " WHERE FALSE"
        assert params == {}

    def test_no_filters(self) -> None:
        assert build_where(None, {}) == ""


def _fake_connection(rows: list[tuple] = (), keys: list[str] = ()) -> MagicMock:
    result = MagicMock()
    result.keys.return_value = list(keys)
    result.fetchall.return_value = list(rows)
    result.fetchone.return_value = rows[0] if rows else None
    result.scalar.return_value = True
    result.rowcount = len(rows)
    conn = MagicMock()
    conn.execute = AsyncMock(return_value=result)
    return conn


class TestPostgresSession:
    async def test_select_sql(self) -> None:
        conn = _fake_connection([("r1",)], ["id"])
        session = PostgresSession(conn, frozenset())
        rows = await session.select(
            "Registration", ["id"], {"deletedAt": None}, order_by="-createdAt", limit=5
        )
        assert rows == [{"id": "r1"}]
        sql = str(conn.execute.call_args.args[0])
        assert sql == (
            'SELECT "id" FROM "Registration" WHERE "deletedAt" IS NULL '
            'ORDER BY "createdAt" DESC LIMIT :row_limit'
        )
        assert conn.execute.call_args.args[1] == {"row_limit": 5}

    async def test_jsonb_insert_casts(self) -> None:
        conn = _fake_connection([("r1", "{}")], ["id", "formData"])
        session = PostgresSession(conn, frozenset({"formData"}))
        await session.insert("Registration", {"id": "r1", "formData": {"a": 1}})
        sql = str(conn.execute.call_args.args[0])
        assert "CAST(:v_1 AS jsonb)" in sql
        assert conn.execute.call_args.args[1]["v_1"] == '{"a": 1}'

    async def test_aware_datetimes_bound_as_naive_utc(self) -> None:
        """timestamp columns have no time zone; aware values are bound as naive UTC."""
        budapest = timezone(timedelta(hours=1))
        conn = _fake_connection([("a1",)], ["id"])
        session = PostgresSession(conn, frozenset())

        await session.insert(
            "AuditLog", {"id": "a1", "createdAt": datetime(2026, 2, 13, 3, 0, tzinfo=budapest)}
        )
        bound = conn.execute.call_args.args[1]["v_1"]
        assert bound == datetime(2026, 2, 13, 2, 0)
        assert bound.tzinfo is None

        await session.update(
            "Registration", {"updatedAt": datetime(2026, 2, 13, 2, 0, tzinfo=timezone.utc)}, {"id": "r1"}
        )
        assert conn.execute.call_args.args[1]["set_0"] == datetime(2026, 2, 13, 2, 0)

    async def test_naive_datetimes_unchanged(self) -> None:
        conn = _fake_connection([("a1",)], ["id"])
        session = PostgresSession(conn, frozenset())
        naive = datetime(2026, 2, 13, 2, 0)
        await session.insert("AuditLog", {"id": "a1", "createdAt": naive})
        assert conn.execute.call_args.args[1]["v_1"] is naive

    async def test_upsert_sql(self) -> None:
        conn = _fake_connection()
        session = PostgresSession(conn, frozenset())
        assert await session.upsert("User", "id", {"id": "u1", "email": "a@b.hu"}) is True
        sql = str(conn.execute.call_args.args[0])
        assert 'ON CONFLICT ("id") DO UPDATE SET "email" = EXCLUDED."email"' in sql

    async def test_update_without_match_raises(self) -> None:
        conn = _fake_connection()
        session = PostgresSession(conn, frozenset())
        with pytest.raises(ValueError):
            await session.update("User", {"email": "x"}, {"id": "missing"})

    async def test_delete_all(self) -> None:
        conn = _fake_connection([("a",), ("b",)])
        session = PostgresSession(conn, frozenset())
        assert await session.delete("Notification") == 2
        assert str(conn.execute.call_args.args[0]) == 'DELETE FROM "Notification"'


class TestAsyncPostgresAdapter:
    async def test_construction_does_not_connect(self) -> None:
        adapter = AsyncPostgresAdapter("postgres://u:p@localhost/db", jsonb_columns=["formData"])
        assert adapter._jsonb_columns == frozenset({"formData"})
        assert adapter._engine.url.drivername == "postgresql+asyncpg"
        await adapter.close()
