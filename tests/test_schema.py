"""Tests for the live-schema comparison and introspector guards."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from runion_admin.schema import SchemaIntrospector, expected_columns, validate_schema
from runion_admin.store import AUDIT_LOG, USERS


class TestValidateSchema:
    def test_exact_match(self) -> None:
        result = validate_schema({"User": {"id", "email"}}, {"User": {"id", "email"}})
        assert result.valid
        assert result.error_count == 0
        assert result.format_report() == "Schema valid"

    def test_missing_table_and_column(self) -> None:
        actual = {"User": {"id"}}
        expected = {"User": {"id", "email"}, "Event": {"id"}}
        result = validate_schema(actual, expected)
        assert not result.valid
        assert result.missing_tables == ["Event"]
        assert [(d.table, d.column) for d in result.missing_columns] == [("User", "email")]
        assert result.format_report().splitlines() == [
            "Schema check failed (2 problems):",
            "  - missing table Event",
            "  - missing column User.email",
        ]

    def test_extra_columns_are_warnings(self) -> None:
        result = validate_schema({"User": {"id", "legacyField"}}, {"User": {"id"}})
        assert result.valid
        assert result.extra_columns == {"User": ["legacyField"]}
        assert "! User has columns not covered by backups: legacyField" in result.format_report()

    def test_unmanaged_tables_ignored(self) -> None:
        assert validate_schema({"User": {"id"}, "Session": {"id"}}, {"User": {"id"}}).valid

    def test_expected_columns_from_table_defs(self) -> None:
        columns = expected_columns([USERS, AUDIT_LOG])
        assert set(columns) == {"User", "AuditLog"}
        assert "passwordHash" in columns["User"]
        assert "entityData" in columns["AuditLog"]


class TestSchemaIntrospector:
    async def test_requires_context_manager(self) -> None:
        introspector = SchemaIntrospector("postgresql://localhost/runion")
        with pytest.raises(RuntimeError, match="not connected"):
            await introspector.get_column_names()

    async def test_connect_timeout_appended(self) -> None:
        conn = MagicMock()
        conn.close = AsyncMock()
        with patch(
            "runion_admin.schema.introspector.AsyncConnection.connect",
            AsyncMock(return_value=conn),
        ) as connect:
            async with SchemaIntrospector("postgresql://localhost/runion?sslmode=require"):
                pass
        connect.assert_awaited_once_with("postgresql://localhost/runion?sslmode=require&connect_timeout=10")
        conn.close.assert_awaited_once()

    async def test_excluded_tables_skipped(self) -> None:
        cursor = MagicMock()
        cursor.execute = AsyncMock()
        cursor.fetchall = AsyncMock(return_value=[
            ("User", "id"), ("User", "email"), ("_prisma_migrations", "id"),
        ])
        cursor.__aenter__ = AsyncMock(return_value=cursor)
        cursor.__aexit__ = AsyncMock(return_value=None)
        conn = MagicMock()
        conn.cursor = MagicMock(return_value=cursor)
        conn.close = AsyncMock()

        with patch(
            "runion_admin.schema.introspector.AsyncConnection.connect",
            AsyncMock(return_value=conn),
        ):
            async with SchemaIntrospector("postgresql://localhost/runion") as introspector:
                columns = await introspector.get_column_names()

        assert columns == {"User": {"id", "email"}}
        cursor.execute.assert_awaited_once()
        assert cursor.execute.await_args.args[1] == ("public",)
