"""Database client protocol definitions.

Defines the ``UnitOfWork`` Protocol (the CRUD surface every storage
backend offers) and the ``DatabaseClient`` Protocol, which adds
transactions and connection cleanup.  All methods are ``async def``.

Filter semantics shared by every adapter:

- ``{"col": value}`` matches rows where ``col = value``.
- ``{"col": None}`` matches rows where ``col IS NULL``.
- ``{"col": [a, b]}`` (list, tuple or set) matches rows where ``col IN (a, b)``;
  an empty collection matches nothing.
- Several keys are combined with AND.  ``filters=None`` matches every row.

``order_by`` names a single column; a leading ``-`` sorts descending.

Usage:
    from runion_admin.adapters.base import DatabaseClient

    async def purge(client: DatabaseClient) -> None:
        async with client.transaction(timeout=20) as uow:
            await uow.delete("OrderItem")
            await uow.delete("Order")
"""

from contextlib import AbstractAsyncContextManager
from datetime import date, datetime
from typing import Any, Protocol, Sequence
from uuid import UUID

Columns = str | Sequence[str]


class UnitOfWork(Protocol):
    """CRUD operations available both standalone and inside a transaction."""

    async def select(
        self,
        table: str,
        columns: Columns = "*",
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Table name.
            columns: ``"*"``, a comma-separated string, or a sequence of
                column names.
            filters: Optional filters (see module docstring).
            order_by: Optional column to sort by, ``-`` prefix for descending.
            limit: Optional maximum number of rows.

        Returns:
            List of dicts, one per row, with JSON-compatible values
            (datetimes as ISO strings, UUIDs as strings).
        """
        ...

    async def insert(self, table: str, data: dict) -> dict:
        """Insert one row and return the created row."""
        ...

    async def bulk_insert(self, table: str, rows: list[dict]) -> int:
        """Insert many rows in one statement batch.

        Returns:
            Number of rows inserted.

        Raises:
            Exception: On duplicate key or constraint violation.
        """
        ...

    async def update(self, table: str, data: dict, filters: dict[str, Any]) -> dict:
        """Update matching rows and return the first updated row.

        Raises:
            ValueError: If no rows match filters.
        """
        ...

    async def upsert(self, table: str, pk: str, row: dict) -> bool:
        """Insert ``row`` or update the existing row with the same ``pk`` value.

        Returns:
            ``True`` if the row was inserted, ``False`` if it was updated.
        """
        ...

    async def delete(self, table: str, filters: dict[str, Any] | None = None) -> int:
        """Delete matching rows (all rows when ``filters`` is ``None``).

        Returns:
            Number of rows deleted.
        """
        ...


class DatabaseClient(UnitOfWork, Protocol):
    """Database client interface that all adapters must implement."""

    def transaction(
        self, timeout: float | None = None
    ) -> AbstractAsyncContextManager[UnitOfWork]:
        """Open a transaction scope.

        Everything done through the yielded ``UnitOfWork`` commits when the
        block exits normally and rolls back when it raises (including
        cancellation).  ``timeout`` is a per-statement limit in seconds
        enforced by the backend where supported.

        Example:
            async with client.transaction(timeout=60) as uow:
                await uow.delete("Registration")
                await uow.bulk_insert("Registration", rows)
        """
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...


def serialize_value(value: Any) -> Any:
    """Convert driver values to JSON-compatible types."""
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def serialize_row(row: dict) -> dict:
    """Serialize all values in a row dict."""
    return {k: serialize_value(v) for k, v in row.items()}


def parse_columns(columns: Columns) -> list[str] | None:
    """Normalize a ``columns`` argument; ``None`` means all columns."""
    if isinstance(columns, str):
        if columns.strip() == "*":
            return None
        return [c.strip() for c in columns.split(",") if c.strip()]
    return list(columns)


def is_collection(value: Any) -> bool:
    """Whether a filter value expresses an IN match."""
    return isinstance(value, (list, tuple, set, frozenset))
