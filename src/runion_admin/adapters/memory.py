"""In-memory ``DatabaseClient`` for tests and dry runs.

Rows live in plain dicts keyed by table name.  Transactions snapshot the
whole store on entry and put the snapshot back if the block raises (or is
cancelled), so restore and delete flows can be exercised without a live
database.

Usage:
    from runion_admin.adapters.memory import InMemoryAdapter

    adapter = InMemoryAdapter({"User": [{"id": "u1", "email": "a@b.hu"}]})
    async with adapter.transaction() as uow:
        await uow.delete("User")
"""

import asyncio
import copy
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from runion_admin.adapters.base import (
    Columns,
    is_collection,
    parse_columns,
    serialize_row,
    serialize_value,
)


def _matches(row: dict, filters: dict[str, Any] | None) -> bool:
    if not filters:
        return True
    for column, expected in filters.items():
        actual = row.get(column)
        if is_collection(expected):
            if actual not in expected:
                return False
        elif expected is None:
            if actual is not None:
                return False
        elif serialize_value(actual) != serialize_value(expected):
            return False
    return True


class InMemoryAdapter:
    """Transactional in-memory implementation of ``DatabaseClient``.

    Args:
        tables: Optional initial contents, ``{table: [row, ...]}``.
        primary_keys: Optional per-table primary key column (default ``"id"``).
    """

    def __init__(
        self,
        tables: dict[str, list[dict]] | None = None,
        primary_keys: dict[str, str] | None = None,
    ) -> None:
        self._tables: dict[str, list[dict]] = {
            name: [copy.deepcopy(r) for r in rows] for name, rows in (tables or {}).items()
        }
        self._primary_keys = primary_keys or {}
        self._lock = asyncio.Lock()
        self.closed = False

    def _pk(self, table: str) -> str:
        return self._primary_keys.get(table, "id")

    def rows(self, table: str) -> list[dict]:
        """Serialized copy of every row in ``table`` (test helper)."""
        return [serialize_row(copy.deepcopy(r)) for r in self._tables.get(table, [])]

    def _check_unique(self, table: str, new_rows: list[dict]) -> None:
        pk = self._pk(table)
        seen = {r.get(pk) for r in self._tables.get(table, [])}
        for row in new_rows:
            key = row.get(pk)
            if key in seen:
                raise ValueError(
                    f"duplicate key value violates unique constraint: {table}.{pk}={key}"
                )
            seen.add(key)

    # ------------------------------------------------------------------
    # CRUD Methods
    # ------------------------------------------------------------------

    async def select(
        self,
        table: str,
        columns: Columns = "*",
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        rows = [r for r in self._tables.get(table, []) if _matches(r, filters)]

        if order_by:
            key = order_by.lstrip("-")
            rows = sorted(
                rows,
                key=lambda r: (
                    r.get(key) is None,
                    "" if r.get(key) is None else serialize_value(r.get(key)),
                ),
                reverse=order_by.startswith("-"),
            )
        if limit is not None:
            rows = rows[:limit]

        names = parse_columns(columns)
        result = []
        for row in rows:
            projected = row if names is None else {c: row.get(c) for c in names}
            result.append(serialize_row(copy.deepcopy(projected)))
        return result

    async def insert(self, table: str, data: dict) -> dict:
        row = copy.deepcopy(data)
        row.setdefault(self._pk(table), str(uuid.uuid4()))
        self._check_unique(table, [row])
        self._tables.setdefault(table, []).append(row)
        return serialize_row(copy.deepcopy(row))

    async def bulk_insert(self, table: str, rows: list[dict]) -> int:
        new_rows = [copy.deepcopy(r) for r in rows]
        for row in new_rows:
            row.setdefault(self._pk(table), str(uuid.uuid4()))
        self._check_unique(table, new_rows)
        self._tables.setdefault(table, []).extend(new_rows)
        return len(new_rows)

    async def update(self, table: str, data: dict, filters: dict[str, Any]) -> dict:
        matched = [r for r in self._tables.get(table, []) if _matches(r, filters)]
        if not matched:
            raise ValueError(f"No rows matched filters: {filters}")
        for row in matched:
            row.update(copy.deepcopy(data))
        return serialize_row(copy.deepcopy(matched[0]))

    async def upsert(self, table: str, pk: str, row: dict) -> bool:
        for existing in self._tables.get(table, []):
            if existing.get(pk) == row.get(pk):
                existing.update(copy.deepcopy(row))
                return False
        self._tables.setdefault(table, []).append(copy.deepcopy(row))
        return True

    async def delete(self, table: str, filters: dict[str, Any] | None = None) -> int:
        rows = self._tables.get(table, [])
        kept = [r for r in rows if not _matches(r, filters)]
        self._tables[table] = kept
        return len(rows) - len(kept)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self, timeout: float | None = None) -> AsyncIterator["InMemoryAdapter"]:
        """Serialize transactions and roll back to a snapshot on any exit by exception."""
        async with self._lock:
            snapshot = copy.deepcopy(self._tables)
            try:
                yield self
            except BaseException:
                self._tables = snapshot
                raise

    async def close(self) -> None:
        self.closed = True
