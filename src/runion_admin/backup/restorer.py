"""Restore a ``BackupDocument`` under one of two policies.

``restore_replace`` (destructive): inside one transaction, delete every
managed table children-first, then bulk insert the document parents-first.
The document must be self-consistent; any failure rolls everything back.

``restore_merge`` (non-destructive): inside one transaction, upsert every
row parents-first.  Rows whose required parent cannot be found (in the
database or earlier in the document) are skipped; unresolvable nullable
references are set to ``NULL``.  Both cases are reported as warnings.
Nothing is ever deleted.

Usage:
    from runion_admin.backup.restorer import restore_merge, restore_replace

    summary = await restore_replace(adapter, document, schema=RUNION_SCHEMA)
    summary = await restore_merge(adapter, document, schema=RUNION_SCHEMA, timeout=20)
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, TypeVar

from runion_admin.adapters.base import DatabaseClient, UnitOfWork
from runion_admin.backup.models import BackupDocument, BackupSchema, RestoreSummary, TableDef
from runion_admin.errors import RunionAdminError, TransactionFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_in_transaction(
    client: DatabaseClient,
    timeout: float | None,
    operation: Callable[[UnitOfWork], Awaitable[T]],
) -> T:
    """Run ``operation`` inside one transaction with an overall deadline.

    The backend also receives ``timeout`` as its per-statement limit.
    When the deadline passes the block is cancelled and the transaction
    rolled back.

    Raises:
        TransactionFailure: On timeout or any backend error (chained).
    """
    try:
        async with asyncio.timeout(timeout):
            async with client.transaction(timeout=timeout) as uow:
                return await operation(uow)
    except TimeoutError as e:
        raise TransactionFailure(f"Transaction timed out after {timeout}s") from e
    except RunionAdminError:
        raise
    except Exception as e:
        raise TransactionFailure(f"Transaction failed: {e}") from e


def _parse_datetime(value: Any) -> Any:
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value


def prepare_row(table_def: TableDef, row: dict) -> dict:
    """Project ``row`` onto the table's allow-list and parse timestamp strings."""
    prepared = table_def.project(row)
    for column in table_def.datetime_columns:
        if column in prepared:
            prepared[column] = _parse_datetime(prepared[column])
    return prepared


def _unknown_tables(document: BackupDocument, schema: BackupSchema) -> list[str]:
    known = {t.name for t in schema.tables}
    return [
        f"Unknown table '{key}' ignored"
        for key in sorted(set(document.data) - known)
    ]


# ============================================================================
# Policy A: destructive full replace
# ============================================================================


async def restore_replace(
    client: DatabaseClient,
    document: BackupDocument,
    *,
    schema: BackupSchema,
    timeout: float | None = 60,
) -> RestoreSummary:
    """Delete all managed rows, then re-insert the document.

    Args:
        client: Database adapter implementing ``DatabaseClient`` Protocol.
        document: Parsed backup (flat arrays; see ``parse_backup``).
        schema: Backup schema giving column allow-lists and both orders.
        timeout: Transaction deadline in seconds.

    Raises:
        TransactionFailure: If any step fails or the deadline passes.
            Nothing is committed in that case.
    """
    summary = RestoreSummary(mode="replace", warnings=_unknown_tables(document, schema))

    async def replace(uow: UnitOfWork) -> None:
        for table_def in schema.ordered_deletes():
            deleted = await uow.delete(table_def.table)
            summary.table(table_def.name).deleted = deleted
            logger.debug("Deleted %d rows from %s", deleted, table_def.table)

        for table_def in schema.tables:
            rows = [prepare_row(table_def, r) for r in document.data.get(table_def.name, [])]
            if not rows:
                continue
            inserted = await uow.bulk_insert(table_def.table, rows)
            summary.table(table_def.name).inserted = inserted
            logger.debug("Inserted %d rows into %s", inserted, table_def.table)

    await run_in_transaction(client, timeout, replace)
    logger.info(
        "Destructive restore committed: %d rows inserted across %d tables",
        summary.total_written, len(schema.tables),
    )
    return summary


# ============================================================================
# Policy B: non-destructive upsert merge
# ============================================================================


async def _load_known_ids(
    uow: UnitOfWork,
    schema: BackupSchema,
    table_def: TableDef,
    rows: list[dict],
    known: dict[str, set],
) -> None:
    """Add to ``known`` every referenced parent id that exists in the database."""
    for fk in table_def.parents + table_def.optional_refs:
        parent_def = schema.get(fk.table)
        cache = known.setdefault(fk.table, set())
        wanted = {r.get(fk.field) for r in rows} - cache - {None}
        if not wanted:
            continue
        found = await uow.select(
            parent_def.table,
            columns=[parent_def.pk],
            filters={parent_def.pk: sorted(wanted, key=str)},
        )
        cache.update(r[parent_def.pk] for r in found)


async def restore_merge(
    client: DatabaseClient,
    document: BackupDocument,
    *,
    schema: BackupSchema,
    timeout: float | None = 20,
) -> RestoreSummary:
    """Upsert every document row by primary key; never delete.

    Args:
        client: Database adapter implementing ``DatabaseClient`` Protocol.
        document: Parsed backup (flat arrays; see ``parse_backup``).
        schema: Backup schema giving column allow-lists and FK declarations.
        timeout: Transaction deadline in seconds.

    Returns:
        Summary with per-table inserted/updated/skipped counts and one
        warning per skipped row or nulled reference.

    Raises:
        TransactionFailure: If a write fails or the deadline passes.
    """
    summary = RestoreSummary(mode="merge", warnings=_unknown_tables(document, schema))

    def warn(message: str) -> None:
        logger.warning(message)
        summary.warnings.append(message)

    async def merge(uow: UnitOfWork) -> None:
        known: dict[str, set] = {}

        for table_def in schema.tables:
            rows = [prepare_row(table_def, r) for r in document.data.get(table_def.name, [])]
            if not rows:
                continue
            counts = summary.table(table_def.name)
            await _load_known_ids(uow, schema, table_def, rows, known)

            for row in rows:
                row_id = row.get(table_def.pk)
                if row_id is None:
                    warn(f"{table_def.name}: row without '{table_def.pk}' skipped")
                    counts.skipped += 1
                    continue

                missing = [
                    fk for fk in table_def.parents
                    if row.get(fk.field) not in known.get(fk.table, set())
                ]
                if missing:
                    refs = ", ".join(f"{fk.field}={row.get(fk.field)}" for fk in missing)
                    warn(f"{table_def.name} {row_id} skipped: missing {refs}")
                    counts.skipped += 1
                    continue

                for ref in table_def.optional_refs:
                    value = row.get(ref.field)
                    if value is not None and value not in known.get(ref.table, set()):
                        warn(f"{table_def.name} {row_id}: {ref.field}={value} not found, set to null")
                        row[ref.field] = None

                if await uow.upsert(table_def.table, table_def.pk, row):
                    counts.inserted += 1
                else:
                    counts.updated += 1
                known.setdefault(table_def.name, set()).add(row_id)

    await run_in_transaction(client, timeout, merge)
    logger.info(
        "Merge restore committed: %d rows written, %d skipped",
        summary.total_written, summary.total_skipped,
    )
    return summary


async def restore_backup(
    client: DatabaseClient,
    document: BackupDocument,
    *,
    schema: BackupSchema,
    mode: str = "replace",
    timeout: float | None = None,
) -> RestoreSummary:
    """Dispatch to ``restore_replace`` or ``restore_merge`` by ``mode``."""
    if mode == "replace":
        return await restore_replace(
            client, document, schema=schema, timeout=60 if timeout is None else timeout
        )
    if mode == "merge":
        return await restore_merge(
            client, document, schema=schema, timeout=20 if timeout is None else timeout
        )
    raise ValueError(f"Unknown restore mode '{mode}' (expected 'replace' or 'merge')")
