"""Backup export driven by ``BackupSchema``.

Reads every selected table concurrently (a point-in-time read needs no
ordering) and assembles a ``BackupDocument``.  Only allow-listed columns
are selected.  Any failed read propagates, so no partial document is
ever produced.

Usage:
    from runion_admin.backup.exporter import create_backup
    from runion_admin.store import RUNION_SCHEMA

    document = await create_backup(adapter, schema=RUNION_SCHEMA)
    nested = await create_backup(adapter, schema=RUNION_SCHEMA, embed_relations=True)
"""

import asyncio
import logging
from datetime import datetime, timezone

from runion_admin.adapters.base import DatabaseClient
from runion_admin.backup.models import BackupDocument, BackupMetadata, BackupSchema, TableDef

logger = logging.getLogger(__name__)


def _embed(data: dict[str, list[dict]], schema: BackupSchema) -> dict[str, list[dict]]:
    """Nest child rows under their parents, deepest relations first.

    A relation with any child whose parent row is missing stays flat, so
    no row is dropped from the document.
    """
    embedded = {key: [dict(r) for r in rows] for key, rows in data.items()}
    for table_def in reversed(schema.tables):
        if table_def.name not in embedded:
            continue
        parent_ids = {parent.get(table_def.pk) for parent in embedded[table_def.name]}
        for relation in table_def.children:
            if relation.table not in embedded:
                continue
            orphans = [
                child for child in embedded[relation.table]
                if child.get(relation.field) not in parent_ids
            ]
            if orphans:
                logger.warning(
                    "Not embedding %s under %s: %d row(s) without a parent",
                    relation.table, table_def.name, len(orphans),
                )
                continue
            by_parent: dict[object, list[dict]] = {}
            for child in embedded[relation.table]:
                by_parent.setdefault(child.get(relation.field), []).append(child)
            for parent in embedded[table_def.name]:
                parent[relation.key] = by_parent.get(parent.get(table_def.pk), [])
            # Children now live under their parents only.
            del embedded[relation.table]
    return embedded


async def create_backup(
    adapter: DatabaseClient,
    *,
    schema: BackupSchema,
    tables: list[str] | None = None,
    embed_relations: bool = False,
    generator: str = "Runion Backup System",
    version: str = "1.0",
    source: str | None = None,
) -> BackupDocument:
    """Export the selected tables into a ``BackupDocument``.

    Args:
        adapter: Database adapter implementing ``DatabaseClient`` Protocol.
        schema: Declarative backup schema describing tables and columns.
        tables: Table keys to include (default: every schema table).
        embed_relations: Nest child rows under their parents
            (``events[].distances[].priceTiers[]``, ``orders[].items[]``)
            instead of emitting one flat array per table.
        generator: ``metadata.generator`` value.
        version: ``metadata.version`` value.
        source: Optional ``metadata.source`` value.

    Raises:
        KeyError: If ``tables`` names a table the schema does not define.
        Exception: Whatever the adapter raised for a failed read.
    """
    if tables is None:
        selected = list(schema.tables)
    else:
        by_name = {t.name: t for t in schema.tables}
        unknown = [name for name in tables if name not in by_name]
        if unknown:
            raise KeyError(f"Unknown backup table(s): {', '.join(unknown)}")
        selected = [by_name[name] for name in tables]

    async def read(table_def: TableDef) -> list[dict]:
        return await adapter.select(table_def.table, columns=table_def.columns)

    results = await asyncio.gather(*(read(t) for t in selected))
    data = {t.name: rows for t, rows in zip(selected, results)}
    counts = {name: len(rows) for name, rows in data.items()}

    if embed_relations:
        data = _embed(data, schema)

    metadata = BackupMetadata(
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        version=version,
        generator=generator,
        source=source,
        embedded=embed_relations,
        counts=counts,
    )
    logger.info(
        "Backup created: %d tables, %d rows%s",
        len(data), sum(counts.values()), " (relations embedded)" if embed_relations else "",
    )
    return BackupDocument(metadata=metadata, data=data)
