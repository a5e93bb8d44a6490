"""Load, validate, and dump backup documents.

The canonical document shape is::

    {"metadata": {"timestamp": ..., "version": "1.0", "generator": ...},
     "data": {"<table key>": [row, ...], ...}}

with one flat array per table.  Older exports are still accepted:

- relation-embedded rows (``events[].distances[].priceTiers[]``,
  ``orders[].items[]``), flattened by following the schema's
  ``ChildRelation`` declarations;
- renamed table keys, mapped through ``key_aliases``;
- the pull-backup shape with a top-level ``timestamp`` and the table
  arrays beside it instead of under ``data``.

Usage:
    from runion_admin.backup.document import parse_backup, validate_backup

    document = parse_backup(text, schema)
    report = validate_backup("backups/daily/backup-2026-02-13.json", schema)
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from runion_admin.backup.models import BackupDocument, BackupSchema
from runion_admin.errors import BackupFormatError

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = ("1.0",)


def _split_document(raw: Any, schema: BackupSchema) -> tuple[dict, dict]:
    """Return ``(metadata, data)`` from any accepted document shape."""
    if not isinstance(raw, dict):
        raise BackupFormatError("Invalid backup format: document must be a JSON object")

    if "data" in raw or "metadata" in raw:
        metadata, data = raw.get("metadata"), raw.get("data")
        missing = [key for key, value in (("metadata", metadata), ("data", data)) if not value]
        if missing:
            raise BackupFormatError(f"Invalid backup format: missing {', '.join(missing)}")
        if not isinstance(metadata, dict) or not isinstance(data, dict):
            raise BackupFormatError("Invalid backup format: metadata and data must be objects")
        return metadata, data

    known = {t.name for t in schema.tables}
    if "timestamp" in raw and known & raw.keys():
        logger.debug("Reading legacy pull-backup shape (top-level tables)")
        data = {k: v for k, v in raw.items() if k != "timestamp"}
        return {"timestamp": raw["timestamp"], "source": "pull-backup"}, data

    raise BackupFormatError("Invalid backup format: missing metadata, data")


def _rename_keys(data: dict, key_aliases: dict[str, str] | None) -> dict:
    renamed = dict(data)
    for old, new in (key_aliases or {}).items():
        if old in renamed and not renamed.get(new):
            renamed[new] = renamed.pop(old)
    return renamed


def flatten_relations(data: dict[str, list[dict]], schema: BackupSchema) -> dict[str, list[dict]]:
    """Lift embedded child rows into their own top-level arrays.

    Tables are walked parents first, so rows nested two levels deep
    (event -> distance -> price tier) surface in one pass.  A nested
    array is only used when the child's top-level array is missing or
    empty; flat arrays are the canonical shape.
    """
    flat = {key: list(rows) for key, rows in data.items()}
    for table_def in schema.tables:
        for relation in table_def.children:
            nested: list[dict] = []
            for parent in flat.get(table_def.name, []):
                for child in parent.get(relation.key) or []:
                    child = dict(child)
                    child.setdefault(relation.field, parent.get(table_def.pk))
                    nested.append(child)
            if nested and not flat.get(relation.table):
                logger.debug(
                    "Extracted %d %s rows nested under %s",
                    len(nested), relation.table, table_def.name,
                )
                flat[relation.table] = nested
    return flat


def parse_backup(
    text: str | bytes,
    schema: BackupSchema,
    key_aliases: dict[str, str] | None = None,
) -> BackupDocument:
    """Parse backup JSON text into a normalized ``BackupDocument``.

    Raises:
        BackupFormatError: If the text is not JSON or lacks metadata/data.
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise BackupFormatError(f"Invalid JSON: {e}") from e

    metadata, data = _split_document(raw, schema)
    data = _rename_keys(data, key_aliases)
    data = {k: ([] if v is None else [v] if isinstance(v, dict) else v) for k, v in data.items()}
    data = flatten_relations(data, schema)

    try:
        return BackupDocument(metadata=metadata, data=data)
    except ValidationError as e:
        raise BackupFormatError(f"Invalid backup format: {e}") from e


def load_backup(
    backup_path: str | Path,
    schema: BackupSchema,
    key_aliases: dict[str, str] | None = None,
) -> BackupDocument:
    """Read and parse a backup file (UTF-8)."""
    return parse_backup(Path(backup_path).read_text(encoding="utf-8"), schema, key_aliases)


def dump_backup(document: BackupDocument) -> str:
    """Serialize a document as pretty-printed UTF-8 JSON."""
    return json.dumps(
        document.model_dump(mode="json"), indent=2, ensure_ascii=False, default=str
    )


def validate_backup(
    backup_path: str | Path,
    schema: BackupSchema,
    key_aliases: dict[str, str] | None = None,
) -> dict:
    """Validate backup file format and data integrity.

    This function is **sync** -- it only reads a local JSON file with
    no database I/O.

    Errors (the document cannot be restored):
        unreadable file, invalid JSON, missing ``metadata`` / ``data``,
        rows without a primary key, unsupported ``metadata.version``.

    Warnings (restorable, but worth a look):
        table keys the schema does not know, rows whose required parent
        is not in the document.

    Returns:
        Dict with ``valid`` (bool), ``errors`` (list[str]),
        ``warnings`` (list[str]) and ``counts`` (rows per table).
    """
    errors: list[str] = []
    warnings: list[str] = []
    report: dict[str, Any] = {"valid": False, "errors": errors, "warnings": warnings, "counts": {}}

    try:
        document = load_backup(backup_path, schema, key_aliases)
    except FileNotFoundError:
        errors.append(f"Backup file not found: {backup_path}")
        return report
    except BackupFormatError as e:
        errors.append(str(e))
        return report

    version = document.metadata.version
    if version not in SUPPORTED_VERSIONS:
        errors.append(
            f"Unsupported backup version '{version}' "
            f"(expected {' or '.join(repr(v) for v in SUPPORTED_VERSIONS)})"
        )

    known = {t.name for t in schema.tables}
    for key in sorted(set(document.data) - known):
        warnings.append(f"Unknown table '{key}' will be ignored")

    pk_values: dict[str, set] = {}
    for table_def in schema.tables:
        rows = document.data.get(table_def.name, [])
        report["counts"][table_def.name] = len(rows)
        pk_values[table_def.name] = set()
        for index, row in enumerate(rows):
            if not row.get(table_def.pk):
                errors.append(f"{table_def.name} row {index} missing '{table_def.pk}'")
            else:
                pk_values[table_def.name].add(row[table_def.pk])

    for table_def in schema.tables:
        for fk in table_def.parents:
            if fk.table not in document.data:
                continue
            parents = pk_values[fk.table]
            for row in document.data.get(table_def.name, []):
                ref = row.get(fk.field)
                if ref is not None and ref not in parents:
                    warnings.append(
                        f"Orphaned {table_def.name} '{row.get(table_def.pk)}': "
                        f"{fk.field}={ref} not in backup"
                    )

    report["valid"] = not errors
    return report
