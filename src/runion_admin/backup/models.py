"""Backup schema and document models.

A ``BackupSchema`` declares, per table, the persisted columns (an explicit
allow-list), the foreign keys, and the relations that may be embedded in
an export.  Tables are listed parents first; the reverse order (plus any
purge-only tables) is the delete order.

Usage:
    from runion_admin.backup.models import BackupSchema, TableDef, ForeignKey

    schema = BackupSchema(tables=[
        TableDef(name="authors", table="Author", columns=["id", "name"]),
        TableDef(name="books", table="Book", columns=["id", "authorId", "title"],
                 parents=[ForeignKey(table="authors", field="authorId")]),
    ])
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ForeignKey(BaseModel):
    """Foreign key reference to a parent table."""

    table: str          # parent table key
    field: str          # FK column in this table


class ChildRelation(BaseModel):
    """One-to-many relation that relation-embedded exports nest under each row."""

    key: str            # array key on the parent row (e.g. "distances")
    table: str          # child table key
    field: str          # FK column on the child pointing at the parent


class TableDef(BaseModel):
    """Definition of a table for backup/restore operations."""

    name: str                                                        # key in BackupDocument.data
    table: str                                                       # database table name
    pk: str = "id"                                                   # primary key column
    columns: list[str]                                               # persisted columns (allow-list)
    json_columns: list[str] = Field(default_factory=list)            # JSON/JSONB columns
    datetime_columns: list[str] = Field(default_factory=list)        # timestamp columns
    parents: list[ForeignKey] = Field(default_factory=list)          # required FKs (skip row if missing)
    optional_refs: list[ForeignKey] = Field(default_factory=list)    # nullable FKs (null if missing)
    children: list[ChildRelation] = Field(default_factory=list)      # embeddable relations
    soft_delete: bool = False                                        # has a deletedAt column

    @model_validator(mode="after")
    def _check_columns(self) -> "TableDef":
        if self.pk not in self.columns:
            raise ValueError(f"{self.name}: primary key '{self.pk}' not in columns")
        declared = set(self.columns)
        referenced = [fk.field for fk in self.parents + self.optional_refs]
        referenced += self.json_columns + self.datetime_columns
        unknown = [c for c in referenced if c not in declared]
        if unknown:
            raise ValueError(f"{self.name}: unknown column(s) {', '.join(unknown)}")
        if self.soft_delete and "deletedAt" not in declared:
            raise ValueError(f"{self.name}: soft_delete requires a deletedAt column")
        return self

    def project(self, row: dict) -> dict:
        """Keep only persisted columns of ``row`` (relation keys are dropped)."""
        return {c: row[c] for c in self.columns if c in row}


class BackupSchema(BaseModel):
    """Declarative backup schema. Tables ordered by dependency (parents first).

    ``purge_tables`` are not backed up but are wiped by a destructive
    restore because they reference backed-up rows.  ``delete_order``, when
    given, must name every table and purge table exactly once; otherwise it
    is purge tables followed by ``tables`` reversed.
    """

    tables: list[TableDef]
    purge_tables: list[TableDef] = Field(default_factory=list)
    delete_order: list[str] | None = None

    @model_validator(mode="after")
    def _check_dependencies(self) -> "BackupSchema":
        seen: set[str] = set()
        for table_def in self.tables:
            if table_def.name in seen:
                raise ValueError(f"Duplicate table '{table_def.name}'")
            for fk in table_def.parents + table_def.optional_refs:
                if fk.table not in seen:
                    raise ValueError(
                        f"{table_def.name}.{fk.field} references '{fk.table}', "
                        f"which must be listed before it"
                    )
            seen.add(table_def.name)

        names = [t.name for t in self.tables] + [t.name for t in self.purge_tables]
        if self.delete_order is not None and sorted(self.delete_order) != sorted(names):
            missing = set(names) - set(self.delete_order)
            extra = set(self.delete_order) - set(names)
            raise ValueError(
                f"delete_order must list every table once "
                f"(missing: {sorted(missing)}, unknown: {sorted(extra)})"
            )
        return self

    def get(self, name: str) -> TableDef | None:
        """Find a TableDef (managed or purge-only) by key."""
        for t in self.tables + self.purge_tables:
            if t.name == name:
                return t
        return None

    def resolve(self, entity_type: str) -> TableDef:
        """Find a TableDef by key (``registrations``) or model name (``Registration``).

        Raises:
            KeyError: If no table matches.
        """
        wanted = entity_type.lower()
        for t in self.tables + self.purge_tables:
            if wanted in (t.name.lower(), t.table.lower()):
                return t
        raise KeyError(f"Unknown entity type: {entity_type}")

    def ordered_deletes(self) -> list[TableDef]:
        """Tables in delete order (children before parents)."""
        if self.delete_order is not None:
            return [self.get(name) for name in self.delete_order]
        return list(self.purge_tables) + list(reversed(self.tables))

    def jsonb_columns(self) -> list[str]:
        """Every JSON column name across the schema (for adapter construction)."""
        columns: set[str] = set()
        for t in self.tables + self.purge_tables:
            columns.update(t.json_columns)
        return sorted(columns)


# ============================================================================
# Backup document
# ============================================================================


class BackupMetadata(BaseModel):
    """``metadata`` section of a backup document."""

    model_config = ConfigDict(extra="allow")

    timestamp: str
    version: str = "1.0"
    generator: str | None = None
    source: str | None = None
    embedded: bool = False
    counts: dict[str, int] = Field(default_factory=dict)


class BackupDocument(BaseModel):
    """Full JSON snapshot of selected tables plus metadata."""

    metadata: BackupMetadata
    data: dict[str, list[dict[str, Any]]]

    @field_validator("data", mode="before")
    @classmethod
    def _coerce_tables(cls, value: Any) -> Any:
        # Single-row tables (e.g. globalSettings) were sometimes exported as an object.
        if not isinstance(value, dict):
            return value
        coerced: dict[str, Any] = {}
        for key, rows in value.items():
            if rows is None:
                coerced[key] = []
            elif isinstance(rows, dict):
                coerced[key] = [rows]
            else:
                coerced[key] = rows
        return coerced


# ============================================================================
# Restore summaries
# ============================================================================


class TableSummary(BaseModel):
    """Per-table restore counts."""

    deleted: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0


class RestoreSummary(BaseModel):
    """Result of a restore run."""

    mode: Literal["replace", "merge"]
    tables: dict[str, TableSummary] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)

    def table(self, name: str) -> TableSummary:
        return self.tables.setdefault(name, TableSummary())

    @property
    def total_written(self) -> int:
        return sum(t.inserted + t.updated for t in self.tables.values())

    @property
    def total_skipped(self) -> int:
        return sum(t.skipped for t in self.tables.values())
