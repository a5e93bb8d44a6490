"""Result models for the live-schema preflight check."""

from pydantic import BaseModel, Field


class ColumnDiff(BaseModel):
    """A column the Entity Store expects but the database lacks."""

    table: str
    column: str


class SchemaValidationResult(BaseModel):
    """Outcome of comparing live columns with the Entity Store allow-lists."""

    valid: bool
    missing_tables: list[str] = Field(default_factory=list)
    missing_columns: list[ColumnDiff] = Field(default_factory=list)
    extra_columns: dict[str, list[str]] = Field(default_factory=dict)  # Not exported; warning only

    @property
    def error_count(self) -> int:
        return len(self.missing_tables) + len(self.missing_columns)

    def format_report(self) -> str:
        """Human-readable report, one problem per line."""
        if self.valid:
            lines = ["Schema valid"]
        else:
            lines = [f"Schema check failed ({self.error_count} problems):"]
            lines += [f"  - missing table {t}" for t in self.missing_tables]
            lines += [f"  - missing column {d.table}.{d.column}" for d in self.missing_columns]
        for table, columns in sorted(self.extra_columns.items()):
            lines.append(f"  ! {table} has columns not covered by backups: {', '.join(columns)}")
        return "\n".join(lines)


class ConnectionResult(BaseModel):
    """Result of ``connect_and_validate()``."""

    success: bool
    profile_name: str | None = None
    schema_valid: bool = False
    schema_report: SchemaValidationResult | None = None
    error: str | None = None
