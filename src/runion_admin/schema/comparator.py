"""Schema comparison using set operations.

Compares the Entity Store column allow-lists against the live database.
Pure logic: no I/O, no database connections.

Usage:
    from runion_admin.schema.comparator import expected_columns, validate_schema
    from runion_admin.schema.introspector import SchemaIntrospector

    async with SchemaIntrospector(database_url) as introspector:
        actual = await introspector.get_column_names()

    result = validate_schema(actual, expected_columns(RUNION_SCHEMA.tables))
    print(result.format_report())
"""

from collections.abc import Iterable

from runion_admin.backup.models import TableDef
from runion_admin.schema.models import ColumnDiff, SchemaValidationResult


def expected_columns(table_defs: Iterable[TableDef]) -> dict[str, set[str]]:
    """Map each physical table name to its allow-listed columns."""
    return {t.table: set(t.columns) for t in table_defs}


def validate_schema(
    actual_columns: dict[str, set[str]],
    expected_columns: dict[str, set[str]],
) -> SchemaValidationResult:
    """Validate the live database against expected columns.

    Missing tables and missing columns make the result invalid.  Columns
    present in the database but absent from an allow-list are reported in
    ``extra_columns`` as a warning only: backups silently leave them out.

    Examples:
        >>> validate_schema({"User": {"id", "name"}}, {"User": {"id", "name"}}).valid
        True
        >>> result = validate_schema({"User": {"id"}}, {"User": {"id", "name"}})
        >>> result.valid
        False
        >>> result.missing_columns[0].column
        'name'
    """
    actual_tables = set(actual_columns)
    expected_tables = set(expected_columns)

    missing_tables = sorted(expected_tables - actual_tables)

    missing_columns: list[ColumnDiff] = []
    extra_columns: dict[str, list[str]] = {}
    for table_name in sorted(expected_tables & actual_tables):
        expected_cols = expected_columns[table_name]
        actual_cols = actual_columns[table_name]
        for col_name in sorted(expected_cols - actual_cols):
            missing_columns.append(ColumnDiff(table=table_name, column=col_name))
        extra = sorted(actual_cols - expected_cols)
        if extra:
            extra_columns[table_name] = extra

    return SchemaValidationResult(
        valid=not missing_tables and not missing_columns,
        missing_tables=missing_tables,
        missing_columns=missing_columns,
        extra_columns=extra_columns,
    )
