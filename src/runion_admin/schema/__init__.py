"""Live-schema preflight: introspection and allow-list comparison.

Usage:
    from runion_admin.schema import SchemaIntrospector, expected_columns, validate_schema
"""

from runion_admin.schema.comparator import expected_columns, validate_schema
from runion_admin.schema.introspector import SchemaIntrospector
from runion_admin.schema.models import ColumnDiff, ConnectionResult, SchemaValidationResult

__all__ = [
    "expected_columns",
    "validate_schema",
    "SchemaIntrospector",
    "ColumnDiff",
    "ConnectionResult",
    "SchemaValidationResult",
]
