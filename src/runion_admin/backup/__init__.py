"""Backup and restore driven by a declarative table schema.

Table structure, column allow-lists and FK relationships are declared by
the caller in a ``BackupSchema`` (see ``runion_admin.store`` for the
Runion tables).

Usage:
    from runion_admin.backup import create_backup, parse_backup, restore_replace
    from runion_admin.backup import check_and_create_auto_backup, validate_backup
"""

from runion_admin.backup.document import dump_backup, load_backup, parse_backup, validate_backup
from runion_admin.backup.exporter import create_backup
from runion_admin.backup.models import (
    BackupDocument,
    BackupMetadata,
    BackupSchema,
    ChildRelation,
    ForeignKey,
    RestoreSummary,
    TableDef,
)
from runion_admin.backup.restorer import (
    restore_backup,
    restore_merge,
    restore_replace,
    run_in_transaction,
)
from runion_admin.backup.scheduler import (
    AutoBackupResult,
    check_and_create_auto_backup,
    list_auto_backups,
    prune_backups,
)

__all__ = [
    "BackupDocument",
    "BackupMetadata",
    "BackupSchema",
    "ChildRelation",
    "ForeignKey",
    "RestoreSummary",
    "TableDef",
    "create_backup",
    "dump_backup",
    "load_backup",
    "parse_backup",
    "validate_backup",
    "restore_backup",
    "restore_merge",
    "restore_replace",
    "run_in_transaction",
    "AutoBackupResult",
    "check_and_create_auto_backup",
    "list_auto_backups",
    "prune_backups",
]
