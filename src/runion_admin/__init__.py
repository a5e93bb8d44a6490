"""runion-admin: back-office operations for the Runion event platform.

Audit-logged deletion, JSON backup and restore (destructive replace or
non-destructive merge), daily auto-backups, CSV payment import and
spreadsheet export, over an async dict-based database adapter.

Usage:
    from runion_admin import get_adapter, RUNION_SCHEMA, create_backup
    from runion_admin import Actor, Role, safe_delete
    from runion_admin import InMemoryAdapter
"""

__version__ = "0.1.0"

# Adapters
from runion_admin.adapters import AsyncPostgresAdapter, DatabaseClient, InMemoryAdapter, UnitOfWork

# Identity and results
from runion_admin.actors import SYSTEM_ACTOR, Actor, Role
from runion_admin.results import ActionResult

# Errors
from runion_admin.errors import (
    BackupFormatError,
    CsvValidationError,
    NotFoundError,
    RunionAdminError,
    TransactionFailure,
    UnauthorizedError,
)

# Config
from runion_admin.config import RunionConfig, Settings, load_config

# Store schema
from runion_admin.store import RUNION_SCHEMA

# Factory
from runion_admin.factory import ProfileNotFoundError, connect_and_validate, get_adapter

# Operations
from runion_admin.audit import AuditAction, log_action
from runion_admin.backup import create_backup, parse_backup, restore_merge, restore_replace
from runion_admin.safe_delete import safe_delete, soft_delete

__all__ = [
    # Adapters
    "AsyncPostgresAdapter",
    "DatabaseClient",
    "InMemoryAdapter",
    "UnitOfWork",
    # Identity and results
    "SYSTEM_ACTOR",
    "Actor",
    "Role",
    "ActionResult",
    # Errors
    "BackupFormatError",
    "CsvValidationError",
    "NotFoundError",
    "RunionAdminError",
    "TransactionFailure",
    "UnauthorizedError",
    # Config
    "RunionConfig",
    "Settings",
    "load_config",
    # Store
    "RUNION_SCHEMA",
    # Factory
    "ProfileNotFoundError",
    "connect_and_validate",
    "get_adapter",
    # Operations
    "AuditAction",
    "log_action",
    "create_backup",
    "parse_backup",
    "restore_merge",
    "restore_replace",
    "safe_delete",
    "soft_delete",
]
