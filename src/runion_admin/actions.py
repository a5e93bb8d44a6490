"""Admin actions: the user-facing boundary.

Each action checks the caller's role before touching anything, runs the
library operation, and converts the outcome (or any exception) into an
``ActionResult``.  Nothing here raises.

Usage:
    from runion_admin.actions import create_backup_action, delete_entity_action

    result = await create_backup_action(adapter, actor)
    if result.success:
        Path(result.data["filename"]).write_text(result.data["content"])
"""

import logging

from runion_admin.actors import ADMIN_ONLY, ADMIN_OR_STAFF, Actor, require_role
from runion_admin.adapters.base import DatabaseClient
from runion_admin.audit import RECENT_LOG_LIMIT, get_recent_logs
from runion_admin.backup import create_backup, dump_backup, parse_backup, restore_backup
from runion_admin.config import BackupSettings
from runion_admin.csv_io import (
    export_orders,
    export_registrations,
    import_order_payments,
    import_registration_payments,
)
from runion_admin.results import ActionResult, run_action
from runion_admin.safe_delete import delete_registration, safe_delete
from runion_admin.store import LEGACY_KEYS, REGISTRATIONS, RUNION_SCHEMA

logger = logging.getLogger(__name__)


def backup_download_name(timestamp: str) -> str:
    """``runion_backup_<timestamp>.json`` with ``:`` and ``.`` made filename-safe."""
    safe = timestamp.replace(":", "-").replace(".", "-")
    return f"runion_backup_{safe}.json"


async def create_backup_action(
    adapter: DatabaseClient,
    actor: Actor | None,
    *,
    settings: BackupSettings | None = None,
    embed_relations: bool = False,
) -> ActionResult:
    """Export every managed table. ``data`` holds ``filename`` and ``content``."""
    settings = settings or BackupSettings()

    async def run() -> ActionResult:
        require_role(actor, ADMIN_ONLY)
        document = await create_backup(
            adapter,
            schema=RUNION_SCHEMA,
            embed_relations=embed_relations,
            generator=settings.generator,
            version=settings.version,
            source="manual",
        )
        total = sum(document.metadata.counts.values())
        return ActionResult(
            success=True,
            message=f"Backup created ({total} rows)",
            data={
                "filename": backup_download_name(document.metadata.timestamp),
                "content": dump_backup(document),
            },
        )

    return await run_action("Backup", run())


async def restore_backup_action(
    adapter: DatabaseClient,
    actor: Actor | None,
    text: str,
    mode: str = "replace",
    *,
    settings: BackupSettings | None = None,
) -> ActionResult:
    """Restore a backup document, destructively (``replace``) or by upsert (``merge``)."""
    settings = settings or BackupSettings()

    async def run() -> ActionResult:
        require_role(actor, ADMIN_ONLY)
        document = parse_backup(text, RUNION_SCHEMA, LEGACY_KEYS)
        timeout = settings.replace_timeout if mode == "replace" else settings.merge_timeout
        summary = await restore_backup(
            adapter, document, schema=RUNION_SCHEMA, mode=mode, timeout=timeout
        )
        message = f"Restore ({mode}) completed: {summary.total_written} rows written"
        if summary.total_skipped:
            message += f", {summary.total_skipped} skipped"
        return ActionResult(
            success=True, message=message, data=summary, warnings=summary.warnings
        )

    return await run_action("Restore", run())


async def delete_entity_action(
    adapter: DatabaseClient,
    actor: Actor | None,
    entity_type: str,
    entity_id: str,
    force: bool = False,
) -> ActionResult:
    """Audit-logged delete of one entity.

    Registrations go through ``delete_registration`` so their notifications
    are cleaned up with them.
    """

    async def run() -> ActionResult:
        require_role(actor, ADMIN_ONLY)
        if not force and entity_type.lower() in (REGISTRATIONS.name.lower(), REGISTRATIONS.table.lower()):
            result = await delete_registration(adapter, entity_id, actor=actor)
        else:
            result = await safe_delete(
                adapter, entity_type, entity_id, actor=actor, force_delete=force
            )
        return ActionResult(
            success=True,
            message=f"{entity_type} {entity_id} deleted",
            data=result.record,
            warnings=result.warnings,
        )

    return await run_action("Delete", run())


async def import_registration_payments_action(
    adapter: DatabaseClient,
    actor: Actor | None,
    text: str | bytes,
) -> ActionResult:
    """Bulk-update registration payment statuses from an uploaded CSV."""

    async def run() -> ActionResult:
        require_role(actor, ADMIN_ONLY)
        result = await import_registration_payments(adapter, text)
        return ActionResult(success=True, message=result.message, data=result)

    return await run_action("Registration payment import", run())


async def import_order_payments_action(
    adapter: DatabaseClient,
    actor: Actor | None,
    text: str | bytes,
) -> ActionResult:
    """Mark orders paid from an uploaded bank or shop CSV."""

    async def run() -> ActionResult:
        require_role(actor, ADMIN_ONLY)
        result = await import_order_payments(adapter, text)
        return ActionResult(success=True, message=result.message, data=result)

    return await run_action("Order payment import", run())


async def export_registrations_action(
    adapter: DatabaseClient,
    actor: Actor | None,
    event_slug: str,
) -> ActionResult:
    """Registrations of one event as a spreadsheet CSV for admins and staff (``data`` is a ``CsvExport``)."""

    async def run() -> ActionResult:
        require_role(actor, ADMIN_OR_STAFF)
        export = await export_registrations(adapter, event_slug)
        return ActionResult(success=True, message=export.filename, data=export)

    return await run_action("Registration export", run())


async def export_orders_action(adapter: DatabaseClient, actor: Actor | None) -> ActionResult:
    async def run() -> ActionResult:
        require_role(actor, ADMIN_OR_STAFF)
        export = await export_orders(adapter)
        return ActionResult(success=True, message=export.filename, data=export)

    return await run_action("Order export", run())


async def get_admin_audit_logs(
    adapter: DatabaseClient,
    actor: Actor | None,
    limit: int = RECENT_LOG_LIMIT,
) -> ActionResult:
    """Recent audit entries for the admin dashboard (admins and staff)."""

    async def run() -> ActionResult:
        require_role(actor, ADMIN_OR_STAFF)
        return ActionResult(success=True, data=await get_recent_logs(adapter, limit))

    return await run_action("Audit log", run())
