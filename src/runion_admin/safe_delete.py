"""Audit-logged deletion.

Every function here snapshots the entity, writes the audit entry, and
only then mutates.  The audit write is a separate step from the delete,
so an entry saying "about to delete X" survives even when the delete
itself fails.  Audit failures never stop the delete; they come back in
``warnings``.

Role checks belong to the caller (see ``runion_admin.actions``); the
``actor`` passed here is only used for attribution.

Usage:
    from runion_admin.safe_delete import safe_delete, soft_delete

    result = await safe_delete(adapter, "Registration", reg_id, actor=actor)
    result = await soft_delete(adapter, "users", user_id, actor=actor)
"""

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from runion_admin.actors import Actor
from runion_admin.adapters.base import DatabaseClient
from runion_admin.audit import AuditAction, log_action
from runion_admin.backup.models import BackupSchema, TableDef
from runion_admin.errors import NotFoundError
from runion_admin.store import DISTANCES, EVENTS, NOTIFICATIONS, REGISTRATIONS, RUNION_SCHEMA, USERS

logger = logging.getLogger(__name__)

REGISTRATION_NOTIFICATION_TITLE = "Sikeres nevezés!"


class DeleteResult(BaseModel):
    """The deleted (or soft-deleted) record plus tolerated failures."""

    record: dict[str, Any]
    warnings: list[str] = Field(default_factory=list)


class BulkDeleteResult(BaseModel):
    count: int
    warnings: list[str] = Field(default_factory=list)


def _resolve(schema: BackupSchema, entity_type: str) -> TableDef:
    try:
        return schema.resolve(entity_type)
    except KeyError:
        raise ValueError(f"Unknown entity type: {entity_type}") from None


async def _fetch(client: DatabaseClient, table_def: TableDef, entity_id: str) -> dict:
    rows = await client.select(table_def.table, filters={table_def.pk: entity_id}, limit=1)
    if not rows:
        raise NotFoundError(table_def.table, entity_id)
    return rows[0]


async def safe_delete(
    client: DatabaseClient,
    entity_type: str,
    entity_id: str,
    *,
    actor: Actor | None = None,
    skip_audit_log: bool = False,
    skip_snapshot: bool = False,
    force_delete: bool = False,
    schema: BackupSchema = RUNION_SCHEMA,
) -> DeleteResult:
    """Fetch, audit-log, then delete one entity by primary key.

    Args:
        client: Database adapter implementing ``DatabaseClient`` Protocol.
        entity_type: Table key (``"registrations"``) or model name
            (``"Registration"``).
        entity_id: Primary key value.
        actor: Who is deleting (``None`` is logged as ``SYSTEM``).
        skip_audit_log: Delete without writing an audit entry.
        skip_snapshot: Log only ``{"id": ...}`` instead of the full row.
        force_delete: Log the action as ``FORCE_DELETE``.

    Raises:
        NotFoundError: If no such entity exists. Nothing is written.
        ValueError: If ``entity_type`` is unknown.
    """
    table_def = _resolve(schema, entity_type)
    record = await _fetch(client, table_def, entity_id)

    warnings: list[str] = []
    if not skip_audit_log:
        action = AuditAction.FORCE_DELETE if force_delete else AuditAction.DELETE
        data = {table_def.pk: entity_id} if skip_snapshot else record
        outcome = await log_action(client, action, table_def.table, entity_id, data, actor=actor)
        warnings.extend(outcome.warnings)

    deleted = await client.delete(table_def.table, {table_def.pk: entity_id})
    if not deleted:
        raise NotFoundError(table_def.table, entity_id)

    logger.info("[SafeDelete] Deleted %s %s", table_def.table, entity_id)
    return DeleteResult(record=record, warnings=warnings)


async def safe_delete_many(
    client: DatabaseClient,
    entity_type: str,
    filters: dict[str, Any],
    *,
    actor: Actor | None = None,
    skip_audit_log: bool = False,
    log_each_item: bool = False,
    schema: BackupSchema = RUNION_SCHEMA,
) -> BulkDeleteResult:
    """Delete every row matching ``filters``.

    With ``log_each_item`` every matching row is fetched and logged with
    its own snapshot first; otherwise one ``BATCH`` entry records the
    filter.  Per-row logging costs one write per row, so reserve it for
    admin-triggered bulk operations.
    """
    table_def = _resolve(schema, entity_type)
    warnings: list[str] = []

    if not skip_audit_log:
        if log_each_item:
            rows = await client.select(table_def.table, filters=filters)
            for row in rows:
                outcome = await log_action(
                    client, AuditAction.DELETE, table_def.table, row[table_def.pk], row, actor=actor
                )
                warnings.extend(outcome.warnings)
            logger.info("[SafeDeleteMany] Logged %d %s deletions", len(rows), table_def.table)
        else:
            outcome = await log_action(
                client, AuditAction.DELETE, table_def.table, "BATCH", {"where": filters}, actor=actor
            )
            warnings.extend(outcome.warnings)

    count = await client.delete(table_def.table, filters)
    logger.info("[SafeDeleteMany] Deleted %d %s records", count, table_def.table)
    return BulkDeleteResult(count=count, warnings=warnings)


def _require_soft_delete(table_def: TableDef) -> None:
    if not table_def.soft_delete:
        raise ValueError(f"{table_def.table} does not support soft delete")


async def soft_delete(
    client: DatabaseClient,
    entity_type: str,
    entity_id: str,
    *,
    actor: Actor | None = None,
    schema: BackupSchema = RUNION_SCHEMA,
) -> DeleteResult:
    """Snapshot, log ``SOFT_DELETE``, then set ``deletedAt``.

    Soft-deleted rows stay in the table; queries must filter them out
    (``{"deletedAt": None}``).
    """
    table_def = _resolve(schema, entity_type)
    _require_soft_delete(table_def)
    record = await _fetch(client, table_def, entity_id)

    outcome = await log_action(
        client, AuditAction.SOFT_DELETE, table_def.table, entity_id, record, actor=actor
    )
    updated = await client.update(
        table_def.table,
        {"deletedAt": datetime.now(timezone.utc)},
        {table_def.pk: entity_id},
    )
    logger.info("[SoftDelete] Soft deleted %s %s", table_def.table, entity_id)
    return DeleteResult(record=updated, warnings=outcome.warnings)


async def restore_soft_delete(
    client: DatabaseClient,
    entity_type: str,
    entity_id: str,
    *,
    actor: Actor | None = None,
    schema: BackupSchema = RUNION_SCHEMA,
) -> DeleteResult:
    """Log ``RESTORE``, then clear ``deletedAt``."""
    table_def = _resolve(schema, entity_type)
    _require_soft_delete(table_def)
    await _fetch(client, table_def, entity_id)

    outcome = await log_action(
        client, AuditAction.RESTORE, table_def.table, entity_id, actor=actor
    )
    updated = await client.update(table_def.table, {"deletedAt": None}, {table_def.pk: entity_id})
    logger.info("[RestoreSoftDelete] Restored %s %s", table_def.table, entity_id)
    return DeleteResult(record=updated, warnings=outcome.warnings)


async def delete_registration(
    client: DatabaseClient,
    registration_id: str,
    *,
    actor: Actor | None = None,
) -> DeleteResult:
    """Delete a registration together with its "registration successful" notifications.

    The audit snapshot carries readable context next to the row: event
    title, distance name, user name and e-mail.
    """
    registration = await _fetch(client, REGISTRATIONS, registration_id)

    distances = await client.select(
        DISTANCES.table, filters={"id": registration.get("distanceId")}, limit=1
    )
    distance = distances[0] if distances else {}
    event_id = distance.get("eventId") or registration.get("eventId")
    events = await client.select(EVENTS.table, filters={"id": event_id}, limit=1) if event_id else []
    event = events[0] if events else {}
    users = await client.select(
        USERS.table,
        columns=["id", "email", "firstName", "lastName"],
        filters={"id": registration.get("userId")},
        limit=1,
    )
    user = users[0] if users else {}

    event_title = event.get("title")
    context = {
        **registration,
        "eventTitle": event_title,
        "distanceName": distance.get("name"),
        "userName": f"{user.get('firstName') or ''} {user.get('lastName') or ''}".strip(),
        "userEmail": user.get("email"),
    }
    outcome = await log_action(
        client, AuditAction.DELETE, REGISTRATIONS.table, registration_id, context, actor=actor
    )

    if event_title and registration.get("userId"):
        notifications = await client.select(
            NOTIFICATIONS.table,
            columns=["id", "message"],
            filters={"userId": registration["userId"], "title": REGISTRATION_NOTIFICATION_TITLE},
        )
        stale = [n["id"] for n in notifications if event_title in (n.get("message") or "")]
        if stale:
            await client.delete(NOTIFICATIONS.table, {"id": stale})
            logger.debug("Deleted %d notifications for registration %s", len(stale), registration_id)

    await client.delete(REGISTRATIONS.table, {"id": registration_id})
    logger.info("[DeleteRegistration] Registration %s deleted", registration_id)
    return DeleteResult(record=registration, warnings=outcome.warnings)
