"""Audit logging for destructive and privileged operations.

``log_action`` records who did what to which entity, together with a
JSON snapshot of the entity.  It never raises: a failed write is logged
at ERROR and returned as a warning, and the operation it is attached to
carries on.

The read helpers are best-effort too; they return newest-first,
bounded lists and an empty list when the query fails.

Usage:
    from runion_admin.audit import AuditAction, log_action, get_recent_logs

    outcome = await log_action(adapter, AuditAction.DELETE, "Registration", reg["id"],
                               reg, actor=actor)
    logs = await get_recent_logs(adapter, limit=20)
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from runion_admin.actors import SYSTEM_ACTOR, Actor
from runion_admin.adapters.base import UnitOfWork
from runion_admin.store import AUDIT_LOG

logger = logging.getLogger(__name__)

ENTITY_LOG_LIMIT = 50
RECENT_LOG_LIMIT = 100
USER_LOG_LIMIT = 100
MAX_LOG_LIMIT = 1000


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    SOFT_DELETE = "SOFT_DELETE"
    FORCE_DELETE = "FORCE_DELETE"
    RESTORE = "RESTORE"


class AuditLogEntry(BaseModel):
    """One ``AuditLog`` row (camelCase on the wire, snake_case in Python)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str | None = None
    user_id: str
    user_name: str
    action: AuditAction
    entity_type: str
    entity_id: str
    entity_data: Any = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime | None = None


class AuditOutcome(BaseModel):
    """Result of ``log_action``: the stored entry, or the reason it was not stored."""

    entry: AuditLogEntry | None = None
    warnings: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.entry is not None


def snapshot(data: Any) -> Any:
    """Detached JSON copy of ``data``; later mutation of ``data`` cannot reach it."""
    if data is None:
        return None
    return json.loads(json.dumps(data, default=str))


async def log_action(
    client: UnitOfWork,
    action: AuditAction,
    entity_type: str,
    entity_id: str,
    entity_data: Any = None,
    *,
    actor: Actor | None = None,
) -> AuditOutcome:
    """Append an audit entry. Never raises.

    Args:
        client: Adapter or open transaction to write through.
        action: What happened.
        entity_type: Model name of the entity (e.g. ``"Registration"``).
        entity_id: Primary key of the entity.
        entity_data: Snapshot to store; copied via a JSON round-trip.
        actor: Who did it. ``None`` is recorded as ``SYSTEM``.
    """
    who = actor or SYSTEM_ACTOR
    try:
        entry = AuditLogEntry(
            id=str(uuid.uuid4()),
            user_id=who.id,
            user_name=who.display_name,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            entity_data=snapshot(entity_data),
            created_at=datetime.now(timezone.utc),
        )
        await client.insert(AUDIT_LOG.table, entry.model_dump(by_alias=True))
    except Exception as e:
        message = f"Audit log failed for {action} {entity_type} {entity_id}: {e}"
        logger.error(message, exc_info=True)
        return AuditOutcome(warnings=[message])

    logger.info("[AuditLog] %s %s %s by %s", action.value, entity_type, entity_id, who.display_name)
    return AuditOutcome(entry=entry)


async def _read_logs(
    client: UnitOfWork,
    filters: dict[str, Any] | None,
    limit: int,
) -> list[AuditLogEntry]:
    try:
        rows = await client.select(
            AUDIT_LOG.table,
            columns=AUDIT_LOG.columns,
            filters=filters,
            order_by="-createdAt",
            limit=max(1, min(limit, MAX_LOG_LIMIT)),
        )
        return [AuditLogEntry.model_validate(row) for row in rows]
    except Exception:
        logger.exception("[AuditLog] Failed to fetch logs (filters=%s)", filters)
        return []


async def get_logs_for_entity(
    client: UnitOfWork,
    entity_type: str,
    entity_id: str,
    limit: int = ENTITY_LOG_LIMIT,
) -> list[AuditLogEntry]:
    """Latest entries for one entity, newest first."""
    return await _read_logs(
        client, {"entityType": entity_type, "entityId": str(entity_id)}, limit
    )


async def get_recent_logs(client: UnitOfWork, limit: int = RECENT_LOG_LIMIT) -> list[AuditLogEntry]:
    """Latest entries across all entities, newest first."""
    return await _read_logs(client, None, limit)


async def get_logs_by_user(
    client: UnitOfWork,
    user_id: str,
    limit: int = USER_LOG_LIMIT,
) -> list[AuditLogEntry]:
    """Latest entries recorded for one actor, newest first."""
    return await _read_logs(client, {"userId": user_id}, limit)
