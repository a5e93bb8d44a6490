"""Daily auto-backup with retention pruning.

``check_and_create_auto_backup`` is meant to be called opportunistically
(e.g. on every admin page load or from a cron job).  The first call of
the day writes ``backup-YYYY-MM-DD.json``; later calls see the file and
return ``status="exists"``.

Two concurrent first calls may both export and write; the later rename
wins.  The file is written to a temporary name and renamed into place,
so readers never see a half-written backup.
"""

import logging
import os
import tempfile
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from runion_admin.actors import ADMIN_ONLY, Actor, require_role
from runion_admin.adapters.base import DatabaseClient
from runion_admin.backup.document import dump_backup
from runion_admin.backup.exporter import create_backup
from runion_admin.backup.models import BackupSchema
from runion_admin.errors import UnauthorizedError

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "backup-"
BACKUP_SUFFIX = ".json"


class AutoBackupResult(BaseModel):
    """Outcome of one auto-backup check."""

    status: Literal["created", "exists", "failed"]
    date: str
    path: str | None = None
    error: str | None = None
    pruned: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


def backup_filename(day: date) -> str:
    return f"{BACKUP_PREFIX}{day.isoformat()}{BACKUP_SUFFIX}"


def _backup_files(backup_dir: Path) -> list[str]:
    if not backup_dir.is_dir():
        return []
    return [
        p.name for p in backup_dir.iterdir()
        if p.is_file() and p.name.startswith(BACKUP_PREFIX) and p.name.endswith(BACKUP_SUFFIX)
    ]


def prune_backups(backup_dir: str | Path, retention: int = 30) -> tuple[list[str], list[str]]:
    """Delete the oldest backups so at most ``retention`` remain.

    Filenames embed ISO dates, so name order is date order.  A file that
    cannot be deleted is reported and the rest are still attempted.

    Returns:
        ``(deleted names, warnings)``.
    """
    backup_dir = Path(backup_dir)
    files = sorted(_backup_files(backup_dir))
    excess = files[: max(len(files) - retention, 0)]

    deleted: list[str] = []
    warnings: list[str] = []
    for name in excess:
        try:
            (backup_dir / name).unlink()
        except OSError as e:
            message = f"Could not delete old backup {name}: {e}"
            logger.error(message)
            warnings.append(message)
            continue
        logger.info("Deleted old backup: %s", name)
        deleted.append(name)
    return deleted, warnings


def _write_atomic(path: Path, content: str) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=BACKUP_SUFFIX)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


async def check_and_create_auto_backup(
    adapter: DatabaseClient,
    actor: Actor | None,
    *,
    schema: BackupSchema,
    backup_dir: str | Path = "backups/daily",
    retention: int = 30,
    today: date | None = None,
    generator: str = "Runion Backup System",
    version: str = "1.0",
) -> AutoBackupResult | None:
    """Create today's backup unless it already exists.

    Returns ``None`` without doing anything when ``actor`` is not an admin.
    Export and write failures are reported as ``status="failed"``; no
    file is left behind in that case.
    """
    try:
        require_role(actor, ADMIN_ONLY)
    except UnauthorizedError:
        return None

    day = today or datetime.now(timezone.utc).date()
    backup_dir = Path(backup_dir)
    path = backup_dir / backup_filename(day)

    if path.exists():
        return AutoBackupResult(status="exists", date=day.isoformat(), path=str(path))

    logger.info("Creating daily backup: %s", path.name)
    try:
        backup_dir.mkdir(parents=True, exist_ok=True)
        document = await create_backup(
            adapter, schema=schema, generator=generator, version=version, source="auto-backup"
        )
        _write_atomic(path, dump_backup(document))
    except Exception as e:
        logger.exception("Auto-backup failed for %s", day.isoformat())
        return AutoBackupResult(status="failed", date=day.isoformat(), error=str(e))

    pruned, warnings = prune_backups(backup_dir, retention)
    logger.info("Daily backup written: %s (%d old backups pruned)", path, len(pruned))
    return AutoBackupResult(
        status="created", date=day.isoformat(), path=str(path), pruned=pruned, warnings=warnings
    )


def list_auto_backups(actor: Actor | None, backup_dir: str | Path = "backups/daily") -> list[str]:
    """Backup filenames, newest first.

    Raises:
        UnauthorizedError: If ``actor`` is not an admin.
    """
    require_role(actor, ADMIN_ONLY)
    return sorted(_backup_files(Path(backup_dir)), reverse=True)
