"""Command-line interface for Runion back-office operations.

Usage:
    RUNION_DB_PROFILE=production runion-admin check
    runion-admin backup -o backups/manual.json
    runion-admin restore backups/daily/backup-2026-10-18.json --mode merge
    runion-admin validate backups/daily/backup-2026-10-18.json
    runion-admin auto-backup
    runion-admin import-payments befizetesek.csv --kind registrations
    runion-admin export-registrations balaton-futas-2026
    runion-admin audit --entity Registration 3f2a...
    runion-admin delete Registration 3f2a...

Commands:
    backup                - Export every managed table to a JSON document
    restore               - Restore a backup (replace or merge)
    validate              - Check a backup file without touching the database
    auto-backup           - Create today's daily backup if missing, prune old ones
    list-backups          - List daily backups, newest first
    import-payments       - Update payment statuses from a CSV
    export-registrations  - Export one event's registrations to CSV
    export-orders         - Export shop orders to CSV
    audit                 - Show audit log entries
    delete                - Audit-logged delete of one entity
    check                 - Compare the live schema with the backup allow-lists
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from runion_admin.actions import (
    create_backup_action,
    delete_entity_action,
    export_orders_action,
    export_registrations_action,
    get_admin_audit_logs,
    import_order_payments_action,
    import_registration_payments_action,
    restore_backup_action,
)
from runion_admin.actors import ADMIN_OR_STAFF, SYSTEM_ACTOR, Actor, Role, require_role
from runion_admin.audit import AuditLogEntry, get_logs_by_user, get_logs_for_entity
from runion_admin.backup import check_and_create_auto_backup, list_auto_backups, validate_backup
from runion_admin.config import RunionConfig, Settings, load_config
from runion_admin.errors import UnauthorizedError
from runion_admin.factory import ProfileNotFoundError, connect_and_validate, get_adapter
from runion_admin.results import ActionResult
from runion_admin.store import LEGACY_KEYS, RUNION_SCHEMA

console = Console()
logger = logging.getLogger(__name__)


# ============================================================================
# Helpers
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _settings(args: argparse.Namespace) -> Settings:
    settings = Settings()
    if args.config:
        settings.config = Path(args.config)
    return settings


def _load_config(settings: Settings) -> RunionConfig:
    """runion.toml if present; defaults otherwise (single-URL mode)."""
    try:
        return load_config(settings.config)
    except FileNotFoundError:
        logger.debug("No config file at %s, using defaults", settings.config)
        return RunionConfig()


def _actor(settings: Settings) -> Actor:
    """The operator: ``RUNION_ACTOR_ID`` / ``RUNION_ACTOR_NAME``, else SYSTEM."""
    if settings.actor_id:
        return Actor(id=settings.actor_id, name=settings.actor_name or "", role=Role.ADMIN)
    return SYSTEM_ACTOR


def _report(result: ActionResult) -> int:
    """Print an ActionResult; return the exit code."""
    if result.success:
        console.print(f"[bold green]v[/bold green] {result.message or 'Done'}")
    else:
        console.print(f"[bold red]x[/bold red] {result.error}")
    for warning in result.warnings:
        console.print(f"  [yellow]! {warning}[/yellow]")
    return 0 if result.success else 1


def _write_output(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    # CSV content already carries its own \r\n line endings
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)
    console.print(f"  Written: [cyan]{path}[/cyan]")


async def _with_adapter(args: argparse.Namespace, settings: Settings, operation) -> int:
    """Open the configured adapter, run ``operation(adapter)``, always close it."""
    try:
        adapter = get_adapter(profile_name=args.profile, config_path=settings.config)
    except (ProfileNotFoundError, ValueError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    try:
        return await operation(adapter)
    finally:
        await adapter.close()


def _audit_table(entries: list[AuditLogEntry]) -> Table:
    table = Table(title="Audit Log", show_header=True, header_style="bold")
    table.add_column("When", style="dim")
    table.add_column("Who")
    table.add_column("Action")
    table.add_column("Entity")
    table.add_column("ID", style="dim")
    for entry in entries:
        table.add_row(
            entry.created_at.isoformat(timespec="seconds") if entry.created_at else "",
            entry.user_name,
            entry.action.value,
            entry.entity_type,
            entry.entity_id,
        )
    return table


# ============================================================================
# Command implementations
# ============================================================================


async def _async_backup(args: argparse.Namespace) -> int:
    settings = _settings(args)
    config = _load_config(settings)

    async def run(adapter) -> int:
        result = await create_backup_action(
            adapter, _actor(settings), settings=config.backup, embed_relations=args.embed
        )
        if result.success:
            _write_output(Path(args.output or result.data["filename"]), result.data["content"])
        return _report(result)

    return await _with_adapter(args, settings, run)


async def _async_restore(args: argparse.Namespace) -> int:
    settings = _settings(args)
    config = _load_config(settings)

    path = Path(args.backup_path)
    if not path.exists():
        console.print(f"[red]Error: backup file not found: {path}[/red]")
        return 1

    if args.mode == "replace" and not args.yes:
        console.print(f"[bold yellow]This will DELETE all managed data and restore from:[/bold yellow] {path}")
        response = input("Continue? [y/N] ")
        if response.lower() not in ["y", "yes"]:
            console.print("Cancelled.")
            return 0

    text = path.read_text(encoding="utf-8")

    async def run(adapter) -> int:
        result = await restore_backup_action(
            adapter, _actor(settings), text, args.mode, settings=config.backup
        )
        if result.success:
            table = Table(title=f"Restore ({args.mode})", show_header=True, header_style="bold")
            table.add_column("Table")
            for label in ("Deleted", "Inserted", "Updated", "Skipped"):
                table.add_column(label, justify="right")
            for name, counts in result.data.tables.items():
                table.add_row(
                    name, str(counts.deleted), str(counts.inserted),
                    str(counts.updated), str(counts.skipped),
                )
            console.print(table)
        return _report(result)

    return await _with_adapter(args, settings, run)


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a backup file (no database access)."""
    result = validate_backup(args.backup_path, RUNION_SCHEMA, LEGACY_KEYS)
    console.print(f"Validating: [cyan]{args.backup_path}[/cyan]")

    if result["counts"]:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Table")
        table.add_column("Rows", justify="right")
        for name, count in result["counts"].items():
            table.add_row(name, str(count))
        console.print(table)

    for error in result["errors"]:
        console.print(f"  [red]- {error}[/red]")
    for warning in result["warnings"]:
        console.print(f"  [yellow]! {warning}[/yellow]")

    if result["valid"]:
        suffix = " (with warnings)" if result["warnings"] else ""
        console.print(f"[bold green]v[/bold green] Backup is valid{suffix}")
        return 0
    console.print(f"[bold red]x[/bold red] Backup is invalid ({len(result['errors'])} errors)")
    return 1


async def _async_auto_backup(args: argparse.Namespace) -> int:
    settings = _settings(args)
    config = _load_config(settings)

    async def run(adapter) -> int:
        result = await check_and_create_auto_backup(
            adapter,
            _actor(settings),
            schema=RUNION_SCHEMA,
            backup_dir=config.backup.directory,
            retention=config.backup.retention,
            generator=config.backup.generator,
            version=config.backup.version,
        )
        if result is None:
            console.print("[yellow]Auto-backup skipped: admin role required[/yellow]")
            return 1
        if result.status == "failed":
            console.print(f"[bold red]x[/bold red] Auto-backup failed: {result.error}")
            return 1
        if result.status == "exists":
            console.print(f"Backup for {result.date} already exists: [cyan]{result.path}[/cyan]")
        else:
            console.print(f"[bold green]v[/bold green] Created [cyan]{result.path}[/cyan]")
            for name in result.pruned:
                console.print(f"  [dim]pruned {name}[/dim]")
        for warning in result.warnings:
            console.print(f"  [yellow]! {warning}[/yellow]")
        return 0

    return await _with_adapter(args, settings, run)


def cmd_list_backups(args: argparse.Namespace) -> int:
    """List daily backups, newest first."""
    settings = _settings(args)
    config = _load_config(settings)
    try:
        names = list_auto_backups(_actor(settings), config.backup.directory)
    except UnauthorizedError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    table = Table(title=f"Backups in {config.backup.directory}", show_header=True, header_style="bold")
    table.add_column("File")
    for name in names:
        table.add_row(name)
    console.print(table)
    return 0


async def _async_import_payments(args: argparse.Namespace) -> int:
    settings = _settings(args)
    path = Path(args.csv_path)
    if not path.exists():
        console.print(f"[red]Error: CSV file not found: {path}[/red]")
        return 1
    content = path.read_bytes()
    action = (
        import_order_payments_action if args.kind == "orders" else import_registration_payments_action
    )

    async def run(adapter) -> int:
        result = await action(adapter, _actor(settings), content)
        if result.success:
            outcome = result.data
            if outcome.failed_ids:
                console.print(f"  [yellow]Failed ids: {', '.join(outcome.failed_ids)}[/yellow]")
            if outcome.not_found:
                console.print(f"  [yellow]Unknown order numbers: {', '.join(outcome.not_found)}[/yellow]")
            bad_lines = sorted(outcome.unparsed_lines + outcome.invalid_status_lines)
            if bad_lines:
                console.print(f"  [yellow]Skipped lines: {', '.join(map(str, bad_lines))}[/yellow]")
        return _report(result)

    return await _with_adapter(args, settings, run)


async def _async_export_registrations(args: argparse.Namespace) -> int:
    settings = _settings(args)

    async def run(adapter) -> int:
        result = await export_registrations_action(adapter, _actor(settings), args.slug)
        if result.success:
            _write_output(Path(args.output or result.data.filename), result.data.content)
        return _report(result)

    return await _with_adapter(args, settings, run)


async def _async_export_orders(args: argparse.Namespace) -> int:
    settings = _settings(args)

    async def run(adapter) -> int:
        result = await export_orders_action(adapter, _actor(settings))
        if result.success:
            _write_output(Path(args.output or result.data.filename), result.data.content)
        return _report(result)

    return await _with_adapter(args, settings, run)


async def _async_audit(args: argparse.Namespace) -> int:
    settings = _settings(args)
    limits = _load_config(settings).audit
    actor = _actor(settings)

    async def run(adapter) -> int:
        if args.entity or args.user:
            try:
                require_role(actor, ADMIN_OR_STAFF)
            except UnauthorizedError as e:
                console.print(f"[red]{e}[/red]")
                return 1
            if args.entity:
                entries = await get_logs_for_entity(
                    adapter, args.entity[0], args.entity[1], args.limit or limits.entity_limit
                )
            else:
                entries = await get_logs_by_user(adapter, args.user, args.limit or limits.user_limit)
        else:
            result = await get_admin_audit_logs(adapter, actor, args.limit or limits.recent_limit)
            if not result.success:
                return _report(result)
            entries = result.data
        console.print(_audit_table(entries))
        return 0

    return await _with_adapter(args, settings, run)


async def _async_delete(args: argparse.Namespace) -> int:
    settings = _settings(args)

    async def run(adapter) -> int:
        result = await delete_entity_action(
            adapter, _actor(settings), args.entity_type, args.entity_id, force=args.force
        )
        return _report(result)

    return await _with_adapter(args, settings, run)


async def _async_check(args: argparse.Namespace) -> int:
    settings = _settings(args)
    console.print("Connecting to database...", style="dim")
    result = await connect_and_validate(profile_name=args.profile, config_path=settings.config)

    if result.success:
        label = result.profile_name or "database URL"
        console.print(f"[bold green]v[/bold green] Connected to [bold cyan]{label}[/bold cyan]")
        console.print("  Schema validation: [green]PASSED[/green]")
        if result.schema_report and result.schema_report.extra_columns:
            console.print(result.schema_report.format_report())
        return 0

    console.print(f"[bold red]x[/bold red] {result.error}")
    if result.schema_report:
        console.print("\n[bold]Schema validation report:[/bold]")
        console.print(result.schema_report.format_report())
    return 1


# ============================================================================
# Main entry point
# ============================================================================


def _async_command(coro_fn):
    def run(args: argparse.Namespace) -> int:
        return asyncio.run(coro_fn(args))

    return run


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="runion-admin",
        description="Runion back-office: backups, restores, payment imports, audit log",
    )
    parser.add_argument("--profile", "-p", help="Database profile from runion.toml (default: RUNION_DB_PROFILE)")
    parser.add_argument("--config", "-c", help="Path to runion.toml (default: RUNION_CONFIG or ./runion.toml)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_backup = subparsers.add_parser("backup", help="Export every managed table to a JSON document")
    p_backup.add_argument("--output", "-o", help="Output file (default: runion_backup_<timestamp>.json)")
    p_backup.add_argument("--embed", action="store_true", help="Nest child rows under their parents")
    p_backup.set_defaults(func=_async_command(_async_backup))

    p_restore = subparsers.add_parser("restore", help="Restore from a backup document")
    p_restore.add_argument("backup_path", help="Path to backup JSON file")
    p_restore.add_argument(
        "--mode", "-m",
        choices=["replace", "merge"],
        default="replace",
        help="replace: delete everything then insert; merge: upsert only (default: replace)",
    )
    p_restore.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")
    p_restore.set_defaults(func=_async_command(_async_restore))

    p_validate = subparsers.add_parser("validate", help="Validate a backup file")
    p_validate.add_argument("backup_path", help="Path to backup JSON file")
    p_validate.set_defaults(func=cmd_validate)

    p_auto = subparsers.add_parser("auto-backup", help="Create today's daily backup if missing")
    p_auto.set_defaults(func=_async_command(_async_auto_backup))

    p_list = subparsers.add_parser("list-backups", help="List daily backups")
    p_list.set_defaults(func=cmd_list_backups)

    p_import = subparsers.add_parser("import-payments", help="Update payment statuses from a CSV")
    p_import.add_argument("csv_path", help="Path to CSV file")
    p_import.add_argument(
        "--kind", choices=["registrations", "orders"], default="registrations",
        help="What the CSV updates (default: registrations)",
    )
    p_import.set_defaults(func=_async_command(_async_import_payments))

    p_export = subparsers.add_parser("export-registrations", help="Export an event's registrations")
    p_export.add_argument("slug", help="Event slug")
    p_export.add_argument("--output", "-o", help="Output file (default: registrations-<slug>-<date>.csv)")
    p_export.set_defaults(func=_async_command(_async_export_registrations))

    p_orders = subparsers.add_parser("export-orders", help="Export shop orders")
    p_orders.add_argument("--output", "-o", help="Output file (default: orders-<date>.csv)")
    p_orders.set_defaults(func=_async_command(_async_export_orders))

    p_audit = subparsers.add_parser("audit", help="Show audit log entries")
    p_audit.add_argument("--limit", "-n", type=int, help="Maximum entries (default: [audit] limits)")
    group = p_audit.add_mutually_exclusive_group()
    group.add_argument("--entity", nargs=2, metavar=("TYPE", "ID"), help="Entries for one entity")
    group.add_argument("--user", metavar="ID", help="Entries recorded for one user")
    p_audit.set_defaults(func=_async_command(_async_audit))

    p_delete = subparsers.add_parser("delete", help="Audit-logged delete of one entity")
    p_delete.add_argument("entity_type", help="Model name or table key (e.g. Registration)")
    p_delete.add_argument("entity_id", help="Primary key")
    p_delete.add_argument("--force", action="store_true", help="Record as FORCE_DELETE")
    p_delete.set_defaults(func=_async_command(_async_delete))

    p_check = subparsers.add_parser("check", help="Compare the live schema with the backup allow-lists")
    p_check.set_defaults(func=_async_command(_async_check))

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
