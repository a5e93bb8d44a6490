"""Database client factory.

Supports two configuration modes:
1. Profile mode (runion.toml + RUNION_DB_PROFILE): named database profiles
2. Single-URL mode (RUNION_DATABASE_URL or DATABASE_URL in env / .env)
"""

import logging
from pathlib import Path
from urllib.parse import quote

from runion_admin import store
from runion_admin.adapters import AsyncPostgresAdapter
from runion_admin.config import DatabaseProfile, Settings, load_config
from runion_admin.schema import ConnectionResult, SchemaIntrospector, expected_columns, validate_schema

logger = logging.getLogger(__name__)


class ProfileNotFoundError(Exception):
    """Raised when no database profile or URL is configured."""


def get_active_profile_name(settings: Settings | None = None) -> str:
    """Get the active profile name from ``RUNION_DB_PROFILE``.

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    settings = settings or Settings()
    if settings.db_profile:
        return settings.db_profile
    raise ProfileNotFoundError(
        "No database profile configured.\n"
        "Set RUNION_DB_PROFILE=<name> or pass --profile, "
        "or set RUNION_DATABASE_URL for a single database."
    )


def get_active_profile(
    profile_name: str | None = None,
    config_path: Path | str | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Raises:
        ProfileNotFoundError: If no profile is configured or the name is
            not in runion.toml
    """
    settings = Settings()
    profile_name = profile_name or get_active_profile_name(settings)
    config = load_config(config_path or settings.config)

    if profile_name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in runion.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )
    return profile_name, config.profiles[profile_name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with ``[YOUR-PASSWORD]`` substitution."""
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def _resolve_database_url(
    profile_name: str | None,
    database_url: str | None,
    config_path: Path | str | None,
) -> tuple[str | None, str]:
    """Return ``(profile_name, url)``: explicit URL, then profile, then env URL."""
    if database_url:
        return None, database_url

    settings = Settings()
    if profile_name or settings.db_profile:
        name, profile = get_active_profile(profile_name, config_path)
        if profile.provider != "postgres":
            raise ValueError(f"Profile '{name}': unsupported provider '{profile.provider}'")
        return name, resolve_url(profile)

    if settings.database_url:
        return None, settings.database_url

    raise ProfileNotFoundError(
        "No database configuration found.\n"
        "Either:\n"
        "  1. Add a profile to runion.toml and set RUNION_DB_PROFILE=<name>\n"
        "  2. Set RUNION_DATABASE_URL in .env"
    )


def get_adapter(
    profile_name: str | None = None,
    database_url: str | None = None,
    config_path: Path | str | None = None,
) -> AsyncPostgresAdapter:
    """Create an adapter for the configured database.

    The adapter is told which columns hold JSON so they are bound as
    ``jsonb``.  Callers own the adapter and must ``await adapter.close()``.

    Raises:
        ProfileNotFoundError: If no database configuration found
    """
    name, url = _resolve_database_url(profile_name, database_url, config_path)
    logger.debug("Creating adapter (profile=%s)", name or "<url>")
    return AsyncPostgresAdapter(database_url=url, jsonb_columns=store.jsonb_columns())


def _libpq_url(url: str) -> str:
    """psycopg wants a plain ``postgresql://`` URL."""
    for prefix in ("postgresql+asyncpg://", "postgres://"):
        if url.startswith(prefix):
            return "postgresql://" + url[len(prefix):]
    return url


async def connect_and_validate(
    profile_name: str | None = None,
    database_url: str | None = None,
    config_path: Path | str | None = None,
) -> ConnectionResult:
    """Connect to the database and check every Entity Store column exists.

    Never raises; failures are reported in the returned ``ConnectionResult``.

    Example:
        >>> result = await connect_and_validate("production")
        >>> print(result.schema_report.format_report())
    """
    try:
        name, url = _resolve_database_url(profile_name, database_url, config_path)
    except (ProfileNotFoundError, ValueError, FileNotFoundError) as e:
        return ConnectionResult(success=False, profile_name=profile_name, error=str(e))

    try:
        async with SchemaIntrospector(_libpq_url(url)) as introspector:
            actual_columns = await introspector.get_column_names()
    except Exception as e:
        return ConnectionResult(
            success=False,
            profile_name=name,
            error=f"Failed to connect to database: {e}",
        )

    expected = expected_columns(
        store.RUNION_SCHEMA.tables + store.RUNION_SCHEMA.purge_tables + [store.AUDIT_LOG]
    )
    validation = validate_schema(actual_columns, expected)

    if validation.valid:
        return ConnectionResult(
            success=True,
            profile_name=name,
            schema_valid=True,
            schema_report=validation,
        )
    return ConnectionResult(
        success=False,
        profile_name=name,
        schema_valid=False,
        schema_report=validation,
        error=f"Schema validation failed: {validation.error_count} errors",
    )
