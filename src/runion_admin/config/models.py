"""Pydantic models for ``runion.toml`` and environment settings."""

from pathlib import Path

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseProfile(BaseModel):
    """Database connection profile from runion.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "postgres"  # Only postgres is supported


class BackupSettings(BaseModel):
    """``[backup]`` table."""

    directory: str = "backups/daily"
    retention: int = Field(default=30, ge=1)
    replace_timeout: float = 60.0  # seconds, destructive restore
    merge_timeout: float = 20.0  # seconds, upsert merge
    generator: str = "Runion Backup System"
    version: str = "1.0"


class AuditSettings(BaseModel):
    """``[audit]`` table: read limits."""

    entity_limit: int = 50
    recent_limit: int = 100
    user_limit: int = 100


class RunionConfig(BaseModel):
    """Complete configuration from runion.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    backup: BackupSettings = Field(default_factory=BackupSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)


class Settings(BaseSettings):
    """Environment settings (``RUNION_`` prefix, ``.env`` supported).

    ``RUNION_DATABASE_URL`` (or plain ``DATABASE_URL``) is the single-URL
    fallback when no profile is selected.
    """

    model_config = SettingsConfigDict(env_prefix="RUNION_", env_file=".env", extra="ignore")

    db_profile: str | None = None
    database_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("RUNION_DATABASE_URL", "DATABASE_URL"),
    )
    config: Path = Path("runion.toml")

    # CLI operator identity for audit attribution (default: SYSTEM)
    actor_id: str | None = None
    actor_name: str | None = None
