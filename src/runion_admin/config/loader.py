"""TOML configuration loader for runion.toml."""

import tomllib
from pathlib import Path

from runion_admin.config.models import AuditSettings, BackupSettings, DatabaseProfile, RunionConfig


def load_config(config_path: Path | str | None = None) -> RunionConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML file.  Defaults to ``runion.toml``
            in the current working directory.

    Returns:
        RunionConfig with all profiles and the backup/audit settings
        (defaults for absent tables).

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / "runion.toml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration not found: {config_path}\n"
            f"Copy runion.toml.example to runion.toml and configure your profiles."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    profiles = {
        name: DatabaseProfile(**profile_data)
        for name, profile_data in data.get("profiles", {}).items()
    }

    return RunionConfig(
        profiles=profiles,
        backup=BackupSettings(**data.get("backup", {})),
        audit=AuditSettings(**data.get("audit", {})),
    )
