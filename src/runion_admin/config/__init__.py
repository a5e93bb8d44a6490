"""Configuration management: profiles, TOML loading, and settings.

Usage:
    >>> from runion_admin.config import load_config, RunionConfig, Settings
"""

from runion_admin.config.loader import load_config
from runion_admin.config.models import (
    AuditSettings,
    BackupSettings,
    DatabaseProfile,
    RunionConfig,
    Settings,
)

__all__ = [
    "load_config",
    "AuditSettings",
    "BackupSettings",
    "DatabaseProfile",
    "RunionConfig",
    "Settings",
]
