"""
Configuration module for skil.

Tool settings (YAML/env/CLI), the per-scope source config (TOML) and the
global skill lock (JSON).
"""

from .schema import (
    LOCK_VERSION,
    LoggingConfig,
    SearchConfig,
    Settings,
    SkilConfig,
    SkillLockEntry,
    SkillLockFile,
    SkilSource,
)
from .loader import load_settings
from .sources import (
    ConfigLocation,
    config_location,
    config_location_auto,
    read_config,
    remove_skills_from_config,
    update_config,
    write_config,
)
from .lock import lock_path, read_lock, remove_lock_entry, update_lock_for_skill, write_lock

__all__ = [
    "ConfigLocation",
    "LOCK_VERSION",
    "LoggingConfig",
    "SearchConfig",
    "Settings",
    "SkilConfig",
    "SkilSource",
    "SkillLockEntry",
    "SkillLockFile",
    "config_location",
    "config_location_auto",
    "load_settings",
    "lock_path",
    "read_config",
    "read_lock",
    "remove_lock_entry",
    "remove_skills_from_config",
    "update_config",
    "update_lock_for_skill",
    "write_config",
    "write_lock",
]
