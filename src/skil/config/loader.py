"""
Settings loader with deep merge.

Precedence (lowest to highest):
1. Defaults (defined in the Pydantic schemas)
2. YAML file (`{config home}/skil/settings.yaml` or --settings)
3. Environment variables
4. CLI arguments

The merge is recursive so every key survives at every level.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..errors import ConfigParseError
from ..paths import SkilPaths
from .schema import Settings
from .sources import CONFIG_DIR

SETTINGS_FILE = "settings.yaml"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursive dictionary merge.

    Args:
        base: Base dictionary
        override: Dictionary whose values win

    Returns:
        New merged dictionary. Override wins on leaf conflicts.

    Example:
        >>> base = {"a": {"b": 1, "c": 2}, "d": 3}
        >>> override = {"a": {"b": 99}, "e": 4}
        >>> deep_merge(base, override)
        {"a": {"b": 99, "c": 2}, "d": 3, "e": 4}
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def default_settings_path(paths: SkilPaths) -> Path:
    return paths.config_home / CONFIG_DIR / SETTINGS_FILE


def load_yaml_settings(settings_path: Path | None, required: bool = False) -> dict[str, Any]:
    """Load settings from a YAML file.

    Args:
        settings_path: Path to the YAML file, or None to skip
        required: Raise if the file does not exist (explicit --settings)

    Returns:
        The settings mapping, or an empty dict when there is no file

    Raises:
        ConfigParseError: Missing required file, invalid YAML or not a mapping
    """
    if not settings_path:
        return {}

    if not settings_path.exists():
        if required:
            raise ConfigParseError(f"Settings file not found: {settings_path}")
        return {}

    try:
        with open(settings_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Invalid settings file {settings_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigParseError(f"Invalid settings file {settings_path}: expected a mapping")
    return data


def load_env_overrides() -> dict[str, Any]:
    """Load overrides from environment variables.

    Supported variables:
        SKIL_LOG_FILE: overrides logging.file
        SKIL_VERBOSE: overrides logging.verbose
        SKIL_SEARCH_API: overrides search.api_base

    Returns:
        Overrides taken from the environment
    """
    overrides: dict[str, Any] = {}

    if log_file := os.environ.get("SKIL_LOG_FILE"):
        overrides.setdefault("logging", {})["file"] = log_file

    if verbose := os.environ.get("SKIL_VERBOSE"):
        overrides.setdefault("logging", {})["verbose"] = verbose

    if api_base := os.environ.get("SKIL_SEARCH_API"):
        overrides.setdefault("search", {})["api_base"] = api_base

    return overrides


def apply_cli_overrides(settings: dict[str, Any], cli_args: dict[str, Any]) -> dict[str, Any]:
    """Apply overrides from CLI arguments.

    Args:
        settings: Settings so far (YAML merged with env)
        cli_args: CLI arguments

    Returns:
        Settings with CLI overrides applied
    """
    overrides: dict[str, Any] = {}

    if cli_args.get("log_file"):
        overrides.setdefault("logging", {})["file"] = cli_args["log_file"]

    if cli_args.get("verbose"):
        overrides.setdefault("logging", {})["verbose"] = cli_args["verbose"]

    return deep_merge(settings, overrides)


def load_settings(
    paths: SkilPaths,
    settings_path: Path | None = None,
    cli_args: dict[str, Any] | None = None,
) -> Settings:
    """Load and validate the tool settings.

    Args:
        paths: Resolved environment paths (locates the default settings file)
        settings_path: Explicit YAML file; must exist when given
        cli_args: CLI arguments

    Returns:
        Validated Settings

    Raises:
        ConfigParseError: Unreadable file or settings that fail validation
    """
    cli_args = cli_args or {}

    if settings_path:
        yaml_settings = load_yaml_settings(settings_path, required=True)
    else:
        yaml_settings = load_yaml_settings(default_settings_path(paths))

    merged = deep_merge(yaml_settings, load_env_overrides())
    merged = apply_cli_overrides(merged, cli_args)

    try:
        return Settings(**merged)
    except ValidationError as e:
        raise ConfigParseError(f"Invalid settings: {e}") from e
