"""
Source config — Which sources are installed and which skills came from each.

Stored as TOML, human-editable:

    [source."vercel-labs/agent-skills"]
    source-type = "github"
    branch = "main"
    revision = "3f1c..."
    skills = ["web-design"]

Global scope: `$XDG_CONFIG_HOME/skil/config.toml`. Project scope:
`./.skil.toml`. Every update is read-merge-write of the whole file.
"""

import tomllib
from dataclasses import dataclass
from pathlib import Path

import structlog
import tomli_w
from pydantic import ValidationError

from ..errors import ConfigParseError, FilesystemError
from ..paths import SkilPaths
from ..skills.installer import sanitize_name
from .files import atomic_write_text
from .schema import SkilConfig, SkilSource

logger = structlog.get_logger()

CONFIG_DIR = "skil"
CONFIG_FILE = "config.toml"
LOCAL_CONFIG_FILE = ".skil.toml"


@dataclass(frozen=True)
class ConfigLocation:
    """Resolved config file and the scope it belongs to."""

    path: Path
    is_global: bool


def config_location(paths: SkilPaths, global_: bool) -> ConfigLocation:
    """Config file for the given scope."""
    if global_:
        return ConfigLocation(paths.config_home / CONFIG_DIR / CONFIG_FILE, is_global=True)
    return ConfigLocation(paths.cwd / LOCAL_CONFIG_FILE, is_global=False)


def config_location_auto(paths: SkilPaths) -> ConfigLocation:
    """Project config when it exists, otherwise the global one."""
    local = config_location(paths, global_=False)
    if local.path.exists():
        return local
    return config_location(paths, global_=True)


def read_config(path: Path) -> SkilConfig:
    """Load the config, or an empty one if the file does not exist.

    Raises:
        ConfigParseError: Invalid TOML or unexpected structure.
    """
    if not path.exists():
        return SkilConfig()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid config file {path}: {e}") from e
    except OSError as e:
        raise FilesystemError(f"Cannot read {path}: {e}") from e

    try:
        return SkilConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigParseError(f"Invalid config file {path}: {e}") from e


def write_config(path: Path, config: SkilConfig) -> None:
    """Write the whole config, creating parent directories."""
    atomic_write_text(path, tomli_w.dumps(config.to_toml_dict()))
    logger.debug("config.written", path=str(path), sources=len(config.sources))


def update_config(
    path: Path,
    source_key: str,
    source: SkilSource,
    skills: list[str],
    revision: str | None = None,
) -> SkilConfig:
    """Record installed skills for a source.

    Args:
        path: Config file.
        source_key: Stable source id (owner/repo, URL or local path).
        source: Entry used only if the key is not present yet.
        skills: Newly installed skill names, unioned with the existing ones.
        revision: New revision; None keeps the recorded one.

    Returns:
        The config as written.
    """
    config = read_config(path)
    entry = config.sources.setdefault(source_key, source.model_copy(deep=True))
    entry.merge_skills(skills)
    if revision is not None:
        entry.revision = revision
    write_config(path, config)
    logger.info("config.updated", source=source_key, skills=entry.skills, revision=entry.revision)
    return config


def remove_skills_from_config(path: Path, names: list[str]) -> list[str]:
    """Drop skill names and any source left with none.

    Names match by installed directory name (see sanitize_name), so the
    on-disk name of a skill removes its config entry too.

    Returns:
        Source keys that were removed entirely.
    """
    if not path.exists():
        return []

    config = read_config(path)
    wanted = {sanitize_name(name) for name in names}
    emptied: list[str] = []
    for key, entry in list(config.sources.items()):
        remaining = [s for s in entry.skills if sanitize_name(s) not in wanted]
        if len(remaining) == len(entry.skills):
            continue
        entry.skills = remaining
        if not remaining:
            del config.sources[key]
            emptied.append(key)

    write_config(path, config)
    return emptied
