"""
Skill lock — Global provenance record for every installed skill.

Lives at `~/.agents/.skill-lock.json`, one entry per skill name. A lock file
written by an older schema version is discarded and rebuilt from empty;
the entries of the previous format cannot be trusted for drift detection.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import structlog
from pydantic import ValidationError

from ..errors import FilesystemError, LockParseError
from ..logging.human import HumanLog
from ..paths import SkilPaths
from ..skills.installer import sanitize_name
from ..skills.loader import SKILL_FILE, Skill
from ..sources.resolver import SourceInfo
from ..sources.tree_hash import fetch_skill_folder_hash
from .files import atomic_write_text
from .schema import LOCK_VERSION, SkillLockEntry, SkillLockFile

logger = structlog.get_logger()

LOCK_FILE = ".skill-lock.json"

HashFetcher = Callable[[str, str | None, str], str | None]


def lock_path(paths: SkilPaths) -> Path:
    return paths.lock_dir / LOCK_FILE


def read_lock(paths: SkilPaths) -> SkillLockFile:
    """Load the lock file.

    Returns an empty lock when the file does not exist, or when it was
    written by an older schema version (a warning is emitted).

    Raises:
        LockParseError: Invalid JSON or unexpected structure.
    """
    path = lock_path(paths)
    if not path.exists():
        return SkillLockFile()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise LockParseError(f"Invalid lock file {path}: {e}") from e
    except OSError as e:
        raise FilesystemError(f"Cannot read {path}: {e}") from e

    version = data.get("version") if isinstance(data, dict) else None
    if isinstance(version, int) and version < LOCK_VERSION:
        HumanLog(logger).lock_reset(version, LOCK_VERSION)
        return SkillLockFile()

    try:
        return SkillLockFile.model_validate(data)
    except ValidationError as e:
        raise LockParseError(f"Invalid lock file {path}: {e}") from e


def write_lock(paths: SkilPaths, lock: SkillLockFile) -> None:
    path = lock_path(paths)
    atomic_write_text(path, json.dumps(lock.to_json_dict(), indent=2) + "\n")
    logger.debug("lock.written", path=str(path), skills=len(lock.skills))


def update_lock_for_skill(
    skill: Skill,
    info: SourceInfo,
    base_path: Path,
    paths: SkilPaths,
    fetch_hash: HashFetcher = fetch_skill_folder_hash,
) -> SkillLockEntry:
    """Record (or refresh) the lock entry for an installed skill.

    Args:
        skill: The installed skill.
        info: Provenance of the source it came from.
        base_path: Root of the fetched source (clone dir or local path);
            the recorded skill path is relative to it.
        paths: Resolved environment paths.
        fetch_hash: Tree-hash lookup, only called for GitHub sources.

    Returns:
        The entry as written.
    """
    skill_path = _relative_skill_path(Path(skill.path), Path(base_path))

    folder_hash = ""
    if info.source_type == "github" and info.github_owner_repo and skill_path:
        folder_hash = fetch_hash(info.github_owner_repo, info.github_branch, skill_path) or ""

    lock = read_lock(paths)
    now = datetime.now(timezone.utc).isoformat()
    previous = lock.skills.get(skill.name)

    entry = SkillLockEntry(
        source=info.source_id,
        source_type=info.source_type,
        source_url=info.source_url,
        skill_path=skill_path,
        source_branch=info.github_branch,
        skill_folder_hash=folder_hash,
        installed_at=previous.installed_at if previous else now,
        updated_at=now,
    )
    lock.skills[skill.name] = entry
    write_lock(paths, lock)
    logger.info("lock.updated", skill=skill.name, source=info.source_id, hash=folder_hash or None)
    return entry


def remove_lock_entry(name: str, paths: SkilPaths) -> bool:
    """Drop a skill from the lock. Returns False if it was not recorded.

    Entries match by installed directory name, so "web-design" also drops
    a skill recorded as "Web Design".
    """
    lock = read_lock(paths)
    dir_name = sanitize_name(name)
    keys = [k for k in lock.skills if sanitize_name(k) == dir_name]
    if not keys:
        return False
    for key in keys:
        del lock.skills[key]
    write_lock(paths, lock)
    return True


def _relative_skill_path(skill_dir: Path, base_path: Path) -> str | None:
    try:
        rel = skill_dir.resolve().relative_to(base_path.resolve())
    except (ValueError, OSError):
        return None
    if rel == Path("."):
        return SKILL_FILE
    return f"{rel.as_posix()}/{SKILL_FILE}"
