"""
Skills Installer — Canonical store and per-agent fan-out.

Every install writes the skill into the canonical store
(`<home|cwd>/.agents/skills/<sanitized-name>`) and then points each agent's
skills directory at it, either with a directory symlink or with an
independent copy. Both are rebuilt from scratch on every install.

Failures propagate as FilesystemError with no cleanup; re-running the
install repairs a half-written directory.
"""

import os
import re
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import structlog

from ..agents import AgentConfig
from ..errors import FilesystemError, InvalidAgentError
from ..paths import AGENTS_DIR, SKILLS_SUBDIR, SkilPaths
from .loader import SKILL_FILE, Skill

logger = structlog.get_logger()

__all__ = [
    "IGNORED_DIRS",
    "InstallMode",
    "InstalledEntry",
    "agent_skills_base",
    "canonical_skills_dir",
    "create_skill_template",
    "install_skill",
    "installed_entry",
    "sanitize_name",
    "uninstall_skill",
]

IGNORED_DIRS = frozenset({
    ".git", "node_modules", "target", "dist", "build", ".next", ".turbo", ".cache",
})

MAX_NAME_LENGTH = 255
UNNAMED_SKILL = "unnamed-skill"

_UNSAFE_RUN = re.compile(r"[^a-z0-9._]+")


class InstallMode(str, Enum):
    SYMLINK = "symlink"
    COPY = "copy"


@dataclass(frozen=True)
class InstalledEntry:
    """What an agent directory holds for a skill."""

    path: Path
    is_symlink: bool


def sanitize_name(name: str) -> str:
    """Make a skill name safe to use as a directory name.

    Lowercases, collapses every run of characters outside [a-z0-9._] into a
    single '-', trims '-' and '.' from both ends and caps the length.

    Example:
        >>> sanitize_name("Web Design")
        'web-design'
        >>> sanitize_name("../evil")
        'evil'
    """
    cleaned = _UNSAFE_RUN.sub("-", name.lower()).strip("-.")
    if not cleaned:
        return UNNAMED_SKILL
    return cleaned[:MAX_NAME_LENGTH].strip("-.") or UNNAMED_SKILL


def canonical_skills_dir(paths: SkilPaths, global_: bool = False) -> Path:
    """The canonical store for the given scope."""
    return paths.scope_root(global_) / AGENTS_DIR / SKILLS_SUBDIR


def agent_skills_base(agent: AgentConfig, paths: SkilPaths, global_: bool = False) -> Path:
    """The directory where `agent` looks for skills in the given scope.

    Raises:
        InvalidAgentError: Global scope requested for an agent without global support.
    """
    if global_:
        if not agent.supports_global:
            raise InvalidAgentError(f"{agent.display_name} does not support global skills")
        return Path(agent.global_skills_dir)
    return paths.cwd / agent.skills_dir


def install_skill(
    skill: Skill,
    agent: AgentConfig,
    paths: SkilPaths,
    global_: bool = False,
    mode: InstallMode = InstallMode.SYMLINK,
) -> Path:
    """Install one skill for one agent.

    Args:
        skill: Discovered skill (its directory is the copy source).
        agent: Target agent.
        paths: Resolved environment paths.
        global_: Install into the global scope instead of the project.
        mode: Symlink to the canonical copy (copy on failure) or always copy.

    Returns:
        The agent-side path of the installed skill.

    Raises:
        FilesystemError: Any copy/link/remove failure.
    """
    dir_name = sanitize_name(skill.name or "unnamed")
    canonical = canonical_skills_dir(paths, global_) / dir_name
    target = agent_skills_base(agent, paths, global_) / dir_name

    try:
        if not _same_path(Path(skill.path), canonical):
            _remove_path(canonical)
            canonical.mkdir(parents=True, exist_ok=True)
            _copy_tree(Path(skill.path), canonical)

        if _same_location(target, canonical):
            return target

        if mode is InstallMode.SYMLINK:
            if not _try_link(canonical, target):
                logger.debug("skill.link_fallback", skill=skill.name, agent=agent.name)
                _replace_with_copy(canonical, target)
        else:
            _replace_with_copy(canonical, target)
    except OSError as e:
        raise FilesystemError(
            f"Failed to install '{skill.name}' for {agent.display_name}: {e}"
        ) from e

    logger.info(
        "skill.installed",
        skill=skill.name,
        agent=agent.name,
        mode=mode.value,
        path=str(target),
    )
    return target


def installed_entry(
    agent: AgentConfig,
    name: str,
    paths: SkilPaths,
    global_: bool = False,
) -> InstalledEntry | None:
    """Return what `agent` holds for skill `name`, or None if absent."""
    if global_ and not agent.supports_global:
        return None
    path = agent_skills_base(agent, paths, global_) / sanitize_name(name)
    if path.is_symlink():
        return InstalledEntry(path=path, is_symlink=True)
    if path.exists():
        return InstalledEntry(path=path, is_symlink=False)
    return None


def uninstall_skill(
    name: str,
    agents: list[AgentConfig],
    paths: SkilPaths,
    global_: bool = False,
    remove_canonical: bool = True,
) -> list[Path]:
    """Remove a skill from the given agents and optionally the canonical store.

    Returns:
        Every path that was removed.
    """
    dir_name = sanitize_name(name)
    candidates = [
        agent_skills_base(agent, paths, global_) / dir_name
        for agent in agents
        if not global_ or agent.supports_global
    ]
    if remove_canonical:
        candidates.append(canonical_skills_dir(paths, global_) / dir_name)

    removed: list[Path] = []
    for path in candidates:
        if not (path.exists() or path.is_symlink()):
            continue
        try:
            _remove_path(path)
        except OSError as e:
            raise FilesystemError(f"Failed to remove {path}: {e}") from e
        removed.append(path)

    logger.info("skill.removed", skill=name, paths=[str(p) for p in removed])
    return removed


def create_skill_template(directory: Path, name: str) -> Path:
    """Write a starter SKILL.md into `directory`.

    Raises:
        FilesystemError: SKILL.md already exists or could not be written.
    """
    skill_md = directory / SKILL_FILE
    if skill_md.exists():
        raise FilesystemError(f"{skill_md} already exists")
    try:
        directory.mkdir(parents=True, exist_ok=True)
        skill_md.write_text(
            f"---\n"
            f"name: {name}\n"
            f"description: A brief description of what this skill does\n"
            f"---\n\n"
            f"# {name}\n\n"
            f"Instructions for the agent to follow when this skill is activated.\n\n"
            f"## When to use\n\n"
            f"Describe when this skill should be used.\n\n"
            f"## Instructions\n\n"
            f"1. First step\n"
            f"2. Second step\n",
            encoding="utf-8",
        )
    except OSError as e:
        raise FilesystemError(f"Cannot write {skill_md}: {e}") from e
    return skill_md


# ── Internals ────────────────────────────────────────────────────────────


def _ignore_build_dirs(_dir: str, names: list[str]) -> set[str]:
    return {name for name in names if name in IGNORED_DIRS}


def _copy_tree(source: Path, dest: Path) -> None:
    shutil.copytree(source, dest, ignore=_ignore_build_dirs, dirs_exist_ok=True)


def _remove_path(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def _try_link(canonical: Path, target: Path) -> bool:
    """Replace `target` with a directory symlink to `canonical`.

    Any failure (unsupported filesystem, permissions) returns False so the
    caller can fall back to a copy.
    """
    try:
        _remove_path(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(canonical, target, target_is_directory=True)
    except OSError as e:
        logger.debug("skill.symlink_failed", target=str(target), error=str(e))
        return False
    return True


def _replace_with_copy(canonical: Path, target: Path) -> None:
    _remove_path(target)
    target.mkdir(parents=True, exist_ok=True)
    _copy_tree(canonical, target)


def _same_path(a: Path, b: Path) -> bool:
    try:
        return a.resolve() == b.resolve()
    except OSError:
        return False


def _same_location(link: Path, directory: Path) -> bool:
    """True if `link` itself (not what it points to) is `directory`."""
    try:
        return link.parent.resolve() / link.name == directory.resolve()
    except OSError:
        return False
