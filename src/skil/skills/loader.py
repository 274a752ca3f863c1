"""
Skill Discovery — Finds SKILL.md bundles in a directory tree.

Search order (first occurrence of a name wins):
1. the search root itself (returned alone unless full_depth is set)
2. immediate subdirectories of PRIORITY_DIRS, in table order
3. only if nothing was found: a walk of up to MAX_WALK_DEPTH levels

A SKILL.md is a skill only if it opens with a `---` YAML frontmatter block
with non-empty string `name` and `description`. A broken YAML block or
non-UTF-8 content aborts discovery, as does a non-string name or
description; a valid block without those keys is just not a skill.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
import yaml

from ..errors import FilesystemError, MalformedFrontmatterError

logger = structlog.get_logger()

SKILL_FILE = "SKILL.md"
MAX_WALK_DEPTH = 5

# Relative to the search root, scanned in this order
PRIORITY_DIRS: tuple[str, ...] = (
    ".",
    "skills",
    "skills/.curated",
    "skills/.experimental",
    "skills/.system",
    ".agent/skills",
    ".agents/skills",
    ".claude/skills",
    ".cline/skills",
    ".codebuddy/skills",
    ".codex/skills",
    ".commandcode/skills",
    ".continue/skills",
    ".cursor/skills",
    ".github/skills",
    ".goose/skills",
    ".junie/skills",
    ".kilocode/skills",
    ".kiro/skills",
    ".mux/skills",
    ".opencode/skills",
    ".openhands/skills",
    ".roo/skills",
    ".trae/skills",
    ".windsurf/skills",
    ".zencoder/skills",
)


@dataclass(frozen=True)
class Skill:
    """A parsed skill bundle.

    path is the directory containing SKILL.md; raw_content is the full file.
    """

    name: str
    description: str
    path: Path
    raw_content: str = ""


def discover_skills(
    base: Path,
    subpath: str | Path | None = None,
    full_depth: bool = False,
) -> list[Skill]:
    """Discover skills under base/subpath.

    Args:
        base: Repository or directory root.
        subpath: Optional path inside base to search from.
        full_depth: Keep scanning even if the search root is itself a skill.

    Returns:
        Skills in first-found order, unique by name.

    Raises:
        MalformedFrontmatterError: A SKILL.md has unparseable YAML frontmatter.
        FilesystemError: A directory or SKILL.md could not be read.
    """
    search_root = Path(base) / subpath if subpath else Path(base)
    skills: list[Skill] = []
    seen: set[str] = set()

    def _add(skill: Skill | None) -> None:
        if skill and skill.name not in seen:
            seen.add(skill.name)
            skills.append(skill)

    if _has_skill_md(search_root):
        root_skill = parse_skill_md(search_root / SKILL_FILE)
        if root_skill:
            _add(root_skill)
            if not full_depth:
                logger.info("skills.root_skill", name=root_skill.name, path=str(search_root))
                return skills

    for rel in PRIORITY_DIRS:
        directory = search_root / rel
        if not directory.is_dir():
            continue
        for child in _sorted_children(directory):
            if child.is_dir() and _has_skill_md(child):
                _add(parse_skill_md(child / SKILL_FILE))

    if not skills:
        for skill_md in _walk_skill_files(search_root, MAX_WALK_DEPTH):
            _add(parse_skill_md(skill_md))

    logger.info(
        "skills.discovered",
        root=str(search_root),
        count=len(skills),
        names=[s.name for s in skills],
    )
    return skills


def select_skills(skills: list[Skill], requested: list[str]) -> list[Skill]:
    """Filter skills by name, case-insensitively.

    An empty request or ["*"] selects everything. Names that match nothing
    are dropped; reporting that is up to the caller.
    """
    if not requested or (len(requested) == 1 and requested[0] == "*"):
        return list(skills)

    wanted = {name.lower() for name in requested}
    return [skill for skill in skills if skill.name.lower() in wanted]


def parse_skill_md(path: Path) -> Skill | None:
    """Parse a SKILL.md file into a Skill, or None if it is not a valid skill."""
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise MalformedFrontmatterError(f"{path}: not valid UTF-8 ({e.reason})") from e
    except OSError as e:
        raise FilesystemError(f"Cannot read {path}: {e}") from e

    try:
        meta = parse_frontmatter(content)
    except MalformedFrontmatterError as e:
        raise MalformedFrontmatterError(f"{path}: {e}") from e
    if meta is None:
        return None

    name = _text_field(meta, "name", path)
    description = _text_field(meta, "description", path)
    if not name or not description:
        logger.debug("skills.incomplete_frontmatter", path=str(path))
        return None

    return Skill(
        name=name,
        description=description,
        path=path.parent,
        raw_content=content,
    )


def parse_frontmatter(content: str) -> dict[str, Any] | None:
    """Extract the YAML frontmatter mapping from SKILL.md content.

    Returns:
        The parsed mapping, or None when there is no frontmatter block or the
        block is empty.

    Raises:
        MalformedFrontmatterError: The block is not valid YAML or not a mapping.
    """
    lines = content.splitlines()
    if not lines or lines[0].strip() != "---":
        return None

    block: list[str] = []
    for line in lines[1:]:
        if line.strip() == "---":
            break
        block.append(line)

    text = "\n".join(block)
    if not text.strip():
        return None

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise MalformedFrontmatterError(f"Invalid SKILL.md frontmatter: {e}") from e

    if data is None:
        return None
    if not isinstance(data, dict):
        raise MalformedFrontmatterError("Invalid SKILL.md frontmatter: expected a mapping")
    return data


# ── Internals ────────────────────────────────────────────────────────────


def _text_field(meta: dict[str, Any], key: str, path: Path) -> str:
    value = meta.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MalformedFrontmatterError(
            f"{path}: `{key}` must be a string, got {type(value).__name__}"
        )
    return value


def _has_skill_md(directory: Path) -> bool:
    return (directory / SKILL_FILE).is_file()


def _sorted_children(directory: Path) -> list[Path]:
    try:
        return sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as e:
        raise FilesystemError(f"Cannot list {directory}: {e}") from e


def _walk_skill_files(root: Path, max_depth: int):
    """Yield SKILL.md files at most `max_depth` levels below root."""
    root_depth = len(root.parts)
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        depth = len(current.parts) - root_depth
        dirnames.sort()
        if depth + 1 >= max_depth:
            # files in children of this directory would exceed max_depth
            dirnames.clear()
        if SKILL_FILE in filenames and depth + 1 <= max_depth:
            yield current / SKILL_FILE
