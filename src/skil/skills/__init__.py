"""
Skills — discovery of SKILL.md bundles and their installation into agents.
"""

from .installer import (
    InstallMode,
    InstalledEntry,
    agent_skills_base,
    canonical_skills_dir,
    create_skill_template,
    install_skill,
    installed_entry,
    sanitize_name,
    uninstall_skill,
)
from .loader import Skill, discover_skills, parse_frontmatter, parse_skill_md, select_skills

__all__ = [
    "InstallMode",
    "InstalledEntry",
    "Skill",
    "agent_skills_base",
    "canonical_skills_dir",
    "create_skill_template",
    "discover_skills",
    "install_skill",
    "installed_entry",
    "parse_frontmatter",
    "parse_skill_md",
    "sanitize_name",
    "select_skills",
    "uninstall_skill",
]
