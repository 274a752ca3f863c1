"""
Resolved filesystem locations for a single skil invocation.

The environment (home directory, XDG config home, agent-specific homes) is
read once in SkilPaths.from_env() and the resulting object is passed to the
agent registry, installer and config/lock layers. Tests build SkilPaths
directly against a temporary directory.
"""

import os
from dataclasses import dataclass
from pathlib import Path

AGENTS_DIR = ".agents"
SKILLS_SUBDIR = "skills"


@dataclass(frozen=True)
class SkilPaths:
    """Directories skil reads from and writes to."""

    home: Path
    cwd: Path
    config_home: Path
    codex_home: Path
    claude_home: Path

    @classmethod
    def from_env(cls, cwd: Path | None = None) -> "SkilPaths":
        """Resolve paths from the current process environment.

        Args:
            cwd: Working directory override (defaults to os.getcwd()).
        """
        home = Path.home()
        config_home = _env_path("XDG_CONFIG_HOME") or home / ".config"
        return cls(
            home=home,
            cwd=Path(cwd) if cwd else Path(os.getcwd()),
            config_home=config_home,
            codex_home=_env_path("CODEX_HOME") or home / ".codex",
            claude_home=_env_path("CLAUDE_CONFIG_DIR") or home / ".claude",
        )

    @classmethod
    def for_root(cls, root: Path, cwd: Path | None = None) -> "SkilPaths":
        """Build paths with every home rooted under `root` (used in tests)."""
        home = Path(root)
        return cls(
            home=home,
            cwd=Path(cwd) if cwd else home,
            config_home=home / ".config",
            codex_home=home / ".codex",
            claude_home=home / ".claude",
        )

    def scope_root(self, global_: bool) -> Path:
        """Home for global installs, the working directory otherwise."""
        return self.home if global_ else self.cwd

    @property
    def lock_dir(self) -> Path:
        return self.home / AGENTS_DIR


def _env_path(name: str) -> Path | None:
    value = os.environ.get(name)
    return Path(value) if value else None
