"""
Agent registry — Supported coding agents and agent selection.

Each agent is a row of static data: where its project-level skills live
(relative to the working directory) and where its global skills live
(resolved from SkilPaths). Adding an agent means adding a row to
_AGENT_DEFS, nothing else.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from ..errors import InvalidAgentError
from ..paths import SkilPaths


@dataclass(frozen=True)
class AgentConfig:
    """Skills locations for a supported agent.

    An empty global_skills_dir means the agent has no global skills support.
    """

    name: str
    display_name: str
    skills_dir: str
    global_skills_dir: str = ""

    @property
    def supports_global(self) -> bool:
        return bool(self.global_skills_dir)


# name -> (display name, project skills dir, global skills dir resolver)
_AGENT_DEFS: dict[str, tuple[str, str, Callable[[SkilPaths], Path]]] = {
    "codex": ("Codex", ".codex/skills", lambda p: p.codex_home / "skills"),
    "claude-code": ("Claude Code", ".claude/skills", lambda p: p.claude_home / "skills"),
    "opencode": ("OpenCode", ".opencode/skills", lambda p: p.config_home / "opencode/skills"),
    "cursor": ("Cursor", ".cursor/skills", lambda p: p.home / ".cursor/skills"),
    "continue": ("Continue", ".continue/skills", lambda p: p.home / ".continue/skills"),
    "github-copilot": ("GitHub Copilot", ".github/skills", lambda p: p.home / ".copilot/skills"),
    "goose": ("Goose", ".goose/skills", lambda p: p.config_home / "goose/skills"),
    "junie": ("Junie", ".junie/skills", lambda p: p.home / ".junie/skills"),
    "windsurf": ("Windsurf", ".windsurf/skills", lambda p: p.home / ".windsurf/skills"),
}

# Agents probed (in this order) when no agent is requested
_DEFAULT_CANDIDATES: list[tuple[str, Callable[[SkilPaths], Path]]] = [
    ("codex", lambda p: p.codex_home),
    ("claude-code", lambda p: p.claude_home),
    ("opencode", lambda p: p.config_home / "opencode"),
]

_FALLBACK_AGENT = "codex"


def agent_configs(paths: SkilPaths) -> list[AgentConfig]:
    """Return every known agent with its global directory resolved."""
    return [
        AgentConfig(
            name=name,
            display_name=display,
            skills_dir=skills_dir,
            global_skills_dir=str(global_dir(paths)),
        )
        for name, (display, skills_dir, global_dir) in _AGENT_DEFS.items()
    ]


def list_agent_names() -> list[str]:
    return list(_AGENT_DEFS.keys())


def get_agent(name: str, paths: SkilPaths) -> AgentConfig:
    """Return a single agent by name.

    Raises:
        InvalidAgentError: If the name is not a known agent.
    """
    for agent in agent_configs(paths):
        if agent.name == name:
            return agent
    raise InvalidAgentError(
        f"Unknown agent '{name}'. Available agents: {', '.join(list_agent_names())}"
    )


def resolve_agents(requested: list[str], paths: SkilPaths) -> list[AgentConfig]:
    """Resolve requested agent names to configs.

    - empty request -> agents detected on this machine (see detect_default_agents)
    - ["*"]         -> every known agent
    - otherwise     -> the known names in request order; unknown names are dropped

    Args:
        requested: Agent names as given by the user.
        paths: Resolved environment paths.

    Returns:
        Selected agents, possibly empty.
    """
    all_agents = agent_configs(paths)

    if not requested:
        return detect_default_agents(all_agents, paths)

    if len(requested) == 1 and requested[0] == "*":
        return all_agents

    by_name = {agent.name: agent for agent in all_agents}
    return [by_name[name] for name in requested if name in by_name]


def detect_default_agents(all_agents: list[AgentConfig], paths: SkilPaths) -> list[AgentConfig]:
    """Pick agents whose config home exists, falling back to codex."""
    by_name = {agent.name: agent for agent in all_agents}
    detected = [
        by_name[name]
        for name, home in _DEFAULT_CANDIDATES
        if name in by_name and home(paths).exists()
    ]
    if not detected and _FALLBACK_AGENT in by_name:
        detected.append(by_name[_FALLBACK_AGENT])
    return detected


def unknown_agent_names(requested: list[str]) -> list[str]:
    """Names in `requested` that are neither known agents nor the '*' wildcard."""
    return [name for name in requested if name != "*" and name not in _AGENT_DEFS]
