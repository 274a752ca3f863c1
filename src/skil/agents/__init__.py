"""
Agents module — Supported coding agents and agent selection.
"""

from .registry import (
    AgentConfig,
    agent_configs,
    detect_default_agents,
    get_agent,
    list_agent_names,
    resolve_agents,
    unknown_agent_names,
)

__all__ = [
    "AgentConfig",
    "agent_configs",
    "detect_default_agents",
    "get_agent",
    "list_agent_names",
    "resolve_agents",
    "unknown_agent_names",
]
