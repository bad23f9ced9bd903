"""Agent registry, install state, install planning and reconciliation."""
from __future__ import annotations

from skillsupply.agents.install import (
    AgentInstallPlan,
    InstallTask,
    apply_agent_install,
    plan_agent_install,
)
from skillsupply.agents.reconcile import (
    count_stale_skills,
    preflight_targets,
    reconcile_agent_skills,
    remove_managed_targets,
)
from skillsupply.agents.registry import (
    AGENTS,
    AgentDefinition,
    AgentScope,
    ResolvedAgent,
    detect_installed_agents,
    get_agent,
    list_agents,
    resolve_agent,
    resolve_enabled_agents,
)
from skillsupply.agents.state import (
    STATE_FILENAME,
    AgentInstallState,
    build_agent_state,
    read_agent_state,
    write_agent_state,
)

__all__ = [
    "AGENTS",
    "STATE_FILENAME",
    "AgentDefinition",
    "AgentInstallPlan",
    "AgentInstallState",
    "AgentScope",
    "InstallTask",
    "ResolvedAgent",
    "apply_agent_install",
    "build_agent_state",
    "count_stale_skills",
    "detect_installed_agents",
    "get_agent",
    "list_agents",
    "plan_agent_install",
    "preflight_targets",
    "read_agent_state",
    "reconcile_agent_skills",
    "remove_managed_targets",
    "resolve_agent",
    "resolve_enabled_agents",
    "write_agent_state",
]
