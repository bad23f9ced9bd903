"""
Supported agents and where they read skills from.

Each agent keeps skills in ``<root>/<base_path>/<skills_dir>``. The root
is the project directory for ``local`` scope and the home directory for
``global`` scope::

    claude-code  ->  .claude/skills
    codex        ->  .codex/skills
    opencode     ->  .config/opencode/skill
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Mapping

from skillsupply.errors import AgentError, describe_os_error
from skillsupply.logging import get_logger
from skillsupply.manifest.models import AgentId
from skillsupply.result import Err, Ok, Result

logger = get_logger("agents.registry")

AgentScope = Literal["local", "global"]


@dataclass(frozen=True)
class AgentDefinition:
    """Static facts about an agent."""

    id: AgentId
    display_name: str
    base_path: str  # relative to the scope root
    skills_dir: str  # relative to base_path


@dataclass(frozen=True)
class ResolvedAgent:
    """An agent bound to concrete directories for one scope."""

    id: AgentId
    display_name: str
    root_path: Path
    skills_path: Path
    scope: AgentScope = "local"


AGENTS: tuple[AgentDefinition, ...] = (
    AgentDefinition("claude-code", "Claude Code", ".claude", "skills"),
    AgentDefinition("codex", "Codex", ".codex", "skills"),
    AgentDefinition("opencode", "OpenCode", ".config/opencode", "skill"),
)

_AGENTS_BY_ID: dict[str, AgentDefinition] = {agent.id: agent for agent in AGENTS}


def list_agents() -> list[AgentDefinition]:
    """All supported agents in registry order."""
    return list(AGENTS)


def get_agent(agent_id: str) -> Result[AgentDefinition, AgentError]:
    definition = _AGENTS_BY_ID.get(agent_id)
    if definition is None:
        return Err(AgentError(
            "unknown_agent",
            f"Unknown agent: {agent_id}. Expected one of: {', '.join(_AGENTS_BY_ID)}.",
            agent_id=agent_id,
        ))
    return Ok(definition)


def resolve_agent(definition: AgentDefinition, scope: AgentScope, root: Path) -> ResolvedAgent:
    """Bind ``definition`` to ``root`` (project dir or home dir)."""
    root_path = Path(os.path.abspath(root)) / definition.base_path
    return ResolvedAgent(
        id=definition.id,
        display_name=definition.display_name,
        root_path=root_path,
        skills_path=root_path / definition.skills_dir,
        scope=scope,
    )


def detect_installed_agents(home_dir: Path | None = None) -> Result[list[AgentDefinition], AgentError]:
    """Agents whose base directory exists under the home directory."""
    home = Path(home_dir or Path.home())
    detected: list[AgentDefinition] = []
    for definition in AGENTS:
        candidate = home / definition.base_path
        try:
            if not candidate.exists():
                continue
            if not candidate.is_dir():
                return Err(AgentError(
                    "io",
                    f"Expected a directory for {definition.display_name} at {candidate}.",
                    agent_id=definition.id,
                    path=candidate,
                ))
        except OSError as e:
            return Err(AgentError(
                "io",
                describe_os_error(e, f"Unable to access {candidate}."),
                agent_id=definition.id,
                path=candidate,
            ))
        detected.append(definition)

    logger.debug("Detected agents: %s", ", ".join(a.id for a in detected) or "none")
    return Ok(detected)


def resolve_enabled_agents(
    agents: Mapping[str, bool],
    scope: AgentScope,
    root: Path,
    home_dir: Path | None = None,
) -> Result[list[ResolvedAgent], AgentError]:
    """Agents a sync should install into.

    A non-empty ``[agents]`` table selects its enabled entries; an empty
    one falls back to the agents detected under the home directory.
    """
    if agents:
        enabled = [definition for definition in AGENTS if agents.get(definition.id)]
        if not enabled:
            return Err(AgentError("no_agents", "No agents are enabled in the manifest."))
    else:
        detected = detect_installed_agents(home_dir)
        if not detected.ok:
            return detected
        if not detected.value:
            return Err(AgentError("no_agents", "No supported agents detected."))
        enabled = detected.value

    return Ok([resolve_agent(definition, scope, root) for definition in enabled])
