"""Immutable manifest edits. Every function returns a new :class:`Manifest`."""

from __future__ import annotations

from dataclasses import replace

from skillsupply.manifest.models import AgentId, Declaration, Manifest


def add_dependency(manifest: Manifest, alias: str, declaration: Declaration) -> Manifest:
    """Add ``alias`` or replace its declaration."""
    dependencies = dict(manifest.dependencies)
    dependencies[alias] = declaration
    return replace(manifest, dependencies=dependencies)


def remove_dependency(manifest: Manifest, alias: str) -> Manifest:
    dependencies = {
        key: value for key, value in manifest.dependencies.items() if key != alias
    }
    return replace(manifest, dependencies=dependencies)


def has_dependency(manifest: Manifest, alias: str) -> bool:
    return alias in manifest.dependencies


def get_dependency(manifest: Manifest, alias: str) -> Declaration | None:
    return manifest.dependencies.get(alias)


def set_agent(manifest: Manifest, agent_id: AgentId, enabled: bool) -> Manifest:
    agents = dict(manifest.agents)
    agents[agent_id] = enabled
    return replace(manifest, agents=agents)


def get_agent(manifest: Manifest, agent_id: AgentId) -> bool | None:
    """``True``/``False`` when the manifest sets the agent, else ``None``."""
    return manifest.agents.get(agent_id)
