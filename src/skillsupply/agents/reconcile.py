"""
Reconciling an agent's skills directory with its install state.

Ownership rule: a path under the skills directory is only ever removed
when its name is recorded in the agent's state file. An existing target
that is not recorded blocks the install instead of being overwritten.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import AbstractSet, Iterable

from skillsupply.agents.install import AgentInstallPlan
from skillsupply.agents.registry import ResolvedAgent
from skillsupply.agents.state import AgentInstallState
from skillsupply.errors import InstallError, describe_os_error
from skillsupply.logging import get_logger
from skillsupply.result import Err, Ok, Result

logger = get_logger("agents.reconcile")


def remove_path(path: Path) -> None:
    """Remove a file, symlink or directory tree; missing paths are ignored.

    Symlinks are unlinked, never followed.
    """
    if path.is_symlink() or path.is_file():
        path.unlink(missing_ok=True)
    elif path.is_dir():
        shutil.rmtree(path)


def preflight_targets(
    plan: AgentInstallPlan,
    managed: AbstractSet[str],
) -> Result[list[Path], InstallError]:
    """Check every planned target before anything is touched.

    Returns the existing targets that are managed and must be cleared
    before install. Any existing unmanaged target is a conflict.
    """
    removable: list[Path] = []
    for task in plan.tasks:
        try:
            exists = os.path.lexists(task.target_path)
        except OSError as e:
            return Err(InstallError(
                "io",
                describe_os_error(e, f"Unable to access {task.target_path}."),
                agent_id=plan.agent.id,
                path=task.target_path,
            ))
        if not exists:
            continue
        if task.target_name not in managed:
            return Err(InstallError(
                "conflict",
                f"Skill target already exists and is not managed: {task.target_name}",
                agent_id=plan.agent.id,
                path=task.target_path,
            ))
        removable.append(task.target_path)
    return Ok(removable)


def remove_managed_targets(
    paths: Iterable[Path],
    agent_id: str | None = None,
) -> Result[int, InstallError]:
    """Remove targets that passed :func:`preflight_targets`."""
    count = 0
    for path in paths:
        try:
            remove_path(path)
        except OSError as e:
            return Err(InstallError(
                "io", describe_os_error(e, f"Unable to remove {path}."), agent_id=agent_id, path=path,
            ))
        count += 1
    return Ok(count)


def reconcile_agent_skills(
    agent: ResolvedAgent,
    state: AgentInstallState | None,
    desired: AbstractSet[str],
) -> Result[list[str], InstallError]:
    """Remove managed skills that are no longer desired.

    Without prior state nothing is removed. Returns the removed names.
    """
    if state is None:
        return Ok([])

    removed: list[str] = []
    for name in state.skills:
        if name in desired:
            continue
        target = agent.skills_path / name
        try:
            remove_path(target)
        except OSError as e:
            return Err(InstallError(
                "io", describe_os_error(e, f"Unable to remove {target}."), agent_id=agent.id, path=target,
            ))
        logger.info("Removed stale skill %s from %s", name, agent.display_name)
        removed.append(name)
    return Ok(removed)


def count_stale_skills(skills: Iterable[str], desired: AbstractSet[str]) -> int:
    """Managed skills that a sync would remove."""
    return sum(1 for name in skills if name not in desired)
