"""
Install planning and application for one agent.

Every skill lands at ``<skills_path>/<prefix>-<skill name>``. Skills from
local packages are symlinked so edits show up immediately; everything
else is copied out of the temporary checkout.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Sequence

from skillsupply.agents.registry import ResolvedAgent
from skillsupply.errors import InstallError, describe_os_error
from skillsupply.logging import get_logger
from skillsupply.packages.models import ExtractedPackage
from skillsupply.packages.resolve import get_fetch_strategy
from skillsupply.result import Err, Ok, Result

logger = get_logger("agents.install")

InstallMode = Literal["symlink", "copy"]

# Never copied into an agent's skills directory
COPY_IGNORE = shutil.ignore_patterns(".git")


@dataclass(frozen=True)
class InstallTask:
    target_name: str  # <prefix>-<skill name>
    target_path: Path
    source_path: Path
    skill_name: str
    mode: InstallMode


@dataclass
class AgentInstallPlan:
    """Ordered install tasks for one agent."""

    agent: ResolvedAgent
    base_path: Path
    tasks: list[InstallTask] = field(default_factory=list)

    @property
    def target_names(self) -> set[str]:
        return {task.target_name for task in self.tasks}


def normalize_segment(value: str, label: str, agent_id: str) -> str:
    """Trim ``value`` and require it to be a single path segment.

    Raises:
        InstallError: ``value`` is empty, contains a separator, or is a
            dot segment.
    """
    trimmed = value.strip()
    if not trimmed:
        raise InstallError("invalid_input", f"Skill {label} cannot be empty.", agent_id=agent_id)
    if "/" in trimmed or "\\" in trimmed:
        raise InstallError(
            "invalid_input", f"Skill {label} must not include path separators.", agent_id=agent_id,
        )
    if trimmed in (".", ".."):
        raise InstallError("invalid_input", f'Skill {label} must not be "." or "..".', agent_id=agent_id)
    return trimmed


def _is_within(base: Path, target: Path) -> bool:
    relative = os.path.relpath(target, base)
    return relative not in (".", "") and not relative.startswith("..") and not os.path.isabs(relative)


def plan_agent_install(
    agent: ResolvedAgent,
    packages: Sequence[ExtractedPackage],
) -> Result[AgentInstallPlan, InstallError]:
    """Build the install plan for ``agent`` in package then skill order."""
    base = Path(os.path.abspath(agent.skills_path))
    plan = AgentInstallPlan(agent=agent, base_path=base)
    seen: set[str] = set()

    try:
        for package in packages:
            if not package.skills:
                raise InstallError(
                    "invalid_input",
                    f'Package "{package.prefix}" has no skills to install.',
                    agent_id=agent.id,
                )
            prefix = normalize_segment(package.prefix, "prefix", agent.id)
            strategy = get_fetch_strategy(package.canonical)
            mode: InstallMode = "symlink" if strategy.mode == "symlink" else "copy"

            for skill in package.skills:
                name = normalize_segment(skill.name, "skill name", agent.id)
                target_name = f"{prefix}-{name}"
                target_path = base / target_name
                if not _is_within(base, target_path):
                    raise InstallError(
                        "invalid_target",
                        "Skill target path escapes the agent skills directory.",
                        agent_id=agent.id,
                        path=target_path,
                    )
                if target_name in seen:
                    raise InstallError(
                        "conflict",
                        f"Duplicate skill target detected: {target_name}",
                        agent_id=agent.id,
                        path=target_path,
                    )
                seen.add(target_name)
                plan.tasks.append(InstallTask(
                    target_name=target_name,
                    target_path=target_path,
                    source_path=skill.source_path,
                    skill_name=name,
                    mode=mode,
                ))
    except InstallError as e:
        return Err(e)

    return Ok(plan)


def _ensure_base_dir(plan: AgentInstallPlan) -> None:
    base = plan.base_path
    if base.exists() and not base.is_dir():
        raise InstallError(
            "invalid_target", f"Expected directory at {base}.", agent_id=plan.agent.id, path=base,
        )
    base.mkdir(parents=True, exist_ok=True)


def _install_task(task: InstallTask, agent_id: str) -> None:
    if not task.source_path.is_dir():
        raise InstallError(
            "invalid_input",
            f"Skill source is not a directory: {task.source_path}",
            agent_id=agent_id,
            path=task.source_path,
        )
    if os.path.lexists(task.target_path):
        raise InstallError(
            "conflict",
            f"Skill target already exists: {task.target_name}",
            agent_id=agent_id,
            path=task.target_path,
        )

    if task.mode == "symlink":
        task.target_path.symlink_to(task.source_path, target_is_directory=True)
    else:
        shutil.copytree(task.source_path, task.target_path, symlinks=True, ignore=COPY_IGNORE)


def apply_agent_install(plan: AgentInstallPlan) -> Result[list[InstallTask], InstallError]:
    """Create every target in ``plan``.

    Targets must already be clear; removing managed leftovers is the
    caller's job.
    """
    agent_id = plan.agent.id
    installed: list[InstallTask] = []
    try:
        _ensure_base_dir(plan)
        for task in plan.tasks:
            try:
                _install_task(task, agent_id)
            except OSError as e:
                raise InstallError(
                    "io",
                    describe_os_error(e, f"Unable to install {task.target_name}."),
                    agent_id=agent_id,
                    path=task.target_path,
                ) from e
            installed.append(task)
            logger.debug("Installed %s (%s) for %s", task.target_name, task.mode, agent_id)
    except InstallError as e:
        return Err(e)
    except OSError as e:
        return Err(InstallError(
            "io",
            describe_os_error(e, f"Unable to prepare {plan.base_path}."),
            agent_id=agent_id,
            path=plan.base_path,
        ))

    return Ok(installed)
