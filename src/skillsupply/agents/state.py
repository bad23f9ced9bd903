"""
Per-agent install state.

``<agent root>/.sk-state.json`` records which skill targets skills-supply
manages for that agent::

    {
      "version": 1,
      "skills": ["pkg1-review", "pkg1-test"],
      "updated_at": "2026-01-05T12:00:00+00:00"
    }

Only targets listed here are ever removed. A missing file means nothing
is managed yet.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from skillsupply.agents.registry import ResolvedAgent
from skillsupply.errors import StateError, describe_os_error
from skillsupply.logging import get_logger
from skillsupply.result import Err, Ok, Result

logger = get_logger("agents.state")

STATE_FILENAME = ".sk-state.json"
STATE_VERSION = 1


@dataclass(frozen=True)
class AgentInstallState:
    version: int = STATE_VERSION
    skills: tuple[str, ...] = ()
    updated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "skills": list(self.skills), "updated_at": self.updated_at}


def state_path(agent: ResolvedAgent) -> Path:
    return agent.root_path / STATE_FILENAME


def is_valid_target_name(name: str) -> bool:
    """A single, non-empty path segment."""
    if not name or name in (".", ".."):
        return False
    return "/" not in name and "\\" not in name


def build_agent_state(skills: Iterable[str]) -> AgentInstallState:
    """A fresh state recording ``skills`` (sorted, deduplicated)."""
    return AgentInstallState(skills=tuple(sorted(set(skills))))


def _parse_state(data: Any, path: Path) -> Result[AgentInstallState, StateError]:
    if not isinstance(data, dict):
        return Err(StateError("validation", "State file must contain a JSON object.", path=path))

    version = data.get("version")
    if version != STATE_VERSION or isinstance(version, bool):
        return Err(StateError("validation", f"Unsupported state version: {version}.", path=path))

    skills = data.get("skills")
    if not isinstance(skills, list):
        return Err(StateError("validation", "State skills must be a list.", path=path))
    for entry in skills:
        if not isinstance(entry, str) or not is_valid_target_name(entry.strip()):
            return Err(StateError("validation", f"Invalid skill entry in state: {entry!r}.", path=path))

    updated_at = data.get("updated_at")
    if not isinstance(updated_at, str):
        return Err(StateError("validation", "State updated_at must be a string.", path=path))

    return Ok(AgentInstallState(
        version=version,
        skills=tuple(sorted({entry.strip() for entry in skills})),
        updated_at=updated_at,
    ))


def read_agent_state(agent: ResolvedAgent) -> Result[AgentInstallState | None, StateError]:
    """The agent's state, or ``None`` when no state file exists."""
    path = state_path(agent)
    try:
        contents = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Ok(None)
    except OSError as e:
        return Err(StateError("io", describe_os_error(e, f"Unable to read {path}."), path=path))

    try:
        data = json.loads(contents)
    except json.JSONDecodeError as e:
        return Err(StateError("parse", f"Invalid JSON in {path}. {e}", path=path))

    return _parse_state(data, path)


def write_agent_state(
    agent: ResolvedAgent,
    state: AgentInstallState,
) -> Result[Path, StateError]:
    """Atomically replace the agent's state file."""
    path = state_path(agent)
    text = json.dumps(state.to_dict(), indent=2) + "\n"

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".sk-state-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
    except OSError as e:
        return Err(StateError("io", describe_os_error(e, f"Unable to write {path}."), path=path))

    logger.debug("Wrote state for %s (%d skills)", agent.id, len(state.skills))
    return Ok(path)
