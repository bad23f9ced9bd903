"""Tests for per-agent install state."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import pytest

from skillsupply.agents import (
    STATE_FILENAME,
    ResolvedAgent,
    build_agent_state,
    read_agent_state,
    write_agent_state,
)


@pytest.fixture
def agent(make_agent: Callable[..., ResolvedAgent]) -> ResolvedAgent:
    return make_agent("claude-code")


def write_raw(agent: ResolvedAgent, data: object) -> None:
    agent.root_path.mkdir(parents=True, exist_ok=True)
    (agent.root_path / STATE_FILENAME).write_text(json.dumps(data))


class TestBuildAgentState:
    """Tests for build_agent_state."""

    def test_sorted_unique(self) -> None:
        """Skills are sorted and deduplicated."""
        state = build_agent_state(["b", "a", "b"])

        assert state.skills == ("a", "b")
        assert state.version == 1
        assert state.updated_at


class TestReadWriteState:
    """Tests for read_agent_state and write_agent_state."""

    def test_missing_is_none(self, agent: ResolvedAgent) -> None:
        """No file means no state, not an error."""
        result = read_agent_state(agent)

        assert result.ok
        assert result.value is None

    def test_round_trip(self, agent: ResolvedAgent) -> None:
        """Written state reads back; the root directory is created."""
        state = build_agent_state(["pkg1-test", "pkg1-review"])

        path = write_agent_state(agent, state).unwrap()

        assert path == agent.root_path / STATE_FILENAME
        data = json.loads(path.read_text())
        assert data["version"] == 1
        assert data["skills"] == ["pkg1-review", "pkg1-test"]
        assert isinstance(data["updated_at"], str)
        assert read_agent_state(agent).unwrap() == state
        assert [p.name for p in agent.root_path.iterdir()] == [STATE_FILENAME]

    def test_invalid_json(self, agent: ResolvedAgent) -> None:
        """Unparseable files are parse errors."""
        agent.root_path.mkdir(parents=True)
        (agent.root_path / STATE_FILENAME).write_text("{not json")

        result = read_agent_state(agent)

        assert not result.ok
        assert result.error.type == "parse"

    def test_wrong_version(self, agent: ResolvedAgent) -> None:
        """Other versions are rejected, not migrated."""
        write_raw(agent, {"version": 2, "skills": [], "updated_at": "now"})

        result = read_agent_state(agent)

        assert not result.ok
        assert result.error.message == "Unsupported state version: 2."

    @pytest.mark.parametrize(
        "data",
        [
            [],
            {"version": 1, "skills": "a", "updated_at": "now"},
            {"version": 1, "skills": ["ok", ""], "updated_at": "now"},
            {"version": 1, "skills": ["../escape"], "updated_at": "now"},
            {"version": 1, "skills": [".."], "updated_at": "now"},
            {"version": 1, "skills": [1], "updated_at": "now"},
            {"version": 1, "skills": [], "updated_at": 5},
        ],
    )
    def test_invalid_shapes(self, agent: ResolvedAgent, data: object) -> None:
        """Structurally invalid state is a validation error."""
        write_raw(agent, data)

        result = read_agent_state(agent)

        assert not result.ok
        assert result.error.type == "validation"
