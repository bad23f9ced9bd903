"""Tests for install planning, application and reconciliation."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from conftest import make_package
from skillsupply.agents import (
    ResolvedAgent,
    apply_agent_install,
    build_agent_state,
    count_stale_skills,
    plan_agent_install,
    preflight_targets,
    reconcile_agent_skills,
    remove_managed_targets,
)
from skillsupply.packages import (
    ExtractedPackage,
    GithubPackage,
    LocalPackage,
    PackageOrigin,
    Skill,
)


def extracted(root: Path, prefix: str, names: list[str], local: bool = True) -> ExtractedPackage:
    make_package(root, names)
    origin = PackageOrigin(prefix, root / "package.toml")
    canonical = (
        LocalPackage(path=root, origin=origin)
        if local
        else GithubPackage(gh="acme/skills", origin=origin)
    )
    return ExtractedPackage(
        canonical=canonical,
        prefix=prefix,
        skills=[Skill(name, root / name, name, origin) for name in names],
    )


@pytest.fixture
def agent(make_agent: Callable[..., ResolvedAgent]) -> ResolvedAgent:
    return make_agent("claude-code")


class TestPlanAgentInstall:
    """Tests for plan_agent_install."""

    def test_targets_namespaced(self, tmp_path: Path, agent: ResolvedAgent) -> None:
        """Targets are <prefix>-<skill> under the skills path, in order."""
        packages = [
            extracted(tmp_path / "p1", "pkg1", ["review", "test"]),
            extracted(tmp_path / "p2", "pkg2", ["lint"], local=False),
        ]

        plan = plan_agent_install(agent, packages).unwrap()

        assert [t.target_name for t in plan.tasks] == ["pkg1-review", "pkg1-test", "pkg2-lint"]
        assert plan.tasks[0].target_path == agent.skills_path / "pkg1-review"
        assert [t.mode for t in plan.tasks] == ["symlink", "symlink", "copy"]
        assert plan.target_names == {"pkg1-review", "pkg1-test", "pkg2-lint"}

    def test_empty_package(self, tmp_path: Path, agent: ResolvedAgent) -> None:
        """Packages without skills cannot be planned."""
        result = plan_agent_install(agent, [extracted(tmp_path / "p", "pkg", [])])

        assert not result.ok
        assert result.error.type == "invalid_input"

    @pytest.mark.parametrize("prefix", ["", "a/b", ".."])
    def test_bad_prefix(self, tmp_path: Path, agent: ResolvedAgent, prefix: str) -> None:
        """Prefixes must be single path segments."""
        package = extracted(tmp_path / "p", "placeholder", ["x"])
        package.prefix = prefix

        result = plan_agent_install(agent, [package])

        assert not result.ok
        assert result.error.type == "invalid_input"

    def test_duplicate_target(self, tmp_path: Path, agent: ResolvedAgent) -> None:
        """Colliding targets are a conflict."""
        packages = [
            extracted(tmp_path / "p1", "a-b", ["c"]),
            extracted(tmp_path / "p2", "a", ["b-c"]),
        ]

        result = plan_agent_install(agent, packages)

        assert not result.ok
        assert result.error.type == "conflict"


class TestApplyAgentInstall:
    """Tests for apply_agent_install."""

    def test_symlink_and_copy(self, tmp_path: Path, agent: ResolvedAgent) -> None:
        """Local skills are symlinked; remote skills are copied."""
        local = extracted(tmp_path / "p1", "pkg1", ["review"])
        remote = extracted(tmp_path / "p2", "pkg2", ["lint"], local=False)
        (tmp_path / "p2" / "lint" / ".git").mkdir()
        plan = plan_agent_install(agent, [local, remote]).unwrap()

        installed = apply_agent_install(plan).unwrap()

        assert len(installed) == 2
        link = agent.skills_path / "pkg1-review"
        copy = agent.skills_path / "pkg2-lint"
        assert link.is_symlink()
        assert link.resolve() == (tmp_path / "p1" / "review").resolve()
        assert not copy.is_symlink()
        assert (copy / "SKILL.md").is_file()
        assert not (copy / ".git").exists()

    def test_existing_target_refused(self, tmp_path: Path, agent: ResolvedAgent) -> None:
        """apply never overwrites; clearing targets is the caller's job."""
        plan = plan_agent_install(agent, [extracted(tmp_path / "p", "pkg", ["x"])]).unwrap()
        (agent.skills_path / "pkg-x").mkdir(parents=True)

        result = apply_agent_install(plan)

        assert not result.ok
        assert result.error.type == "conflict"

    def test_missing_source(self, tmp_path: Path, agent: ResolvedAgent) -> None:
        """Sources must still exist at apply time."""
        package = extracted(tmp_path / "p", "pkg", ["x"])
        plan = plan_agent_install(agent, [package]).unwrap()
        (tmp_path / "p" / "x" / "SKILL.md").unlink()
        (tmp_path / "p" / "x").rmdir()

        result = apply_agent_install(plan)

        assert not result.ok
        assert not (agent.skills_path / "pkg-x").exists()


class TestPreflightTargets:
    """Tests for preflight_targets."""

    def test_unmanaged_existing_target(self, tmp_path: Path, agent: ResolvedAgent) -> None:
        """A target on disk that is not managed is a conflict."""
        plan = plan_agent_install(agent, [extracted(tmp_path / "p", "pkg", ["x"])]).unwrap()
        (agent.skills_path / "pkg-x").mkdir(parents=True)

        result = preflight_targets(plan, set())

        assert not result.ok
        assert result.error.type == "conflict"
        assert "pkg-x" in result.error.message
        assert "not managed" in result.error.message

    def test_managed_existing_target(self, tmp_path: Path, agent: ResolvedAgent) -> None:
        """Managed existing targets are returned for removal."""
        plan = plan_agent_install(agent, [extracted(tmp_path / "p", "pkg", ["x", "y"])]).unwrap()
        (agent.skills_path / "pkg-x").mkdir(parents=True)

        removable = preflight_targets(plan, {"pkg-x"}).unwrap()

        assert removable == [agent.skills_path / "pkg-x"]

    def test_dangling_symlink_counts_as_existing(self, tmp_path: Path, agent: ResolvedAgent) -> None:
        """Broken symlinks still occupy the target."""
        plan = plan_agent_install(agent, [extracted(tmp_path / "p", "pkg", ["x"])]).unwrap()
        agent.skills_path.mkdir(parents=True)
        (agent.skills_path / "pkg-x").symlink_to(tmp_path / "gone")

        assert not preflight_targets(plan, set()).ok

    def test_remove_managed_targets(self, tmp_path: Path, agent: ResolvedAgent) -> None:
        """Removal handles directories and symlinks without following links."""
        source = make_package(tmp_path / "src", ["keep"])
        agent.skills_path.mkdir(parents=True)
        directory = agent.skills_path / "dir"
        directory.mkdir()
        (directory / "file").write_text("x")
        link = agent.skills_path / "link"
        link.symlink_to(source / "keep")

        removed = remove_managed_targets([directory, link]).unwrap()

        assert removed == 2
        assert not directory.exists()
        assert not link.is_symlink()
        assert (source / "keep" / "SKILL.md").is_file()


class TestReconcileAgentSkills:
    """Tests for reconcile_agent_skills."""

    def test_removes_only_managed_undesired(self, agent: ResolvedAgent) -> None:
        """Stale managed skills go; unmanaged and desired ones stay."""
        for name in ("pkg-old", "pkg-keep", "user-own"):
            (agent.skills_path / name).mkdir(parents=True)
        state = build_agent_state(["pkg-old", "pkg-keep"])

        removed = reconcile_agent_skills(agent, state, {"pkg-keep"}).unwrap()

        assert removed == ["pkg-old"]
        assert not (agent.skills_path / "pkg-old").exists()
        assert (agent.skills_path / "pkg-keep").exists()
        assert (agent.skills_path / "user-own").exists()

    def test_no_state_removes_nothing(self, agent: ResolvedAgent) -> None:
        """Without state nothing is owned."""
        (agent.skills_path / "pkg-old").mkdir(parents=True)

        assert reconcile_agent_skills(agent, None, set()).unwrap() == []
        assert (agent.skills_path / "pkg-old").exists()

    def test_already_gone(self, agent: ResolvedAgent) -> None:
        """A managed skill that vanished is still reported removed."""
        state = build_agent_state(["pkg-gone"])

        assert reconcile_agent_skills(agent, state, set()).unwrap() == ["pkg-gone"]

    def test_count_stale(self) -> None:
        """Counts managed names not desired."""
        assert count_stale_skills(["a", "b", "c"], {"b"}) == 2
        assert count_stale_skills([], {"b"}) == 0
