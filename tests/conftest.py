"""Shared pytest fixtures for skills-supply tests."""

from __future__ import annotations

import shutil
from pathlib import Path
from textwrap import dedent
from typing import Callable, Sequence

import pytest

from skillsupply.agents.registry import ResolvedAgent, get_agent, resolve_agent
from skillsupply.config import SkConfig
from skillsupply.packages.git import GitRunner


def write_skill(skill_dir: Path, name: str, description: str | None = "A test skill") -> Path:
    """Create ``skill_dir/SKILL.md`` with front-matter."""
    skill_dir.mkdir(parents=True, exist_ok=True)
    lines = ["---", f"name: {name}"]
    if description is not None:
        lines.append(f"description: {description}")
    lines += ["---", "", f"# {name}", "", "Instructions."]
    (skill_dir / "SKILL.md").write_text("\n".join(lines) + "\n")
    return skill_dir


def make_package(root: Path, skills: Sequence[str]) -> Path:
    """A ``subdir`` layout package: one directory per skill."""
    root.mkdir(parents=True, exist_ok=True)
    for name in skills:
        write_skill(root / name, name)
    return root


def write_manifest(directory: Path, body: str) -> Path:
    """Write ``directory/package.toml``."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "package.toml"
    path.write_text(dedent(body).lstrip())
    return path


class RecordingGitRunner(GitRunner):
    """Never runs git; records calls and materializes clones from templates.

    ``repos`` maps remote URLs to directories whose contents are copied into
    the clone destination.
    """

    def __init__(self, repos: dict[str, Path] | None = None) -> None:
        super().__init__()
        self.repos = dict(repos or {})
        self.calls: list[list[str]] = []

    def run(self, args: Sequence[str], cwd: Path | None = None) -> str:
        self.calls.append(list(args))
        if args and args[0] == "--version":
            return "git version 2.43.0"
        if args and args[0] == "clone":
            url, destination = args[-2], Path(args[-1])
            template = self.repos.get(url)
            if template is not None:
                shutil.copytree(template, destination)
            else:
                destination.mkdir(parents=True)
        return ""

    @property
    def clones(self) -> list[list[str]]:
        return [call for call in self.calls if call[0] == "clone"]

    def sparse_sets(self) -> list[list[str]]:
        """Path lists passed to ``sparse-checkout set``."""
        return [
            call[call.index("set") + 1:]
            for call in self.calls
            if "sparse-checkout" in call and "set" in call
        ]


@pytest.fixture
def git_runner() -> RecordingGitRunner:
    """A git runner that never touches the network."""
    return RecordingGitRunner()


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    """An isolated home directory."""
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def project_dir(home_dir: Path) -> Path:
    """A project directory inside the home directory."""
    project = home_dir / "project"
    project.mkdir()
    return project


@pytest.fixture
def config(home_dir: Path, tmp_path: Path) -> SkConfig:
    """Config rooted at the isolated home directory."""
    temp = tmp_path / "tmp"
    temp.mkdir()
    return SkConfig(home_dir=home_dir, temp_dir=temp)


@pytest.fixture
def make_agent(project_dir: Path) -> Callable[..., ResolvedAgent]:
    """Factory for agents resolved against the project directory."""

    def _make(agent_id: str = "claude-code", root: Path | None = None) -> ResolvedAgent:
        definition = get_agent(agent_id).unwrap()
        return resolve_agent(definition, "local", root or project_dir)

    return _make


@pytest.fixture
def skills_repo(tmp_path: Path) -> Path:
    """A local package with two skills, ``review`` and ``test``."""
    return make_package(tmp_path / "packages" / "pkg1", ["review", "test"])
