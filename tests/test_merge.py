"""Tests for merging layered manifests."""

from __future__ import annotations

from pathlib import Path
from textwrap import dedent

from skillsupply.manifest import (
    GithubDeclaration,
    Manifest,
    dependency_key,
    merge_manifests,
    parse_manifest,
    single_manifest,
)
from skillsupply.manifest.models import GitRef

PROJECT = Path("/work/project/package.toml")
GLOBAL = Path("/home/user/.sk/package.toml")


def manifest(text: str, path: Path) -> Manifest:
    return parse_manifest(dedent(text), path).unwrap()


class TestMergeManifests:
    """Tests for merge_manifests."""

    def test_agents_first_writer_wins(self) -> None:
        """The closest manifest decides each agent."""
        project = manifest("[agents]\ncodex = false\n", PROJECT)
        global_ = manifest("[agents]\ncodex = true\nclaude-code = true\n", GLOBAL)

        merged = merge_manifests([project, global_]).unwrap()

        assert merged.agents == {"codex": False, "claude-code": True}
        assert merged.sources == [PROJECT, GLOBAL]

    def test_dependencies_concatenated(self) -> None:
        """Distinct dependencies from every layer are kept in order."""
        project = manifest('[dependencies]\ndocs = "acme/docs"\n', PROJECT)
        global_ = manifest('[dependencies]\ntools = "acme/tools"\n', GLOBAL)

        merged = merge_manifests([project, global_]).unwrap()

        assert [(e.alias, e.manifest_path) for e in merged.dependencies] == [
            ("docs", PROJECT),
            ("tools", GLOBAL),
        ]

    def test_same_alias_same_package(self) -> None:
        """Repeating a dependency in two layers keeps one entry."""
        project = manifest('[dependencies]\ndocs = "acme/docs"\n', PROJECT)
        global_ = manifest('[dependencies]\ndocs = "acme/docs"\n', GLOBAL)

        merged = merge_manifests([project, global_]).unwrap()

        assert len(merged.dependencies) == 1
        assert merged.dependencies[0].manifest_path == PROJECT
        assert merged.warnings == []

    def test_alias_conflict(self) -> None:
        """One alias naming two packages is an error citing both files."""
        project = manifest('[dependencies]\ndocs = "acme/docs"\n', PROJECT)
        global_ = manifest('[dependencies]\ndocs = "other/docs"\n', GLOBAL)

        result = merge_manifests([project, global_])

        assert not result.ok
        assert result.error.type == "alias_conflict"
        assert str(PROJECT) in result.error.message
        assert str(GLOBAL) in result.error.message

    def test_same_package_different_alias(self) -> None:
        """The second alias for a package is dropped with a warning."""
        project = manifest('[dependencies]\ndocs = "acme/docs"\n', PROJECT)
        global_ = manifest('[dependencies]\nacme-docs = "acme/docs"\n', GLOBAL)

        merged = merge_manifests([project, global_]).unwrap()

        assert [e.alias for e in merged.dependencies] == ["docs"]
        assert len(merged.warnings) == 1
        assert "acme-docs" in merged.warnings[0]

    def test_single_manifest(self) -> None:
        """single_manifest wraps one manifest without merging."""
        project = manifest('[agents]\ncodex = true\n[dependencies]\ndocs = "acme/docs"\n', PROJECT)

        merged = single_manifest(project)

        assert merged.agents == {"codex": True}
        assert [e.alias for e in merged.dependencies] == ["docs"]
        assert merged.sources == [PROJECT]


class TestDependencyKey:
    """Tests for dependency_key."""

    def test_ref_ignored(self) -> None:
        """Refs do not change package identity."""
        assert dependency_key(GithubDeclaration(gh="acme/docs")) == dependency_key(
            GithubDeclaration(gh="acme/docs", ref=GitRef("tag", "v1"))
        )

    def test_path_distinguishes(self) -> None:
        """Different subpaths are different packages."""
        assert dependency_key(GithubDeclaration(gh="acme/docs", path="a")) != dependency_key(
            GithubDeclaration(gh="acme/docs", path="b")
        )
