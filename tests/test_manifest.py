"""Tests for manifest parsing, coercion, serialization and transforms."""

from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from skillsupply.errors import ManifestError
from skillsupply.manifest import (
    EMPTY_MANIFEST_OPTIONS,
    ClaudePluginDeclaration,
    GitDeclaration,
    GithubDeclaration,
    GitRef,
    LocalDeclaration,
    RegistryDeclaration,
    SerializeOptions,
    add_dependency,
    empty_manifest,
    get_agent,
    get_dependency,
    has_dependency,
    load_manifest,
    parse_manifest,
    remove_dependency,
    save_manifest,
    serialize_manifest,
    set_agent,
)
from skillsupply.manifest.coerce import (
    coerce_alias,
    coerce_dependency,
    coerce_git_ref,
    coerce_git_url,
    parse_github_slug,
)

MANIFEST_PATH = Path("/work/project/package.toml")

FULL_MANIFEST = dedent(
    """
    [package]
    name = "my-skills"
    version = "0.1.0"
    description = "Skills for the team"

    [agents]
    claude-code = true
    codex = false

    [dependencies]
    superpowers = "obra/superpowers"
    docs = { gh = "acme/docs", tag = "v1.2.0", path = "skills/docs" }
    internal = { git = "git@example.com:team/skills.git", branch = "main" }
    mine = { path = "../my-skills" }
    review = { type = "claude-plugin", plugin = "review", marketplace = "acme/plugins" }
    tools = "@acme/tools@1.0.0"

    [exports.auto_discover]
    skills = "./skills"
    """
)


def parse(text: str):
    return parse_manifest(dedent(text), MANIFEST_PATH)


class TestParseManifest:
    """Tests for parse_manifest."""

    def test_full_manifest(self) -> None:
        """Should parse every section and dependency form."""
        result = parse_manifest(FULL_MANIFEST, MANIFEST_PATH)

        assert result.ok
        manifest = result.value
        assert manifest.package is not None
        assert manifest.package.name == "my-skills"
        assert manifest.package.description == "Skills for the team"
        assert manifest.agents == {"claude-code": True, "codex": False}
        assert manifest.exports is not None
        assert manifest.exports.skills == "./skills"

        deps = manifest.dependencies
        assert list(deps) == ["superpowers", "docs", "internal", "mine", "review", "tools"]
        assert deps["superpowers"] == GithubDeclaration(gh="obra/superpowers")
        assert deps["docs"] == GithubDeclaration(
            gh="acme/docs", ref=GitRef("tag", "v1.2.0"), path="skills/docs",
        )
        assert deps["internal"] == GitDeclaration(
            url="https://example.com/team/skills", ref=GitRef("branch", "main"),
        )
        assert deps["mine"] == LocalDeclaration(path=Path("/work/my-skills"))
        assert deps["review"] == ClaudePluginDeclaration(plugin="review", marketplace="acme/plugins")
        assert deps["tools"] == RegistryDeclaration(name="tools", version="1.0.0", org="acme")

    def test_empty_manifest(self) -> None:
        """An empty file is a manifest with nothing in it."""
        result = parse("")

        assert result.ok
        assert result.value.agents == {}
        assert result.value.dependencies == {}
        assert result.value.package is None

    def test_origin_recorded(self) -> None:
        """Should keep the source path and discovery mode."""
        result = parse_manifest("", MANIFEST_PATH, "parent")

        assert result.value.source_path == MANIFEST_PATH
        assert result.value.origin.discovered_at == "parent"
        assert result.value.root_dir == MANIFEST_PATH.parent

    def test_invalid_toml(self) -> None:
        """Malformed TOML is a parse error."""
        result = parse("[dependencies\n")

        assert not result.ok
        assert result.error.type == "parse"
        assert result.error.path == MANIFEST_PATH

    def test_unknown_top_level_key(self) -> None:
        """Unknown top-level keys are rejected."""
        result = parse(
            """
            [scripts]
            build = "make"
            """
        )

        assert not result.ok
        assert result.error.type == "validation"
        assert "scripts" in result.error.message

    def test_package_requires_name_and_version(self) -> None:
        """[package] must have a name and a version."""
        result = parse(
            """
            [package]
            name = "x"
            """
        )

        assert not result.ok
        assert "version" in result.error.message

    def test_agent_value_must_be_bool(self) -> None:
        """Agent entries must be booleans."""
        result = parse(
            """
            [agents]
            claude-code = "yes"
            """
        )

        assert not result.ok
        assert result.error.type == "validation"

    def test_unknown_agent_ignored(self) -> None:
        """Unknown agent ids are skipped."""
        result = parse(
            """
            [agents]
            claude-code = true
            cursor = true
            """
        )

        assert result.ok
        assert result.value.agents == {"claude-code": True}

    def test_invalid_alias(self) -> None:
        """Aliases with dots are rejected."""
        result = parse(
            """
            [dependencies]
            "bad.alias" = "owner/repo"
            """
        )

        assert not result.ok
        assert result.error.key == "bad.alias"

    def test_multiple_refs_rejected(self) -> None:
        """Only one of tag, branch and rev may be given."""
        result = parse(
            """
            [dependencies]
            docs = { gh = "acme/docs", tag = "v1", branch = "main" }
            """
        )

        assert not result.ok
        assert "Only one allowed" in result.error.message

    def test_unknown_dependency_key(self) -> None:
        """Unknown keys in a dependency table are rejected."""
        result = parse(
            """
            [dependencies]
            docs = { gh = "acme/docs", version = "1" }
            """
        )

        assert not result.ok
        assert "version" in result.error.message

    def test_gh_and_git_together_rejected(self) -> None:
        """A dependency names exactly one source."""
        result = parse(
            """
            [dependencies]
            docs = { gh = "acme/docs", git = "https://example.com/docs.git" }
            """
        )

        assert not result.ok

    def test_auto_discover_disabled(self) -> None:
        """skills = false disables auto-discovery."""
        result = parse(
            """
            [exports.auto_discover]
            skills = false
            """
        )

        assert result.ok
        assert result.value.exports is not None
        assert result.value.exports.skills is False


class TestCoerce:
    """Tests for value coercion helpers."""

    @pytest.mark.parametrize("alias", ["", "  ", "a/b", "a.b", "a:b", "a\\b"])
    def test_invalid_aliases(self, alias: str) -> None:
        """Should reject empty aliases and separators."""
        assert coerce_alias(alias) is None

    def test_alias_trimmed(self) -> None:
        """Should trim whitespace."""
        assert coerce_alias("  docs ") == "docs"

    def test_git_url_normalization(self) -> None:
        """SSH and HTTPS URLs normalize to https without .git."""
        assert coerce_git_url("git@github.com:acme/docs.git") == "https://github.com/acme/docs"
        assert coerce_git_url("https://gitlab.com/acme/docs.git") == "https://gitlab.com/acme/docs"
        assert coerce_git_url("acme/docs") is None

    def test_github_slug(self) -> None:
        """owner/repo splits into its parts."""
        assert parse_github_slug("acme/docs") == ("acme", "docs")
        assert parse_github_slug("acme") is None
        assert parse_github_slug("a/b/c") is None

    def test_git_ref(self) -> None:
        """A single ref field becomes a GitRef."""
        assert coerce_git_ref({"rev": "abc123"}) == GitRef("rev", "abc123")
        assert coerce_git_ref({}) is None
        with pytest.raises(ValueError):
            coerce_git_ref({"tag": "v1", "rev": "abc"})

    def test_invalid_dependency_string(self) -> None:
        """A bare name is neither registry nor github."""
        with pytest.raises(ManifestError) as exc_info:
            coerce_dependency("justaname", "x", MANIFEST_PATH)
        assert exc_info.value.type == "validation"

    def test_unscoped_registry(self) -> None:
        """name@version parses without an org."""
        declaration = coerce_dependency("tools@2.0.0", "tools", MANIFEST_PATH)
        assert declaration == RegistryDeclaration(name="tools", version="2.0.0")

    def test_plugin_requires_marketplace(self) -> None:
        """A plugin needs a marketplace."""
        with pytest.raises(ManifestError):
            coerce_dependency({"type": "claude-plugin", "plugin": "x"}, "x", MANIFEST_PATH)


class TestSerializeManifest:
    """Tests for serialize_manifest."""

    def test_round_trip(self) -> None:
        """Parse, serialize, parse again yields the same agents and dependencies."""
        first = parse_manifest(FULL_MANIFEST, MANIFEST_PATH).unwrap()

        text = serialize_manifest(first)
        second = parse_manifest(text, MANIFEST_PATH).unwrap()

        assert second.agents == first.agents
        assert second.dependencies == first.dependencies
        assert second.package == first.package
        assert second.exports == first.exports

    def test_local_path_written_as_declared(self) -> None:
        """Local paths keep the spelling from the file."""
        manifest = parse(
            """
            [dependencies]
            mine = { path = "../my-skills" }
            """
        ).unwrap()

        assert '"../my-skills"' in serialize_manifest(manifest)

    def test_empty_sections_dropped_by_default(self) -> None:
        """Empty tables are omitted unless requested."""
        manifest = empty_manifest(MANIFEST_PATH)

        assert serialize_manifest(manifest) == ""

    def test_empty_sections_kept_on_request(self) -> None:
        """Opting in keeps empty [agents] and [dependencies]."""
        manifest = empty_manifest(MANIFEST_PATH)

        text = serialize_manifest(manifest, EMPTY_MANIFEST_OPTIONS)

        assert "[agents]" in text
        assert "[dependencies]" in text

    def test_only_agents_kept(self) -> None:
        """Each empty section has its own flag."""
        text = serialize_manifest(
            empty_manifest(MANIFEST_PATH),
            SerializeOptions(include_empty_agents=True),
        )

        assert "[agents]" in text
        assert "[dependencies]" not in text


class TestManifestIO:
    """Tests for load_manifest and save_manifest."""

    def test_load_missing(self, tmp_path: Path) -> None:
        """A missing file is not_found."""
        result = load_manifest(tmp_path / "package.toml")

        assert not result.ok
        assert result.error.type == "not_found"

    def test_save_and_load(self, tmp_path: Path) -> None:
        """Saved manifests load back unchanged."""
        path = tmp_path / "package.toml"
        manifest = add_dependency(
            empty_manifest(path), "docs", GithubDeclaration(gh="acme/docs"),
        )

        assert save_manifest(manifest).ok
        loaded = load_manifest(path).unwrap()

        assert loaded.manifest.dependencies == {"docs": GithubDeclaration(gh="acme/docs")}
        assert not list(tmp_path.glob(".package-*"))

    def test_loaded_empty_sections_preserved(self, tmp_path: Path) -> None:
        """Sections loaded empty survive a save."""
        path = tmp_path / "package.toml"
        path.write_text("[agents]\n\n[dependencies]\n")

        loaded = load_manifest(path).unwrap()
        save_manifest(loaded.manifest, options=loaded.serialize_options).unwrap()

        text = path.read_text()
        assert "[agents]" in text
        assert "[dependencies]" in text


class TestTransforms:
    """Tests for immutable manifest edits."""

    def test_add_and_remove(self) -> None:
        """Edits return new manifests and leave the original alone."""
        original = empty_manifest(MANIFEST_PATH)

        added = add_dependency(original, "docs", GithubDeclaration(gh="acme/docs"))
        removed = remove_dependency(added, "docs")

        assert not has_dependency(original, "docs")
        assert has_dependency(added, "docs")
        assert get_dependency(added, "docs") == GithubDeclaration(gh="acme/docs")
        assert not has_dependency(removed, "docs")

    def test_set_agent(self) -> None:
        """set_agent records the flag without mutating."""
        original = empty_manifest(MANIFEST_PATH)

        updated = set_agent(original, "codex", True)

        assert get_agent(original, "codex") is None
        assert get_agent(updated, "codex") is True
