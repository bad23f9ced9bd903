"""
Manifest data models.

A ``package.toml`` manifest looks like::

    [package]
    name = "my-skills"
    version = "0.1.0"

    [agents]
    claude-code = true
    codex = false

    [dependencies]
    superpowers = "obra/superpowers"
    docs = { gh = "acme/docs", tag = "v1.2.0", path = "skills/docs" }
    internal = { git = "git@example.com:team/skills.git", branch = "main" }
    mine = { path = "../my-skills" }
    review = { type = "claude-plugin", plugin = "review", marketplace = "acme/plugins" }

    [exports.auto_discover]
    skills = "./skills"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Union

# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------

AgentId = Literal["claude-code", "codex", "opencode"]
AGENT_IDS: tuple[AgentId, ...] = ("claude-code", "codex", "opencode")

DiscoveredAt = Literal["cwd", "parent", "global"]

GitRefType = Literal["tag", "branch", "rev"]
GIT_REF_TYPES: tuple[GitRefType, ...] = ("tag", "branch", "rev")


@dataclass(frozen=True)
class GitRef:
    """Exactly one of a tag, a branch, or a commit."""

    type: GitRefType
    value: str

    def __str__(self) -> str:
        return f"{self.type}:{self.value}"


# ---------------------------------------------------------------------------
# Dependency declarations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegistryDeclaration:
    """``name@version`` or ``@org/name@version``."""

    name: str
    version: str
    org: str | None = None
    kind: Literal["registry"] = field(default="registry", init=False)


@dataclass(frozen=True)
class GithubDeclaration:
    """``{ gh = "owner/repo" }`` or the ``owner/repo`` shorthand."""

    gh: str
    ref: GitRef | None = None
    path: str | None = None
    kind: Literal["github"] = field(default="github", init=False)


@dataclass(frozen=True)
class GitDeclaration:
    """``{ git = "<url>" }`` with a normalized https URL."""

    url: str
    ref: GitRef | None = None
    path: str | None = None
    kind: Literal["git"] = field(default="git", init=False)


@dataclass(frozen=True)
class LocalDeclaration:
    """``{ path = "<dir>" }``; ``path`` is absolute, ``spec`` is as written."""

    path: Path
    spec: str | None = field(default=None, compare=False)
    kind: Literal["local"] = field(default="local", init=False)


@dataclass(frozen=True)
class ClaudePluginDeclaration:
    """A plugin published in a Claude plugin marketplace."""

    plugin: str
    marketplace: str
    kind: Literal["claude-plugin"] = field(default="claude-plugin", init=False)


Declaration = Union[
    RegistryDeclaration,
    GithubDeclaration,
    GitDeclaration,
    LocalDeclaration,
    ClaudePluginDeclaration,
]


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PackageMetadata:
    """The optional ``[package]`` table."""

    name: str
    version: str
    description: str | None = None
    license: str | None = None
    org: str | None = None


@dataclass(frozen=True)
class AutoDiscover:
    """``[exports.auto_discover]``; ``skills = False`` disables discovery."""

    skills: str | Literal[False] = "./skills"


@dataclass(frozen=True)
class ManifestOrigin:
    """Where a manifest was loaded from and how it was found."""

    source_path: Path
    discovered_at: DiscoveredAt = "cwd"


@dataclass(frozen=True)
class Manifest:
    """A parsed manifest.

    Instances are never mutated; the transform functions in
    :mod:`skillsupply.manifest.transform` return new values.
    """

    origin: ManifestOrigin
    agents: dict[AgentId, bool] = field(default_factory=dict)
    dependencies: dict[str, Declaration] = field(default_factory=dict)
    package: PackageMetadata | None = None
    exports: AutoDiscover | None = None

    @property
    def source_path(self) -> Path:
        return self.origin.source_path

    @property
    def root_dir(self) -> Path:
        """Directory containing the manifest file."""
        return self.origin.source_path.parent
