"""Package data models: canonical packages through extracted skills."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Union

from skillsupply.manifest.models import GitRef

REGISTRY_NAME = "skills.supply"


@dataclass(frozen=True)
class PackageOrigin:
    """The manifest entry a package came from."""

    alias: str
    manifest_path: Path


# ---------------------------------------------------------------------------
# Canonical packages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegistryPackage:
    name: str
    version: str
    origin: PackageOrigin
    org: str | None = None
    registry: str = REGISTRY_NAME
    kind: Literal["registry"] = field(default="registry", init=False)


@dataclass(frozen=True)
class GithubPackage:
    gh: str  # owner/repo
    origin: PackageOrigin
    ref: GitRef | None = None
    path: str | None = None
    kind: Literal["github"] = field(default="github", init=False)


@dataclass(frozen=True)
class GitPackage:
    url: str  # normalized https URL
    origin: PackageOrigin
    ref: GitRef | None = None
    path: str | None = None
    kind: Literal["git"] = field(default="git", init=False)


@dataclass(frozen=True)
class LocalPackage:
    path: Path  # absolute
    origin: PackageOrigin
    kind: Literal["local"] = field(default="local", init=False)


@dataclass(frozen=True)
class ClaudePluginPackage:
    plugin: str
    marketplace: str
    origin: PackageOrigin
    kind: Literal["claude-plugin"] = field(default="claude-plugin", init=False)


CanonicalPackage = Union[
    RegistryPackage,
    GithubPackage,
    GitPackage,
    LocalPackage,
    ClaudePluginPackage,
]
RemotePackage = Union[GithubPackage, GitPackage]


@dataclass(frozen=True)
class FetchStrategy:
    """How a package reaches disk."""

    mode: Literal["symlink", "clone"]
    sparse: bool = False


# ---------------------------------------------------------------------------
# Fetch, detection, extraction
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FetchedPackage:
    """A package on disk. ``package_path`` is ``repo_path`` joined with its subpath."""

    canonical: CanonicalPackage
    repo_path: Path
    package_path: Path


DetectionMethod = Literal["manifest", "plugin", "subdir", "single"]


@dataclass(frozen=True)
class DetectedPackage:
    """A fetched package classified by layout.

    ``skill_dirs`` is empty for ``manifest`` packages; their skills are
    located during extraction from ``manifest_path``.
    """

    fetched: FetchedPackage
    method: DetectionMethod
    skill_dirs: tuple[Path, ...] = ()
    manifest_path: Path | None = None

    @property
    def canonical(self) -> CanonicalPackage:
        return self.fetched.canonical

    @property
    def package_path(self) -> Path:
        return self.fetched.package_path


@dataclass(frozen=True)
class Skill:
    """One skill directory with a ``SKILL.md``."""

    name: str
    source_path: Path  # the skill directory
    relative_path: str  # relative to the package root, posix form
    origin: PackageOrigin
    description: str | None = None


@dataclass
class ExtractedPackage:
    """The skills a package contributes, under its install prefix."""

    canonical: CanonicalPackage
    prefix: str
    skills: list[Skill] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
