"""
Merging of layered manifests.

Earlier manifests take precedence:

- agents: the first manifest to mention an agent decides it;
- dependencies: deduplicated by package identity. The same alias naming
  two different packages is an ``alias_conflict`` error; the same package
  under two aliases keeps the first alias and records a warning.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from skillsupply.errors import MergeError
from skillsupply.logging import get_logger
from skillsupply.manifest.models import (
    AgentId,
    ClaudePluginDeclaration,
    Declaration,
    GitDeclaration,
    GithubDeclaration,
    LocalDeclaration,
    Manifest,
    RegistryDeclaration,
)
from skillsupply.result import Err, Ok, Result

logger = get_logger("manifest.merge")


@dataclass(frozen=True)
class DependencyEntry:
    """A dependency together with the manifest that declared it."""

    alias: str
    declaration: Declaration
    manifest_path: Path


@dataclass
class MergedManifest:
    """The combined view of every applicable manifest."""

    agents: dict[AgentId, bool] = field(default_factory=dict)
    dependencies: list[DependencyEntry] = field(default_factory=list)
    sources: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def dependency_key(declaration: Declaration) -> str:
    """Identity of the package a declaration points at (refs excluded)."""
    if isinstance(declaration, RegistryDeclaration):
        return "|".join(["registry", declaration.org or "", declaration.name])
    if isinstance(declaration, GithubDeclaration):
        return "|".join(["github", declaration.gh, declaration.path or ""])
    if isinstance(declaration, GitDeclaration):
        return "|".join(["git", declaration.url, declaration.path or ""])
    if isinstance(declaration, LocalDeclaration):
        return "|".join(["local", str(declaration.path)])
    if isinstance(declaration, ClaudePluginDeclaration):
        return "|".join(["claude-plugin", declaration.marketplace, declaration.plugin])
    raise TypeError(f"Unknown dependency declaration: {declaration!r}")


def merge_manifests(manifests: Sequence[Manifest]) -> Result[MergedManifest, MergeError]:
    """Merge ``manifests`` (highest precedence first)."""
    merged = MergedManifest(sources=[m.source_path for m in manifests])

    alias_keys: dict[str, str] = {}
    alias_sources: dict[str, Path] = {}
    key_aliases: dict[str, str] = {}
    warned: set[str] = set()

    for manifest in manifests:
        for agent_id, enabled in manifest.agents.items():
            merged.agents.setdefault(agent_id, enabled)

        for alias, declaration in manifest.dependencies.items():
            key = dependency_key(declaration)
            seen_key = alias_keys.get(alias)

            if seen_key is not None:
                if seen_key != key:
                    return Err(MergeError(alias, alias_sources[alias], manifest.source_path))
                continue

            first_alias = key_aliases.get(key)
            if first_alias is not None and first_alias != alias:
                if alias not in warned:
                    message = (
                        f'Dependency alias "{alias}" in {manifest.source_path} resolves to '
                        f'the same package as "{first_alias}" in {alias_sources[first_alias]}; '
                        f'using "{first_alias}".'
                    )
                    logger.warning(message)
                    merged.warnings.append(message)
                    warned.add(alias)
                continue

            alias_keys[alias] = key
            alias_sources[alias] = manifest.source_path
            key_aliases[key] = alias
            merged.dependencies.append(
                DependencyEntry(alias, declaration, manifest.source_path)
            )

    return Ok(merged)


def single_manifest(manifest: Manifest) -> MergedManifest:
    """View one manifest through the merged shape."""
    return MergedManifest(
        agents=dict(manifest.agents),
        dependencies=[
            DependencyEntry(alias, declaration, manifest.source_path)
            for alias, declaration in manifest.dependencies.items()
        ],
        sources=[manifest.source_path],
    )
