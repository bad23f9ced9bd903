"""Dependency resolution: validated declarations to canonical packages.

Everything here is pure. Declarations are validated while parsing, so
resolution cannot fail.
"""
from __future__ import annotations

from pathlib import Path

from skillsupply.manifest.merge import DependencyEntry, MergedManifest
from skillsupply.manifest.models import (
    ClaudePluginDeclaration,
    Declaration,
    GitDeclaration,
    GithubDeclaration,
    LocalDeclaration,
    Manifest,
    RegistryDeclaration,
)
from skillsupply.packages.models import (
    CanonicalPackage,
    ClaudePluginPackage,
    FetchStrategy,
    GithubPackage,
    GitPackage,
    LocalPackage,
    PackageOrigin,
    RegistryPackage,
)


def resolve_declaration(
    alias: str,
    declaration: Declaration,
    manifest_path: Path,
) -> CanonicalPackage:
    """Map one declaration to its canonical package."""
    origin = PackageOrigin(alias=alias, manifest_path=manifest_path)

    if isinstance(declaration, RegistryDeclaration):
        return RegistryPackage(
            name=declaration.name,
            version=declaration.version,
            org=declaration.org,
            origin=origin,
        )
    if isinstance(declaration, GithubDeclaration):
        return GithubPackage(
            gh=declaration.gh, ref=declaration.ref, path=declaration.path, origin=origin,
        )
    if isinstance(declaration, GitDeclaration):
        return GitPackage(
            url=declaration.url, ref=declaration.ref, path=declaration.path, origin=origin,
        )
    if isinstance(declaration, LocalDeclaration):
        return LocalPackage(path=declaration.path, origin=origin)
    if isinstance(declaration, ClaudePluginDeclaration):
        return ClaudePluginPackage(
            plugin=declaration.plugin, marketplace=declaration.marketplace, origin=origin,
        )
    raise TypeError(f"Unknown dependency declaration: {declaration!r}")


def resolve_entries(entries: list[DependencyEntry]) -> list[CanonicalPackage]:
    return [
        resolve_declaration(entry.alias, entry.declaration, entry.manifest_path)
        for entry in entries
    ]


def resolve_manifest_packages(manifest: Manifest | MergedManifest) -> list[CanonicalPackage]:
    """Resolve every dependency of a single or merged manifest, in order."""
    if isinstance(manifest, MergedManifest):
        return resolve_entries(manifest.dependencies)
    return [
        resolve_declaration(alias, declaration, manifest.source_path)
        for alias, declaration in manifest.dependencies.items()
    ]


def get_fetch_strategy(package: CanonicalPackage) -> FetchStrategy:
    """Local packages are symlinked; everything else is cloned.

    GitHub and git packages clone sparsely when a subpath is declared.
    """
    if isinstance(package, LocalPackage):
        return FetchStrategy(mode="symlink")
    if isinstance(package, (GithubPackage, GitPackage)):
        return FetchStrategy(mode="clone", sparse=package.path is not None)
    if isinstance(package, (RegistryPackage, ClaudePluginPackage)):
        return FetchStrategy(mode="clone", sparse=False)
    raise TypeError(f"Unknown package: {package!r}")
