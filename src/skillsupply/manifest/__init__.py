"""Manifest discovery, parsing, merging, editing and writing."""
from __future__ import annotations

from skillsupply.manifest.discover import (
    DiscoveredManifest,
    discover_manifests,
    find_global_manifest,
    find_manifest_paths,
    find_project_manifest,
)
from skillsupply.manifest.io import (
    LoadedManifest,
    empty_manifest,
    infer_serialize_options,
    load_manifest,
    save_manifest,
)
from skillsupply.manifest.merge import (
    DependencyEntry,
    MergedManifest,
    dependency_key,
    merge_manifests,
    single_manifest,
)
from skillsupply.manifest.models import (
    AGENT_IDS,
    AgentId,
    AutoDiscover,
    ClaudePluginDeclaration,
    Declaration,
    GitDeclaration,
    GithubDeclaration,
    GitRef,
    LocalDeclaration,
    Manifest,
    ManifestOrigin,
    PackageMetadata,
    RegistryDeclaration,
)
from skillsupply.manifest.parse import parse_manifest
from skillsupply.manifest.transform import (
    add_dependency,
    get_agent,
    get_dependency,
    has_dependency,
    remove_dependency,
    set_agent,
)
from skillsupply.manifest.write import (
    EMPTY_MANIFEST_OPTIONS,
    SerializeOptions,
    serialize_manifest,
)

__all__ = [
    "AGENT_IDS",
    "AgentId",
    "AutoDiscover",
    "ClaudePluginDeclaration",
    "Declaration",
    "DependencyEntry",
    "DiscoveredManifest",
    "EMPTY_MANIFEST_OPTIONS",
    "GitDeclaration",
    "GithubDeclaration",
    "GitRef",
    "LoadedManifest",
    "LocalDeclaration",
    "Manifest",
    "ManifestOrigin",
    "MergedManifest",
    "PackageMetadata",
    "RegistryDeclaration",
    "SerializeOptions",
    "add_dependency",
    "dependency_key",
    "discover_manifests",
    "empty_manifest",
    "find_global_manifest",
    "find_manifest_paths",
    "find_project_manifest",
    "get_agent",
    "get_dependency",
    "has_dependency",
    "infer_serialize_options",
    "load_manifest",
    "merge_manifests",
    "parse_manifest",
    "remove_dependency",
    "save_manifest",
    "serialize_manifest",
    "set_agent",
    "single_manifest",
]
