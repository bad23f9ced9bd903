"""
skills-supply - a package manager for agent skills.

Declare skill packages in ``package.toml`` and sync them into every coding
agent you use (Claude Code, Codex, OpenCode). Installed skills are
namespaced by dependency alias and tracked per agent, so later syncs only
ever remove what they installed.

Example:
    from pathlib import Path

    from skillsupply import SkConfig, sync_project

    result = sync_project(Path.cwd(), dry_run=True, config=SkConfig.load())
    if result.ok:
        print(result.value.installed, "skills would be installed")
    else:
        print(result.error)
"""

from skillsupply.agents import (
    AgentDefinition,
    AgentInstallState,
    ResolvedAgent,
    list_agents,
    read_agent_state,
    resolve_agent,
    resolve_enabled_agents,
)
from skillsupply.config import SkConfig
from skillsupply.errors import (
    AgentError,
    DiscoveryError,
    GitCommandError,
    InstallError,
    ManifestError,
    MarketplaceError,
    MergeError,
    PackageError,
    SkillSupplyError,
    StateError,
    SyncError,
    ValidationError,
)
from skillsupply.logging import get_logger, setup_logging
from skillsupply.manifest import (
    Manifest,
    MergedManifest,
    discover_manifests,
    load_manifest,
    merge_manifests,
    parse_manifest,
    save_manifest,
    serialize_manifest,
)
from skillsupply.marketplace import MarketplaceResolver
from skillsupply.packages import (
    CanonicalPackage,
    GitRunner,
    PackageOrigin,
    Skill,
    resolve_manifest_packages,
)
from skillsupply.result import Err, Ok, Result
from skillsupply.sync import SyncOptions, SyncSummary, run_sync, sync_project

__version__ = "0.1.0"

__all__ = [
    # Results and errors
    "Ok",
    "Err",
    "Result",
    "SkillSupplyError",
    "ManifestError",
    "DiscoveryError",
    "MergeError",
    "PackageError",
    "GitCommandError",
    "MarketplaceError",
    "AgentError",
    "StateError",
    "InstallError",
    "ValidationError",
    "SyncError",
    # Config and logging
    "SkConfig",
    "setup_logging",
    "get_logger",
    # Manifests
    "Manifest",
    "MergedManifest",
    "parse_manifest",
    "serialize_manifest",
    "load_manifest",
    "save_manifest",
    "discover_manifests",
    "merge_manifests",
    # Packages
    "CanonicalPackage",
    "PackageOrigin",
    "Skill",
    "GitRunner",
    "MarketplaceResolver",
    "resolve_manifest_packages",
    # Agents
    "AgentDefinition",
    "ResolvedAgent",
    "AgentInstallState",
    "list_agents",
    "resolve_agent",
    "resolve_enabled_agents",
    "read_agent_state",
    # Sync
    "SyncOptions",
    "SyncSummary",
    "run_sync",
    "sync_project",
]
