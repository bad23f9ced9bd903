"""Package resolution, fetching, layout detection and skill extraction."""
from __future__ import annotations

from skillsupply.packages.detect import SKILL_FILENAME, detect_package, find_skill_dirs
from skillsupply.packages.extract import extract_skills, load_skill, parse_skill_frontmatter
from skillsupply.packages.fetch import (
    clone_repository,
    fetch_local_package,
    fetch_packages,
    fetch_repository,
)
from skillsupply.packages.git import GitRunner
from skillsupply.packages.models import (
    CanonicalPackage,
    ClaudePluginPackage,
    DetectedPackage,
    DetectionMethod,
    ExtractedPackage,
    FetchedPackage,
    FetchStrategy,
    GithubPackage,
    GitPackage,
    LocalPackage,
    PackageOrigin,
    RegistryPackage,
    Skill,
)
from skillsupply.packages.repo import (
    RepoGroup,
    build_repo_groups,
    normalize_sparse_path,
)
from skillsupply.packages.resolve import (
    get_fetch_strategy,
    resolve_declaration,
    resolve_entries,
    resolve_manifest_packages,
)

__all__ = [
    "SKILL_FILENAME",
    "CanonicalPackage",
    "ClaudePluginPackage",
    "DetectedPackage",
    "DetectionMethod",
    "ExtractedPackage",
    "FetchStrategy",
    "FetchedPackage",
    "GitPackage",
    "GitRunner",
    "GithubPackage",
    "LocalPackage",
    "PackageOrigin",
    "RegistryPackage",
    "RepoGroup",
    "Skill",
    "build_repo_groups",
    "clone_repository",
    "detect_package",
    "extract_skills",
    "fetch_local_package",
    "fetch_packages",
    "fetch_repository",
    "find_skill_dirs",
    "get_fetch_strategy",
    "load_skill",
    "normalize_sparse_path",
    "parse_skill_frontmatter",
    "resolve_declaration",
    "resolve_entries",
    "resolve_manifest_packages",
]
