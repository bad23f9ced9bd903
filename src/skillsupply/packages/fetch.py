"""Fetching canonical packages onto disk."""
from __future__ import annotations

from pathlib import Path
from typing import Sequence

from skillsupply.errors import GitCommandError, PackageError, describe_os_error
from skillsupply.logging import get_logger
from skillsupply.manifest.models import GitRef
from skillsupply.packages.git import GitRunner
from skillsupply.packages.models import (
    CanonicalPackage,
    ClaudePluginPackage,
    FetchedPackage,
    LocalPackage,
    PackageOrigin,
    RegistryPackage,
)
from skillsupply.packages.repo import (
    RepoGroup,
    build_repo_dir,
    build_repo_groups,
    join_repo_path,
)
from skillsupply.packages.resolve import get_fetch_strategy
from skillsupply.result import Err, Ok, Result

logger = get_logger("fetch")


def fetch_local_package(package: LocalPackage) -> Result[FetchedPackage, PackageError]:
    """Local packages are used in place; they only need to be directories."""
    path = package.path
    try:
        if not path.exists():
            return Err(PackageError(
                "not_found", f"Local path does not exist: {path}", path=path, origin=package.origin,
            ))
        if not path.is_dir():
            return Err(PackageError(
                "invalid_path", f"Local path is not a directory: {path}", path=path, origin=package.origin,
            ))
    except OSError as e:
        return Err(PackageError(
            "io", describe_os_error(e, f"Unable to access {path}."), path=path, origin=package.origin,
        ))
    return Ok(FetchedPackage(canonical=package, repo_path=path, package_path=path))


def clone_repository(
    remote_url: str,
    destination: Path,
    git: GitRunner,
    origin: PackageOrigin,
    ref: GitRef | None = None,
    sparse_paths: Sequence[str] | None = None,
) -> Result[Path, PackageError]:
    """Clone ``remote_url`` into ``destination`` and check out ``ref``.

    With ``sparse_paths`` the clone is blob-filtered and restricted to those
    paths in cone mode.
    """
    if destination.exists():
        return Err(PackageError(
            "io", f"Destination already exists: {destination}", path=destination, origin=origin,
        ))

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return Err(PackageError(
            "io", describe_os_error(e, f"Unable to create {destination.parent}."),
            path=destination.parent, origin=origin,
        ))

    sparse = bool(sparse_paths)
    try:
        git.ensure_available()
        git.clone(remote_url, destination, sparse=sparse)
        if sparse:
            git.set_sparse_paths(destination, list(sparse_paths or []))
        git.checkout(destination, ref)
    except GitCommandError as e:
        return Err(PackageError("git", e.message, path=destination, origin=origin))

    return Ok(destination)


def fetch_repository(
    group: RepoGroup,
    temp_root: Path,
    git: GitRunner,
) -> Result[Path, PackageError]:
    """Check out one repository group under ``temp_root``."""
    destination = build_repo_dir(temp_root, group.key, group.origin.alias)
    paths = group.checkout_paths()
    logger.debug(
        "Fetching %s (%s) into %s [%s]",
        group.source,
        group.ref or "default branch",
        destination,
        "full" if paths is None else ", ".join(paths),
    )
    return clone_repository(
        group.remote_url,
        destination,
        git,
        group.origin,
        ref=group.ref,
        sparse_paths=paths,
    )


def fetch_packages(
    packages: Sequence[CanonicalPackage],
    temp_root: Path,
    git: GitRunner | None = None,
) -> Result[list[FetchedPackage], PackageError]:
    """Fetch every package: one checkout per repository group, then local packages.

    Claude plugin packages must already be resolved; registry packages are
    rejected.
    """
    for package in packages:
        if isinstance(package, ClaudePluginPackage):
            return Err(PackageError(
                "unsupported",
                "Claude plugin dependencies must be resolved before fetch.",
                origin=package.origin,
            ))
    for package in packages:
        if isinstance(package, RegistryPackage):
            return Err(PackageError(
                "unsupported", "Registry packages are not supported yet.", origin=package.origin,
            ))

    groups = build_repo_groups(packages)
    if not groups.ok:
        return groups

    git = git or GitRunner()
    fetched: list[FetchedPackage] = []

    for group in groups.value:
        repo = fetch_repository(group, temp_root, git)
        if not repo.ok:
            return repo
        for member in group.members:
            package_path = (
                join_repo_path(repo.value, member.sparse_path)
                if member.sparse_path
                else repo.value
            )
            fetched.append(FetchedPackage(
                canonical=member.package, repo_path=repo.value, package_path=package_path,
            ))

    for package in packages:
        if get_fetch_strategy(package).mode != "symlink":
            continue
        local = fetch_local_package(package)
        if not local.ok:
            return local
        fetched.append(local.value)

    return Ok(fetched)
