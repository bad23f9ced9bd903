"""
Repository grouping.

Remote packages that share a repository and ref are fetched once. A group
checks out the union of its members' subpaths sparsely, unless any member
needs the whole repository, in which case the group does a full checkout.
"""
from __future__ import annotations

import hashlib
import posixpath
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Sequence

from skillsupply.errors import PackageError
from skillsupply.manifest.coerce import parse_github_slug
from skillsupply.manifest.models import GitRef
from skillsupply.packages.models import (
    CanonicalPackage,
    GithubPackage,
    GitPackage,
    PackageOrigin,
    RemotePackage,
)
from skillsupply.result import Err, Ok, Result

RepoKind = Literal["github", "git"]

_UNSAFE_DIR_CHARS = re.compile(r"[^a-z0-9._-]+")


def github_remote_url(owner: str, repo: str) -> str:
    return f"https://github.com/{owner}/{repo}.git"


def normalize_sparse_path(
    value: str | None,
    origin: PackageOrigin | None = None,
) -> Result[str | None, PackageError]:
    """Validate and normalize a repository subpath.

    Returns ``None`` for "no subpath" (``None`` or ``"."``), otherwise a
    forward-slash relative path with no ``./`` prefix.
    """
    if value is None:
        return Ok(None)

    trimmed = value.strip()
    if not trimmed:
        return Err(PackageError("invalid_path", "Package path cannot be empty.", origin=origin))

    cleaned = trimmed.replace("\\", "/")
    if cleaned.startswith("/"):
        return Err(PackageError("invalid_path", "Package path must be relative.", origin=origin))

    if any(segment == ".." for segment in cleaned.split("/")):
        return Err(PackageError(
            "invalid_path", "Package path must not escape the repository.", origin=origin,
        ))

    normalized = re.sub(r"^(\./)+", "", posixpath.normpath(cleaned))
    if not normalized or normalized == ".":
        return Ok(None)
    return Ok(normalized)


def join_repo_path(repo_dir: Path, sparse_path: str) -> Path:
    return repo_dir.joinpath(*sparse_path.split("/"))


def build_repo_key(kind: RepoKind, identity: str, ref: GitRef | None) -> str:
    """``<kind>:<identity>:<refkey>`` where refkey is ``default`` or ``<type>:<value>``."""
    ref_key = "default" if ref is None else f"{ref.type}:{ref.value}"
    return f"{kind}:{identity}:{ref_key}"


def build_repo_dir(temp_root: Path, key: str, alias: str) -> Path:
    """A checkout directory unique to ``key`` and readable by alias."""
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:12]
    safe_alias = _UNSAFE_DIR_CHARS.sub("-", alias.strip().lower()).strip("-")
    return temp_root / (f"{safe_alias}-{digest}" if safe_alias else digest)


@dataclass
class GroupMember:
    package: RemotePackage
    sparse_path: str | None


@dataclass
class RepoGroup:
    """Remote packages sharing one checkout."""

    key: str
    kind: RepoKind
    remote_url: str
    source: str  # owner/repo or URL, for messages
    origin: PackageOrigin  # first member's origin
    ref: GitRef | None = None
    members: list[GroupMember] = field(default_factory=list)
    sparse_paths: set[str] = field(default_factory=set)
    full_checkout: bool = False

    def add(self, package: RemotePackage, sparse_path: str | None) -> None:
        self.members.append(GroupMember(package, sparse_path))
        if sparse_path is None:
            self.full_checkout = True
        else:
            self.sparse_paths.add(sparse_path)

    def checkout_paths(self) -> list[str] | None:
        """Sorted sparse paths, or ``None`` for a full checkout."""
        if self.full_checkout:
            return None
        return sorted(self.sparse_paths)


def build_repo_groups(
    packages: Sequence[CanonicalPackage],
) -> Result[list[RepoGroup], PackageError]:
    """Group github and git packages by repository and ref, in first-seen order.

    Other package kinds are skipped.
    """
    groups: dict[str, RepoGroup] = {}

    for package in packages:
        if not isinstance(package, (GithubPackage, GitPackage)):
            continue

        path = normalize_sparse_path(package.path, package.origin)
        if not path.ok:
            return path

        if isinstance(package, GithubPackage):
            slug = parse_github_slug(package.gh)
            if slug is None:
                return Err(PackageError(
                    "invalid_path",
                    f"Invalid GitHub reference: {package.gh}. Expected owner/repo format.",
                    origin=package.origin,
                ))
            kind: RepoKind = "github"
            identity = package.gh
            remote_url = github_remote_url(*slug)
        else:
            kind = "git"
            identity = package.url
            remote_url = package.url

        key = build_repo_key(kind, identity, package.ref)
        group = groups.get(key)
        if group is None:
            group = RepoGroup(
                key=key,
                kind=kind,
                remote_url=remote_url,
                source=identity,
                origin=package.origin,
                ref=package.ref,
            )
            groups[key] = group
        group.add(package, path.value)

    return Ok(list(groups.values()))
