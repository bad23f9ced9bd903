"""
Claude plugin marketplaces.

A ``claude-plugin`` dependency names a plugin inside a marketplace. A
marketplace is a repository (or a published JSON file) with
``.claude-plugin/marketplace.json``::

    {
      "name": "acme-plugins",
      "metadata": {"pluginRoot": "./plugins"},
      "plugins": [
        {"name": "review", "source": "./review"},
        {"name": "docs", "source": {"source": "github", "repo": "acme/docs-plugin"}},
        {"name": "lint", "source": {"source": "url", "url": "https://git.example.com/lint.git"}}
      ]
    }

Before fetch, every plugin dependency is resolved to the local, github
or git package its source points at, keeping the declaring alias.
Relative sources are local only when the marketplace itself is a local
directory; otherwise they become a subpath of the marketplace repository.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Sequence

import httpx

from skillsupply.config import DEFAULT_HTTP_TIMEOUT
from skillsupply.errors import MarketplaceError, SkillSupplyError, describe_os_error
from skillsupply.logging import get_logger
from skillsupply.manifest.coerce import (
    coerce_git_url,
    coerce_github_ref,
    looks_like_git_url,
    parse_github_slug,
)
from skillsupply.manifest.models import (
    Declaration,
    GitDeclaration,
    GithubDeclaration,
    LocalDeclaration,
)
from skillsupply.packages.fetch import clone_repository
from skillsupply.packages.git import GitRunner
from skillsupply.packages.models import (
    CanonicalPackage,
    ClaudePluginPackage,
    PackageOrigin,
)
from skillsupply.packages.repo import build_repo_dir, build_repo_key, github_remote_url
from skillsupply.packages.resolve import resolve_declaration
from skillsupply.result import Err, Ok, Result

logger = get_logger("marketplace")

MARKETPLACE_DIR = ".claude-plugin"
MARKETPLACE_FILENAME = "marketplace.json"


@dataclass(frozen=True)
class MarketplacePlugin:
    name: str
    source: Any


@dataclass(frozen=True)
class MarketplaceManifest:
    name: str
    plugins: tuple[MarketplacePlugin, ...] = ()
    plugin_root: str | None = None


@dataclass(frozen=True)
class MarketplaceSource:
    """Where a marketplace lives."""

    type: Literal["path", "github", "git", "url"]
    location: str  # directory, owner/repo slug, or URL


@dataclass
class MarketplaceInfo:
    """A loaded marketplace."""

    name: str
    source: MarketplaceSource
    manifest_location: str
    root_path: Path | None  # None for URL marketplaces
    plugins: list[MarketplacePlugin] = field(default_factory=list)
    plugin_root_path: Path | None = None

    def find_plugin(self, name: str) -> MarketplacePlugin | None:
        for plugin in self.plugins:
            if plugin.name == name:
                return plugin
        return None

    @property
    def plugin_base_path(self) -> Path | None:
        return self.plugin_root_path or self.root_path


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_marketplace_json(
    contents: str,
    manifest_location: str,
) -> Result[MarketplaceManifest, MarketplaceError]:
    """Validate the contents of a ``marketplace.json``."""

    def invalid(message: str) -> Err[MarketplaceError]:
        return Err(MarketplaceError("invalid_manifest", message, path=None))

    try:
        data = json.loads(contents)
    except json.JSONDecodeError as e:
        return invalid(f"Invalid JSON in {manifest_location}. {e}")

    if not isinstance(data, dict):
        return invalid("Marketplace manifest must be a JSON object.")

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        return invalid("Marketplace manifest must include a non-empty name.")

    raw_plugins = data.get("plugins")
    if not isinstance(raw_plugins, list):
        return invalid("Marketplace manifest must include a plugins array.")

    plugins: list[MarketplacePlugin] = []
    for entry in raw_plugins:
        if not isinstance(entry, dict):
            return invalid("Marketplace plugins must be objects.")
        plugin_name = entry.get("name")
        if not isinstance(plugin_name, str) or not plugin_name.strip():
            return invalid("Marketplace plugins must include a non-empty name.")
        if "source" not in entry:
            return invalid(f'Marketplace plugin "{plugin_name}" is missing source.')
        plugins.append(MarketplacePlugin(name=plugin_name.strip(), source=entry["source"]))

    plugin_root: str | None = None
    metadata = data.get("metadata")
    if metadata is not None:
        if not isinstance(metadata, dict):
            return invalid("Marketplace metadata must be a JSON object.")
        if "pluginRoot" in metadata:
            value = metadata["pluginRoot"]
            if not isinstance(value, str) or not value.strip():
                return invalid("Marketplace metadata.pluginRoot must be a non-empty string.")
            plugin_root = value.strip()

    return Ok(MarketplaceManifest(name=name.strip(), plugins=tuple(plugins), plugin_root=plugin_root))


def strip_github_prefix(value: str) -> str:
    for prefix in ("github:", "gh:"):
        if value.startswith(prefix):
            return value[len(prefix):]
    return value


def _resolve_path(value: str, base_dir: Path) -> Path:
    expanded = Path(os.path.expanduser(value))
    if expanded.is_absolute():
        return expanded
    return Path(os.path.normpath(base_dir / expanded))


def parse_marketplace_spec(
    spec: str,
    source_path: Path,
) -> Result[MarketplaceSource, MarketplaceError]:
    """Classify a marketplace spec.

    Accepted, in order: ``github:owner/repo`` / ``gh:owner/repo``, an
    http(s) URL ending in ``.json``, a git URL, an existing directory
    (relative to the declaring manifest), and an ``owner/repo`` slug.
    """
    trimmed = spec.strip()
    if not trimmed:
        return Err(MarketplaceError("invalid_spec", "Marketplace spec must not be empty."))

    unprefixed = strip_github_prefix(trimmed)
    if unprefixed != trimmed:
        if parse_github_slug(unprefixed) is None:
            return Err(MarketplaceError(
                "invalid_spec", f"Invalid GitHub marketplace: {unprefixed}. Expected owner/repo format.",
            ))
        return Ok(MarketplaceSource("github", unprefixed.strip()))

    lowered = trimmed.lower()
    if lowered.startswith(("http://", "https://")) and lowered.endswith(".json"):
        return Ok(MarketplaceSource("url", trimmed))

    if looks_like_git_url(trimmed):
        return Ok(MarketplaceSource("git", trimmed))

    candidate = _resolve_path(trimmed, source_path.parent)
    if candidate.is_dir():
        return Ok(MarketplaceSource("path", str(candidate)))
    if candidate.exists():
        return Err(MarketplaceError(
            "invalid_spec", f"Marketplace path is not a directory: {candidate}", path=candidate,
        ))

    if parse_github_slug(trimmed) is not None:
        return Ok(MarketplaceSource("github", trimmed))

    return Err(MarketplaceError(
        "invalid_spec",
        f"Invalid marketplace: {trimmed}. Expected a GitHub repo, git URL, "
        "marketplace.json URL or local directory.",
    ))


def plugin_source_declaration(
    source: Any,
    alias: str,
    marketplace: MarketplaceInfo,
) -> Result[Declaration, MarketplaceError]:
    """Turn a marketplace plugin ``source`` into a dependency declaration."""

    def invalid(message: str) -> Err[MarketplaceError]:
        return Err(MarketplaceError("invalid_manifest", message))

    if isinstance(source, str):
        trimmed = source.strip()
        if not trimmed:
            return invalid(f'Plugin "{alias}" source must not be empty.')
        base = marketplace.plugin_base_path
        if base is None:
            return invalid(
                f'Plugin "{alias}" uses a relative source, but marketplace URL sources '
                "do not support relative plugin paths."
            )
        candidate = _resolve_path(trimmed, base)
        if candidate.is_dir():
            if marketplace.source.type == "path":
                return Ok(LocalDeclaration(path=candidate, spec=str(candidate)))
            root = marketplace.root_path or base
            return _remote_subpath_declaration(candidate, root, alias, marketplace.source)
        if candidate.exists():
            return invalid(f'Plugin "{alias}" source path is not a directory.')
        return Err(MarketplaceError(
            "not_found", f'Plugin "{alias}" source path does not exist: {candidate}', path=candidate,
        ))

    if not isinstance(source, dict):
        return invalid(f'Plugin "{alias}" source must be a string or object declaration.')

    source_type = source.get("source")
    if not isinstance(source_type, str) or not source_type.strip():
        return invalid(f'Plugin "{alias}" source must include a non-empty "source" field.')
    source_type = source_type.strip()

    allowed = {"github": {"source", "repo"}, "url": {"source", "url"}}.get(source_type, {"source"})
    unknown = [key for key in source if key not in allowed]
    if unknown:
        return invalid(f'Plugin "{alias}" source has unknown keys: {", ".join(unknown)}.')

    if source_type == "github":
        repo = source.get("repo")
        if not isinstance(repo, str) or not repo.strip():
            return invalid(f'Plugin "{alias}" source repo must be a string.')
        gh = coerce_github_ref(strip_github_prefix(repo.strip()))
        if gh is None:
            return invalid(f'Plugin "{alias}" source repo must be in owner/repo format.')
        return Ok(GithubDeclaration(gh=gh))

    if source_type == "url":
        url = source.get("url")
        if not isinstance(url, str) or not url.strip():
            return invalid(f'Plugin "{alias}" source url must be a string.')
        normalized = coerce_git_url(url)
        if normalized is None:
            return invalid(f'Plugin "{alias}" source url is not a valid git URL: {url}')
        return Ok(GitDeclaration(url=normalized))

    return invalid(f'Plugin "{alias}" source must use "github" or "url" for source type.')


def _remote_subpath_declaration(
    candidate: Path,
    root: Path,
    alias: str,
    source: MarketplaceSource,
) -> Result[Declaration, MarketplaceError]:
    """Point a relative plugin source back at the marketplace repository.

    The marketplace checkout lives in a temp directory, so the plugin is
    declared as a subpath of the same remote and fetched like any other
    repository dependency.
    """
    relative = os.path.relpath(candidate, root)
    if relative == ".." or relative.startswith(".." + os.sep) or os.path.isabs(relative):
        return Err(MarketplaceError(
            "invalid_manifest",
            f'Plugin "{alias}" source escapes the marketplace repository.',
            path=candidate,
        ))
    subpath = None if relative == "." else Path(relative).as_posix()

    if source.type == "github":
        gh = coerce_github_ref(source.location) or source.location
        return Ok(GithubDeclaration(gh=gh, path=subpath))
    url = coerce_git_url(source.location) or source.location
    return Ok(GitDeclaration(url=url, path=subpath))


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class MarketplaceResolver:
    """Loads marketplaces (once per spec) and resolves plugin dependencies."""

    def __init__(
        self,
        temp_root: Path,
        git: GitRunner | None = None,
        http_timeout: float = DEFAULT_HTTP_TIMEOUT,
    ) -> None:
        self.temp_root = temp_root
        self.git = git or GitRunner()
        self.http_timeout = http_timeout
        self._cache: dict[str, MarketplaceInfo] = {}

    def load(self, spec: str, source_path: Path) -> Result[MarketplaceInfo, SkillSupplyError]:
        """Load and cache the marketplace named by ``spec``."""
        cached = self._cache.get(spec)
        if cached is not None:
            return Ok(cached)

        parsed = parse_marketplace_spec(spec, source_path)
        if not parsed.ok:
            return parsed
        source = parsed.value

        root_path: Path | None = None
        if source.type == "url":
            manifest_location = source.location
            fetched = self._fetch_url(source.location)
            if not fetched.ok:
                return fetched
            contents = fetched.value
        else:
            root = self._checkout(source, source_path)
            if not root.ok:
                return root
            root_path = root.value
            manifest_file = root_path / MARKETPLACE_DIR / MARKETPLACE_FILENAME
            manifest_location = str(manifest_file)
            try:
                contents = manifest_file.read_text(encoding="utf-8")
            except FileNotFoundError:
                return Err(MarketplaceError(
                    "not_found", f"Marketplace manifest not found: {manifest_file}", path=manifest_file,
                ))
            except OSError as e:
                return Err(MarketplaceError(
                    "io", describe_os_error(e, f"Unable to read {manifest_file}."), path=manifest_file,
                ))

        manifest = parse_marketplace_json(contents, manifest_location)
        if not manifest.ok:
            return manifest

        plugin_root_path: Path | None = None
        if manifest.value.plugin_root:
            if root_path is None:
                return Err(MarketplaceError(
                    "invalid_manifest",
                    "Marketplace pluginRoot is not supported for URL marketplaces.",
                ))
            plugin_root_path = _resolve_path(manifest.value.plugin_root, root_path)
            if not plugin_root_path.is_dir():
                return Err(MarketplaceError(
                    "not_found",
                    f"Marketplace pluginRoot is not a directory: {plugin_root_path}",
                    path=plugin_root_path,
                ))

        info = MarketplaceInfo(
            name=manifest.value.name,
            source=source,
            manifest_location=manifest_location,
            root_path=root_path,
            plugins=list(manifest.value.plugins),
            plugin_root_path=plugin_root_path,
        )
        logger.debug("Loaded marketplace %s from %s", info.name, manifest_location)
        self._cache[spec] = info
        return Ok(info)

    def resolve(self, package: ClaudePluginPackage) -> Result[CanonicalPackage, SkillSupplyError]:
        """Resolve one plugin dependency to the package its source names."""
        loaded = self.load(package.marketplace, package.origin.manifest_path)
        if not loaded.ok:
            return loaded
        marketplace = loaded.value

        entry = marketplace.find_plugin(package.plugin)
        if entry is None:
            return Err(MarketplaceError(
                "not_found",
                f'Marketplace "{marketplace.name}" does not contain plugin "{package.plugin}".',
            ))

        declaration = plugin_source_declaration(entry.source, package.origin.alias, marketplace)
        if not declaration.ok:
            return declaration

        resolved = resolve_declaration(
            package.origin.alias, declaration.value, package.origin.manifest_path,
        )
        logger.debug("Resolved plugin %s@%s to %s", package.plugin, marketplace.name, resolved.kind)
        return Ok(resolved)

    def resolve_packages(
        self,
        packages: Sequence[CanonicalPackage],
    ) -> Result[list[CanonicalPackage], SkillSupplyError]:
        """Replace every plugin dependency with its resolved package, keeping order."""
        resolved: list[CanonicalPackage] = []
        for package in packages:
            if not isinstance(package, ClaudePluginPackage):
                resolved.append(package)
                continue
            result = self.resolve(package)
            if not result.ok:
                return result
            resolved.append(result.value)
        return Ok(resolved)

    def _checkout(
        self,
        source: MarketplaceSource,
        source_path: Path,
    ) -> Result[Path, SkillSupplyError]:
        if source.type == "path":
            return Ok(Path(source.location))

        if source.type == "github":
            owner, repo = parse_github_slug(source.location) or ("", "")
            remote_url = github_remote_url(owner, repo)
        else:
            remote_url = source.location

        key = build_repo_key("github" if source.type == "github" else "git", source.location, None)
        destination = build_repo_dir(self.temp_root / "marketplaces", key, "marketplace")
        if destination.is_dir():
            return Ok(destination)
        origin = PackageOrigin(alias="marketplace", manifest_path=source_path)
        return clone_repository(remote_url, destination, self.git, origin)

    def _fetch_url(self, url: str) -> Result[str, MarketplaceError]:
        try:
            response = httpx.get(url, timeout=self.http_timeout, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            return Err(MarketplaceError(
                "io",
                f"Marketplace request failed ({e.response.status_code} {e.response.reason_phrase}).",
            ))
        except httpx.HTTPError as e:
            return Err(MarketplaceError("io", f"Unable to fetch marketplace URL: {url}. {e}"))
        return Ok(response.text)
