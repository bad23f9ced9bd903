"""
Coercion of raw TOML values into validated manifest types.

Helpers raise :class:`ManifestError` with ``type="validation"``;
:func:`skillsupply.manifest.parse.parse_manifest` turns that into an
``Err`` at the stage boundary.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

from skillsupply.errors import ManifestError
from skillsupply.manifest.models import (
    AGENT_IDS,
    GIT_REF_TYPES,
    AgentId,
    ClaudePluginDeclaration,
    Declaration,
    GitDeclaration,
    GithubDeclaration,
    GitRef,
    LocalDeclaration,
    RegistryDeclaration,
)

ALIAS_INVALID_CHARS = re.compile(r"[/\\.:]")
GITHUB_REF_PATTERN = re.compile(r"^([a-zA-Z0-9_.-]+)/([a-zA-Z0-9_.-]+)$")
SSH_GIT_PATTERN = re.compile(r"^git@([^:]+):(.+?)(?:\.git)?$")
HTTPS_GIT_PATTERN = re.compile(r"^https?://([^/]+)/(.+?)(?:\.git)?$")
REGISTRY_ORG_PATTERN = re.compile(r"^@([^/]+)/([^@]+)@(.+)$")
REGISTRY_PATTERN = re.compile(r"^([^@]+)@(.+)$")

GITHUB_KEYS = {"gh", "tag", "branch", "rev", "path"}
GIT_KEYS = {"git", "tag", "branch", "rev", "path"}
LOCAL_KEYS = {"path"}
PLUGIN_KEYS = {"type", "plugin", "marketplace"}


def coerce_alias(value: str) -> str | None:
    """Return the trimmed alias, or ``None`` if it is empty or has ``/ \\ . :``."""
    trimmed = value.strip()
    if not trimmed or ALIAS_INVALID_CHARS.search(trimmed):
        return None
    return trimmed


def coerce_agent_id(value: str) -> AgentId | None:
    trimmed = value.strip()
    if trimmed in AGENT_IDS:
        return trimmed  # type: ignore[return-value]
    return None


def coerce_git_url(value: str) -> str | None:
    """Normalize ``git@host:path`` and ``https://host/path(.git)`` to ``https://host/path``."""
    trimmed = value.strip()
    if not trimmed:
        return None
    for pattern in (SSH_GIT_PATTERN, HTTPS_GIT_PATTERN):
        match = pattern.match(trimmed)
        if match:
            host, repo_path = match.groups()
            return f"https://{host}/{repo_path}"
    return None


def coerce_github_ref(value: str) -> str | None:
    """Validate an ``owner/repo`` slug."""
    trimmed = value.strip()
    if not trimmed or not GITHUB_REF_PATTERN.match(trimmed):
        return None
    return trimmed


def parse_github_slug(value: str) -> tuple[str, str] | None:
    """Split an ``owner/repo`` slug, or ``None`` when it is malformed."""
    match = GITHUB_REF_PATTERN.match(value.strip())
    if not match:
        return None
    return match.group(1), match.group(2)


def looks_like_git_url(value: str) -> bool:
    return coerce_git_url(value) is not None


def coerce_git_ref(fields: dict[str, Any]) -> GitRef | None:
    """Build a :class:`GitRef` from ``tag``/``branch``/``rev`` fields.

    Raises:
        ValueError: more than one ref field is set.
    """
    present = [name for name in GIT_REF_TYPES if fields.get(name)]
    if not present:
        return None
    if len(present) > 1:
        raise ValueError(
            f"Multiple git refs specified: {', '.join(present)}. Only one allowed."
        )
    ref_type = present[0]
    value = str(fields[ref_type]).strip()
    if not value:
        return None
    return GitRef(type=ref_type, value=value)


def resolve_local_path(value: str, base_dir: Path) -> Path | None:
    """Resolve ``value`` (with ``~`` expansion) against ``base_dir``."""
    trimmed = value.strip()
    if not trimmed:
        return None
    expanded = Path(os.path.expanduser(trimmed))
    if expanded.is_absolute():
        return Path(os.path.normpath(expanded))
    return Path(os.path.normpath(base_dir / expanded))


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _invalid(message: str, source_path: Path, alias: str) -> ManifestError:
    return ManifestError("validation", message, path=source_path, key=alias)


def _parse_registry(value: str, alias: str, source_path: Path) -> RegistryDeclaration:
    match = REGISTRY_ORG_PATTERN.match(value)
    if match:
        org, name, version = (part.strip() for part in match.groups())
        if org and name and version:
            return RegistryDeclaration(name=name, version=version, org=org)
        raise _invalid(f"Invalid registry dependency format: {value}", source_path, alias)

    match = REGISTRY_PATTERN.match(value)
    if match:
        name, version = (part.strip() for part in match.groups())
        if name and version:
            return RegistryDeclaration(name=name, version=version)

    raise _invalid(
        f"Invalid registry dependency format: {value}. "
        "Expected @org/name@version or name@version",
        source_path,
        alias,
    )


def _check_keys(
    table: dict[str, Any], allowed: set[str], alias: str, source_path: Path,
) -> None:
    unknown = sorted(set(table) - allowed)
    if unknown:
        raise _invalid(
            f'Dependency "{alias}" has unknown keys: {", ".join(unknown)}.',
            source_path,
            alias,
        )


def _string_field(
    table: dict[str, Any], key: str, alias: str, source_path: Path,
) -> str | None:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise _invalid(f'Dependency "{alias}" field "{key}" must be a string.', source_path, alias)
    return value


def _git_ref(table: dict[str, Any], alias: str, source_path: Path) -> GitRef | None:
    for name in GIT_REF_TYPES:
        _string_field(table, name, alias, source_path)
    try:
        return coerce_git_ref(table)
    except ValueError as e:
        raise _invalid(str(e), source_path, alias) from e


def _sub_path(table: dict[str, Any], alias: str, source_path: Path) -> str | None:
    value = _string_field(table, "path", alias, source_path)
    if value is None:
        return None
    if not value.strip():
        raise _invalid("path must be non-empty", source_path, alias)
    return value.strip()


def coerce_dependency(raw: Any, alias: str, source_path: Path) -> Declaration:
    """Validate one ``[dependencies]`` entry.

    ``source_path`` is the manifest file; local paths resolve against its
    directory.
    """
    if isinstance(raw, str):
        value = raw.strip()
        if not value:
            raise _invalid(f'Dependency "{alias}" must not be empty.', source_path, alias)
        if "@" in value:
            return _parse_registry(value, alias, source_path)
        gh = coerce_github_ref(value)
        if gh:
            return GithubDeclaration(gh=gh)
        raise _invalid(
            f"Invalid dependency string: {value}. "
            "Expected name@version, @org/name@version or owner/repo",
            source_path,
            alias,
        )

    if not isinstance(raw, dict):
        raise _invalid(
            f'Dependency "{alias}" must be a string or a table.', source_path, alias,
        )

    if raw.get("type") == "claude-plugin":
        _check_keys(raw, PLUGIN_KEYS, alias, source_path)
        plugin = (_string_field(raw, "plugin", alias, source_path) or "").strip()
        if not plugin:
            raise _invalid("plugin must be non-empty", source_path, alias)
        marketplace = (_string_field(raw, "marketplace", alias, source_path) or "").strip()
        if not marketplace:
            raise _invalid("marketplace must be non-empty", source_path, alias)
        return ClaudePluginDeclaration(plugin=plugin, marketplace=marketplace)

    if "type" in raw:
        raise _invalid(
            f'Dependency "{alias}" has unsupported type: {raw["type"]}.', source_path, alias,
        )

    if "gh" in raw and "git" in raw:
        raise _invalid(
            f'Dependency "{alias}" must declare only one of gh, git or path.',
            source_path,
            alias,
        )

    if "gh" in raw:
        _check_keys(raw, GITHUB_KEYS, alias, source_path)
        gh_value = _string_field(raw, "gh", alias, source_path) or ""
        gh = coerce_github_ref(gh_value)
        if not gh:
            raise _invalid(
                f"Invalid GitHub reference: {gh_value}. Expected owner/repo format.",
                source_path,
                alias,
            )
        return GithubDeclaration(
            gh=gh,
            ref=_git_ref(raw, alias, source_path),
            path=_sub_path(raw, alias, source_path),
        )

    if "git" in raw:
        _check_keys(raw, GIT_KEYS, alias, source_path)
        git_value = _string_field(raw, "git", alias, source_path) or ""
        url = coerce_git_url(git_value)
        if not url:
            raise _invalid(f"Invalid git URL: {git_value}", source_path, alias)
        return GitDeclaration(
            url=url,
            ref=_git_ref(raw, alias, source_path),
            path=_sub_path(raw, alias, source_path),
        )

    if "path" in raw:
        _check_keys(raw, LOCAL_KEYS, alias, source_path)
        spec = _string_field(raw, "path", alias, source_path) or ""
        resolved = resolve_local_path(spec, source_path.parent)
        if resolved is None:
            raise _invalid(f"Invalid local path: {spec}", source_path, alias)
        return LocalDeclaration(path=resolved, spec=spec.strip())

    raise _invalid(
        f'Dependency "{alias}" must declare one of gh, git, path or type = "claude-plugin".',
        source_path,
        alias,
    )
