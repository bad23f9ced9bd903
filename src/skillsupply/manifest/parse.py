"""Manifest parsing: TOML text to a validated :class:`Manifest`."""

from __future__ import annotations

from pathlib import Path
from typing import Any

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # type: ignore[no-redef]

from skillsupply.errors import ManifestError
from skillsupply.logging import get_logger
from skillsupply.manifest.coerce import coerce_agent_id, coerce_alias, coerce_dependency
from skillsupply.manifest.models import (
    AgentId,
    AutoDiscover,
    Declaration,
    DiscoveredAt,
    Manifest,
    ManifestOrigin,
    PackageMetadata,
)
from skillsupply.result import Err, Ok, Result

logger = get_logger("manifest.parse")

TOP_LEVEL_KEYS = ("package", "agents", "dependencies", "exports")
PACKAGE_KEYS = ("name", "version", "description", "license", "org")


def parse_manifest(
    contents: str,
    source_path: Path,
    discovered_at: DiscoveredAt = "cwd",
) -> Result[Manifest, ManifestError]:
    """Parse manifest text.

    Args:
        contents: Raw ``package.toml`` text.
        source_path: Absolute path of the file; used for local path
            resolution and error reporting.
        discovered_at: How the manifest was found.
    """
    try:
        data = tomllib.loads(contents)
    except tomllib.TOMLDecodeError as e:
        return Err(ManifestError("parse", f"Invalid TOML in {source_path}: {e}", path=source_path))

    try:
        manifest = _build_manifest(data, source_path, discovered_at)
    except ManifestError as e:
        return Err(e)
    return Ok(manifest)


def _build_manifest(
    data: dict[str, Any],
    source_path: Path,
    discovered_at: DiscoveredAt,
) -> Manifest:
    unknown = [key for key in data if key not in TOP_LEVEL_KEYS]
    if unknown:
        raise ManifestError(
            "validation",
            f"Unknown top-level key(s) in manifest: {', '.join(unknown)}.",
            path=source_path,
            key=unknown[0],
        )

    return Manifest(
        origin=ManifestOrigin(source_path=source_path, discovered_at=discovered_at),
        agents=_parse_agents(data.get("agents"), source_path),
        dependencies=_parse_dependencies(data.get("dependencies"), source_path),
        package=_parse_package(data.get("package"), source_path),
        exports=_parse_exports(data.get("exports"), source_path),
    )


def _require_table(value: Any, name: str, source_path: Path) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ManifestError("validation", f"[{name}] must be a table.", path=source_path, key=name)
    return value


def _parse_package(value: Any, source_path: Path) -> PackageMetadata | None:
    if value is None:
        return None
    table = _require_table(value, "package", source_path)

    unknown = [key for key in table if key not in PACKAGE_KEYS]
    if unknown:
        raise ManifestError(
            "validation",
            f"Unknown key(s) in [package]: {', '.join(unknown)}.",
            path=source_path,
            key="package",
        )

    fields: dict[str, str | None] = {}
    for key in PACKAGE_KEYS:
        raw = table.get(key)
        if raw is None:
            fields[key] = None
            continue
        if not isinstance(raw, str):
            raise ManifestError(
                "validation", f"[package].{key} must be a string.", path=source_path, key="package",
            )
        fields[key] = raw.strip()

    for required in ("name", "version"):
        if not fields[required]:
            raise ManifestError(
                "validation",
                f"[package].{required} must be a non-empty string.",
                path=source_path,
                key="package",
            )

    return PackageMetadata(
        name=fields["name"] or "",
        version=fields["version"] or "",
        description=fields["description"],
        license=fields["license"],
        org=fields["org"],
    )


def _parse_agents(value: Any, source_path: Path) -> dict[AgentId, bool]:
    if value is None:
        return {}
    table = _require_table(value, "agents", source_path)

    agents: dict[AgentId, bool] = {}
    for key, enabled in table.items():
        if not isinstance(enabled, bool):
            raise ManifestError(
                "validation",
                f'Agent "{key}" must be set to true or false.',
                path=source_path,
                key=key,
            )
        agent_id = coerce_agent_id(key)
        if agent_id is None:
            logger.debug("Ignoring unknown agent %r in %s", key, source_path)
            continue
        agents[agent_id] = enabled
    return agents


def _parse_dependencies(value: Any, source_path: Path) -> dict[str, Declaration]:
    if value is None:
        return {}
    table = _require_table(value, "dependencies", source_path)

    dependencies: dict[str, Declaration] = {}
    for key, raw in table.items():
        alias = coerce_alias(key)
        if alias is None:
            raise ManifestError(
                "validation",
                f'Invalid alias "{key}": must be non-empty and contain no slashes, dots, or colons.',
                path=source_path,
                key=key,
            )
        if alias in dependencies:
            raise ManifestError(
                "validation", f'Duplicate alias "{alias}".', path=source_path, key=alias,
            )
        dependencies[alias] = coerce_dependency(raw, alias, source_path)
    return dependencies


def _parse_exports(value: Any, source_path: Path) -> AutoDiscover | None:
    if value is None:
        return None
    table = _require_table(value, "exports", source_path)

    unknown = [key for key in table if key != "auto_discover"]
    if unknown:
        raise ManifestError(
            "validation",
            f"Unknown key(s) in [exports]: {', '.join(unknown)}.",
            path=source_path,
            key="exports",
        )

    auto = table.get("auto_discover")
    if auto is None:
        return None
    auto_table = _require_table(auto, "exports.auto_discover", source_path)

    skills = auto_table.get("skills", "./skills")
    if skills is False:
        return AutoDiscover(skills=False)
    if not isinstance(skills, str) or not skills.strip():
        raise ManifestError(
            "validation",
            "[exports.auto_discover].skills must be a non-empty string or false.",
            path=source_path,
            key="exports",
        )
    return AutoDiscover(skills=skills.strip())
