"""Manifest serialization back to TOML."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import tomli_w

from skillsupply.manifest.models import (
    ClaudePluginDeclaration,
    Declaration,
    GitDeclaration,
    GithubDeclaration,
    LocalDeclaration,
    Manifest,
    RegistryDeclaration,
)


@dataclass(frozen=True)
class SerializeOptions:
    """Keep empty ``[agents]`` / ``[dependencies]`` tables in the output."""

    include_empty_agents: bool = False
    include_empty_dependencies: bool = False


EMPTY_MANIFEST_OPTIONS = SerializeOptions(
    include_empty_agents=True,
    include_empty_dependencies=True,
)


def serialize_declaration(declaration: Declaration) -> str | dict[str, Any]:
    """Render one dependency as a TOML value."""
    if isinstance(declaration, RegistryDeclaration):
        if declaration.org:
            return f"@{declaration.org}/{declaration.name}@{declaration.version}"
        return f"{declaration.name}@{declaration.version}"

    if isinstance(declaration, (GithubDeclaration, GitDeclaration)):
        table: dict[str, Any] = (
            {"gh": declaration.gh}
            if isinstance(declaration, GithubDeclaration)
            else {"git": declaration.url}
        )
        if declaration.ref is not None:
            table[declaration.ref.type] = declaration.ref.value
        if declaration.path:
            table["path"] = declaration.path
        return table

    if isinstance(declaration, LocalDeclaration):
        return {"path": declaration.spec or str(declaration.path)}

    if isinstance(declaration, ClaudePluginDeclaration):
        return {
            "type": "claude-plugin",
            "plugin": declaration.plugin,
            "marketplace": declaration.marketplace,
        }

    raise TypeError(f"Unknown dependency declaration: {declaration!r}")


def serialize_manifest(
    manifest: Manifest,
    options: SerializeOptions | None = None,
) -> str:
    """Serialize a manifest to TOML.

    Sections are written in the order ``package``, ``agents``,
    ``dependencies``, ``exports``. Empty ``agents``/``dependencies``
    tables are omitted unless ``options`` asks to keep them.
    """
    options = options or SerializeOptions()
    output: dict[str, Any] = {}

    if manifest.package is not None:
        package: dict[str, str] = {
            "name": manifest.package.name,
            "version": manifest.package.version,
        }
        for key in ("description", "license", "org"):
            value = getattr(manifest.package, key)
            if value:
                package[key] = value
        output["package"] = package

    if manifest.agents or options.include_empty_agents:
        output["agents"] = dict(manifest.agents)

    if manifest.dependencies or options.include_empty_dependencies:
        output["dependencies"] = {
            alias: serialize_declaration(declaration)
            for alias, declaration in manifest.dependencies.items()
        }

    if manifest.exports is not None:
        output["exports"] = {"auto_discover": {"skills": manifest.exports.skills}}

    text = tomli_w.dumps(output).strip()
    return f"{text}\n" if text else ""
