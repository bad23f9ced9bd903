"""
Manifest discovery.

Walks upward from a start directory looking for ``package.toml``. The
walk stops at the home directory when the start is inside it, otherwise
at the filesystem root. The global manifest (``~/.sk/package.toml``) is
checked separately.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from skillsupply.config import GLOBAL_DIRNAME, MANIFEST_FILENAME
from skillsupply.errors import DiscoveryError
from skillsupply.logging import get_logger
from skillsupply.manifest.models import DiscoveredAt
from skillsupply.result import Err, Ok, Result

logger = get_logger("manifest.discover")


@dataclass(frozen=True)
class DiscoveredManifest:
    """A manifest file found during discovery."""

    path: Path
    discovered_at: DiscoveredAt


def _is_within(candidate: Path, base: Path) -> bool:
    return candidate == base or base in candidate.parents


def _manifest_exists(manifest_path: Path) -> Result[bool, DiscoveryError]:
    try:
        if not manifest_path.exists():
            return Ok(False)
        if not manifest_path.is_file():
            return Err(DiscoveryError(
                "io",
                f"{MANIFEST_FILENAME} exists but is not a file: {manifest_path}",
                path=manifest_path,
            ))
    except PermissionError:
        return Err(DiscoveryError(
            "io",
            "Cannot access parent directory. Check permissions.",
            path=manifest_path.parent,
        ))
    except OSError:
        return Err(DiscoveryError("io", f"Unable to access {manifest_path}.", path=manifest_path))
    return Ok(True)


def _walk_dirs(start: Path, home_dir: Path) -> list[Path]:
    """Directories from ``start`` up to the stop boundary, inclusive."""
    stop = home_dir if _is_within(start, home_dir) else Path(start.anchor)
    dirs = [start]
    current = start
    while current != stop and current.parent != current:
        current = current.parent
        dirs.append(current)
    return dirs


def _resolve_start(start_dir: Path) -> Result[Path, DiscoveryError]:
    start = Path(os.path.abspath(start_dir))
    if not start.exists():
        return Err(DiscoveryError("invalid_start", "Start path does not exist.", path=start))
    if not start.is_dir():
        return Err(DiscoveryError(
            "invalid_start",
            "Manifest discovery start path must be a directory.",
            path=start,
        ))
    return Ok(start.resolve())


def find_manifest_paths(
    start_dir: Path,
    home_dir: Path | None = None,
) -> Result[list[Path], DiscoveryError]:
    """Every ``package.toml`` on the walk from ``start_dir``, closest first."""
    start = _resolve_start(start_dir)
    if not start.ok:
        return start

    home = Path(home_dir or Path.home()).resolve()
    found: list[Path] = []
    for directory in _walk_dirs(start.value, home):
        candidate = directory / MANIFEST_FILENAME
        exists = _manifest_exists(candidate)
        if not exists.ok:
            return exists
        if exists.value:
            found.append(candidate)
    return Ok(found)


def find_project_manifest(
    start_dir: Path,
    home_dir: Path | None = None,
) -> Result[Path | None, DiscoveryError]:
    """The closest ``package.toml`` at or above ``start_dir``, if any."""
    paths = find_manifest_paths(start_dir, home_dir)
    if not paths.ok:
        return paths
    return Ok(paths.value[0] if paths.value else None)


def find_global_manifest(
    home_dir: Path | None = None,
    global_path: Path | None = None,
) -> Result[Path | None, DiscoveryError]:
    """The global manifest if it exists."""
    path = global_path or Path(home_dir or Path.home()) / GLOBAL_DIRNAME / MANIFEST_FILENAME
    exists = _manifest_exists(path)
    if not exists.ok:
        return exists
    return Ok(path if exists.value else None)


def discover_manifests(
    start_dir: Path,
    home_dir: Path | None = None,
    global_path: Path | None = None,
    include_global: bool = True,
) -> Result[list[DiscoveredManifest], DiscoveryError]:
    """All manifests that apply to ``start_dir``.

    Project manifests come first, closest first; the one in ``start_dir``
    itself is tagged ``cwd`` and the rest ``parent``. The global manifest
    follows, tagged ``global``.
    """
    paths = find_manifest_paths(start_dir, home_dir)
    if not paths.ok:
        return paths

    start = Path(os.path.abspath(start_dir)).resolve()
    discovered = [
        DiscoveredManifest(path, "cwd" if path.parent == start else "parent")
        for path in paths.value
    ]

    if include_global:
        global_manifest = find_global_manifest(home_dir, global_path)
        if not global_manifest.ok:
            return global_manifest
        if global_manifest.value is not None:
            global_resolved = global_manifest.value.resolve()
            discovered = [item for item in discovered if item.path != global_resolved]
            discovered.append(DiscoveredManifest(global_resolved, "global"))

    logger.debug(
        "Discovered %d manifest(s) from %s: %s",
        len(discovered),
        start,
        ", ".join(str(item.path) for item in discovered),
    )
    return Ok(discovered)
