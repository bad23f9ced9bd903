"""
Package layout detection.

Checked in order, first match wins:

1. ``package.toml`` -> ``manifest`` (skills located during extraction)
2. ``.claude-plugin/`` -> ``plugin`` (skills under ``skills/``; none is fine)
3. subdirectories containing ``SKILL.md`` -> ``subdir``
4. ``SKILL.md`` at the root -> ``single``
"""
from __future__ import annotations

from pathlib import Path

from skillsupply.config import MANIFEST_FILENAME
from skillsupply.errors import PackageError, describe_os_error
from skillsupply.packages.models import DetectedPackage, FetchedPackage
from skillsupply.result import Err, Ok, Result

SKILL_FILENAME = "SKILL.md"
PLUGIN_DIR = ".claude-plugin"
PLUGIN_FILENAME = "plugin.json"
PLUGIN_SKILLS_DIR = "skills"


def find_skill_dirs(root: Path) -> list[Path]:
    """Immediate subdirectories of ``root`` holding a ``SKILL.md``, sorted by name.

    Raises:
        OSError: ``root`` cannot be listed.
    """
    return sorted(
        entry
        for entry in root.iterdir()
        if entry.is_dir() and (entry / SKILL_FILENAME).is_file()
    )


def detect_package(fetched: FetchedPackage) -> Result[DetectedPackage, PackageError]:
    """Classify the package at ``fetched.package_path``."""
    root = fetched.package_path
    origin = fetched.canonical.origin

    try:
        if not root.exists():
            return Err(PackageError(
                "invalid_package", f"Package path does not exist: {root}", path=root, origin=origin,
            ))
        if not root.is_dir():
            return Err(PackageError(
                "invalid_package", f"Package path is not a directory: {root}", path=root, origin=origin,
            ))

        manifest_path = root / MANIFEST_FILENAME
        if manifest_path.is_file():
            return Ok(DetectedPackage(fetched, "manifest", manifest_path=manifest_path))

        plugin_dir = root / PLUGIN_DIR
        if plugin_dir.is_dir():
            if not (plugin_dir / PLUGIN_FILENAME).is_file():
                return Err(PackageError(
                    "invalid_package",
                    f"Found {PLUGIN_DIR} without {PLUGIN_FILENAME}.",
                    path=root,
                    origin=origin,
                ))
            skills_root = root / PLUGIN_SKILLS_DIR
            skill_dirs = find_skill_dirs(skills_root) if skills_root.is_dir() else []
            return Ok(DetectedPackage(fetched, "plugin", skill_dirs=tuple(skill_dirs)))

        skill_dirs = find_skill_dirs(root)
        if skill_dirs:
            return Ok(DetectedPackage(fetched, "subdir", skill_dirs=tuple(skill_dirs)))

        if (root / SKILL_FILENAME).is_file():
            return Ok(DetectedPackage(fetched, "single", skill_dirs=(root,)))
    except OSError as e:
        return Err(PackageError(
            "io", describe_os_error(e, f"Unable to read {root}."), path=root, origin=origin,
        ))

    return Err(PackageError(
        "invalid_package",
        f"No {MANIFEST_FILENAME}, {PLUGIN_FILENAME}, or {SKILL_FILENAME} found in package.",
        path=root,
        origin=origin,
    ))
