"""
Skill extraction.

Each skill is a directory with a ``SKILL.md`` that starts with YAML
front-matter::

    ---
    name: code-review
    description: "Review a diff for bugs"
    ---

    # Code Review
    ...

``name`` is required and must be a single line; ``description`` is
optional. In ``strict`` mode the first bad skill fails the package; in
``lenient`` mode it is skipped with a warning naming its path.
"""
from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml

from skillsupply.config import MANIFEST_FILENAME, ExtractMode
from skillsupply.errors import PackageError, describe_os_error
from skillsupply.logging import get_logger
from skillsupply.manifest.parse import parse_manifest
from skillsupply.packages.detect import SKILL_FILENAME, find_skill_dirs
from skillsupply.packages.models import (
    DetectedPackage,
    ExtractedPackage,
    PackageOrigin,
    Skill,
)
from skillsupply.result import Err, Ok, Result

logger = get_logger("extract")

DEFAULT_SKILLS_DIR = "./skills"

# Regex to match YAML frontmatter (content already newline-normalized)
FRONTMATTER_PATTERN = re.compile(
    r"\A---[ \t]*\n(.*?)^---[ \t]*$",
    re.DOTALL | re.MULTILINE,
)
BLOCK_NAME_PATTERN = re.compile(r"^name:\s*[|>]", re.MULTILINE)


def parse_skill_frontmatter(content: str, path: Path) -> tuple[str, str | None]:
    """Return ``(name, description)`` from a ``SKILL.md``.

    Raises:
        PackageError: the front-matter is missing, malformed, or has no
            usable name.
    """
    text = content.replace("\r\n", "\n")
    if text.split("\n", 1)[0].strip() != "---":
        raise PackageError("invalid_skill", "SKILL.md must start with YAML frontmatter.", path=path)

    match = FRONTMATTER_PATTERN.match(text)
    if not match:
        raise PackageError(
            "invalid_skill", "SKILL.md frontmatter is missing a closing --- line.", path=path,
        )

    raw = match.group(1)
    if BLOCK_NAME_PATTERN.search(raw):
        raise PackageError(
            "invalid_skill", "SKILL.md frontmatter name must be a single-line value.", path=path,
        )

    try:
        data: Any = yaml.safe_load(raw) if raw.strip() else {}
    except yaml.YAMLError as e:
        raise PackageError("invalid_skill", f"Invalid YAML frontmatter: {e}", path=path) from e

    if not isinstance(data, dict):
        raise PackageError("invalid_skill", "SKILL.md frontmatter must be a mapping.", path=path)

    name = data.get("name")
    if name is None:
        raise PackageError("invalid_skill", "SKILL.md frontmatter must include a name.", path=path)
    if not isinstance(name, (str, int, float)) or isinstance(name, bool):
        raise PackageError("invalid_skill", "SKILL.md frontmatter name must be a string.", path=path)
    name = str(name).strip()
    if not name:
        raise PackageError("invalid_skill", "Skill name must not be empty.", path=path)
    if "\n" in name:
        raise PackageError(
            "invalid_skill", "SKILL.md frontmatter name must be a single-line value.", path=path,
        )

    description = data.get("description")
    if isinstance(description, str):
        description = description.strip() or None
    elif description is not None:
        description = str(description)

    return name, description


def load_skill(skill_dir: Path, package_root: Path, origin: PackageOrigin) -> Skill:
    """Read one skill directory.

    Raises:
        PackageError: ``SKILL.md`` is unreadable or invalid.
    """
    skill_path = skill_dir / SKILL_FILENAME
    try:
        content = skill_path.read_text(encoding="utf-8")
    except OSError as e:
        raise PackageError(
            "io", describe_os_error(e, f"Unable to read {skill_path}."), path=skill_path, origin=origin,
        ) from e

    try:
        name, description = parse_skill_frontmatter(content, skill_path)
    except PackageError as e:
        e.origin = origin
        raise

    relative = Path(os.path.relpath(skill_dir, package_root)).as_posix()
    return Skill(
        name=name,
        description=description,
        relative_path=relative,
        source_path=skill_dir,
        origin=origin,
    )


def _manifest_skill_dirs(detected: DetectedPackage) -> list[Path]:
    """Skill directories declared by a package's own ``package.toml``.

    Raises:
        PackageError: the manifest is invalid, disables discovery, or
            points at a missing or empty directory.
    """
    manifest_path = detected.manifest_path or detected.package_path / MANIFEST_FILENAME
    origin = detected.canonical.origin

    try:
        contents = manifest_path.read_text(encoding="utf-8")
    except OSError as e:
        raise PackageError(
            "io", describe_os_error(e, f"Unable to read {manifest_path}."),
            path=manifest_path, origin=origin,
        ) from e

    parsed = parse_manifest(contents, manifest_path)
    if not parsed.ok:
        raise PackageError("invalid_skill", parsed.error.message, path=manifest_path, origin=origin)

    exports = parsed.value.exports
    setting = exports.skills if exports is not None else DEFAULT_SKILLS_DIR
    if setting is False:
        raise PackageError(
            "invalid_skill",
            f"Skill auto-discovery is disabled in {MANIFEST_FILENAME}.",
            path=manifest_path,
            origin=origin,
        )

    skills_root = Path(os.path.normpath(manifest_path.parent / setting))
    if not skills_root.exists():
        raise PackageError(
            "invalid_skill", f"Skills directory not found: {skills_root}", path=skills_root, origin=origin,
        )
    if not skills_root.is_dir():
        raise PackageError(
            "invalid_skill", f"Expected directory at {skills_root}.", path=skills_root, origin=origin,
        )

    try:
        skill_dirs = find_skill_dirs(skills_root)
    except OSError as e:
        raise PackageError(
            "io", describe_os_error(e, f"Unable to read {skills_root}."),
            path=skills_root, origin=origin,
        ) from e
    if not skill_dirs:
        raise PackageError(
            "invalid_skill", f"No skills found in {skills_root}.", path=skills_root, origin=origin,
        )
    return skill_dirs


def extract_skills(
    detected: DetectedPackage,
    mode: ExtractMode = "strict",
) -> Result[ExtractedPackage, PackageError]:
    """Extract the skills of a detected package.

    The package's alias becomes its install prefix.
    """
    origin = detected.canonical.origin
    extracted = ExtractedPackage(canonical=detected.canonical, prefix=origin.alias)

    try:
        if detected.method == "manifest":
            skill_dirs = _manifest_skill_dirs(detected)
        else:
            skill_dirs = list(detected.skill_dirs)
    except PackageError as e:
        return Err(e)

    seen: set[str] = set()
    for skill_dir in skill_dirs:
        try:
            skill = load_skill(skill_dir, detected.package_path, origin)
            if skill.name in seen:
                raise PackageError(
                    "invalid_skill",
                    f'Duplicate skill name "{skill.name}" found.',
                    path=skill_dir,
                    origin=origin,
                )
        except PackageError as e:
            if mode == "strict":
                return Err(e)
            warning = f"{e.path or skill_dir}: {e.message}"
            logger.warning("Skipping skill in %s: %s", origin.alias, warning)
            extracted.warnings.append(warning)
            continue

        seen.add(skill.name)
        extracted.skills.append(skill)

    logger.debug(
        "Extracted %d skill(s) from %s (%s)",
        len(extracted.skills),
        origin.alias,
        detected.method,
    )
    return Ok(extracted)
