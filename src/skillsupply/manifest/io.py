"""Reading and writing manifest files."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from skillsupply.errors import ManifestError, describe_os_error
from skillsupply.logging import get_logger
from skillsupply.manifest.models import DiscoveredAt, Manifest, ManifestOrigin
from skillsupply.manifest.parse import parse_manifest
from skillsupply.manifest.write import SerializeOptions, serialize_manifest
from skillsupply.result import Err, Ok, Result

logger = get_logger("manifest.io")


@dataclass(frozen=True)
class LoadedManifest:
    """A manifest plus the options that preserve its empty sections on save."""

    manifest: Manifest
    serialize_options: SerializeOptions


def infer_serialize_options(manifest: Manifest) -> SerializeOptions:
    """Keep sections that were loaded empty so saving does not drop them."""
    return SerializeOptions(
        include_empty_agents=not manifest.agents,
        include_empty_dependencies=not manifest.dependencies,
    )


def read_manifest_text(path: Path) -> Result[str, ManifestError]:
    try:
        return Ok(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return Err(ManifestError("not_found", f"Manifest not found: {path}", path=path))
    except OSError as e:
        return Err(ManifestError("io", describe_os_error(e, f"Unable to read {path}."), path=path))


def load_manifest(
    path: Path,
    discovered_at: DiscoveredAt = "cwd",
) -> Result[LoadedManifest, ManifestError]:
    """Read and parse the manifest at ``path``."""
    path = Path(os.path.abspath(path))
    contents = read_manifest_text(path)
    if not contents.ok:
        return contents

    parsed = parse_manifest(contents.value, path, discovered_at)
    if not parsed.ok:
        return parsed

    logger.debug(
        "Loaded %s (%d dependencies, %d agents)",
        path,
        len(parsed.value.dependencies),
        len(parsed.value.agents),
    )
    return Ok(LoadedManifest(parsed.value, infer_serialize_options(parsed.value)))


def empty_manifest(path: Path, discovered_at: DiscoveredAt = "cwd") -> Manifest:
    """A manifest with no content, for creating a new file at ``path``."""
    return Manifest(origin=ManifestOrigin(source_path=Path(os.path.abspath(path)), discovered_at=discovered_at))


def save_manifest(
    manifest: Manifest,
    path: Path | None = None,
    options: SerializeOptions | None = None,
) -> Result[Path, ManifestError]:
    """Atomically write ``manifest`` to ``path`` (defaults to its source path)."""
    target = Path(path or manifest.source_path)
    text = serialize_manifest(manifest, options)

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=target.parent, prefix=".package-", suffix=".toml")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
    except OSError as e:
        return Err(ManifestError("io", describe_os_error(e, f"Unable to write {target}."), path=target))

    logger.debug("Wrote %s", target)
    return Ok(target)
