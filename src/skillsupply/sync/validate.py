"""Whole-batch checks between extraction and install planning."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from skillsupply.config import ExtractMode
from skillsupply.errors import ValidationError
from skillsupply.logging import get_logger
from skillsupply.packages.models import ExtractedPackage
from skillsupply.result import Err, Ok, Result

logger = get_logger("sync.validate")


@dataclass
class ValidatedPackages:
    packages: list[ExtractedPackage] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def target_names(self) -> list[str]:
        return [
            f"{package.prefix}-{skill.name}"
            for package in self.packages
            for skill in package.skills
        ]


def validate_extracted_packages(
    packages: Sequence[ExtractedPackage],
    mode: ExtractMode = "strict",
) -> Result[ValidatedPackages, ValidationError]:
    """Reject empty prefixes, empty packages and duplicate targets.

    In ``lenient`` mode a package without skills is dropped with a
    warning instead of failing the batch.
    """
    validated = ValidatedPackages()
    seen: set[str] = set()

    for package in packages:
        prefix = package.prefix.strip()
        if not prefix:
            return Err(ValidationError("Package prefix cannot be empty."))

        if not package.skills:
            message = f'Package "{prefix}" has no skills to install.'
            if mode == "strict":
                return Err(ValidationError(message, path=package.canonical.origin.manifest_path))
            logger.warning(message)
            validated.warnings.append(message)
            continue

        for skill in package.skills:
            target = f"{prefix}-{skill.name}"
            if target in seen:
                return Err(ValidationError(
                    f"Duplicate skill target detected: {target}", path=skill.source_path,
                ))
            seen.add(target)

        validated.packages.append(package)

    return Ok(validated)
