"""Tests for batch validation."""

from __future__ import annotations

from pathlib import Path

from skillsupply.packages import ExtractedPackage, LocalPackage, PackageOrigin, Skill
from skillsupply.sync import validate_extracted_packages


def package(prefix: str, skills: list[str]) -> ExtractedPackage:
    origin = PackageOrigin(prefix or "x", Path("/work/package.toml"))
    canonical = LocalPackage(path=Path(f"/work/{prefix}"), origin=origin)
    return ExtractedPackage(
        canonical=canonical,
        prefix=prefix,
        skills=[
            Skill(
                name=name,
                source_path=Path(f"/work/{prefix}/{name}"),
                relative_path=name,
                origin=origin,
            )
            for name in skills
        ],
    )


class TestValidateExtractedPackages:
    """Tests for validate_extracted_packages."""

    def test_valid_batch(self) -> None:
        """Valid packages pass through with their targets."""
        result = validate_extracted_packages([package("a", ["x", "y"]), package("b", ["x"])])

        assert result.ok
        assert result.value.target_names == ["a-x", "a-y", "b-x"]

    def test_empty_prefix(self) -> None:
        """Prefixes cannot be empty, even in lenient mode."""
        result = validate_extracted_packages([package("  ", ["x"])], "lenient")

        assert not result.ok
        assert result.error.message == "Package prefix cannot be empty."

    def test_no_skills_strict(self) -> None:
        """A package with no skills fails the batch."""
        result = validate_extracted_packages([package("a", [])])

        assert not result.ok
        assert result.error.message == 'Package "a" has no skills to install.'

    def test_no_skills_lenient(self) -> None:
        """Lenient mode drops the empty package with a warning."""
        result = validate_extracted_packages([package("a", []), package("b", ["x"])], "lenient")

        assert result.ok
        assert [p.prefix for p in result.value.packages] == ["b"]
        assert result.value.warnings == ['Package "a" has no skills to install.']

    def test_duplicate_targets(self) -> None:
        """Target names must be unique across the batch."""
        # "a-b" + "c" and "a" + "b-c" both produce "a-b-c"
        result = validate_extracted_packages([package("a-b", ["c"]), package("a", ["b-c"])])

        assert not result.ok
        assert result.error.message == "Duplicate skill target detected: a-b-c"
