"""
Error types for skills-supply.

Every error is an exception so it can travel inside an ``Err`` value and
still be raised at the outer surface (the CLI, ``Result.unwrap``). Each
error carries a ``type`` discriminator and, where known, the path or
package origin that produced it.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Literal

from skillsupply.result import Err

if TYPE_CHECKING:
    from skillsupply.packages.models import PackageOrigin


class SkillSupplyError(Exception):
    """Base class for all skills-supply errors."""

    type: str = "error"

    def __init__(
        self,
        message: str,
        *,
        path: Path | str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None


# ---------------------------------------------------------------------------
# Manifest layer
# ---------------------------------------------------------------------------

ManifestErrorType = Literal["parse", "validation", "io", "not_found"]


class ManifestError(SkillSupplyError):
    """A manifest could not be read, parsed or validated."""

    def __init__(
        self,
        type: ManifestErrorType,
        message: str,
        *,
        path: Path | str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message, path=path)
        self.type = type
        self.key = key


class DiscoveryError(SkillSupplyError):
    """Manifest discovery failed."""

    def __init__(
        self,
        type: Literal["invalid_start", "io"],
        message: str,
        *,
        path: Path | str | None = None,
    ) -> None:
        super().__init__(message, path=path)
        self.type = type


class MergeError(SkillSupplyError):
    """Two manifests declare the same alias for different packages."""

    type = "alias_conflict"

    def __init__(self, alias: str, first_path: Path, next_path: Path) -> None:
        message = (
            f'Alias "{alias}" refers to different dependencies '
            f"(first: {first_path}, next: {next_path})."
        )
        super().__init__(message, path=next_path)
        self.alias = alias
        self.first_path = first_path
        self.next_path = next_path


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------

PackageErrorType = Literal[
    "not_found",
    "io",
    "invalid_path",
    "invalid_package",
    "invalid_skill",
    "git",
    "unsupported",
]


class PackageError(SkillSupplyError):
    """Fetching, detecting or extracting a package failed."""

    def __init__(
        self,
        type: PackageErrorType,
        message: str,
        *,
        path: Path | str | None = None,
        origin: PackageOrigin | None = None,
    ) -> None:
        super().__init__(message, path=path)
        self.type = type
        self.origin = origin

    def __str__(self) -> str:
        if self.origin is None:
            return self.message
        return f"{self.message} (dependency \"{self.origin.alias}\" in {self.origin.manifest_path})"


class GitCommandError(SkillSupplyError):
    """A git invocation exited non-zero, timed out, or git is missing."""

    type = "git"

    def __init__(
        self,
        message: str,
        *,
        command: list[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = list(command or [])
        self.returncode = returncode
        self.stderr = stderr


class MarketplaceError(SkillSupplyError):
    """A plugin marketplace could not be loaded or a plugin not resolved."""

    def __init__(
        self,
        type: Literal["invalid_spec", "invalid_manifest", "not_found", "io"],
        message: str,
        *,
        path: Path | str | None = None,
    ) -> None:
        super().__init__(message, path=path)
        self.type = type


# ---------------------------------------------------------------------------
# Agents and install
# ---------------------------------------------------------------------------


class AgentError(SkillSupplyError):
    """Agent lookup or detection failed."""

    def __init__(
        self,
        type: Literal["unknown_agent", "no_agents", "io"],
        message: str,
        *,
        agent_id: str | None = None,
        path: Path | str | None = None,
    ) -> None:
        super().__init__(message, path=path)
        self.type = type
        self.agent_id = agent_id


class StateError(SkillSupplyError):
    """An agent install-state file is unreadable or invalid."""

    def __init__(
        self,
        type: Literal["parse", "validation", "io"],
        message: str,
        *,
        path: Path | str | None = None,
    ) -> None:
        super().__init__(message, path=path)
        self.type = type


class InstallError(SkillSupplyError):
    """Planning or applying an install failed."""

    def __init__(
        self,
        type: Literal["conflict", "invalid_target", "invalid_input", "io"],
        message: str,
        *,
        agent_id: str | None = None,
        path: Path | str | None = None,
    ) -> None:
        super().__init__(message, path=path)
        self.type = type
        self.agent_id = agent_id


class ValidationError(SkillSupplyError):
    """The extracted package batch violates an install invariant."""

    type = "validation"


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------

SyncStage = Literal[
    "discover",
    "parse",
    "merge",
    "resolve",
    "agents",
    "fetch",
    "detect",
    "extract",
    "validate",
    "install",
    "reconcile",
]


class SyncError(SkillSupplyError):
    """A sync failed at a specific pipeline stage."""

    type = "sync"

    def __init__(
        self,
        stage: SyncStage,
        cause: BaseException | str,
        context: str | None = None,
    ) -> None:
        detail = str(cause)
        message = f"{context} {detail}" if context else detail
        path = getattr(cause, "path", None)
        super().__init__(message, path=path)
        self.stage = stage
        self.cause = cause if isinstance(cause, BaseException) else None

    def __str__(self) -> str:
        return f"[{self.stage}] {self.message}"


def fail_sync(
    stage: SyncStage,
    cause: BaseException | str,
    context: str | None = None,
) -> Err[SyncError]:
    """Wrap ``cause`` as an ``Err(SyncError)`` tagged with ``stage``."""
    if isinstance(cause, SyncError):
        return Err(cause)
    return Err(SyncError(stage, cause, context))


def describe_os_error(error: OSError, fallback: str) -> str:
    """Format an OS error as ``"<fallback> <detail>"``."""
    detail = error.strerror or str(error)
    return f"{fallback} {detail}"
