"""Thin wrapper around the ``git`` executable."""
from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Sequence

from skillsupply.config import DEFAULT_GIT_TIMEOUT
from skillsupply.errors import GitCommandError
from skillsupply.logging import get_logger
from skillsupply.manifest.models import GitRef

logger = get_logger("git")

DEEPEN_DEPTH = 50


class GitRunner:
    """Runs git commands for clone, sparse checkout and ref checkout.

    Every method raises :class:`GitCommandError` on failure. Tests swap in
    a subclass that overrides :meth:`run`.
    """

    def __init__(
        self,
        binary: str = "git",
        timeout: float | None = DEFAULT_GIT_TIMEOUT,
    ) -> None:
        self.binary = binary
        self.timeout = timeout
        self._available: bool | None = None

    def run(self, args: Sequence[str], cwd: Path | None = None) -> str:
        """Run ``git <args>`` and return stdout."""
        argv = [self.binary, *args]
        logger.debug("Running %s", " ".join(argv))
        try:
            result = subprocess.run(
                argv,
                cwd=cwd,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise GitCommandError(
                f"{self.binary} is not installed or not on PATH.", command=argv,
            ) from e
        except subprocess.TimeoutExpired as e:
            raise GitCommandError(
                f"git {' '.join(args)} timed out after {self.timeout:g}s.", command=argv,
            ) from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise GitCommandError(
                f"git {' '.join(args)} failed. {stderr}".strip(),
                command=argv,
                returncode=e.returncode,
                stderr=stderr,
            ) from e
        return result.stdout

    def ensure_available(self) -> None:
        """Check that git can be executed (cached after the first success)."""
        if self._available:
            return
        self.run(["--version"])
        self._available = True

    def clone(self, url: str, destination: Path, sparse: bool = False) -> None:
        args = ["clone", "--depth", "1"]
        if sparse:
            args += ["--filter=blob:none", "--sparse"]
        args += [url, str(destination)]
        self.run(args)

    def set_sparse_paths(self, repo_dir: Path, paths: Sequence[str]) -> None:
        self.run(["-C", str(repo_dir), "sparse-checkout", "init", "--cone"])
        self.run(["-C", str(repo_dir), "sparse-checkout", "set", *paths])

    def checkout(self, repo_dir: Path, ref: GitRef | None) -> None:
        """Move the clone at ``repo_dir`` to ``ref``; ``None`` keeps the default branch."""
        if ref is None:
            return
        if ref.type == "tag":
            self._fetch_or_deepen(repo_dir, ["tag", ref.value])
            self.run(["-C", str(repo_dir), "checkout", "--detach", f"tags/{ref.value}"])
        elif ref.type == "branch":
            # Shallow clones are single-branch; the explicit refspec creates origin/<branch>
            self.run([
                "-C", str(repo_dir), "fetch", "--depth", "1", "origin",
                f"+refs/heads/{ref.value}:refs/remotes/origin/{ref.value}",
            ])
            self.run(["-C", str(repo_dir), "checkout", "-B", ref.value, f"origin/{ref.value}"])
            self.run(["-C", str(repo_dir), "reset", "--hard", f"origin/{ref.value}"])
        else:
            self._fetch_or_deepen(repo_dir, [ref.value])
            try:
                self.run(["-C", str(repo_dir), "checkout", "--detach", ref.value])
            except GitCommandError:
                self._deepen(repo_dir)
                self.run(["-C", str(repo_dir), "checkout", "--detach", ref.value])

    def _fetch_or_deepen(self, repo_dir: Path, refspec: list[str]) -> None:
        try:
            self.run(["-C", str(repo_dir), "fetch", "--depth", "1", "origin", *refspec])
        except GitCommandError as e:
            logger.debug("Shallow fetch failed (%s); deepening", e.message)
            self._deepen(repo_dir)

    def _deepen(self, repo_dir: Path) -> None:
        self.run(["-C", str(repo_dir), "fetch", "--depth", str(DEEPEN_DEPTH), "--tags", "origin"])
