"""
Configuration for skills-supply.

Settings come from three layers, later ones winning:

1. Dataclass defaults.
2. ``<global_dir>/config.yaml`` when it exists.
3. ``SK_*`` environment variables (a ``.env`` file in the working
   directory is loaded first).

Example YAML:
    git_timeout_seconds: 120
    extract_mode: lenient
    log_level: INFO
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv

ExtractMode = Literal["strict", "lenient"]

MANIFEST_FILENAME = "package.toml"
CONFIG_FILENAME = "config.yaml"
GLOBAL_DIRNAME = ".sk"

DEFAULT_GIT_TIMEOUT = 300.0
DEFAULT_HTTP_TIMEOUT = 10.0


def get_extract_mode(default: ExtractMode = "strict") -> ExtractMode:
    """Get extraction mode from ``SK_EXTRACT_MODE``, falling back to ``default``."""
    val = os.environ.get("SK_EXTRACT_MODE", default).lower()
    if val in ("strict", "lenient"):
        return val  # type: ignore[return-value]
    return default


def get_git_timeout(default: float | None = DEFAULT_GIT_TIMEOUT) -> float | None:
    """Get the per-invocation git timeout from ``SK_GIT_TIMEOUT``.

    ``0`` or ``none`` disables the timeout.
    """
    raw = os.environ.get("SK_GIT_TIMEOUT")
    if raw is None:
        return default
    if raw.strip().lower() in ("0", "none", ""):
        return None
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class SkConfig:
    """Runtime settings for discovery, fetch and extraction."""

    home_dir: Path = field(default_factory=Path.home)
    global_dir: Path | None = None  # Defaults to <home_dir>/.sk
    git_binary: str = "git"
    git_timeout_seconds: float | None = DEFAULT_GIT_TIMEOUT
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT
    extract_mode: ExtractMode = "strict"
    temp_dir: Path | None = None  # None = system temp directory
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        self.home_dir = Path(self.home_dir).expanduser()
        if self.global_dir is not None:
            self.global_dir = Path(self.global_dir).expanduser()
        if self.extract_mode not in ("strict", "lenient"):
            self.extract_mode = "strict"

    @property
    def global_root(self) -> Path:
        """The global directory, ``<home_dir>/.sk`` unless overridden."""
        if self.global_dir is not None:
            return self.global_dir
        return self.home_dir / GLOBAL_DIRNAME

    @property
    def global_manifest_path(self) -> Path:
        """Location of the global manifest."""
        return self.global_root / MANIFEST_FILENAME

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SkConfig:
        """Create config from a dictionary."""
        defaults = cls()
        home_dir = Path(data["home_dir"]) if data.get("home_dir") else defaults.home_dir
        timeout = data.get("git_timeout_seconds", DEFAULT_GIT_TIMEOUT)
        return cls(
            home_dir=home_dir,
            global_dir=Path(data["global_dir"]) if data.get("global_dir") else None,
            git_binary=data.get("git_binary", "git"),
            git_timeout_seconds=float(timeout) if timeout else None,
            http_timeout_seconds=float(data.get("http_timeout_seconds", DEFAULT_HTTP_TIMEOUT)),
            extract_mode=data.get("extract_mode", "strict"),
            temp_dir=Path(data["temp_dir"]) if data.get("temp_dir") else None,
            log_level=data.get("log_level", "WARNING"),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> SkConfig:
        """Load config from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_yaml_string(cls, content: str) -> SkConfig:
        """Load config from a YAML string."""
        data = yaml.safe_load(content)
        return cls.from_dict(data or {})

    @classmethod
    def load(cls, env_file: Path | None = None) -> SkConfig:
        """Build the effective config from file and environment."""
        load_dotenv(env_file)

        data: dict[str, Any] = {}
        if os.environ.get("SK_HOME"):
            data["home_dir"] = os.environ["SK_HOME"]
        if os.environ.get("SK_GLOBAL_DIR"):
            data["global_dir"] = os.environ["SK_GLOBAL_DIR"]

        config_path = cls.from_dict(data).global_root / CONFIG_FILENAME
        if config_path.is_file():
            with open(config_path) as f:
                file_data = yaml.safe_load(f) or {}
            data = {**file_data, **data}

        config = cls.from_dict(data)
        config.git_binary = os.environ.get("SK_GIT", config.git_binary)
        config.git_timeout_seconds = get_git_timeout(config.git_timeout_seconds)
        config.extract_mode = get_extract_mode(config.extract_mode)
        config.log_level = os.environ.get("SK_LOG_LEVEL", config.log_level)
        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary."""
        return {
            "home_dir": str(self.home_dir),
            "global_dir": str(self.global_dir) if self.global_dir else None,
            "git_binary": self.git_binary,
            "git_timeout_seconds": self.git_timeout_seconds,
            "http_timeout_seconds": self.http_timeout_seconds,
            "extract_mode": self.extract_mode,
            "temp_dir": str(self.temp_dir) if self.temp_dir else None,
            "log_level": self.log_level,
        }
