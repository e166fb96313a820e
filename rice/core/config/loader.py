"""
Configuration loader — environment flags and the user config file.

Settings are read once at startup into an immutable ``Settings``:

    RICE_YES=1                Skip all prompts
    RICE_VERBOSE=1            Show native package-manager output
    RICE_SKIP_SHELL_CHANGE=1  Don't change the default shell
    GITHUB_TOKEN              Authenticate GitHub API requests
    RICE_HOME                 Home directory used for every rice path

Version pins live in ``~/.config/rice/config.yml``::

    pins:
      lazygit: "0.44.1"
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

# Default config filename (inside the state directory)
USER_CONFIG_FILE = "config.yml"

_TRUTHY = {"1", "true", "yes", "on"}


class ConfigError(Exception):
    """Raised when the user configuration is invalid."""


class UserConfig(BaseModel):
    """Contents of config.yml."""

    pins: dict[str, str] = Field(default_factory=dict)

    @field_validator("pins", mode="before")
    @classmethod
    def _stringify(cls, v: object) -> object:
        # YAML reads ``1.10`` as a float; versions are always strings.
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items()}
        return v


class Settings(BaseModel):
    """Run configuration, fixed for the lifetime of the process."""

    model_config = ConfigDict(frozen=True)

    yes: bool = False
    verbose: bool = False
    skip_shell_change: bool = False
    github_token: str | None = None

    home: Path
    state_dir: Path
    cache_dir: Path
    bin_dir: Path

    pins: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def for_home(cls, home: Path, **overrides: object) -> Settings:
        """Settings with every path derived from ``home``."""
        values: dict[str, object] = {
            "home": home,
            "state_dir": home / ".config" / "rice",
            "cache_dir": home / ".cache" / "rice" / "downloads",
            "bin_dir": home / ".local" / "bin",
        }
        values.update(overrides)
        return cls(**values)

    @property
    def config_path(self) -> Path:
        return self.state_dir / USER_CONFIG_FILE

    @property
    def version_cache_path(self) -> Path:
        return self.state_dir / "version_cache.json"


def _flag(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "").strip().lower() in _TRUTHY


def load_user_config(path: Path) -> UserConfig:
    """Load and validate config.yml.

    Returns:
        UserConfig; empty when the file doesn't exist.

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    if not path.is_file():
        return UserConfig()

    logger.debug("Loading user config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return UserConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        return UserConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e


def load_settings(
    environ: Mapping[str, str] | None = None,
    *,
    verbose: bool = False,
) -> Settings:
    """Build Settings from environment variables and config.yml.

    Args:
        environ: Environment mapping (default: ``os.environ``).
        verbose: Force verbose output (CLI ``--verbose``).
    """
    env = os.environ if environ is None else environ

    home = Path(env.get("RICE_HOME") or env.get("HOME") or Path.home()).expanduser()
    base = Settings.for_home(home)
    user_config = load_user_config(base.config_path)

    settings = Settings.for_home(
        home,
        yes=_flag(env, "RICE_YES"),
        verbose=verbose or _flag(env, "RICE_VERBOSE"),
        skip_shell_change=_flag(env, "RICE_SKIP_SHELL_CHANGE"),
        github_token=env.get("GITHUB_TOKEN") or None,
        pins=user_config.pins,
    )
    if settings.pins:
        logger.info("Version pins: %s", ", ".join(f"{k}={v}" for k, v in settings.pins.items()))
    return settings
