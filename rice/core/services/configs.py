"""
Config deployment — copy bundled dotfile templates into place.

Templates ship inside the ``rice.configs`` package. ``{{HOME}}`` is
replaced with the user's home directory. An existing file that differs
from the rendered template is copied to ``<state_dir>/backups/`` before
it is overwritten; identical files are left alone.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from datetime import UTC, datetime
from importlib import resources
from pathlib import Path

from rice.core.config.loader import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigFile:
    """One bundled template and where it goes."""

    template: str                   # file name inside rice/configs
    target: str                     # destination, relative to home
    label: str = ""

    @property
    def display(self) -> str:
        return self.label or self.target


CONFIG_FILES: tuple[ConfigFile, ...] = (
    ConfigFile("zshrc", ".config/rice/zshrc", "rice zshrc"),
    ConfigFile("zshrc.loader", ".zshrc", "~/.zshrc"),
    ConfigFile("tmux.conf", ".tmux.conf", "~/.tmux.conf"),
    ConfigFile("helix.toml", ".config/helix/config.toml", "helix config"),
    ConfigFile("lfrc", ".config/lf/lfrc", "lf config"),
)


@dataclass
class DeployReport:
    deployed: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    backups: list[Path] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.deployed or self.updated)


def render(template: str, home: Path) -> str:
    """Read a bundled template and substitute ``{{HOME}}``."""
    text = resources.files("rice.configs").joinpath(template).read_text(encoding="utf-8")
    return text.replace("{{HOME}}", str(home))


def backup_file(path: Path, backups_dir: Path) -> Path:
    """Copy ``path`` into ``backups_dir`` under a timestamped name."""
    backups_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S")
    dest = backups_dir / f"{path.name.lstrip('.')}.{stamp}"
    shutil.copy2(path, dest)
    logger.info("Backed up %s → %s", path, dest)
    return dest


def deploy_configs(
    settings: Settings,
    files: tuple[ConfigFile, ...] = CONFIG_FILES,
) -> DeployReport:
    """Render and write every config file.

    Raises:
        OSError: If a file can't be written.
    """
    report = DeployReport()
    backups_dir = settings.state_dir / "backups"

    for cfg in files:
        dest = settings.home / cfg.target
        content = render(cfg.template, settings.home)

        if dest.is_file():
            if dest.read_text(encoding="utf-8", errors="replace") == content:
                report.unchanged.append(cfg.display)
                continue
            report.backups.append(backup_file(dest, backups_dir))
            report.updated.append(cfg.display)
        else:
            report.deployed.append(cfg.display)

        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(content, encoding="utf-8")
        logger.debug("Wrote %s", dest)

    return report


def missing_configs(settings: Settings, files: tuple[ConfigFile, ...] = CONFIG_FILES) -> list[str]:
    """Config targets that don't exist."""
    return [cfg.display for cfg in files if not (settings.home / cfg.target).is_file()]
