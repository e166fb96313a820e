"""Package backends — apt, dnf, pacman, brew behind one contract.

``backend_for`` picks the backend for the detected package manager;
``ensure_alias`` papers over distributions that rename a command.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from pathlib import Path

from rice.adapters.packages.apt import AptBackend
from rice.adapters.packages.base import BackendSession, PackageBackend, install_package
from rice.adapters.packages.brew import BrewBackend
from rice.adapters.packages.dnf import DnfBackend
from rice.adapters.packages.pacman import PacmanBackend

logger = logging.getLogger(__name__)

BACKENDS: dict[str, Callable[[BackendSession], PackageBackend]] = {
    "apt": AptBackend,
    "dnf": DnfBackend,
    "pacman": PacmanBackend,
    "brew": BrewBackend,
}


def backend_for(session: BackendSession) -> PackageBackend:
    """The backend for ``session.env.package_manager``."""
    return BACKENDS[session.env.package_manager](session)


def ensure_alias(
    preferred: str,
    alternate: str,
    *,
    bin_dir: Path,
    which: Callable[[str], str | None] = shutil.which,
) -> bool:
    """Make ``preferred`` resolve when only ``alternate`` is installed.

    Debian ships ``fd`` as ``fdfind`` and ``bat`` as ``batcat``; this
    symlinks ``bin_dir/preferred`` to the alternate binary.

    Returns:
        True if ``preferred`` exists afterwards.
    """
    if which(preferred):
        return True

    alt_path = which(alternate)
    if not alt_path:
        return False

    bin_dir.mkdir(parents=True, exist_ok=True)
    link = bin_dir / preferred
    try:
        if link.is_symlink() or link.exists():
            link.unlink()
        link.symlink_to(alt_path)
    except OSError as e:
        logger.warning("Cannot create %s -> %s: %s", link, alt_path, e)
        return False

    logger.info("Created symlink: %s -> %s", preferred, alt_path)
    return True


__all__ = [
    "BACKENDS",
    "AptBackend",
    "BackendSession",
    "BrewBackend",
    "DnfBackend",
    "PackageBackend",
    "PacmanBackend",
    "backend_for",
    "ensure_alias",
    "install_package",
]
