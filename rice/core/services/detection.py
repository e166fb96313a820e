"""
Environment detection — OS, architecture, privileges, package manager.

Runs once before phase 0 and produces the immutable ``Environment``.
Anything rice can't work with raises ``UnsupportedEnvironmentError``
(exit code 1, nothing installed).
"""

from __future__ import annotations

import logging
import os
import platform
import shutil
from collections.abc import Callable
from pathlib import Path

from rice.core.models.environment import Environment

logger = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")

# uname -m → (ARCH, ARCH_ALT, ARCH_GO)
_ARCH_MAP: dict[str, tuple[str, str, str]] = {
    "x86_64": ("x86_64", "amd64", "amd64"),
    "amd64": ("x86_64", "amd64", "amd64"),
    "aarch64": ("aarch64", "arm64", "arm64"),
    "arm64": ("aarch64", "arm64", "arm64"),
}

# First match wins.
_PACKAGE_MANAGERS = (
    ("apt-get", "apt"),
    ("dnf", "dnf"),
    ("pacman", "pacman"),
    ("brew", "brew"),
)

SUPPORTED_OS = frozenset({"debian", "ubuntu"})
PREVIEW_OS = frozenset({"fedora", "arch", "macos"})


class UnsupportedEnvironmentError(Exception):
    """The machine doesn't meet rice's preconditions."""


def parse_os_release(text: str) -> dict[str, str]:
    """KEY=value pairs from /etc/os-release content."""
    info: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        info[key] = value.strip().strip('"').strip("'")
    return info


def detect_os(system: str | None = None, os_release: Path = OS_RELEASE) -> tuple[str, str]:
    """Return ``(os, version)``; os is ``unknown`` when unrecognized."""
    system = system or platform.system()

    if system == "Darwin":
        return "macos", platform.mac_ver()[0] or "unknown"

    if not os_release.is_file():
        return "unknown", "unknown"

    try:
        info = parse_os_release(os_release.read_text(encoding="utf-8"))
    except OSError as e:
        logger.warning("Cannot read %s: %s", os_release, e)
        return "unknown", "unknown"

    os_id = info.get("ID", "")
    version = info.get("VERSION_ID", "unknown")
    if os_id in ("debian", "ubuntu", "fedora"):
        return os_id, version
    if os_id in ("arch", "archlinux"):
        return "arch", "rolling"
    if "debian" in info.get("ID_LIKE", "").split():
        return "debian", version
    return "unknown", "unknown"


def detect_arch(machine: str | None = None) -> tuple[str, str, str]:
    machine = machine or platform.machine()
    try:
        return _ARCH_MAP[machine]
    except KeyError:
        raise UnsupportedEnvironmentError(
            f"Unsupported architecture: {machine} (rice supports x86_64/amd64, aarch64/arm64)"
        ) from None


def detect_package_manager(which: Callable[[str], str | None] = shutil.which) -> str | None:
    for binary, name in _PACKAGE_MANAGERS:
        if which(binary):
            return name
    return None


def detect_environment(
    *,
    system: str | None = None,
    machine: str | None = None,
    euid: int | None = None,
    os_release: Path = OS_RELEASE,
    which: Callable[[str], str | None] = shutil.which,
) -> Environment:
    """Detect everything and check it is supported.

    Raises:
        UnsupportedEnvironmentError: Unknown OS or architecture, no
            package manager, or neither root nor sudo.
    """
    os_name, os_version = detect_os(system, os_release)
    if os_name == "unknown":
        raise UnsupportedEnvironmentError(
            "Unsupported OS (rice supports Debian and Ubuntu; Fedora, Arch and macOS are in preview)"
        )
    if os_name in PREVIEW_OS:
        logger.warning("OS '%s' is supported but not fully tested", os_name)

    arch, arch_alt, arch_go = detect_arch(machine)

    manager = detect_package_manager(which)
    if manager is None:
        raise UnsupportedEnvironmentError("No supported package manager found (apt, dnf, pacman, brew)")

    is_root = (os.geteuid() if euid is None else euid) == 0
    sudo: tuple[str, ...] = ()
    if not is_root:
        if not which("sudo"):
            raise UnsupportedEnvironmentError("Not running as root and sudo is not available")
        sudo = ("sudo",)

    env = Environment(
        os=os_name,
        os_version=os_version,
        arch=arch,
        arch_alt=arch_alt,
        arch_go=arch_go,
        package_manager=manager,
        is_root=is_root,
        sudo=sudo,
    )
    logger.info(
        "OS: %s %s, arch: %s (%s), package manager: %s, root: %s",
        env.os, env.os_version, env.arch, env.arch_alt, env.package_manager, env.is_root,
    )
    return env
