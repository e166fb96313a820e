"""
Environment — the detected machine, as one immutable value.

Built once by ``rice.core.services.detection.detect_environment`` and passed
explicitly to every backend, unit and the scheduler.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

PackageManager = Literal["apt", "dnf", "pacman", "brew"]


class Environment(BaseModel):
    """Detected OS, architecture and package manager."""

    model_config = ConfigDict(frozen=True)

    os: str                          # debian, ubuntu, fedora, arch, macos
    os_version: str = "unknown"
    arch: str                        # x86_64, aarch64
    arch_alt: str                    # amd64, arm64
    arch_go: str                     # amd64, arm64
    package_manager: PackageManager
    is_root: bool = False
    sudo: tuple[str, ...] = Field(default_factory=tuple)

    def arch_placeholders(self) -> dict[str, str]:
        """Values for the ``{ARCH}``-style placeholders in artifact templates."""
        return {
            "ARCH": self.arch,
            "ARCH_ALT": self.arch_alt,
            "ARCH_GO": self.arch_go,
        }
