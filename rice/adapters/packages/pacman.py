"""
Pacman backend (Arch).
"""

from __future__ import annotations

from rice.adapters.packages.base import BackendSession, install_package, refresh_once
from rice.core.models.results import InstallResult


class PacmanBackend:
    name = "pacman"

    def __init__(self, session: BackendSession) -> None:
        self.session = session

    def is_installed(self, package: str) -> bool:
        return self.session.run(["pacman", "-Qi", package], timeout=10).ok

    def installed_version(self, package: str) -> str:
        # "ripgrep 14.1.0-1" → "14.1.0"
        r = self.session.run(["pacman", "-Q", package], timeout=10)
        parts = r.stdout.split()
        if not r.ok or len(parts) < 2:
            return ""
        version = parts[1].rsplit("-", 1)[0]
        return version.split(":", 1)[-1]

    def is_available(self, package: str) -> bool:
        return True

    def refresh_index(self) -> None:
        refresh_once(self, ["pacman", "-Sy", "--noconfirm"])

    def install_argv(self, package: str) -> list[str]:
        argv = ["pacman", "-S", "--noconfirm", "--needed"]
        if not self.session.verbose:
            argv.append("-q")
        return [*argv, package]

    def install(self, package: str, display_name: str | None = None) -> InstallResult:
        return install_package(self, package, display_name)
