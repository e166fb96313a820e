"""
Dnf backend (Fedora).
"""

from __future__ import annotations

from rice.adapters.packages.base import BackendSession, install_package, refresh_once
from rice.core.models.results import InstallResult


class DnfBackend:
    name = "dnf"

    def __init__(self, session: BackendSession) -> None:
        self.session = session

    def is_installed(self, package: str) -> bool:
        return self.session.run(["rpm", "-q", package], timeout=10).ok

    def installed_version(self, package: str) -> str:
        r = self.session.run(["rpm", "-q", "--qf", "%{VERSION}", package], timeout=10)
        return r.stdout.strip() if r.ok else ""

    def is_available(self, package: str) -> bool:
        # dnf reports unknown packages itself; an extra metadata query costs seconds.
        return True

    def refresh_index(self) -> None:
        argv = ["dnf", "makecache"]
        if not self.session.verbose:
            argv.append("-q")
        refresh_once(self, argv)

    def install_argv(self, package: str) -> list[str]:
        argv = ["dnf", "install", "-y"]
        if not self.session.verbose:
            argv.append("-q")
        return [*argv, package]

    def install(self, package: str, display_name: str | None = None) -> InstallResult:
        return install_package(self, package, display_name)
