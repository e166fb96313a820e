"""
Homebrew backend (macOS). Never runs under sudo.
"""

from __future__ import annotations

from rice.adapters.packages.base import BackendSession, install_package, refresh_once
from rice.core.models.results import InstallResult

# The index was refreshed once already; don't let every install do it again.
_NO_AUTO_UPDATE = {"HOMEBREW_NO_AUTO_UPDATE": "1"}


class BrewBackend:
    name = "brew"

    def __init__(self, session: BackendSession) -> None:
        self.session = session

    def is_installed(self, package: str) -> bool:
        r = self.session.run(["brew", "list", "--versions", package], timeout=30)
        return r.ok and bool(r.stdout.strip())

    def installed_version(self, package: str) -> str:
        # "fzf 0.54.0" (newest last when several kegs are installed)
        r = self.session.run(["brew", "list", "--versions", package], timeout=30)
        parts = r.stdout.split()
        return parts[-1] if r.ok and len(parts) >= 2 else ""

    def is_available(self, package: str) -> bool:
        return True

    def refresh_index(self) -> None:
        argv = ["brew", "update"]
        if not self.session.verbose:
            argv.append("--quiet")
        refresh_once(self, argv, sudo=False)

    def install_argv(self, package: str) -> list[str]:
        argv = ["brew", "install"]
        if not self.session.verbose:
            argv.append("-q")
        return [*argv, package]

    def install(self, package: str, display_name: str | None = None) -> InstallResult:
        return install_package(self, package, display_name, sudo=False, env=_NO_AUTO_UPDATE)
