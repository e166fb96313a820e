"""
Apt backend (Debian, Ubuntu).
"""

from __future__ import annotations

from rice.adapters.packages.base import BackendSession, install_package, refresh_once
from rice.core.models.results import InstallResult

_NONINTERACTIVE = {"DEBIAN_FRONTEND": "noninteractive"}


def upstream_version(deb_version: str) -> str:
    """``1:2.39.2-1ubuntu1+b1`` → ``2.39.2``."""
    v = deb_version.strip()
    if ":" in v:
        v = v.split(":", 1)[1]
    return v.split("-", 1)[0].split("+", 1)[0]


class AptBackend:
    name = "apt"

    def __init__(self, session: BackendSession) -> None:
        self.session = session

    def is_installed(self, package: str) -> bool:
        r = self.session.run(["dpkg-query", "-W", "-f=${Status}", package], timeout=10)
        return "install ok installed" in r.stdout

    def installed_version(self, package: str) -> str:
        r = self.session.run(["dpkg-query", "-W", "-f=${Version}", package], timeout=10)
        return upstream_version(r.stdout) if r.ok else ""

    def is_available(self, package: str) -> bool:
        return self.session.run(["apt-cache", "show", package], timeout=30).ok

    def refresh_index(self) -> None:
        argv = ["apt-get", "update"]
        if not self.session.verbose:
            argv.append("-qq")
        refresh_once(self, argv)

    def install_argv(self, package: str) -> list[str]:
        argv = ["apt-get", "install", "-y"]
        if not self.session.verbose:
            argv.append("-qq")
        return [*argv, package]

    def install(self, package: str, display_name: str | None = None) -> InstallResult:
        return install_package(self, package, display_name, env=_NONINTERACTIVE)
