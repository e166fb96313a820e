"""
Package backend contract — one interface over apt, dnf, pacman and brew.

Every backend satisfies ``PackageBackend``. The shared install flow
(skip if present, refresh the index once, install quietly, record the
outcome) lives in ``install_package``; a backend only supplies its
native commands.

A backend is created once per run for the detected package manager
and holds a ``BackendSession``: the environment, the state store, the
reporter, the command runner, and the "index already refreshed" flag.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from rice.adapters.shell.command import CmdResult, CommandRunner, run_cmd
from rice.core.models.environment import Environment
from rice.core.models.results import InstallResult
from rice.core.observability.reporter import Reporter
from rice.core.persistence.state_store import StateStore

logger = logging.getLogger(__name__)

# Index refreshes and installs are bounded; a hung mirror fails the unit.
REFRESH_TIMEOUT = 300
INSTALL_TIMEOUT = 1800


@dataclass
class BackendSession:
    """Per-run collaborators shared by a backend's operations."""

    env: Environment
    store: StateStore
    reporter: Reporter
    runner: CommandRunner = run_cmd
    verbose: bool = False
    refreshed: bool = field(default=False, init=False)

    def run(
        self,
        argv: Sequence[str],
        *,
        sudo: bool = False,
        env: Mapping[str, str] | None = None,
        timeout: int = 60,
        stream: bool = False,
    ) -> CmdResult:
        """Run a native command, with sudo when needed.

        ``stream`` commands (installs, refreshes) print to the terminal
        in verbose mode; queries are always captured.
        """
        full = [*self.env.sudo, *argv] if sudo else list(argv)
        capture = not (stream and self.verbose)
        return self.runner(full, env=dict(env or {}), timeout=timeout, capture=capture)


class PackageBackend(Protocol):
    """The install / is-installed contract."""

    name: str
    session: BackendSession

    def is_installed(self, package: str) -> bool: ...

    def installed_version(self, package: str) -> str: ...

    def is_available(self, package: str) -> bool: ...

    def refresh_index(self) -> None: ...

    def install_argv(self, package: str) -> list[str]: ...

    def install(self, package: str, display_name: str | None = None) -> InstallResult: ...


def refresh_once(backend: PackageBackend, argv: Sequence[str], *, sudo: bool = True) -> None:
    """Refresh the package index, at most once per session."""
    session = backend.session
    if session.refreshed:
        return
    session.reporter.detail(f"Updating {backend.name} package index...")
    result = session.run(argv, sudo=sudo, timeout=REFRESH_TIMEOUT, stream=True)
    if not result.ok:
        # A stale index is not fatal; the install itself will tell.
        logger.warning("%s index refresh failed: %s", backend.name, result.stderr.strip())
    session.refreshed = True


def install_package(
    backend: PackageBackend,
    package: str,
    display_name: str | None = None,
    *,
    sudo: bool = True,
    env: Mapping[str, str] | None = None,
) -> InstallResult:
    """Shared install flow for every backend.

    Already-installed packages are reported as skipped and leave the
    state untouched. Successful installs and failures are recorded
    under ``display_name``.
    """
    session = backend.session
    display = display_name or package

    if backend.is_installed(package):
        version = backend.installed_version(package)
        session.reporter.ok(display, version, "skipped")
        return InstallResult.skipped(display, version, method=backend.name)

    backend.refresh_index()

    if not backend.is_available(package):
        session.reporter.detail(f"Package {package} not available in {backend.name}")
        session.store.record_tool_failed(display, "package not available")
        return InstallResult.failure(display, "package not available", method=backend.name)

    session.reporter.installing(display)
    result = session.run(
        backend.install_argv(package), sudo=sudo, env=env, timeout=INSTALL_TIMEOUT, stream=True,
    )

    if result.ok:
        version = backend.installed_version(package)
        session.reporter.ok(display, version)
        session.store.record_tool_success(display, version, backend.name)
        return InstallResult.success(display, version, backend.name)

    error = f"{backend.name} install failed"
    logger.info("%s: %s", error, result.stderr.strip())
    session.reporter.error(f"Failed to install {display} via {backend.name}")
    session.store.record_tool_failed(display, error)
    return InstallResult.failure(display, error, method=backend.name)
