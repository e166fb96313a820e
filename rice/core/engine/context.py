"""
Install context — everything a unit needs, assembled once per run.

The context is built by ``build_context`` in the CLI entry point (or by
a test fixture with fakes) and passed explicitly to every unit:

    - env        detected machine (immutable)
    - settings   run configuration (immutable)
    - store      state store
    - reporter   user-facing output
    - backend    package backend for this machine
    - downloader, resolver, checksums   binary pipeline collaborators
    - runner     subprocess runner

``which`` and ``run`` see the user-local bin directories (``~/.local/bin``,
``~/.cargo/bin``, ...) even before the user's shell profile adds them,
so tools installed earlier in the run are found later in the run.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from rice.adapters.packages import BackendSession, PackageBackend, backend_for
from rice.adapters.shell.command import CmdResult, CommandRunner, run_cmd
from rice.core.config.loader import Settings
from rice.core.models.environment import Environment
from rice.core.observability.reporter import Reporter
from rice.core.persistence.state_store import StateStore
from rice.core.services.install.checksums import ChecksumProvider
from rice.core.services.install.download import Downloader
from rice.core.services.install.versions import VersionResolver, get_installed_version

logger = logging.getLogger(__name__)

# Relative to $HOME; prepended to PATH in this order.
USER_BIN_DIRS = (
    ".local/bin",
    ".cargo/bin",
    "go/bin",
    ".bun/bin",
)
SYSTEM_BIN_DIRS = ("/usr/local/go/bin",)


@dataclass
class InstallContext:
    env: Environment
    settings: Settings
    store: StateStore
    reporter: Reporter
    backend: PackageBackend
    downloader: Downloader
    resolver: VersionResolver
    checksums: ChecksumProvider
    runner: CommandRunner = run_cmd
    extra_path: list[str] = field(default_factory=list)
    base_path: str | None = None    # default: $PATH

    def __post_init__(self) -> None:
        if not self.extra_path:
            home = self.settings.home
            self.extra_path = [str(home / d) for d in USER_BIN_DIRS] + list(SYSTEM_BIN_DIRS)

    @property
    def search_path(self) -> str:
        base = os.environ.get("PATH", "") if self.base_path is None else self.base_path
        return os.pathsep.join(p for p in [*self.extra_path, base] if p)

    def extend_path(self, *dirs: str) -> None:
        """Put more directories in front of the search path."""
        for d in dirs:
            if d not in self.extra_path:
                self.extra_path.insert(0, d)

    def which(self, command: str) -> str | None:
        return shutil.which(command, path=self.search_path)

    def has_command(self, command: str) -> bool:
        return self.which(command) is not None

    def run(
        self,
        argv: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        timeout: int = 600,
        capture: bool | None = None,
    ) -> CmdResult:
        """Run a command with the extended search path.

        Output is captured unless verbose mode is on.
        """
        full_env = {"PATH": self.search_path, **(env or {})}
        if capture is None:
            capture = not self.settings.verbose
        return self.runner(argv, env=full_env, cwd=cwd, timeout=timeout, capture=capture)

    def local_version(self, command: str) -> str | None:
        """Version of an installed command, parsed from its version output."""
        return get_installed_version(command, runner=self.runner, env={"PATH": self.search_path})


def build_context(
    env: Environment,
    settings: Settings,
    reporter: Reporter,
    *,
    runner: CommandRunner = run_cmd,
    downloader: Downloader | None = None,
) -> InstallContext:
    """Wire up the collaborators for one run."""
    store = StateStore(settings.state_dir)
    session = BackendSession(
        env=env, store=store, reporter=reporter, runner=runner, verbose=settings.verbose,
    )
    downloader = downloader or Downloader(token=settings.github_token)
    resolver = VersionResolver(
        downloader, pins=settings.pins, cache_path=settings.version_cache_path,
    )
    return InstallContext(
        env=env,
        settings=settings,
        store=store,
        reporter=reporter,
        backend=backend_for(session),
        downloader=downloader,
        resolver=resolver,
        checksums=ChecksumProvider(downloader),
        runner=runner,
    )
