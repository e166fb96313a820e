"""
Install units — the things a phase installs.

Every unit satisfies the ``Unit`` protocol:

    tool                   id used for state records and output
    present(ctx) → bool    fast, offline presence check (compact re-runs)
    satisfied(ctx)         None if work is needed, otherwise the version
                           to show next to "skipped" ("" when unknown)
    install(ctx)           do the work, record the outcome, return an
                           InstallResult; never raises for expected
                           failures

Kinds:
    PackageUnit         OS package via the package backend
    BinaryUnit          GitHub release binary (package on brew)
    GitCloneUnit        shallow git clone
    UpstreamScriptUnit  vendor install script (rustup, bun, oh-my-zsh)
    ConfigUnit          bundled dotfiles; writes no tool record
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from rice.adapters.packages import ensure_alias
from rice.core.models.catalog import DownloadSpec
from rice.core.models.results import InstallResult
from rice.core.services.configs import CONFIG_FILES, ConfigFile, deploy_configs, missing_configs
from rice.core.services.install.binary import install_github_binary
from rice.core.services.install.download import require_https
from rice.core.services.install.errors import InstallError, VersionLookupError
from rice.core.services.install.versions import version_gte

if TYPE_CHECKING:
    from rice.core.engine.context import InstallContext

logger = logging.getLogger(__name__)

SCRIPT_TIMEOUT = 1800
CLONE_TIMEOUT = 300


class Unit(Protocol):
    tool: str

    def present(self, ctx: InstallContext) -> bool: ...

    def satisfied(self, ctx: InstallContext) -> str | None: ...

    def install(self, ctx: InstallContext) -> InstallResult: ...


def _package_for(packages: str | Mapping[str, str], manager: str) -> str | None:
    if isinstance(packages, str):
        return packages
    return packages.get(manager)


# ── Package ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class PackageUnit:
    """An OS package.

    ``package`` is one name for every manager or a per-manager mapping;
    managers missing from the mapping skip the unit. ``alias`` is the
    alternate command name some distributions use (``fdfind``).
    """

    tool: str
    package: str | Mapping[str, str]
    command: str | None = None
    alias: str | None = None

    def _command_present(self, ctx: InstallContext) -> bool:
        if not self.command:
            return False
        if ctx.has_command(self.command):
            return True
        if self.alias and ctx.has_command(self.alias):
            return ensure_alias(self.command, self.alias, bin_dir=ctx.settings.bin_dir, which=ctx.which)
        return False

    def present(self, ctx: InstallContext) -> bool:
        if self._command_present(ctx):
            return True
        package = _package_for(self.package, ctx.env.package_manager)
        if package is None:
            return True
        return ctx.backend.is_installed(package)

    def satisfied(self, ctx: InstallContext) -> str | None:
        if _package_for(self.package, ctx.env.package_manager) is None:
            return ""
        if self._command_present(ctx):
            return ctx.local_version(self.command or self.tool) or ""
        # The backend does its own installed-check and reports the skip.
        return None

    def install(self, ctx: InstallContext) -> InstallResult:
        package = _package_for(self.package, ctx.env.package_manager)
        if package is None:
            return InstallResult.skipped(self.tool)

        result = ctx.backend.install(package, self.tool)
        if result.ok and self.command and self.alias:
            ensure_alias(self.command, self.alias, bin_dir=ctx.settings.bin_dir, which=ctx.which)
        return result


# ── GitHub release binary ───────────────────────────────────────


@dataclass(frozen=True)
class BinaryUnit:
    """A GitHub release binary, or an OS package where one is listed."""

    spec: DownloadSpec
    packages: Mapping[str, str] = field(default_factory=dict)

    @property
    def tool(self) -> str:
        return self.spec.tool

    @property
    def command(self) -> str:
        return self.spec.command_name

    def present(self, ctx: InstallContext) -> bool:
        return ctx.has_command(self.command)

    def satisfied(self, ctx: InstallContext) -> str | None:
        """Installed and at least as new as the version we'd install."""
        if ctx.env.package_manager in self.packages:
            return None
        if not ctx.has_command(self.command):
            return None

        local = ctx.local_version(self.command)
        if not local:
            logger.debug("%s present but version unknown; reinstalling", self.command)
            return None

        try:
            wanted = ctx.resolver.resolve(self.tool, self.spec.repo)
        except VersionLookupError as e:
            # install() resolves again and records the failure.
            logger.debug("Version lookup for %s failed: %s", self.tool, e)
            return None

        if version_gte(local, wanted):
            return local
        logger.info("%s %s is older than %s; upgrading", self.tool, local, wanted)
        return None

    def install(self, ctx: InstallContext) -> InstallResult:
        package = self.packages.get(ctx.env.package_manager)
        if package:
            return ctx.backend.install(package, self.tool)
        return install_github_binary(ctx, self.spec)


# ── Git clone ───────────────────────────────────────────────────


@dataclass(frozen=True)
class GitCloneUnit:
    """Shallow clone of an HTTPS repository into ``dest`` (relative to home)."""

    tool: str
    url: str
    dest: str

    def target(self, ctx: InstallContext) -> Path:
        return ctx.settings.home / self.dest

    def present(self, ctx: InstallContext) -> bool:
        return self.target(ctx).is_dir()

    def satisfied(self, ctx: InstallContext) -> str | None:
        return "" if self.present(ctx) else None

    def install(self, ctx: InstallContext) -> InstallResult:
        ctx.reporter.installing(self.tool)
        try:
            require_https(self.url)
        except InstallError as e:
            ctx.reporter.error(str(e))
            ctx.store.record_tool_failed(self.tool, e.reason)
            return InstallResult.failure(self.tool, e.reason, method="git")

        dest = self.target(ctx)
        dest.parent.mkdir(parents=True, exist_ok=True)
        r = ctx.run(["git", "clone", "--depth=1", self.url, str(dest)], timeout=CLONE_TIMEOUT)
        if not r.ok:
            logger.info("git clone %s failed: %s", self.url, r.stderr.strip())
            ctx.reporter.error(f"Failed to clone {self.tool}")
            ctx.store.record_tool_failed(self.tool, "git clone failed")
            return InstallResult.failure(self.tool, "git clone failed", method="git")

        head = ctx.run(["git", "-C", str(dest), "rev-parse", "--short", "HEAD"], timeout=10, capture=True)
        commit = head.stdout.strip() if head.ok else ""

        ctx.reporter.ok(self.tool, commit or None)
        ctx.store.record_tool_success(self.tool, "", "git", commit=commit)
        return InstallResult.success(self.tool, commit, "git")


# ── Upstream installer script ───────────────────────────────────


@dataclass(frozen=True)
class UpstreamScriptUnit:
    """A vendor install script fetched over HTTPS and run locally.

    Present when ``command`` is on the search path or ``marker``
    (relative to home) exists.
    """

    tool: str
    url: str
    interpreter: tuple[str, ...] = ("sh",)
    args: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    command: str | None = None
    marker: str | None = None

    def present(self, ctx: InstallContext) -> bool:
        if self.command and ctx.has_command(self.command):
            return True
        return bool(self.marker) and (ctx.settings.home / self.marker).exists()

    def satisfied(self, ctx: InstallContext) -> str | None:
        if not self.present(ctx):
            return None
        if self.command and ctx.has_command(self.command):
            return ctx.local_version(self.command) or ""
        return ""

    def _fail(self, ctx: InstallContext, reason: str, message: str) -> InstallResult:
        ctx.reporter.error(message)
        ctx.store.record_tool_failed(self.tool, reason)
        return InstallResult.failure(self.tool, reason, method="upstream")

    def install(self, ctx: InstallContext) -> InstallResult:
        ctx.reporter.installing(self.tool)
        try:
            script = ctx.downloader.fetch(self.url)
        except InstallError as e:
            return self._fail(ctx, e.reason, f"Failed to download {self.tool} installer: {e}")

        fd, script_name = tempfile.mkstemp(prefix=f"rice-{self.tool}-", suffix=".sh")
        script_path = Path(script_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(script)
            r = ctx.run(
                [*self.interpreter, str(script_path), *self.args],
                env=dict(self.env),
                timeout=SCRIPT_TIMEOUT,
            )
        finally:
            script_path.unlink(missing_ok=True)

        if not r.ok:
            logger.info("%s installer exited %d: %s", self.tool, r.returncode, r.stderr.strip())
            return self._fail(ctx, "installer failed", f"Failed to install {self.tool}")

        version = ctx.local_version(self.command) if self.command else None
        ctx.reporter.ok(self.tool, version)
        ctx.store.record_tool_success(self.tool, version or "", "upstream")
        return InstallResult.success(self.tool, version or "", "upstream")


# ── Config files ────────────────────────────────────────────────


@dataclass(frozen=True)
class ConfigUnit:
    """Deploy bundled config files. Always runs; never recorded."""

    tool: str = "configs"
    files: tuple[ConfigFile, ...] = CONFIG_FILES
    always_run: bool = True

    def present(self, ctx: InstallContext) -> bool:
        return not missing_configs(ctx.settings, self.files)

    def satisfied(self, ctx: InstallContext) -> str | None:
        return None

    def install(self, ctx: InstallContext) -> InstallResult:
        try:
            report = deploy_configs(ctx.settings, self.files)
        except OSError as e:
            ctx.reporter.error(f"Failed to deploy configs: {e}")
            return InstallResult.failure(self.tool, "config deploy failed")

        if not report.changed:
            ctx.reporter.detail(f"{len(report.unchanged)} config file(s) up to date")
            return InstallResult.success(self.tool)

        for name in report.deployed:
            ctx.reporter.ok(name, None, "deployed")
        for name in report.updated:
            ctx.reporter.ok(name, None, "updated, backup saved")
        return InstallResult.success(self.tool)
