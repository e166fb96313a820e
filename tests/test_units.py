"""
Tests for install units and post-phase hooks.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from rice.adapters.shell.command import CmdResult
from rice.core.config.loader import Settings
from rice.core.data.catalog import LAZYGIT
from rice.core.services.configs import CONFIG_FILES
from rice.core.services.install.units import (
    BinaryUnit,
    ConfigUnit,
    GitCloneUnit,
    PackageUnit,
    UpstreamScriptUnit,
)
from rice.core.services.shell import change_default_shell, ensure_runtime_paths
from tests.helpers import make_executable, make_env

LAZYGIT_API = "https://api.github.com/repos/jesseduffield/lazygit/releases/latest"


# ── PackageUnit ─────────────────────────────────────────────────


class TestPackageUnit:
    def test_satisfied_by_command(self, ctx, runner, settings):
        make_executable(settings.bin_dir, "jq")
        runner.on(["jq", "--version"], stdout="jq-1.7.1\n")
        assert PackageUnit("jq", "jq", command="jq").satisfied(ctx) == "1.7.1"

    def test_satisfied_unknown_version(self, ctx, settings):
        make_executable(settings.bin_dir, "tree")
        assert PackageUnit("tree", "tree", command="tree").satisfied(ctx) == ""

    def test_not_satisfied_defers_to_backend(self, ctx):
        assert PackageUnit("jq", "jq", command="jq").satisfied(ctx) is None

    def test_alias_links_preferred_name(self, ctx, settings, tmp_path: Path):
        system_bin = tmp_path / "usr-bin"
        make_executable(system_bin, "fdfind")
        ctx.extend_path(str(system_bin))

        unit = PackageUnit("fd", "fd-find", command="fd", alias="fdfind")
        assert unit.satisfied(ctx) == ""
        assert (settings.bin_dir / "fd").is_symlink()
        assert ctx.has_command("fd")

    def test_manager_without_package_skips(self, make_ctx, runner):
        ctx = make_ctx("brew")
        unit = PackageUnit("build-tools", {"apt": "build-essential", "dnf": "gcc"})
        assert unit.satisfied(ctx) == ""
        assert unit.present(ctx)
        assert unit.install(ctx).status == "skipped"
        assert runner.calls == []

    def test_per_manager_name(self, make_ctx, runner):
        runner.on(["rpm"], code=1)
        ctx = make_ctx("dnf")
        unit = PackageUnit("dig", {"apt": "dnsutils", "dnf": "bind-utils"}, command="dig")
        unit.install(ctx)
        assert ["sudo", "dnf", "install", "-y", "-q", "bind-utils"] in runner.calls

    def test_install_records_under_tool_name(self, ctx, runner, store):
        runner.on(["dpkg-query", "-W", "-f=${Status}"], code=1)
        runner.on(["apt-cache", "show"], code=0)
        unit = PackageUnit("ripgrep", "ripgrep", command="rg")
        assert unit.install(ctx).ok
        assert store.load().tools["ripgrep"].method == "apt"

    def test_present_uses_backend(self, ctx, runner):
        runner.on(["dpkg-query", "-W", "-f=${Status}", "curl"], stdout="install ok installed")
        assert PackageUnit("curl", "curl").present(ctx)


# ── BinaryUnit ──────────────────────────────────────────────────


class TestBinaryUnit:
    def test_properties(self):
        unit = BinaryUnit(LAZYGIT)
        assert unit.tool == "lazygit"
        assert unit.command == "lazygit"

    def test_missing_command(self, ctx):
        assert BinaryUnit(LAZYGIT).satisfied(ctx) is None

    def test_current_version_satisfies(self, ctx, runner, downloader, settings):
        make_executable(settings.bin_dir, "lazygit")
        runner.on(["lazygit", "--version"], stdout="commit=x, version=0.44.1, os=linux")
        downloader.json_data[LAZYGIT_API] = {"tag_name": "v0.44.1"}
        assert BinaryUnit(LAZYGIT).satisfied(ctx) == "0.44.1"

    def test_newer_local_version_satisfies(self, ctx, runner, downloader, settings):
        make_executable(settings.bin_dir, "lazygit")
        runner.on(["lazygit", "--version"], stdout="version=0.45.0")
        downloader.json_data[LAZYGIT_API] = {"tag_name": "v0.44.1"}
        assert BinaryUnit(LAZYGIT).satisfied(ctx) == "0.45.0"

    def test_older_version_upgrades(self, ctx, runner, downloader, settings):
        make_executable(settings.bin_dir, "lazygit")
        runner.on(["lazygit", "--version"], stdout="version=0.9.0")
        downloader.json_data[LAZYGIT_API] = {"tag_name": "v0.44.1"}
        assert BinaryUnit(LAZYGIT).satisfied(ctx) is None

    def test_unknown_local_version_reinstalls(self, ctx, settings):
        make_executable(settings.bin_dir, "lazygit")
        assert BinaryUnit(LAZYGIT).satisfied(ctx) is None

    def test_lookup_failure_not_satisfied(self, ctx, runner, settings):
        make_executable(settings.bin_dir, "lazygit")
        runner.on(["lazygit", "--version"], stdout="version=0.44.1")
        assert BinaryUnit(LAZYGIT).satisfied(ctx) is None

    def test_brew_uses_package(self, make_ctx, runner, downloader, store):
        ctx = make_ctx("brew")
        runner.on(["brew", "list"], code=1)
        unit = BinaryUnit(LAZYGIT, packages={"brew": "lazygit"})

        assert unit.satisfied(ctx) is None
        assert unit.install(ctx).ok
        assert ["brew", "install", "-q", "lazygit"] in runner.calls
        assert downloader.requests == []
        assert store.load().tools["lazygit"].method == "brew"


# ── GitCloneUnit ────────────────────────────────────────────────


class TestGitCloneUnit:
    UNIT = GitCloneUnit(
        "powerlevel10k",
        "https://github.com/romkatv/powerlevel10k.git",
        ".oh-my-zsh/custom/themes/powerlevel10k",
    )

    def test_clone_records_commit(self, ctx, runner, store, settings):
        runner.on(["git", "-C"], stdout="abc1234\n")

        result = self.UNIT.install(ctx)

        assert result.ok
        dest = str(settings.home / ".oh-my-zsh/custom/themes/powerlevel10k")
        assert ["git", "clone", "--depth=1", self.UNIT.url, dest] in runner.calls
        data = store.load().tools["powerlevel10k"].to_json()
        assert data["method"] == "git"
        assert data["commit"] == "abc1234"

    def test_present_when_directory_exists(self, ctx, settings):
        (settings.home / ".oh-my-zsh/custom/themes/powerlevel10k").mkdir(parents=True)
        assert self.UNIT.satisfied(ctx) == ""

    def test_clone_failure(self, ctx, runner, store):
        runner.on(["git", "clone"], code=128, stderr="fatal: unable to access")
        assert self.UNIT.install(ctx).failed
        assert store.load().tools["powerlevel10k"].error == "git clone failed"

    def test_insecure_url_rejected(self, ctx, runner, store):
        unit = GitCloneUnit("plugin", "http://example.com/plugin.git", "plugin")
        assert unit.install(ctx).failed
        assert store.load().tools["plugin"].error == "insecure url"
        assert runner.calls == []


# ── UpstreamScriptUnit ──────────────────────────────────────────


class TestUpstreamScriptUnit:
    RUST = UpstreamScriptUnit(
        "rust", "https://sh.rustup.rs", args=("-y", "--no-modify-path"), command="cargo",
    )
    OMZ = UpstreamScriptUnit(
        "oh-my-zsh",
        "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh",
        args=("--unattended",),
        env={"RUNZSH": "no", "CHSH": "no", "KEEP_ZSHRC": "yes"},
        marker=".oh-my-zsh",
    )

    def test_runs_script(self, ctx, runner, downloader, store):
        downloader.files[self.RUST.url] = b"#!/bin/sh\necho rustup\n"
        seen: dict = {}

        def _sh(argv):
            seen["script"] = Path(argv[1]).read_bytes()
            seen["path"] = Path(argv[1])
            return CmdResult(argv, 0)

        runner.on_call(["sh"], _sh)
        runner.on(["cargo", "--version"], stdout="cargo 1.82.0 (8f40fc59f 2024-08-21)")

        result = self.RUST.install(ctx)

        assert result.ok
        assert seen["script"] == b"#!/bin/sh\necho rustup\n"
        assert not seen["path"].exists()
        assert runner.calls[0][2:] == ["-y", "--no-modify-path"]
        record = store.load().tools["rust"]
        assert record.method == "upstream" and record.version == "1.82.0"

    def test_script_env(self, ctx, runner, downloader):
        downloader.files[self.OMZ.url] = b"#!/bin/sh\n"
        self.OMZ.install(ctx)
        env = runner.envs[0]
        assert env["RUNZSH"] == "no" and env["CHSH"] == "no" and env["KEEP_ZSHRC"] == "yes"
        assert "PATH" in env

    def test_installer_failure(self, ctx, runner, downloader, store):
        downloader.files[self.RUST.url] = b"exit 1"
        runner.on(["sh"], code=1, stderr="error: rustup failed")
        assert self.RUST.install(ctx).failed
        assert store.load().tools["rust"].error == "installer failed"

    def test_download_failure(self, ctx, runner, store):
        assert self.RUST.install(ctx).failed
        assert store.load().tools["rust"].error == "download failed"
        assert runner.calls == []

    def test_marker_satisfies(self, ctx, settings):
        assert self.OMZ.satisfied(ctx) is None
        (settings.home / ".oh-my-zsh").mkdir()
        assert self.OMZ.satisfied(ctx) == ""
        assert self.OMZ.present(ctx)


# ── ConfigUnit ──────────────────────────────────────────────────


class TestConfigUnit:
    def test_always_runs(self, ctx):
        unit = ConfigUnit()
        assert unit.always_run
        assert unit.satisfied(ctx) is None

    def test_deploy_then_unchanged(self, ctx, reporter, store):
        unit = ConfigUnit()
        assert not unit.present(ctx)

        assert unit.install(ctx).ok
        assert ("~/.zshrc", None, "deployed") in reporter.named("ok")
        assert unit.present(ctx)

        reporter.events.clear()
        unit.install(ctx)
        assert reporter.named("ok") == []
        assert (f"{len(CONFIG_FILES)} config file(s) up to date",) in reporter.named("detail")
        assert store.load().tools.get("configs") is None

    def test_modified_file_backed_up(self, ctx, reporter, settings):
        unit = ConfigUnit()
        unit.install(ctx)
        (settings.home / ".tmux.conf").write_text("set -g mouse off\n")

        unit.install(ctx)

        assert ("~/.tmux.conf", None, "updated, backup saved") in reporter.named("ok")
        backups = list((settings.state_dir / "backups").glob("tmux.conf.*"))
        assert len(backups) == 1
        assert backups[0].read_text() == "set -g mouse off\n"

    def test_write_failure(self, ctx, settings):
        (settings.home / ".tmux.conf").mkdir()
        result = ConfigUnit().install(ctx)
        assert result.failed
        assert result.error == "config deploy failed"


# ── Hooks ───────────────────────────────────────────────────────


@pytest.fixture
def shell_ctx(make_ctx, home):
    """Context whose settings allow the shell change."""
    return make_ctx(settings=Settings.for_home(home, yes=True))


class TestChangeDefaultShell:
    def test_skipped_by_setting(self, ctx, runner, reporter):
        assert change_default_shell(ctx) is True
        assert runner.calls == []
        assert ("Skipping shell change (RICE_SKIP_SHELL_CHANGE=1)",) in reporter.named("detail")

    def test_zsh_missing(self, shell_ctx, reporter):
        assert change_default_shell(shell_ctx) is False
        assert reporter.named("warn")

    def test_already_zsh(self, shell_ctx, runner, home):
        zsh = make_executable(home / ".local" / "bin", "zsh")
        with patch("rice.core.services.shell.current_login_shell", return_value=str(zsh)):
            assert change_default_shell(shell_ctx) is True
        assert runner.calls == []

    def test_chsh(self, shell_ctx, runner, home):
        zsh = make_executable(home / ".local" / "bin", "zsh")
        with patch("rice.core.services.shell.current_login_shell", return_value="/bin/bash"):
            assert change_default_shell(shell_ctx) is True
        assert runner.calls == [["chsh", "-s", str(zsh)]]

    def test_sudo_fallback(self, shell_ctx, runner, home):
        make_executable(home / ".local" / "bin", "zsh")
        runner.on(["chsh"], code=1)
        with patch("rice.core.services.shell.current_login_shell", return_value="/bin/bash"), \
                patch("rice.core.services.shell.getpass.getuser", return_value="dev"):
            assert change_default_shell(shell_ctx) is False
        assert runner.calls[1][0] == "sudo"
        assert runner.calls[1][-1] == "dev"

    def test_failure_prints_manual_hint(self, shell_ctx, runner, reporter, home):
        zsh = make_executable(home / ".local" / "bin", "zsh")
        runner.on(["chsh"], code=1)
        with patch("rice.core.services.shell.current_login_shell", return_value="/bin/bash"):
            change_default_shell(shell_ctx)
        assert ("Could not change default shell to zsh",) in reporter.named("warn")
        assert (f"Run manually: chsh -s {zsh}",) in reporter.named("detail")

    def test_interactive_without_yes(self, make_ctx, runner, home):
        ctx = make_ctx(settings=Settings.for_home(home))
        make_executable(home / ".local" / "bin", "zsh")
        with patch("rice.core.services.shell.current_login_shell", return_value="/bin/bash"):
            change_default_shell(ctx)
        assert runner.captures == [False]

    def test_root_has_no_sudo_fallback(self, make_ctx, runner, home):
        ctx = make_ctx(env=make_env(root=True), settings=Settings.for_home(home, yes=True))
        make_executable(home / ".local" / "bin", "zsh")
        runner.on(["chsh"], code=1)
        with patch("rice.core.services.shell.current_login_shell", return_value="/bin/bash"):
            assert change_default_shell(ctx) is False
        assert len(runner.calls) == 1


class TestEnsureRuntimePaths:
    def test_adds_existing_dirs(self, ctx, settings):
        cargo = settings.home / ".cargo" / "bin"
        make_executable(cargo, "cargo")

        ensure_runtime_paths(ctx)

        assert ctx.has_command("cargo")
        assert str(settings.home / "go" / "bin") not in ctx.extra_path
        assert settings.bin_dir.is_dir()
