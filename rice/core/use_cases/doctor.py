"""
Doctor use case — offline health check of an installation.

Checks:
    - the machine is supported (detection)
    - the state file is readable and no run was interrupted
    - every verification command is on the search path
    - ~/.local/bin is on $PATH
    - the bundled configs are deployed
    - zsh is the login shell

Nothing is installed or written.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from rice.core.config.loader import Settings
from rice.core.data.catalog import VERIFY_COMMANDS
from rice.core.engine.context import SYSTEM_BIN_DIRS, USER_BIN_DIRS
from rice.core.persistence.state_store import StateStore
from rice.core.services.configs import missing_configs
from rice.core.services.detection import UnsupportedEnvironmentError, detect_environment
from rice.core.services.shell import current_login_shell

logger = logging.getLogger(__name__)


@dataclass
class Check:
    name: str
    ok: bool
    detail: str = ""
    hint: str = ""


@dataclass
class DoctorReport:
    checks: list[Check] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return all(c.ok for c in self.checks)

    @property
    def problems(self) -> list[Check]:
        return [c for c in self.checks if not c.ok]

    def add(self, name: str, ok: bool, detail: str = "", hint: str = "") -> None:
        self.checks.append(Check(name, ok, detail, hint))


def _check_state(report: DoctorReport, store: StateStore) -> None:
    if not store.exists():
        report.add("state file", False, f"{store.path} not found", "Run 'rice' to install")
        return
    try:
        json.loads(store.path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        report.add("state file", False, f"unreadable: {e}", f"rm {store.path} && rice")
        return

    state = store.load()
    if state.current_tool:
        report.add(
            "state file", False,
            f"previous run interrupted while installing {state.current_tool}",
            "Run 'rice' to resume",
        )
    else:
        report.add("state file", True, f"{state.count_installed()} installed, {state.count_failed()} failed")


def run_doctor(
    settings: Settings,
    *,
    commands: Sequence[str] = VERIFY_COMMANDS,
    which: Callable[[str, str | None], str | None] | None = None,
    environ: dict[str, str] | None = None,
) -> DoctorReport:
    env = dict(os.environ if environ is None else environ)
    path = env.get("PATH", "")
    search = os.pathsep.join(
        [str(settings.home / d) for d in USER_BIN_DIRS] + list(SYSTEM_BIN_DIRS) + [path]
    )
    lookup = which or (lambda cmd, p: shutil.which(cmd, path=p))

    report = DoctorReport()

    try:
        detected = detect_environment()
        report.add("environment", True, f"{detected.os} {detected.os_version} {detected.arch} ({detected.package_manager})")
    except UnsupportedEnvironmentError as e:
        report.add("environment", False, str(e))

    _check_state(report, StateStore(settings.state_dir))

    missing = [c for c in commands if not lookup(c, search)]
    report.add(
        "commands",
        not missing,
        f"missing: {', '.join(missing)}" if missing else f"{len(commands)} found",
        "Run 'rice' to install missing tools" if missing else "",
    )

    bin_dir = str(settings.bin_dir)
    on_path = bin_dir in path.split(os.pathsep)
    report.add(
        "PATH", on_path,
        f"{bin_dir} {'is' if on_path else 'is not'} on PATH",
        "" if on_path else "Start a new shell: exec zsh",
    )

    absent = missing_configs(settings)
    report.add(
        "configs", not absent,
        f"missing: {', '.join(absent)}" if absent else "deployed",
        "Run 'rice' to deploy configs" if absent else "",
    )

    zsh = lookup("zsh", search)
    shell = current_login_shell()
    is_zsh = bool(zsh) and os.path.basename(shell) == "zsh"
    report.add(
        "login shell", is_zsh or settings.skip_shell_change,
        shell or "unknown",
        "" if is_zsh else f"chsh -s {zsh or '$(command -v zsh)'}",
    )

    logger.debug("Doctor: %d checks, %d problems", len(report.checks), len(report.problems))
    return report
