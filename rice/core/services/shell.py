"""
Post-phase hooks — default shell change and runtime search paths.

Hooks run after a phase's units. They report what they did but never
count as a unit failure.
"""

from __future__ import annotations

import getpass
import logging
import os
import pwd
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rice.core.engine.context import InstallContext

logger = logging.getLogger(__name__)


def current_login_shell() -> str:
    try:
        return pwd.getpwuid(os.getuid()).pw_shell
    except KeyError:
        return os.environ.get("SHELL", "")


def change_default_shell(ctx: InstallContext) -> bool:
    """Make zsh the user's login shell.

    Skipped with ``RICE_SKIP_SHELL_CHANGE``. With ``RICE_YES`` the
    change is attempted non-interactively (``chsh``, then ``sudo chsh``);
    otherwise ``chsh`` may prompt for a password.

    Returns:
        True if zsh is the login shell afterwards (or the change was
        skipped on purpose).
    """
    settings = ctx.settings
    if settings.skip_shell_change:
        ctx.reporter.detail("Skipping shell change (RICE_SKIP_SHELL_CHANGE=1)")
        return True

    zsh_path = ctx.which("zsh")
    if not zsh_path:
        ctx.reporter.warn("zsh not found; default shell unchanged")
        return False

    if current_login_shell() == zsh_path:
        ctx.reporter.detail("Default shell is already zsh")
        return True

    ctx.reporter.detail("Changing default shell to zsh...")

    if settings.yes:
        ok = ctx.run(["chsh", "-s", zsh_path], timeout=30, capture=True).ok
        if not ok and ctx.env.sudo:
            ok = ctx.run(
                [*ctx.env.sudo, "chsh", "-s", zsh_path, getpass.getuser()],
                timeout=30,
                capture=True,
            ).ok
    else:
        ok = ctx.run(["chsh", "-s", zsh_path], timeout=300, capture=False).ok

    if not ok:
        ctx.reporter.warn("Could not change default shell to zsh")
        ctx.reporter.detail(f"Run manually: chsh -s {zsh_path}")
        return False

    ctx.reporter.detail("Default shell changed to zsh")
    return True


def ensure_runtime_paths(ctx: InstallContext) -> None:
    """Put freshly installed runtimes' bin dirs on the search path."""
    home = ctx.settings.home
    dirs = [home / ".cargo" / "bin", home / "go" / "bin", home / ".bun" / "bin"]
    ctx.extend_path(*(str(d) for d in dirs if d.is_dir()))
    ctx.settings.bin_dir.mkdir(parents=True, exist_ok=True)
