"""
Command runner — the single place rice calls ``subprocess.run``.

Backends and units never spawn processes themselves; they call
``run_cmd`` (or an injected replacement with the same signature in
tests). Non-zero exits are reported in the ``CmdResult``, never raised.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

# Captured output is truncated to this many characters from the end.
_OUTPUT_TAIL = 2000


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    def __call__(
        self,
        argv: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        timeout: int = 600,
        capture: bool = True,
    ) -> CmdResult: ...


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def run_cmd(
    argv: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    timeout: int = 600,
    capture: bool = True,
) -> CmdResult:
    """Run a command and report the outcome.

    Args:
        argv: Command and arguments (no shell).
        env: Extra environment variables layered over ``os.environ``.
        cwd: Working directory.
        timeout: Seconds before the command is killed.
        capture: Capture stdout/stderr. When False the native output
            goes straight to the terminal (verbose mode).

    Returns:
        CmdResult. A missing executable yields returncode 127, a
        timeout yields 124.
    """
    argv_list = [str(a) for a in argv]
    logger.debug("CMD %s", fmt_argv(argv_list))

    full_env = dict(os.environ)
    if env:
        full_env.update(env)

    start = time.monotonic()
    try:
        p = subprocess.run(
            argv_list,
            capture_output=capture,
            text=True,
            timeout=timeout,
            env=full_env,
            cwd=cwd,
            stdin=subprocess.DEVNULL if capture else None,
        )
    except FileNotFoundError:
        return CmdResult(argv_list, 127, stderr=f"command not found: {argv_list[0]}")
    except subprocess.TimeoutExpired:
        logger.warning("Command timed out after %ss: %s", timeout, fmt_argv(argv_list))
        return CmdResult(argv_list, 124, stderr=f"timed out after {timeout}s")

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = (p.stdout or "")[-_OUTPUT_TAIL:]
    stderr = (p.stderr or "")[-_OUTPUT_TAIL:]

    if p.returncode != 0:
        logger.debug("exit %d: %s", p.returncode, stderr.strip())

    return CmdResult(argv_list, p.returncode, stdout, stderr, elapsed_ms)
