"""
Install use case — one full rice run, start to summary.

Exit codes:
    0    everything installed and verified
    2    partial success (a unit failed or verification found gaps)
    130  interrupted (SIGINT / SIGTERM)

``current_tool`` is cleared after runs ending 0 or 2 only, so an
interrupted run is reported as a resume next time.
"""

from __future__ import annotations

import logging
import signal
import time
from collections.abc import Callable, Sequence
from types import FrameType

from rice import __version__
from rice.core.data.catalog import VERIFY_COMMANDS
from rice.core.engine.context import InstallContext
from rice.core.engine.scheduler import PhaseDefinition, PhaseScheduler

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PRECONDITION = 1
EXIT_PARTIAL = 2
EXIT_INTERRUPTED = 130


def format_elapsed(seconds: float) -> str:
    """``75`` → ``1m 15s``; ``9.4`` → ``9s``."""
    total = int(seconds)
    if total >= 60:
        return f"{total // 60}m {total % 60}s"
    return f"{total}s"


def _raise_interrupt(signum: int, frame: FrameType | None) -> None:
    raise KeyboardInterrupt


def run_install(
    ctx: InstallContext,
    phases: Sequence[PhaseDefinition],
    *,
    first_run: bool = False,
    verify_commands: Sequence[str] = VERIFY_COMMANDS,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Run every phase and print the summary.

    Returns:
        Process exit code.
    """
    start = clock()
    store = ctx.store

    ctx.reporter.header(__version__, first_run)
    store.touch_last_run()
    ctx.settings.bin_dir.mkdir(parents=True, exist_ok=True)

    scheduler = PhaseScheduler(ctx, phases, verify_commands)

    previous = signal.getsignal(signal.SIGTERM)
    signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        report = scheduler.run()
    except KeyboardInterrupt:
        index = scheduler.current_phase if scheduler.current_phase is not None else store.resume_phase()
        ctx.reporter.interrupt(index + 1, scheduler.total, store.get_current_tool(), str(store.path))
        logger.info("Interrupted during phase %d", index)
        return EXIT_INTERRUPTED
    finally:
        signal.signal(signal.SIGTERM, previous)

    code = report.exit_code
    if code in (EXIT_OK, EXIT_PARTIAL):
        store.clear_current_tool()

    elapsed = format_elapsed(clock() - start)
    ctx.reporter.summary(store.count_installed(), elapsed, store.count_failed())
    if first_run:
        ctx.reporter.next_steps()

    logger.info("Run finished with exit code %d (%s)", code, report.to_dict())
    return code


def run_update(
    ctx: InstallContext,
    phases: Sequence[PhaseDefinition],
    **kwargs: object,
) -> int:
    """Re-check every phase against the latest upstream versions."""
    ctx.reporter.detail("Refreshing upstream versions...")
    ctx.resolver.invalidate()
    ctx.store.reset_phases()
    return run_install(ctx, phases, **kwargs)  # type: ignore[arg-type]
