"""
Phase scheduler — the install loop.

Flow:
    resume notice → for each phase not yet complete:
        set current_phase → for each unit:
            satisfied? → skip
            else set current_tool → install → clear current_tool
        post-phase hook → complete_phase
    → verification pass

A unit failure never stops the run: it is recorded against the tool,
counted, and the next unit runs. A phase is marked complete once its
last unit was attempted, whatever the outcomes. ``KeyboardInterrupt``
is not caught here; it propagates with ``current_tool`` still set so
the next run can report where it stopped.

When every phase is already complete the run is a compact check:
one line per phase, config sync, verification. No unit is installed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from rice.core.models.results import InstallResult
from rice.core.services.configs import missing_configs
from rice.core.services.install.errors import InstallError

if TYPE_CHECKING:
    from rice.core.engine.context import InstallContext
    from rice.core.services.install.units import Unit

logger = logging.getLogger(__name__)


@dataclass
class PhaseDefinition:
    index: int
    name: str
    units: Sequence[Unit]
    after: Callable[[InstallContext], Any] | None = None


@dataclass
class PhaseReport:
    index: int
    name: str
    results: list[InstallResult] = field(default_factory=list)

    @property
    def failed(self) -> list[str]:
        return [r.tool for r in self.results if r.failed]


@dataclass
class RunReport:
    """Outcome of one scheduler run."""

    phases: list[PhaseReport] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    compact: bool = False

    @property
    def failures(self) -> int:
        return sum(len(p.failed) for p in self.phases)

    @property
    def exit_code(self) -> int:
        """0 all good, 2 partial success."""
        return 2 if self.failures or self.missing else 0

    def to_dict(self) -> dict:
        return {
            "exit_code": self.exit_code,
            "compact": self.compact,
            "failures": self.failures,
            "missing": self.missing,
            "phases": [
                {"index": p.index, "name": p.name, "failed": p.failed}
                for p in self.phases
            ],
        }


class PhaseScheduler:
    """Runs phases in index order against one install context."""

    def __init__(
        self,
        ctx: InstallContext,
        phases: Sequence[PhaseDefinition],
        verify_commands: Sequence[str] = (),
    ) -> None:
        self.ctx = ctx
        self.phases = sorted(phases, key=lambda p: p.index)
        self.verify_commands = tuple(verify_commands)
        self.current_phase: int | None = None

    @property
    def total(self) -> int:
        return len(self.phases)

    def phase_name(self, index: int) -> str:
        for p in self.phases:
            if p.index == index:
                return p.name
        return "Verification"

    def all_complete(self) -> bool:
        done = set(self.ctx.store.load().completed_phases)
        return all(p.index in done for p in self.phases)

    # ── Run ─────────────────────────────────────────────────────

    def run(self) -> RunReport:
        store = self.ctx.store

        if store.is_resume():
            index = store.resume_phase()
            self.ctx.reporter.resume(index + 1, self.total, self.phase_name(index))

        if self.all_complete():
            return self._run_compact()

        report = RunReport()
        for phase in self.phases:
            if store.is_phase_complete(phase.index):
                logger.debug("Phase %d (%s) already complete", phase.index, phase.name)
                continue
            report.phases.append(self._run_phase(phase))

        report.missing = self.verify()
        return report

    def _run_phase(self, phase: PhaseDefinition) -> PhaseReport:
        store = self.ctx.store
        self.current_phase = phase.index
        store.set_current_phase(phase.index)
        self.ctx.reporter.phase(phase.index + 1, self.total, phase.name)

        report = PhaseReport(phase.index, phase.name)
        for unit in phase.units:
            report.results.append(self.run_unit(unit))

        self._run_hook(phase)

        if report.failed:
            self.ctx.reporter.warn(f"{len(report.failed)} {phase.name} component(s) failed to install")

        store.complete_phase(phase.index)
        store.set_current_phase(phase.index + 1)
        return report

    def run_unit(self, unit: Unit) -> InstallResult:
        """Install one unit unless it is already satisfied."""
        ctx = self.ctx
        tool = unit.tool

        try:
            version = unit.satisfied(ctx)
        except Exception as e:
            logger.warning("Presence check for %s failed: %s", tool, e)
            version = None

        if version is not None:
            ctx.reporter.ok(tool, version or None, "skipped")
            return InstallResult.skipped(tool, version)

        ctx.store.set_current_tool(tool)
        try:
            result = unit.install(ctx)
        except InstallError as e:
            ctx.reporter.error(f"{tool}: {e}")
            ctx.store.record_tool_failed(tool, e.reason)
            result = InstallResult.failure(tool, e.reason)
        except Exception as e:
            logger.exception("Unexpected error installing %s", tool)
            ctx.reporter.error(f"{tool}: unexpected error: {e}")
            ctx.store.record_tool_failed(tool, f"unexpected error: {e}")
            result = InstallResult.failure(tool, f"unexpected error: {e}")
        # Not in a finally: an interrupt must leave the marker set.
        ctx.store.clear_current_tool()
        return result

    def _run_hook(self, phase: PhaseDefinition) -> None:
        if phase.after is None:
            return
        try:
            phase.after(self.ctx)
        except Exception as e:
            logger.exception("Post-phase hook for %s failed", phase.name)
            self.ctx.reporter.warn(f"{phase.name}: post-install step failed: {e}")

    # ── Compact re-run ──────────────────────────────────────────

    def _run_compact(self) -> RunReport:
        ctx = self.ctx
        ctx.reporter.heading("Checking installation...")
        report = RunReport(compact=True)

        for phase in self.phases:
            self.current_phase = phase.index
            phase_report = PhaseReport(phase.index, phase.name)
            always = [u for u in phase.units if getattr(u, "always_run", False)]
            checked = [u for u in phase.units if not getattr(u, "always_run", False)]

            if checked:
                present = sum(1 for u in checked if self._present(u))
                detail = f"{present:2d}/{len(checked):<2d} installed"
            else:
                detail = "synced"
            ctx.reporter.phase_compact(phase.index + 1, self.total, phase.name, detail)

            for unit in always:
                phase_report.results.append(unit.install(ctx))
            report.phases.append(phase_report)

        report.missing = self.verify(quiet=True)
        return report

    def _present(self, unit: Unit) -> bool:
        try:
            return unit.present(self.ctx)
        except Exception as e:
            logger.warning("Presence check for %s failed: %s", unit.tool, e)
            return False

    # ── Verification ────────────────────────────────────────────

    def verify(self, *, quiet: bool = False) -> list[str]:
        """Check every expected command and the deployed configs.

        Returns:
            Names of missing components (``configs`` for any missing
            config file).
        """
        ctx = self.ctx
        if not quiet:
            ctx.reporter.heading("Verification")

        missing = [c for c in self.verify_commands if not ctx.has_command(c)]
        for command in missing:
            ctx.reporter.detail(f"Missing: {command}")
        verified = len(self.verify_commands) - len(missing)

        absent = missing_configs(ctx.settings)
        if absent:
            ctx.reporter.detail(f"Missing configs: {', '.join(absent)}")
            missing.append("configs")
        else:
            ctx.reporter.detail("Configs verified")

        if missing:
            ctx.reporter.warn(f"{len(missing)} component(s) not found")
        elif not quiet:
            ctx.reporter.ok("All components verified", f"{verified} tools")
        return missing
