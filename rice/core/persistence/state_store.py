"""
State store — every state operation as one load → mutate → save cycle.

The store owns the state file path and nothing else: each method reads
the whole document, applies a single change and writes it back
atomically via ``save_state``. Nothing is cached between calls, so a
crash at any point leaves either the old or the new document on disk.

Limitation: single writer only. Two rice processes sharing a state
file will overwrite each other's updates; there is no file locking.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from rice.core.models.state import InstallMethod, StateDocument, ToolRecord
from rice.core.persistence.state_file import default_state_path, load_state, save_state

logger = logging.getLogger(__name__)

BACKUPS_DIR = "backups"


class StateStore:
    """Persisted install state for one machine."""

    def __init__(self, state_dir: Path) -> None:
        self.state_dir = state_dir
        self.path = default_state_path(state_dir)
        self.backups_dir = state_dir / BACKUPS_DIR

    def __repr__(self) -> str:
        return f"<StateStore path={str(self.path)!r}>"

    # ── Lifecycle ───────────────────────────────────────────────

    def init(self) -> bool:
        """Ensure the state file exists.

        Returns:
            True if this is the first run (the file was just created).
        """
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.backups_dir.mkdir(parents=True, exist_ok=True)

        if self.path.is_file():
            return False

        save_state(StateDocument(), self.path)
        logger.info("Created state file %s", self.path)
        return True

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> StateDocument:
        return load_state(self.path)

    def _update(self, mutate: Callable[[StateDocument], None]) -> StateDocument:
        state = load_state(self.path)
        mutate(state)
        save_state(state, self.path)
        return state

    def touch_last_run(self) -> None:
        self._update(lambda s: s.touch())

    # ── Phases ──────────────────────────────────────────────────

    def is_phase_complete(self, phase: int) -> bool:
        return phase in self.load().completed_phases

    def complete_phase(self, phase: int) -> None:
        self._update(lambda s: s.complete_phase(phase))

    def set_current_phase(self, phase: int) -> None:
        def _set(s: StateDocument) -> None:
            s.current_phase = phase

        self._update(_set)

    def resume_phase(self) -> int:
        return self.load().current_phase

    def reset_phases(self) -> None:
        """Forget completed phases so the next run re-checks every unit."""

        def _reset(s: StateDocument) -> None:
            s.completed_phases = []
            s.current_phase = 0

        self._update(_reset)

    # ── Current tool marker ─────────────────────────────────────

    def set_current_tool(self, tool: str) -> None:
        def _set(s: StateDocument) -> None:
            s.current_tool = tool

        self._update(_set)

    def clear_current_tool(self) -> None:
        def _clear(s: StateDocument) -> None:
            s.current_tool = None

        self._update(_clear)

    def get_current_tool(self) -> str | None:
        return self.load().current_tool

    def is_resume(self) -> bool:
        """True if the previous run was interrupted mid-install."""
        if not self.path.is_file():
            return False
        return self.load().current_tool is not None

    # ── Tool records ────────────────────────────────────────────

    def record_tool_success(
        self,
        tool: str,
        version: str,
        method: InstallMethod,
        **extra: str,
    ) -> None:
        record = ToolRecord.success(version, method, **extra)

        def _record(s: StateDocument) -> None:
            s.tools[tool] = record

        self._update(_record)
        logger.debug("Recorded %s installed (%s via %s)", tool, version or "?", method)

    def record_tool_failed(self, tool: str, error: str) -> None:
        record = ToolRecord.failure(error)

        def _record(s: StateDocument) -> None:
            s.tools[tool] = record

        self._update(_record)
        logger.debug("Recorded %s failed: %s", tool, error)

    def count_installed(self) -> int:
        return self.load().count_installed()

    def count_failed(self) -> int:
        return self.load().count_failed()
