"""
Status use case — what rice has installed on this machine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from rice.core.models.state import StateDocument
from rice.core.persistence.state_store import StateStore


@dataclass
class StatusResult:
    state_file: Path
    exists: bool = False
    state: StateDocument | None = None
    phase_names: list[str] = field(default_factory=list)

    @property
    def installed(self) -> dict[str, dict]:
        if self.state is None:
            return {}
        return {k: r.to_json() for k, r in sorted(self.state.tools.items()) if r.installed}

    @property
    def failed(self) -> dict[str, dict]:
        if self.state is None:
            return {}
        return {k: r.to_json() for k, r in sorted(self.state.tools.items()) if not r.installed}

    @property
    def completed(self) -> list[str]:
        if self.state is None:
            return []
        return [
            self.phase_names[i] if i < len(self.phase_names) else str(i)
            for i in self.state.completed_phases
        ]

    def to_dict(self) -> dict:
        data: dict = {"state_file": str(self.state_file), "exists": self.exists}
        if self.state is not None:
            data.update({
                "version": self.state.version,
                "created": self.state.created,
                "last_run": self.state.last_run,
                "completed_phases": self.state.completed_phases,
                "current_phase": self.state.current_phase,
                "current_tool": self.state.current_tool,
                "installed": self.installed,
                "failed": self.failed,
            })
        return data


def get_status(store: StateStore, phase_names: list[str] | None = None) -> StatusResult:
    """Read the state file without modifying it."""
    result = StatusResult(state_file=store.path, phase_names=list(phase_names or []))
    if not store.exists():
        return result
    result.exists = True
    result.state = store.load()
    return result
