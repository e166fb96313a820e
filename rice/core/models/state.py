"""
StateDocument — the root state model.

This is the single document that records what rice has done on this
machine. It's serialized to ~/.config/rice/state.json and loaded on
every store operation.

It's disposable: delete it and the next run starts from phase 0,
re-checking every tool (already-present tools are skipped quickly).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from rice import __version__


InstallMethod = Literal["apt", "dnf", "pacman", "brew", "binary", "git", "upstream"]


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ToolRecord(BaseModel):
    """Outcome of the last install attempt for one tool.

    Success records carry ``version``, ``method`` and ``installed_at``;
    failure records carry ``error`` and ``failed_at``. Extra string
    fields (e.g. ``commit`` for git clones) are kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    installed: bool
    version: str | None = None
    method: InstallMethod | None = None
    installed_at: str | None = None
    error: str | None = None
    failed_at: str | None = None

    @model_validator(mode="after")
    def _installed_needs_method(self) -> ToolRecord:
        if self.installed and not self.method:
            raise ValueError("an installed tool record must carry a method")
        return self

    @classmethod
    def success(
        cls,
        version: str,
        method: InstallMethod,
        **extra: str,
    ) -> ToolRecord:
        """Create a success record stamped with the current time."""
        return cls(
            installed=True,
            version=version,
            method=method,
            installed_at=_now_iso(),
            **extra,
        )

    @classmethod
    def failure(cls, error: str) -> ToolRecord:
        """Create a failure record stamped with the current time."""
        return cls(installed=False, error=error, failed_at=_now_iso())

    def to_json(self) -> dict[str, Any]:
        """Serialize without the fields that don't apply to this outcome."""
        return self.model_dump(mode="json", exclude_none=True)


class StateDocument(BaseModel):
    """Root state model — serialized to state.json."""

    # ── Identity ─────────────────────────────────────────────────
    version: str = __version__

    # ── Timestamps ───────────────────────────────────────────────
    created: str = Field(default_factory=_now_iso)
    last_run: str = Field(default_factory=_now_iso)

    # ── Progress ─────────────────────────────────────────────────
    completed_phases: list[int] = Field(default_factory=list)
    current_phase: int = 0
    current_tool: str | None = None

    # ── Per-tool outcomes ────────────────────────────────────────
    tools: dict[str, ToolRecord] = Field(default_factory=dict)

    @field_validator("completed_phases")
    @classmethod
    def _sorted_unique(cls, v: list[int]) -> list[int]:
        return sorted(set(v))

    def touch(self) -> None:
        """Update the last_run timestamp."""
        self.last_run = _now_iso()

    def complete_phase(self, phase: int) -> None:
        """Add a phase to completed_phases (idempotent)."""
        if phase not in self.completed_phases:
            self.completed_phases = sorted([*self.completed_phases, phase])

    def count_installed(self) -> int:
        return sum(1 for r in self.tools.values() if r.installed)

    def count_failed(self) -> int:
        return sum(1 for r in self.tools.values() if not r.installed)

    def to_json(self) -> dict[str, Any]:
        """Serialize to the on-disk JSON shape."""
        data = self.model_dump(mode="json", exclude={"tools"})
        data["tools"] = {name: rec.to_json() for name, rec in self.tools.items()}
        return data
