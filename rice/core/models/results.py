"""
InstallResult — what a backend or unit reports back.

Backends and units never raise for expected failures; they return a
result with ``status='failed'`` and an ``error`` reason (the same text
that goes into the tool's failure record).
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class InstallResult(BaseModel):
    tool: str
    status: Literal["ok", "skipped", "failed"] = "ok"
    version: str = ""
    method: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Success, including "already installed"."""
        return self.status != "failed"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(cls, tool: str, version: str = "", method: str = "", **kwargs: Any) -> InstallResult:
        return cls(tool=tool, status="ok", version=version, method=method, **kwargs)

    @classmethod
    def skipped(cls, tool: str, version: str = "", **kwargs: Any) -> InstallResult:
        return cls(tool=tool, status="skipped", version=version, **kwargs)

    @classmethod
    def failure(cls, tool: str, error: str, **kwargs: Any) -> InstallResult:
        return cls(tool=tool, status="failed", error=error, **kwargs)
