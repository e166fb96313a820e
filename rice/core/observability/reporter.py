"""
Reporter — the user-facing progress contract.

Core code announces what it is doing through a ``Reporter``; how that
looks on a terminal is decided by the implementation
(``rice.ui.cli.reporter.ConsoleReporter``). Phase numbers passed to a
reporter are 1-based.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol


class Reporter(Protocol):
    def header(self, version: str, first_run: bool) -> None: ...

    def heading(self, title: str) -> None: ...

    def phase(self, index: int, total: int, name: str) -> None: ...

    def phase_compact(self, index: int, total: int, name: str, detail: str) -> None: ...

    def installing(self, component: str) -> None: ...

    def ok(self, component: str, version: str | None = None, suffix: str | None = None) -> None: ...

    def warn(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def detail(self, message: str) -> None: ...

    def error_box(
        self,
        component: str,
        operation: str,
        message: str,
        recovery: Sequence[str] = (),
    ) -> None: ...

    def resume(self, index: int, total: int, name: str) -> None: ...

    def interrupt(self, index: int, total: int, tool: str | None, state_file: str) -> None: ...

    def summary(self, installed: int, elapsed: str, failed: int) -> None: ...

    def next_steps(self) -> None: ...
