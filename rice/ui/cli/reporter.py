"""
Console reporter — rice's terminal output.

    [3/9] Shell
      ✓ zsh (5.9, skipped)
      • oh-my-zsh
      ✓ oh-my-zsh
      ⚠ 1 Shell component(s) failed to install
      ✗ Failed to install direnv via apt

Colours come from ``click.secho`` and are dropped automatically when
stdout isn't a terminal. Detail lines only appear in verbose mode.
"""

from __future__ import annotations

from collections.abc import Sequence

import click

ISSUES_URL = "https://github.com/pentaxis93/rice/issues"

SYM_CHECK = "✓"
SYM_CROSS = "✗"
SYM_BULLET = "•"
SYM_WARN = "⚠"


class ConsoleReporter:
    def __init__(self, *, verbose: bool = False) -> None:
        self.verbose = verbose

    # ── Run framing ─────────────────────────────────────────────

    def header(self, version: str, first_run: bool) -> None:
        click.echo(f"rice v{version}")
        if first_run:
            click.echo("Your terminal, seasoned.")

    def heading(self, title: str) -> None:
        click.echo()
        click.secho(title, fg="blue")

    def phase(self, index: int, total: int, name: str) -> None:
        click.echo()
        click.secho(f"[{index}/{total}]", fg="blue", nl=False)
        click.echo(f" {name}")

    def phase_compact(self, index: int, total: int, name: str, detail: str) -> None:
        click.echo(f"[{index}/{total}] {name:<18} ", nl=False)
        click.secho(SYM_CHECK, fg="green", nl=False)
        click.echo(f" ({detail})")

    # ── Per-component lines ─────────────────────────────────────

    def installing(self, component: str) -> None:
        click.echo(f"  {SYM_BULLET} {component}")

    def ok(self, component: str, version: str | None = None, suffix: str | None = None) -> None:
        extra = ", ".join(part for part in (version, suffix) if part)
        click.echo("  ", nl=False)
        click.secho(SYM_CHECK, fg="green", nl=False)
        click.echo(f" {component}" + (f" ({extra})" if extra else ""))

    def warn(self, message: str) -> None:
        click.echo("  ", nl=False)
        click.secho(SYM_WARN, fg="yellow", nl=False)
        click.echo(f" {message}")

    def error(self, message: str) -> None:
        click.echo("  ", nl=False, err=True)
        click.secho(SYM_CROSS, fg="red", nl=False, err=True)
        click.echo(f" {message}", err=True)

    def detail(self, message: str) -> None:
        if self.verbose:
            click.secho(f"    {message}", fg="bright_black")

    def error_box(
        self,
        component: str,
        operation: str,
        message: str,
        recovery: Sequence[str] = (),
    ) -> None:
        click.echo(err=True)
        click.secho(f"{SYM_CROSS} Failed: {component} {operation}", fg="red", err=True)
        click.echo(err=True)
        click.echo(f"  Error: {message}", err=True)
        if recovery:
            click.echo(err=True)
            click.echo("  Try:", err=True)
            for i, step in enumerate(recovery, 1):
                click.echo(f"    {i}. {step}", err=True)
        click.echo(err=True)
        click.echo(f"  If this persists, report: {ISSUES_URL}", err=True)
        click.echo(err=True)

    # ── Resume / interrupt ──────────────────────────────────────

    def resume(self, index: int, total: int, name: str) -> None:
        click.secho(f"Resuming from [{index}/{total}] {name}...", fg="blue")
        click.echo("State preserved from previous run.")
        click.echo()

    def interrupt(self, index: int, total: int, tool: str | None, state_file: str) -> None:
        click.echo()
        click.secho(
            f"Interrupted during [{index}/{total}] while installing {tool or 'unknown'}",
            fg="yellow",
        )
        click.echo()
        click.echo(f"State saved: {state_file}")
        click.echo()
        click.echo("To resume:      rice")
        click.echo(f"To start fresh: rm {state_file} && rice")
        click.echo()

    # ── Summary ─────────────────────────────────────────────────

    def summary(self, installed: int, elapsed: str, failed: int) -> None:
        click.echo()
        if failed == 0:
            click.secho(f"All {installed} components verified.", fg="green")
        else:
            total = installed + failed
            click.secho(f"{installed} of {total} components installed ({failed} failed).", fg="yellow")
        click.echo(f"Completed in {elapsed}")

    def next_steps(self) -> None:
        click.echo()
        click.echo("Next steps:")
        click.echo("  1. Run 'exec zsh' to start your new shell")
        click.echo("  2. Install a Nerd Font on your terminal client for best experience")
        click.echo()
