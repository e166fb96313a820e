"""
rice — CLI entrypoint.

Usage:
    rice              Install or update the environment
    rice doctor       Check installation health
    rice status       Show installed components
    rice update       Re-check everything against the latest releases
    rice help         Show help
    rice version      Show version
"""

from __future__ import annotations

import json
import os
import sys

import click

from rice import __version__
from rice.core.observability.logging_config import resolve_level, setup_logging

HELP_EPILOG = """\b
Environment variables:
  RICE_YES=1               Skip all prompts (for automation)
  RICE_VERBOSE=1           Show detailed output
  RICE_SKIP_SHELL_CHANGE=1 Don't change default shell to zsh
  GITHUB_TOKEN             Authenticate GitHub API requests
  RICE_HOME                Use another home directory for all rice paths
  RICE_LOG_LEVEL           Console log level (default WARNING)
  RICE_LOG_FILE            Also write a detailed log to this file

For more information: https://github.com/pentaxis93/rice
"""


class RiceGroup(click.Group):
    """Group that exits 1 with a short hint on an unknown command."""

    def resolve_command(self, ctx: click.Context, args: list[str]):  # type: ignore[override]
        name = args[0] if args else ""
        if name and not name.startswith("-") and self.get_command(ctx, name) is None:
            click.echo(f"Unknown command: {name}", err=True)
            click.echo("Run 'rice help' for usage", err=True)
            ctx.exit(1)
        return super().resolve_command(ctx, args)


@click.group(
    cls=RiceGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog=HELP_EPILOG,
)
@click.version_option(
    __version__, "--version", "-v", prog_name="rice", message="%(prog)s v%(version)s",
)
@click.option("--verbose", is_flag=True, help="Show native package-manager output and details.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool) -> None:
    """rice — opinionated terminal environment installer."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose),
        log_file=os.environ.get("RICE_LOG_FILE"),
        log_file_level=os.environ.get("RICE_LOG_FILE_LEVEL"),
    )

    if ctx.invoked_subcommand is None:
        ctx.invoke(install)


def _load_settings(ctx: click.Context):
    from rice.core.config.loader import ConfigError, load_settings

    try:
        return load_settings(verbose=ctx.obj.get("verbose", False))
    except ConfigError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(1)


def _run(ctx: click.Context, *, update: bool = False) -> int:
    from rice.core.data.catalog import build_phases
    from rice.core.engine.context import build_context
    from rice.core.services.detection import UnsupportedEnvironmentError, detect_environment
    from rice.core.use_cases.install import EXIT_PRECONDITION, run_install, run_update
    from rice.ui.cli.reporter import ConsoleReporter

    settings = _load_settings(ctx)
    reporter = ConsoleReporter(verbose=settings.verbose)

    try:
        env = detect_environment()
    except UnsupportedEnvironmentError as e:
        reporter.error(str(e))
        return EXIT_PRECONDITION

    context = build_context(env, settings, reporter)
    first_run = context.store.init()
    phases = build_phases()

    if update:
        return run_update(context, phases, first_run=first_run)
    return run_install(context, phases, first_run=first_run)


# ── Commands ────────────────────────────────────────────────────


@cli.command()
@click.pass_context
def install(ctx: click.Context) -> None:
    """Install or update the rice environment (default)."""
    sys.exit(_run(ctx))


@cli.command()
@click.pass_context
def update(ctx: click.Context) -> None:
    """Re-check every phase against the latest upstream releases."""
    click.echo("Fetching latest versions...")
    sys.exit(_run(ctx, update=True))


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show installed components."""
    from rice.core.data.catalog import phase_names
    from rice.core.persistence.state_store import StateStore
    from rice.core.use_cases.status import get_status

    settings = _load_settings(ctx)
    names = phase_names()
    result = get_status(StateStore(settings.state_dir), names)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if not result.exists or result.state is None:
        click.secho(f"rice has not been run yet (no {result.state_file})", fg="yellow")
        return

    state = result.state
    click.secho(f"rice v{state.version}", bold=True)
    click.echo(f"   Created:  {state.created}")
    click.echo(f"   Last run: {state.last_run}")
    click.echo(f"   Phases:   {len(state.completed_phases)}/{len(names)} complete")
    if state.current_tool:
        click.secho(f"   Interrupted while installing {state.current_tool}", fg="yellow")

    installed = result.installed
    click.echo()
    click.secho(f"   Installed: {len(installed)}", bold=True)
    for name, rec in installed.items():
        version = rec.get("version") or rec.get("commit") or ""
        click.echo(f"     ✓ {name:<24} {version:<12} ({rec.get('method')})")

    failed = result.failed
    if failed:
        click.echo()
        click.secho(f"   Failed: {len(failed)}", fg="red", bold=True)
        for name, rec in failed.items():
            click.echo(f"     ✗ {name:<24} {rec.get('error', '')}")

    click.echo()
    click.echo(f"   State file: {result.state_file}")
    click.echo(f"   To force a clean re-run: rm {result.state_file} && rice")


@cli.command()
@click.pass_context
def doctor(ctx: click.Context) -> None:
    """Check installation health."""
    from rice.core.use_cases.doctor import run_doctor

    settings = _load_settings(ctx)
    report = run_doctor(settings)

    click.secho("🩺 rice doctor", fg="cyan", bold=True)
    for check in report.checks:
        mark, color = ("✓", "green") if check.ok else ("✗", "red")
        click.secho(f"  {mark}", fg=color, nl=False)
        click.echo(f" {check.name:<12} {check.detail}")
        if not check.ok and check.hint:
            click.secho(f"      → {check.hint}", fg="yellow")

    click.echo()
    if report.healthy:
        click.secho("All checks passed.", fg="green")
        return
    click.secho(f"{len(report.problems)} problem(s) found.", fg="yellow")
    sys.exit(1)


@cli.command("help")
@click.pass_context
def help_(ctx: click.Context) -> None:
    """Show this help."""
    parent = ctx.parent or ctx
    click.echo(parent.get_help())


@cli.command()
def version() -> None:
    """Show version."""
    click.echo(f"rice v{__version__}")


def main() -> None:
    cli(prog_name="rice")


if __name__ == "__main__":
    main()
