"""Typer CLI entrypoint for Model Watcher."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigError, ConfigLocator, ConfigRepository, ScheduleConfig, ScheduleType, SourceConfig
from .engine import ScanLog, StateStore
from .engine.state import STATE_FILENAME
from .logging_conf import configure_logging
from .orchestrator import RunReport, Watcher
from .scheduler import APSchedulerAdapter

CONFIG_ERROR_EXIT = 2

app = typer.Typer(
    help="Model Watcher: track AI model catalogs and report changes.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    verbose: bool = False
    environ: dict[str, str] = field(default_factory=lambda: dict(os.environ))


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = AppState(repository=ConfigRepository())
        ctx.obj = state
    return state


def _load(state: AppState) -> tuple:
    """Load config and prepare logging, exiting with code 2 on config errors."""

    try:
        config = state.repository.load()
        output_dir = state.repository.output_dir()
    except ConfigError as exc:
        console.print(f"Configuration error: {exc}", style="red")
        raise typer.Exit(code=CONFIG_ERROR_EXIT) from exc
    configure_logging(verbose=state.verbose, log_dir=output_dir)
    return config, output_dir


def _format_schedule(schedule: ScheduleConfig) -> str:
    if schedule.type is ScheduleType.CRON:
        return f"cron ({schedule.value})"
    return f"interval ({schedule.value})"


def _render_sources_table(sources: Sequence[SourceConfig], environ: dict[str, str]) -> Table:
    table = Table(title=f"Sources · {len(sources)} configured", box=box.SIMPLE_HEAD)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Provider", style="magenta")
    table.add_column("Group", style="yellow")
    table.add_column("URL", overflow="fold")
    table.add_column("Credential")
    table.add_column("Enabled")
    for source in sources:
        has_key = bool(environ.get(source.api_key_env, "").strip())
        table.add_row(
            source.name,
            source.provider,
            source.group,
            source.url,
            f"[green]{source.api_key_env}[/green]" if has_key else f"[dim]{source.api_key_env} (unset)[/dim]",
            "yes" if source.enabled else "no",
        )
    return table


def _render_report(report: RunReport) -> Table:
    table = Table(title="Scan results", box=box.SIMPLE_HEAD)
    table.add_column("Source", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Models", justify="right")
    table.add_column("Added", justify="right", style="green")
    table.add_column("Removed", justify="right", style="red")
    table.add_column("Updated", justify="right", style="yellow")
    table.add_column("Detail", overflow="fold")
    for name, outcome in report.outcomes.items():
        delta = report.deltas.get(name)
        counts = delta.summary.as_dict() if delta else {"added": "-", "removed": "-", "updated": "-"}
        if outcome.ok:
            status = "[green]ok[/green]"
        elif outcome.unconfigured:
            status = "[dim]unconfigured[/dim]"
        else:
            status = "[red]failed[/red]"
        table.add_row(
            name,
            status,
            str(outcome.record_count) if outcome.ok else "-",
            str(counts["added"]),
            str(counts["removed"]),
            str(counts["updated"]),
            outcome.reason or "",
        )
    return table


def _print_totals(report: RunReport) -> None:
    totals = report.totals
    console.print(
        f"{totals['total']} sources: {totals['successful']} ok, "
        f"{totals['failed']} failed, {totals['unconfigured']} unconfigured",
        style="green" if report.ok else "red",
    )
    if report.dispatch is not None and (report.dispatch.sent or report.dispatch.failed):
        console.print(
            f"notifications: {report.dispatch.sent} sent, {report.dispatch.failed} failed",
            style="dim",
        )


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.", is_flag=True),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config.yaml / config.json."
    ),
) -> None:
    locator = ConfigLocator(config_path=config_path)
    ctx.obj = AppState(repository=ConfigRepository(locator), verbose=verbose)


@app.command("scan", help="Run one scan of every enabled source.")
def scan(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config, output_dir = _load(state)
    with Watcher(config, output_dir, environ=state.environ) as watcher:
        report = watcher.run()
    console.print(_render_report(report))
    _print_totals(report)
    raise typer.Exit(code=report.exit_code)


@app.command("watch", help="Run scans on the configured schedule until interrupted.")
def watch(
    ctx: typer.Context,
    now: bool = typer.Option(True, "--now/--no-now", help="Run one scan before waiting."),
) -> None:
    state = _get_state(ctx)
    config, output_dir = _load(state)
    watcher = Watcher(config, output_dir, environ=state.environ)
    scheduler = APSchedulerAdapter()
    stop = threading.Event()

    def _job() -> None:
        report = watcher.run()
        console.print(_render_report(report))
        _print_totals(report)

    try:
        if now:
            _job()
        scheduler.schedule_scan(config.schedule, _job)
        scheduler.start()
        console.print(f"Watching on {_format_schedule(config.schedule)}; Ctrl+C to stop.", style="cyan")
        for job in scheduler.list_jobs():
            console.print(f"next {job['id']} run: {job['next_run_time']}", style="dim")
        while not stop.wait(1.0):
            pass
    except KeyboardInterrupt:
        console.print("Stopping.", style="yellow")
    finally:
        scheduler.shutdown()
        watcher.close()


@app.command("sources", help="List configured sources and credential status.")
def sources(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config, _ = _load(state)
    if not config.endpoints:
        console.print("No endpoints configured.", style="yellow")
        raise typer.Exit(code=0)
    console.print(_render_sources_table(config.endpoints, state.environ))
    console.print(f"Schedule: {_format_schedule(config.schedule)}", style="dim")


@app.command("state", help="Show the persisted snapshot per source.")
def show_state(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config, output_dir = _load(state)
    store = StateStore(output_dir / STATE_FILENAME, volatile_fields=config.logging.volatile_fields)
    store.load()
    counts = store.snapshot_counts()
    if not counts:
        console.print("No snapshot recorded yet.", style="dim")
        return
    table = Table(title="Snapshot", box=box.SIMPLE_HEAD)
    table.add_column("Source", style="cyan", no_wrap=True)
    table.add_column("Models", justify="right")
    table.add_column("Committed at", style="dim")
    for name, count in counts.items():
        table.add_row(name, str(count), store.committed_at(name) or "-")
    console.print(table)


@app.command("logs", help="List recent scan-log artifacts.")
def logs(
    ctx: typer.Context,
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Number of entries to show."),
) -> None:
    state = _get_state(ctx)
    _, output_dir = _load(state)
    entries = ScanLog(output_dir).recent(limit)
    if not entries:
        console.print("No scan logs yet.", style="dim")
        return
    table = Table(title="Recent scans", box=box.SIMPLE_HEAD)
    table.add_column("File", style="green")
    table.add_column("Timestamp")
    table.add_column("OK", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Unconfigured", justify="right")
    for path, payload in entries:
        totals = payload.get("scan", {})
        table.add_row(
            path.name,
            str(payload.get("timestamp", "-")),
            str(totals.get("successful", "-")),
            str(totals.get("failed", "-")),
            str(totals.get("unconfigured", "-")),
        )
    console.print(table)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
