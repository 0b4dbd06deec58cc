"""CLI interface for reclaim."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from reclaim import __version__
from reclaim.config import CONFIG_FILE, load_settings, save_settings
from reclaim.display import (
    confirm_action,
    console,
    show_batch_result,
    show_cache_cleanup_result,
    show_cleanup_sizes,
    show_delete_preview,
    show_delete_result,
    show_folders,
    show_scan_report,
    show_scanning_progress,
    show_status,
)
from reclaim.engine import ReclaimEngine
from reclaim.locations import CACHE_ACTIONS

# Create Typer app
app = typer.Typer(
    name="reclaim",
    help="Find and safely remove node_modules folders and developer caches",
    add_completion=False,
    no_args_is_help=True,
)

err_console = Console(stderr=True)


class _State:
    config_path: Optional[Path] = None


state = _State()


def get_engine() -> ReclaimEngine:
    """Build an engine from the active configuration."""
    return ReclaimEngine(load_settings(state.config_path))


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"reclaim version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log every probe to stderr."),
    config: Optional[Path] = typer.Option(
        None, "--config", help=f"Settings file (default: {CONFIG_FILE})."
    ),
) -> None:
    """reclaim - reclaim disk space from developer artifacts."""
    setup_logging(verbose)
    state.config_path = config


@app.command()
def scan(
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON."),
    stale_only: bool = typer.Option(False, "--stale-only", help="Only list stale entries."),
) -> None:
    """Find reclaimable folders with their size and age."""
    engine = get_engine()

    if json_output:
        report = engine.scan_reclaimables()
        typer.echo(report.model_dump_json(indent=2))
        raise typer.Exit(0 if report.success else 1)

    with show_scanning_progress() as progress:
        progress.add_task(f"Searching for {engine.settings.target_name}...", total=None)
        report = engine.scan_reclaimables()

    show_scan_report(report, stale_days=engine.settings.stale_days, stale_only=stale_only)
    if not report.success:
        raise typer.Exit(1)

    if report.stale_count:
        console.print()
        console.print("[dim]Run [bold]reclaim clean-stale[/bold] to delete stale folders[/dim]")


@app.command()
def delete(
    path: str = typer.Argument(..., help="Folder to delete, e.g. ~/app/node_modules"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
) -> None:
    """Delete a single reclaimable folder."""
    engine = get_engine()

    if not yes:
        if not confirm_action(f"Delete {path}?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    result = engine.delete_reclaimable(path)
    show_delete_result(result)
    if not result.success:
        raise typer.Exit(1)


@app.command(name="clean-stale")
def clean_stale(
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be deleted"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
) -> None:
    """Delete every folder untouched for longer than the stale threshold."""
    engine = get_engine()

    with show_scanning_progress() as progress:
        progress.add_task("Scanning...", total=None)
        report = engine.scan_reclaimables()

    if not report.success:
        console.print(f"[red]Scan failed: {report.error}[/red]")
        raise typer.Exit(1)

    stale = report.stale_entries
    if not stale:
        console.print("[green]No stale folders to clean.[/green]")
        raise typer.Exit(0)

    show_delete_preview(stale, dry_run=dry_run)
    if dry_run:
        raise typer.Exit(0)

    if not yes:
        console.print()
        if not confirm_action(f"Delete {len(stale)} folders?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    result = engine.delete_stale_reclaimables([e.path for e in stale])
    show_batch_result(result)

    snapshot = engine.read_disk_snapshot()
    if snapshot.total_bytes:
        console.print(f"\nFree space now: {snapshot.available_gb:.1f} GB")


@app.command()
def status() -> None:
    """Show current disk usage summary."""
    show_status(get_engine().read_disk_snapshot())


@app.command()
def caches() -> None:
    """Show sizes of well-known cache folders."""
    engine = get_engine()
    show_folders("Caches", engine.measure_cache_folders())
    console.print()
    show_cleanup_sizes(engine.cleanup_sizes())
    console.print("\n[dim]Run [bold]reclaim purge <action>[/bold] to clean one[/dim]")


@app.command()
def devtools() -> None:
    """Show sizes of developer SDK and package folders."""
    show_folders("Developer Tools", get_engine().measure_dev_tools())


@app.command()
def home() -> None:
    """Show the largest folders in your home directory."""
    show_folders("Home Folders", get_engine().measure_home_folders())


@app.command()
def purge(
    action: Optional[str] = typer.Argument(None, help="Cache action, see --list"),
    all_caches: bool = typer.Option(False, "--all", help="Purge every known cache"),
    list_actions: bool = typer.Option(False, "--list", help="List cache actions"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
) -> None:
    """Delete a named cache (or all of them)."""
    if list_actions or (not action and not all_caches):
        console.print("[bold]Cache actions[/bold]\n")
        for key in CACHE_ACTIONS:
            console.print(f"  • {key}")
        raise typer.Exit(0 if list_actions else 1)

    engine = get_engine()

    if not yes:
        target = "all known caches" if all_caches else action
        if not confirm_action(f"Purge {target}?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    if all_caches:
        show_batch_result(engine.cleanup_all_caches())
        return

    result = engine.cleanup_named_cache(action)
    show_cache_cleanup_result(result)
    if not result.success:
        if action not in CACHE_ACTIONS:
            console.print("\nAvailable actions:")
            for key in CACHE_ACTIONS:
                console.print(f"  • {key}")
        raise typer.Exit(1)


@app.command()
def sync(
    once: bool = typer.Option(False, "--once", help="Run a single sync cycle and exit"),
) -> None:
    """Publish stats to the shared folder and run queued remote commands."""
    from reclaim.sync import run_daemon

    engine = get_engine()
    if not once:
        console.print(
            f"[bold]Syncing every {engine.settings.sync_interval:g}s[/bold] "
            "[dim](Ctrl+C to stop)[/dim]"
        )
    try:
        run_daemon(engine, once=once)
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")


@app.command()
def config(
    init: bool = typer.Option(False, "--init", help="Write the default settings file"),
) -> None:
    """Show the active settings (or write the defaults)."""
    path = state.config_path or CONFIG_FILE
    settings = load_settings(state.config_path)

    if init:
        if path.exists():
            console.print(f"[yellow]{path} already exists[/yellow]")
            raise typer.Exit(1)
        if not save_settings(settings, path):
            console.print(f"[red]Could not write {path}[/red]")
            raise typer.Exit(1)
        console.print(f"Wrote {path}")
        return

    typer.echo(settings.model_dump_json(indent=2))


if __name__ == "__main__":
    app()
