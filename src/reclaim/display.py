"""Rich terminal display for reclaim."""

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from reclaim.models import (
    BatchDeleteResult,
    CacheCleanupResult,
    DeleteResult,
    DiskSnapshot,
    KnownFolderEntry,
    ScanEntry,
    ScanReport,
)
from reclaim.units import format_bytes

console = Console()


def usage_color(used_percent: float) -> str:
    """Color for a disk usage percentage."""
    if used_percent >= 90:
        return "red"
    elif used_percent >= 75:
        return "yellow"
    return "green"


def age_label(entry: ScanEntry) -> str:
    """Styled 'days since last touch' cell."""
    if entry.last_touched_epoch <= 0:
        return "[dim]unknown[/dim]"
    if entry.is_stale:
        return f"[yellow]{entry.days_since_touch}d[/yellow]"
    return f"{entry.days_since_touch}d"


def size_label(entry: ScanEntry) -> str:
    """Size cell; failed measurements are shown as unknown rather than 0B."""
    if not entry.size_known:
        return "[dim]?[/dim]"
    return entry.size_human


def show_scan_report(report: ScanReport, stale_days: int = 14, stale_only: bool = False) -> None:
    """Display the reclaimable-unit inventory."""
    if not report.success:
        console.print(f"[red]Scan failed: {report.error}[/red]")
        return

    entries = report.stale_entries if stale_only else report.entries
    if not entries:
        console.print("[green]Nothing to reclaim.[/green]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Project", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Last touched", justify="right")
    table.add_column("Path")

    for entry in entries:
        table.add_row(entry.label, size_label(entry), age_label(entry), entry.path)

    console.print(table)
    console.print(
        Panel(
            f"[bold]Found:[/bold] {report.count} ({report.total_human})\n"
            f"  Stale (>{stale_days} days): {report.stale_count} "
            f"({format_bytes(report.stale_bytes)})",
            title="Summary",
            border_style="blue",
        )
    )


def show_delete_preview(entries: list[ScanEntry], dry_run: bool = False) -> None:
    """Display what a stale cleanup would remove."""
    if dry_run:
        console.print("[yellow]DRY RUN - No files will be deleted[/yellow]\n")

    table = Table(title="Cleanup Preview", show_header=True, header_style="bold")
    table.add_column("Project")
    table.add_column("Size", justify="right")
    table.add_column("Last touched", justify="right")

    total = 0
    for entry in entries:
        table.add_row(entry.label, size_label(entry), age_label(entry))
        total += entry.size_bytes

    console.print(table)
    console.print(f"\n[bold]Total to clean: {format_bytes(total)}[/bold]")


def show_delete_result(result: DeleteResult) -> None:
    """Display result of a single deletion."""
    if result.success:
        console.print(f"  [green]✓[/green] Deleted {result.path}")
    else:
        console.print(f"  [red]✗[/red] {result.path}: {result.error}")


def show_batch_result(result: BatchDeleteResult) -> None:
    """Display batch deletion counts."""
    console.print()
    table = Table(show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Deleted", f"[green]{result.deleted_count}[/green]")
    if result.failed_count > 0:
        table.add_row("[red]Failed[/red]", str(result.failed_count))
    console.print(table)

    for path, error in result.failures.items():
        console.print(f"  [red]✗[/red] {path}: {error}")


def show_cache_cleanup_result(result: CacheCleanupResult) -> None:
    if result.success:
        console.print(f"  [green]✓[/green] {result.action} cleaned")
    else:
        console.print(f"  [red]✗[/red] {result.action}: {result.error}")


def show_folders(title: str, entries: list[KnownFolderEntry]) -> None:
    """Display a list of measured known folders."""
    if not entries:
        console.print(f"[dim]{title}: nothing found[/dim]")
        return

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Path")

    for entry in entries:
        table.add_row(entry.name, entry.size_formatted, entry.path)

    console.print(table)
    total = sum(e.size_bytes for e in entries)
    console.print(f"[bold]Total: {format_bytes(total)}[/bold]")


def show_cleanup_sizes(sizes: dict[str, str]) -> None:
    """Display the named cache actions with their current sizes."""
    table = Table(title="Cache Actions", show_header=True, header_style="bold")
    table.add_column("Action", style="bold")
    table.add_column("Size", justify="right")
    for action, size in sizes.items():
        table.add_row(action, size)
    console.print(table)


def show_status(snapshot: DiskSnapshot) -> None:
    """Display quick disk status."""
    if snapshot.total_bytes <= 0:
        console.print("Disk Status: [dim]unavailable[/dim]")
        return

    used_percent = snapshot.used_percent
    if used_percent >= 90:
        status = "[red]CRITICAL[/red]"
    elif used_percent >= 75:
        status = "[yellow]WARNING[/yellow]"
    else:
        status = "[green]OK[/green]"

    color = usage_color(used_percent)
    console.print(f"Disk Status: {status}")
    console.print(f"  Total:     {snapshot.total_gb:.0f} GB")
    console.print(f"  Available: {snapshot.available_gb:.0f} GB")
    console.print(f"  Used:      [{color}]{used_percent:.0f}%[/{color}]")


def show_scanning_progress() -> Progress:
    """Create a spinner for long scans."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def confirm_action(message: str) -> bool:
    """Ask for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message)
