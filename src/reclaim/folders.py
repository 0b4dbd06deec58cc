"""Size measurement of well-known cache and developer-tool folders."""

import logging
import os
from concurrent.futures import ThreadPoolExecutor

from reclaim.locations import CACHE_ACTIONS, KnownFolder, cache_action_paths
from reclaim.models import KnownFolderEntry
from reclaim.probe import DEFAULT_MAX_OUTPUT, ProbeRunner, du_command, parse_du_output, run_probe
from reclaim.units import format_bytes

log = logging.getLogger(__name__)


def measure_kilobytes(path: str, runner: ProbeRunner = run_probe, timeout: float = 3.0) -> int:
    """Size of path in kilobytes; 0 if missing or the probe fails."""
    result = runner(du_command(path), timeout, DEFAULT_MAX_OUTPUT)
    if not result.ok:
        return 0
    return parse_du_output(result.output)


def measure_folders(
    folders: list[KnownFolder],
    home: str,
    runner: ProbeRunner = run_probe,
    timeout: float = 3.0,
    max_workers: int = 8,
) -> list[KnownFolderEntry]:
    """
    Measure a fixed list of folders in parallel.

    Folders that are missing, empty or could not be measured are dropped.

    Returns:
        Entries sorted by size, largest first
    """
    home = home.rstrip("/")
    targets = [(folder.name, f"{home}/{folder.relative_path}") for folder in folders]
    if not targets:
        return []

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        sizes = list(
            executor.map(lambda target: measure_kilobytes(target[1], runner, timeout), targets)
        )

    entries = [
        KnownFolderEntry(name=name, path=path, size_bytes=kb * 1024)
        for (name, path), kb in zip(targets, sizes)
        if kb > 0
    ]
    entries.sort(key=lambda e: e.size_bytes, reverse=True)
    return entries


def measure_home_folders(
    home: str,
    runner: ProbeRunner = run_probe,
    limit: int = 8,
    timeout: float = 5.0,
    max_workers: int = 8,
) -> list[KnownFolderEntry]:
    """
    The largest non-hidden entries directly under the home directory.

    Returns:
        At most ``limit`` entries, largest first; empty if home is unreadable
    """
    try:
        with os.scandir(home) as entries:
            names = sorted(e.name for e in entries if not e.name.startswith("."))
    except OSError as e:
        log.warning("Cannot list %s: %s", home, e)
        return []

    folders = [KnownFolder(name=name, relative_path=name) for name in names]
    return measure_folders(folders, home, runner, timeout, max_workers)[:limit]


def measure_cleanup_sizes(
    home: str,
    runner: ProbeRunner = run_probe,
    timeout: float = 3.0,
) -> dict[str, str]:
    """
    Estimate how much each named cache action would free.

    Returns:
        Dict of action key -> formatted size
    """
    sizes = {}
    for action in CACHE_ACTIONS:
        total_kb = sum(
            measure_kilobytes(path, runner, timeout) for path in cache_action_paths(action, home)
        )
        sizes[action] = format_bytes(total_kb * 1024)
    return sizes


def measure_total_bytes(
    paths: list[str],
    runner: ProbeRunner = run_probe,
    timeout: float = 30.0,
) -> int:
    """Sum of the sizes of paths in bytes, treating failures as 0."""
    return sum(measure_kilobytes(path, runner, timeout) for path in paths) * 1024
