"""Parallel size and age measurement of discovered directories."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable

from reclaim.models import ProbeError, ProbeResult, ScanEntry
from reclaim.probe import (
    DEFAULT_MAX_OUTPUT,
    ProbeRunner,
    du_command,
    parse_du_output,
    parse_epoch_output,
    run_probe,
    stat_command,
)

log = logging.getLogger(__name__)

SIZE_TIMEOUT = 5.0
AGE_TIMEOUT = 3.0
DEFAULT_WORKERS = 8


def _collect(future: Future, command: list[str]) -> ProbeResult:
    """Resolve a probe future, turning an unexpected runner error into a failure."""
    try:
        return future.result()
    except Exception as e:
        log.warning("Probe runner raised for %s: %s", command, e)
        return ProbeResult.failure(command, ProbeError.EXECUTION_FAILED, str(e))


def _size_from(result: ProbeResult) -> tuple[int, bool]:
    """Map a du probe to (size_bytes, size_known)."""
    if not result.ok:
        return 0, False
    return parse_du_output(result.output) * 1024, True


def _epoch_from(result: ProbeResult) -> int:
    """Map a stat probe to epoch seconds, 0 when unavailable."""
    if not result.ok:
        return 0
    return parse_epoch_output(result.output)


def probe_paths(
    paths: Iterable[str],
    target_name: str = "node_modules",
    runner: ProbeRunner = run_probe,
    max_workers: int = DEFAULT_WORKERS,
    size_timeout: float = SIZE_TIMEOUT,
    age_timeout: float = AGE_TIMEOUT,
) -> list[ScanEntry]:
    """
    Measure size and last-touch time of every path concurrently.

    Two independent probes run per path on a bounded thread pool. A failed
    probe only blanks its own field, so exactly one entry is returned per
    input path, in input order.

    Args:
        paths: Directories to measure
        target_name: Matched directory name, used to derive labels
        runner: Probe runner
        max_workers: Maximum concurrent probes
        size_timeout: Seconds allowed per du probe
        age_timeout: Seconds allowed per stat probe

    Returns:
        ScanEntry per path with size and age filled in (staleness not yet set)
    """
    unique_paths = list(dict.fromkeys(paths))
    if not unique_paths:
        return []

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        size_futures = {
            path: executor.submit(runner, du_command(path), size_timeout, DEFAULT_MAX_OUTPUT)
            for path in unique_paths
        }
        age_futures = {
            path: executor.submit(runner, stat_command(path), age_timeout, DEFAULT_MAX_OUTPUT)
            for path in unique_paths
        }

        entries = []
        for path in unique_paths:
            size_result = _collect(size_futures[path], du_command(path))
            age_result = _collect(age_futures[path], stat_command(path))

            size_bytes, size_known = _size_from(size_result)
            if not size_known:
                log.warning("Size unavailable for %s: %s", path, size_result.message)

            entries.append(
                ScanEntry(
                    path=path,
                    target_name=target_name,
                    size_bytes=size_bytes,
                    size_known=size_known,
                    last_touched_epoch=_epoch_from(age_result),
                )
            )

    return entries
