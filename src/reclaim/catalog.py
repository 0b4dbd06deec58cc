"""Discovery of reclaimable directories across search roots.

Each root is searched with ``find ... -prune`` so a match is never descended
into, then all candidates are merged and deduplicated so that a directory
nested inside an already-found match is dropped.
"""

import logging
import os
from typing import Iterable

from reclaim.models import ProbeError
from reclaim.probe import ProbeRunner, find_command, run_probe

log = logging.getLogger(__name__)

FIND_TIMEOUT = 60.0
FIND_MAX_OUTPUT = 10 * 1024 * 1024  # 10 MiB


def should_exclude_path(path: str, seen: Iterable[str]) -> bool:
    """
    Check whether a candidate is a duplicate or lives inside a known match.

    Args:
        path: Candidate path
        seen: Paths already accepted

    Returns:
        True if the candidate must be skipped
    """
    if not path or not isinstance(path, str):
        return True
    for accepted in seen:
        if path == accepted or path.startswith(accepted + "/"):
            return True
    return False


def dedupe_paths(candidates: Iterable[str]) -> list[str]:
    """
    Reduce candidates to the minimal set of non-nested paths.

    Candidates are visited in sorted order, which puts every ancestor before
    its descendants, so the result does not depend on input order.
    """
    accepted: list[str] = []
    for raw in sorted(set(candidates)):
        path = raw.rstrip("/") or raw
        if should_exclude_path(path, accepted):
            continue
        accepted.append(path)
    return accepted


def find_in_root(
    root: str,
    target_name: str,
    max_depth: int,
    runner: ProbeRunner = run_probe,
    timeout: float = FIND_TIMEOUT,
    max_output_bytes: int = FIND_MAX_OUTPUT,
) -> list[str]:
    """
    Find directories named target_name under a single root.

    Missing or unreadable roots, timeouts and oversized output all yield an
    empty list. A non-zero exit that still printed matches (find reports
    unreadable subdirectories that way) keeps the matches it printed.
    """
    if not os.path.isdir(root):
        log.debug("Skipping missing search root %s", root)
        return []

    result = runner(find_command(root, target_name, max_depth), timeout, max_output_bytes)

    if not result.ok:
        if result.error == ProbeError.EXECUTION_FAILED and result.output.strip():
            log.debug("find under %s was partial: %s", root, result.message)
        else:
            log.warning("Search of %s failed (%s): %s", root, result.error, result.message)
            return []

    paths = []
    for line in result.output.splitlines():
        line = line.strip()
        if line and os.path.basename(line.rstrip("/")) == target_name:
            paths.append(line)
    return paths


def discover(
    roots: Iterable[str],
    target_name: str,
    max_depth: int,
    runner: ProbeRunner = run_probe,
    timeout: float = FIND_TIMEOUT,
    max_output_bytes: int = FIND_MAX_OUTPUT,
) -> list[str]:
    """
    Find every reclaimable directory under the given roots.

    Args:
        roots: Root directories (already expanded)
        target_name: Directory name to match, e.g. 'node_modules'
        max_depth: Maximum depth below each root
        runner: Probe runner used to execute find
        timeout: Seconds allowed per root
        max_output_bytes: Output bound per root

    Returns:
        Sorted list of unique, non-nested matching paths
    """
    candidates: list[str] = []
    for root in dict.fromkeys(roots):
        candidates.extend(
            find_in_root(root, target_name, max_depth, runner, timeout, max_output_bytes)
        )

    found = dedupe_paths(candidates)
    log.debug("Discovered %d %s directories in %d candidates", len(found), target_name, len(candidates))
    return found
