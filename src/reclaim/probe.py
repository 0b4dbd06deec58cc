"""Bounded execution of external commands.

Every OS query or deletion the engine performs goes through :func:`run_probe`,
which enforces a timeout and an output-size bound and reports failures as a
:class:`~reclaim.models.ProbeResult` instead of raising. Commands are argv
lists, never shell strings, so paths with spaces or quotes need no escaping.
"""

import logging
import shlex
import subprocess
import sys
from typing import Callable

from reclaim.models import ProbeError, ProbeResult

log = logging.getLogger(__name__)

DEFAULT_MAX_OUTPUT = 1024 * 1024  # 1 MiB

# (command, timeout_seconds, max_output_bytes) -> ProbeResult
ProbeRunner = Callable[[list[str], float, int], ProbeResult]


def run_probe(
    command: list[str],
    timeout: float,
    max_output_bytes: int = DEFAULT_MAX_OUTPUT,
) -> ProbeResult:
    """
    Run one external command with a timeout and an output bound.

    Args:
        command: argv to execute
        timeout: Seconds before the process is killed
        max_output_bytes: Largest stdout accepted

    Returns:
        ProbeResult with stdout on success, or the failure kind and message.
        On a non-zero exit the captured stdout is still attached.
    """
    log.debug("probe (%.0fs): %s", timeout, shlex.join(command))

    try:
        result = subprocess.run(
            command,
            capture_output=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        log.debug("probe timed out after %.0fs: %s", timeout, command[0])
        return ProbeResult.failure(
            command, ProbeError.TIMEOUT, f"Command timed out after {timeout:g} seconds"
        )
    except (OSError, ValueError) as e:
        return ProbeResult.failure(command, ProbeError.EXECUTION_FAILED, str(e))

    if len(result.stdout) > max_output_bytes:
        return ProbeResult.failure(
            command,
            ProbeError.OVERFLOW,
            f"Output exceeded {max_output_bytes} bytes",
        )

    stdout = result.stdout.decode("utf-8", errors="replace")

    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        return ProbeResult.failure(
            command,
            ProbeError.EXECUTION_FAILED,
            stderr or f"Command exited with status {result.returncode}",
            output=stdout,
        )

    return ProbeResult.success(command, stdout)


# =============================================================================
# Command construction
# =============================================================================


def find_command(root: str, target_name: str, max_depth: int) -> list[str]:
    """List directories named target_name under root without descending into them."""
    return [
        "find",
        root,
        "-maxdepth",
        str(max_depth),
        "-type",
        "d",
        "-name",
        target_name,
        "-prune",
    ]


def du_command(path: str) -> list[str]:
    """Recursive size of path in kilobytes."""
    return ["du", "-sk", path]


def stat_command(path: str) -> list[str]:
    """Last metadata change of path as epoch seconds."""
    if sys.platform == "darwin":
        return ["stat", "-f", "%c", path]
    return ["stat", "-c", "%Z", path]


def remove_command(*paths: str) -> list[str]:
    """Recursive forced removal of one or more paths."""
    return ["rm", "-rf", "--", *paths]


# =============================================================================
# Output parsing
# =============================================================================


def parse_du_output(output: str) -> int:
    """Extract the kilobyte count from ``du -sk`` output (0 if unparseable)."""
    if not output or not isinstance(output, str):
        return 0
    parts = output.strip().split()
    if not parts:
        return 0
    try:
        return max(int(parts[0]), 0)
    except ValueError:
        return 0


def parse_epoch_output(output: str) -> int:
    """Extract an epoch-seconds value from ``stat`` output (0 if unparseable)."""
    if not output or not isinstance(output, str):
        return 0
    text = output.strip().split("\n")[0].strip()
    try:
        return max(int(text), 0)
    except ValueError:
        return 0
