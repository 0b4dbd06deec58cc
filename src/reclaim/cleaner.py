"""Cleanup execution with safety checks for reclaim."""

import logging
from typing import Iterable

from reclaim.cache import DiskStatsCache
from reclaim.locations import cache_action_paths, cleanup_all_paths, is_valid_cleanup_action
from reclaim.models import BatchDeleteResult, CacheCleanupResult, CleanupError, DeleteResult
from reclaim.probe import DEFAULT_MAX_OUTPUT, ProbeRunner, remove_command, run_probe

log = logging.getLogger(__name__)

DELETE_TIMEOUT = 60.0
CACHE_DELETE_TIMEOUT = 30.0


def is_reclaimable_path(path: str, marker: str = "node_modules") -> bool:
    """
    Check if a path may be deleted as a reclaimable unit.

    The path must contain the marker and must not climb out of its parent
    with a '..' segment.

    Args:
        path: Path to check
        marker: Directory name every deletable path must contain

    Returns:
        True if safe to delete, False otherwise
    """
    if not path or not isinstance(path, str) or not marker:
        return False
    if marker not in path:
        return False
    if ".." in path.split("/"):
        return False
    return True


class Cleaner:
    """Deletes reclaimable units and named caches through the probe layer."""

    def __init__(
        self,
        home: str,
        disk_cache: DiskStatsCache | None = None,
        runner: ProbeRunner = run_probe,
        marker: str = "node_modules",
        delete_timeout: float = DELETE_TIMEOUT,
        cache_delete_timeout: float = CACHE_DELETE_TIMEOUT,
    ) -> None:
        self.home = home
        self.disk_cache = disk_cache
        self.runner = runner
        self.marker = marker
        self.delete_timeout = delete_timeout
        self.cache_delete_timeout = cache_delete_timeout

    def _invalidate(self) -> None:
        if self.disk_cache is not None:
            self.disk_cache.invalidate()

    def _remove(self, path: str) -> DeleteResult:
        """Validate and remove one path without touching the disk cache."""
        if not is_reclaimable_path(path, self.marker):
            log.warning("Refusing to delete %r: not a %s path", path, self.marker)
            return DeleteResult(
                path=str(path),
                success=False,
                error=CleanupError.INVALID_PATH.value,
                error_kind=CleanupError.INVALID_PATH,
            )

        result = self.runner(remove_command(path), self.delete_timeout, DEFAULT_MAX_OUTPUT)
        if not result.ok:
            log.warning("Failed to delete %s: %s", path, result.message)
            return DeleteResult(
                path=path,
                success=False,
                error=result.message or "Delete failed",
                error_kind=CleanupError.PROBE_FAILED,
            )

        log.info("Deleted %s", path)
        return DeleteResult(path=path, success=True)

    def delete_one(self, path: str) -> DeleteResult:
        """
        Delete a single reclaimable unit.

        Invalid paths are rejected before any command runs. The disk cache is
        invalidated only when the deletion succeeded.
        """
        result = self._remove(path)
        if result.success:
            self._invalidate()
        return result

    def delete_many(self, paths: Iterable[str]) -> BatchDeleteResult:
        """
        Delete reclaimable units one after another.

        A rejected or failed path is counted and the loop moves on. The disk
        cache is invalidated once after the batch.
        """
        deleted = 0
        failed = 0
        failures: dict[str, str] = {}

        for path in paths:
            result = self._remove(path)
            if result.success:
                deleted += 1
            else:
                failed += 1
                failures[str(path)] = result.error or "Delete failed"

        self._invalidate()
        log.info("Batch delete finished: %d deleted, %d failed", deleted, failed)
        return BatchDeleteResult(deleted_count=deleted, failed_count=failed, failures=failures)

    def cleanup_named_cache(self, action: str) -> CacheCleanupResult:
        """
        Remove every path belonging to a named cache action.

        Args:
            action: One of the keys in ``locations.CACHE_ACTIONS``

        Returns:
            CacheCleanupResult
        """
        if not is_valid_cleanup_action(action):
            return CacheCleanupResult(
                action=str(action),
                success=False,
                error=CleanupError.UNKNOWN_ACTION.value,
                error_kind=CleanupError.UNKNOWN_ACTION,
            )

        paths = cache_action_paths(action, self.home)
        result = self.runner(remove_command(*paths), self.cache_delete_timeout, DEFAULT_MAX_OUTPUT)
        if not result.ok:
            log.warning("Cache cleanup %s failed: %s", action, result.message)
            return CacheCleanupResult(
                action=action,
                success=False,
                error=result.message or "Cleanup failed",
                error_kind=CleanupError.PROBE_FAILED,
            )

        self._invalidate()
        log.info("Cleaned cache %s", action)
        return CacheCleanupResult(action=action, success=True)

    def cleanup_all_caches(self) -> BatchDeleteResult:
        """Remove every known cache path individually, ignoring failures."""
        deleted = 0
        failed = 0
        failures: dict[str, str] = {}

        for path in cleanup_all_paths(self.home):
            result = self.runner(remove_command(path), self.cache_delete_timeout, DEFAULT_MAX_OUTPUT)
            if result.ok:
                deleted += 1
            else:
                failed += 1
                failures[path] = result.message or "Cleanup failed"

        self._invalidate()
        return BatchDeleteResult(deleted_count=deleted, failed_count=failed, failures=failures)
