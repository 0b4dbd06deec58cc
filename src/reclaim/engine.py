"""Scan and cleanup orchestration for reclaim."""

import functools
import logging
import threading
import time
from typing import Callable

from reclaim.cache import DiskStatsCache, measure_disk
from reclaim.catalog import discover
from reclaim.cleaner import Cleaner
from reclaim.config import Settings
from reclaim.folders import measure_cleanup_sizes, measure_folders, measure_home_folders
from reclaim.locations import CACHE_FOLDERS, DEV_TOOL_FOLDERS
from reclaim.models import (
    BatchDeleteResult,
    CacheCleanupResult,
    DeleteResult,
    DiskSnapshot,
    KnownFolderEntry,
    ScanReport,
)
from reclaim.probe import ProbeRunner, run_probe
from reclaim.prober import probe_paths
from reclaim.staleness import classify

log = logging.getLogger(__name__)

SCAN_IN_PROGRESS = "Scan already in progress"


class ReclaimEngine:
    """Entry point used by the CLI and the sync adapter.

    Owns the probe runner, the disk-stats cache and the cleaner, so each
    engine instance is fully independent of any other.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        runner: ProbeRunner = run_probe,
        disk_cache: DiskStatsCache | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or Settings()
        self.runner = runner
        self.clock = clock
        self.disk_cache = disk_cache or DiskStatsCache(
            probe=functools.partial(measure_disk, self.settings.mount_point),
            ttl=self.settings.disk_ttl,
        )
        self.cleaner = Cleaner(
            home=self.home,
            disk_cache=self.disk_cache,
            runner=runner,
            marker=self.settings.target_name,
            delete_timeout=self.settings.delete_timeout,
            cache_delete_timeout=self.settings.cache_delete_timeout,
        )
        self._scan_lock = threading.Lock()

    @property
    def home(self) -> str:
        return str(self.settings.home_path)

    # -------------------------------------------------------------------------
    # Reclaimable units
    # -------------------------------------------------------------------------

    def discover(self, roots: list[str] | None = None, max_depth: int | None = None) -> list[str]:
        """Find reclaimable directories under the configured (or given) roots."""
        s = self.settings
        return discover(
            roots if roots is not None else s.expanded_roots(),
            s.target_name,
            max_depth if max_depth is not None else s.max_depth,
            runner=self.runner,
            timeout=s.find_timeout,
            max_output_bytes=s.find_max_output,
        )

    def scan_reclaimables(self) -> ScanReport:
        """
        Discover, measure and classify every reclaimable unit.

        Only one scan runs at a time per engine; a concurrent call returns a
        failed report immediately. Any unexpected error is reported in the
        result instead of raised.
        """
        if not self._scan_lock.acquire(blocking=False):
            return ScanReport.failed(SCAN_IN_PROGRESS)

        try:
            s = self.settings
            paths = self.discover()
            entries = probe_paths(
                paths,
                target_name=s.target_name,
                runner=self.runner,
                max_workers=s.max_workers,
                size_timeout=s.size_timeout,
                age_timeout=s.age_timeout,
            )
            now = self.clock()
            classified = [classify(entry, now, s.stale_days) for entry in entries]
            report = ScanReport.from_entries(classified)
            log.info(
                "Scan found %d %s (%s, %d stale)",
                report.count,
                s.target_name,
                report.total_human,
                report.stale_count,
            )
            return report
        except Exception as e:
            log.exception("Scan failed")
            return ScanReport.failed(str(e))
        finally:
            self._scan_lock.release()

    def delete_reclaimable(self, path: str) -> DeleteResult:
        """Delete a single reclaimable unit."""
        return self.cleaner.delete_one(path)

    def delete_stale_reclaimables(self, paths: list[str]) -> BatchDeleteResult:
        """Delete a batch of reclaimable units sequentially."""
        return self.cleaner.delete_many(paths)

    # -------------------------------------------------------------------------
    # Disk and caches
    # -------------------------------------------------------------------------

    def read_disk_snapshot(self) -> DiskSnapshot:
        """Current disk usage, served from cache while fresh."""
        return self.disk_cache.read()

    def cleanup_named_cache(self, action: str) -> CacheCleanupResult:
        """Purge one named cache."""
        return self.cleaner.cleanup_named_cache(action)

    def cleanup_all_caches(self) -> BatchDeleteResult:
        """Purge every named cache."""
        return self.cleaner.cleanup_all_caches()

    def measure_cache_folders(self) -> list[KnownFolderEntry]:
        """Sizes of well-known cache folders that exist and are non-empty."""
        return measure_folders(
            CACHE_FOLDERS,
            self.home,
            runner=self.runner,
            timeout=self.settings.cache_size_timeout,
            max_workers=self.settings.max_workers,
        )

    def measure_dev_tools(self) -> list[KnownFolderEntry]:
        """Sizes of developer-tool folders that exist and are non-empty."""
        return measure_folders(
            DEV_TOOL_FOLDERS,
            self.home,
            runner=self.runner,
            timeout=self.settings.devtool_size_timeout,
            max_workers=self.settings.max_workers,
        )

    def measure_home_folders(self) -> list[KnownFolderEntry]:
        """The largest folders directly under the home directory."""
        return measure_home_folders(
            self.home,
            runner=self.runner,
            limit=self.settings.home_folder_limit,
            timeout=self.settings.home_size_timeout,
            max_workers=self.settings.max_workers,
        )

    def cleanup_sizes(self) -> dict[str, str]:
        """Formatted size each named cache action would free."""
        return measure_cleanup_sizes(
            self.home,
            runner=self.runner,
            timeout=self.settings.cache_size_timeout,
        )
