"""Time-bounded cache of the last disk usage measurement."""

import logging
import os
import shutil
import threading
import time
from typing import Callable

from reclaim.models import DiskSnapshot

log = logging.getLogger(__name__)

DISK_TTL = 30.0
MACOS_DATA_VOLUME = "/System/Volumes/Data"

DiskProbe = Callable[[], DiskSnapshot]


def measure_disk(mount_point: str = "/") -> DiskSnapshot:
    """
    Measure disk usage for a mount point.

    On macOS the root mount is a read-only system volume, so the data volume
    is measured instead when it exists.

    Raises:
        OSError: If the mount point cannot be measured
    """
    target = mount_point
    if mount_point == "/" and os.path.isdir(MACOS_DATA_VOLUME):
        target = MACOS_DATA_VOLUME

    usage = shutil.disk_usage(target)
    used_percent = (usage.used / usage.total) * 100 if usage.total > 0 else 0.0
    return DiskSnapshot(
        total_bytes=usage.total,
        available_bytes=usage.free,
        used_percent=round(used_percent, 1),
        captured_at_ms=int(time.time() * 1000),
    )


class DiskStatsCache:
    """Holds the last good disk snapshot for ``ttl`` seconds.

    The snapshot and its capture time are stored together and always replaced
    as one value, so a single lock is all the synchronisation needed. When a
    fresh probe fails the previous snapshot keeps being served.
    """

    def __init__(
        self,
        probe: DiskProbe | None = None,
        ttl: float = DISK_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._probe = probe or measure_disk
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._slot: tuple[DiskSnapshot | None, float] = (None, 0.0)

    def is_fresh(self) -> bool:
        snapshot, captured_at = self._slot
        return snapshot is not None and captured_at > 0 and (self._clock() - captured_at) < self._ttl

    def read(self) -> DiskSnapshot:
        """Return the cached snapshot if fresh, otherwise measure again."""
        with self._lock:
            snapshot, _ = self._slot
            if self.is_fresh():
                return snapshot

            now = self._clock()
            try:
                fresh = self._probe()
            except Exception as e:
                log.warning("Disk measurement failed: %s", e)
                return snapshot if snapshot is not None else DiskSnapshot()

            self._slot = (fresh, now)
            return fresh

    def invalidate(self) -> None:
        """Force the next read to measure again."""
        with self._lock:
            snapshot, _ = self._slot
            self._slot = (snapshot, 0.0)
