"""Staleness classification for scan entries."""

import time

from reclaim.models import ScanEntry

SECONDS_PER_DAY = 24 * 60 * 60
STALE_AFTER_DAYS = 14


def days_since(epoch: int, now: float | None = None) -> int:
    """Whole days between epoch and now; 0 when epoch is unknown or in the future."""
    if isinstance(epoch, bool) or not isinstance(epoch, (int, float)) or epoch <= 0:
        return 0
    current = time.time() if now is None else now
    return max(int((current - epoch) // SECONDS_PER_DAY), 0)


def is_stale(days: int, threshold: int = STALE_AFTER_DAYS) -> bool:
    """An entry is stale once it has gone untouched for more than threshold days."""
    return days > threshold


def classify(
    entry: ScanEntry,
    now: float | None = None,
    threshold: int = STALE_AFTER_DAYS,
) -> ScanEntry:
    """Return a copy of entry with days_since_touch and is_stale filled in."""
    days = days_since(entry.last_touched_epoch, now)
    return entry.model_copy(update={"days_since_touch": days, "is_stale": is_stale(days, threshold)})
