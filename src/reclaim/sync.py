"""Mirror device stats to a shared folder and run queued remote commands.

The shared folder (an iCloud Drive container by default) is treated as a
plain key-value store of JSON files keyed by device id:

    device-<id>.json    latest stats, written every cycle
    commands-<id>.json  {"pending": [...], "processed": [...]}

Whatever syncs that folder between machines is outside this module.
"""

import json
import logging
import socket
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import psutil
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from reclaim.config import Settings, Thresholds, expand_path
from reclaim.engine import ReclaimEngine
from reclaim.folders import measure_total_bytes
from reclaim.locations import CACHE_SIZE_ROOTS
from reclaim.units import format_bytes

log = logging.getLogger(__name__)

DEVICE_ID_FILE = "device-id"

# (display name, substring of the process name)
EDITORS: list[tuple[str, str]] = [
    ("VS Code", "Code"),
    ("Cursor", "Cursor"),
    ("Antigravity", "Antigravity"),
]


# =============================================================================
# Wire models (camelCase on disk, shared with the mobile dashboard)
# =============================================================================


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class FormattedSizes(_WireModel):
    total: str
    used: str
    available: str


class UsageStats(_WireModel):
    """Disk or memory usage in bytes plus display strings."""

    total: int
    used: int
    available: int
    percent: int
    formatted: FormattedSizes

    @classmethod
    def from_bytes(cls, total: int, used: int, available: int, percent: float) -> "UsageStats":
        return cls(
            total=total,
            used=used,
            available=available,
            percent=int(round(percent)),
            formatted=FormattedSizes(
                total=format_bytes(total),
                used=format_bytes(used),
                available=format_bytes(available),
            ),
        )


class ProcessStat(_WireModel):
    name: str
    pid: int
    mem: int
    mem_formatted: str = Field(..., alias="memFormatted")
    cpu: str


class CacheStats(_WireModel):
    bytes: int
    formatted: str


class Alert(_WireModel):
    type: str
    value: int


class EditorStat(_WireModel):
    name: str
    mem: str
    cpu: str
    status: str
    is_running: bool = Field(..., alias="isRunning")


class DeviceStats(_WireModel):
    """The per-device document written to the shared folder."""

    device_id: str = Field(..., alias="deviceId")
    device_name: str = Field(..., alias="deviceName")
    timestamp: str = Field(..., description="ISO-8601 capture time")
    last_sync: int = Field(..., alias="lastSync", description="Epoch milliseconds")
    disk: Optional[UsageStats] = None
    memory: Optional[UsageStats] = None
    top_processes: list[ProcessStat] = Field(default_factory=list, alias="topProcesses")
    editors: list[EditorStat] = Field(default_factory=list)
    cache_size: Optional[CacheStats] = Field(None, alias="cacheSize")
    node_modules_count: int = Field(0, alias="nodeModulesCount")
    alerts: list[Alert] = Field(default_factory=list)


class RemoteCommand(_WireModel):
    """A cleanup request queued by another device."""

    type: str
    paths: Optional[list[str]] = None
    timestamp: Optional[float] = None


class CommandQueue(_WireModel):
    pending: list[RemoteCommand] = Field(default_factory=list)
    processed: list[RemoteCommand] = Field(default_factory=list)


# =============================================================================
# Storage
# =============================================================================


class SyncStore:
    """JSON documents in the shared folder, falling back to a local folder."""

    def __init__(self, directory: Path, fallback: Path) -> None:
        self.directory = directory
        self.fallback = fallback
        self._resolved: Path | None = None

    @property
    def root(self) -> Path:
        """The folder actually used, chosen on first access."""
        if self._resolved is None:
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                self._resolved = self.directory
            except OSError as e:
                log.info("Shared folder %s unavailable (%s), using %s", self.directory, e, self.fallback)
                self.fallback.mkdir(parents=True, exist_ok=True)
                self._resolved = self.fallback
        return self._resolved

    def read(self, key: str) -> dict | None:
        path = self.root / f"{key}.json"
        try:
            with open(path) as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, OSError) as e:
            log.warning("Could not read %s: %s", path, e)
            return None

    def write(self, key: str, document: dict) -> Path:
        path = self.root / f"{key}.json"
        tmp = path.with_suffix(".json.tmp")
        with open(tmp, "w") as f:
            json.dump(document, f, indent=2)
        tmp.replace(path)
        return path


def get_device_id(state_dir: Path) -> str:
    """Return this machine's device id, generating and persisting it once."""
    id_file = state_dir / DEVICE_ID_FILE
    try:
        existing = id_file.read_text().strip()
        if existing:
            return existing
    except OSError:
        pass

    device_id = str(uuid.uuid4())
    state_dir.mkdir(parents=True, exist_ok=True)
    id_file.write_text(device_id)
    log.info("Generated device id %s", device_id)
    return device_id


# =============================================================================
# Collection
# =============================================================================


def collect_memory_stats() -> UsageStats | None:
    try:
        mem = psutil.virtual_memory()
    except (psutil.Error, OSError) as e:
        log.warning("Memory stats unavailable: %s", e)
        return None
    return UsageStats.from_bytes(mem.total, mem.used, mem.available, mem.percent)


class ProcessSample(BaseModel):
    """One process as seen during a sampling window."""

    pid: int
    name: str
    rss: int = 0
    cpu: float = 0.0


def sample_processes(interval: float = 0.5) -> list[ProcessSample]:
    """
    Snapshot running processes with their memory and CPU use.

    psutil reports 0.0 CPU on the first call for a process, so every process
    is primed, then measured again after ``interval`` seconds.
    """
    procs = []
    for proc in psutil.process_iter(["pid", "name", "memory_info"]):
        try:
            proc.cpu_percent(None)
        except psutil.Error:
            continue
        procs.append(proc)

    time.sleep(interval)

    samples = []
    for proc in procs:
        try:
            cpu = proc.cpu_percent(None)
        except psutil.Error:
            continue
        info = proc.info
        samples.append(
            ProcessSample(
                pid=info["pid"],
                name=info.get("name") or "Unknown",
                rss=getattr(info.get("memory_info"), "rss", 0) or 0,
                cpu=cpu or 0.0,
            )
        )
    return samples


def collect_top_processes(samples: list[ProcessSample], limit: int = 5) -> list[ProcessStat]:
    """The processes using the most resident memory."""
    ranked = sorted((s for s in samples if s.rss > 0), key=lambda s: s.rss, reverse=True)
    return [
        ProcessStat(
            name=s.name,
            pid=s.pid,
            mem=s.rss,
            mem_formatted=format_bytes(s.rss),
            cpu=f"{s.cpu:.1f}",
        )
        for s in ranked[:limit]
    ]


def editor_status(cpu: float, running: bool) -> str:
    if not running:
        return "Offline"
    if cpu > 10:
        return "Compiling"
    if cpu > 2:
        return "Active"
    return "Idle"


def editor_stats(samples: list[ProcessSample]) -> list[EditorStat]:
    """Summed memory and CPU of every process belonging to each known editor."""
    stats = []
    for name, process_name in EDITORS:
        procs = [s for s in samples if process_name in s.name]
        rss = sum(s.rss for s in procs)
        cpu = sum(s.cpu for s in procs)
        running = bool(procs)
        stats.append(
            EditorStat(
                name=name,
                mem=f"{round(rss / 1024**2)}MB",
                cpu=f"{cpu:.1f}%",
                status=editor_status(cpu, running),
                is_running=running,
            )
        )
    return stats


def detect_alerts(stats: DeviceStats, thresholds: Thresholds) -> list[Alert]:
    """Derive the alert list from collected stats."""
    alerts = []

    if stats.disk:
        if stats.disk.percent >= thresholds.disk_critical:
            alerts.append(Alert(type="disk_critical", value=stats.disk.percent))
        elif stats.disk.percent >= thresholds.disk_warning:
            alerts.append(Alert(type="disk_warning", value=stats.disk.percent))
        if stats.disk.available < thresholds.disk_low_bytes:
            alerts.append(Alert(type="disk_low", value=stats.disk.available // 1024**3))

    if stats.memory:
        if stats.memory.percent >= thresholds.memory_critical:
            alerts.append(Alert(type="memory_critical", value=stats.memory.percent))
        elif stats.memory.percent >= thresholds.memory_warning:
            alerts.append(Alert(type="memory_warning", value=stats.memory.percent))

    if stats.cache_size and stats.cache_size.bytes >= thresholds.cache_bytes:
        alerts.append(Alert(type="cleanup_available", value=stats.cache_size.bytes // 1024**3))

    return alerts


def collect_stats(engine: ReclaimEngine, device_id: str, device_name: str) -> DeviceStats:
    """Gather everything the device document reports."""
    settings = engine.settings

    snapshot = engine.read_disk_snapshot()
    disk = None
    if snapshot.total_bytes > 0:
        disk = UsageStats.from_bytes(
            snapshot.total_bytes,
            snapshot.used_bytes,
            snapshot.available_bytes,
            snapshot.used_percent,
        )

    cache_bytes = measure_total_bytes(
        [f"{engine.home}/{rel}" for rel in CACHE_SIZE_ROOTS],
        runner=engine.runner,
        timeout=settings.find_timeout,
    )
    unit_count = len(engine.discover(roots=[engine.home], max_depth=settings.sync_search_depth))
    samples = sample_processes(settings.cpu_sample_interval)

    now = time.time()
    stats = DeviceStats(
        device_id=device_id,
        device_name=device_name,
        timestamp=datetime.fromtimestamp(now, tz=timezone.utc).isoformat(),
        last_sync=int(now * 1000),
        disk=disk,
        memory=collect_memory_stats(),
        top_processes=collect_top_processes(samples),
        editors=editor_stats(samples),
        cache_size=CacheStats(bytes=cache_bytes, formatted=format_bytes(cache_bytes)),
        node_modules_count=unit_count,
    )
    stats.alerts = detect_alerts(stats, settings.thresholds)
    return stats


# =============================================================================
# Remote commands
# =============================================================================


def execute_command(command: RemoteCommand, engine: ReclaimEngine) -> bool:
    """Run one remote command; False for unknown types."""
    log.info("Executing remote command %s", command.type)

    if command.type == "cleanup-caches":
        engine.cleanup_all_caches()
        return True

    if command.type == "cleanup-nodemodules":
        if command.paths:
            result = engine.delete_stale_reclaimables(command.paths)
            log.info(
                "Remote cleanup: %d deleted, %d failed",
                result.deleted_count,
                result.failed_count,
            )
        return True

    log.warning("Unknown remote command: %s", command.type)
    return False


def process_command_queue(store: SyncStore, device_id: str, engine: ReclaimEngine) -> int:
    """
    Execute every pending command and move the batch to processed.

    Returns:
        Number of commands that were pending
    """
    key = f"commands-{device_id}"
    document = store.read(key)
    if not document:
        return 0

    try:
        queue = CommandQueue.model_validate(document)
    except ValidationError as e:
        log.warning("Ignoring malformed command queue: %s", e)
        return 0

    if not queue.pending:
        return 0

    for command in queue.pending:
        execute_command(command, engine)

    drained = CommandQueue(pending=[], processed=queue.pending)
    store.write(key, drained.model_dump(by_alias=True, exclude_none=True))
    return len(queue.pending)


# =============================================================================
# Cycle
# =============================================================================


def make_store(settings: Settings) -> SyncStore:
    return SyncStore(expand_path(settings.sync_dir), expand_path(settings.state_dir))


def run_sync_cycle(
    engine: ReclaimEngine,
    store: SyncStore,
    device_id: str,
    device_name: str | None = None,
) -> DeviceStats:
    """Collect stats, publish them, then drain the command queue."""
    stats = collect_stats(engine, device_id, device_name or socket.gethostname())
    path = store.write(f"device-{device_id}", stats.model_dump(by_alias=True))
    log.info("Synced stats to %s", path)

    process_command_queue(store, device_id, engine)

    if stats.alerts:
        log.warning("Alerts: %s", ", ".join(a.type for a in stats.alerts))
    return stats


def run_daemon(engine: ReclaimEngine, once: bool = False) -> None:
    """Sync forever at the configured interval (or a single time)."""
    settings = engine.settings
    store = make_store(settings)
    device_id = None

    while True:
        try:
            if device_id is None:
                device_id = get_device_id(expand_path(settings.state_dir))
            run_sync_cycle(engine, store, device_id)
        except Exception:
            log.exception("Sync cycle failed")
        if once:
            return
        time.sleep(settings.sync_interval)
