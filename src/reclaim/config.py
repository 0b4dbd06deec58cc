"""User configuration for reclaim."""

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

log = logging.getLogger(__name__)

CONFIG_DIR = Path(os.path.expanduser("~/.reclaim"))
CONFIG_FILE = CONFIG_DIR / "config.json"

ICLOUD_SYNC_DIR = "~/Library/Mobile Documents/iCloud~com~resourcemonitor~app/Documents"


def expand_path(path: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(path)))


def _default_search_roots() -> list[str]:
    return [
        "~",
        "~/Documents",
        "~/Desktop",
        "~/Projects",
        "~/Work",
        "~/Developer",
        "~/.gemini",
    ]


class Thresholds(BaseModel):
    """Alert thresholds for the synced device document."""

    disk_warning: int = Field(85, description="Disk usage percent for a warning")
    disk_critical: int = Field(95, description="Disk usage percent for a critical alert")
    memory_warning: int = Field(85, description="Memory usage percent for a warning")
    memory_critical: int = Field(95, description="Memory usage percent for a critical alert")
    cache_bytes: int = Field(10 * 1024**3, description="Cache size that suggests a cleanup")
    disk_low_bytes: int = Field(10 * 1024**3, description="Free space below which disk is low")


class Settings(BaseModel):
    """All tunables of the engine, the CLI and the sync adapter."""

    home: str = Field("~", description="Home directory used for known folders")
    search_roots: list[str] = Field(
        default_factory=_default_search_roots,
        description="Roots searched for reclaimable units",
    )
    target_name: str = Field("node_modules", description="Directory name of a reclaimable unit")
    max_depth: int = Field(6, ge=1, description="find -maxdepth for each root")
    stale_days: int = Field(14, ge=0, description="Entries untouched longer than this are stale")
    max_workers: int = Field(8, ge=1, description="Concurrent probes during a scan")

    find_timeout: float = Field(60.0, gt=0, description="Seconds allowed per root search")
    find_max_output: int = Field(10 * 1024 * 1024, gt=0, description="Max bytes of find output")
    size_timeout: float = Field(5.0, gt=0, description="Seconds allowed per du probe")
    age_timeout: float = Field(3.0, gt=0, description="Seconds allowed per stat probe")
    delete_timeout: float = Field(60.0, gt=0, description="Seconds allowed per rm probe")
    cache_delete_timeout: float = Field(30.0, gt=0, description="Seconds allowed per cache purge")
    cache_size_timeout: float = Field(3.0, gt=0, description="Seconds per cache folder du")
    devtool_size_timeout: float = Field(5.0, gt=0, description="Seconds per dev tool folder du")
    home_size_timeout: float = Field(5.0, gt=0, description="Seconds per home folder du")
    home_folder_limit: int = Field(8, ge=1, description="Largest home folders listed")

    disk_ttl: float = Field(30.0, ge=0, description="Seconds a disk snapshot stays fresh")
    mount_point: str = Field("/", description="Mount point measured for disk stats")

    sync_dir: str = Field(ICLOUD_SYNC_DIR, description="Shared folder for device documents")
    state_dir: str = Field("~/.reclaim", description="Local state and sync fallback folder")
    sync_interval: float = Field(60.0, gt=0, description="Seconds between sync cycles")
    sync_search_depth: int = Field(5, ge=1, description="Depth for the synced unit count")
    cpu_sample_interval: float = Field(0.5, ge=0, description="Seconds between CPU samples")
    thresholds: Thresholds = Field(default_factory=Thresholds)

    @field_validator("target_name")
    @classmethod
    def _plain_name(cls, value: str) -> str:
        if not value or "/" in value or value in (".", ".."):
            raise ValueError("target_name must be a plain directory name")
        return value

    @property
    def home_path(self) -> Path:
        return expand_path(self.home)

    def expanded_roots(self) -> list[str]:
        """Search roots with ~ and variables expanded."""
        return [str(expand_path(root)) for root in self.search_roots]


def load_settings(path: Path | None = None) -> Settings:
    """
    Load settings from a JSON file.

    Missing files yield defaults. Unreadable or invalid files are logged and
    also yield defaults, so a broken config never stops a scan.
    """
    config_path = path or CONFIG_FILE
    if not config_path.exists():
        return Settings()

    try:
        with open(config_path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        log.warning("Could not read config %s: %s", config_path, e)
        return Settings()

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        log.warning("Invalid config %s, using defaults: %s", config_path, e)
        return Settings()


def save_settings(settings: Settings, path: Path | None = None) -> bool:
    """Save settings to disk."""
    config_path = path or CONFIG_FILE
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            f.write(settings.model_dump_json(indent=2))
        return True
    except OSError as e:
        log.warning("Could not save config %s: %s", config_path, e)
        return False
