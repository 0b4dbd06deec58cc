"""Data models for reclaim."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from reclaim.units import format_bytes


class ProbeError(str, Enum):
    """Why an external probe did not produce usable output."""

    TIMEOUT = "timeout"
    OVERFLOW = "overflow"
    EXECUTION_FAILED = "execution_failed"


class CleanupError(str, Enum):
    """Why a deletion request was refused or failed."""

    INVALID_PATH = "InvalidPath"
    UNKNOWN_ACTION = "UnknownAction"
    PROBE_FAILED = "ProbeFailed"


class ProbeResult(BaseModel):
    """Outcome of one external command invocation."""

    model_config = ConfigDict(frozen=True)

    command: list[str] = Field(..., description="argv that was executed")
    ok: bool = Field(..., description="Whether the command completed successfully")
    output: str = Field("", description="Captured stdout (may be partial on failure)")
    error: Optional[ProbeError] = Field(None, description="Failure kind when ok is False")
    message: Optional[str] = Field(None, description="Failure detail (stderr or OS error)")

    @classmethod
    def success(cls, command: list[str], output: str) -> "ProbeResult":
        return cls(command=command, ok=True, output=output)

    @classmethod
    def failure(
        cls,
        command: list[str],
        error: ProbeError,
        message: str,
        output: str = "",
    ) -> "ProbeResult":
        return cls(command=command, ok=False, error=error, message=message, output=output)


class ScanEntry(BaseModel):
    """One discovered reclaimable unit, e.g. a project's node_modules folder."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Absolute path of the matched directory")
    target_name: str = Field("node_modules", description="Directory name that was matched")
    size_bytes: int = Field(0, ge=0, description="Recursive size in bytes; 0 when unknown")
    size_known: bool = Field(True, description="False when the size probe failed")
    last_touched_epoch: int = Field(0, ge=0, description="Last metadata change; 0 when unknown")
    days_since_touch: int = Field(0, ge=0, description="Whole days since last touch")
    is_stale: bool = Field(False, description="Untouched for longer than the threshold")

    @property
    def parent_path(self) -> str:
        """Path of the directory that owns the matched folder."""
        suffix = "/" + self.target_name
        if self.path.endswith(suffix):
            return self.path[: -len(suffix)]
        return self.path

    @property
    def label(self) -> str:
        """Project name shown to the user."""
        name = self.parent_path.rstrip("/").split("/")[-1]
        return name or "Unknown"

    @property
    def size_human(self) -> str:
        return format_bytes(self.size_bytes)


class ScanReport(BaseModel):
    """Result of a full reclaimable-unit scan."""

    success: bool = Field(True, description="False when the scan itself failed")
    entries: list[ScanEntry] = Field(default_factory=list)
    total_bytes: int = Field(0, description="Sum of entry sizes")
    count: int = Field(0, description="Number of entries")
    stale_count: int = Field(0, description="Number of stale entries")
    error: Optional[str] = Field(None, description="Error message if the scan failed")

    @classmethod
    def from_entries(cls, entries: list[ScanEntry]) -> "ScanReport":
        ranked = sorted(entries, key=lambda e: e.size_bytes, reverse=True)
        return cls(
            success=True,
            entries=ranked,
            total_bytes=sum(e.size_bytes for e in ranked),
            count=len(ranked),
            stale_count=sum(1 for e in ranked if e.is_stale),
        )

    @classmethod
    def failed(cls, error: str) -> "ScanReport":
        return cls(success=False, error=error)

    @property
    def stale_entries(self) -> list[ScanEntry]:
        return [e for e in self.entries if e.is_stale]

    @property
    def stale_bytes(self) -> int:
        return sum(e.size_bytes for e in self.stale_entries)

    @property
    def total_human(self) -> str:
        return format_bytes(self.total_bytes)


class KnownFolderEntry(BaseModel):
    """Size of one well-known cache or developer-tool folder."""

    name: str = Field(..., description="Display name, e.g. 'npm Cache'")
    path: str = Field(..., description="Absolute folder path")
    size_bytes: int = Field(0, ge=0, description="Measured size in bytes")

    @property
    def size_formatted(self) -> str:
        return format_bytes(self.size_bytes)


class DiskSnapshot(BaseModel):
    """Point-in-time disk usage for the main volume."""

    model_config = ConfigDict(frozen=True)

    total_bytes: int = Field(0, ge=0)
    available_bytes: int = Field(0, ge=0)
    used_percent: float = Field(0.0, ge=0)
    captured_at_ms: int = Field(0, description="Epoch milliseconds when measured")

    @property
    def used_bytes(self) -> int:
        return max(self.total_bytes - self.available_bytes, 0)

    @property
    def total_gb(self) -> float:
        return self.total_bytes / (1024**3)

    @property
    def available_gb(self) -> float:
        return self.available_bytes / (1024**3)


class DeleteResult(BaseModel):
    """Result of deleting a single reclaimable unit."""

    path: str = Field(..., description="Path that was requested")
    success: bool = Field(..., description="Whether the deletion succeeded")
    error: Optional[str] = Field(None, description="'InvalidPath' or the failure message")
    error_kind: Optional[CleanupError] = Field(None, description="Failure category")


class BatchDeleteResult(BaseModel):
    """Aggregate counts of a sequential batch deletion."""

    deleted_count: int = Field(0, ge=0)
    failed_count: int = Field(0, ge=0)
    failures: dict[str, str] = Field(
        default_factory=dict, description="Failed path -> error message"
    )


class CacheCleanupResult(BaseModel):
    """Result of purging a named cache."""

    action: str = Field(..., description="Cache key that was requested")
    success: bool = Field(..., description="Whether the purge succeeded")
    error: Optional[str] = Field(None, description="'UnknownAction' or the failure message")
    error_kind: Optional[CleanupError] = Field(None, description="Failure category")
