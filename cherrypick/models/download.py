"""
Download domain models for CherryPick.

This module contains data classes and enums representing fetch requests,
per-file download tasks and fetch results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from .github import EntryKind


class FetchStrategy(Enum):
    """Backends able to list and read a remote tree."""

    API = "api"                 # Contents API listing + raw content download
    GIT_CLONE = "clone"         # Shallow sparse clone, then read the checkout


class FetchStatus(Enum):
    """Status enumeration for fetch operations."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class FetchRequest:
    """One top-level request: a remote path at a reference, and where to put it."""

    owner: str
    repo: str
    reference: str
    remote_path: str
    local_root: Path
    kind: EntryKind = EntryKind.DIRECTORY

    def __post_init__(self) -> None:
        if not self.owner or not self.repo:
            raise ValueError("Repository owner and name are required")
        if not self.reference:
            raise ValueError("A reference (branch, tag or commit) is required")
        # Frozen: normalise through object.__setattr__
        object.__setattr__(self, "remote_path", self.remote_path.strip("/"))
        if self.kind is EntryKind.FILE and not self.remote_path:
            raise ValueError("A file request needs a remote path")
        object.__setattr__(self, "local_root", Path(self.local_root))

    @property
    def display_name(self) -> str:
        location = f"{self.owner}/{self.repo}@{self.reference}"
        return f"{location}:{self.remote_path}" if self.remote_path else location


@dataclass(frozen=True)
class DownloadTask:
    """A single file to materialize into ``local_destination_dir``."""

    owner: str
    repo: str
    reference: str
    remote_path: str
    local_destination_dir: Path

    @property
    def target_path(self) -> Path:
        return self.local_destination_dir / Path(self.remote_path).name


@dataclass
class FetchResult:
    """Outcome of one top-level fetch."""

    request: FetchRequest
    status: FetchStatus = FetchStatus.PENDING

    downloaded_files: List[Path] = field(default_factory=list)
    failed_files: Dict[str, str] = field(default_factory=dict)

    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    @property
    def is_successful(self) -> bool:
        return self.status == FetchStatus.COMPLETED and not self.failed_files

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def mark_completed(self) -> None:
        self.completed_at = datetime.now()
        self.status = FetchStatus.PARTIAL if self.failed_files else FetchStatus.COMPLETED

    def mark_failed(self, message: str) -> None:
        self.completed_at = datetime.now()
        self.status = FetchStatus.FAILED
        self.error_message = message

    def mark_cancelled(self, message: str = "Fetch cancelled") -> None:
        self.completed_at = datetime.now()
        self.status = FetchStatus.CANCELLED
        self.error_message = message


__all__ = [
    "FetchStrategy",
    "FetchStatus",
    "FetchRequest",
    "DownloadTask",
    "FetchResult",
]
