"""
Core data models API surface for CherryPick.

This file re-exports model classes from domain-specific modules so callers
can write `from cherrypick.models import X`.
"""

from .github import (
    EntryKind,
    RemoteEntry,
    Credentials,
)
from .download import (
    FetchStrategy,
    FetchStatus,
    FetchRequest,
    DownloadTask,
    FetchResult,
)
from .config import FetchConfig

__all__ = [
    # GitHub models
    "EntryKind",
    "RemoteEntry",
    "Credentials",
    # Download models
    "FetchStrategy",
    "FetchStatus",
    "FetchRequest",
    "DownloadTask",
    "FetchResult",
    # Config models
    "FetchConfig",
]
