"""
Configuration models for CherryPick fetches.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .download import FetchStrategy


DEFAULT_API_BASE_URL = "https://api.github.com"
DEFAULT_RAW_BASE_URL = "https://raw.githubusercontent.com"
DEFAULT_CLONE_BASE_URL = "https://github.com"


@dataclass
class FetchConfig:
    """
    Unified configuration for subtree fetches.

    Combines the concurrency cap, network settings and backend choice.
    """

    # Concurrency and deadlines
    max_concurrent_downloads: int = 50
    timeout: Optional[float] = None  # Overall deadline per request, seconds
    request_timeout: float = 30.0
    max_retries: int = 3

    # Request defaults
    default_branch: str = "main"
    download_dir: Path = field(default_factory=lambda: Path("cherrypicked"))

    # Backend
    strategy: FetchStrategy = FetchStrategy.API
    api_base_url: str = DEFAULT_API_BASE_URL
    raw_base_url: str = DEFAULT_RAW_BASE_URL
    clone_base_url: str = DEFAULT_CLONE_BASE_URL

    def __post_init__(self) -> None:
        if self.max_concurrent_downloads <= 0:
            raise ValueError("max_concurrent_downloads must be positive")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        self.download_dir = Path(self.download_dir)

    @classmethod
    def from_env(cls, environ: Mapping[str, str], **overrides) -> "FetchConfig":
        """
        Build a config from CHERRYPICK_* environment variables.

        Explicit keyword overrides win over the environment; None values
        are ignored.
        """
        values = {}
        if environ.get("CHERRYPICK_DOWNLOAD_DIR"):
            values["download_dir"] = Path(environ["CHERRYPICK_DOWNLOAD_DIR"])
        if environ.get("CHERRYPICK_MAX_CONCURRENCY"):
            values["max_concurrent_downloads"] = int(environ["CHERRYPICK_MAX_CONCURRENCY"])
        if environ.get("CHERRYPICK_BACKEND"):
            values["strategy"] = FetchStrategy(environ["CHERRYPICK_BACKEND"])
        if environ.get("CHERRYPICK_DEFAULT_BRANCH"):
            values["default_branch"] = environ["CHERRYPICK_DEFAULT_BRANCH"]

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


__all__ = [
    "FetchConfig",
]
