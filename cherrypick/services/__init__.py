"""
Backends for reading remote trees and the service that writes files locally.
"""

from typing import Optional

from ..infrastructure.retry_manager import RetryManager
from ..models import Credentials, FetchConfig, FetchStrategy
from .base import RemoteBackend
from .download import DownloadService
from .git_clone import GitCloneService
from .github_api import GitHubAPIService


def create_backend(
    config: FetchConfig,
    credentials: Optional[Credentials] = None
) -> RemoteBackend:
    """Instantiate the backend selected by ``config.strategy``."""

    if config.strategy is FetchStrategy.GIT_CLONE:
        return GitCloneService(
            credentials=credentials,
            clone_base_url=config.clone_base_url
        )
    return GitHubAPIService(
        credentials=credentials,
        api_base_url=config.api_base_url,
        raw_base_url=config.raw_base_url,
        timeout=config.request_timeout,
        retry_manager=RetryManager(max_retries=config.max_retries)
    )


__all__ = [
    "RemoteBackend",
    "DownloadService",
    "GitHubAPIService",
    "GitCloneService",
    "create_backend",
]
