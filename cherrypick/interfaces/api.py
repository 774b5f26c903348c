"""
Python API for fetching GitHub subtrees.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..core import FetchOrchestrator, FetchStatistics, parse_github_url
from ..infrastructure.logger import logger
from ..models import (
    Credentials, EntryKind, FetchConfig, FetchRequest, FetchResult
)
from ..services import RemoteBackend, create_backend


class CherryPicker:
    """
    High-level API for fetching directories and files from GitHub.

    Example:
        >>> async with CherryPicker(credentials=Credentials("me", "ghp_...")) as picker:
        ...     result = await picker.fetch_url(
        ...         "https://github.com/octo/repo/tree/main/docs", Path("out")
        ...     )
        ...     print(result.status)
    """

    def __init__(
        self,
        config: Optional[FetchConfig] = None,
        credentials: Optional[Credentials] = None,
        backend: Optional[RemoteBackend] = None,
        verbose: bool = False
    ):
        """
        Args:
            config: Fetch configuration; defaults to ``FetchConfig()``
            credentials: Optional username/token for private repositories
            backend: Explicit backend, overriding ``config.strategy``
            verbose: Enable DEBUG logging
        """
        self.config = config or FetchConfig()
        self.credentials = credentials
        self.verbose = verbose
        logger.setLevel(logging.DEBUG if verbose else logging.INFO)

        self.backend = backend or create_backend(self.config, credentials)
        self.orchestrator = FetchOrchestrator(
            self.backend,
            max_concurrent_downloads=self.config.max_concurrent_downloads
        )

    def set_verbose(self, verbose: bool) -> None:
        """Switch DEBUG logging on or off."""

        self.verbose = verbose
        logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    def build_request(
        self,
        url: str,
        destination: Optional[Union[str, Path]] = None
    ) -> FetchRequest:
        """Parse ``url`` into a request rooted at ``destination``."""

        return parse_github_url(
            url,
            destination if destination is not None else self.config.download_dir,
            default_branch=self.config.default_branch
        )

    async def fetch(self, request: FetchRequest) -> FetchResult:
        """Fetch one request within the configured deadline."""

        return await self.orchestrator.execute_fetch(request, timeout=self.config.timeout)

    async def fetch_directory(
        self,
        owner: str,
        repo: str,
        remote_path: str,
        destination: Union[str, Path],
        reference: Optional[str] = None
    ) -> FetchResult:
        request = FetchRequest(
            owner=owner,
            repo=repo,
            reference=reference or self.config.default_branch,
            remote_path=remote_path,
            local_root=Path(destination)
        )
        return await self.fetch(request)

    async def fetch_file(
        self,
        owner: str,
        repo: str,
        remote_path: str,
        destination: Union[str, Path],
        reference: Optional[str] = None
    ) -> FetchResult:
        request = FetchRequest(
            owner=owner,
            repo=repo,
            reference=reference or self.config.default_branch,
            remote_path=remote_path,
            local_root=Path(destination),
            kind=EntryKind.FILE
        )
        return await self.fetch(request)

    async def fetch_url(
        self,
        url: str,
        destination: Optional[Union[str, Path]] = None
    ) -> FetchResult:
        """
        Fetch a repository, ``/tree/`` or ``/blob/`` URL.

        Raises:
            ParseError: If the URL is malformed
        """
        return await self.fetch(self.build_request(url, destination))

    async def fetch_urls(
        self,
        urls: Sequence[str],
        destination: Optional[Union[str, Path]] = None,
        parallel: bool = False
    ) -> List[FetchResult]:
        """
        Fetch several URLs. Every URL is parsed before any work begins, so
        one malformed URL aborts the whole batch.
        """
        requests = [self.build_request(url, destination) for url in urls]
        return await self.fetch_many(requests, parallel=parallel)

    async def fetch_many(
        self,
        requests: Sequence[FetchRequest],
        parallel: bool = False
    ) -> List[FetchResult]:
        return await self.orchestrator.execute_many(
            requests, parallel=parallel, timeout=self.config.timeout
        )

    def cancel_current_fetch(self) -> List[FetchResult]:
        """Cancel every running fetch; returns their results."""

        return self.orchestrator.cancel()

    def get_statistics(self) -> Optional[FetchStatistics]:
        return self.orchestrator.get_statistics()

    async def aclose(self) -> None:
        await self.backend.aclose()

    async def __aenter__(self) -> "CherryPicker":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = [
    "CherryPicker",
]
