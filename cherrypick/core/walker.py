"""
Recursive directory walker: lists a remote directory, fans out one unit
of work per entry and joins the whole subtree before returning.
"""

import asyncio
from pathlib import Path
from typing import Dict, List

from ..infrastructure.error_handler import PartialFailureError
from ..infrastructure.logger import logger
from ..models import DownloadTask, RemoteEntry
from ..services import DownloadService, RemoteBackend
from .gate import ConcurrencyGate


class DirectoryWalker:
    """
    Materializes a remote subtree under a local destination.

    Only file downloads consume a gate permit; directory listings and
    nested walks are never gated, so an exhausted pool cannot block the
    listings needed to discover more work.
    """

    def __init__(
        self,
        backend: RemoteBackend,
        download_service: DownloadService,
        gate: ConcurrencyGate
    ):
        self.backend = backend
        self.download_service = download_service
        self.gate = gate
        self.listings = 0

    def _check_cancelled(self) -> None:
        if self.gate.cancelled:
            raise asyncio.CancelledError("fetch cancelled")

    async def download(self, task: DownloadTask) -> Path:
        """Materialize a single file while holding a gate permit."""

        async with self.gate.permit():
            self._check_cancelled()
            return await self.download_service.materialize(task)

    async def walk(
        self,
        owner: str,
        repo: str,
        reference: str,
        remote_path: str,
        local_destination: Path
    ) -> List[Path]:
        """
        Walk ``remote_path`` into ``local_destination``.

        Args:
            owner: Repository owner
            repo: Repository name
            reference: Branch, tag or commit
            remote_path: Directory to fetch, relative to the repository root
            local_destination: Local directory mirroring ``remote_path``

        Returns:
            Every local file written in this subtree

        Raises:
            DownloadError: If the listing of ``remote_path`` itself fails
            PartialFailureError: If any descendant failed; siblings still ran
            CancelledError: If the fetch was cancelled
        """
        self._check_cancelled()

        entries = await self.backend.list_directory(owner, repo, reference, remote_path)
        self.listings += 1
        logger.debug(f"Listed {remote_path or '/'}: {len(entries)} entries")

        units = []
        for entry in entries:
            if entry.is_file:
                units.append(self.download(DownloadTask(
                    owner=owner,
                    repo=repo,
                    reference=reference,
                    remote_path=entry.remote_path,
                    local_destination_dir=local_destination
                )))
            else:
                units.append(self.walk(
                    owner, repo, reference,
                    entry.remote_path,
                    local_destination / entry.name
                ))

        results = await asyncio.gather(*units, return_exceptions=True)
        return self._aggregate(entries, results)

    def _aggregate(self, entries: List[RemoteEntry], results: list) -> List[Path]:
        written: List[Path] = []
        failures: Dict[str, Exception] = {}
        cancelled = None

        for entry, result in zip(entries, results):
            if isinstance(result, asyncio.CancelledError):
                cancelled = result
            elif isinstance(result, PartialFailureError):
                failures.update(result.failures)
                written.extend(result.written)
            elif isinstance(result, Exception):
                logger.error(f"Failed to fetch {entry.remote_path}: {result}")
                failures[entry.remote_path] = result
            elif isinstance(result, BaseException):
                raise result
            elif entry.is_file:
                written.append(result)
            else:
                written.extend(result)

        # Cancellation overrides whatever else happened at this level
        if cancelled is not None:
            raise cancelled
        if failures:
            raise PartialFailureError(failures, written)
        return written


__all__ = [
    "DirectoryWalker",
]
