"""
Orchestrator for running complete fetches with a concurrency cap,
deadlines, cancellation and result reporting.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from ..infrastructure.error_handler import PartialFailureError
from ..infrastructure.logger import logger
from ..models import (
    DownloadTask, EntryKind, FetchRequest, FetchResult, FetchStatus
)
from ..services import DownloadService, RemoteBackend
from .gate import ConcurrencyGate
from .walker import DirectoryWalker



####
##      FETCH STATISTICS MODEL
#####
@dataclass
class FetchStatistics:
    """Detailed statistics for one fetch."""

    listings: int = 0
    downloaded_files: int = 0
    failed_files: int = 0
    total_bytes: int = 0
    peak_concurrency: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def duration_seconds(self) -> float:
        """Get total duration in seconds."""

        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return 0.0

    @property
    def success_rate(self) -> float:
        """Calculate success rate as percentage."""

        total_attempted = self.downloaded_files + self.failed_files
        if total_attempted > 0:
            return (self.downloaded_files / total_attempted) * 100.0
        return 0.0


@dataclass
class _ActiveFetch:
    result: FetchResult
    gate: ConcurrencyGate
    task: Optional[asyncio.Task] = None
    cancel_requested: bool = False


####
##      FETCH ORCHESTRATOR
#####
class FetchOrchestrator:
    """
    Runs fetch requests against a backend, each with its own
    concurrency gate, and turns their outcomes into FetchResults.
    """

    def __init__(
        self,
        backend: RemoteBackend,
        max_concurrent_downloads: int = 50
    ):
        if max_concurrent_downloads < 1:
            raise ValueError("max_concurrent_downloads must be positive")
        self.backend = backend
        self.max_concurrent_downloads = max_concurrent_downloads
        self._active: List[_ActiveFetch] = []
        self._last_statistics: Optional[FetchStatistics] = None

    async def execute_fetch(
        self,
        request: FetchRequest,
        timeout: Optional[float] = None
    ) -> FetchResult:
        """
        Execute one fetch.

        Args:
            request: What to fetch and where to put it
            timeout: Optional overall deadline in seconds

        Returns:
            FetchResult; COMPLETED, PARTIAL (with failed_files), FAILED
            (with error_message) or CANCELLED
        """
        logger.debug(f"Starting fetch for {request.display_name} into {request.local_root}")

        stats = FetchStatistics(start_time=datetime.now())
        result = FetchResult(request=request, status=FetchStatus.IN_PROGRESS)
        gate = ConcurrencyGate(self.max_concurrent_downloads)
        download_service = DownloadService(self.backend)
        walker = DirectoryWalker(self.backend, download_service, gate)

        active = _ActiveFetch(result=result, gate=gate)
        active.task = asyncio.ensure_future(self._run(walker, download_service, request))
        self._active.append(active)

        try:
            if timeout is not None:
                written = await asyncio.wait_for(active.task, timeout)
            else:
                written = await active.task
            result.downloaded_files = written
            result.mark_completed()

        except PartialFailureError as e:
            result.downloaded_files = e.written
            result.failed_files = {path: str(cause) for path, cause in e.failures.items()}
            result.mark_completed()
            logger.error(
                f"Fetch of {request.display_name} finished with "
                f"{len(e.failures)} failure(s)"
            )

        except asyncio.TimeoutError:
            gate.cancel()
            result.mark_cancelled(f"Timed out after {timeout}s")
            logger.error(f"Fetch of {request.display_name} timed out after {timeout}s")

        except asyncio.CancelledError:
            gate.cancel()
            if not active.cancel_requested:
                raise
            result.mark_cancelled()

        except Exception as e:
            logger.error(f"Fetch failed: {e}")
            result.mark_failed(str(e))

        finally:
            self._active.remove(active)
            stats.end_time = datetime.now()
            stats.listings = walker.listings
            stats.downloaded_files = len(result.downloaded_files)
            stats.failed_files = len(result.failed_files)
            stats.total_bytes = download_service.bytes_written
            stats.peak_concurrency = gate.peak_in_flight
            self._last_statistics = stats

        logger.debug(
            f"Fetch {result.status.value}: {stats.downloaded_files} downloaded, "
            f"{stats.failed_files} failed, {stats.total_bytes} bytes "
            f"in {stats.duration_seconds:.2f}s"
        )
        return result

    async def _run(
        self,
        walker: DirectoryWalker,
        download_service: DownloadService,
        request: FetchRequest
    ) -> List[Path]:
        await download_service.ensure_directory(request.local_root)

        if request.kind is EntryKind.FILE:
            task = DownloadTask(
                owner=request.owner,
                repo=request.repo,
                reference=request.reference,
                remote_path=request.remote_path,
                local_destination_dir=request.local_root
            )
            return [await walker.download(task)]

        return await walker.walk(
            request.owner,
            request.repo,
            request.reference,
            request.remote_path,
            request.local_root
        )

    async def execute_many(
        self,
        requests: Sequence[FetchRequest],
        parallel: bool = False,
        timeout: Optional[float] = None
    ) -> List[FetchResult]:
        """
        Execute several requests, one after the other or all at once.

        Each request gets an independent walk and gate; results keep the
        order of ``requests``.
        """
        if parallel:
            return list(await asyncio.gather(
                *(self.execute_fetch(request, timeout) for request in requests)
            ))

        results = []
        for request in requests:
            results.append(await self.execute_fetch(request, timeout))
        return results

    def cancel(self) -> List[FetchResult]:
        """
        Cancel every running fetch.

        Returns:
            The results of the fetches that were cancelled, empty when idle
        """
        if not self._active:
            logger.warning("No active fetch to cancel")
            return []

        cancelled = []
        for active in list(self._active):
            active.cancel_requested = True
            active.gate.cancel()
            if active.task is not None and not active.task.done():
                active.task.cancel()
            active.result.status = FetchStatus.CANCELLED
            cancelled.append(active.result)

        logger.info("Fetch cancelled by user")
        return cancelled

    @property
    def is_running(self) -> bool:
        return bool(self._active)

    def get_statistics(self) -> Optional[FetchStatistics]:
        """Statistics of the most recently finished fetch, if any."""

        return self._last_statistics


__all__ = [
    "FetchStatistics",
    "FetchOrchestrator",
]
