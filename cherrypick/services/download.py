"""
File materialization: fetch one remote file and write it to disk.
"""

from pathlib import Path

import aiofiles
import aiofiles.os

from ..infrastructure.error_handler import FilesystemError
from ..infrastructure.logger import logger
from ..models import DownloadTask
from .base import RemoteBackend


class DownloadService:
    """
    Writes remote files into local directories.

    The file name is the base name of the remote path; the containing
    directory is chosen by the caller and already encodes the layout.
    """

    def __init__(self, backend: RemoteBackend):
        self.backend = backend
        self.bytes_written = 0

    async def ensure_directory(self, path: Path) -> Path:
        """Create ``path`` and any missing parents."""

        try:
            await aiofiles.os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Failed to create directory {path}", e) from e
        return path

    async def save_content(self, content: bytes, target_path: Path) -> int:
        """
        Write ``content`` to ``target_path``, overwriting any existing file.

        The file is closed before returning. A failed write leaves whatever
        was written in place and raises FilesystemError.
        """
        try:
            async with aiofiles.open(target_path, 'wb') as f:
                written = await f.write(content)
        except OSError as e:
            raise FilesystemError(f"Failed to write {target_path}", e) from e
        return written

    async def materialize(self, task: DownloadTask) -> Path:
        """
        Download ``task.remote_path`` into ``task.local_destination_dir``.

        Returns:
            The written local path
        """
        content = await self.backend.get_file_content(
            task.owner, task.repo, task.reference, task.remote_path
        )

        await self.ensure_directory(task.local_destination_dir)

        target_path = task.target_path
        self.bytes_written += await self.save_content(content, target_path)

        logger.info(f"Downloaded: {target_path}")
        return target_path


__all__ = [
    "DownloadService",
]
