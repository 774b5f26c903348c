"""
Backend interface shared by every way of reading a remote tree.
"""

from abc import ABC, abstractmethod
from typing import List

from ..models import RemoteEntry


class RemoteBackend(ABC):
    """
    Lists remote directories and reads remote file content.

    Implementations own their network/process resources and release them
    in ``aclose``; they are usable as async context managers.
    """

    @abstractmethod
    async def list_directory(
        self,
        owner: str,
        repo: str,
        reference: str,
        path: str
    ) -> List[RemoteEntry]:
        """Return the immediate children of ``path`` at ``reference``."""

    @abstractmethod
    async def get_file_content(
        self,
        owner: str,
        repo: str,
        reference: str,
        path: str
    ) -> bytes:
        """Return the raw bytes of the file at ``path``."""

    async def aclose(self) -> None:
        """Release backend resources."""

    async def __aenter__(self) -> "RemoteBackend":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = [
    "RemoteBackend",
]
