"""
Shared fixtures: an in-memory backend standing in for a remote tree.
"""

import asyncio
from typing import Dict, List, Optional, Union

import pytest

from cherrypick.infrastructure.error_handler import NotFoundError
from cherrypick.models import EntryKind, RemoteEntry
from cherrypick.services import RemoteBackend


class FakeBackend(RemoteBackend):
    """
    Serves a nested dict as a remote tree.

    Directories are dicts, files are bytes. ``errors`` maps a remote path
    to the exception raised when it is listed or downloaded. With ``hold``,
    successful downloads set ``started`` and then wait for ``hold``.
    """

    def __init__(
        self,
        tree: dict,
        errors: Optional[Dict[str, Exception]] = None,
        delay: float = 0.0,
        hold: Optional[asyncio.Event] = None,
        started: Optional[asyncio.Event] = None
    ):
        self.tree = tree
        self.errors = errors or {}
        self.delay = delay
        self.hold = hold
        self.started = started
        self.list_calls: List[str] = []
        self.content_calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    def _lookup(self, path: str) -> Union[bytes, dict]:
        node: Union[bytes, dict] = self.tree
        for part in [p for p in path.split("/") if p]:
            if not isinstance(node, dict) or part not in node:
                raise NotFoundError(f"Not found: {path}")
            node = node[part]
        return node

    async def list_directory(self, owner, repo, reference, path) -> List[RemoteEntry]:
        self.list_calls.append(path)
        await asyncio.sleep(0)
        if path in self.errors:
            raise self.errors[path]

        node = self._lookup(path)
        if isinstance(node, bytes):
            return [RemoteEntry.from_path(path, EntryKind.FILE)]

        entries = []
        for name, child in node.items():
            child_path = f"{path}/{name}" if path else name
            kind = EntryKind.DIRECTORY if isinstance(child, dict) else EntryKind.FILE
            entries.append(RemoteEntry(name=name, remote_path=child_path, kind=kind))
        return entries

    async def get_file_content(self, owner, repo, reference, path) -> bytes:
        self.content_calls.append(path)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if path in self.errors:
                raise self.errors[path]
            if self.hold is not None:
                if self.started is not None:
                    self.started.set()
                await self.hold.wait()
            node = self._lookup(path)
            if not isinstance(node, bytes):
                raise NotFoundError(f"Not a file: {path}")
            return node
        finally:
            self.in_flight -= 1

    async def aclose(self) -> None:
        self.closed = True


def local_files(root) -> Dict[str, bytes]:
    """Map every file under ``root`` to its content, keyed by posix relative path."""

    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in root.rglob("*")
        if path.is_file()
    }


def remote_files(tree: dict, prefix: str = "") -> Dict[str, bytes]:
    """Flatten a tree dict into ``relative path -> content``."""

    files = {}
    for name, child in tree.items():
        path = f"{prefix}{name}"
        if isinstance(child, dict):
            files.update(remote_files(child, f"{path}/"))
        else:
            files[path] = child
    return files


@pytest.fixture
def docs_tree() -> dict:
    """``docs`` with a.md, b.md and sub/c.md, next to a root README."""

    return {
        "docs": {
            "a.md": b"# A",
            "b.md": b"# B",
            "sub": {"c.md": b"# C"},
        },
        "README.md": b"readme",
    }
