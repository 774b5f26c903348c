"""
GitHub domain models for CherryPick.

This module contains data classes and enums describing remote tree
entries and the credentials used to reach them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional
from posixpath import basename


class EntryKind(Enum):
    """Kind of a node in a remote tree listing."""

    FILE = "file"
    DIRECTORY = "dir"

    @classmethod
    def from_api(cls, value: str) -> Optional["EntryKind"]:
        """Map the contents API ``type`` field; other types yield None."""

        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class RemoteEntry:
    """One child of a remote directory listing."""

    name: str
    remote_path: str
    kind: EntryKind

    @property
    def is_file(self) -> bool:
        return self.kind is EntryKind.FILE

    @classmethod
    def from_path(cls, remote_path: str, kind: EntryKind) -> "RemoteEntry":
        return cls(name=basename(remote_path), remote_path=remote_path, kind=kind)


@dataclass(frozen=True)
class Credentials:
    """Optional username/token pair used to authenticate remote calls."""

    username: Optional[str] = None
    token: Optional[str] = None

    def __repr__(self) -> str:
        masked = "***" if self.token else None
        return f"Credentials(username={self.username!r}, token={masked!r})"

    @property
    def is_anonymous(self) -> bool:
        return not self.token

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> Optional["Credentials"]:
        """Build credentials from GITHUB_USERNAME / GITHUB_TOKEN, if set."""

        username = environ.get("GITHUB_USERNAME") or None
        token = environ.get("GITHUB_TOKEN") or None
        if not username and not token:
            return None
        return cls(username=username, token=token)


__all__ = [
    "EntryKind",
    "RemoteEntry",
    "Credentials",
]
