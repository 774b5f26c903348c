"""
Clone-then-filter backend.

Makes a shallow, blob-less, sparse clone of the repository at the
requested reference and serves listings and file content from the
checkout on disk.
"""

import asyncio
import os
import shutil
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple
from urllib.parse import quote

from ..infrastructure.error_handler import (
    AUTH_HINT, AuthError, DownloadError, FilesystemError, NotFoundError,
    TransportError
)
from ..infrastructure.logger import logger
from ..models import Credentials, EntryKind, RemoteEntry
from ..models.config import DEFAULT_CLONE_BASE_URL
from .base import RemoteBackend


CheckoutKey = Tuple[str, str, str]

_AUTH_MARKERS = (
    "authentication failed",
    "could not read username",
    "permission denied",
    "terminal prompts disabled",
)
_NOT_FOUND_MARKERS = (
    "not found",
    "remote branch",
    "did not match any",
)


class GitCommandError(DownloadError):
    """A git subprocess exited with a non-zero status."""

    def __init__(self, args: List[str], returncode: int, stderr: str):
        self.args_list = args
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"git {' '.join(args)} exited with {returncode}: {stderr.strip()}")


def classify_git_error(error: GitCommandError, what: str) -> DownloadError:
    """Map git's stderr to the fetch error taxonomy."""

    stderr = error.stderr.lower()
    if any(marker in stderr for marker in _AUTH_MARKERS):
        return AuthError(f"Access denied for {what}. {AUTH_HINT}", error)
    if any(marker in stderr for marker in _NOT_FOUND_MARKERS):
        return NotFoundError(f"Not found: {what}", error)
    return TransportError(f"git failed for {what}", error)


class _Checkout:
    """One sparse working tree and the patterns already checked out."""

    def __init__(self, root: Path):
        self.root = root
        self.patterns: Set[str] = set()
        self.full = False
        self.lock = asyncio.Lock()

    def covers(self, path: str) -> bool:
        if self.full:
            return True
        return any(path == p or path.startswith(p + "/") for p in self.patterns)


class GitCloneService(RemoteBackend):
    """
    Serves a remote tree from a local sparse clone.

    One clone is made per (owner, repo, reference); paths outside the
    current sparse set are added on demand. Temporary clones are removed
    by ``aclose``.
    """

    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        clone_base_url: str = DEFAULT_CLONE_BASE_URL,
        git_executable: str = "git",
        workdir: Optional[Path] = None
    ):
        self.credentials = credentials
        self.clone_base_url = clone_base_url.rstrip('/')
        self.git_executable = git_executable
        self._workdir = workdir
        self._tempdir: Optional[Path] = None
        self._checkouts: Dict[CheckoutKey, _Checkout] = {}
        self._registry_lock: Optional[asyncio.Lock] = None

    def _clone_url(self, owner: str, repo: str) -> str:
        base = self.clone_base_url
        if self.credentials is not None and self.credentials.token:
            scheme, _, rest = base.partition("://")
            user = quote(self.credentials.username or "x-access-token", safe="")
            token = quote(self.credentials.token, safe="")
            base = f"{scheme}://{user}:{token}@{rest}"
        return f"{base}/{owner}/{repo}.git"

    async def _run_git(self, *args: str, cwd: Optional[Path] = None) -> str:
        command = [self.git_executable, *args]
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(cwd) if cwd else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, "GIT_TERMINAL_PROMPT": "0"}
            )
        except FileNotFoundError as e:
            raise TransportError(f"git executable not found: {self.git_executable}", e) from e

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise

        if process.returncode != 0:
            # Never echo the credential-bearing clone URL
            safe_args = [a if "@" not in a else "<remote>" for a in args]
            raise GitCommandError(safe_args, process.returncode, stderr.decode(errors="replace"))
        return stdout.decode(errors="replace")

    def _base_dir(self) -> Path:
        if self._workdir is not None:
            self._workdir.mkdir(parents=True, exist_ok=True)
            return self._workdir
        if self._tempdir is None:
            self._tempdir = Path(tempfile.mkdtemp(prefix="cherrypick-"))
        return self._tempdir

    async def _clone(self, owner: str, repo: str, reference: str) -> _Checkout:
        root = self._base_dir() / f"{owner}__{repo}__{reference.replace('/', '_')}"
        if root.exists():
            shutil.rmtree(root)

        logger.debug(f"Cloning {owner}/{repo}@{reference} into {root}")
        await self._run_git(
            "clone", "--depth", "1", "--filter=blob:none", "--sparse",
            "--branch", reference, self._clone_url(owner, repo), str(root)
        )
        return _Checkout(root)

    async def _ensure_checkout(
        self,
        owner: str,
        repo: str,
        reference: str,
        path: str
    ) -> Path:
        """Return a working tree in which ``path`` is checked out."""

        key = (owner, repo, reference)
        what = f"{owner}/{repo}@{reference}"
        if self._registry_lock is None:
            self._registry_lock = asyncio.Lock()

        try:
            async with self._registry_lock:
                checkout = self._checkouts.get(key)
                if checkout is None:
                    checkout = await self._clone(owner, repo, reference)
                    self._checkouts[key] = checkout

            async with checkout.lock:
                if not checkout.covers(path):
                    if path:
                        patterns = sorted(checkout.patterns | {path})
                        await self._run_git(
                            "sparse-checkout", "set", "--no-cone",
                            *(f"/{p}" for p in patterns),
                            cwd=checkout.root
                        )
                        checkout.patterns.add(path)
                    else:
                        await self._run_git("sparse-checkout", "disable", cwd=checkout.root)
                        checkout.full = True
        except GitCommandError as e:
            raise classify_git_error(e, what) from e

        return checkout.root

    async def list_directory(
        self,
        owner: str,
        repo: str,
        reference: str,
        path: str
    ) -> List[RemoteEntry]:
        path = path.strip('/')
        root = await self._ensure_checkout(owner, repo, reference, path)
        target = root / path if path else root

        if target.is_file():
            return [RemoteEntry.from_path(path, EntryKind.FILE)]
        if not target.is_dir():
            raise NotFoundError(f"Not found: {owner}/{repo}@{reference}:{path or '/'}")

        entries = []
        for child in sorted(target.iterdir()):
            if child.name == ".git":
                continue
            child_path = f"{path}/{child.name}" if path else child.name
            if child.is_symlink():
                logger.debug(f"Skipping {child_path} (type: symlink)")
                continue
            kind = EntryKind.DIRECTORY if child.is_dir() else EntryKind.FILE
            entries.append(RemoteEntry(name=child.name, remote_path=child_path, kind=kind))
        return entries

    async def get_file_content(
        self,
        owner: str,
        repo: str,
        reference: str,
        path: str
    ) -> bytes:
        path = path.strip('/')
        root = await self._ensure_checkout(owner, repo, reference, path)
        source = root / path
        if not source.is_file():
            raise NotFoundError(f"Not found: {owner}/{repo}@{reference}:{path}")
        try:
            return source.read_bytes()
        except OSError as e:
            raise FilesystemError(f"Failed to read {source}", e) from e

    async def aclose(self) -> None:
        self._checkouts.clear()
        if self._tempdir is not None:
            shutil.rmtree(self._tempdir, ignore_errors=True)
            self._tempdir = None


__all__ = [
    "GitCloneService",
    "GitCommandError",
    "classify_git_error",
]
