"""
Turns GitHub web URLs into fetch requests.
"""

from pathlib import Path
from typing import List, Union
from urllib.parse import unquote, urlparse

from ..infrastructure.error_handler import ParseError
from ..models import EntryKind, FetchRequest


GITHUB_HOSTS = ("github.com", "www.github.com")
EXPECTED_FORMAT = "https://github.com/<owner>/<repo>[/tree|blob/<ref>/<path>]"


def split_urls(value: str) -> List[str]:
    """Split a comma-separated list of URLs, dropping blanks."""

    return [url.strip() for url in value.split(",") if url.strip()]


def parse_github_url(
    url: str,
    local_root: Union[str, Path],
    default_branch: str = "main"
) -> FetchRequest:
    """
    Parse a repository, directory (``/tree/``) or file (``/blob/``) URL.

    Without ``tree``/``blob`` everything after the repository name is taken
    as a path at ``default_branch``. The reference is a single path segment,
    so branch names containing ``/`` need the commit SHA or a tag instead.

    Raises:
        ParseError: If the URL is not a well-formed GitHub URL
    """
    raw = url.strip()
    if not raw:
        raise ParseError("Empty URL")
    if "://" not in raw:
        raw = f"https://{raw}"

    parsed = urlparse(raw)
    if parsed.netloc.lower() not in GITHUB_HOSTS:
        raise ParseError(f"Not a GitHub URL: {url!r}. Expected format: {EXPECTED_FORMAT}")

    parts = [unquote(p) for p in parsed.path.split("/") if p]
    if len(parts) < 2:
        raise ParseError(f"Invalid URL {url!r}. Expected format: {EXPECTED_FORMAT}")

    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[:-4]
    rest = parts[2:]

    kind = EntryKind.DIRECTORY
    if rest and rest[0] in ("tree", "blob"):
        if len(rest) < 2:
            raise ParseError(f"Missing reference after /{rest[0]}/ in {url!r}")
        if rest[0] == "blob":
            kind = EntryKind.FILE
            if len(rest) < 3:
                raise ParseError(f"Missing file path in {url!r}")
        reference = rest[1]
        remote_path = "/".join(rest[2:])
    else:
        reference = default_branch
        remote_path = "/".join(rest)

    try:
        return FetchRequest(
            owner=owner,
            repo=repo,
            reference=reference,
            remote_path=remote_path,
            local_root=Path(local_root),
            kind=kind
        )
    except ValueError as e:
        raise ParseError(f"Invalid URL {url!r}: {e}", e) from e


__all__ = [
    "split_urls",
    "parse_github_url",
]
