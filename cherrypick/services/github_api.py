"""
GitHub REST backend: contents API listings and raw content downloads.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from ..infrastructure.error_handler import (
    TransportError, handle_api_error, raise_for_status
)
from ..infrastructure.logger import logger
from ..infrastructure.retry_manager import RetryManager
from ..models import Credentials, EntryKind, RemoteEntry
from ..models.config import DEFAULT_API_BASE_URL, DEFAULT_RAW_BASE_URL
from .base import RemoteBackend


USER_AGENT = "cherrypick"


class GitHubAPIService(RemoteBackend):
    """
    Lists directories through ``/repos/{owner}/{repo}/contents/{path}``
    and downloads file bytes from the raw content host.
    """

    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        api_base_url: str = DEFAULT_API_BASE_URL,
        raw_base_url: str = DEFAULT_RAW_BASE_URL,
        timeout: float = 30.0,
        retry_manager: Optional[RetryManager] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.credentials = credentials
        self.api_base_url = api_base_url.rstrip('/')
        self.raw_base_url = raw_base_url.rstrip('/')
        self.retry_manager = retry_manager or RetryManager()
        self.api_calls = 0

        auth = None
        if credentials is not None and credentials.token:
            auth = httpx.BasicAuth(credentials.username or "", credentials.token)

        self._client = httpx.AsyncClient(
            auth=auth,
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
            follow_redirects=True,
            transport=transport
        )

    @property
    def is_anonymous(self) -> bool:
        return self.credentials is None or self.credentials.is_anonymous

    def _contents_url(self, owner: str, repo: str, path: str) -> str:
        url = f"{self.api_base_url}/repos/{owner}/{repo}/contents"
        if path:
            url += "/" + quote(path.strip('/'))
        return url

    def _raw_url(self, owner: str, repo: str, reference: str, path: str) -> str:
        return (
            f"{self.raw_base_url}/{owner}/{repo}/"
            f"{quote(reference)}/{quote(path.strip('/'))}"
        )

    @handle_api_error
    async def _get(self, url: str, what: str, **kwargs: Any) -> httpx.Response:
        self.api_calls += 1
        response = await self._client.get(url, **kwargs)
        raise_for_status(response, what, anonymous=self.is_anonymous)
        return response

    async def list_directory(
        self,
        owner: str,
        repo: str,
        reference: str,
        path: str
    ) -> List[RemoteEntry]:
        what = f"{owner}/{repo}@{reference}:{path or '/'}"
        logger.debug(f"Listing {what}")

        response = await self.retry_manager.execute(
            self._get,
            self._contents_url(owner, repo, path),
            what,
            params={"ref": reference},
            headers={"Accept": "application/vnd.github.v3+json"}
        )

        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError(f"Invalid listing response for {what}", e) from e

        # A path naming a single file yields an object, not a list
        items: List[Dict[str, Any]] = payload if isinstance(payload, list) else [payload]

        entries = []
        for item in items:
            kind = EntryKind.from_api(item.get("type", ""))
            if kind is None:
                logger.debug(f"Skipping {item.get('path')} (type: {item.get('type')})")
                continue
            entries.append(RemoteEntry(
                name=item["name"],
                remote_path=item["path"],
                kind=kind
            ))
        return entries

    async def get_file_content(
        self,
        owner: str,
        repo: str,
        reference: str,
        path: str
    ) -> bytes:
        response = await self.retry_manager.execute(
            self._get,
            self._raw_url(owner, repo, reference, path),
            f"{owner}/{repo}@{reference}:{path}"
        )
        return response.content

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = [
    "GitHubAPIService",
]
