"""
Error taxonomy and helpers that translate transport-level failures
into CherryPick exceptions.
"""

import asyncio
import functools
import inspect
from typing import Callable, Dict, List, Optional, TypeVar

import httpx

from .logger import logger


T = TypeVar('T')

#: Cancellation is the event loop's own exception, re-exported for callers.
CancelledError = asyncio.CancelledError

AUTH_HINT = (
    "If this is a private repository, supply a token that has access to it "
    "(GITHUB_USERNAME / GITHUB_TOKEN)."
)


####
##      EXCEPTIONS
#####
class DownloadError(Exception):
    """Base exception for every fetch failure."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(message)

    def __str__(self) -> str:
        if self.original_error is not None:
            return f"{self.message} (Original: {self.original_error})"
        return self.message


class NotFoundError(DownloadError):
    """The remote path or reference does not exist."""


class AuthError(DownloadError):
    """Credentials are required for the resource, or were rejected."""


class TransportError(DownloadError):
    """Network or connection level failure."""


class RateLimitError(TransportError):
    """The remote API refused the request because the rate limit is exhausted."""


class FilesystemError(DownloadError):
    """Local directory creation or file write failed."""


class ParseError(DownloadError):
    """A user supplied repository reference could not be parsed."""


class PartialFailureError(DownloadError):
    """
    One or more entries of a walk failed while the rest completed.

    Attributes:
        failures: remote path -> cause, for every failing file or directory
        written: local paths that were written successfully
    """

    def __init__(
        self,
        failures: Dict[str, Exception],
        written: Optional[List] = None
    ):
        self.failures = dict(failures)
        self.written = list(written or [])
        super().__init__(
            f"{len(self.failures)} path(s) failed: "
            + ", ".join(sorted(self.failures))
        )

    def describe(self) -> List[str]:
        """One human readable line per failing path."""

        return [f"{path}: {cause}" for path, cause in sorted(self.failures.items())]


####
##      STATUS MAPPING
#####
def _is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == 429:
        return True
    return (
        response.status_code == 403
        and response.headers.get('x-ratelimit-remaining') == '0'
    )


def raise_for_status(
    response: httpx.Response,
    what: str,
    anonymous: bool = False
) -> None:
    """
    Raise the matching DownloadError subclass for a non-2xx response.

    Args:
        response: HTTP response to inspect
        what: Human readable description of the requested resource
        anonymous: The request carried no credentials. GitHub answers 404
            for private repositories in that case, so the message then
            suggests supplying a token.
    """
    status = response.status_code
    if 200 <= status < 300:
        return

    reason = f"{status} {response.reason_phrase}".strip()

    if _is_rate_limited(response):
        reset_at = response.headers.get('x-ratelimit-reset')
        suffix = f" (resets at {reset_at})" if reset_at else ""
        raise RateLimitError(f"Rate limit exceeded while fetching {what}{suffix}")

    if status in (401, 403):
        raise AuthError(f"Access denied for {what}: {reason}. {AUTH_HINT}")

    if status in (404, 422):
        message = f"Not found: {what} ({reason})"
        if anonymous:
            message = f"{message}. {AUTH_HINT}"
        raise NotFoundError(message)

    raise TransportError(f"Failed to fetch {what}: {reason}")


####
##      DECORATORS
#####
def _translate(error: Exception) -> Exception:
    if isinstance(error, DownloadError):
        return error

    if isinstance(error, httpx.HTTPStatusError):
        try:
            raise_for_status(error.response, str(error.request.url))
        except DownloadError as mapped:
            mapped.original_error = error
            return mapped

    if isinstance(error, httpx.RequestError):
        return TransportError("Network request failed", error)

    if isinstance(error, (ConnectionError, TimeoutError)):
        return TransportError("Connection failed", error)

    return DownloadError("Unexpected error", error)


def handle_api_error(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator translating httpx and unexpected errors into DownloadError.

    Works on both plain and ``async`` functions. DownloadError subclasses
    and cancellation pass through untouched.
    """

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                translated = _translate(e)
                if translated is e:
                    raise
                logger.debug(f"{func.__name__} failed: {translated}")
                raise translated from e

        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            translated = _translate(e)
            if translated is e:
                raise
            logger.debug(f"{func.__name__} failed: {translated}")
            raise translated from e

    return wrapper


__all__ = [
    "CancelledError",
    "DownloadError",
    "NotFoundError",
    "AuthError",
    "TransportError",
    "RateLimitError",
    "FilesystemError",
    "ParseError",
    "PartialFailureError",
    "raise_for_status",
    "handle_api_error",
]
