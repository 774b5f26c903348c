"""
Retry helper with exponential backoff for transient network failures.
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

import httpx

from .error_handler import TransportError
from .logger import logger


T = TypeVar('T')


@dataclass
class RetryConfig:
    """Backoff settings and the exception types worth retrying."""

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    retryable_errors: Tuple[Type[BaseException], ...] = field(
        default_factory=lambda: (TransportError, httpx.TransportError)
    )


class RetryManager:
    """
    Re-runs an async callable while it fails with a retryable error.

    By default only TransportError (which includes RateLimitError) and raw
    httpx transport errors are retried; NotFoundError and AuthError are
    raised on the first attempt.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
        jitter: bool = True
    ):
        self.config = RetryConfig(
            max_retries=max_retries,
            initial_delay=base_delay,
            max_delay=max_delay,
            backoff_factor=exponential_base
        )
        self.jitter = jitter

    @property
    def max_retries(self) -> int:
        return self.config.max_retries

    @property
    def base_delay(self) -> float:
        return self.config.initial_delay

    @property
    def max_delay(self) -> float:
        return self.config.max_delay

    @property
    def exponential_base(self) -> float:
        return self.config.backoff_factor

    def _calculate_delay(self, attempt: int) -> float:
        delay = min(
            self.config.initial_delay * (self.config.backoff_factor ** attempt),
            self.config.max_delay
        )
        if self.jitter:
            # +/- 20%
            delay *= random.uniform(0.8, 1.2)
        return delay

    async def execute(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        exceptions: Optional[Tuple[Type[BaseException], ...]] = None,
        max_retries: Optional[int] = None,
        **kwargs: Any
    ) -> T:
        """
        Execute ``func(*args, **kwargs)`` with retries.

        Args:
            func: Coroutine function to call
            exceptions: Exception types to retry; defaults to the config's
            max_retries: Per-call override of the retry count

        Raises:
            The last error once retries are exhausted, or the first
            non-retryable error immediately.
        """
        retryable = exceptions or self.config.retryable_errors
        retries = self.max_retries if max_retries is None else max_retries

        attempt = 0
        while True:
            try:
                return await func(*args, **kwargs)
            except retryable as e:
                if attempt >= retries:
                    logger.error(f"All {attempt + 1} attempts failed, giving up: {e}")
                    raise

                delay = self._calculate_delay(attempt)
                attempt += 1
                logger.warning(
                    f"Attempt {attempt} failed: {e}. "
                    f"Retrying in {delay:.2f}s ({attempt}/{retries})"
                )
                await asyncio.sleep(delay)


__all__ = [
    "RetryConfig",
    "RetryManager",
]
