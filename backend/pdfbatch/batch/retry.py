"""
Retry executor — bounded retries with exponential backoff.

Stateless: every call keeps its own attempt counter and delay, so many
operations can be wrapped concurrently without interacting.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import structlog

from pdfbatch.batch.errors import RetryExhaustedError
from pdfbatch.core.config import settings
from pdfbatch.core.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """max_retries=3 means 4 attempts in total; delays are in seconds."""

    max_retries: int = 3
    delay: float = 1.0
    backoff_multiplier: float = 2.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delays(self) -> list[float]:
        """Waits between consecutive attempts, e.g. [1.0, 2.0, 4.0]."""
        waits = []
        delay = self.delay
        for _ in range(self.max_retries):
            waits.append(delay)
            delay *= self.backoff_multiplier
        return waits

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_retries=settings.RETRY_MAX_RETRIES,
            delay=settings.RETRY_DELAY_MS / 1000,
            backoff_multiplier=settings.RETRY_BACKOFF_MULTIPLIER,
        )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    context: str | None = None,
    log: structlog.stdlib.BoundLogger | None = None,
) -> T:
    """
    Await `operation()` until it succeeds or the policy is exhausted.

    Raises:
        RetryExhaustedError: wrapping the last error, with the attempt count.
    """
    policy = policy or RetryPolicy()
    log = log or logger
    delay = policy.delay
    last_error: Exception | None = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            last_error = exc
            if attempt == policy.max_attempts:
                break
            log.warning(
                f"Attempt {attempt}/{policy.max_attempts} failed, retrying in {delay}s",
                context=context,
                error=str(exc),
            )
            await asyncio.sleep(delay)
            delay *= policy.backoff_multiplier

    suffix = f" ({context})" if context else ""
    raise RetryExhaustedError(
        f"Operation failed after {policy.max_attempts} attempts{suffix}: {last_error}",
        attempts=policy.max_attempts,
        label=context,
    ) from last_error
