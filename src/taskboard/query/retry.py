# src/taskboard/query/retry.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from ..tasks.errors import NotFoundError, TaskValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Backoff = Callable[[int], float]
Sleep = Callable[[float], Awaitable[None]]


def fixed_backoff(seconds: float) -> Backoff:
    """Same delay before every retry."""
    delay = max(0.0, float(seconds))

    def _backoff(attempt: int) -> float:
        return delay

    return _backoff


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """
    How many times a call is attempted and how long to wait in between.

    `max_attempts` counts the first call: 2 means "retry once".
    Errors listed in `give_up_on` are never retried.
    """

    max_attempts: int = 2
    backoff: Backoff = field(default_factory=lambda: fixed_backoff(1.0))
    give_up_on: tuple[type[BaseException], ...] = (NotFoundError, TaskValidationError)

    @classmethod
    def none(cls) -> RetryPolicy:
        return cls(max_attempts=1)

    @classmethod
    def from_settings(cls, settings) -> RetryPolicy:
        return cls(
            max_attempts=1 + max(0, int(settings.fetch_retries)),
            backoff=fixed_backoff(settings.retry_delay_seconds),
        )

    def should_retry(self, attempt: int, exc: BaseException) -> bool:
        if isinstance(exc, self.give_up_on):
            return False
        return attempt < self.max_attempts

    async def run(self, fn: Callable[[], Awaitable[T]], *, sleep: Sleep = asyncio.sleep) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await fn()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if not self.should_retry(attempt, e):
                    raise
                delay = self.backoff(attempt)
                logger.info(
                    "attempt %d/%d failed (%s); retrying in %.2fs",
                    attempt,
                    self.max_attempts,
                    e,
                    delay,
                )
                await sleep(delay)
