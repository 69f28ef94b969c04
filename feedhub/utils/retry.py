"""Retry utilities for async operations."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 2
    delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0
    exceptions: tuple[Type[BaseException], ...] = field(default_factory=lambda: (Exception,))

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt (0-indexed)."""
        delay = self.delay * (self.backoff_factor**attempt)
        return min(delay, self.max_delay)


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig,
    label: str = "",
) -> T:
    """Await `func()` until it succeeds or retries run out; re-raise the last error.

    Only exceptions listed in `config.exceptions` are retried. Anything else
    propagates immediately.
    """
    for attempt in range(config.max_retries + 1):
        try:
            return await func()
        except config.exceptions as e:
            if attempt >= config.max_retries:
                logger.error(
                    f"All {config.max_retries} retries failed for {label}: {type(e).__name__}: {e}"
                )
                raise
            delay_time = config.get_delay(attempt)
            logger.warning(
                f"Retry {attempt + 1}/{config.max_retries} for {label}: "
                f"{type(e).__name__}: {e}. Waiting {delay_time:.1f}s..."
            )
            await asyncio.sleep(delay_time)
    raise RuntimeError("unreachable")

