"""Retry logic for upstream calls."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from ..errors import NetworkError

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior. Only NetworkError is retried by default."""
    max_attempts: int = 3
    backoff_base: float = 0.5
    backoff_max: float = 4.0
    backoff_multiplier: float = 2.0
    retryable_errors: tuple = (NetworkError,)


async def retry_async(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    config: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[int, Exception], None]] = None,
    **kwargs: Any,
) -> Any:
    """
    Retry an async function with exponential backoff.

    Args:
        func: Async function to retry
        *args: Positional arguments for func
        config: Retry configuration
        on_retry: Optional callback called on each retry (attempt_num, exception)
        **kwargs: Keyword arguments for func

    Returns:
        The result of func on success

    Raises:
        The last exception if all retries fail, or any non-retryable
        exception immediately
    """
    if config is None:
        config = RetryConfig()

    backoff = config.backoff_base

    for attempt in range(1, config.max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except config.retryable_errors as exc:
            if attempt == config.max_attempts:
                logger.warning(f"All {config.max_attempts} attempts failed: {exc}")
                raise

            logger.debug(f"Attempt {attempt} failed: {exc}, retrying in {backoff:.1f}s")
            if on_retry:
                on_retry(attempt, exc)

            await asyncio.sleep(backoff)
            backoff = min(backoff * config.backoff_multiplier, config.backoff_max)

    raise RuntimeError("Retry logic error")
