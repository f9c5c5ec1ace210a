"""Statcrab utilities."""

from .logging import get_logger, setup_logging
from .retry import RetryConfig, retry_async

__all__ = [
    "get_logger",
    "setup_logging",
    "RetryConfig",
    "retry_async",
]
