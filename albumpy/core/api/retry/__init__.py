"""Retry strategies using Strategy Pattern."""
from .retry_strategy import RetryStrategy, LinearBackoffStrategy, RetryExecutor

__all__ = [
    'RetryStrategy',
    'LinearBackoffStrategy',
    'RetryExecutor',
]
