"""Retry strategies and the retrying executor used by every wire operation."""
import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ..errors import ErrorClass, ErrorClassifier
from ...exceptions import TransportError
from ...logging import get_logger

T = TypeVar('T')


class RetryStrategy(ABC):
    """Abstract retry strategy."""

    @abstractmethod
    def should_retry(self, error_class: ErrorClass, attempt: int) -> bool:
        """Determines if a request that failed on ``attempt`` should be retried."""
        pass

    @abstractmethod
    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after ``attempt`` failed."""
        pass

    @abstractmethod
    async def wait_async(self, attempt: int):
        """Waits before retry (async)."""
        pass


class LinearBackoffStrategy(RetryStrategy):
    """
    Linear backoff retry strategy.

    Attempt ``n`` (1-based) that failed with a retryable error waits
    ``base_delay * n`` seconds, up to ``max_attempts`` attempts in total.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        base_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep

    def should_retry(self, error_class: ErrorClass, attempt: int) -> bool:
        """Retries transient and expired-token errors while attempts remain."""
        return error_class is not ErrorClass.TERMINAL and attempt < self.max_attempts

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * attempt

    async def wait_async(self, attempt: int):
        """Waits with linear backoff (async)."""
        await self._sleep(self.delay_for(attempt))


class RetryExecutor:
    """
    Runs one wire operation under the retry policy.

    Every attempt fetches a fresh access token, so a retry after an auth
    failure uses the refreshed credential. Backoff sleeps and requests are
    both abortable through the cancellation token.
    """

    def __init__(
        self,
        token_provider,
        classifier: ErrorClassifier,
        strategy: Optional[RetryStrategy] = None
    ):
        """
        Initialize retry executor.

        Args:
            token_provider: Object with ``async get_token()`` and ``invalidate()``
            classifier: Error classifier deciding what is retryable
            strategy: Retry strategy (linear backoff by default)
        """
        self._tokens = token_provider
        self._classifier = classifier
        self._strategy = strategy or LinearBackoffStrategy()
        self._logger = get_logger('albumpy.api.retry')

    @property
    def strategy(self) -> RetryStrategy:
        return self._strategy

    async def execute(
        self,
        operation: Callable[[str], Awaitable[T]],
        description: str,
        cancellation=None
    ) -> T:
        """
        Execute ``operation(access_token)`` with retries.

        Args:
            operation: Coroutine function taking the bearer token
            description: Name used in log messages (e.g. the endpoint)
            cancellation: Optional CancellationToken

        Returns:
            The operation's result

        Raises:
            TransportError: On a terminal error or when attempts run out
            AuthError: If no credential can be obtained
            CancelledError: If cancelled before or during an attempt
        """
        attempt = 0
        while True:
            attempt += 1
            if cancellation is not None:
                cancellation.raise_if_cancelled()

            credential = await self._await(self._tokens.get_token(), cancellation)

            try:
                return await self._await(operation(credential.token), cancellation)
            except TransportError as e:
                error_class = self._classifier.classify(e)
                if not self._strategy.should_retry(error_class, attempt):
                    e.attempts = attempt
                    if error_class is ErrorClass.TERMINAL:
                        self._logger.error(f"{description} failed: {e.summary}")
                    else:
                        self._logger.error(
                            f"{description} failed after {attempt} attempts: {e.summary}"
                        )
                    raise

                if error_class is ErrorClass.AUTH_EXPIRED:
                    self._tokens.invalidate()

                delay = self._strategy.delay_for(attempt)
                self._logger.warning(
                    f"{description} attempt {attempt} failed ({e.summary}), "
                    f"retrying in {delay:.1f}s"
                )
                await self._await(self._strategy.wait_async(attempt), cancellation)

    @staticmethod
    async def _await(awaitable: Awaitable[T], cancellation) -> T:
        if cancellation is None:
            return await awaitable
        return await cancellation.run(awaitable)
