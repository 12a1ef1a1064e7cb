"""
Token provider.

Process-wide holder of the bearer credential. Construct one per process and
inject it into the transport; tests build a fresh instance per case.
"""
import asyncio
import time
from typing import Callable, Optional

from .credential import Credential
from .token_sources import TokenSource
from ..exceptions import AuthError
from ..logging import get_logger


class TokenProvider:
    """
    Caches a credential and refreshes it lazily.

    Concurrent ``get_token()`` calls during a refresh share one in-flight
    request to the token source.

    Example:
        >>> provider = TokenProvider(EndpointTokenSource(url))
        >>> credential = await provider.get_token()
        >>> headers = {'Authorization': f'Bearer {credential.token}'}
    """

    def __init__(
        self,
        source: TokenSource,
        safety_margin: float = 60.0,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize token provider.

        Args:
            source: Where fresh credentials come from
            safety_margin: Seconds before expiry at which a credential is refreshed
            clock: Time function returning seconds since the epoch
        """
        self._source = source
        self._safety_margin_ms = int(safety_margin * 1000)
        self._clock = clock
        self._credential: Optional[Credential] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._logger = get_logger('albumpy.auth')

    @property
    def cached(self) -> Optional[Credential]:
        """Currently cached credential, usable or not."""
        return self._credential

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _usable(self) -> bool:
        return (
            self._credential is not None
            and self._credential.is_usable(self._now_ms(), self._safety_margin_ms)
        )

    async def get_token(self) -> Credential:
        """
        Return a usable credential, refreshing if needed.

        Raises:
            AuthError: If the refresh fails or yields no token
        """
        if self._usable():
            return self._credential

        if self._refresh_task is None:
            self._logger.debug("Refreshing access token")
            self._refresh_task = asyncio.ensure_future(self._refresh())
            self._refresh_task.add_done_callback(self._consume_refresh_error)
        else:
            self._logger.debug("Joining in-flight token refresh")

        # shield: one waiter giving up must not cancel the shared refresh
        return await asyncio.shield(self._refresh_task)

    def invalidate(self) -> None:
        """Drop the cached credential so the next call refreshes."""
        if self._credential is not None:
            self._logger.info("Access token invalidated")
        self._credential = None

    @staticmethod
    def _consume_refresh_error(task: asyncio.Future) -> None:
        # Every waiter may have given up; the error still counts as handled
        if not task.cancelled():
            task.exception()

    async def _refresh(self) -> Credential:
        try:
            try:
                credential = await self._source.fetch()
            except AuthError:
                raise
            except Exception as e:
                raise AuthError(f"Token refresh failed: {e}") from e

            if credential is None or not credential.token:
                raise AuthError("Token refresh returned no token")

            self._credential = credential
            self._logger.info("Access token refreshed")
            return credential
        finally:
            self._refresh_task = None

    async def close(self) -> None:
        """Release resources held by the token source."""
        await self._source.close()
