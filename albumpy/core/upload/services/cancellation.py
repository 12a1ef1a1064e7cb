"""
Cancellation token for uploads.

A shared flag plus an abort mechanism for the network call currently in
flight. One token is created per album run and handed down to every layer.
"""
import asyncio
from typing import Awaitable, Set, TypeVar

from ...exceptions import CancelledError
from ...logging import get_logger

T = TypeVar('T')


class CancellationToken:
    """
    Cooperative cancellation signal.

    Layers call ``raise_if_cancelled()`` at loop boundaries and wrap every
    network await in ``run()`` so that ``cancel()`` can abort the request
    that is currently in flight.

    Example:
        >>> token = CancellationToken()
        >>> result = await token.run(transport.append_chunk(...))
        >>> token.cancel()  # from a UI callback
    """

    def __init__(self):
        self._cancelled = False
        self._inflight: Set[asyncio.Future] = set()
        self._logger = get_logger('albumpy.upload.cancel')

    @property
    def is_cancelled(self) -> bool:
        """Returns True once cancel() has been called."""
        return self._cancelled

    def cancel(self) -> bool:
        """
        Request cancellation.

        Aborts any in-flight awaitable started through run(). Calling it
        again has no further effect.

        Returns:
            True if this call cancelled the token, False if it already was
        """
        if self._cancelled:
            return False
        self._cancelled = True

        inflight = list(self._inflight)
        if inflight:
            self._logger.debug(f"Aborting {len(inflight)} in-flight request(s)")
        for future in inflight:
            future.cancel()
        return True

    def raise_if_cancelled(self) -> None:
        """Raise CancelledError if cancellation was requested."""
        if self._cancelled:
            raise CancelledError()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` so that cancel() can abort it.

        Raises:
            CancelledError: If the token is (or becomes) cancelled
        """
        if self._cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise CancelledError()

        future = asyncio.ensure_future(awaitable)
        self._inflight.add(future)
        try:
            return await future
        except asyncio.CancelledError:
            if self._cancelled:
                raise CancelledError() from None
            raise
        finally:
            self._inflight.discard(future)
