"""
Admission queue.

Single-slot scheduler: at most one album unit uploads at a time, the rest
wait in FIFO order. Construct one per process and inject it wherever
uploads are started.
"""
import asyncio
from collections import deque
from typing import Callable, Deque, Dict, List, Optional

from .models import QueueEntry
from .services import CancellationToken
from ..api.events import EventEmitter
from ..logging import get_logger

StartCallback = Callable[[str], None]


class AdmissionQueue:
    """
    Idle -> Active(unit) -> Idle, with a FIFO wait-list while active.

    Events (on ``events``):
        queued(unit_id, position)  a request was put on the wait-list
        start(unit_id)             a waiting unit was promoted to active
        released(unit_id)          the active unit gave up the slot
        idle()                     nobody holds or waits for the slot

    Example:
        >>> queue = AdmissionQueue()
        >>> queue.request_slot('album-1')
        True
        >>> queue.request_slot('album-2', on_start=lambda unit: ...)
        False
        >>> queue.release_slot('album-1')  # album-2 is started
    """

    def __init__(self):
        self._active: Optional[str] = None
        self._waiting: Deque[QueueEntry] = deque()
        self._on_start: Dict[str, StartCallback] = {}
        self._events = EventEmitter('albumpy.upload.admission.events')
        self._logger = get_logger('albumpy.upload.admission')

    @property
    def events(self) -> EventEmitter:
        return self._events

    @property
    def active(self) -> Optional[str]:
        """Unit holding the slot, or None when idle."""
        return self._active

    @property
    def is_idle(self) -> bool:
        return self._active is None

    @property
    def waiting(self) -> List[str]:
        """Waiting unit ids in arrival order."""
        return [entry.unit_id for entry in self._waiting]

    def entries(self) -> List[QueueEntry]:
        return list(self._waiting)

    def position(self, unit_id: str) -> Optional[int]:
        """1-based wait-list position, 0 if active, None if unknown."""
        if unit_id == self._active:
            return 0
        for index, entry in enumerate(self._waiting, start=1):
            if entry.unit_id == unit_id:
                return index
        return None

    def request_slot(self, unit_id: str, on_start: Optional[StartCallback] = None) -> bool:
        """
        Ask for the slot.

        Args:
            unit_id: Requesting unit
            on_start: Called with ``unit_id`` when the unit is promoted later

        Returns:
            True if granted now, False if the unit was queued
        """
        if self._active is None:
            self._active = unit_id
            self._logger.info(f"Slot granted to {unit_id}")
            return True

        if self._active == unit_id:
            return True

        if on_start is not None:
            self._on_start[unit_id] = on_start

        position = self.position(unit_id)
        if position is None:
            self._waiting.append(QueueEntry(unit_id=unit_id))
            position = len(self._waiting)
            self._logger.info(f"{unit_id} queued at position {position} (active: {self._active})")
            self._events.emit('queued', unit_id, position)
        return False

    def release_slot(self, unit_id: str) -> Optional[str]:
        """
        Give up the slot held by ``unit_id`` and promote the next waiter.

        Returns:
            The promoted unit id, or None if the queue went idle (or
            ``unit_id`` did not hold the slot)
        """
        if self._active != unit_id:
            self._logger.warning(f"Release by {unit_id} ignored, active unit is {self._active}")
            return None

        self._logger.info(f"Slot released by {unit_id}")
        self._events.emit('released', unit_id)
        return self._promote()

    def cancel_request(self, unit_id: str) -> bool:
        """
        Withdraw a request.

        A waiting unit leaves the wait-list; the active unit releases the slot.

        Returns:
            True if the unit was waiting or active
        """
        if self._active == unit_id:
            self.release_slot(unit_id)
            return True

        for entry in self._waiting:
            if entry.unit_id == unit_id:
                self._waiting.remove(entry)
                self._on_start.pop(unit_id, None)
                self._logger.info(f"{unit_id} left the queue")
                return True
        return False

    def _promote(self) -> Optional[str]:
        if not self._waiting:
            self._active = None
            self._logger.debug("Slot idle")
            self._events.emit('idle')
            return None

        entry = self._waiting.popleft()
        self._active = entry.unit_id
        self._logger.info(f"Promoted {entry.unit_id} to active")
        callback = self._on_start.pop(entry.unit_id, None)
        if callback is not None:
            callback(entry.unit_id)
        self._events.emit('start', entry.unit_id)
        return entry.unit_id

    async def acquire(
        self,
        unit_id: str,
        cancellation: Optional[CancellationToken] = None,
        on_queued: Optional[Callable[[str, int], None]] = None
    ) -> None:
        """
        Wait until ``unit_id`` holds the slot.

        Args:
            unit_id: Requesting unit
            cancellation: Cancelling it while queued withdraws the request
            on_queued: Called with (unit_id, position) if the unit has to wait

        Raises:
            CancelledError: If cancelled before the slot was granted
        """
        cancellation = cancellation or CancellationToken()
        cancellation.raise_if_cancelled()

        loop = asyncio.get_running_loop()
        started: asyncio.Future = loop.create_future()

        def on_start(_unit: str) -> None:
            if not started.done():
                started.set_result(None)

        try:
            if self.request_slot(unit_id, on_start=on_start):
                return

            if on_queued is not None:
                on_queued(unit_id, self.position(unit_id))

            await cancellation.run(started)
        except BaseException:
            # Covers callback failures and promotion racing the cancellation
            self.cancel_request(unit_id)
            raise
