"""Tests for the single-slot admission queue."""
import asyncio

import pytest

from albumpy.core.exceptions import CancelledError
from albumpy.core.upload import AdmissionQueue, CancellationToken


@pytest.fixture
def queue():
    return AdmissionQueue()


class TestAdmissionQueue:
    """Test suite for AdmissionQueue slot bookkeeping."""

    def test_first_request_granted(self, queue):
        assert queue.is_idle
        assert queue.request_slot('a') is True
        assert queue.active == 'a'

    def test_second_request_queued(self, queue):
        queue.request_slot('a')

        assert queue.request_slot('b') is False
        assert queue.active == 'a'
        assert queue.waiting == ['b']
        assert queue.position('b') == 1
        assert queue.position('a') == 0
        assert queue.position('zzz') is None

    def test_active_rerequest_is_granted(self, queue):
        queue.request_slot('a')
        assert queue.request_slot('a') is True
        assert queue.waiting == []

    def test_duplicate_waiting_request_not_requeued(self, queue):
        queue.request_slot('a')
        queue.request_slot('b')
        queue.request_slot('b')
        assert queue.waiting == ['b']

    def test_release_promotes_and_starts_next(self, queue):
        """Test releasing hands the slot to the waiter and fires its start."""
        started = []
        queue.request_slot('a')
        queue.request_slot('b', on_start=started.append)

        assert queue.release_slot('a') == 'b'
        assert queue.active == 'b'
        assert started == ['b']

        assert queue.release_slot('b') is None
        assert queue.is_idle

    def test_fifo_order(self, queue):
        """Test units start in request order."""
        started = []
        queue.request_slot('a')
        for unit in ('b', 'c', 'd'):
            queue.request_slot(unit, on_start=started.append)

        while queue.active is not None:
            queue.release_slot(queue.active)

        assert started == ['b', 'c', 'd']

    def test_release_by_non_holder_ignored(self, queue):
        queue.request_slot('a')
        queue.request_slot('b')

        assert queue.release_slot('b') is None
        assert queue.active == 'a'
        assert queue.waiting == ['b']

    def test_cancel_waiting_request(self, queue):
        """Test a withdrawn request is never started."""
        started = []
        queue.request_slot('a')
        queue.request_slot('b', on_start=started.append)
        queue.request_slot('c', on_start=started.append)

        assert queue.cancel_request('b') is True
        queue.release_slot('a')

        assert started == ['c']
        assert queue.active == 'c'

    def test_cancel_active_releases(self, queue):
        queue.request_slot('a')
        queue.request_slot('b')

        assert queue.cancel_request('a') is True
        assert queue.active == 'b'

    def test_cancel_unknown(self, queue):
        assert queue.cancel_request('nope') is False

    def test_rerequest_goes_to_tail(self, queue):
        """Test a unit that gave up its slot queues behind earlier waiters."""
        queue.request_slot('a')
        queue.request_slot('b')
        queue.release_slot('a')

        assert queue.request_slot('a') is False
        assert queue.waiting == ['a']

    def test_events(self, queue):
        """Test lifecycle events are emitted."""
        seen = []
        queue.events.on('queued', lambda unit, position: seen.append(('queued', unit, position)))
        queue.events.on('start', lambda unit: seen.append(('start', unit)))
        queue.events.on('released', lambda unit: seen.append(('released', unit)))
        queue.events.on('idle', lambda: seen.append(('idle',)))

        queue.request_slot('a')
        queue.request_slot('b')
        queue.release_slot('a')
        queue.release_slot('b')

        assert seen == [
            ('queued', 'b', 1),
            ('released', 'a'),
            ('start', 'b'),
            ('released', 'b'),
            ('idle',),
        ]

    def test_entries_keep_arrival_order(self, queue):
        queue.request_slot('a')
        queue.request_slot('b')
        queue.request_slot('c')

        entries = queue.entries()
        assert [e.unit_id for e in entries] == ['b', 'c']
        assert entries[0].enqueued_at <= entries[1].enqueued_at


class TestAdmissionQueueAcquire:
    """Test suite for AdmissionQueue.acquire."""

    @pytest.mark.asyncio
    async def test_acquire_when_idle(self, queue):
        await queue.acquire('a')
        assert queue.active == 'a'

    @pytest.mark.asyncio
    async def test_second_unit_waits_for_release(self, queue):
        """Test B starts only after A releases."""
        await queue.acquire('a')
        queued = []

        waiter = asyncio.ensure_future(
            queue.acquire('b', on_queued=lambda unit, position: queued.append((unit, position)))
        )
        await asyncio.sleep(0)

        assert not waiter.done()
        assert queued == [('b', 1)]

        queue.release_slot('a')
        await waiter
        assert queue.active == 'b'

    @pytest.mark.asyncio
    async def test_cancel_while_queued(self, queue):
        """Test cancelling a waiting unit withdraws it from the queue."""
        await queue.acquire('a')
        cancellation = CancellationToken()

        waiter = asyncio.ensure_future(queue.acquire('b', cancellation))
        await asyncio.sleep(0)
        cancellation.cancel()

        with pytest.raises(CancelledError):
            await waiter

        assert queue.waiting == []
        queue.release_slot('a')
        assert queue.is_idle

    @pytest.mark.asyncio
    async def test_already_cancelled(self, queue):
        cancellation = CancellationToken()
        cancellation.cancel()

        with pytest.raises(CancelledError):
            await queue.acquire('a', cancellation)

        assert queue.is_idle

    @pytest.mark.asyncio
    async def test_task_cancelled_after_promotion_releases(self, queue):
        """Test a waiter that dies right after promotion does not hold the slot."""
        await queue.acquire('a')
        waiter = asyncio.ensure_future(queue.acquire('b'))
        await asyncio.sleep(0)

        queue.release_slot('a')
        waiter.cancel()

        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert queue.is_idle

    @pytest.mark.asyncio
    async def test_failing_queued_callback_withdraws_request(self, queue):
        """Test a raising on_queued leaves no stale entry behind."""
        await queue.acquire('a')

        def broken(unit, position):
            raise RuntimeError("status display failed")

        with pytest.raises(RuntimeError):
            await queue.acquire('b', on_queued=broken)

        assert queue.waiting == []
        queue.release_slot('a')
        assert queue.is_idle

    @pytest.mark.asyncio
    async def test_failing_queued_event_handler_withdraws_request(self, queue):
        """Test a raising 'queued' listener does not strand the unit."""
        await queue.acquire('a')

        def broken(unit, position):
            raise RuntimeError("listener failed")

        queue.events.on('queued', broken)

        with pytest.raises(RuntimeError):
            await queue.acquire('b')

        queue.events.off('queued', broken)
        assert queue.waiting == []

        queue.release_slot('a')
        await asyncio.wait_for(queue.acquire('c'), 1)
        assert queue.active == 'c'
