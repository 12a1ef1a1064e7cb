"""Tests for the resumable upload engine."""
import asyncio

import pytest

from albumpy.core.exceptions import CancelledError, TransportError
from albumpy.core.upload import (
    CancellationToken,
    FixedSizeChunkingStrategy,
    ResumableUploadEngine
)

from tests.conftest import dropbox_error

MIB = 1024 * 1024


@pytest.fixture
def engine(transport):
    return ResumableUploadEngine(transport, FixedSizeChunkingStrategy(8 * MIB))


@pytest.fixture
def small_engine(transport):
    """Engine with 10-byte chunks for offset-level checks."""
    return ResumableUploadEngine(transport, FixedSizeChunkingStrategy(10))


class TestSingleRequestUpload:
    """Test suite for files that fit in one request."""

    @pytest.mark.asyncio
    async def test_small_file(self, engine, wire, make_file):
        """Test a file below the chunk size uses files/upload."""
        photo = make_file("a.jpg", 1 * MIB)
        progress = []

        meta = await engine.upload(photo, '/Albums/photos/01_a.jpg', lambda done, total: progress.append((done, total)))

        assert wire.endpoints() == ['upload']
        assert meta.size == 1 * MIB
        assert wire.files['/Albums/photos/01_a.jpg'] == photo.content
        assert progress == [(MIB, MIB)]

    @pytest.mark.asyncio
    async def test_exactly_chunk_size(self, engine, wire, make_file):
        """Test a file of exactly one chunk is not split."""
        await engine.upload(make_file("a.jpg", 8 * MIB), '/a.jpg')
        assert wire.endpoints() == ['upload']

    @pytest.mark.asyncio
    async def test_zero_byte_file(self, engine, wire, make_file):
        """Test empty files upload in one request."""
        progress = []

        meta = await engine.upload(make_file("empty.jpg", 0), '/empty.jpg', lambda d, t: progress.append((d, t)))

        assert wire.endpoints() == ['upload']
        assert meta.size == 0
        assert wire.files['/empty.jpg'] == b''
        assert progress == [(0, 0)]

    @pytest.mark.asyncio
    async def test_collision_is_renamed(self, engine, wire, make_file):
        """Test the committed path is reported back when the server renames."""
        await engine.upload(make_file("a.jpg", 10), '/x/a.jpg')
        meta = await engine.upload(make_file("a.jpg", 10), '/x/a.jpg')

        assert meta.path_display == '/x/a (1).jpg'


class TestChunkedUpload:
    """Test suite for chunked session uploads."""

    @pytest.mark.asyncio
    async def test_twenty_mib_in_three_chunks(self, engine, wire, make_file):
        """Test 20 MiB with 8 MiB chunks: start, one append, finish with 4 MiB."""
        photo = make_file("big.jpg", 20 * MIB)

        meta = await engine.upload(photo, '/Albums/photos/01_big.jpg')

        assert wire.endpoints() == ['start', 'append', 'finish']
        assert wire.calls_to('start')[0]['size'] == 8 * MIB
        assert wire.calls_to('append')[0]['offset'] == 8 * MIB
        assert wire.calls_to('append')[0]['size'] == 8 * MIB
        finish = wire.calls_to('finish')[0]
        assert finish['offset'] == 16 * MIB
        assert finish['size'] == 4 * MIB
        assert finish['path'] == '/Albums/photos/01_big.jpg'
        assert meta.size == 20 * MIB
        assert wire.files['/Albums/photos/01_big.jpg'] == photo.content

    @pytest.mark.asyncio
    async def test_offsets_are_contiguous(self, small_engine, wire, make_file):
        """Test every chunk is sent at the offset the previous one ended."""
        photo = make_file("a.jpg", 45)

        await small_engine.upload(photo, '/a.jpg')

        assert wire.endpoints() == ['start', 'append', 'append', 'append', 'finish']
        assert [c['offset'] for c in wire.calls_to('append')] == [10, 20, 30]
        assert wire.calls_to('finish')[0]['offset'] == 40
        assert wire.files['/a.jpg'] == photo.content

    @pytest.mark.asyncio
    async def test_one_byte_over_chunk_size(self, small_engine, wire, make_file):
        """Test a file one byte over the chunk size is start + finish."""
        await small_engine.upload(make_file("a.jpg", 11), '/a.jpg')

        assert wire.endpoints() == ['start', 'finish']
        assert wire.calls_to('finish')[0]['size'] == 1

    @pytest.mark.asyncio
    async def test_progress_is_monotonic(self, small_engine, make_file):
        """Test progress follows acknowledged offsets and ends at the size."""
        progress = []

        await small_engine.upload(make_file("a.jpg", 35), '/a.jpg', lambda d, t: progress.append((d, t)))

        assert progress == [(10, 35), (20, 35), (30, 35), (35, 35)]

    @pytest.mark.asyncio
    async def test_transient_append_failure_resends_same_offset(self, small_engine, wire, sleeper, make_file):
        """Test a rate-limited append is retried at the same offset."""
        photo = make_file("a.jpg", 25)
        wire.fail('append', dropbox_error('too_many_write_operations/..', 429))

        await small_engine.upload(photo, '/a.jpg')

        assert [c['offset'] for c in wire.calls_to('append')] == [10, 10]
        assert sleeper.delays == [2.0]
        assert wire.files['/a.jpg'] == photo.content

    @pytest.mark.asyncio
    async def test_lost_append_response_is_not_duplicated(self, small_engine, wire, make_file):
        """Test an append that landed but timed out is not stored twice."""
        photo = make_file("a.jpg", 25)
        wire.drop_response('append')

        meta = await small_engine.upload(photo, '/a.jpg')

        assert [c['offset'] for c in wire.calls_to('append')] == [10, 10]
        assert wire.calls_to('finish')[0]['offset'] == 20
        assert meta.size == 25
        assert wire.files['/a.jpg'] == photo.content

    @pytest.mark.asyncio
    async def test_terminal_failure_stops_upload(self, small_engine, wire, make_file):
        """Test a terminal append error aborts without finishing."""
        wire.fail('append', dropbox_error('not_found/..', 409))

        with pytest.raises(TransportError):
            await small_engine.upload(make_file("a.jpg", 25), '/a.jpg')

        assert 'finish' not in wire.endpoints()
        assert wire.files == {}

    @pytest.mark.asyncio
    async def test_rejected_offset_propagates(self, small_engine, wire, make_file):
        """Test an offset error that is not a duplicate is surfaced."""
        wire.fail('append', dropbox_error(
            'incorrect_offset/..',
            error={'.tag': 'incorrect_offset', 'correct_offset': 5}
        ))

        with pytest.raises(TransportError) as exc_info:
            await small_engine.upload(make_file("a.jpg", 25), '/a.jpg')

        assert exc_info.value.correct_offset == 5


class TestEngineCancellation:
    """Test suite for cancelling an upload in progress."""

    @pytest.mark.asyncio
    async def test_cancel_during_append(self, small_engine, wire, make_file):
        """Test cancelling mid-append aborts the request and sends nothing more."""
        cancellation = CancellationToken()
        entered = wire.block('append')

        task = asyncio.ensure_future(
            small_engine.upload(make_file("a.jpg", 35), '/a.jpg', cancellation=cancellation)
        )
        await entered.wait()
        cancellation.cancel()

        with pytest.raises(CancelledError):
            await task

        assert wire.endpoints() == ['start', 'append']
        assert wire.files == {}

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, engine, wire, make_file):
        cancellation = CancellationToken()
        cancellation.cancel()

        with pytest.raises(CancelledError):
            await engine.upload(make_file("a.jpg", 100), '/a.jpg', cancellation=cancellation)

        assert wire.calls == []
