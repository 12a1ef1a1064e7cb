"""Tests for chunking strategies."""
import pytest
from albumpy.core.upload.strategies.chunking import FixedSizeChunkingStrategy

MIB = 1024 * 1024


class TestFixedSizeChunkingStrategy:
    """Test suite for FixedSizeChunkingStrategy."""

    def test_default_chunk_size(self):
        """Test default 8MB chunk size."""
        strategy = FixedSizeChunkingStrategy()
        assert strategy.chunk_size == 8 * MIB

    def test_custom_chunk_size(self):
        """Test custom chunk size."""
        strategy = FixedSizeChunkingStrategy(chunk_size=512 * 1024)
        assert strategy.chunk_size == 512 * 1024

    def test_invalid_chunk_size(self):
        """Test invalid chunk size raises error."""
        with pytest.raises(ValueError):
            FixedSizeChunkingStrategy(chunk_size=0)

        with pytest.raises(ValueError):
            FixedSizeChunkingStrategy(chunk_size=-1)

    def test_negative_file_size(self):
        """Test negative file size raises error."""
        with pytest.raises(ValueError):
            FixedSizeChunkingStrategy().calculate_chunks(-1)

    def test_empty_file(self):
        """Test chunking empty file."""
        strategy = FixedSizeChunkingStrategy()
        assert strategy.calculate_chunks(0) == []

    def test_file_smaller_than_chunk(self):
        """Test file smaller than chunk size."""
        strategy = FixedSizeChunkingStrategy(chunk_size=1024)
        chunks = strategy.calculate_chunks(500)

        assert len(chunks) == 1
        assert (chunks[0].start, chunks[0].end) == (0, 500)

    def test_file_exact_multiple(self):
        """Test file size exact multiple of chunk size."""
        strategy = FixedSizeChunkingStrategy(chunk_size=1000)
        chunks = strategy.calculate_chunks(3000)

        assert [(c.start, c.end) for c in chunks] == [(0, 1000), (1000, 2000), (2000, 3000)]

    def test_file_not_exact_multiple(self):
        """Test file size not exact multiple of chunk size."""
        strategy = FixedSizeChunkingStrategy(chunk_size=1000)
        chunks = strategy.calculate_chunks(2500)

        assert [(c.start, c.end) for c in chunks] == [(0, 1000), (1000, 2000), (2000, 2500)]
        assert chunks[-1].size == 500

    def test_indexes_are_sequential(self):
        """Test chunk indexes follow offset order."""
        chunks = FixedSizeChunkingStrategy(chunk_size=10).calculate_chunks(45)
        assert [c.index for c in chunks] == [0, 1, 2, 3, 4]

    @pytest.mark.parametrize("size,chunk_size", [
        (1, 1), (7, 3), (20 * MIB, 8 * MIB), (8 * MIB + 1, 8 * MIB), (999, 1000), (10007, 97)
    ])
    def test_chunks_cover_file_without_gaps(self, size, chunk_size):
        """Test offsets run 0, C, 2C, ... S with no gaps or overlaps."""
        chunks = FixedSizeChunkingStrategy(chunk_size=chunk_size).calculate_chunks(size)

        assert chunks[0].start == 0
        assert chunks[-1].end == size
        for previous, current in zip(chunks, chunks[1:]):
            assert previous.end == current.start
        assert all(c.start == c.index * chunk_size for c in chunks)
        assert sum(c.size for c in chunks) == size
