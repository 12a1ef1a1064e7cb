"""
Chunking strategies for file uploads.

Implements Strategy Pattern for chunking algorithms.
Open for extension (new strategies), closed for modification.
"""
from abc import ABC, abstractmethod
from typing import List

from ..models import ChunkInfo


class BaseChunkingStrategy(ABC):
    """Abstract base class for chunking strategies."""

    @abstractmethod
    def calculate_chunks(self, file_size: int) -> List[ChunkInfo]:
        """Calculate chunk boundaries."""
        pass


class FixedSizeChunkingStrategy(BaseChunkingStrategy):
    """
    Fixed-size chunking strategy.

    Every chunk is ``chunk_size`` bytes except the last one, which holds the
    remainder. The size never changes for the lifetime of the instance.
    """

    DEFAULT_CHUNK_SIZE = 8 * 1024 * 1024  # 8MB

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize with chunk size.

        Args:
            chunk_size: Size of each chunk in bytes
        """
        if chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        self._chunk_size = chunk_size

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def calculate_chunks(self, file_size: int) -> List[ChunkInfo]:
        """
        Calculate fixed-size chunk boundaries.

        Args:
            file_size: Total file size in bytes

        Returns:
            Contiguous chunks covering [0, file_size)
        """
        if file_size < 0:
            raise ValueError("File size must not be negative")
        if file_size == 0:
            return []

        chunks = []
        position = 0

        while position < file_size:
            end = min(position + self._chunk_size, file_size)
            chunks.append(ChunkInfo(index=len(chunks), start=position, end=end))
            position = end

        return chunks
