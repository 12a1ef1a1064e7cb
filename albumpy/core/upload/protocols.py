"""
Protocol definitions for upload module.

Defines interfaces (protocols) for dependency injection: the engine and
orchestrator depend on these, not on the Dropbox transport itself.
"""
from typing import Protocol, List, Optional, Callable

from .models import ChunkInfo, ServerFileMetadata, UploadableFile, BatchProgress


BytesProgressCallback = Callable[[int, int], None]
BatchProgressCallback = Callable[[str, BatchProgress], None]


class ChunkingStrategy(Protocol):
    """Protocol for file chunking strategies."""

    @property
    def chunk_size(self) -> int:
        """Bytes per chunk."""
        ...

    def calculate_chunks(self, file_size: int) -> List[ChunkInfo]:
        """
        Calculate chunk boundaries for a file.

        Args:
            file_size: Total file size in bytes

        Returns:
            Contiguous chunks covering the file
        """
        ...


class TokenProviderProtocol(Protocol):
    """Protocol for credential providers."""

    async def get_token(self):
        """Return a usable Credential."""
        ...

    def invalidate(self) -> None:
        """Drop the cached credential."""
        ...


class UploadTransportProtocol(Protocol):
    """Wire operations used by the upload engine."""

    async def upload_whole(
        self,
        file: UploadableFile,
        destination_path: str,
        cancellation=None
    ) -> ServerFileMetadata:
        ...

    async def start_session(self, first_chunk: bytes, cancellation=None) -> str:
        ...

    async def append_chunk(
        self,
        session_id: str,
        offset: int,
        chunk: bytes,
        cancellation=None
    ) -> None:
        ...

    async def finish_session(
        self,
        session_id: str,
        offset: int,
        last_chunk: bytes,
        destination_path: str,
        cancellation=None
    ) -> ServerFileMetadata:
        ...


class FolderTransportProtocol(Protocol):
    """Folder and link operations used by the batch orchestrator."""

    async def create_folder(self, path: str, cancellation=None) -> None:
        ...

    async def create_or_fetch_share_link(self, path: str, cancellation=None) -> Optional[str]:
        ...


class FileUploaderProtocol(Protocol):
    """Protocol for single-file uploaders (the resumable engine)."""

    async def upload(
        self,
        file: UploadableFile,
        destination_path: str,
        on_bytes_progress: Optional[BytesProgressCallback] = None,
        cancellation=None
    ) -> ServerFileMetadata:
        ...
