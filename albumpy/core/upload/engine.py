"""
Resumable upload engine.

Uploads one file, choosing a single request or a chunked session.
Follows Dependency Inversion Principle - depends on the transport protocol,
not on Dropbox itself.
"""
import time
from typing import Optional

from .models import ChunkInfo, ChunkSession, ServerFileMetadata, UploadableFile
from .protocols import BytesProgressCallback, ChunkingStrategy, UploadTransportProtocol
from .services import CancellationToken
from .strategies import FixedSizeChunkingStrategy
from ..exceptions import TransportError
from ..logging import get_logger

logger = get_logger('albumpy.upload.engine')


class ResumableUploadEngine:
    """
    Drives the upload of a single file.

    Files up to ``chunk_size`` bytes (empty files included) go in one
    request. Larger files open a session with the first chunk, append the
    middle chunks and commit with the last one, strictly in offset order.
    The committed offset advances only after the server acknowledges a
    chunk, so re-sending the same chunk after a failure is always safe.
    """

    def __init__(
        self,
        transport: UploadTransportProtocol,
        chunking_strategy: Optional[ChunkingStrategy] = None
    ):
        """
        Initialize upload engine.

        Args:
            transport: Wire operations (with retry)
            chunking_strategy: Strategy for chunking files (8 MiB fixed by default)
        """
        self._transport = transport
        self._chunking = chunking_strategy or FixedSizeChunkingStrategy()

    @property
    def chunk_size(self) -> int:
        return self._chunking.chunk_size

    async def upload(
        self,
        file: UploadableFile,
        destination_path: str,
        on_bytes_progress: Optional[BytesProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None
    ) -> ServerFileMetadata:
        """
        Upload ``file`` to ``destination_path``.

        Args:
            file: File to upload
            destination_path: Full backend path (renamed on collision)
            on_bytes_progress: Called with (uploaded_bytes, total_bytes)
            cancellation: Token checked before every network call

        Returns:
            Metadata of the committed file

        Raises:
            TransportError: If a wire operation fails terminally
            CancelledError: If cancelled
        """
        cancellation = cancellation or CancellationToken()
        size = file.byte_length
        size_mb = size / (1024 * 1024)
        started = time.time()

        if size <= self.chunk_size:
            logger.info(f"Uploading {file.name} ({size_mb:.2f} MB) in one request")
            cancellation.raise_if_cancelled()
            result = await self._transport.upload_whole(file, destination_path, cancellation)
            self._report(on_bytes_progress, size, size)
        else:
            result = await self._upload_chunked(file, destination_path, on_bytes_progress, cancellation)

        elapsed = time.time() - started
        logger.info(f"Uploaded {file.name} -> {result.path_display or destination_path} in {elapsed:.2f}s")
        return result

    async def _upload_chunked(
        self,
        file: UploadableFile,
        destination_path: str,
        on_bytes_progress: Optional[BytesProgressCallback],
        cancellation: CancellationToken
    ) -> ServerFileMetadata:
        chunks = self._chunking.calculate_chunks(file.byte_length)
        total = file.byte_length
        logger.info(
            f"Uploading {file.name} ({total / (1024 * 1024):.2f} MB) in {len(chunks)} chunks"
        )

        first = chunks[0]
        cancellation.raise_if_cancelled()
        session_id = await self._transport.start_session(
            file.slice(first.start, first.end), cancellation
        )
        session = ChunkSession(session_id=session_id, committed_offset=0, total_size=total)
        session.acknowledge(first.end)
        logger.debug(f"Session {session_id[:12]} opened, committed {session.committed_offset}/{total}")
        self._report(on_bytes_progress, session.committed_offset, total)

        result: Optional[ServerFileMetadata] = None
        for chunk in chunks[1:]:
            cancellation.raise_if_cancelled()
            if chunk.start != session.committed_offset:
                raise RuntimeError(
                    f"Chunk {chunk.index} starts at {chunk.start}, session committed {session.committed_offset}"
                )

            data = file.slice(chunk.start, chunk.end)
            if chunk.end == total:
                result = await self._transport.finish_session(
                    session.session_id, chunk.start, data, destination_path, cancellation
                )
            else:
                await self._append(session, chunk, data, cancellation)

            session.acknowledge(chunk.end)
            logger.debug(f"Chunk {chunk.index} acknowledged, committed {session.committed_offset}/{total}")
            self._report(on_bytes_progress, session.committed_offset, total)

        return result

    async def _append(
        self,
        session: ChunkSession,
        chunk: ChunkInfo,
        data: bytes,
        cancellation: CancellationToken
    ) -> None:
        try:
            await self._transport.append_chunk(session.session_id, chunk.start, data, cancellation)
        except TransportError as e:
            # A retried append whose first attempt did land: the server is
            # already past this chunk.
            if e.correct_offset == chunk.end:
                logger.warning(
                    f"Chunk {chunk.index} already stored by the server (offset {chunk.end}), continuing"
                )
                return
            raise

    @staticmethod
    def _report(callback: Optional[BytesProgressCallback], uploaded: int, total: int) -> None:
        if callback:
            callback(uploaded, total)
